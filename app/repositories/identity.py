"""Identity store: the persistence contract the auth service depends on."""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

import app.repositories.refresh_token as refresh_token_repo
import app.repositories.user as user_repo
from app.db.models.refresh_token import RefreshToken as RefreshTokenModel
from app.db.models.user import User as UserModel


class IdentityStore(Protocol):
    """Users and refresh tokens, as seen by the auth service.

    Lookups by one-shot token and by refresh token only return rows whose
    expiry is still in the future.
    """

    async def find_user_by_email(self, email: str) -> UserModel | None: ...

    async def find_user_by_id(
        self, user_id: int, verified_only: bool = False
    ) -> UserModel | None: ...

    async def find_user_by_google_id(self, google_id: str) -> UserModel | None: ...

    async def create_user(self, **fields: Any) -> UserModel: ...

    async def update_user(self, user: UserModel, **fields: Any) -> UserModel: ...

    async def find_user_by_verification_token(self, token: str) -> UserModel | None: ...

    async def find_user_by_reset_token(self, token: str) -> UserModel | None: ...

    async def create_refresh_token(
        self, user_id: int, token: str, expires_at: datetime
    ) -> RefreshTokenModel: ...

    async def find_refresh_token(self, token: str, user_id: int) -> RefreshTokenModel | None: ...

    async def delete_refresh_token(self, token: str) -> int: ...

    async def delete_all_refresh_tokens(self, user_id: int) -> int: ...


class SqlIdentityStore:
    """IdentityStore backed by the SQLAlchemy repositories."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_user_by_email(self, email: str) -> UserModel | None:
        return await user_repo.get_user_by_email(self.db, email)

    async def find_user_by_id(self, user_id: int, verified_only: bool = False) -> UserModel | None:
        return await user_repo.get_user_by_id(self.db, user_id, verified_only=verified_only)

    async def find_user_by_google_id(self, google_id: str) -> UserModel | None:
        return await user_repo.get_user_by_google_id(self.db, google_id)

    async def create_user(self, **fields: Any) -> UserModel:
        return await user_repo.create_user(self.db, **fields)

    async def update_user(self, user: UserModel, **fields: Any) -> UserModel:
        return await user_repo.update_user(self.db, user, **fields)

    async def find_user_by_verification_token(self, token: str) -> UserModel | None:
        return await user_repo.get_user_by_verification_token(self.db, token)

    async def find_user_by_reset_token(self, token: str) -> UserModel | None:
        return await user_repo.get_user_by_reset_token(self.db, token)

    async def create_refresh_token(
        self, user_id: int, token: str, expires_at: datetime
    ) -> RefreshTokenModel:
        return await refresh_token_repo.create_refresh_token(self.db, user_id, token, expires_at)

    async def find_refresh_token(self, token: str, user_id: int) -> RefreshTokenModel | None:
        return await refresh_token_repo.get_refresh_token(self.db, token, user_id)

    async def delete_refresh_token(self, token: str) -> int:
        return await refresh_token_repo.delete_refresh_token(self.db, token)

    async def delete_all_refresh_tokens(self, user_id: int) -> int:
        return await refresh_token_repo.delete_user_refresh_tokens(self.db, user_id)
