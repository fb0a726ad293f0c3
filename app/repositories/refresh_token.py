from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.refresh_token import RefreshToken as RefreshTokenModel


async def create_refresh_token(
    db: AsyncSession, user_id: int, token: str, expires_at: datetime
) -> RefreshTokenModel:
    """Store an issued refresh token."""
    db_token = RefreshTokenModel(token=token, user_id=user_id, expires_at=expires_at)
    db.add(db_token)
    await db.commit()
    await db.refresh(db_token)
    return db_token


async def get_refresh_token(
    db: AsyncSession, token: str, user_id: int
) -> RefreshTokenModel | None:
    """Get a stored, unexpired refresh token owned by ``user_id``."""
    result = await db.execute(
        select(RefreshTokenModel).where(
            RefreshTokenModel.token == token,
            RefreshTokenModel.user_id == user_id,
            RefreshTokenModel.expires_at > datetime.now(timezone.utc),
        )
    )
    return result.scalars().first()


async def delete_refresh_token(db: AsyncSession, token: str) -> int:
    """Delete a refresh token by its value. Returns the number of rows removed."""
    result = await db.execute(delete(RefreshTokenModel).where(RefreshTokenModel.token == token))
    await db.commit()
    return result.rowcount or 0


async def delete_user_refresh_tokens(db: AsyncSession, user_id: int) -> int:
    """Delete every refresh token of a user. Returns the number of rows removed."""
    result = await db.execute(
        delete(RefreshTokenModel).where(RefreshTokenModel.user_id == user_id)
    )
    await db.commit()
    return result.rowcount or 0
