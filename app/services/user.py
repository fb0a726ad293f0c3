import logging

from sqlalchemy.ext.asyncio import AsyncSession

import app.repositories.user as user_repo
from app.db.models.user import User as UserModel
from app.errors import DomainValidationError
from app.schemas.user import ProfileUpdate

logger = logging.getLogger(__name__)

DELETE_CONFIRMATION = "DELETE_MY_ACCOUNT"


async def update_profile(db: AsyncSession, user: UserModel, data: ProfileUpdate) -> UserModel:
    """
    Update the current user's own profile.

    Email and password are not editable here; a missing picture clears it.
    """
    return await user_repo.update_user(db, user, name=data.name, picture=data.picture)


async def delete_account(db: AsyncSession, user: UserModel, confirmation: str) -> None:
    """
    Delete the current user's account and everything attached to it.

    Raises:
        DomainValidationError: If the confirmation string does not match.
    """
    if confirmation != DELETE_CONFIRMATION:
        raise DomainValidationError(
            f'Please provide confirmation string "{DELETE_CONFIRMATION}"'
        )

    user_id = user.id
    await user_repo.delete_user(db, user)
    logger.info("User %s deleted their account", user_id)
