from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.user import User as UserModel


async def get_user_by_email(db: AsyncSession, email: str) -> UserModel | None:
    """Get a user by email."""
    result = await db.execute(select(UserModel).where(UserModel.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(
    db: AsyncSession, user_id: int, verified_only: bool = False
) -> UserModel | None:
    """Get a user by ID, optionally only if the email is verified."""
    query = select(UserModel).where(UserModel.id == user_id)
    if verified_only:
        query = query.where(UserModel.is_verified.is_(True))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_user_by_google_id(db: AsyncSession, google_id: str) -> UserModel | None:
    """Get the user linked to a Google account."""
    result = await db.execute(select(UserModel).where(UserModel.google_id == google_id))
    return result.scalar_one_or_none()


async def get_user_by_verification_token(db: AsyncSession, token: str) -> UserModel | None:
    """Get a user by a verification token that has not expired yet."""
    result = await db.execute(
        select(UserModel).where(
            UserModel.verification_token == token,
            UserModel.verification_expires > datetime.now(timezone.utc),
        )
    )
    return result.scalars().first()


async def get_user_by_reset_token(db: AsyncSession, token: str) -> UserModel | None:
    """Get a user by a password reset token that has not expired yet."""
    result = await db.execute(
        select(UserModel).where(
            UserModel.reset_password_token == token,
            UserModel.reset_password_expires > datetime.now(timezone.utc),
        )
    )
    return result.scalars().first()


async def create_user(db: AsyncSession, **fields: Any) -> UserModel:
    """Create a new user in the database. Pure data access - no business logic."""
    db_user = UserModel(**fields)
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user


async def update_user(db: AsyncSession, user: UserModel, **fields: Any) -> UserModel:
    """Update the given fields of a user. Fields not passed are left alone."""
    for name, value in fields.items():
        setattr(user, name, value)
    await db.commit()
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user: UserModel) -> None:
    """Delete a user. Refresh tokens go with it through ON DELETE CASCADE."""
    await db.delete(user)
    await db.commit()
