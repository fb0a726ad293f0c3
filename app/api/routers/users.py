from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.db.models.user import User as UserModel
from app.schemas.auth import MessageResponse
from app.schemas.user import DeleteAccountRequest, ProfileUpdate, User
from app.services.user import delete_account, update_profile

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=User)
async def get_profile(current_user: UserModel = Depends(get_current_user)):
    """Get the current user's profile."""
    return User.model_validate(current_user)


@router.put("/profile", response_model=User)
async def update_own_profile(
    user_data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Update the current user's name and picture."""
    user = await update_profile(db, current_user, user_data)
    return User.model_validate(user)


@router.delete("/account", response_model=MessageResponse)
async def delete_own_account(
    data: DeleteAccountRequest,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Delete the current user and all their sessions. Requires "DELETE_MY_ACCOUNT"."""
    await delete_account(db, current_user, data.confirmation)
    return MessageResponse(message="Account deleted successfully")
