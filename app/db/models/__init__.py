from app.db.models.user import User
from app.db.models.refresh_token import RefreshToken

__all__ = ["User", "RefreshToken"]
