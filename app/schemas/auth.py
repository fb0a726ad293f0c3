from pydantic import EmailStr, Field, field_validator

from app.schemas.base import CamelModel
from app.schemas.user import User


class SignupRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmailRequest(CamelModel):
    email: EmailStr


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)


class RefreshTokenRequest(CamelModel):
    # Optional so that a missing token is answered with 401, not a validation error
    refresh_token: str | None = None


class GoogleAuthRequest(CamelModel):
    token: str = Field(..., min_length=1)


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class MessageResponse(CamelModel):
    message: str


class SignupResponse(CamelModel):
    message: str
    user: User


class AuthResponse(CamelModel):
    message: str
    user: User
    tokens: TokenPair


class RefreshResponse(CamelModel):
    access_token: str
    user: User


class MeResponse(CamelModel):
    user: User
