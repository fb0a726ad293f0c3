from fastapi import APIRouter, Depends, status

from app.api.deps import AuthContext, get_auth_context, get_auth_service
from app.schemas.auth import (
    AuthResponse,
    EmailRequest,
    GoogleAuthRequest,
    LoginRequest,
    MeResponse,
    MessageResponse,
    RefreshResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
)
from app.schemas.user import User
from app.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    """Register with email and password. A verification email is sent."""
    return await auth.signup(data.email, data.password, data.name)


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Login with email and password - returns access and refresh tokens."""
    return await auth.login(data.email, data.password)


@router.get("/verify-email/{token}", response_model=MessageResponse)
async def verify_email(token: str, auth: AuthService = Depends(get_auth_service)):
    return await auth.verify_email(token)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(data: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    return await auth.resend_verification(data.email)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(data: EmailRequest, auth: AuthService = Depends(get_auth_service)):
    """Request password reset - same response whether or not the email exists."""
    return await auth.forgot_password(data.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(data: ResetPasswordRequest, auth: AuthService = Depends(get_auth_service)):
    """Reset password using the token from the email. Signs out all sessions."""
    return await auth.reset_password(data.token, data.password)


@router.post("/refresh-token", response_model=RefreshResponse)
async def refresh_token(
    data: RefreshTokenRequest | None = None,
    auth: AuthService = Depends(get_auth_service),
):
    """Get a new access token. The refresh token stays valid until it expires."""
    return await auth.refresh_access_token(data.refresh_token if data else None)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    data: RefreshTokenRequest | None = None,
    auth: AuthService = Depends(get_auth_service),
):
    return await auth.logout(data.refresh_token if data else None)


@router.post("/logout-all", response_model=MessageResponse)
async def logout_all(
    context: AuthContext = Depends(get_auth_context),
    auth: AuthService = Depends(get_auth_service),
):
    """Revoke every refresh token of the current user."""
    return await auth.logout_all(context.user_id)


@router.post("/google", response_model=AuthResponse)
async def google_auth(data: GoogleAuthRequest, auth: AuthService = Depends(get_auth_service)):
    """Sign in with a Google ID token or access token."""
    return await auth.google_auth(data.token)


@router.get("/me", response_model=MeResponse)
async def get_current_user_info(context: AuthContext = Depends(get_auth_context)):
    """Get current authenticated user information."""
    return MeResponse(user=User.model_validate(context.user))
