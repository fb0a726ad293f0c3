from dataclasses import dataclass
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import ACCESS_TOKEN_TYPE, verify_token
from app.db.base import SessionLocal
from app.db.models.user import User
from app.errors import InvalidTokenError
from app.repositories.identity import IdentityStore, SqlIdentityStore
from app.services.auth import AuthService
from app.services.email import EmailSender, SmtpEmailSender
from app.services.oauth import GoogleTokenVerifier

# auto_error=False so a missing header gets our own 401 message
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved from the bearer token, available as ``request.state.auth``."""

    user_id: int
    user: User


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as db:
        yield db


def get_identity_store(db: AsyncSession = Depends(get_db)) -> IdentityStore:
    return SqlIdentityStore(db)


def get_email_sender() -> EmailSender:
    return SmtpEmailSender()


def get_google_verifier() -> GoogleTokenVerifier:
    return GoogleTokenVerifier()


def get_auth_service(
    store: IdentityStore = Depends(get_identity_store),
    mailer: EmailSender = Depends(get_email_sender),
    google: GoogleTokenVerifier = Depends(get_google_verifier),
) -> AuthService:
    return AuthService(store=store, mailer=mailer, google=google)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_auth_context(
    credentials: HTTPAuthorizationCredentials | None, store: IdentityStore
) -> AuthContext:
    if credentials is None:
        raise _unauthorized("Access token required")

    try:
        payload = verify_token(credentials.credentials, ACCESS_TOKEN_TYPE)
    except InvalidTokenError:
        raise _unauthorized("Invalid or expired token")

    # Token claims may be stale: the user must still exist and be verified.
    user = await store.find_user_by_id(payload.user_id, verified_only=True)
    if user is None:
        raise _unauthorized("Invalid token or user not found")

    return AuthContext(user_id=user.id, user=user)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: IdentityStore = Depends(get_identity_store),
) -> AuthContext:
    """Require a valid access token belonging to a live, verified user."""
    context = await _resolve_auth_context(credentials, store)
    request.state.auth = context
    return context


async def get_optional_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    store: IdentityStore = Depends(get_identity_store),
) -> AuthContext | None:
    """Like ``get_auth_context`` but returns None instead of rejecting the request."""
    try:
        context = await _resolve_auth_context(credentials, store)
    except HTTPException:
        return None
    request.state.auth = context
    return context


async def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    """Get the current authenticated user from the access token."""
    return context.user
