"""Auth service: signup, login, email verification, password reset, token refresh, logout and Google sign-in."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from app.core.config import settings
from app.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    generate_opaque_token,
    get_password_hash,
    validate_password,
    verify_password,
    verify_token,
)
from app.db.models.user import User as UserModel
from app.errors import (
    EMAIL_NOT_VERIFIED,
    DomainValidationError,
    DuplicateResourceError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
)
from app.repositories.identity import IdentityStore
from app.schemas.auth import (
    AuthResponse,
    MessageResponse,
    RefreshResponse,
    SignupResponse,
    TokenPair,
)
from app.schemas.user import User
from app.services.email import EmailSender
from app.services.oauth import GoogleTokenVerifier, VerificationFailure

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"
FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, we have sent a password reset link."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """
    Session lifecycle for password and Google accounts.

    Collaborators are injected so the service can run against any identity
    store and mailer. Email delivery is best effort everywhere: a failed send
    is logged and never turns a successful operation into an error.
    """

    def __init__(
        self,
        store: IdentityStore,
        mailer: EmailSender,
        google: GoogleTokenVerifier | None = None,
    ):
        self.store = store
        self.mailer = mailer
        self.google = google or GoogleTokenVerifier()

    async def signup(self, email: str, password: str, name: str) -> SignupResponse:
        """
        Register a password account and send the verification email.

        Raises:
            DomainValidationError: If the password is too weak.
            DuplicateResourceError: If the email is already registered.
        """
        is_valid, error_message = validate_password(password)
        if not is_valid:
            raise DomainValidationError(error_message)

        if await self.store.find_user_by_email(email):
            raise DuplicateResourceError("User already exists with this email")

        password_hash = await asyncio.to_thread(get_password_hash, password)
        verification_token = generate_opaque_token()
        user = await self.store.create_user(
            email=email,
            name=name,
            password_hash=password_hash,
            is_verified=False,
            verification_token=verification_token,
            verification_expires=_utcnow()
            + timedelta(hours=settings.verification_token_expire_hours),
        )
        logger.info("Registered user %s", user.id)

        await self._notify(
            "verification", self.mailer.send_verification_email, user.email, user.name, verification_token
        )
        return SignupResponse(
            message="Account created successfully. Please check your email to verify your account.",
            user=User.model_validate(user),
        )

    async def login(self, email: str, password: str) -> AuthResponse:
        """
        Authenticate by email and password and issue an access/refresh pair.

        Raises:
            UnauthorizedError: Unknown email, Google-only account, wrong
                password, or (code EMAIL_NOT_VERIFIED) unverified email.
        """
        user = await self.store.find_user_by_email(email)
        if user is None or not user.password_hash:
            logger.info("Failed login: unknown email or no password set")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Failed login for user %s: wrong password", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_verified:
            raise UnauthorizedError(
                "Please verify your email address before logging in",
                code=EMAIL_NOT_VERIFIED,
            )

        tokens = await self._issue_tokens(user)
        logger.info("User %s logged in", user.id)
        return AuthResponse(message="Login successful", user=User.model_validate(user), tokens=tokens)

    async def verify_email(self, token: str) -> MessageResponse:
        """Consume a verification token. Raises DomainValidationError if invalid or expired."""
        user = await self.store.find_user_by_verification_token(token)
        if user is None:
            raise DomainValidationError("Invalid or expired verification token")

        await self.store.update_user(
            user, is_verified=True, verification_token=None, verification_expires=None
        )
        logger.info("User %s verified their email", user.id)
        return MessageResponse(message="Email verified successfully")

    async def resend_verification(self, email: str) -> MessageResponse:
        """
        Issue a fresh verification token, replacing any previous one.

        Raises:
            NotFoundError: If no user has this email.
            DomainValidationError: If the email is already verified.
        """
        user = await self.store.find_user_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if user.is_verified:
            raise DomainValidationError("Email is already verified")

        verification_token = generate_opaque_token()
        await self.store.update_user(
            user,
            verification_token=verification_token,
            verification_expires=_utcnow()
            + timedelta(hours=settings.verification_token_expire_hours),
        )
        logger.info("Reissued verification token for user %s", user.id)

        await self._notify(
            "verification", self.mailer.send_verification_email, user.email, user.name or "User", verification_token
        )
        return MessageResponse(message="Verification email sent successfully")

    async def forgot_password(self, email: str) -> MessageResponse:
        """
        Request a password reset.

        Always returns the same message (no user enumeration).
        """
        user = await self.store.find_user_by_email(email)
        if user is not None:
            reset_token = generate_opaque_token()
            await self.store.update_user(
                user,
                reset_password_token=reset_token,
                reset_password_expires=_utcnow()
                + timedelta(minutes=settings.password_reset_token_expire_minutes),
            )
            logger.info("Issued password reset token for user %s", user.id)
            await self._notify(
                "password reset", self.mailer.send_password_reset_email, user.email, user.name or "User", reset_token
            )

        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    async def reset_password(self, token: str, new_password: str) -> MessageResponse:
        """
        Set a new password from a reset token and sign the user out everywhere.

        Raises:
            DomainValidationError: If the password is too weak or the token is
                invalid or expired.
        """
        is_valid, error_message = validate_password(new_password)
        if not is_valid:
            raise DomainValidationError(error_message)

        user = await self.store.find_user_by_reset_token(token)
        if user is None:
            raise DomainValidationError("Invalid or expired reset token")

        password_hash = await asyncio.to_thread(get_password_hash, new_password)
        await self.store.update_user(
            user,
            password_hash=password_hash,
            reset_password_token=None,
            reset_password_expires=None,
        )
        revoked = await self.store.delete_all_refresh_tokens(user.id)
        logger.info("User %s reset their password, %d refresh tokens revoked", user.id, revoked)

        await self._notify(
            "password change", self.mailer.send_password_change_notification, user.email, user.name or "User"
        )
        return MessageResponse(message="Password reset successfully")

    async def refresh_access_token(self, refresh_token: str | None) -> RefreshResponse:
        """
        Exchange a stored refresh token for a new access token.

        The refresh token itself is not rotated and its row is left untouched.

        Raises:
            UnauthorizedError: Missing, invalid, expired, revoked, or not a
                refresh token.
        """
        if not refresh_token:
            raise UnauthorizedError("Refresh token is required")

        try:
            payload = verify_token(refresh_token, REFRESH_TOKEN_TYPE)
        except InvalidTokenError:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        stored = await self.store.find_refresh_token(refresh_token, payload.user_id)
        if stored is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        user = await self.store.find_user_by_id(payload.user_id)
        if user is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN)

        return RefreshResponse(
            access_token=create_access_token(user.id),
            user=User.model_validate(user),
        )

    async def logout(self, refresh_token: str | None) -> MessageResponse:
        """Revoke one refresh token. Unknown or missing tokens are not an error."""
        if refresh_token:
            await self.store.delete_refresh_token(refresh_token)
        return MessageResponse(message="Logged out successfully")

    async def logout_all(self, user_id: int) -> MessageResponse:
        """Revoke every refresh token of the user."""
        revoked = await self.store.delete_all_refresh_tokens(user_id)
        logger.info("User %s logged out from all devices, %d refresh tokens revoked", user_id, revoked)
        return MessageResponse(message="Logged out from all devices successfully")

    async def google_auth(self, token: str) -> AuthResponse:
        """
        Sign in with a Google ID token or access token.

        Signs in the account already linked to this Google id, else links the
        account with the same email, else creates a new verified account
        without a password.

        Raises:
            UnauthorizedError: If Google rejects the token or gives no email.
        """
        verification = await self.google.verify(token)
        if isinstance(verification, VerificationFailure):
            logger.info("Google sign-in rejected: %s", verification.reason)
            raise UnauthorizedError("Invalid Google token")

        profile = verification.profile
        if not profile.email:
            raise UnauthorizedError("Unable to get user info from Google token")

        # A linked Google account wins over the email, which may have changed
        user = None
        if profile.google_id:
            user = await self.store.find_user_by_google_id(profile.google_id)
        if user is None:
            user = await self.store.find_user_by_email(profile.email)
        if user is None:
            user = await self.store.create_user(
                email=profile.email,
                name=profile.name or "User",
                password_hash=None,
                google_id=profile.google_id,
                picture=profile.picture,
                is_verified=True,
            )
            logger.info("Created user %s from Google account", user.id)
        else:
            changes: dict[str, Any] = {}
            if not user.google_id and profile.google_id:
                changes["google_id"] = profile.google_id
            if not user.picture and profile.picture:
                changes["picture"] = profile.picture
            if not user.is_verified:
                changes.update(is_verified=True, verification_token=None, verification_expires=None)
            if changes:
                user = await self.store.update_user(user, **changes)
            logger.info("Linked Google sign-in to user %s", user.id)

        tokens = await self._issue_tokens(user)
        return AuthResponse(
            message="Google authentication successful",
            user=User.model_validate(user),
            tokens=tokens,
        )

    async def _issue_tokens(self, user: UserModel) -> TokenPair:
        access_token = create_access_token(user.id)
        refresh_token = create_refresh_token(user.id)
        await self.store.create_refresh_token(
            user.id,
            refresh_token,
            _utcnow() + timedelta(days=settings.refresh_token_expire_days),
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    async def _notify(self, kind: str, send: Callable[..., Awaitable[None]], *args: Any) -> None:
        try:
            await send(*args)
        except Exception as e:
            logger.error("Failed to send %s email: %s", kind, e)
