"""Google sign-in token verification.

Clients may hand us either a Google ID token (from Google Identity Services)
or a plain OAuth access token. ``GoogleTokenVerifier.verify`` tries the token
as an ID token first, checking its signature against Google's public keys and
its audience against ``GOOGLE_CLIENT_ID``, and falls back to the userinfo
endpoint. It returns a tagged result instead of raising.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from app.core.config import settings

logger = logging.getLogger(__name__)

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

# Shared requests session for fetching Google's signing certificates
_google_request = google_requests.Request()


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str | None
    email: str | None
    name: str | None
    picture: str | None


@dataclass(frozen=True)
class IdentityTokenResult:
    profile: GoogleProfile


@dataclass(frozen=True)
class AccessTokenResult:
    profile: GoogleProfile


@dataclass(frozen=True)
class VerificationFailure:
    reason: str


GoogleVerification = IdentityTokenResult | AccessTokenResult | VerificationFailure


def _profile_from_claims(claims: dict[str, Any]) -> GoogleProfile:
    email = claims.get("email")
    # ID token claims carry booleans, some userinfo responses send strings
    if str(claims.get("email_verified", "true")).lower() == "false":
        email = None
    return GoogleProfile(
        google_id=claims.get("sub"),
        email=email,
        name=claims.get("name") or claims.get("given_name"),
        picture=claims.get("picture"),
    )


class GoogleTokenVerifier:
    def __init__(
        self,
        client_id: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.timeout = timeout if timeout is not None else settings.google_http_timeout_seconds
        self.transport = transport

    async def verify(self, token: str) -> GoogleVerification:
        result = await self._verify_id_token(token)
        if result is None:
            result = await self._fetch_userinfo(token)
        if result is None:
            return VerificationFailure("Invalid Google token")
        return result

    async def _verify_id_token(self, token: str) -> IdentityTokenResult | None:
        if not self.client_id:
            # Without an audience an ID token cannot be trusted
            return None
        try:
            # Signature, expiry, issuer and audience are all checked here
            claims = await asyncio.to_thread(
                google_id_token.verify_oauth2_token, token, _google_request, self.client_id
            )
        except (ValueError, GoogleAuthError) as e:
            logger.debug("Not a valid Google ID token: %s", e)
            return None
        return IdentityTokenResult(_profile_from_claims(claims))

    async def _fetch_userinfo(self, token: str) -> AccessTokenResult | None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(
                    GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {token}"}
                )
            except httpx.HTTPError as e:
                logger.warning("Google userinfo request failed: %s", e)
                return None
        if response.status_code != 200:
            logger.debug("Google userinfo answered %s", response.status_code)
            return None
        try:
            claims = response.json()
        except ValueError:
            return None
        if not isinstance(claims, dict):
            return None
        return AccessTokenResult(_profile_from_claims(claims))
