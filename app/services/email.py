import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

import aiosmtplib

from app.core.config import settings
from app.errors import EmailNotConfiguredError

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send_verification_email(self, email: str, name: str, token: str) -> None: ...

    async def send_password_reset_email(self, email: str, name: str, token: str) -> None: ...

    async def send_password_change_notification(self, email: str, name: str) -> None: ...


def _frontend_link(path: str, token: str) -> str | None:
    if not settings.frontend_url:
        return None
    return f"{settings.frontend_url.rstrip('/')}/{path}?token={token}"


class SmtpEmailSender:
    """Transactional emails sent through SMTP with aiosmtplib."""

    async def send_verification_email(self, email: str, name: str, token: str) -> None:
        hours = settings.verification_token_expire_hours
        link = _frontend_link("verify-email", token)
        if link:
            text = f"""
Hi {name},

Thank you for signing up for {settings.app_name}. Please verify your email address:
{link}

This link will expire in {hours} hours.

If you didn't sign up for this account, please ignore this email.
            """
            html = f"""
<html>
  <body>
    <h2>Welcome to {settings.app_name}!</h2>
    <p>Hi {name},</p>
    <p>Thank you for signing up. Please click the link below to verify your email address:</p>
    <p><a href="{link}">Verify Email Address</a></p>
    <p>This link will expire in {hours} hours.</p>
    <p>If you didn't sign up for this account, please ignore this email.</p>
  </body>
</html>
            """
        else:
            text = f"""
Hi {name},

Thank you for signing up for {settings.app_name}. Your email verification token is:
{token}

This token will expire in {hours} hours.
            """
            html = f"""
<html>
  <body>
    <p>Hi {name},</p>
    <p>Your email verification token is:</p>
    <p><code>{token}</code></p>
    <p>This token will expire in {hours} hours.</p>
  </body>
</html>
            """
        await self._send(email, "Verify Your Email Address", text, html)

    async def send_password_reset_email(self, email: str, name: str, token: str) -> None:
        minutes = settings.password_reset_token_expire_minutes
        link = _frontend_link("reset-password", token)
        if link:
            text = f"""
Hi {name},

You requested a password reset for your account.

Please click the following link to reset your password:
{link}

This link will expire in {minutes} minutes.

If you did not request this, please ignore this email.
            """
            html = f"""
<html>
  <body>
    <h2>Password Reset Request</h2>
    <p>Hi {name},</p>
    <p>You requested a password reset for your account.</p>
    <p><a href="{link}">Reset Password</a></p>
    <p>This link will expire in {minutes} minutes.</p>
    <p>If you did not request this, please ignore this email.</p>
  </body>
</html>
            """
        else:
            text = f"""
Hi {name},

You requested a password reset for your account.

Your password reset token is:
{token}

This token will expire in {minutes} minutes.

If you did not request this, please ignore this email.
            """
            html = f"""
<html>
  <body>
    <p>Hi {name},</p>
    <p>You requested a password reset for your account.</p>
    <p>Your password reset token is:</p>
    <p><code>{token}</code></p>
    <p>This token will expire in {minutes} minutes.</p>
    <p>If you did not request this, please ignore this email.</p>
  </body>
</html>
            """
        await self._send(email, "Reset Your Password", text, html)

    async def send_password_change_notification(self, email: str, name: str) -> None:
        text = f"""
Hi {name},

The password for your {settings.app_name} account was just changed and you
have been signed out on all devices.

If you did not make this change, reset your password immediately.
        """
        html = f"""
<html>
  <body>
    <h2>Password Changed</h2>
    <p>Hi {name},</p>
    <p>The password for your {settings.app_name} account was just changed and you have been signed out on all devices.</p>
    <p>If you did not make this change, reset your password immediately.</p>
  </body>
</html>
        """
        await self._send(email, "Your Password Was Changed", text, html)

    async def _send(self, to: str, subject: str, text: str, html: str) -> None:
        if not settings.smtp_configured:
            logger.warning("SMTP not configured - cannot send '%s' email to %s", subject, to)
            raise EmailNotConfiguredError(
                "SMTP is not configured. Please configure SMTP settings in .env file."
            )

        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{settings.app_name} <{settings.smtp_from_email}>"
        message["To"] = to
        message.attach(MIMEText(text, "plain"))
        message.attach(MIMEText(html, "html"))

        send_kwargs = {
            "hostname": settings.smtp_host,
            "port": settings.smtp_port,
            "username": settings.smtp_user,
            "password": settings.smtp_password,
        }

        # Port 465 uses direct TLS, everything else STARTTLS
        if settings.smtp_use_tls:
            if settings.smtp_port == 465:
                send_kwargs["use_tls"] = True
            else:
                send_kwargs["start_tls"] = True

        await aiosmtplib.send(message, **send_kwargs)
        logger.info("Sent '%s' email to %s", subject, to)
