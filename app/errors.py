"""Custom domain exceptions for the application."""

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
DUPLICATE_RESOURCE = "DUPLICATE_RESOURCE"
VALIDATION_ERROR = "VALIDATION_ERROR"
UNAUTHORIZED = "UNAUTHORIZED"
EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
INTERNAL_ERROR = "INTERNAL_ERROR"


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist."""

    pass


class DuplicateResourceError(DomainError):
    """Raised when attempting to create a resource that would violate a uniqueness constraint."""

    pass


class DomainValidationError(DomainError):
    """Raised when business rules fail (weak password, invalid or expired one-shot token)."""

    pass


class UnauthorizedError(DomainError):
    """Raised when credentials are missing, wrong, or not acceptable.

    ``code`` lets callers tell a few cases apart without parsing the message,
    e.g. ``EMAIL_NOT_VERIFIED``.
    """

    def __init__(self, message: str, code: str = UNAUTHORIZED):
        super().__init__(message)
        self.code = code


class InvalidTokenError(DomainError):
    """Raised by the token codec for any bad signed token.

    The message is the same for forged, expired and wrong-kind
    tokens.
    """

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class EmailNotConfiguredError(DomainError):
    """Raised when an email is requested but SMTP settings are incomplete."""

    pass
