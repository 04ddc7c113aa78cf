"""Custom exception classes for the Access Gate service.

This module defines application-specific exceptions following Google Python
Style Guide.
"""

from typing import List, Optional


class AccessGateError(Exception):
    """Base exception for all Access Gate errors."""

    pass


class ConfigurationError(AccessGateError):
    """Raised when there is a configuration error."""

    pass


class InvalidFormatError(AccessGateError):
    """Raised when a code, claimant or generation option is malformed."""

    pass


class InvalidOrUsedCodeError(AccessGateError):
    """Raised when a code cannot be claimed.

    Callers only ever see this type; the subclasses exist for server logs.
    """

    def __init__(self, code: str, message: str = "Invalid or already used access code"):
        """Initialize the exception.

        Args:
            code: The code that was rejected.
            message: Human readable message.
        """
        self.code = code
        super().__init__(message)


class CodeNotFoundError(InvalidOrUsedCodeError):
    """Raised when the code does not exist in the store."""

    pass


class CodeAlreadyClaimedError(InvalidOrUsedCodeError):
    """Raised when the code has already been claimed."""

    pass


class ExhaustedKeyspaceError(AccessGateError):
    """Raised when code generation keeps colliding with existing codes."""

    def __init__(self, attempts: int, created: Optional[List[str]] = None):
        """Initialize the exception.

        Args:
            attempts: Attempts spent on the slot that gave up.
            created: Codes inserted before giving up.
        """
        self.attempts = attempts
        self.created = list(created or [])
        super().__init__(
            f"No free code found after {attempts} attempts "
            f"({len(self.created)} codes created)"
        )


class StoreUnavailableError(AccessGateError):
    """Raised when the code store cannot be reached or times out."""

    def __init__(self, message: str, created: Optional[List[str]] = None):
        self.created = list(created or [])
        super().__init__(message)


class SecretUnavailableError(AccessGateError):
    """Raised when the signing key cannot be loaded or is empty."""

    pass


class TokenError(AccessGateError):
    """Base class for bearer token rejections.

    Attributes:
        reason: Machine-readable deny reason.
    """

    reason = "invalid_token"


class MissingTokenError(TokenError):
    """Raised when no bearer token is present."""

    reason = "missing_token"


class InvalidTokenError(TokenError):
    """Raised when the signature, algorithm or claim shape is wrong."""

    reason = "invalid_token"


class TokenExpiredError(TokenError):
    """Raised when the token is past its expiry."""

    reason = "token_expired"


class WrongAudienceError(TokenError):
    """Raised when the token was issued for another application."""

    reason = "invalid_app"
