"""Session token issuing and verification.

Tokens are compact HS256 JWTs carrying exactly {sub, jti, iat, exp, aud}.
The algorithm is pinned on both sides; verification needs only the signing
key and never reads the code store.
"""

import logging
from typing import Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

import config
from core.exceptions import (
    InvalidTokenError,
    MissingTokenError,
    TokenError,
    TokenExpiredError,
    WrongAudienceError,
)
from schemas.auth import AuthContext, AuthDecision, SessionClaims
from utils.converters import now_epoch
from utils.secret_provider import SigningKeyCache

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "

# Audience is compared by hand below so a mismatch gets its own reason
_DECODE_OPTIONS = {
    "verify_aud": False,
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
    "require_jti": True,
}


class TokenIssuer:
    """Mints session tokens for claimed codes."""

    def __init__(
        self,
        key_cache: SigningKeyCache,
        app_tag: str = config.APP_TAG,
        algorithm: str = config.JWT_ALGORITHM,
    ):
        self.key_cache = key_cache
        self.app_tag = app_tag
        self.algorithm = algorithm

    def ensure_ready(self) -> None:
        """Load the signing key now, raising SecretUnavailableError if absent."""
        self.key_cache.get()

    def mint(self, subject: str, code_id: str, issued_at: int, expires_at: int) -> str:
        """Create a signed session token.

        Args:
            subject: Claimant identity.
            code_id: The redeemed code, used as the token id.
            issued_at: Epoch seconds of the claim.
            expires_at: Epoch seconds when the token stops being valid.

        Returns:
            Encoded JWT string.

        Raises:
            ValueError: If the expiry is not after the issue time.
            SecretUnavailableError: If no signing key is available.
        """
        if expires_at <= issued_at:
            raise ValueError("expires_at must be after issued_at")
        claims = {
            "sub": subject,
            "jti": code_id,
            "iat": issued_at,
            "exp": expires_at,
            "aud": self.app_tag,
        }
        return jwt.encode(claims, self.key_cache.get(), algorithm=self.algorithm)


class TokenVerifier:
    """Stateless bearer token gate."""

    def __init__(
        self,
        key_cache: SigningKeyCache,
        app_tag: str = config.APP_TAG,
        algorithm: str = config.JWT_ALGORITHM,
    ):
        self.key_cache = key_cache
        self.app_tag = app_tag
        self.algorithm = algorithm

    def verify(self, token: str, now: Optional[int] = None) -> SessionClaims:
        """Verify a token and return its claims.

        Args:
            token: Encoded JWT.
            now: Current epoch seconds; defaults to the wall clock.

        Returns:
            SessionClaims of a valid token.

        Raises:
            InvalidTokenError: Bad signature, algorithm or claim set.
            TokenExpiredError: Token is at or past its expiry.
            WrongAudienceError: Token belongs to another application.
            SecretUnavailableError: No signing key is available.
        """
        key = self.key_cache.get()
        now = now_epoch() if now is None else now
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options=_DECODE_OPTIONS,
            )
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {e}") from e

        try:
            claims = SessionClaims.model_validate(payload)
        except ValueError as e:
            raise InvalidTokenError("Token claims are malformed") from e

        # Checked again here so a lenient library or skewed clock cannot pass it
        if now >= claims.exp:
            raise TokenExpiredError("Token expired")
        if claims.aud != self.app_tag:
            raise WrongAudienceError(f"Token issued for '{claims.aud}'")
        return claims

    def authorize(
        self, authorization: Optional[str], now: Optional[int] = None
    ) -> AuthDecision:
        """Turn an Authorization header into an allow or deny decision.

        Args:
            authorization: Raw value of the Authorization header.
            now: Current epoch seconds; defaults to the wall clock.

        Returns:
            AuthDecision. Denies carry the reason; allows carry the context.

        Raises:
            SecretUnavailableError: No signing key is available. This is
                never reported as a deny.
        """
        try:
            token = extract_bearer_token(authorization)
        except MissingTokenError as e:
            logger.info("Authorization denied: %s", e.reason)
            return AuthDecision(allowed=False, reason=e.reason)
        return self.authorize_token(token, now=now)

    def authorize_token(
        self, token: Optional[str], now: Optional[int] = None
    ) -> AuthDecision:
        """Allow or deny an already extracted bearer token.

        Raises:
            SecretUnavailableError: No signing key is available.
        """
        try:
            if not token:
                raise MissingTokenError("Missing bearer token")
            claims = self.verify(token, now=now)
        except TokenError as e:
            logger.info("Authorization denied: %s", e.reason)
            return AuthDecision(allowed=False, reason=e.reason)

        return AuthDecision(
            allowed=True,
            principal_id=claims.sub or "user",
            context=AuthContext(subject=claims.sub, jti=claims.jti, exp=claims.exp),
        )


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Read the token out of an 'Authorization: Bearer <token>' value.

    Raises:
        MissingTokenError: If the header is absent or not a bearer credential.
    """
    if not authorization:
        raise MissingTokenError("Missing Authorization header")
    value = authorization.strip()
    if not value.lower().startswith(BEARER_PREFIX):
        raise MissingTokenError("Authorization header is not a bearer token")
    token = value[len(BEARER_PREFIX):].strip()
    if not token or " " in token:
        raise MissingTokenError("Malformed bearer token")
    return token
