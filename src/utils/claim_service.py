"""Access code redemption.

Exchanges a one-time code for a session token: validate the input, claim the
code in the store, then mint a token bound to the claimant and the code.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.exceptions import InvalidFormatError
from core.logging_config import mask_code
from utils.code_store import CodeStore
from utils.converters import now_epoch
from utils.token_manager import TokenIssuer

logger = logging.getLogger(__name__)

MAX_CLAIMANT_LENGTH = 128


@dataclass
class ClaimResult:
    token: str
    expires_at: int
    expires_in: int


class ClaimService:
    """Redeems access codes for session tokens."""

    def __init__(self, store: CodeStore, issuer: TokenIssuer):
        self.store = store
        self.issuer = issuer

    def redeem(
        self, code: Optional[str], claimant: Optional[str], now: Optional[int] = None
    ) -> ClaimResult:
        """Redeem a code for a token.

        A code can be redeemed once. Replaying a redeemed code, even by the
        same claimant, fails like an unknown code.

        Args:
            code: Submitted access code.
            claimant: Identity of the caller.
            now: Claim time in epoch seconds; defaults to the wall clock.

        Returns:
            ClaimResult with the token and its expiry.

        Raises:
            InvalidFormatError: If code or claimant is missing or malformed.
            InvalidOrUsedCodeError: If the code is unknown or already used.
            StoreUnavailableError: If the store cannot be reached.
            SecretUnavailableError: If no signing key is available.
        """
        code = self.store.code_format.validate_code(code)
        claimant = validate_claimant(claimant)
        now = now_epoch() if now is None else now

        # A missing key must fail before the code is burned
        self.issuer.ensure_ready()

        record = self.store.try_claim(code, claimant, now)
        token = self.issuer.mint(
            subject=claimant,
            code_id=record.code,
            issued_at=record.claimed_at,
            expires_at=record.expires_at,
        )
        logger.info(
            "Issued session token for %s (code %s, expires %s)",
            claimant,
            mask_code(record.code),
            record.expires_at,
        )
        return ClaimResult(
            token=token,
            expires_at=record.expires_at,
            expires_in=record.expires_at - record.claimed_at,
        )


def validate_claimant(claimant: Optional[str]) -> str:
    """Check the claimant identity.

    Raises:
        InvalidFormatError: If missing, blank or too long.
    """
    claimant = (claimant or "").strip()
    if not claimant:
        raise InvalidFormatError("Access code and client ID are required")
    if len(claimant) > MAX_CLAIMANT_LENGTH:
        raise InvalidFormatError(
            f"Client ID must be at most {MAX_CLAIMANT_LENGTH} characters"
        )
    return claimant
