"""Access code format rules.

A code is either a fixed-width run of decimal digits ("numeric") or an
optional prefix followed by symbols from a restricted alphabet ("alphabet").
The same rules validate generation options and incoming claims.
"""

import re
from typing import Optional, Tuple

import config
from core.exceptions import InvalidFormatError

PREFIX_PATTERN = re.compile(r"[A-Z0-9-]{0,16}")
MIN_ALPHABET_LENGTH = 4
MAX_ALPHABET_LENGTH = 32


class CodeFormat:
    """Validates and normalizes access codes for one configured format."""

    def __init__(
        self,
        mode: str = config.CODE_FORMAT,
        length: int = config.CODE_LENGTH,
        alphabet: Optional[str] = None,
    ):
        """Initialize CodeFormat.

        Args:
            mode: 'alphabet' or 'numeric'.
            length: Default number of random symbols per code.
            alphabet: Symbols to draw from. Ignored in numeric mode.

        Raises:
            InvalidFormatError: If the combination is unusable.
        """
        if mode not in config.CODE_FORMATS:
            raise InvalidFormatError(f"Unknown code format: {mode}")
        self.mode = mode
        if mode == "numeric":
            self.alphabet = config.NUMERIC_ALPHABET
        else:
            # Duplicates would skew the draw
            self.alphabet = "".join(dict.fromkeys(alphabet or config.CODE_ALPHABET))
        self.length = length
        self._check_length(length)

        if mode == "numeric":
            self._claim_pattern = re.compile(rf"\d{{{length}}}")
        else:
            symbols = re.escape(self.alphabet)
            # Prefix symbols are not known at claim time, so the tail is
            # checked against the alphabet and the total length is bounded.
            self._claim_pattern = re.compile(
                rf"(?=.{{{MIN_ALPHABET_LENGTH},{MAX_ALPHABET_LENGTH + 16}}}$)"
                rf"[A-Z0-9-]*[{symbols}]{{{MIN_ALPHABET_LENGTH},}}"
            )

    def _check_length(self, length: int) -> None:
        if self.mode == "numeric":
            if length < 1:
                raise InvalidFormatError("Numeric codes need at least one digit")
        elif not MIN_ALPHABET_LENGTH <= length <= MAX_ALPHABET_LENGTH:
            raise InvalidFormatError(
                f"length must be between {MIN_ALPHABET_LENGTH} and {MAX_ALPHABET_LENGTH}"
            )

    def normalize(self, code: Optional[str]) -> str:
        """Strip whitespace and, for alphabet codes, uppercase."""
        if code is None:
            return ""
        code = code.strip()
        if self.mode == "alphabet":
            code = code.upper()
        return code

    def matches(self, code: str) -> bool:
        return bool(self._claim_pattern.fullmatch(code))

    def validate_code(self, code: Optional[str]) -> str:
        """Normalize a submitted code and check it against the format.

        Args:
            code: Raw code from the caller.

        Returns:
            The normalized code.

        Raises:
            InvalidFormatError: If the code is missing or malformed.
        """
        normalized = self.normalize(code)
        if not normalized:
            raise InvalidFormatError("Access code is required")
        if not self.matches(normalized):
            if self.mode == "numeric":
                raise InvalidFormatError(
                    f"Invalid code format. Please enter a {self.length}-digit code."
                )
            raise InvalidFormatError("Invalid code format.")
        return normalized

    def resolve_options(
        self, prefix: Optional[str], length: Optional[int]
    ) -> Tuple[str, int]:
        """Validate generation options and fill in defaults.

        Args:
            prefix: Requested prefix, or None.
            length: Requested symbol count, or None for the default.

        Returns:
            Tuple of (prefix, length).

        Raises:
            InvalidFormatError: If the options do not fit the format.
        """
        prefix = (prefix or "").strip().upper()
        if length is None:
            length = self.length

        if self.mode == "numeric":
            if prefix:
                raise InvalidFormatError("Numeric codes cannot have a prefix")
            if length != self.length:
                raise InvalidFormatError(f"Numeric codes are exactly {self.length} digits")
            return prefix, length

        if not PREFIX_PATTERN.fullmatch(prefix):
            raise InvalidFormatError(
                "prefix may only contain A-Z, 0-9 and '-', up to 16 characters"
            )
        self._check_length(length)
        return prefix, length

    def keyspace(self, length: int) -> int:
        """Number of distinct codes for a given symbol count."""
        return len(self.alphabet) ** length
