"""One-time access code generation."""

import logging
import secrets
from typing import List, Optional

import config
from core.exceptions import (
    ExhaustedKeyspaceError,
    InvalidFormatError,
    StoreUnavailableError,
)
from utils.code_store import CodeStore
from utils.converters import now_epoch

logger = logging.getLogger(__name__)


class CodeGenerator:
    """Creates unpredictable codes and inserts them into the store."""

    def __init__(
        self,
        store: CodeStore,
        max_attempts: int = config.CODE_GENERATION_MAX_ATTEMPTS,
        max_count: int = config.CODE_GENERATION_MAX_COUNT,
    ):
        """Initialize CodeGenerator.

        Args:
            store: Store receiving the codes.
            max_attempts: Draws per code before giving up on collisions.
            max_count: Largest batch a single call may request.
        """
        self.store = store
        self.code_format = store.code_format
        self.max_attempts = max_attempts
        self.max_count = max_count

    def make_code(self, prefix: str, length: int) -> str:
        alphabet = self.code_format.alphabet
        return prefix + "".join(secrets.choice(alphabet) for _ in range(length))

    def generate(
        self,
        count: int,
        prefix: Optional[str] = None,
        length: Optional[int] = None,
        notes: Optional[str] = None,
        now: Optional[int] = None,
    ) -> List[str]:
        """Generate and store a batch of AVAILABLE codes.

        Collisions with existing codes are redrawn and do not count toward
        ``count``.

        Args:
            count: Number of codes to create.
            prefix: Optional prefix for every code.
            length: Random symbols per code; defaults to the configured length.
            notes: Batch label stored with each code.
            now: Creation time in epoch seconds.

        Returns:
            The created codes, in creation order.

        Raises:
            InvalidFormatError: If count or options are out of range, or
                count is larger than the number of distinct codes.
            ExhaustedKeyspaceError: If one slot keeps colliding.
            StoreUnavailableError: If the store cannot be reached. Codes
                inserted so far are attached as ``created``.
        """
        if not 1 <= count <= self.max_count:
            raise InvalidFormatError(f"count must be between 1 and {self.max_count}")
        prefix, length = self.code_format.resolve_options(prefix, length)
        keyspace = self.code_format.keyspace(length)
        if count > keyspace:
            raise InvalidFormatError(
                f"count {count} exceeds the {keyspace} distinct codes of length {length}"
            )
        now = now_epoch() if now is None else now

        made: List[str] = []
        for _ in range(count):
            for attempt in range(1, self.max_attempts + 1):
                code = self.make_code(prefix, length)
                try:
                    inserted = self.store.insert_if_absent(code, notes, now)
                except StoreUnavailableError as e:
                    logger.error(
                        "Code generation stopped after %d of %d codes", len(made), count
                    )
                    raise StoreUnavailableError(str(e), created=made) from e
                if inserted:
                    made.append(code)
                    break
            else:
                logger.error(
                    "Keyspace exhausted: %d collisions in a row (prefix=%r, length=%d)",
                    self.max_attempts,
                    prefix,
                    length,
                )
                raise ExhaustedKeyspaceError(self.max_attempts, created=made)

        logger.info("Generated %d access codes (notes=%r)", len(made), notes)
        return made
