"""Access code store.

This module owns the access_codes table. The claim transition is a single
conditional UPDATE, so the database itself decides the one winner when many
requests race for the same code.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import config
from core.exceptions import (
    CodeAlreadyClaimedError,
    CodeNotFoundError,
    StoreUnavailableError,
)
from core.logging_config import mask_code
from models.access_code import AccessCodeModel
from schemas.access_code import AccessCode, CodeStatus
from utils.code_format import CodeFormat
from utils.converters import model_to_access_code

logger = logging.getLogger(__name__)


class CodeStore:
    """Manages access code persistence using SQLAlchemy."""

    def __init__(
        self,
        db: Session,
        code_format: Optional[CodeFormat] = None,
        session_ttl_seconds: int = config.SESSION_TTL_SECONDS,
        retention_seconds: int = config.RETENTION_WINDOW_SECONDS,
    ):
        """Initialize CodeStore.

        Args:
            db: SQLAlchemy Session.
            code_format: Format claims are checked against before any query.
            session_ttl_seconds: Lifetime of a session started by a claim.
            retention_seconds: How long a record is kept after it expires.
        """
        self.db = db
        self.code_format = code_format or CodeFormat()
        self.session_ttl_seconds = session_ttl_seconds
        self.retention_seconds = retention_seconds

    def _unavailable(self, action: str, error: SQLAlchemyError) -> StoreUnavailableError:
        self.db.rollback()
        logger.error("Code store unavailable during %s: %s", action, error)
        return StoreUnavailableError(f"Code store unavailable during {action}")

    def insert_if_absent(self, code: str, notes: Optional[str], now: int) -> bool:
        """Insert a new AVAILABLE code unless the key already exists.

        Args:
            code: Code to insert.
            notes: Batch label stored with the code.
            now: Creation time in epoch seconds.

        Returns:
            True if inserted, False on a key collision.

        Raises:
            StoreUnavailableError: If the database cannot be reached.
        """
        stmt = insert(AccessCodeModel).values(
            code=code,
            status=CodeStatus.AVAILABLE.value,
            notes=notes,
            created_at=now,
        )
        try:
            self.db.execute(stmt)
            self.db.commit()
        except IntegrityError:
            # Primary key collision: the code already exists
            self.db.rollback()
            logger.debug("Code collision on insert: %s", mask_code(code))
            return False
        except SQLAlchemyError as e:
            raise self._unavailable("insert", e) from e
        return True

    def try_claim(self, code: str, claimant: str, now: int) -> AccessCode:
        """Atomically move a code from AVAILABLE to CLAIMED.

        The code is validated before any database access. The claim itself is
        one UPDATE guarded by the current status; exactly one caller can see
        a row count of 1 for a given code.

        Args:
            code: Submitted code.
            claimant: Identity binding the claim.
            now: Claim time in epoch seconds.

        Returns:
            The claimed AccessCode.

        Raises:
            InvalidFormatError: If the code does not match the format.
            CodeNotFoundError: If no such code exists.
            CodeAlreadyClaimedError: If the code was claimed before.
            StoreUnavailableError: If the database cannot be reached.
        """
        code = self.code_format.validate_code(code)
        expires_at = now + self.session_ttl_seconds
        purge_at = expires_at + self.retention_seconds

        stmt = (
            update(AccessCodeModel)
            .where(
                AccessCodeModel.code == code,
                or_(
                    AccessCodeModel.status.is_(None),
                    AccessCodeModel.status == CodeStatus.AVAILABLE.value,
                ),
            )
            .values(
                status=CodeStatus.CLAIMED.value,
                claimed_by=claimant,
                claimed_at=now,
                expires_at=expires_at,
                purge_at=purge_at,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            claimed = result.rowcount == 1
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._unavailable("claim", e) from e

        if not claimed:
            # Only for the server log; callers get one uniform error
            if self.get(code) is None:
                logger.info("Claim denied, code not found: %s", mask_code(code))
                raise CodeNotFoundError(code)
            logger.info("Claim denied, code already claimed: %s", mask_code(code))
            raise CodeAlreadyClaimedError(code)

        logger.info("Code %s claimed by %s", mask_code(code), claimant)
        return AccessCode(
            code=code,
            status=CodeStatus.CLAIMED,
            claimed_by=claimant,
            claimed_at=now,
            expires_at=expires_at,
            purge_at=purge_at,
        )

    def get(self, code: str) -> Optional[AccessCode]:
        """Get an access code by its value.

        Args:
            code: Code to look up.

        Returns:
            AccessCode if found, None otherwise.
        """
        try:
            model = self.db.get(AccessCodeModel, code, populate_existing=True)
        except SQLAlchemyError as e:
            raise self._unavailable("lookup", e) from e
        if model:
            return model_to_access_code(model)
        return None

    def purge_expired(self, now: int) -> int:
        """Delete claimed records whose retention window has passed.

        Args:
            now: Current time in epoch seconds.

        Returns:
            Number of deleted records.
        """
        stmt = (
            delete(AccessCodeModel)
            .where(
                AccessCodeModel.purge_at.is_not(None),
                AccessCodeModel.purge_at <= now,
            )
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            raise self._unavailable("purge", e) from e
        if result.rowcount:
            logger.info("Purged %d expired access codes", result.rowcount)
        return result.rowcount

    def count_by_status(self) -> Dict[str, int]:
        """Count codes per status.

        Returns:
            Mapping of status name to number of codes, every status present.
        """
        stmt = select(AccessCodeModel.status, func.count()).group_by(
            AccessCodeModel.status
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            raise self._unavailable("count", e) from e
        counts = {status.value: 0 for status in CodeStatus}
        for status, count in rows:
            key = status or CodeStatus.AVAILABLE.value
            counts[key] = counts.get(key, 0) + count
        return counts
