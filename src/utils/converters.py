"""Conversions between ORM rows, schemas and timestamps."""

from datetime import datetime

import pytz

from models.access_code import AccessCodeModel
from schemas.access_code import AccessCode, CodeStatus


def now_epoch() -> int:
    """Current UTC time in whole epoch seconds."""
    return int(datetime.now(pytz.utc).timestamp())


def epoch_to_iso(value: int) -> str:
    return datetime.fromtimestamp(value, pytz.utc).isoformat()


def model_to_access_code(model: AccessCodeModel) -> AccessCode:
    # Rows written before a status existed count as available
    status = CodeStatus(model.status) if model.status else CodeStatus.AVAILABLE
    return AccessCode(
        code=model.code,
        status=status,
        notes=model.notes,
        created_at=model.created_at,
        claimed_by=model.claimed_by,
        claimed_at=model.claimed_at,
        expires_at=model.expires_at,
        purge_at=model.purge_at,
    )
