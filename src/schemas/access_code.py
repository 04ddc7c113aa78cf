"""Access code schema definitions.

This module defines the AccessCode data model and its status enum.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CodeStatus(str, Enum):
    """Lifecycle state of an access code. Only AVAILABLE -> CLAIMED exists."""

    AVAILABLE = "AVAILABLE"
    CLAIMED = "CLAIMED"


class AccessCode(BaseModel):
    code: str = Field(description="The one-time code, primary key of the store.")
    status: CodeStatus = Field(
        description="Current state of the code.",
        default=CodeStatus.AVAILABLE,
    )
    notes: Optional[str] = Field(
        default=None,
        description="Free text batch label given at generation time.",
    )
    created_at: Optional[int] = Field(
        default=None,
        description="Epoch seconds when the code was generated.",
    )
    claimed_by: Optional[str] = Field(
        default=None,
        description="Identity that claimed the code. Immutable once set.",
    )
    claimed_at: Optional[int] = Field(
        default=None,
        description="Epoch seconds of the claim.",
    )
    expires_at: Optional[int] = Field(
        default=None,
        description="Epoch seconds when the session bound to this code ends.",
    )
    purge_at: Optional[int] = Field(
        default=None,
        description="Epoch seconds after which the record may be deleted.",
    )
