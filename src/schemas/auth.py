"""Request and response schemas for the auth API, plus token claim models."""

from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ClaimRequest(BaseModel):
    """Body of POST /api/auth/claim.

    Both fields are optional here so that missing values are reported by the
    claim service as a 400 instead of a schema error.
    """

    code: Optional[str] = Field(default=None, description="The one-time access code.")
    claimant: Optional[str] = Field(
        default=None,
        description="Identity of the caller redeeming the code.",
        validation_alias=AliasChoices("claimant", "clientId"),
    )


class ClaimResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    expires_at: int = Field(serialization_alias="expiresAt")
    expires_in: int = Field(serialization_alias="expiresIn")


class GenerateCodesRequest(BaseModel):
    count: int = Field(default=100, description="Number of codes to create.")
    prefix: Optional[str] = Field(default=None, description="Prefix for every code.")
    length: Optional[int] = Field(
        default=None, description="Number of random symbols after the prefix."
    )
    notes: Optional[str] = Field(default=None, description="Batch label stored with each code.")


class GenerateCodesResponse(BaseModel):
    created: int
    codes: List[str]
    notes: Optional[str] = None


class PurgeResponse(BaseModel):
    purged: int


class CodeStatsResponse(BaseModel):
    counts: Dict[str, int]


class SessionClaims(BaseModel):
    """Verified claim set of a session token."""

    sub: str
    jti: str
    iat: int
    exp: int
    aud: str


class AuthContext(BaseModel):
    """Request-scoped identity handed to downstream handlers."""

    subject: str
    jti: str
    exp: int


class AuthDecision(BaseModel):
    """Outcome of the authorizer for one request."""

    allowed: bool
    principal_id: str = "anon"
    reason: Optional[str] = None
    context: Optional[AuthContext] = None
