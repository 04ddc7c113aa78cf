"""Authentication routes.

This module handles HTTP endpoints for access code redemption, code
administration, and bearer token authorization.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
from core.dependencies import (
    ClaimServiceDep,
    CodeGeneratorDep,
    CodeStoreDep,
    TokenVerifierDep,
)
from core.exceptions import (
    ExhaustedKeyspaceError,
    InvalidFormatError,
    InvalidOrUsedCodeError,
    SecretUnavailableError,
    StoreUnavailableError,
)
from schemas.auth import (
    AuthContext,
    ClaimRequest,
    ClaimResponse,
    CodeStatsResponse,
    GenerateCodesRequest,
    GenerateCodesResponse,
    PurgeResponse,
)
from utils.converters import now_epoch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# Bearer credentials; a missing or non-bearer header is denied in require_session
bearer_scheme = HTTPBearer(auto_error=False)

INTERNAL_ERROR_DETAIL = "Internal error processing your request"
INVALID_CODE_DETAIL = "Invalid or already used access code"
INVALID_TOKEN_DETAIL = "Invalid or expired token"


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_ERROR_DETAIL,
    )


def require_session(
    request: Request,
    verifier: TokenVerifierDep = None,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthContext:
    """Authorize the request from its bearer token.

    Every deny reason maps to the same 401 so callers cannot tell a bad
    signature from an expired or foreign token.

    Args:
        request: Incoming request; the context is stored on request.state.auth.
        verifier: Injected TokenVerifier instance.
        credentials: Bearer credentials, None if the header is absent or
            uses another scheme.

    Returns:
        AuthContext of the verified token.

    Raises:
        HTTPException: 401 on any deny, 500 if the signing key is unavailable.
    """
    token = credentials.credentials if credentials else None
    try:
        decision = verifier.authorize_token(token)
    except SecretUnavailableError:
        logger.exception("Cannot verify token: signing key unavailable")
        raise _internal_error()

    if not decision.allowed:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_TOKEN_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.auth = decision.context
    return decision.context


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> None:
    """Check the X-Admin-Token header against ADMIN_TOKEN.

    Raises:
        HTTPException: 500 if admin access is not configured, 403 on mismatch.
    """
    if not config.ADMIN_TOKEN:
        logger.error("ADMIN_TOKEN is not set in environment variables")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Code administration is not configured. ADMIN_TOKEN not set.",
        )
    if not x_admin_token or not secrets.compare_digest(
        x_admin_token.encode("utf-8"), config.ADMIN_TOKEN.encode("utf-8")
    ):
        logger.warning("Rejected admin request with invalid token")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token",
        )


@router.post(
    "/claim",
    response_model=ClaimResponse,
    summary="Redeem an access code",
)
def claim(
    req: ClaimRequest,
    service: ClaimServiceDep = None,
) -> ClaimResponse:
    """Exchange a one-time access code for a session token.

    Args:
        req: Claim request with code and claimant.
        service: Injected ClaimService instance.

    Returns:
        ClaimResponse with the token and its expiry.

    Raises:
        HTTPException: 400 malformed input, 401 invalid or used code,
            500 dependency failure.
    """
    try:
        result = service.redeem(req.code, req.claimant)
    except InvalidFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InvalidOrUsedCodeError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CODE_DETAIL,
        )
    except StoreUnavailableError:
        logger.exception("Claim failed: code store unavailable")
        raise _internal_error()
    except SecretUnavailableError:
        logger.exception("Claim failed: signing key unavailable")
        raise _internal_error()

    return ClaimResponse(
        token=result.token,
        expires_at=result.expires_at,
        expires_in=result.expires_in,
    )


@router.post(
    "/codes/generate",
    response_model=GenerateCodesResponse,
    summary="Generate access codes",
    dependencies=[Depends(require_admin)],
)
def generate_codes(
    req: GenerateCodesRequest,
    generator: CodeGeneratorDep = None,
) -> GenerateCodesResponse:
    """Generate a batch of one-time access codes.

    Args:
        req: Request with count, prefix, length and notes.
        generator: Injected CodeGenerator instance.

    Returns:
        GenerateCodesResponse with the created codes.

    Raises:
        HTTPException: 400 bad options, 409 exhausted keyspace, 500 store
            failure. 409 and 500 list the codes created before the failure.
    """
    try:
        codes = generator.generate(
            count=req.count,
            prefix=req.prefix,
            length=req.length,
            notes=req.notes,
        )
    except InvalidFormatError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ExhaustedKeyspaceError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "created": len(e.created), "codes": e.created},
        )
    except StoreUnavailableError as e:
        logger.exception("Code generation failed: code store unavailable")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": INTERNAL_ERROR_DETAIL,
                "created": len(e.created),
                "codes": e.created,
            },
        )

    return GenerateCodesResponse(created=len(codes), codes=codes, notes=req.notes)


@router.post(
    "/codes/purge",
    response_model=PurgeResponse,
    summary="Delete expired access codes",
    dependencies=[Depends(require_admin)],
)
def purge_codes(store: CodeStoreDep = None) -> PurgeResponse:
    """Delete claimed codes whose retention window has passed."""
    try:
        purged = store.purge_expired(now_epoch())
    except StoreUnavailableError:
        raise _internal_error()
    return PurgeResponse(purged=purged)


@router.get(
    "/codes/stats",
    response_model=CodeStatsResponse,
    summary="Count access codes by status",
    dependencies=[Depends(require_admin)],
)
def code_stats(store: CodeStoreDep = None) -> CodeStatsResponse:
    try:
        counts = store.count_by_status()
    except StoreUnavailableError:
        raise _internal_error()
    return CodeStatsResponse(counts=counts)


@router.get("/session", response_model=AuthContext, summary="Current session")
def get_session(context: AuthContext = Depends(require_session)) -> AuthContext:
    """Return the identity bound to the caller's token.

    Args:
        context: Verified token context from the authorizer.

    Returns:
        AuthContext with subject, jti and exp.
    """
    return context


@router.get("/verify", response_model=AuthContext, summary="Forward-auth check")
def verify(
    response: Response,
    context: AuthContext = Depends(require_session),
) -> AuthContext:
    """Authorize a request on behalf of a reverse proxy.

    Proxies doing forward authentication call this with the original
    Authorization header; a 200 carries the identity in X-Auth-* headers.
    """
    response.headers["X-Auth-Subject"] = context.subject
    response.headers["X-Auth-Jti"] = context.jti
    response.headers["X-Auth-Exp"] = str(context.exp)
    return context
