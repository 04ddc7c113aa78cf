from __future__ import annotations

import pytest

from conftest import SESSION_TTL
from core.exceptions import (
    InvalidFormatError,
    InvalidOrUsedCodeError,
    SecretUnavailableError,
)
from schemas.access_code import CodeStatus
from utils.claim_service import ClaimService
from utils.code_store import CodeStore
from utils.converters import now_epoch
from utils.secret_provider import SigningKeyCache
from utils.token_manager import TokenIssuer, TokenVerifier


@pytest.fixture
def service(numeric_store: CodeStore, key_cache: SigningKeyCache) -> ClaimService:
    return ClaimService(numeric_store, TokenIssuer(key_cache))


def test_redeem_issues_token_bound_to_claimant_and_code(
    service: ClaimService, numeric_store: CodeStore, key_cache: SigningKeyCache
) -> None:
    now = now_epoch()
    numeric_store.insert_if_absent("482913", "Personal Board Access", now - 3600)

    result = service.redeem("482913", "client-77", now=now)

    assert result.expires_at == now + SESSION_TTL
    assert result.expires_in == SESSION_TTL
    claims = TokenVerifier(key_cache).verify(result.token, now=now)
    assert claims.sub == "client-77"
    assert claims.jti == "482913"
    assert claims.iat == now
    assert claims.exp == now + SESSION_TTL

    record = numeric_store.get("482913")
    assert record.status is CodeStatus.CLAIMED
    assert record.claimed_by == "client-77"
    assert record.expires_at == result.expires_at


def test_replay_is_denied_even_for_the_same_claimant(
    service: ClaimService, numeric_store: CodeStore
) -> None:
    now = now_epoch()
    numeric_store.insert_if_absent("482913", None, now)
    service.redeem("482913", "client-77", now=now)

    with pytest.raises(InvalidOrUsedCodeError):
        service.redeem("482913", "client-77", now=now + 10)
    with pytest.raises(InvalidOrUsedCodeError):
        service.redeem("482913", "client-99", now=now + 10)


@pytest.mark.parametrize(
    ("code", "claimant"),
    [(None, "client-77"), ("482913", None), ("482913", "   "), ("482913", "x" * 129), ("48291", "c")],
)
def test_bad_input_is_rejected_before_claiming(
    service: ClaimService, numeric_store: CodeStore, code, claimant
) -> None:
    numeric_store.insert_if_absent("482913", None, 0)

    with pytest.raises(InvalidFormatError):
        service.redeem(code, claimant)

    assert numeric_store.get("482913").status is CodeStatus.AVAILABLE


def test_missing_signing_key_does_not_burn_the_code(numeric_store: CodeStore) -> None:
    numeric_store.insert_if_absent("482913", None, 0)
    service = ClaimService(numeric_store, TokenIssuer(SigningKeyCache(lambda: None)))

    with pytest.raises(SecretUnavailableError):
        service.redeem("482913", "client-77")

    assert numeric_store.get("482913").status is CodeStatus.AVAILABLE
