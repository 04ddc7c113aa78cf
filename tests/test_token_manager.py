from __future__ import annotations

import base64
import json

import pytest
from jose import jwt

from conftest import TEST_SECRET
from core.exceptions import (
    InvalidTokenError,
    MissingTokenError,
    SecretUnavailableError,
    TokenExpiredError,
    WrongAudienceError,
)
from utils.converters import now_epoch
from utils.secret_provider import SigningKeyCache
from utils.token_manager import TokenIssuer, TokenVerifier, extract_bearer_token

APP = "access-gate"


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@pytest.fixture
def issuer(key_cache: SigningKeyCache) -> TokenIssuer:
    return TokenIssuer(key_cache, app_tag=APP)


@pytest.fixture
def verifier(key_cache: SigningKeyCache) -> TokenVerifier:
    return TokenVerifier(key_cache, app_tag=APP)


def test_minted_token_verifies_with_exact_claims(issuer, verifier) -> None:
    now = now_epoch()
    token = issuer.mint("client-77", "482913", now, now + 3600)

    claims = verifier.verify(token, now=now + 10)

    assert claims.model_dump() == {
        "sub": "client-77",
        "jti": "482913",
        "iat": now,
        "exp": now + 3600,
        "aud": APP,
    }
    header = jwt.get_unverified_header(token)
    assert header["alg"] == "HS256"


def test_token_is_rejected_at_its_expiry_second(issuer, verifier) -> None:
    now = now_epoch()
    token = issuer.mint("client-77", "482913", now, now + 100)

    verifier.verify(token, now=now + 99)
    with pytest.raises(TokenExpiredError):
        verifier.verify(token, now=now + 100)


def test_expired_token_is_rejected(issuer, verifier) -> None:
    now = now_epoch()
    token = issuer.mint("client-77", "482913", now - 200, now - 100)

    with pytest.raises(TokenExpiredError):
        verifier.verify(token)


def test_token_for_another_app_is_rejected(key_cache) -> None:
    now = now_epoch()
    token = TokenIssuer(key_cache, app_tag="other-app").mint("c", "482913", now, now + 60)

    with pytest.raises(WrongAudienceError) as exc_info:
        TokenVerifier(key_cache, app_tag=APP).verify(token, now=now)
    assert exc_info.value.reason == "invalid_app"


def test_other_algorithms_are_rejected(verifier) -> None:
    now = now_epoch()
    claims = {"sub": "c", "jti": "482913", "iat": now, "exp": now + 60, "aud": APP}
    token = jwt.encode(claims, TEST_SECRET, algorithm="HS512")

    with pytest.raises(InvalidTokenError):
        verifier.verify(token, now=now)


def test_unsigned_token_is_rejected(verifier) -> None:
    now = now_epoch()
    claims = {"sub": "c", "jti": "482913", "iat": now, "exp": now + 60, "aud": APP}
    token = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(claims)}."

    with pytest.raises(InvalidTokenError):
        verifier.verify(token, now=now)


def test_token_signed_with_another_key_is_rejected(verifier) -> None:
    now = now_epoch()
    forged = TokenIssuer(SigningKeyCache(lambda: "x" * 40), app_tag=APP).mint(
        "c", "482913", now, now + 60
    )

    with pytest.raises(InvalidTokenError):
        verifier.verify(forged, now=now)


def test_tampered_payload_is_rejected(issuer, verifier) -> None:
    now = now_epoch()
    header, _, signature = issuer.mint("client-77", "482913", now, now + 60).split(".")
    payload = _b64({"sub": "admin", "jti": "482913", "iat": now, "exp": now + 60, "aud": APP})

    with pytest.raises(InvalidTokenError):
        verifier.verify(f"{header}.{payload}.{signature}", now=now)


@pytest.mark.parametrize("missing", ["sub", "jti", "iat", "exp"])
def test_missing_claims_are_rejected(verifier, missing: str) -> None:
    now = now_epoch()
    claims = {"sub": "c", "jti": "482913", "iat": now, "exp": now + 60, "aud": APP}
    del claims[missing]
    token = jwt.encode(claims, TEST_SECRET, algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        verifier.verify(token, now=now)


def test_mint_rejects_non_positive_lifetime(issuer) -> None:
    with pytest.raises(ValueError):
        issuer.mint("c", "482913", 1000, 1000)


@pytest.mark.parametrize(
    "header", [None, "", "Basic dXNlcjpwYXNz", "Bearer", "Bearer   ", "Bearer a b"]
)
def test_missing_or_malformed_header(header) -> None:
    with pytest.raises(MissingTokenError):
        extract_bearer_token(header)


def test_bearer_scheme_is_case_insensitive() -> None:
    assert extract_bearer_token("bearer abc.def.ghi") == "abc.def.ghi"
    assert extract_bearer_token("BEARER abc.def.ghi") == "abc.def.ghi"


def test_authorize_allows_valid_token(issuer, verifier) -> None:
    now = now_epoch()
    token = issuer.mint("client-77", "482913", now, now + 60)

    decision = verifier.authorize(f"Bearer {token}", now=now)

    assert decision.allowed is True
    assert decision.principal_id == "client-77"
    assert decision.context.subject == "client-77"
    assert decision.context.jti == "482913"
    assert decision.context.exp == now + 60


@pytest.mark.parametrize(
    ("authorization", "reason"),
    [
        (None, "missing_token"),
        ("Token abc", "missing_token"),
        ("Bearer not-a-jwt", "invalid_token"),
    ],
)
def test_authorize_denies_with_reason(verifier, authorization, reason) -> None:
    decision = verifier.authorize(authorization)

    assert decision.allowed is False
    assert decision.reason == reason
    assert decision.principal_id == "anon"
    assert decision.context is None


def test_authorize_denies_expired_and_foreign_tokens(key_cache, issuer, verifier) -> None:
    now = now_epoch()
    expired = issuer.mint("c", "482913", now - 10, now + 5)
    foreign = TokenIssuer(key_cache, app_tag="other-app").mint("c", "482913", now, now + 60)

    assert verifier.authorize(f"Bearer {expired}", now=now + 5).reason == "token_expired"
    assert verifier.authorize(f"Bearer {foreign}", now=now).reason == "invalid_app"


def test_missing_secret_is_an_error_not_a_deny() -> None:
    empty = SigningKeyCache(lambda: None)

    with pytest.raises(SecretUnavailableError):
        TokenVerifier(empty, app_tag=APP).authorize("Bearer abc.def.ghi")
    with pytest.raises(SecretUnavailableError):
        TokenIssuer(empty, app_tag=APP).mint("c", "482913", 1, 2)


def test_authorize_token_without_token_is_a_missing_token_deny(verifier) -> None:
    decision = verifier.authorize_token(None)

    assert decision.allowed is False
    assert decision.reason == "missing_token"
