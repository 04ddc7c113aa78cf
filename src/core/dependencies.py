"""Dependency injection module for FastAPI.

This module provides dependency injection functions for FastAPI routes,
following Google Python Style Guide and FastAPI best practices.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from utils import claim_service
from utils import code_generator
from utils import code_store
from utils import secret_provider
from utils import token_manager


def get_code_store(db: Session = Depends(get_db)) -> code_store.CodeStore:
    """Get CodeStore instance with request-scoped DB session.

    Args:
        db: Database session.

    Returns:
        CodeStore instance.
    """
    return code_store.CodeStore(db)


def get_signing_key_cache() -> secret_provider.SigningKeyCache:
    """Get the process-wide signing key cache."""
    return secret_provider.get_signing_key_cache()


def get_token_issuer(
    key_cache: secret_provider.SigningKeyCache = Depends(get_signing_key_cache),
) -> token_manager.TokenIssuer:
    return token_manager.TokenIssuer(key_cache)


def get_token_verifier(
    key_cache: secret_provider.SigningKeyCache = Depends(get_signing_key_cache),
) -> token_manager.TokenVerifier:
    return token_manager.TokenVerifier(key_cache)


def get_code_generator(
    store: code_store.CodeStore = Depends(get_code_store),
) -> code_generator.CodeGenerator:
    return code_generator.CodeGenerator(store)


def get_claim_service(
    store: code_store.CodeStore = Depends(get_code_store),
    issuer: token_manager.TokenIssuer = Depends(get_token_issuer),
) -> claim_service.ClaimService:
    """Get ClaimService wired to the request's store and the shared issuer."""
    return claim_service.ClaimService(store, issuer)


# Type aliases for dependency injection
CodeStoreDep = Annotated[code_store.CodeStore, Depends(get_code_store)]
CodeGeneratorDep = Annotated[
    code_generator.CodeGenerator, Depends(get_code_generator)
]
ClaimServiceDep = Annotated[claim_service.ClaimService, Depends(get_claim_service)]
TokenVerifierDep = Annotated[
    token_manager.TokenVerifier, Depends(get_token_verifier)
]
