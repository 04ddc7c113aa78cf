from __future__ import annotations

import os
import tempfile
from collections.abc import Generator

# Configuration is read at import time, so the environment is set first.
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="access-gate-tests-")
TEST_SECRET = "test-signing-key-0123456789-abcdefghijklmnop"
TEST_ADMIN_TOKEN = "admin-test-token"

os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DATA_DIR}/access_gate.db"
os.environ["JWT_SECRET_SOURCE"] = "env"
os.environ["JWT_SECRET_KEY"] = TEST_SECRET
os.environ["ADMIN_TOKEN"] = TEST_ADMIN_TOKEN
os.environ["PURGE_INTERVAL_SECONDS"] = "0"
os.environ["CODE_FORMAT"] = "alphabet"
os.environ["SESSION_PROFILE"] = "standard"
os.environ.pop("SESSION_TTL_SECONDS", None)
os.environ.pop("CODE_LENGTH", None)
os.environ.pop("APP_TAG", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from config import DEFAULT_CODE_ALPHABET  # noqa: E402
from core.database import build_engine, get_db, init_db  # noqa: E402
from core.dependencies import get_signing_key_cache  # noqa: E402
from utils.code_format import CodeFormat  # noqa: E402
from utils.code_store import CodeStore  # noqa: E402
from utils.secret_provider import SigningKeyCache  # noqa: E402

SESSION_TTL = 48 * 60 * 60
RETENTION = 24 * 60 * 60


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'codes.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture
def key_cache() -> SigningKeyCache:
    return SigningKeyCache(lambda: TEST_SECRET)


@pytest.fixture
def alphabet_store(db) -> CodeStore:
    return CodeStore(
        db,
        CodeFormat("alphabet", 8, DEFAULT_CODE_ALPHABET),
        session_ttl_seconds=SESSION_TTL,
        retention_seconds=RETENTION,
    )


@pytest.fixture
def numeric_store(db) -> CodeStore:
    return CodeStore(
        db,
        CodeFormat("numeric", 6),
        session_ttl_seconds=SESSION_TTL,
        retention_seconds=RETENTION,
    )


@pytest.fixture
def client(session_factory, key_cache) -> Generator[TestClient, None, None]:
    from app import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_signing_key_cache] = lambda: key_cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": TEST_ADMIN_TOKEN}
