"""Configuration module for the Access Gate service.

This module provides centralized configuration management, including directory
paths, API server settings, session lifetimes, code format, and signing-key
source. All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from core.exceptions import ConfigurationError

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Store Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/access_gate.db"
)

# Seconds a store call may wait on a busy database before failing
STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "5"))

# --- Session Configuration ---

# Deployment profiles and their session lifetimes in seconds
SESSION_PROFILES: Dict[str, int] = {
    "standard": 48 * 60 * 60,
    "extended": 7 * 24 * 60 * 60,
}

SESSION_PROFILE: str = os.getenv("SESSION_PROFILE", "standard").strip().lower()


def resolve_session_ttl(profile: str, override: Optional[str] = None) -> int:
    """Resolve the session lifetime for a deployment profile.

    Args:
        profile: Profile name ('standard' or 'extended').
        override: Optional explicit number of seconds, wins over the profile.

    Returns:
        Session lifetime in seconds.

    Raises:
        ConfigurationError: If the profile is unknown or the override invalid.
    """
    if override:
        try:
            ttl = int(override)
        except ValueError as e:
            raise ConfigurationError(
                f"SESSION_TTL_SECONDS must be an integer, got '{override}'"
            ) from e
        if ttl <= 0:
            raise ConfigurationError("SESSION_TTL_SECONDS must be positive")
        return ttl
    if profile not in SESSION_PROFILES:
        raise ConfigurationError(
            f"Unknown SESSION_PROFILE '{profile}'. "
            f"Must be one of: {', '.join(SESSION_PROFILES)}."
        )
    return SESSION_PROFILES[profile]


SESSION_TTL_SECONDS: int = resolve_session_ttl(
    SESSION_PROFILE, os.getenv("SESSION_TTL_SECONDS")
)

# Claimed records become eligible for deletion this long after they expire
RETENTION_WINDOW_SECONDS: int = int(os.getenv("RETENTION_WINDOW_SECONDS", "86400"))

# Interval of the background purge sweep; 0 disables it
PURGE_INTERVAL_SECONDS: int = int(os.getenv("PURGE_INTERVAL_SECONDS", "3600"))

# --- Access Code Configuration ---

CODE_FORMATS = ("alphabet", "numeric")

# No I, O, 0, 1 to avoid transcription errors
DEFAULT_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
NUMERIC_ALPHABET = "0123456789"

DEFAULT_CODE_LENGTHS: Dict[str, int] = {"alphabet": 8, "numeric": 6}

CODE_FORMAT: str = os.getenv("CODE_FORMAT", "alphabet").strip().lower()
if CODE_FORMAT not in CODE_FORMATS:
    raise ConfigurationError(
        f"Unknown CODE_FORMAT '{CODE_FORMAT}'. Must be one of: {', '.join(CODE_FORMATS)}."
    )

CODE_ALPHABET: str = (
    NUMERIC_ALPHABET
    if CODE_FORMAT == "numeric"
    else os.getenv("CODE_ALPHABET", DEFAULT_CODE_ALPHABET).strip().upper()
)
if len(set(CODE_ALPHABET)) < 2:
    raise ConfigurationError("CODE_ALPHABET must contain at least 2 distinct symbols")

CODE_LENGTH: int = int(
    os.getenv("CODE_LENGTH", str(DEFAULT_CODE_LENGTHS[CODE_FORMAT]))
)

# Attempts per code slot before generation gives up on a crowded keyspace
CODE_GENERATION_MAX_ATTEMPTS: int = int(
    os.getenv("CODE_GENERATION_MAX_ATTEMPTS", "10")
)

# Upper bound for a single generation request
CODE_GENERATION_MAX_COUNT: int = 1000

# --- Token Configuration ---

# Audience tag restricting tokens to this application
APP_TAG: str = os.getenv("APP_TAG", "access-gate")

JWT_ALGORITHM = "HS256"

SECRET_SOURCES = ("env", "file")

# Where the signing key comes from: an environment variable or a mounted file
JWT_SECRET_SOURCE: str = os.getenv("JWT_SECRET_SOURCE", "env").strip().lower()
if JWT_SECRET_SOURCE not in SECRET_SOURCES:
    raise ConfigurationError(
        f"Unknown JWT_SECRET_SOURCE '{JWT_SECRET_SOURCE}'. "
        f"Must be one of: {', '.join(SECRET_SOURCES)}."
    )

JWT_SECRET_ENV_VAR = "JWT_SECRET_KEY"
JWT_SECRET_FILE: Optional[str] = os.getenv("JWT_SECRET_FILE")

# --- Administration Configuration ---

# Admin token for code generation and maintenance routes
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")
