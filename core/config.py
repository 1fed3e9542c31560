"""
Core configuration module for environment variables and settings management.

Design choices:
- Uses python-dotenv to load environment variables from a .env file when present.
- Avoids pydantic BaseSettings to keep the settings object a plain model that tests can build directly.
- Provides a single get_settings() accessor with LRU caching to avoid repeated parsing.
- An empty database_url selects the in-memory document store (local development and tests).
"""
from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    environment: str = "dev"

    # API versioning (useful for mounting routers and future deprecations)
    api_v1_prefix: str = "/api/v1"

    # The one course unlocked by the lead-capture form instead of payment
    starter_pack_course_id: str = "starter-pack"

    # Document store; empty means in-memory
    database_url: str = ""

    # Blob store
    blob_root: str = "./blobs"
    blob_base_url: str = "/blobs"

    # Payment boundary
    payment_api_base: str = "http://localhost:3001"
    payment_timeout_seconds: float = 10.0

    # Upload limits in megabytes
    max_course_file_mb: int = 150
    max_starter_file_mb: int = 100

    # Query caps for the document store
    max_query_limit: int = 500
    default_query_limit: int = 200

    # Notes autosave debounce
    note_autosave_seconds: float = 2.0

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load environment variables (from .env if present) and build a Settings object.

    This function is cached so app startup and repeated imports are efficient.
    """
    load_dotenv()  # no-op if .env not present
    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        api_v1_prefix=os.getenv("API_V1_PREFIX", "/api/v1"),
        starter_pack_course_id=os.getenv("STARTER_PACK_COURSE_ID", "starter-pack"),
        database_url=os.getenv("DATABASE_URL", ""),
        blob_root=os.getenv("BLOB_ROOT", "./blobs"),
        blob_base_url=os.getenv("BLOB_BASE_URL", "/blobs"),
        payment_api_base=os.getenv("PAYMENT_API_BASE", "http://localhost:3001"),
        payment_timeout_seconds=float(os.getenv("PAYMENT_TIMEOUT_SECONDS", "10")),
        max_course_file_mb=int(os.getenv("MAX_COURSE_FILE_MB", "150")),
        max_starter_file_mb=int(os.getenv("MAX_STARTER_FILE_MB", "100")),
        max_query_limit=int(os.getenv("MAX_QUERY_LIMIT", "500")),
        default_query_limit=int(os.getenv("DEFAULT_QUERY_LIMIT", "200")),
        note_autosave_seconds=float(os.getenv("NOTE_AUTOSAVE_SECONDS", "2.0")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
