"""
Environment-driven database configuration for the indexing service.

The indexing tables live in the same database as the job board's ``jobs``
table, so a single URL serves both.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

ENV_FILENAMES = (".env", ".env.local")
CLOUD_LIKE_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


def load_env_files(filenames: Iterable[str] = ENV_FILENAMES) -> list[Path]:
    """
    Load simple KEY=VALUE pairs from the project's env files, if present.

    Existing process environment variables are not overwritten. Returns the
    files that were read.
    """

    project_root = Path(__file__).resolve().parents[1]
    loaded: list[Path] = []
    for filename in filenames:
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            if key.startswith("export "):
                key = key[len("export "):].strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value
        loaded.append(env_path)
    return loaded


def normalize_postgres_url(url: str) -> str:
    """
    Normalize postgres URLs to SQLAlchemy's psycopg driver form.
    """

    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def resolve_database_url() -> str:
    """
    Resolve the database URL from environment variables and optional env files.

    Priority:
    1) DATABASE_URL
    2) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    3) LOCAL_DATABASE_URL
    """

    load_env_files()

    direct_url = os.getenv("DATABASE_URL", "").strip()
    if direct_url:
        return normalize_postgres_url(direct_url)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in CLOUD_LIKE_ENVIRONMENTS and cloud_url:
        return normalize_postgres_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_postgres_url(local_url)

    raise RuntimeError(
        "No database URL configured. Set DATABASE_URL, or configure "
        "LOCAL_DATABASE_URL / CLOUD_DATABASE_URL."
    )
