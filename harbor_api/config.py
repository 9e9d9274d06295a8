"""
Harbor API configuration: all environment variables in one place.

Read from environment at import time. The kernel never reads configuration;
everything it needs is passed in from here.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Storage
    STORAGE_BACKEND: str = os.environ.get("STORAGE_BACKEND", "file")  # memory | file | postgres
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")
    PROJECTS_DIR: str = os.environ.get("PROJECTS_DIR", "./projects")

    # Template import
    TEMPLATE_FETCH_TIMEOUT: float = float(os.environ.get("TEMPLATE_FETCH_TIMEOUT", "10"))
    DEFAULT_IMPORT_GROUP: str = os.environ.get("DEFAULT_IMPORT_GROUP", "admin")

    # Application
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")


STORAGE_BACKENDS = ("memory", "file", "postgres")

# Singleton instance
settings = Settings()

if settings.STORAGE_BACKEND not in STORAGE_BACKENDS:
    raise RuntimeError(f"STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}, got {settings.STORAGE_BACKEND!r}")
if settings.STORAGE_BACKEND == "postgres" and not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required when STORAGE_BACKEND=postgres")
if settings.TEMPLATE_FETCH_TIMEOUT <= 0:
    raise RuntimeError("TEMPLATE_FETCH_TIMEOUT must be positive")
