"""Shared test fixtures and configuration.

Sets up fake environment variables before dayboard.config is imported,
and provides a store backed by a temp SQLite file.
"""

import os

# Patch env vars BEFORE any dayboard imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("ENFORCE_RECURRENCE_INTERVAL", "false")
os.environ.setdefault("IDEMPOTENT_MATERIALIZATION", "false")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_dayboard.db")


@pytest.fixture
def store(tmp_db_path):
    """Return a SQLiteDocumentStore backed by a temp file."""
    from dayboard.data.db import SQLiteDocumentStore
    return SQLiteDocumentStore(db_path=tmp_db_path)
