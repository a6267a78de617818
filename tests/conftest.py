"""Root conftest — shared test configuration."""

import os

# Settings() is built at app import time; keep it off the production database
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)
os.environ.setdefault("LOG_FORMAT", "text")
