"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

CASE_LOCK_POLICIES = ("auto", "always", "never")


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "Recouvrement"
    DB_FILENAME = "recouvrement.db"
    REFERENCE_PREFIX = "DOS-REC"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}
    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("RECOUVREMENT_SECRET_KEY", "replace-me")
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("RECOUVREMENT_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("RECOUVREMENT_DATABASE_URL", self._build_sqlite_url())
        self.CASE_LOCKS = os.getenv("RECOUVREMENT_CASE_LOCKS", "auto").strip().lower()
        self.DEFAULT_ACTOR = os.getenv("RECOUVREMENT_DEFAULT_ACTOR", "anonymous")
        if self.CASE_LOCKS not in CASE_LOCK_POLICIES:
            raise ValueError(
                f"RECOUVREMENT_CASE_LOCKS must be one of {', '.join(CASE_LOCK_POLICIES)}."
            )
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("RECOUVREMENT_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("RECOUVREMENT_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def use_case_locks(self) -> bool:
        """Whether payment writes must hold an in-process per-case lock.

        SQLite ignores ``SELECT ... FOR UPDATE`` so ``auto`` falls back to
        process-local locking there and relies on row locks elsewhere.
        """

        if self.CASE_LOCKS == "always":
            return True
        if self.CASE_LOCKS == "never":
            return False
        return self.is_sqlite

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.is_sqlite:
            return {"pool_pre_ping": True}
        return {"connect_args": {"check_same_thread": False}}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True


class TestConfig(BaseConfig):
    """Configuration used by the test-suite; callers override DATABASE_URL."""

    TESTING = True
    __test__ = False

    def __init__(self, database_url: str | None = None) -> None:
        super().__init__()
        if database_url:
            self.DATABASE_URL = database_url
