from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jobboard.config import Settings
from jobboard.database import Database
from jobboard.models import AccountStatus, Role


ADMIN_EMAIL = "admin@admin.com"
ADMIN_PASSWORD = "correct-horse-battery"


class FrozenClock:
    """Callable clock that tests can move forward explicitly."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc))


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "jobboard.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def admin(database: Database):
    return database.create_account(
        "Site Admin",
        ADMIN_EMAIL,
        Role.ADMINISTRATOR,
        password=ADMIN_PASSWORD,
        status=AccountStatus.APPROVED,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=tmp_path / "jobboard.sqlite3",
        session_secret="tests-secret-key",
        public_url="https://jobs.example.com",
    )
