import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import (
    SQLiteConsultationRepo,
    SQLiteInvitationRepo,
    SQLiteUserRepo,
)
from src.domain.entities import Consultation, Invitation, User
from src.rules.loader import load_rules
from src.rules.models import Rules

FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


class FixedClock:
    """Clock pinned to a moment, movable by tests."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


@pytest.fixture
def test_data_dir(tmp_path):
    return str(tmp_path)


@pytest.fixture
def db_path(test_data_dir) -> str:
    """Temporary SQLite database with all migrations applied."""
    path = os.path.join(test_data_dir, "telehealth.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return path


@pytest.fixture
def rules() -> Rules:
    # Assuming tests run from project root.
    rules_path = Path("rules.yaml").resolve()
    if not rules_path.exists():
        raise FileNotFoundError(f"Rules not found at {rules_path}")
    return load_rules(rules_path)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def user_repo(db_path) -> SQLiteUserRepo:
    return SQLiteUserRepo(db_path)


@pytest.fixture
def consultation_repo(db_path) -> SQLiteConsultationRepo:
    return SQLiteConsultationRepo(db_path)


@pytest.fixture
def invitation_repo(db_path) -> SQLiteInvitationRepo:
    return SQLiteInvitationRepo(db_path)


@pytest.fixture
def practitioner(user_repo) -> User:
    return user_repo.save(
        User(email="dr.ada@example.com", first_name="Ada", last_name="Lovelace", role="practitioner")
    )


@pytest.fixture
def consultation(consultation_repo) -> Consultation:
    return consultation_repo.save(
        Consultation(
            id=42,
            scheduled_date=FIXED_NOW + timedelta(hours=1),
            practitioner_name="Dr. Ada Lovelace",
        )
    )


@pytest.fixture
def invitation(invitation_repo, consultation) -> Invitation:
    return invitation_repo.save(
        Invitation(
            token="invite-token-1",
            consultation_id=consultation.id,
            invite_email="patient@example.com",
            name="Pat Patient",
            expires_at=FIXED_NOW + timedelta(days=1),
            created_at=FIXED_NOW - timedelta(days=1),
        )
    )
