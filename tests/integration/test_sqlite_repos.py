"""
SQLite repository integration tests.
"""

import sqlite3
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import SQLiteInvitationRepo, SQLiteUserRepo
from src.domain.entities import DeviceTestResults, InvitationStatus
from src.domain.state import statuses_before, transition
from src.ports.errors import CollaboratorError

FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


class TestMigrations:
    def test_migrations_are_idempotent(self, db_path) -> None:
        assert SQLiteMigrator(db_path, "migrations").run_migrations() == []

    def test_tables_exist(self, db_path) -> None:
        conn = sqlite3.connect(db_path)
        names = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        conn.close()
        assert {"users", "consultations", "invitations"} <= names

    def test_failed_migration_leaves_nothing_behind(self, tmp_path) -> None:
        migrations = tmp_path / "migrations"
        migrations.mkdir()
        (migrations / "001_partial.sql").write_text(
            "-- Up\nCREATE TABLE half_done (id INTEGER PRIMARY KEY);\nNOT VALID SQL;\n"
        )
        db = str(tmp_path / "partial.db")
        migrator = SQLiteMigrator(db, str(migrations))

        with pytest.raises(RuntimeError, match="001_partial.sql"):
            migrator.run_migrations()

        conn = sqlite3.connect(db)
        tables = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        applied = conn.execute("SELECT filename FROM _migrations").fetchall()
        conn.close()
        assert "half_done" not in tables
        assert applied == []
        assert migrator.pending() == ["001_partial.sql"]


class TestUserRepo:
    def test_get_by_email(self, user_repo, practitioner) -> None:
        found = user_repo.get_by_email("dr.ada@example.com")

        assert found is not None
        assert found.id == practitioner.id
        assert found.role == "practitioner"
        assert found.display_name == "Ada Lovelace"

    def test_email_match_is_exact(self, user_repo, practitioner) -> None:
        assert user_repo.get_by_email("DR.ADA@example.com") is None

    def test_get_by_id(self, user_repo, practitioner) -> None:
        assert user_repo.get_by_id(practitioner.id).email == practitioner.email
        assert user_repo.get_by_id(uuid4()) is None


class TestInvitationRepo:
    def test_round_trip(self, invitation_repo, invitation) -> None:
        loaded = invitation_repo.get_by_token("invite-token-1")

        assert loaded.id == invitation.id
        assert loaded.status == InvitationStatus.ISSUED
        assert loaded.expires_at == invitation.expires_at
        assert loaded.device_test is None
        assert invitation_repo.get_by_id(invitation.id).token == "invite-token-1"

    def test_unknown_token(self, invitation_repo) -> None:
        assert invitation_repo.get_by_token("missing") is None

    def test_compare_and_set_wins_once(self, invitation_repo, invitation) -> None:
        acknowledged = transition(invitation, InvitationStatus.ACKNOWLEDGED, FIXED_NOW)

        assert invitation_repo.compare_and_set(acknowledged, {InvitationStatus.ISSUED}) is True
        assert invitation_repo.compare_and_set(acknowledged, {InvitationStatus.ISSUED}) is False
        assert invitation_repo.get_by_token(invitation.token).acknowledged_at == FIXED_NOW

    def test_compare_and_set_persists_device_test(self, invitation_repo, invitation) -> None:
        results = DeviceTestResults(camera_test=False, microphone_test=True, speaker_test=True)
        tested = transition(
            invitation, InvitationStatus.DEVICE_TESTED, FIXED_NOW, device_test=results
        )

        assert invitation_repo.compare_and_set(tested, statuses_before(InvitationStatus.ACCEPTED))

        loaded = invitation_repo.get_by_token(invitation.token)
        assert loaded.status == InvitationStatus.DEVICE_TESTED
        assert loaded.device_test == results

    def test_mark_accepted_keeps_device_test(self, invitation_repo, invitation) -> None:
        results = DeviceTestResults(camera_test=True, microphone_test=False, speaker_test=True)
        stale = transition(invitation, InvitationStatus.ACCEPTED, FIXED_NOW)
        tested = transition(
            invitation, InvitationStatus.DEVICE_TESTED, FIXED_NOW, device_test=results
        )
        invitation_repo.compare_and_set(tested, statuses_before(InvitationStatus.ACCEPTED))

        assert invitation_repo.mark_accepted(
            stale.id, FIXED_NOW, statuses_before(InvitationStatus.ACCEPTED)
        )
        assert not invitation_repo.mark_accepted(
            stale.id, FIXED_NOW, statuses_before(InvitationStatus.ACCEPTED)
        )

        loaded = invitation_repo.get_by_token(invitation.token)
        assert loaded.status == InvitationStatus.ACCEPTED
        assert loaded.accepted_at == FIXED_NOW
        assert loaded.device_test == results
        assert loaded.device_tested_at == FIXED_NOW

    def test_compare_and_set_empty_expected(self, invitation_repo, invitation) -> None:
        assert invitation_repo.compare_and_set(invitation, set()) is False

    def test_list_accepted_between(self, invitation_repo, invitation, consultation) -> None:
        accepted = transition(invitation, InvitationStatus.ACCEPTED, FIXED_NOW)
        invitation_repo.save(accepted)

        window = invitation_repo.list_accepted_between(
            FIXED_NOW + timedelta(minutes=59), FIXED_NOW + timedelta(minutes=61)
        )
        outside = invitation_repo.list_accepted_between(
            FIXED_NOW, FIXED_NOW + timedelta(minutes=30)
        )

        assert [i.id for i in window] == [invitation.id]
        assert outside == []


class TestFailures:
    def test_sqlite_error_becomes_collaborator_error(self, tmp_path) -> None:
        repo = SQLiteUserRepo(str(tmp_path / "no-tables.db"))

        with pytest.raises(CollaboratorError) as exc:
            repo.get_by_email("x@example.com")
        assert exc.value.collaborator == "sqlite"

    def test_write_error_becomes_collaborator_error(self, tmp_path, invitation) -> None:
        repo = SQLiteInvitationRepo(str(tmp_path / "no-tables.db"))

        with pytest.raises(CollaboratorError):
            repo.save(invitation)
