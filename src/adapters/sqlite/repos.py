"""
SQLite repositories for invitations, consultations and users.

Every sqlite3.Error is re-raised as CollaboratorError so components can
report a retryable dependency failure.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from src.domain.entities import (
    Consultation,
    DeviceTestResults,
    Invitation,
    InvitationStatus,
    User,
)
from src.ports.errors import CollaboratorError

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime | None) -> str | None:
    """Store timestamps as UTC ISO strings so they compare lexically."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat()


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    collaborator = "sqlite"

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise CollaboratorError(self.collaborator, str(e)) from e
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _fetchone(self, sql: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        conn = self._get_conn()
        try:
            row: dict[str, Any] | None = conn.execute(sql, params).fetchone()
            return row
        except sqlite3.Error as e:
            raise CollaboratorError(self.collaborator, str(e)) from e
        finally:
            if self._should_close():
                conn.close()

    def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            rows: list[dict[str, Any]] = conn.execute(sql, params).fetchall()
            return rows
        except sqlite3.Error as e:
            raise CollaboratorError(self.collaborator, str(e)) from e
        finally:
            if self._should_close():
                conn.close()

    def _write(self, sql: str, params: tuple[Any, ...]) -> int:
        """Execute a write and commit. Returns affected row count."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            conn.rollback()
            raise CollaboratorError(self.collaborator, str(e)) from e
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Users
# -----------------------------------------------------------------------------


class SQLiteUserRepo(SQLiteRepoBase):
    """User lookup. Emails are matched exactly as stored."""

    def get_by_email(self, email: str) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE email = ?", (email,))
        return self._map_row(row) if row else None

    def get_by_id(self, user_id: UUID) -> User | None:
        row = self._fetchone("SELECT * FROM users WHERE id = ?", (str(user_id),))
        return self._map_row(row) if row else None

    def save(self, user: User) -> User:
        self._write(
            """
            INSERT INTO users (id, email, first_name, last_name, role, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                email=excluded.email,
                first_name=excluded.first_name,
                last_name=excluded.last_name,
                role=excluded.role,
                status=excluded.status
            """,
            (
                str(user.id),
                user.email,
                user.first_name,
                user.last_name,
                user.role,
                user.status,
                format_dt(user.created_at),
            ),
        )
        return user

    def _map_row(self, row: dict[str, Any]) -> User:
        return User(
            id=UUID(row["id"]),
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            role=row["role"],
            status=row["status"],
            created_at=parse_dt(row["created_at"]),
        )


# -----------------------------------------------------------------------------
# Consultations
# -----------------------------------------------------------------------------


class SQLiteConsultationRepo(SQLiteRepoBase):
    def get_by_id(self, consultation_id: int) -> Consultation | None:
        row = self._fetchone("SELECT * FROM consultations WHERE id = ?", (consultation_id,))
        if not row:
            return None
        return Consultation(
            id=row["id"],
            scheduled_date=parse_dt(row["scheduled_date"]),
            practitioner_name=row["practitioner_name"],
            reminder_enabled=bool(row["reminder_enabled"]),
        )

    def save(self, consultation: Consultation) -> Consultation:
        self._write(
            """
            INSERT INTO consultations (id, scheduled_date, practitioner_name, reminder_enabled)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                scheduled_date=excluded.scheduled_date,
                practitioner_name=excluded.practitioner_name,
                reminder_enabled=excluded.reminder_enabled
            """,
            (
                consultation.id,
                format_dt(consultation.scheduled_date),
                consultation.practitioner_name,
                int(consultation.reminder_enabled),
            ),
        )
        return consultation


# -----------------------------------------------------------------------------
# Invitations
# -----------------------------------------------------------------------------

_INVITATION_COLUMNS = (
    "id, token, consultation_id, invite_email, name, status, "
    "camera_test, microphone_test, speaker_test, "
    "acknowledged_at, device_tested_at, accepted_at, expires_at, created_at"
)


class SQLiteInvitationRepo(SQLiteRepoBase):
    def get_by_token(self, token: str) -> Invitation | None:
        row = self._fetchone("SELECT * FROM invitations WHERE token = ?", (token,))
        return self._map_row(row) if row else None

    def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        row = self._fetchone("SELECT * FROM invitations WHERE id = ?", (str(invitation_id),))
        return self._map_row(row) if row else None

    def save(self, invitation: Invitation) -> Invitation:
        self._write(
            f"""
            INSERT INTO invitations ({_INVITATION_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                status=excluded.status,
                camera_test=excluded.camera_test,
                microphone_test=excluded.microphone_test,
                speaker_test=excluded.speaker_test,
                acknowledged_at=excluded.acknowledged_at,
                device_tested_at=excluded.device_tested_at,
                accepted_at=excluded.accepted_at,
                expires_at=excluded.expires_at
            """,
            self._to_params(invitation),
        )
        return invitation

    def compare_and_set(
        self, invitation: Invitation, expected: Iterable[InvitationStatus]
    ) -> bool:
        statuses = [s.value for s in expected]
        if not statuses:
            return False
        placeholders = ", ".join("?" for _ in statuses)
        test = invitation.device_test
        count = self._write(
            f"""
            UPDATE invitations SET
                status = ?,
                camera_test = ?,
                microphone_test = ?,
                speaker_test = ?,
                acknowledged_at = ?,
                device_tested_at = ?,
                accepted_at = ?
            WHERE id = ? AND status IN ({placeholders})
            """,
            (
                invitation.status.value,
                int(test.camera_test) if test else None,
                int(test.microphone_test) if test else None,
                int(test.speaker_test) if test else None,
                format_dt(invitation.acknowledged_at),
                format_dt(invitation.device_tested_at),
                format_dt(invitation.accepted_at),
                str(invitation.id),
                *statuses,
            ),
        )
        return count == 1

    def mark_accepted(
        self, invitation_id: UUID, accepted_at: datetime, expected: Iterable[InvitationStatus]
    ) -> bool:
        statuses = [s.value for s in expected]
        if not statuses:
            return False
        placeholders = ", ".join("?" for _ in statuses)
        count = self._write(
            f"""
            UPDATE invitations SET
                status = ?,
                accepted_at = COALESCE(accepted_at, ?)
            WHERE id = ? AND status IN ({placeholders})
            """,
            (
                InvitationStatus.ACCEPTED.value,
                format_dt(accepted_at),
                str(invitation_id),
                *statuses,
            ),
        )
        return count == 1

    def list_accepted_between(self, start: datetime, end: datetime) -> list[Invitation]:
        rows = self._fetchall(
            """
            SELECT i.* FROM invitations i
            JOIN consultations c ON c.id = i.consultation_id
            WHERE i.status = ?
              AND c.scheduled_date IS NOT NULL
              AND c.scheduled_date >= ? AND c.scheduled_date <= ?
            ORDER BY c.scheduled_date ASC
            """,
            (InvitationStatus.ACCEPTED.value, format_dt(start), format_dt(end)),
        )
        return [self._map_row(r) for r in rows]

    def _to_params(self, invitation: Invitation) -> tuple[Any, ...]:
        test = invitation.device_test
        return (
            str(invitation.id),
            invitation.token,
            invitation.consultation_id,
            invitation.invite_email,
            invitation.name,
            invitation.status.value,
            int(test.camera_test) if test else None,
            int(test.microphone_test) if test else None,
            int(test.speaker_test) if test else None,
            format_dt(invitation.acknowledged_at),
            format_dt(invitation.device_tested_at),
            format_dt(invitation.accepted_at),
            format_dt(invitation.expires_at),
            format_dt(invitation.created_at),
        )

    def _map_row(self, row: dict[str, Any]) -> Invitation:
        device_test = None
        if row["camera_test"] is not None:
            device_test = DeviceTestResults(
                camera_test=bool(row["camera_test"]),
                microphone_test=bool(row["microphone_test"]),
                speaker_test=bool(row["speaker_test"]),
            )
        return Invitation(
            id=UUID(row["id"]),
            token=row["token"],
            consultation_id=row["consultation_id"],
            invite_email=row["invite_email"],
            name=row["name"],
            status=InvitationStatus(row["status"]),
            device_test=device_test,
            acknowledged_at=parse_dt(row["acknowledged_at"]),
            device_tested_at=parse_dt(row["device_tested_at"]),
            accepted_at=parse_dt(row["accepted_at"]),
            expires_at=parse_dt(row["expires_at"]),
            created_at=parse_dt(row["created_at"]),
        )
