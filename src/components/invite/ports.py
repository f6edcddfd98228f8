"""
Invite component ports.

Protocol interfaces for the collaborators the invitation lifecycle needs.
Adapters raise src.ports.errors.CollaboratorError on infrastructure failure.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol
from uuid import UUID

from src.domain.entities import Consultation, Invitation, InvitationStatus


class InvitationRepoPort(Protocol):
    def get_by_token(self, token: str) -> Invitation | None: ...

    def get_by_id(self, invitation_id: UUID) -> Invitation | None: ...

    def compare_and_set(
        self, invitation: Invitation, expected: Iterable[InvitationStatus]
    ) -> bool:
        """Persist only if the stored status is one of `expected`."""
        ...

    def mark_accepted(
        self, invitation_id: UUID, accepted_at: datetime, expected: Iterable[InvitationStatus]
    ) -> bool:
        """Set only status and accepted_at, leaving device-test fields as stored."""
        ...

    def list_accepted_between(self, start: datetime, end: datetime) -> list[Invitation]:
        """Accepted invitations whose consultation is scheduled in [start, end]."""
        ...


class ConsultationRepoPort(Protocol):
    def get_by_id(self, consultation_id: int) -> Consultation | None: ...


class NotificationPort(Protocol):
    def send_consultation_confirmation(
        self, invitation: Invitation, consultation: Consultation | None
    ) -> None:
        """Confirm to the patient that the consultation is booked."""
        ...

    def send_pre_consultation_notice(
        self, invitation: Invitation, consultation: Consultation, room_url: str
    ) -> None:
        """Send the consultation-room link shortly before the start."""
        ...


class TimePort(Protocol):
    """Port for time operations - enables deterministic testing."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
