"""
Dev notification adapter.

Logs patient notifications instead of delivering them by email or WhatsApp.
Used for local development and testing.

Key behaviors:
- Logs notification details
- Stores notifications in memory for test assertions
- Can be switched to failing mode to exercise dependency-failure paths
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from src.domain.entities import Consultation, Invitation
from src.ports.errors import CollaboratorError

logger = logging.getLogger(__name__)


@dataclass
class SentNotification:
    """Record of a logged notification for test assertions."""

    id: str
    kind: str  # "confirmation" or "pre_consultation"
    invitation_id: UUID
    consultation_id: int
    recipient: str
    subject: str
    link: str | None
    logged_at: datetime


@dataclass
class DevNotificationAdapter:
    """
    Notification adapter that logs instead of sending.

    Implements the invite component's NotificationPort.
    """

    sent: list[SentNotification] = field(default_factory=list)

    # Configuration
    log_level: int = logging.INFO
    fail: bool = False  # Raise CollaboratorError instead of logging

    def send_consultation_confirmation(
        self, invitation: Invitation, consultation: Consultation | None
    ) -> None:
        when = (
            consultation.scheduled_date.isoformat()
            if consultation and consultation.scheduled_date
            else "to be scheduled"
        )
        self._record(
            kind="confirmation",
            invitation=invitation,
            subject=f"Your consultation is confirmed ({when})",
            link=None,
        )

    def send_pre_consultation_notice(
        self, invitation: Invitation, consultation: Consultation, room_url: str
    ) -> None:
        self._record(
            kind="pre_consultation",
            invitation=invitation,
            subject=f"Your consultation with {consultation.practitioner_name} starts soon",
            link=room_url,
        )

    def _record(
        self, kind: str, invitation: Invitation, subject: str, link: str | None
    ) -> None:
        if self.fail:
            raise CollaboratorError("notifications", f"{kind} delivery failed")

        notification = SentNotification(
            id=f"dev-{uuid4().hex[:12]}",
            kind=kind,
            invitation_id=invitation.id,
            consultation_id=invitation.consultation_id,
            recipient=invitation.invite_email,
            subject=subject,
            link=link,
            logged_at=datetime.now(UTC),
        )
        self.sent.append(notification)

        parts = [f"NOTIFY (dev): To={notification.recipient}", f"Subject={subject}"]
        if link:
            parts.append(f"Link={link}")
        parts.append(f"MessageID={notification.id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def of_kind(self, kind: str) -> list[SentNotification]:
        return [n for n in self.sent if n.kind == kind]

    def clear(self) -> None:
        """Clear all stored notifications (for test isolation)."""
        self.sent.clear()

    @property
    def count(self) -> int:
        return len(self.sent)
