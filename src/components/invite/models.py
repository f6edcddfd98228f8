"""
Invite component models.

Data models for the patient invitation lifecycle.

State machine: issued → acknowledged → device_tested → accepted
- acknowledge:         issued → acknowledged (no-op later)
- complete device test: issued/acknowledged/device_tested → device_tested → accepted
- join via reminder:   any non-accepted status → accepted (device test bypassed)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from src.domain.entities import Consultation, DeviceTestResults, Invitation


class InviteErrorCode(Enum):
    INVITATION_NOT_FOUND = "INVITATION_NOT_FOUND"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"
    INVALID_INPUT = "INVALID_INPUT"
    DEVICE_TEST_WINDOW_CLOSED = "DEVICE_TEST_WINDOW_CLOSED"
    INVITATION_NOT_ACCEPTED = "INVITATION_NOT_ACCEPTED"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"


@dataclass(frozen=True)
class InviteError:
    code: InviteErrorCode
    message: str


@dataclass(frozen=True)
class InviteConfig:
    patient_base_url: str = "http://localhost:4201"
    device_test_cutoff_minutes: int = 2  # Device testing closes this long before start
    upcoming_notice_window_minutes: int = 2


@dataclass(frozen=True)
class InvitationDetails:
    """Read-only view of an invitation and its consultation."""

    invitation: Invitation
    consultation: Consultation | None
    expired: bool = False

    @property
    def practitioner_name(self) -> str:
        return self.consultation.practitioner_name if self.consultation else "Unknown"


# --- Input Models ---


@dataclass(frozen=True)
class AcknowledgeInput:
    token: str


@dataclass(frozen=True)
class GetDetailsInput:
    token: str


@dataclass(frozen=True)
class CompleteDeviceTestInput:
    token: str
    results: DeviceTestResults


@dataclass(frozen=True)
class JoinViaReminderInput:
    token: str


@dataclass(frozen=True)
class SendPreConsultationNoticeInput:
    invitation_id: UUID


@dataclass(frozen=True)
class SendUpcomingNoticesInput:
    window_minutes: int | None = None  # None = configured default


# --- Output Models ---


@dataclass(frozen=True)
class AcknowledgeOutput:
    success: bool
    details: InvitationDetails | None = None
    device_test_required: bool = True
    already_completed: bool = False
    errors: list[InviteError] = field(default_factory=list)


@dataclass(frozen=True)
class DetailsOutput:
    success: bool
    details: InvitationDetails | None = None
    errors: list[InviteError] = field(default_factory=list)


@dataclass(frozen=True)
class DeviceTestOutput:
    success: bool
    details: InvitationDetails | None = None
    already_accepted: bool = False
    notification_sent: bool = False
    reminder_message: str | None = None
    errors: list[InviteError] = field(default_factory=list)


@dataclass(frozen=True)
class JoinOutput:
    success: bool
    details: InvitationDetails | None = None
    waiting_room_url: str | None = None
    errors: list[InviteError] = field(default_factory=list)


@dataclass(frozen=True)
class NoticeOutput:
    success: bool
    room_url: str | None = None
    errors: list[InviteError] = field(default_factory=list)


@dataclass(frozen=True)
class UpcomingNoticesOutput:
    processed: int = 0
    sent: int = 0
    failed: int = 0
