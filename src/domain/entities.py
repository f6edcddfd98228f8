from datetime import UTC, datetime
from enum import Enum
from typing import Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, StrictBool

# --- Enums / Literals ---
RoleType = Literal["patient", "practitioner", "admin"]
UserStatus = Literal["active", "disabled"]


class InvitationStatus(Enum):
    """
    Invitation lifecycle status.

    issued → acknowledged → device_tested → accepted
    """

    ISSUED = "issued"
    ACKNOWLEDGED = "acknowledged"
    DEVICE_TESTED = "device_tested"
    ACCEPTED = "accepted"


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- User ---

class User(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email: str
    first_name: str = ""
    last_name: str = ""
    role: RoleType = "patient"
    status: UserStatus = "active"
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email.split("@")[0]


class UserProjection(BaseModel):
    """Non-sensitive user view handed to realtime session consumers."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str
    display_name: str
    role: RoleType

    @classmethod
    def from_user(cls, user: User) -> "UserProjection":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
        )


# --- Consultation ---

class Consultation(BaseModel):
    id: int
    scheduled_date: datetime | None = None
    practitioner_name: str = "Practitioner"
    reminder_enabled: bool = True


# --- Invitation ---

class DeviceTestResults(BaseModel):
    """Validated device-test payload. Field aliases match the public API."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    camera_test: StrictBool = Field(alias="cameraTest")
    microphone_test: StrictBool = Field(alias="microphoneTest")
    speaker_test: StrictBool = Field(alias="speakerTest")

    @property
    def all_passed(self) -> bool:
        return self.camera_test and self.microphone_test and self.speaker_test


class Invitation(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    token: str
    consultation_id: int
    invite_email: str
    name: str | None = None
    status: InvitationStatus = InvitationStatus.ISSUED
    device_test: DeviceTestResults | None = None
    acknowledged_at: datetime | None = None
    device_tested_at: datetime | None = None
    accepted_at: datetime | None = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=_utcnow)
