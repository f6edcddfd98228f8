from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from src.components.invite.models import InvitationDetails


class ErrorDetail(BaseModel):
    """Error body: {"detail": {"code": ..., "message": ...}}."""

    code: str
    message: str


class ErrorResponse(BaseModel):
    detail: ErrorDetail


class DeviceTestSummary(BaseModel):
    camera_test: bool
    microphone_test: bool
    speaker_test: bool


class InvitationSummary(BaseModel):
    id: UUID
    token: str
    consultation_id: int
    status: str
    name: str | None = None
    email: str
    scheduled_date: datetime | None = None
    practitioner_name: str
    device_test: DeviceTestSummary | None = None
    acknowledged_at: datetime | None = None
    device_tested_at: datetime | None = None
    accepted_at: datetime | None = None
    expires_at: datetime

    @classmethod
    def from_details(cls, details: InvitationDetails) -> "InvitationSummary":
        inv = details.invitation
        test = inv.device_test
        return cls(
            id=inv.id,
            token=inv.token,
            consultation_id=inv.consultation_id,
            status=inv.status.value,
            name=inv.name,
            email=inv.invite_email,
            scheduled_date=details.consultation.scheduled_date if details.consultation else None,
            practitioner_name=details.practitioner_name,
            device_test=(
                DeviceTestSummary(
                    camera_test=test.camera_test,
                    microphone_test=test.microphone_test,
                    speaker_test=test.speaker_test,
                )
                if test
                else None
            ),
            acknowledged_at=inv.acknowledged_at,
            device_tested_at=inv.device_tested_at,
            accepted_at=inv.accepted_at,
            expires_at=inv.expires_at,
        )


class AcknowledgeResponse(BaseModel):
    success: bool = True
    message: str
    invitation: InvitationSummary
    device_test_required: bool
    already_completed: bool


class DetailsResponse(BaseModel):
    success: bool = True
    invitation: InvitationSummary
    expired: bool


class DeviceTestResponse(BaseModel):
    success: bool = True
    message: str
    invitation: InvitationSummary
    already_accepted: bool
    notification_sent: bool


class JoinResponse(BaseModel):
    success: bool = True
    message: str
    invitation: InvitationSummary
    waiting_room_url: str
    redirect_to: Literal["waiting-room"] = "waiting-room"


class NoticeResponse(BaseModel):
    success: bool = True
    message: str
    room_url: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    display_name: str
    role: str = Field(..., description="patient | practitioner | admin")
