"""
Invite component - patient invitation lifecycle (acknowledge, device test, join).
"""

from .component import (
    run,
    run_acknowledge,
    run_complete_device_test,
    run_get_details,
    run_join_via_reminder,
    run_send_pre_consultation_notice,
    run_send_upcoming_notices,
)
from .models import (
    AcknowledgeInput,
    AcknowledgeOutput,
    CompleteDeviceTestInput,
    DetailsOutput,
    DeviceTestOutput,
    GetDetailsInput,
    InvitationDetails,
    InviteConfig,
    InviteError,
    InviteErrorCode,
    JoinOutput,
    JoinViaReminderInput,
    NoticeOutput,
    SendPreConsultationNoticeInput,
    SendUpcomingNoticesInput,
    UpcomingNoticesOutput,
)
from .ports import (
    ConsultationRepoPort,
    InvitationRepoPort,
    NotificationPort,
    TimePort,
)

__all__ = [
    # Entry points
    "run",
    "run_acknowledge",
    "run_complete_device_test",
    "run_get_details",
    "run_join_via_reminder",
    "run_send_pre_consultation_notice",
    "run_send_upcoming_notices",
    # Input models
    "AcknowledgeInput",
    "CompleteDeviceTestInput",
    "GetDetailsInput",
    "JoinViaReminderInput",
    "SendPreConsultationNoticeInput",
    "SendUpcomingNoticesInput",
    # Output models
    "AcknowledgeOutput",
    "DetailsOutput",
    "DeviceTestOutput",
    "JoinOutput",
    "NoticeOutput",
    "UpcomingNoticesOutput",
    # Shared models
    "InvitationDetails",
    "InviteConfig",
    "InviteError",
    "InviteErrorCode",
    # Ports
    "ConsultationRepoPort",
    "InvitationRepoPort",
    "NotificationPort",
    "TimePort",
]
