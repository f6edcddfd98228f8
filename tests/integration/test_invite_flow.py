"""
End-to-end invitation lifecycle against SQLite.
"""

from datetime import timedelta

import pytest

from src.adapters.dev_notifier import DevNotificationAdapter
from src.components.invite import (
    AcknowledgeInput,
    CompleteDeviceTestInput,
    GetDetailsInput,
    InviteConfig,
    InviteErrorCode,
    JoinViaReminderInput,
    SendPreConsultationNoticeInput,
    SendUpcomingNoticesInput,
    run,
)
from src.domain.entities import DeviceTestResults, InvitationStatus

PASSED = DeviceTestResults(camera_test=True, microphone_test=True, speaker_test=True)


@pytest.fixture
def notifier() -> DevNotificationAdapter:
    return DevNotificationAdapter()


@pytest.fixture
def invite(invitation_repo, consultation_repo, notifier, clock):
    config = InviteConfig(patient_base_url="https://patient.example")

    def _run(inp):
        return run(
            inp,
            invitation_repo=invitation_repo,
            consultation_repo=consultation_repo,
            notifier=notifier,
            time=clock,
            config=config,
        )

    return _run


class TestInviteLifecycle:
    def test_full_flow(self, invite, invitation, invitation_repo, notifier, clock) -> None:
        ack = invite(AcknowledgeInput(invitation.token))
        assert ack.success is True
        assert invitation_repo.get_by_token(invitation.token).status == InvitationStatus.ACKNOWLEDGED

        clock.advance(timedelta(minutes=10))
        tested = invite(CompleteDeviceTestInput(invitation.token, PASSED))
        assert tested.notification_sent is True

        stored = invitation_repo.get_by_token(invitation.token)
        assert stored.status == InvitationStatus.ACCEPTED
        assert stored.acknowledged_at < stored.accepted_at
        assert len(notifier.of_kind("confirmation")) == 1

        notice = invite(SendPreConsultationNoticeInput(invitation.id))
        assert notice.room_url == "https://patient.example/consultation/42?token=invite-token-1"
        assert len(notifier.of_kind("pre_consultation")) == 1

    def test_acknowledge_after_accept_keeps_status(self, invite, invitation, invitation_repo) -> None:
        invite(CompleteDeviceTestInput(invitation.token, PASSED))

        result = invite(AcknowledgeInput(invitation.token))

        assert result.already_completed is True
        assert invitation_repo.get_by_token(invitation.token).status == InvitationStatus.ACCEPTED

    def test_reminder_join_from_issued(self, invite, invitation, invitation_repo) -> None:
        result = invite(JoinViaReminderInput(invitation.token))

        assert result.success is True
        assert result.waiting_room_url.endswith("/consultation/42/waiting-room?token=invite-token-1")
        assert invitation_repo.get_by_token(invitation.token).status == InvitationStatus.ACCEPTED

    def test_device_test_after_window(self, invite, invitation, clock) -> None:
        clock.advance(timedelta(minutes=58, seconds=30))

        result = invite(CompleteDeviceTestInput(invitation.token, PASSED))

        assert result.errors[0].code == InviteErrorCode.DEVICE_TEST_WINDOW_CLOSED

    def test_details_flag_expired_after_start(self, invite, invitation, clock) -> None:
        clock.advance(timedelta(hours=1))

        result = invite(GetDetailsInput(invitation.token))

        assert result.success is True
        assert result.details.expired is True

    def test_upcoming_sweep(self, invite, invitation, notifier, clock) -> None:
        invite(CompleteDeviceTestInput(invitation.token, PASSED))
        notifier.clear()
        clock.advance(timedelta(minutes=59))

        result = invite(SendUpcomingNoticesInput())

        assert (result.processed, result.sent, result.failed) == (1, 1, 0)
        assert notifier.of_kind("pre_consultation")[0].recipient == "patient@example.com"
