"""
Invite component.

Drives one invitation token through its lifecycle:
issued → acknowledged → device_tested → accepted.

Key behaviors:
- Unknown token is INVITATION_NOT_FOUND and never writes anything
- Status only moves forward; every write is a conditional write on the
  stored status, so concurrent calls for the same token cannot regress it
- Repeated acknowledge / device-test calls are read-throughs
- The confirmation notification goes out once, from the caller whose
  accept-write won
- Pre-consultation notices are operator-triggered resends and are not
  deduplicated
- Collaborator failures become DEPENDENCY_FAILURE
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from src.domain.entities import Consultation, Invitation, InvitationStatus
from src.domain.state import statuses_before, transition
from src.ports.errors import CollaboratorError

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
from .ports import ConsultationRepoPort, InvitationRepoPort, NotificationPort, TimePort

logger = logging.getLogger(__name__)

ACCEPTED = InvitationStatus.ACCEPTED


# --- Pure Functions (Functional Core) ---


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return dt.replace(tzinfo=UTC) if dt.tzinfo is None else dt.astimezone(UTC)


def window_elapsed(
    invitation: Invitation,
    consultation: Consultation | None,
    now: datetime,
    *,
    inclusive: bool = True,
) -> bool:
    """
    Whether the invitation can no longer be used.

    With a scheduled consultation the window closes at the start time
    (`inclusive` decides whether the start instant itself is closed).
    Without one, the invitation's own expiry applies.
    """
    if consultation is not None and consultation.scheduled_date is not None:
        start = as_utc(consultation.scheduled_date)
        return now >= start if inclusive else now > start
    return as_utc(invitation.expires_at) < now


def device_test_closed(
    consultation: Consultation | None, now: datetime, cutoff_minutes: int
) -> bool:
    if consultation is None or consultation.scheduled_date is None:
        return False
    return now >= as_utc(consultation.scheduled_date) - timedelta(minutes=cutoff_minutes)


def build_patient_url(base_url: str, consultation_id: int, token: str, suffix: str = "") -> str:
    path = f"{base_url.rstrip('/')}/consultation/{consultation_id}{suffix}"
    return f"{path}?{urlencode({'token': token})}"


def build_reminder_message(consultation: Consultation | None, notice_minutes: int) -> str:
    if consultation is not None and consultation.scheduled_date is not None:
        return (
            "You will receive a consultation link via email "
            f"{notice_minutes} minutes before your scheduled appointment."
        )
    return "You will receive a consultation link via email when the consultation is scheduled."


def _errors(code: InviteErrorCode, message: str) -> list[InviteError]:
    return [InviteError(code, message)]


def _not_found() -> list[InviteError]:
    return _errors(InviteErrorCode.INVITATION_NOT_FOUND, "Invitation not found")


def _expired() -> list[InviteError]:
    return _errors(
        InviteErrorCode.INVITATION_EXPIRED,
        "Consultation time has passed. Invitation is no longer valid.",
    )


def _dependency_failure(e: CollaboratorError, operation: str) -> list[InviteError]:
    logger.error("%s failed on collaborator %s: %s", operation, e.collaborator, e)
    return _errors(
        InviteErrorCode.DEPENDENCY_FAILURE,
        "A required service is temporarily unavailable, please retry",
    )


def _reload(invitation_repo: InvitationRepoPort, fallback: Invitation) -> Invitation:
    """Re-read after a lost conditional write."""
    return invitation_repo.get_by_token(fallback.token) or fallback


# --- Atomic Handlers ---


def run_acknowledge(
    inp: AcknowledgeInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    time: TimePort,
) -> AcknowledgeOutput:
    try:
        invitation = invitation_repo.get_by_token(inp.token)
        if invitation is None:
            return AcknowledgeOutput(success=False, errors=_not_found())

        consultation = consultation_repo.get_by_id(invitation.consultation_id)
        now = time.now_utc()
        if window_elapsed(invitation, consultation, now):
            return AcknowledgeOutput(success=False, errors=_expired())

        if invitation.status == InvitationStatus.ISSUED:
            acknowledged = transition(invitation, InvitationStatus.ACKNOWLEDGED, now)
            if invitation_repo.compare_and_set(acknowledged, {InvitationStatus.ISSUED}):
                logger.info("Invitation %s acknowledged", invitation.id)
                invitation = acknowledged
            else:
                invitation = _reload(invitation_repo, invitation)
    except CollaboratorError as e:
        return AcknowledgeOutput(success=False, errors=_dependency_failure(e, "acknowledge"))

    completed = invitation.status == ACCEPTED
    return AcknowledgeOutput(
        success=True,
        details=InvitationDetails(invitation, consultation),
        device_test_required=not completed,
        already_completed=completed,
    )


def run_get_details(
    inp: GetDetailsInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    time: TimePort,
) -> DetailsOutput:
    try:
        invitation = invitation_repo.get_by_token(inp.token)
        if invitation is None:
            return DetailsOutput(success=False, errors=_not_found())
        consultation = consultation_repo.get_by_id(invitation.consultation_id)
    except CollaboratorError as e:
        return DetailsOutput(success=False, errors=_dependency_failure(e, "get_details"))

    expired = window_elapsed(invitation, consultation, time.now_utc())
    return DetailsOutput(
        success=True, details=InvitationDetails(invitation, consultation, expired=expired)
    )


def run_complete_device_test(
    inp: CompleteDeviceTestInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    notifier: NotificationPort,
    time: TimePort,
    config: InviteConfig,
) -> DeviceTestOutput:
    try:
        invitation = invitation_repo.get_by_token(inp.token)
        if invitation is None:
            return DeviceTestOutput(success=False, errors=_not_found())

        consultation = consultation_repo.get_by_id(invitation.consultation_id)
        reminder = build_reminder_message(consultation, config.upcoming_notice_window_minutes)

        if invitation.status == ACCEPTED:
            return DeviceTestOutput(
                success=True,
                details=InvitationDetails(invitation, consultation),
                already_accepted=True,
                reminder_message=reminder,
            )

        now = time.now_utc()
        if window_elapsed(invitation, consultation, now):
            return DeviceTestOutput(success=False, errors=_expired())
        if device_test_closed(consultation, now, config.device_test_cutoff_minutes):
            return DeviceTestOutput(
                success=False,
                errors=_errors(
                    InviteErrorCode.DEVICE_TEST_WINDOW_CLOSED,
                    "Device testing period has ended. "
                    "Please wait for your consultation reminder email.",
                ),
            )

        tested = transition(
            invitation, InvitationStatus.DEVICE_TESTED, now, device_test=inp.results
        )
        accepted = transition(tested, ACCEPTED, now)
        won = invitation_repo.compare_and_set(tested, statuses_before(ACCEPTED))
        won = won and invitation_repo.compare_and_set(accepted, {InvitationStatus.DEVICE_TESTED})
        if not won:
            # A concurrent call got there first and owns the notification
            current = _reload(invitation_repo, invitation)
            return DeviceTestOutput(
                success=True,
                details=InvitationDetails(current, consultation),
                already_accepted=current.status == ACCEPTED,
                reminder_message=reminder,
            )

        logger.info(
            "Invitation %s accepted after device test (camera=%s, microphone=%s, speaker=%s)",
            accepted.id,
            inp.results.camera_test,
            inp.results.microphone_test,
            inp.results.speaker_test,
        )
        notifier.send_consultation_confirmation(accepted, consultation)
    except CollaboratorError as e:
        return DeviceTestOutput(success=False, errors=_dependency_failure(e, "complete_device_test"))

    return DeviceTestOutput(
        success=True,
        details=InvitationDetails(accepted, consultation),
        notification_sent=True,
        reminder_message=reminder,
    )


def run_join_via_reminder(
    inp: JoinViaReminderInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    time: TimePort,
    config: InviteConfig,
) -> JoinOutput:
    try:
        invitation = invitation_repo.get_by_token(inp.token)
        if invitation is None:
            return JoinOutput(success=False, errors=_not_found())

        consultation = consultation_repo.get_by_id(invitation.consultation_id)
        now = time.now_utc()
        if window_elapsed(invitation, consultation, now, inclusive=False):
            return JoinOutput(success=False, errors=_expired())

        if invitation.status != ACCEPTED:
            accepted = transition(invitation, ACCEPTED, now)
            # Status-only write: a device test landing concurrently keeps its results
            if invitation_repo.mark_accepted(
                invitation.id, accepted.accepted_at or now, statuses_before(ACCEPTED)
            ):
                logger.info(
                    "Invitation %s accepted via reminder link (was %s)",
                    invitation.id,
                    invitation.status.value,
                )
            invitation = _reload(invitation_repo, accepted)
    except CollaboratorError as e:
        return JoinOutput(success=False, errors=_dependency_failure(e, "join_via_reminder"))

    return JoinOutput(
        success=True,
        details=InvitationDetails(invitation, consultation),
        waiting_room_url=build_patient_url(
            config.patient_base_url, invitation.consultation_id, invitation.token, "/waiting-room"
        ),
    )


def run_send_pre_consultation_notice(
    inp: SendPreConsultationNoticeInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    notifier: NotificationPort,
    config: InviteConfig,
) -> NoticeOutput:
    try:
        invitation = invitation_repo.get_by_id(inp.invitation_id)
        if invitation is None:
            return NoticeOutput(success=False, errors=_not_found())

        consultation = consultation_repo.get_by_id(invitation.consultation_id)
        if consultation is None:
            return NoticeOutput(
                success=False,
                errors=_errors(InviteErrorCode.INVITATION_NOT_FOUND, "Consultation not found"),
            )

        if invitation.status != ACCEPTED:
            return NoticeOutput(
                success=False,
                errors=_errors(
                    InviteErrorCode.INVITATION_NOT_ACCEPTED, "Invitation has not been accepted yet"
                ),
            )

        room_url = build_patient_url(
            config.patient_base_url, consultation.id, invitation.token
        )
        notifier.send_pre_consultation_notice(invitation, consultation, room_url)
    except CollaboratorError as e:
        return NoticeOutput(success=False, errors=_dependency_failure(e, "pre_consultation_notice"))

    logger.info(
        "Pre-consultation notice sent to %s for consultation %s",
        invitation.invite_email,
        consultation.id,
    )
    return NoticeOutput(success=True, room_url=room_url)


def run_send_upcoming_notices(
    inp: SendUpcomingNoticesInput,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    notifier: NotificationPort,
    time: TimePort,
    config: InviteConfig,
) -> UpcomingNoticesOutput:
    """
    Send pre-consultation notices for accepted invitations whose
    consultation starts within the window. Failures are counted, not raised.
    """
    window = inp.window_minutes or config.upcoming_notice_window_minutes
    now = time.now_utc()

    try:
        upcoming = invitation_repo.list_accepted_between(now, now + timedelta(minutes=window))
    except CollaboratorError as e:
        logger.error("Upcoming consultation lookup failed: %s", e)
        return UpcomingNoticesOutput()

    sent = 0
    for invitation in upcoming:
        result = run_send_pre_consultation_notice(
            SendPreConsultationNoticeInput(invitation_id=invitation.id),
            invitation_repo,
            consultation_repo,
            notifier,
            config,
        )
        if result.success:
            sent += 1
        else:
            logger.warning(
                "Pre-consultation notice for invitation %s failed: %s",
                invitation.id,
                result.errors[0].message if result.errors else "unknown error",
            )

    logger.info("Processed %d upcoming consultations (%d sent)", len(upcoming), sent)
    return UpcomingNoticesOutput(processed=len(upcoming), sent=sent, failed=len(upcoming) - sent)


def run(
    inp: (
        AcknowledgeInput
        | GetDetailsInput
        | CompleteDeviceTestInput
        | JoinViaReminderInput
        | SendPreConsultationNoticeInput
        | SendUpcomingNoticesInput
    ),
    *,
    invitation_repo: InvitationRepoPort,
    consultation_repo: ConsultationRepoPort,
    notifier: NotificationPort | None = None,  # Only needed for dispatching operations
    time: TimePort | None = None,
    config: InviteConfig | None = None,
) -> (
    AcknowledgeOutput
    | DetailsOutput
    | DeviceTestOutput
    | JoinOutput
    | NoticeOutput
    | UpcomingNoticesOutput
):
    cfg = config or InviteConfig()

    if isinstance(inp, AcknowledgeInput):
        assert time
        return run_acknowledge(inp, invitation_repo, consultation_repo, time)

    elif isinstance(inp, GetDetailsInput):
        assert time
        return run_get_details(inp, invitation_repo, consultation_repo, time)

    elif isinstance(inp, CompleteDeviceTestInput):
        assert notifier and time
        return run_complete_device_test(
            inp, invitation_repo, consultation_repo, notifier, time, cfg
        )

    elif isinstance(inp, JoinViaReminderInput):
        assert time
        return run_join_via_reminder(inp, invitation_repo, consultation_repo, time, cfg)

    elif isinstance(inp, SendPreConsultationNoticeInput):
        assert notifier
        return run_send_pre_consultation_notice(
            inp, invitation_repo, consultation_repo, notifier, cfg
        )

    elif isinstance(inp, SendUpcomingNoticesInput):
        assert notifier and time
        return run_send_upcoming_notices(
            inp, invitation_repo, consultation_repo, notifier, time, cfg
        )

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
