"""
Public invitation endpoints (no login required, the token is the credential).

Endpoints:
- GET  /public/invites/acknowledge/{token}
- POST /public/invites/complete-device-test/{token}
- GET  /public/invites/details/{token}
- POST /public/invites/send-pre-consultation-email/{invitation_id}
- POST /public/invites/join-consultation/{token}
"""

from __future__ import annotations

import logging
from typing import Any, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from src.adapters.clock import SystemClock
from src.adapters.dev_notifier import DevNotificationAdapter
from src.adapters.sqlite.repos import SQLiteConsultationRepo, SQLiteInvitationRepo
from src.api.deps import (
    get_clock,
    get_consultation_repo,
    get_invitation_repo,
    get_invite_config,
    get_notifier,
)
from src.api.schemas import (
    AcknowledgeResponse,
    DetailsResponse,
    DeviceTestResponse,
    ErrorResponse,
    InvitationSummary,
    JoinResponse,
    NoticeResponse,
)
from src.components.invite import (
    AcknowledgeInput,
    CompleteDeviceTestInput,
    GetDetailsInput,
    InviteConfig,
    InviteError,
    InviteErrorCode,
    JoinViaReminderInput,
    SendPreConsultationNoticeInput,
    run_acknowledge,
    run_complete_device_test,
    run_get_details,
    run_join_via_reminder,
    run_send_pre_consultation_notice,
)
from src.domain.entities import DeviceTestResults

logger = logging.getLogger(__name__)

router = APIRouter()

STATUS_BY_CODE: dict[InviteErrorCode, int] = {
    InviteErrorCode.INVITATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    InviteErrorCode.INVITATION_EXPIRED: status.HTTP_410_GONE,
    InviteErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    InviteErrorCode.DEVICE_TEST_WINDOW_CLOSED: status.HTTP_400_BAD_REQUEST,
    InviteErrorCode.INVITATION_NOT_ACCEPTED: status.HTTP_400_BAD_REQUEST,
    InviteErrorCode.DEPENDENCY_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Invitation not found"},
    503: {"model": ErrorResponse, "description": "Dependency failure, retryable"},
}


def raise_for_errors(errors: list[InviteError]) -> NoReturn:
    """Translate the first component error into an HTTPException."""
    if not errors:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "UNKNOWN", "message": "Unable to process invitation"},
        )
    error = errors[0]
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail={"code": error.code.value, "message": error.message},
    )


def parse_device_test(body: Any) -> DeviceTestResults:
    """Boundary validation: three required strict booleans or INVALID_INPUT."""
    try:
        return DeviceTestResults.model_validate(body)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in e.errors()})
        logger.info("Rejected device-test payload (invalid: %s)", ", ".join(fields))
        raise_for_errors(
            [
                InviteError(
                    InviteErrorCode.INVALID_INPUT,
                    "cameraTest, microphoneTest and speakerTest must all be booleans "
                    f"(invalid: {', '.join(fields)})",
                )
            ]
        )


async def device_test_body(request: Request) -> DeviceTestResults:
    """Read the raw body so malformed JSON gets the same 400 as a bad shape."""
    try:
        body = await request.json()
    except ValueError:
        logger.info("Rejected device-test payload (body is not JSON)")
        raise_for_errors(
            [InviteError(InviteErrorCode.INVALID_INPUT, "Request body must be a JSON object")]
        )
    return parse_device_test(body)


@router.get(
    "/acknowledge/{token}",
    response_model=AcknowledgeResponse,
    responses={**ERROR_RESPONSES, 410: {"model": ErrorResponse, "description": "Expired"}},
    summary="Acknowledge a consultation invitation",
)
def acknowledge_invite(
    token: str,
    invitation_repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    consultation_repo: SQLiteConsultationRepo = Depends(get_consultation_repo),
    clock: SystemClock = Depends(get_clock),
) -> AcknowledgeResponse:
    result = run_acknowledge(AcknowledgeInput(token=token), invitation_repo, consultation_repo, clock)
    if not result.success or result.details is None:
        raise_for_errors(result.errors)

    message = (
        "Invitation already acknowledged and accepted."
        if result.already_completed
        else "Invitation acknowledged successfully. Please complete device testing."
    )
    return AcknowledgeResponse(
        message=message,
        invitation=InvitationSummary.from_details(result.details),
        device_test_required=result.device_test_required,
        already_completed=result.already_completed,
    )


@router.post(
    "/complete-device-test/{token}",
    response_model=DeviceTestResponse,
    responses={**ERROR_RESPONSES, 410: {"model": ErrorResponse, "description": "Expired"}},
    summary="Complete device testing and accept invitation",
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {
                    "schema": DeviceTestResults.model_json_schema(by_alias=True)
                }
            },
        }
    },
)
def complete_device_test(
    token: str,
    results: DeviceTestResults = Depends(device_test_body),
    invitation_repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    consultation_repo: SQLiteConsultationRepo = Depends(get_consultation_repo),
    notifier: DevNotificationAdapter = Depends(get_notifier),
    clock: SystemClock = Depends(get_clock),
    config: InviteConfig = Depends(get_invite_config),
) -> DeviceTestResponse:
    result = run_complete_device_test(
        CompleteDeviceTestInput(token=token, results=results),
        invitation_repo,
        consultation_repo,
        notifier,
        clock,
        config,
    )
    if not result.success or result.details is None:
        raise_for_errors(result.errors)

    prefix = (
        "Invitation was already accepted."
        if result.already_accepted
        else "Invitation accepted successfully!"
    )
    return DeviceTestResponse(
        message=f"{prefix} {result.reminder_message or ''}".strip(),
        invitation=InvitationSummary.from_details(result.details),
        already_accepted=result.already_accepted,
        notification_sent=result.notification_sent,
    )


@router.get(
    "/details/{token}",
    response_model=DetailsResponse,
    responses=ERROR_RESPONSES,
    summary="Get invitation details",
)
def get_invite_details(
    token: str,
    invitation_repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    consultation_repo: SQLiteConsultationRepo = Depends(get_consultation_repo),
    clock: SystemClock = Depends(get_clock),
) -> DetailsResponse:
    result = run_get_details(GetDetailsInput(token=token), invitation_repo, consultation_repo, clock)
    if not result.success or result.details is None:
        raise_for_errors(result.errors)

    return DetailsResponse(
        invitation=InvitationSummary.from_details(result.details),
        expired=result.details.expired,
    )


@router.post(
    "/send-pre-consultation-email/{invitation_id}",
    response_model=NoticeResponse,
    responses=ERROR_RESPONSES,
    summary="Send (or resend) the pre-consultation notice",
)
def send_pre_consultation_email(
    invitation_id: str,
    invitation_repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    consultation_repo: SQLiteConsultationRepo = Depends(get_consultation_repo),
    notifier: DevNotificationAdapter = Depends(get_notifier),
    config: InviteConfig = Depends(get_invite_config),
) -> NoticeResponse:
    try:
        uid = UUID(invitation_id)
    except ValueError:
        raise_for_errors(
            [InviteError(InviteErrorCode.INVITATION_NOT_FOUND, "Invitation not found")]
        )

    result = run_send_pre_consultation_notice(
        SendPreConsultationNoticeInput(invitation_id=uid),
        invitation_repo,
        consultation_repo,
        notifier,
        config,
    )
    if not result.success or result.room_url is None:
        raise_for_errors(result.errors)

    return NoticeResponse(
        message="Pre-consultation email sent successfully", room_url=result.room_url
    )


@router.post(
    "/join-consultation/{token}",
    response_model=JoinResponse,
    responses={**ERROR_RESPONSES, 410: {"model": ErrorResponse, "description": "Expired"}},
    summary="Join consultation via reminder link",
)
def join_consultation(
    token: str,
    invitation_repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    consultation_repo: SQLiteConsultationRepo = Depends(get_consultation_repo),
    clock: SystemClock = Depends(get_clock),
    config: InviteConfig = Depends(get_invite_config),
) -> JoinResponse:
    result = run_join_via_reminder(
        JoinViaReminderInput(token=token), invitation_repo, consultation_repo, clock, config
    )
    if not result.success or result.details is None or result.waiting_room_url is None:
        raise_for_errors(result.errors)

    return JoinResponse(
        message="Joining consultation. Redirecting to virtual waiting room...",
        invitation=InvitationSummary.from_details(result.details),
        waiting_room_url=result.waiting_room_url,
    )
