from datetime import datetime

from src.domain.entities import DeviceTestResults, Invitation, InvitationStatus

STATUS_RANK: dict[InvitationStatus, int] = {
    InvitationStatus.ISSUED: 0,
    InvitationStatus.ACKNOWLEDGED: 1,
    InvitationStatus.DEVICE_TESTED: 2,
    InvitationStatus.ACCEPTED: 3,
}


def can_transition(current: InvitationStatus, new: InvitationStatus) -> bool:
    """
    Status only moves forward. Staying put is allowed (idempotent write).
    """
    return STATUS_RANK[new] >= STATUS_RANK[current]


def statuses_before(status: InvitationStatus) -> set[InvitationStatus]:
    """All statuses strictly earlier than `status`."""
    rank = STATUS_RANK[status]
    return {s for s, r in STATUS_RANK.items() if r < rank}


def transition(
    invitation: Invitation,
    new_status: InvitationStatus,
    now: datetime,
    device_test: DeviceTestResults | None = None,
) -> Invitation:
    """
    Return a NEW Invitation with the updated status and the timestamp of
    the state reached. Timestamps already set are kept.
    Raises ValueError if the transition would regress the status.
    """
    if not can_transition(invitation.status, new_status):
        raise ValueError(
            f"Invalid transition from {invitation.status.value} to {new_status.value}"
        )

    updates: dict[str, object] = {"status": new_status}
    if device_test is not None:
        updates["device_test"] = device_test

    if new_status == InvitationStatus.ACKNOWLEDGED and invitation.acknowledged_at is None:
        updates["acknowledged_at"] = now
    elif new_status == InvitationStatus.DEVICE_TESTED:
        updates["device_tested_at"] = now
    elif new_status == InvitationStatus.ACCEPTED and invitation.accepted_at is None:
        updates["accepted_at"] = now

    return invitation.model_copy(update=updates)
