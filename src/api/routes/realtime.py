"""
Realtime consultation channel.

Every connection attempt runs the admission guard before any session logic.
Rejected attempts are accepted and immediately closed with 1008 and the
uniform public reason, the specific failure is only logged. Text frames that
are not JSON get an error event and the connection stays open.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from src.adapters.auth.crypto import JWTCredentialCodec
from src.adapters.sqlite.repos import SQLiteUserRepo
from src.api.deps import get_admission_config, get_credential_codec, get_rules, get_user_repo
from src.components.admission import AdmissionConfig, AdmissionRecord, AdmitInput, run_admit
from src.components.credentials import Handshake
from src.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()


def handshake_from(websocket: WebSocket) -> Handshake:
    """Explicit auth travels as the `token` query parameter."""
    auth: dict[str, Any] = {}
    token = websocket.query_params.get("token")
    if token:
        auth["token"] = token
    return Handshake(auth=auth, headers=websocket.headers)


def connected_event(record: AdmissionRecord) -> dict[str, Any]:
    return {
        "event": "connected",
        "outcome": record.outcome.value,
        "user": record.user.model_dump(mode="json") if record.user else None,
    }


@router.websocket("/ws/consultation")
async def consultation_socket(
    websocket: WebSocket,
    config: AdmissionConfig = Depends(get_admission_config),
    rules: Rules = Depends(get_rules),
    codec: JWTCredentialCodec = Depends(get_credential_codec),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> None:
    # The identity lookup hits SQLite
    record = await run_in_threadpool(
        run_admit,
        AdmitInput(handshake=handshake_from(websocket)),
        config=config,
        codec=codec,
        user_repo=user_repo,
    )

    # Accept before closing, a close during the handshake reaches clients as a bare 403
    await websocket.accept()
    if not record.admitted:
        await websocket.close(
            code=rules.realtime.reject_close_code,
            reason=record.public_reason or rules.realtime.public_rejection_reason,
        )
        return

    # Session handlers downstream read the identity from here
    websocket.state.user = record.user
    await websocket.send_json(connected_event(record))

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                logger.debug("Ignoring malformed realtime frame (%d chars)", len(text))
                await websocket.send_json({"event": "error", "message": "Malformed message"})
                continue
            if isinstance(message, dict) and message.get("event") == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        logger.debug(
            "Realtime connection closed (%s)",
            record.user.email if record.user else "anonymous",
        )
