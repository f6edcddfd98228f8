"""
Realtime admission guard.

Decides admit / admit-anonymous / reject for one connection attempt before
any session logic runs.

Decision table:
- no token, strict      -> reject CREDENTIAL_MISSING
- no token, permissive  -> anonymous
- token, resolved       -> admitted with identity (either mode)
- token, any failure    -> reject with the specific code (strict)
                           anonymous, failure logged (permissive)

Strict rejections all carry the same public reason. The specific code stays
on the record and in the logs.
"""

from __future__ import annotations

import logging

from src.components.credentials.component import run_authenticate
from src.components.credentials.models import (
    AuthenticateInput,
    CredentialError,
    CredentialErrorCode,
)
from src.components.credentials.sources import HandshakeCredentialSource
from src.domain.entities import UserProjection

from .models import AdmissionConfig, AdmissionRecord, AdmitInput
from .ports import CredentialCodecPort, CredentialSource, UserLookupPort

logger = logging.getLogger(__name__)

# Operational faults rather than client mistakes
_OPERATIONAL_CODES = {
    CredentialErrorCode.MISCONFIGURED_SECRET,
    CredentialErrorCode.DEPENDENCY_FAILURE,
}


def _log_failure(error: CredentialError, strict: bool) -> None:
    mode = "strict" if strict else "permissive"
    if error.code in _OPERATIONAL_CODES:
        logger.error("Realtime admission (%s): %s - %s", mode, error.code.value, error.message)
    elif strict:
        logger.warning("Realtime admission rejected: %s - %s", error.code.value, error.message)
    else:
        logger.info(
            "Realtime admission downgraded to anonymous: %s - %s", error.code.value, error.message
        )


def run_admit(
    inp: AdmitInput,
    *,
    config: AdmissionConfig,
    codec: CredentialCodecPort,
    user_repo: UserLookupPort,
    source: CredentialSource | None = None,
) -> AdmissionRecord:
    token = (source or HandshakeCredentialSource()).extract(inp.handshake)

    if token is None:
        if config.strict:
            error = CredentialError(CredentialErrorCode.CREDENTIAL_MISSING, "Realtime token missing")
            _log_failure(error, strict=True)
            return AdmissionRecord.rejected(error, config.public_rejection_reason)
        logger.debug("Realtime admission: no credential, admitting anonymously")
        return AdmissionRecord.anonymous()

    result = run_authenticate(
        AuthenticateInput(raw_token=token), codec, config.credentials, user_repo
    )

    if result.user is not None:
        logger.info("Realtime admission: admitted %s", result.user.email)
        return AdmissionRecord.with_identity(UserProjection.from_user(result.user))

    error = result.error or CredentialError(
        CredentialErrorCode.INVALID_CREDENTIAL, "Credential could not be authenticated"
    )
    _log_failure(error, config.strict)

    if config.strict:
        return AdmissionRecord.rejected(error, config.public_rejection_reason)
    return AdmissionRecord.anonymous()


def run(
    inp: AdmitInput,
    *,
    config: AdmissionConfig,
    codec: CredentialCodecPort,
    user_repo: UserLookupPort,
    source: CredentialSource | None = None,
) -> AdmissionRecord:
    if isinstance(inp, AdmitInput):
        return run_admit(inp, config=config, codec=codec, user_repo=user_repo, source=source)
    raise ValueError(f"Unknown input type: {type(inp)}")
