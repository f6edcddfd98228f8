"""
Credential component.

Verifies signed bearer credentials and resolves the identity they carry.
Shared by HTTP routes and the realtime admission guard so there is one
verification path for every transport.

Key behaviors:
- Missing secret is reported before the token is even looked at
- Any decode/signature/expiry failure is INVALID_CREDENTIAL
- Payload without the identity field is MALFORMED_CLAIM
- Unknown identity is a NotFound outcome, not an exception
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from src.ports.errors import CollaboratorError

from .models import (
    AuthenticateInput,
    AuthenticateOutput,
    CredentialConfig,
    CredentialError,
    CredentialErrorCode,
    IdentityClaim,
    ResolveInput,
    ResolveOutput,
    VerifyInput,
    VerifyOutput,
)
from .ports import CredentialCodecPort, CredentialDecodeError, UserLookupPort

logger = logging.getLogger(__name__)


def run_verify(
    inp: VerifyInput,
    codec: CredentialCodecPort,
    config: CredentialConfig,
) -> VerifyOutput:
    if not config.secret:
        return VerifyOutput(
            error=CredentialError(
                CredentialErrorCode.MISCONFIGURED_SECRET, "Credential secret is not configured"
            )
        )

    if not inp.raw_token:
        return VerifyOutput(
            error=CredentialError(CredentialErrorCode.INVALID_CREDENTIAL, "Empty credential")
        )

    try:
        payload = codec.decode(inp.raw_token, config.secret, config.algorithm)
    except CredentialDecodeError as e:
        message = "Credential expired" if e.expired else "Invalid credential"
        return VerifyOutput(error=CredentialError(CredentialErrorCode.INVALID_CREDENTIAL, message))

    if not isinstance(payload, Mapping):
        return VerifyOutput(
            error=CredentialError(CredentialErrorCode.MALFORMED_CLAIM, "Claim is not an object")
        )

    subject = payload.get(config.identity_field)
    if not isinstance(subject, str) or not subject.strip():
        return VerifyOutput(
            error=CredentialError(
                CredentialErrorCode.MALFORMED_CLAIM,
                f"Claim has no '{config.identity_field}' field",
            )
        )

    return VerifyOutput(claim=IdentityClaim(subject=subject, claims=dict(payload)))


def run_resolve(inp: ResolveInput, user_repo: UserLookupPort) -> ResolveOutput:
    try:
        user = user_repo.get_by_email(inp.claim.subject)
    except CollaboratorError as e:
        logger.error("User lookup failed: %s", e)
        return ResolveOutput(
            error=CredentialError(CredentialErrorCode.DEPENDENCY_FAILURE, "User lookup unavailable")
        )

    if user is None:
        return ResolveOutput(found=False)
    return ResolveOutput(user=user, found=True)


def run_authenticate(
    inp: AuthenticateInput,
    codec: CredentialCodecPort,
    config: CredentialConfig,
    user_repo: UserLookupPort,
) -> AuthenticateOutput:
    """Verify then resolve. Unknown identity becomes UNKNOWN_USER."""
    verified = run_verify(VerifyInput(raw_token=inp.raw_token), codec, config)
    if verified.claim is None:
        return AuthenticateOutput(error=verified.error)

    resolved = run_resolve(ResolveInput(claim=verified.claim), user_repo)
    if resolved.error is not None:
        return AuthenticateOutput(claim=verified.claim, error=resolved.error)
    if not resolved.found:
        return AuthenticateOutput(
            claim=verified.claim,
            error=CredentialError(CredentialErrorCode.UNKNOWN_USER, "No user found"),
        )

    return AuthenticateOutput(user=resolved.user, claim=verified.claim)


def run(
    inp: VerifyInput | ResolveInput | AuthenticateInput,
    *,
    codec: CredentialCodecPort | None = None,
    config: CredentialConfig | None = None,
    user_repo: UserLookupPort | None = None,
) -> VerifyOutput | ResolveOutput | AuthenticateOutput:
    if isinstance(inp, VerifyInput):
        assert codec and config
        return run_verify(inp, codec, config)

    elif isinstance(inp, ResolveInput):
        assert user_repo
        return run_resolve(inp, user_repo)

    elif isinstance(inp, AuthenticateInput):
        assert codec and config and user_repo
        return run_authenticate(inp, codec, config, user_repo)

    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
