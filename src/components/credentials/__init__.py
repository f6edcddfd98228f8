"""
Credentials component - bearer credential verification and identity resolution.
"""

from .component import (
    run,
    run_authenticate,
    run_resolve,
    run_verify,
)
from .models import (
    AuthenticateInput,
    AuthenticateOutput,
    CredentialConfig,
    CredentialError,
    CredentialErrorCode,
    Handshake,
    IdentityClaim,
    ResolveInput,
    ResolveOutput,
    VerifyInput,
    VerifyOutput,
)
from .ports import (
    CredentialCodecPort,
    CredentialDecodeError,
    CredentialSource,
    UserLookupPort,
)
from .sources import (
    HandshakeCredentialSource,
    HeaderCredentialSource,
    bearer_token,
)

__all__ = [
    # Entry points
    "run",
    "run_authenticate",
    "run_resolve",
    "run_verify",
    # Input models
    "AuthenticateInput",
    "ResolveInput",
    "VerifyInput",
    # Output models
    "AuthenticateOutput",
    "ResolveOutput",
    "VerifyOutput",
    # Shared models
    "CredentialConfig",
    "CredentialError",
    "CredentialErrorCode",
    "Handshake",
    "IdentityClaim",
    # Ports
    "CredentialCodecPort",
    "CredentialDecodeError",
    "CredentialSource",
    "UserLookupPort",
    # Sources
    "HandshakeCredentialSource",
    "HeaderCredentialSource",
    "bearer_token",
]
