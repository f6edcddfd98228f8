"""
Credential component models.

A credential is a signed, time-bound bearer token carrying an identity
claim. It is verified on use and never stored.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.domain.entities import User


class CredentialErrorCode(Enum):
    """Credential-class failures. Kept distinct for diagnostics."""

    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"
    MALFORMED_CLAIM = "MALFORMED_CLAIM"
    MISCONFIGURED_SECRET = "MISCONFIGURED_SECRET"
    UNKNOWN_USER = "UNKNOWN_USER"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"


@dataclass(frozen=True)
class CredentialError:
    code: CredentialErrorCode
    message: str


@dataclass(frozen=True)
class CredentialConfig:
    """Verifier configuration, built by the caller and passed in per use."""

    secret: str | None
    algorithm: str = "HS256"
    identity_field: str = "userEmail"


@dataclass(frozen=True)
class IdentityClaim:
    subject: str
    claims: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Handshake:
    """
    Metadata presented when a realtime connection is opened.

    `auth` is the explicit auth payload (e.g. {"token": "..."}), `headers`
    the transport headers.
    """

    auth: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)


# --- Inputs ---


@dataclass(frozen=True)
class VerifyInput:
    raw_token: str


@dataclass(frozen=True)
class ResolveInput:
    claim: IdentityClaim


@dataclass(frozen=True)
class AuthenticateInput:
    raw_token: str


# --- Outputs ---


@dataclass(frozen=True)
class VerifyOutput:
    claim: IdentityClaim | None = None
    error: CredentialError | None = None

    @property
    def success(self) -> bool:
        return self.claim is not None


@dataclass(frozen=True)
class ResolveOutput:
    """Found(user) | NotFound. `error` is set only when the lookup itself failed."""

    user: User | None = None
    found: bool = False
    error: CredentialError | None = None


@dataclass(frozen=True)
class AuthenticateOutput:
    user: User | None = None
    claim: IdentityClaim | None = None
    error: CredentialError | None = None

    @property
    def success(self) -> bool:
        return self.user is not None
