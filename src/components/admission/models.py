"""
Admission component models.

An AdmissionRecord is the ephemeral decision for one realtime connection
attempt. It is never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.components.credentials.models import CredentialConfig, CredentialError, Handshake
from src.domain.entities import UserProjection


class AdmissionOutcome(Enum):
    ADMITTED = "admitted"  # Admitted with a resolved identity
    ANONYMOUS = "anonymous"  # Admitted without identity
    REJECTED = "rejected"


@dataclass(frozen=True)
class AdmissionConfig:
    """
    Admission policy for one attempt.

    strict=True rejects on any credential problem, strict=False admits
    anonymously instead.
    """

    credentials: CredentialConfig
    strict: bool = False
    public_rejection_reason: str = "Unauthorized"


@dataclass(frozen=True)
class AdmitInput:
    handshake: Handshake


@dataclass(frozen=True)
class AdmissionRecord:
    outcome: AdmissionOutcome
    user: UserProjection | None = None
    reason: CredentialError | None = None  # Internal, for diagnostics only
    public_reason: str | None = None  # What the client is told

    @property
    def admitted(self) -> bool:
        return self.outcome != AdmissionOutcome.REJECTED

    @classmethod
    def with_identity(cls, user: UserProjection) -> AdmissionRecord:
        return cls(outcome=AdmissionOutcome.ADMITTED, user=user)

    @classmethod
    def anonymous(cls) -> AdmissionRecord:
        return cls(outcome=AdmissionOutcome.ANONYMOUS)

    @classmethod
    def rejected(cls, reason: CredentialError, public_reason: str) -> AdmissionRecord:
        return cls(outcome=AdmissionOutcome.REJECTED, reason=reason, public_reason=public_reason)
