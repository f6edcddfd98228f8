import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.adapters.auth.crypto import JWTCredentialCodec
from src.adapters.clock import SystemClock
from src.adapters.dev_notifier import DevNotificationAdapter
from src.adapters.sqlite.repos import (
    SQLiteConsultationRepo,
    SQLiteInvitationRepo,
    SQLiteUserRepo,
)
from src.components.admission.models import AdmissionConfig
from src.components.credentials.models import CredentialConfig
from src.components.invite.models import InviteConfig
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("TELEHEALTH_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "telehealth.db")
        self.migrations_dir = str(self.base_dir / "migrations")
        self.rules_path = self.base_dir / "rules.yaml"
        self.patient_url = os.environ.get("PATIENT_URL")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Runtime configuration ---
# Not cached: the secret and the strict toggle are re-read on every use so
# they can be rotated or flipped without a restart.


def get_credential_config(rules: Rules = Depends(get_rules)) -> CredentialConfig:
    return CredentialConfig(
        secret=os.environ.get("JWT_SECRET") or None,
        algorithm=rules.credentials.algorithm,
        identity_field=rules.credentials.identity_field,
    )


def get_admission_config(
    rules: Rules = Depends(get_rules),
    credentials: CredentialConfig = Depends(get_credential_config),
) -> AdmissionConfig:
    return AdmissionConfig(
        credentials=credentials,
        strict=os.environ.get("WS_AUTH_STRICT") == "true",
        public_rejection_reason=rules.realtime.public_rejection_reason,
    )


def get_invite_config(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> InviteConfig:
    policy = rules.invitations
    return InviteConfig(
        patient_base_url=settings.patient_url or policy.patient_base_url,
        device_test_cutoff_minutes=policy.device_test_cutoff_minutes,
        upcoming_notice_window_minutes=policy.upcoming_notice_window_minutes,
    )


# --- Repos ---
def get_invitation_repo(settings: Settings = Depends(get_settings)) -> SQLiteInvitationRepo:
    return SQLiteInvitationRepo(settings.db_path)


def get_consultation_repo(settings: Settings = Depends(get_settings)) -> SQLiteConsultationRepo:
    return SQLiteConsultationRepo(settings.db_path)


def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


# --- Adapters ---
def get_credential_codec() -> JWTCredentialCodec:
    return JWTCredentialCodec()


# Notifier singleton so dev-mode notifications can be inspected
_notifier_instance: DevNotificationAdapter | None = None


def get_notifier() -> DevNotificationAdapter:
    """Get notification adapter singleton."""
    global _notifier_instance
    if _notifier_instance is None:
        _notifier_instance = DevNotificationAdapter()
    return _notifier_instance


_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance
