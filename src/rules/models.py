from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class CredentialRules(BaseModel):
    algorithm: str = "HS256"
    identity_field: str = "userEmail"


class RealtimeRules(BaseModel):
    reject_close_code: int = Field(default=1008, ge=1000, le=4999)
    public_rejection_reason: str = "Unauthorized"


class InvitationRules(BaseModel):
    device_test_cutoff_minutes: int = Field(default=2, ge=0)
    upcoming_notice_window_minutes: int = Field(default=2, ge=1)
    patient_base_url: str = "http://localhost:4201"


class Rules(BaseModel):
    project: ProjectRules
    credentials: CredentialRules = Field(default_factory=CredentialRules)
    realtime: RealtimeRules = Field(default_factory=RealtimeRules)
    invitations: InvitationRules = Field(default_factory=InvitationRules)
