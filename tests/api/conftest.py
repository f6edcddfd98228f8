import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.adapters.dev_notifier import DevNotificationAdapter
from src.api import deps
from src.api.routes import auth, public_invites, realtime
from src.components.invite import InviteConfig


@pytest.fixture
def notifier() -> DevNotificationAdapter:
    return DevNotificationAdapter()


@pytest.fixture
def app(invitation_repo, consultation_repo, user_repo, notifier, clock) -> FastAPI:
    """Test FastAPI app wired to the temporary database."""
    app = FastAPI()
    app.include_router(public_invites.router, prefix="/public/invites")
    app.include_router(auth.router, prefix="/api/auth")
    app.include_router(realtime.router)

    app.dependency_overrides[deps.get_invitation_repo] = lambda: invitation_repo
    app.dependency_overrides[deps.get_consultation_repo] = lambda: consultation_repo
    app.dependency_overrides[deps.get_user_repo] = lambda: user_repo
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_clock] = lambda: clock
    app.dependency_overrides[deps.get_invite_config] = lambda: InviteConfig(
        patient_base_url="https://patient.example"
    )
    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def jwt_secret(monkeypatch) -> str:
    secret = "api-test-secret"
    monkeypatch.setenv("JWT_SECRET", secret)
    return secret
