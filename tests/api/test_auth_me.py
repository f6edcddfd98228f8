"""
Tests for GET /api/auth/me.
"""

from src.adapters.auth.crypto import create_access_token


class TestMe:
    def test_returns_projection(self, client, practitioner, jwt_secret) -> None:
        token = create_access_token({"userEmail": practitioner.email}, jwt_secret)

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {
            "id": str(practitioner.id),
            "email": "dr.ada@example.com",
            "display_name": "Ada Lovelace",
            "role": "practitioner",
        }

    def test_missing_header(self, client, jwt_secret) -> None:
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_failures_are_uniform(self, client, practitioner, jwt_secret) -> None:
        forged = create_access_token({"userEmail": practitioner.email}, "wrong-secret")
        unknown = create_access_token({"userEmail": "ghost@example.com"}, jwt_secret)
        malformed = create_access_token({"sub": practitioner.email}, jwt_secret)

        details = []
        for token in (forged, unknown, malformed):
            response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
            assert response.status_code == 401
            details.append(response.json()["detail"])

        assert details[0] == details[1] == details[2]

    def test_missing_secret_is_503(self, client, practitioner, monkeypatch) -> None:
        monkeypatch.delenv("JWT_SECRET", raising=False)
        token = create_access_token({"userEmail": practitioner.email}, "any")

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 503
