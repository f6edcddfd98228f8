from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from src.components.credentials.ports import CredentialDecodeError

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24  # 24 hours


def create_access_token(
    data: dict[str, Any],
    secret: str,
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
    algorithm: str = ALGORITHM,
) -> str:
    """
    Create a signed JWT.

    Issuance belongs to the identity provider; this exists for dev tooling
    and tests.

    Args:
        data: Claims to encode in the token
        secret: Signing secret
        expires_delta: Optional custom expiration delta
        now_utc: Current UTC time (for testing/determinism). Defaults to datetime.now(UTC).
    """
    to_encode = data.copy()
    current_time = now_utc if now_utc is not None else datetime.now(UTC)
    expire = current_time + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode.update({"exp": expire})
    encoded_jwt: str = jwt.encode(to_encode, secret, algorithm=algorithm)
    return encoded_jwt


class JWTCredentialCodec:
    """Credential codec backed by python-jose."""

    def decode(self, token: str, secret: str, algorithm: str = ALGORITHM) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[algorithm])
        except ExpiredSignatureError as e:
            raise CredentialDecodeError(str(e), expired=True) from e
        except JWTError as e:
            raise CredentialDecodeError(str(e)) from e
        return cast(dict[str, Any], payload)
