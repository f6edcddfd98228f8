from typing import Any, Protocol

from src.domain.entities import User


class CredentialDecodeError(Exception):
    """Raised by codecs when a token fails structural, signature or expiry checks."""

    def __init__(self, message: str, expired: bool = False):
        self.expired = expired
        super().__init__(message)


class CredentialCodecPort(Protocol):
    def decode(self, token: str, secret: str, algorithm: str) -> Any:
        """
        Verify signature and expiry and return the decoded payload.
        Raises CredentialDecodeError on any failure.
        """
        ...


class UserLookupPort(Protocol):
    def get_by_email(self, email: str) -> User | None: ...


class CredentialSource(Protocol):
    """Pulls a raw bearer token out of a transport-specific carrier."""

    def extract(self, carrier: Any) -> str | None: ...
