"""
Credential sources.

One adapter per transport, all feeding the same verifier:
- HeaderCredentialSource: HTTP `Authorization: Bearer <token>`
- HandshakeCredentialSource: realtime handshake, explicit auth field first,
  then the bearer authorization header
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import Handshake

BEARER_PREFIX = "Bearer "


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    # Plain dicts are case-sensitive, transport header maps usually are not
    lowered = name.lower()
    for key, val in headers.items():
        if key.lower() == lowered:
            return val
    return None


def bearer_token(value: str | None) -> str | None:
    """Return the token from a `Bearer <token>` value, None for anything else."""
    if not value or not value.startswith(BEARER_PREFIX):
        return None
    token = value[len(BEARER_PREFIX):].strip()
    return token or None


class HeaderCredentialSource:
    def __init__(self, header_name: str = "authorization"):
        self.header_name = header_name

    def extract(self, carrier: Mapping[str, str]) -> str | None:
        return bearer_token(_header(carrier, self.header_name))


class HandshakeCredentialSource:
    def __init__(self, auth_field: str = "token", header_name: str = "authorization"):
        self.auth_field = auth_field
        self.header_source = HeaderCredentialSource(header_name)

    def extract(self, carrier: Handshake) -> str | None:
        explicit: Any = carrier.auth.get(self.auth_field) if carrier.auth else None
        if isinstance(explicit, str) and explicit.strip():
            return explicit.strip()
        return self.header_source.extract(carrier.headers)
