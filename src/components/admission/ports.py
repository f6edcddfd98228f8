from src.components.credentials.ports import (
    CredentialCodecPort,
    CredentialSource,
    UserLookupPort,
)

__all__ = ["CredentialCodecPort", "CredentialSource", "UserLookupPort"]
