from fastapi import APIRouter, Depends, HTTPException, Request, status

from src.adapters.auth.crypto import JWTCredentialCodec
from src.adapters.sqlite.repos import SQLiteUserRepo
from src.api.deps import get_credential_codec, get_credential_config, get_user_repo
from src.api.schemas import UserResponse
from src.components.credentials import (
    AuthenticateInput,
    CredentialConfig,
    CredentialErrorCode,
    HeaderCredentialSource,
    run_authenticate,
)
from src.domain.entities import UserProjection

router = APIRouter()

_header_source = HeaderCredentialSource()

# Operational failures are not the client's fault
_UNAVAILABLE = {
    CredentialErrorCode.MISCONFIGURED_SECRET,
    CredentialErrorCode.DEPENDENCY_FAILURE,
}


@router.get("/me", response_model=UserResponse)
def read_users_me(
    request: Request,
    codec: JWTCredentialCodec = Depends(get_credential_codec),
    config: CredentialConfig = Depends(get_credential_config),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> UserResponse:
    """Return the identity behind the bearer credential."""
    token = _header_source.extract(request.headers)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHORIZED", "message": "Not authenticated"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = run_authenticate(AuthenticateInput(raw_token=token), codec, config, user_repo)
    if result.user is None:
        if result.error is not None and result.error.code in _UNAVAILABLE:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"code": "UNAVAILABLE", "message": "Authentication unavailable"},
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHORIZED", "message": "Could not validate credentials"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    projection = UserProjection.from_user(result.user)
    return UserResponse(
        id=projection.id,
        email=projection.email,
        display_name=projection.display_name,
        role=projection.role,
    )
