"""Bearer-token authentication for the API."""
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    """Identity of an authenticated API caller."""

    name: str


async def get_api_token(request: Request) -> str:
    """Dependency to get the configured token from app state."""
    return request.app.state.api_token


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    api_token: str = Depends(get_api_token),
) -> Caller:
    """Dependency to require a valid bearer token."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(credentials.credentials.encode(), api_token.encode()):
        logger.warning("Rejected request with an invalid API token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Caller(name="api-token")
