from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer, APIKeyHeader
from pydantic import BaseModel

from .jwt_handler import verify_access_token
from .api_key import verify_api_key

# Tokens are issued by the external identity provider; we only validate them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)

# Defines the expected internal service header
api_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)


class AuthenticatedUser(BaseModel):
    id: str
    email: Optional[str] = None


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> AuthenticatedUser:
    """Dependency to validate the bearer JWT and return the caller's identity."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized. Please sign in to continue.",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    payload = verify_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    request.state.user_id = user_id
    return AuthenticatedUser(id=str(user_id), email=payload.get("email"))

async def verify_internal_api_key(api_key: str = Depends(api_key_header)) -> bool:
    """Dependency to validate internal (admin / service-to-service) requests."""
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header"
        )
    return True
