from fastapi import Depends, HTTPException
from fastapi.security.api_key import APIKeyHeader
from starlette.status import HTTP_401_UNAUTHORIZED

from . import config

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def require_admin(api_key: str = Depends(api_key_header)):
    """Admin dependency: the request must carry the configured X-API-Key.

    This is the only role check on the web surface; the core operations
    behind the admin endpoints do not check roles again.
    """
    if not config.ADMIN_API_KEY:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Admin API key not configured on server",
        )

    if not api_key or api_key != config.ADMIN_API_KEY:
        raise HTTPException(
            status_code=HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )

    return True
