
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt

from bettracker.core.config import settings
from bettracker.core.errors import AuthError

security = HTTPBearer(auto_error=False)


def decode_owner_id(token: str) -> str:
    """Return the subject of a bearer token issued by the auth provider."""
    options = {"require": ["exp", "sub"]}
    if settings.JWT_AUDIENCE is None:
        options["verify_aud"] = False
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            options=options,
        )
    except jwt.PyJWTError as e:
        raise AuthError("Unauthorized") from e

    sub = payload.get("sub")
    if not sub:
        raise AuthError("Unauthorized")
    return str(sub)


async def get_current_owner_id(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if creds is None or creds.scheme.lower() != "bearer":
        raise AuthError("Missing authorization header")
    return decode_owner_id(creds.credentials)
