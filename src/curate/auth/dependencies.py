"""FastAPI authentication dependencies."""

from __future__ import annotations

import uuid

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from curate.access.policy import Caller
from curate.auth.jwt import verify_token

_bearer = HTTPBearer(auto_error=False)


async def get_caller(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> Caller:
    """
    Resolve the caller from an optional bearer token.

    No Authorization header means the anonymous caller; a token that fails
    verification is a 401 rather than a silent downgrade to anonymous.
    """
    if credentials is None:
        return Caller.anonymous()
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    return Caller(
        user_id=uuid.UUID(payload["sub"]),
        roles=frozenset(payload.get("roles") or ()),
    )


async def require_user(caller: Caller = Depends(get_caller)) -> Caller:
    """Same as get_caller but rejects anonymous callers with 401.

    Used by routes that are scoped to "my" rows and have no public variant.
    """
    if caller.is_anonymous:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return caller
