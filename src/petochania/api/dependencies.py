"""Dependency wiring for the FastAPI app.

Shared services are created once by :func:`petochania.api.main.create_app`
and stored on ``app.state``; the functions here hand them to route handlers
through ``Depends``.  :func:`require_admin` is the auth guard for mutating
routes.

Usage:
    @router.post("/protected")
    async def protected(identity: TokenIdentity = Depends(require_admin)):
        return {"user_id": identity.id}
"""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from petochania.api.uploads import UploadHandler
from petochania.core.config import PetochaniaConfig
from petochania.core.security import InvalidTokenError, PasswordHasher, TokenIdentity, TokenService
from petochania.core.store import SiteStore

logger = logging.getLogger(__name__)

# auto_error=False so a missing header yields our 401 rather than FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_config(request: Request) -> PetochaniaConfig:
    return request.app.state.config


def get_store(request: Request) -> SiteStore:
    return request.app.state.store


def get_uploads(request: Request) -> UploadHandler:
    return request.app.state.uploads


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


async def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_tokens),
) -> TokenIdentity:
    """Verify the bearer token and return the identity it carries.

    Raises:
        HTTPException: 401 if no bearer token was sent, 403 if the token is
            invalid or expired.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return tokens.decode(credentials.credentials)
    except InvalidTokenError as e:
        logger.warning(f"Rejected bearer token: {e}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid token",
        ) from e
