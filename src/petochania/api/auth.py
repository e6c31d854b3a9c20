"""Login and admin-account routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from petochania.api.dependencies import get_hasher, get_store, get_tokens, require_admin
from petochania.api.models import LoginRequest, UserUpdate
from petochania.core.security import PasswordHasher, TokenIdentity, TokenService
from petochania.core.store import ItemNotFoundError, SiteStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

INVALID_CREDENTIALS = "Invalid credentials"


def _public_user(user: dict) -> dict:
    return {"id": user["id"], "username": user["username"]}


@router.post("/login")
async def login(
    req: LoginRequest,
    store: SiteStore = Depends(get_store),
    hasher: PasswordHasher = Depends(get_hasher),
    tokens: TokenService = Depends(get_tokens),
) -> dict:
    """Exchange the admin username and password for a bearer token.

    An unknown username and a wrong password produce the same 401 response.

    Returns:
        Dictionary with ``token`` and ``user`` (``id`` and ``username``).
    """
    user = store.find_user_by_username(req.username)
    if user is None:
        hasher.dummy_verify()
        valid = False
    else:
        valid = hasher.verify(req.password, user.get("password", ""))

    if not valid:
        logger.warning(f"Failed login attempt for {req.username!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    token = tokens.issue(user["id"], user["username"])
    logger.info(f"User {user['username']!r} logged in")
    return {"token": token, "user": _public_user(user)}


@router.put("/user")
async def update_user(
    req: UserUpdate,
    identity: TokenIdentity = Depends(require_admin),
    store: SiteStore = Depends(get_store),
    hasher: PasswordHasher = Depends(get_hasher),
) -> dict:
    """Change the signed-in user's username and/or password.

    Tokens issued before the change stay valid until they expire.
    """
    password_hash = hasher.hash(req.password) if req.password else None
    try:
        user = store.update_user(identity.id, username=req.username, password_hash=password_hash)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return {"message": "User updated successfully", "user": _public_user(user)}
