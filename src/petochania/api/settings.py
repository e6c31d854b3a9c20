"""Site settings routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from petochania.api.dependencies import get_store, require_admin
from petochania.api.models import SettingsUpdate
from petochania.core.security import TokenIdentity
from petochania.core.store import SiteStore

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("")
async def get_settings(store: SiteStore = Depends(get_store)) -> dict:
    """Return the site title, description, contacts and social links."""
    return store.get_settings()


@router.put("")
async def update_settings(
    req: SettingsUpdate,
    identity: TokenIdentity = Depends(require_admin),
    store: SiteStore = Depends(get_store),
) -> dict:
    """Shallow-merge the supplied fields into the settings and return them."""
    return store.update_settings(req.to_document())
