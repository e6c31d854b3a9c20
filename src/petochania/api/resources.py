"""Routers for the four content collections: cats, gallery, FAQ and reviews.

Each collection gets the same read/delete routes; the write routes differ in
how they receive their payload:

- **cats**: multipart form, ``data`` JSON field plus up to N ``images``
  parts.  New images on update are appended to the existing list.
- **gallery** and **reviews**: multipart form, ``data`` JSON field plus one
  optional ``image`` part.  An update without a new image keeps the old one.
- **faq**: plain JSON body, no files.

Routes
------
========  ==========================  =====================================
Method    Path                        Purpose
========  ==========================  =====================================
GET       ``/api/<c>``                Full collection (public)
GET       ``/api/<c>/{id}``           Single entity (public)
POST      ``/api/<c>``                Create (admin)
PUT       ``/api/<c>/{id}``           Shallow-merge update (admin)
DELETE    ``/api/<c>/{id}``           Delete with its uploads (admin)
========  ==========================  =====================================
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from petochania.api.dependencies import get_config, get_store, get_uploads, require_admin
from petochania.api.models import (
    ApiModel,
    CatCreate,
    CatUpdate,
    FAQItemCreate,
    FAQItemUpdate,
    GalleryItemCreate,
    GalleryItemUpdate,
    PartialUpdate,
    ReviewCreate,
    ReviewUpdate,
)
from petochania.api.uploads import UploadHandler, UploadRejectedError
from petochania.core.config import PetochaniaConfig
from petochania.core.security import TokenIdentity
from petochania.core.store import ItemNotFoundError, SiteStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Collection:
    """Static description of one content collection."""

    name: str
    label: str
    create_model: type[ApiModel]
    update_model: type[PartialUpdate]

    def not_found(self) -> HTTPException:
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{self.label} not found")


CATS = Collection("cats", "Cat", CatCreate, CatUpdate)
GALLERY = Collection("gallery", "Gallery item", GalleryItemCreate, GalleryItemUpdate)
FAQ = Collection("faq", "FAQ item", FAQItemCreate, FAQItemUpdate)
REVIEWS = Collection("reviews", "Review", ReviewCreate, ReviewUpdate)


# ---------------------------------------------------------------------------
# Payload helpers.
# ---------------------------------------------------------------------------


def parse_data_field(raw: str | None, model: type[ApiModel]) -> dict:
    """Decode and validate the JSON ``data`` field of a multipart form.

    A missing or empty field counts as ``{}``.

    Raises:
        RequestValidationError: If the field is not a JSON object or does
            not satisfy *model*.
    """
    try:
        payload = json.loads(raw) if raw and raw.strip() else {}
    except json.JSONDecodeError as e:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body", "data"), "msg": f"Invalid JSON: {e.msg}"}]
        ) from e
    if not isinstance(payload, dict):
        raise RequestValidationError(
            [{"type": "dict_type", "loc": ("body", "data"), "msg": "data must be a JSON object"}]
        )

    try:
        return model.model_validate(payload).to_document()
    except ValidationError as e:
        errors = [
            {**err, "loc": ("body", "data", *err["loc"])}
            for err in e.errors(include_url=False, include_context=False)
        ]
        raise RequestValidationError(errors) from e


def _present(files: list[UploadFile | None]) -> list[UploadFile]:
    # Browsers send an empty part with no filename when no file was chosen.
    return [f for f in files if f is not None and f.filename]


async def _save_uploads(
    uploads: UploadHandler,
    files: list[UploadFile],
    category: str,
    max_files: int,
) -> list[str]:
    try:
        return await uploads.save_all(files, category, max_files=max_files)
    except UploadRejectedError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


def _discard(uploads: UploadHandler, paths: list[str]) -> None:
    for path in paths:
        uploads.remove(path)


def _item_uploads(item: dict) -> list[str]:
    paths = list(item.get("images") or [])
    if item.get("image"):
        paths.append(item["image"])
    return paths


# ---------------------------------------------------------------------------
# Router factories.
# ---------------------------------------------------------------------------


def _base_router(collection: Collection) -> APIRouter:
    """Router with the routes every collection shares: list, get, delete."""
    router = APIRouter(prefix=f"/{collection.name}", tags=[collection.label])

    @router.get("")
    async def list_items(store: SiteStore = Depends(get_store)) -> list[dict]:
        return store.list_items(collection.name)

    @router.get("/{item_id}")
    async def get_item(item_id: int, store: SiteStore = Depends(get_store)) -> dict:
        try:
            return store.get_item(collection.name, item_id)
        except ItemNotFoundError:
            raise collection.not_found()

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: int,
        identity: TokenIdentity = Depends(require_admin),
        store: SiteStore = Depends(get_store),
        uploads: UploadHandler = Depends(get_uploads),
    ) -> dict:
        """Delete an entity and the images uploaded for it."""
        try:
            removed = store.delete_item(collection.name, item_id)
        except ItemNotFoundError:
            raise collection.not_found()
        _discard(uploads, _item_uploads(removed))
        return {"message": f"{collection.label} deleted successfully"}

    return router


def build_cats_router() -> APIRouter:
    router = _base_router(CATS)

    @router.post("")
    async def create_cat(
        identity: Annotated[TokenIdentity, Depends(require_admin)],
        store: Annotated[SiteStore, Depends(get_store)],
        uploads: Annotated[UploadHandler, Depends(get_uploads)],
        settings: Annotated[PetochaniaConfig, Depends(get_config)],
        data: Annotated[str | None, Form()] = None,
        images: Annotated[list[UploadFile] | None, File()] = None,
    ) -> dict:
        """Create a cat from the ``data`` field and any attached ``images``."""
        fields = parse_data_field(data, CATS.create_model)
        paths = await _save_uploads(
            uploads, _present(images or []), CATS.name, settings.max_cat_images
        )
        fields["images"] = paths
        return store.create_item(CATS.name, fields)

    @router.put("/{item_id}")
    async def update_cat(
        item_id: int,
        identity: Annotated[TokenIdentity, Depends(require_admin)],
        store: Annotated[SiteStore, Depends(get_store)],
        uploads: Annotated[UploadHandler, Depends(get_uploads)],
        settings: Annotated[PetochaniaConfig, Depends(get_config)],
        data: Annotated[str | None, Form()] = None,
        images: Annotated[list[UploadFile] | None, File()] = None,
    ) -> dict:
        """Merge the ``data`` fields into a cat and append any new images."""
        changes = parse_data_field(data, CATS.update_model)
        paths = await _save_uploads(
            uploads, _present(images or []), CATS.name, settings.max_cat_images
        )
        try:
            return store.update_item(CATS.name, item_id, changes, append_images=paths)
        except ItemNotFoundError:
            _discard(uploads, paths)
            raise CATS.not_found()

    return router


def build_single_image_router(collection: Collection) -> APIRouter:
    """Routes for a collection whose entities carry one optional ``image``."""
    router = _base_router(collection)

    @router.post("")
    async def create_item(
        identity: Annotated[TokenIdentity, Depends(require_admin)],
        store: Annotated[SiteStore, Depends(get_store)],
        uploads: Annotated[UploadHandler, Depends(get_uploads)],
        data: Annotated[str | None, Form()] = None,
        image: Annotated[UploadFile | None, File()] = None,
    ) -> dict:
        fields = parse_data_field(data, collection.create_model)
        paths = await _save_uploads(uploads, _present([image]), collection.name, 1)
        fields["image"] = paths[0] if paths else ""
        return store.create_item(collection.name, fields)

    @router.put("/{item_id}")
    async def update_item(
        item_id: int,
        identity: Annotated[TokenIdentity, Depends(require_admin)],
        store: Annotated[SiteStore, Depends(get_store)],
        uploads: Annotated[UploadHandler, Depends(get_uploads)],
        data: Annotated[str | None, Form()] = None,
        image: Annotated[UploadFile | None, File()] = None,
    ) -> dict:
        """Merge the ``data`` fields; replace the image only if one was sent."""
        changes = parse_data_field(data, collection.update_model)
        paths = await _save_uploads(uploads, _present([image]), collection.name, 1)
        if paths:
            changes["image"] = paths[0]
        try:
            previous, updated = store.update_item_with_previous(collection.name, item_id, changes)
        except ItemNotFoundError:
            _discard(uploads, paths)
            raise collection.not_found()

        if paths and previous.get("image"):
            uploads.remove(previous["image"])
        return updated

    return router


def build_faq_router() -> APIRouter:
    router = _base_router(FAQ)

    @router.post("")
    async def create_faq(
        req: FAQItemCreate,
        identity: TokenIdentity = Depends(require_admin),
        store: SiteStore = Depends(get_store),
    ) -> dict:
        return store.create_item(FAQ.name, req.to_document())

    @router.put("/{item_id}")
    async def update_faq(
        item_id: int,
        req: FAQItemUpdate,
        identity: TokenIdentity = Depends(require_admin),
        store: SiteStore = Depends(get_store),
    ) -> dict:
        try:
            return store.update_item(FAQ.name, item_id, req.to_document())
        except ItemNotFoundError:
            raise FAQ.not_found()

    return router


def build_collection_routers() -> list[APIRouter]:
    """All content routers, in the order they appear in the OpenAPI docs."""
    return [
        build_cats_router(),
        build_single_image_router(GALLERY),
        build_faq_router(),
        build_single_image_router(REVIEWS),
    ]
