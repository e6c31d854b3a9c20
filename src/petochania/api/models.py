"""Pydantic request models for the Petochania API.

Every payload is validated against an explicit model: unknown fields are
rejected and each entity has its own update model listing the fields a
client may change.  Field names are snake_case in Python and camelCase on
the wire (``birth_date`` <-> ``birthDate``), matching the keys stored in the
JSON document.

Models
------
LoginRequest
    Payload for ``POST /api/login``.
UserUpdate
    Payload for ``PUT /api/user``.
CatCreate / CatUpdate
    ``data`` field of the cat multipart forms.
GalleryItemCreate / GalleryItemUpdate
    ``data`` field of the gallery multipart forms.
FAQItemCreate / FAQItemUpdate
    JSON body of the FAQ routes.
ReviewCreate / ReviewUpdate
    ``data`` field of the review multipart forms.
SettingsUpdate
    JSON body of ``PUT /api/settings``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for all request models: camelCase aliases, no unknown fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Fields as they are stored, with unset optional fields left out."""
        return self.model_dump(by_alias=True, exclude_none=True)


class PartialUpdate(ApiModel):
    """Base for update models; only fields the client sent are dumped."""

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Authentication.
# ---------------------------------------------------------------------------


class LoginRequest(ApiModel):
    """Request body for ``POST /api/login``."""

    # Credentials are compared and hashed exactly as sent.
    model_config = ConfigDict(str_strip_whitespace=False)

    username: str
    password: str


class UserUpdate(PartialUpdate):
    """Request body for ``PUT /api/user``.

    Attributes:
        username: New username.  Omit to keep the current one.
        password: New password, re-hashed before storage.  Omit to keep
            the current one.
    """

    model_config = ConfigDict(str_strip_whitespace=False)

    username: str | None = Field(default=None, min_length=1, max_length=64)
    password: str | None = Field(default=None, min_length=1, max_length=72)

    @model_validator(mode="after")
    def _require_change(self) -> UserUpdate:
        if not self.username and not self.password:
            raise ValueError("username or password is required")
        return self


# ---------------------------------------------------------------------------
# Cats.
# ---------------------------------------------------------------------------


class CatCreate(ApiModel):
    """Fields of a new cat.  Images arrive as separate file parts."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    breed: str | None = None
    gender: str | None = None
    birth_date: str | None = Field(default=None, description="ISO date, e.g. 2024-03-01")
    color: str | None = None
    status: str | None = None
    price: int | float | str | None = None
    description: str | None = None


class CatUpdate(PartialUpdate):
    """Fields of a cat that may be changed; omitted fields are kept."""

    name: str | None = Field(default=None, min_length=1, max_length=120)
    breed: str | None = None
    gender: str | None = None
    birth_date: str | None = None
    color: str | None = None
    status: str | None = None
    price: int | float | str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Gallery.
# ---------------------------------------------------------------------------


class GalleryItemCreate(ApiModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None


class GalleryItemUpdate(PartialUpdate):
    title: str | None = None
    description: str | None = None
    category: str | None = None


# ---------------------------------------------------------------------------
# FAQ.
# ---------------------------------------------------------------------------


class FAQItemCreate(ApiModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    order: int | None = None


class FAQItemUpdate(PartialUpdate):
    question: str | None = Field(default=None, min_length=1)
    answer: str | None = Field(default=None, min_length=1)
    order: int | None = None


# ---------------------------------------------------------------------------
# Reviews.
# ---------------------------------------------------------------------------


class ReviewCreate(ApiModel):
    author: str = Field(..., min_length=1, max_length=120)
    text: str = Field(..., min_length=1)
    rating: int | None = Field(default=None, ge=1, le=5)
    date: str | None = None


class ReviewUpdate(PartialUpdate):
    author: str | None = Field(default=None, min_length=1, max_length=120)
    text: str | None = Field(default=None, min_length=1)
    rating: int | None = Field(default=None, ge=1, le=5)
    date: str | None = None


# ---------------------------------------------------------------------------
# Settings.
# ---------------------------------------------------------------------------


class SocialLink(ApiModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class SettingsUpdate(PartialUpdate):
    """Request body for ``PUT /api/settings``; a shallow merge.

    ``social_links`` replaces the whole list when present.
    """

    site_title: str | None = None
    site_description: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    social_links: list[SocialLink] | None = None
