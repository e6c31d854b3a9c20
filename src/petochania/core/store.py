"""JSON document store for the Petochania backend.

All site content lives in a single JSON document:

- ``users``: the single admin account
- ``cats``, ``gallery``, ``faq``, ``reviews``: entity collections
- ``settings``: site title, contact details and social links

The document is loaded once at startup and held in memory by
:class:`SiteStore`.  Every mutation rewrites the whole file before the
mutating call returns, so the in-memory copy and the file on disk converge
after each call.  Mutations are serialised by one re-entrant lock, which
makes each read-modify-write-save cycle atomic with respect to the others.

An unreadable document is treated as an error rather than silently replaced
with defaults.  Callers that prefer to keep the site up can construct the
store with ``recover_corrupt=True``; the broken file is then moved aside so
nothing is lost.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

COLLECTIONS: tuple[str, ...] = ("cats", "gallery", "faq", "reviews")

# Keys owned by the store; never taken from caller-supplied fields.
_STORE_MANAGED = frozenset({"id", "createdAt", "updatedAt"})

_DOCUMENT_KEYS: tuple[str, ...] = ("users", *COLLECTIONS, "settings")

DEFAULT_SETTINGS: dict[str, Any] = {
    "siteTitle": "Petochania",
    "siteDescription": "Питомник элитных кошек",
    "contactPhone": "8 926 150 2870",
    "contactEmail": "",
    "socialLinks": [
        {"name": "Telegram", "url": "https://t.me/tata_procats"},
        {"name": "WhatsApp", "url": "https://wa.me/message/Y4ZYRHELPNHUE1"},
        {"name": "VK", "url": "https://vk.com/petochania"},
        {
            "name": "Facebook",
            "url": "https://www.facebook.com/share/1A33qj8Nbm/?mibextid=wwXIfr",
        },
        {
            "name": "TikTok",
            "url": "https://www.tiktok.com/@tata.vygodnaya?_t=ZS-90PLbDoj2kE&_r=1",
        },
        {
            "name": "Instagram",
            "url": "https://www.instagram.com/petochania?igsh=MWR3bHhpNjhnd3g3dw%3D%3D&utm_source=qr",
        },
    ],
}


class StoreError(Exception):
    """Base class for store failures."""


class StoreCorruptedError(StoreError):
    """Raised when the document on disk cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Database file {path} is corrupt: {reason}")


class ItemNotFoundError(StoreError):
    """Raised when no entity in a collection has the requested id."""

    def __init__(self, collection: str, item_id: int):
        self.collection = collection
        self.item_id = item_id
        super().__init__(f"No item with id {item_id} in {collection}")


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_document(admin_username: str, admin_password_hash: str) -> dict[str, Any]:
    """Build the document used when no database file exists yet.

    Args:
        admin_username: Username of the seeded admin account.
        admin_password_hash: Password hash of the seeded admin account.

    Returns:
        A fresh document with one user, empty collections and the default
        site settings.
    """
    document: dict[str, Any] = {
        "users": [{"id": 1, "username": admin_username, "password": admin_password_hash}],
    }
    for collection in COLLECTIONS:
        document[collection] = []
    document["settings"] = copy.deepcopy(DEFAULT_SETTINGS)
    return document


def _empty_document() -> dict[str, Any]:
    # Placeholder until load(); has no users, so no login can succeed.
    document: dict[str, Any] = {key: [] for key in ("users", *COLLECTIONS)}
    document["settings"] = copy.deepcopy(DEFAULT_SETTINGS)
    return document


class SiteStore:
    """In-memory site document mirrored to a JSON file.

    Reads hand out deep copies, so callers can never mutate live state
    without going through a store method.
    """

    def __init__(
        self,
        path: Path,
        default_factory: Callable[[], dict[str, Any]] | None = None,
        *,
        recover_corrupt: bool = False,
    ):
        """Create a store bound to *path*.  Nothing is read until :meth:`load`.

        Args:
            path: Location of the JSON document.
            default_factory: Builds the document used when the file does not
                exist.  Defaults to an ``admin`` account with an unusable
                password hash.
            recover_corrupt: Move an unreadable file aside and start from
                defaults instead of raising :class:`StoreCorruptedError`.
        """
        self.path = Path(path)
        self._default_factory = default_factory or (lambda: default_document("admin", ""))
        self._recover_corrupt = recover_corrupt
        self._lock = threading.RLock()
        self._document: dict[str, Any] = _empty_document()
        self._last_id: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Read the document from disk, creating it from defaults if absent.

        Raises:
            StoreCorruptedError: If the file exists but is not a valid
                document and recovery is disabled.
        """
        with self._lock:
            if not self.path.exists():
                logger.info(f"No database at {self.path}, creating one with defaults")
                document = self._default_factory()
                self._write(document)
                self._document = document
                return

            try:
                document = self._read_document()
            except StoreCorruptedError as e:
                if not self._recover_corrupt:
                    logger.error(str(e))
                    raise
                backup = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time())}")
                os.replace(self.path, backup)
                logger.warning(f"{e}; moved it to {backup} and starting from defaults")
                document = self._default_factory()
                self._write(document)
                self._document = document
                return

            self._document = document
            self._last_id = {}
            logger.info(
                f"Loaded database from {self.path}: "
                + ", ".join(f"{len(document[c])} {c}" for c in COLLECTIONS)
            )

    def _read_document(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreCorruptedError(self.path, str(e)) from e

        if not isinstance(raw, dict):
            raise StoreCorruptedError(self.path, "top level is not an object")

        # Older files may predate a collection; fill in whatever is missing.
        missing = [key for key in _DOCUMENT_KEYS if key not in raw]
        if missing:
            defaults = self._default_factory()
            for key in missing:
                raw[key] = defaults[key]
            logger.info(f"Added missing keys to database: {', '.join(missing)}")

        for key in ("users", *COLLECTIONS):
            if not isinstance(raw[key], list):
                raise StoreCorruptedError(self.path, f"'{key}' is not a list")
        if not isinstance(raw["settings"], dict):
            raise StoreCorruptedError(self.path, "'settings' is not an object")
        return raw

    def save(self) -> None:
        """Atomically overwrite the file with the full in-memory document."""
        with self._lock:
            self._write(self._document)

    def _write(self, document: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    @contextmanager
    def transaction(self) -> Iterator[dict[str, Any]]:
        """Yield a working copy of the document under the write lock.

        The copy is written to disk when the body finishes and only then
        becomes the live document.  If the body or the write raises, the
        live document is left exactly as it was.
        """
        with self._lock:
            working = copy.deepcopy(self._document)
            yield working
            self._write(working)
            self._document = working

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole document."""
        with self._lock:
            return copy.deepcopy(self._document)

    # ------------------------------------------------------------------
    # Entity collections
    # ------------------------------------------------------------------

    def list_items(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._collection(collection))

    def get_item(self, collection: str, item_id: int) -> dict[str, Any]:
        with self._lock:
            _, item = self._find(collection, item_id)
            return copy.deepcopy(item)

    def create_item(self, collection: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Append a new entity and persist the document.

        The store assigns ``id`` and ``createdAt``; any such keys in
        *fields* are overwritten.

        Returns:
            A copy of the stored entity.
        """
        with self.transaction() as document:
            items = self._collection(collection, document)
            item: dict[str, Any] = {"id": self._next_id(collection, items)}
            item.update({k: v for k, v in fields.items() if k not in _STORE_MANAGED})
            item["createdAt"] = utc_timestamp()
            items.append(item)
            logger.info(f"Created {collection} item {item['id']}")
            return copy.deepcopy(item)

    def update_item(
        self,
        collection: str,
        item_id: int,
        changes: dict[str, Any],
        *,
        append_images: list[str] | None = None,
    ) -> dict[str, Any]:
        """Shallow-merge *changes* into an entity and persist the document.

        Args:
            collection: Collection name.
            item_id: Id of the entity to update.
            changes: Fields to overwrite; keys not present are untouched.
            append_images: Image paths appended to the entity's ``images``
                list after the merge.

        Returns:
            A copy of the updated entity.

        Raises:
            ItemNotFoundError: If no entity has *item_id*.
        """
        _, updated = self.update_item_with_previous(
            collection, item_id, changes, append_images=append_images
        )
        return updated

    def update_item_with_previous(
        self,
        collection: str,
        item_id: int,
        changes: dict[str, Any],
        *,
        append_images: list[str] | None = None,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Like :meth:`update_item`, but also return the entity as it was.

        Both copies come from the same locked read-modify-write, so the
        previous version is exactly the one this update replaced.
        """
        with self.transaction() as document:
            index, current = self._find(collection, item_id, document)
            updated = {**current, **changes}
            for key in _STORE_MANAGED:
                if key in current:
                    updated[key] = current[key]
            if append_images:
                updated["images"] = list(current.get("images") or []) + list(append_images)
            updated["updatedAt"] = utc_timestamp()
            self._collection(collection, document)[index] = updated
            logger.info(f"Updated {collection} item {item_id}")
            return copy.deepcopy(current), copy.deepcopy(updated)

    def delete_item(self, collection: str, item_id: int) -> dict[str, Any]:
        """Remove an entity and persist the document.

        Returns:
            The removed entity.

        Raises:
            ItemNotFoundError: If no entity has *item_id*.
        """
        with self.transaction() as document:
            index, _ = self._find(collection, item_id, document)
            removed = self._collection(collection, document).pop(index)
            logger.info(f"Deleted {collection} item {item_id}")
            return removed

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_settings(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._document["settings"])

    def update_settings(self, changes: dict[str, Any]) -> dict[str, Any]:
        with self.transaction() as document:
            document["settings"] = {**document["settings"], **changes}
            logger.info(f"Updated settings: {', '.join(sorted(changes)) or 'no fields'}")
            return copy.deepcopy(document["settings"])

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def find_user_by_username(self, username: str) -> dict[str, Any] | None:
        with self._lock:
            user = next(
                (u for u in self._document["users"] if u.get("username") == username),
                None,
            )
            return copy.deepcopy(user)

    def get_user(self, user_id: int) -> dict[str, Any] | None:
        with self._lock:
            user = next((u for u in self._document["users"] if u.get("id") == user_id), None)
            return copy.deepcopy(user)

    def update_user(
        self,
        user_id: int,
        *,
        username: str | None = None,
        password_hash: str | None = None,
    ) -> dict[str, Any]:
        """Change the username and/or password hash of a user.

        Raises:
            ItemNotFoundError: If no user has *user_id*.
        """
        with self.transaction() as document:
            user = next((u for u in document["users"] if u.get("id") == user_id), None)
            if user is None:
                raise ItemNotFoundError("users", user_id)
            if username:
                user["username"] = username
            if password_hash:
                user["password"] = password_hash
            logger.info(f"Updated user {user_id}")
            return copy.deepcopy(user)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collection(
        self, collection: str, document: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        if collection not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {collection}")
        return (document if document is not None else self._document)[collection]

    def _find(
        self, collection: str, item_id: int, document: dict[str, Any] | None = None
    ) -> tuple[int, dict[str, Any]]:
        for index, item in enumerate(self._collection(collection, document)):
            if item.get("id") == item_id:
                return index, item
        raise ItemNotFoundError(collection, item_id)

    def _next_id(self, collection: str, items: list[dict[str, Any]]) -> int:
        # Ids are creation timestamps in milliseconds, bumped when two
        # creations land in the same millisecond.
        candidate = int(time.time() * 1000)
        floor = max((i["id"] for i in items if isinstance(i.get("id"), int)), default=0)
        floor = max(floor, self._last_id.get(collection, 0))
        new_id = max(candidate, floor + 1)
        self._last_id[collection] = new_id
        return new_id
