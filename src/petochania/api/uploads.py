"""Image upload handling.

Uploaded files are written straight into ``<uploads_dir>/<category>/`` under
a collision-resistant name (``<epoch-ms>-<random><ext>``) and referenced from
the JSON document by their public path, ``/uploads/<category>/<name>``.  The
uploads root is mounted as static files by :mod:`petochania.api.main`, so a
stored path is also the URL that serves it.

Only ``image/*`` content types are accepted, and each file is limited in
size.  A request either stores all of its files or none of them.
"""

from __future__ import annotations

import logging
import random
import time
from pathlib import Path, PurePosixPath

from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOADS_URL_PREFIX = "/uploads"
CHUNK_SIZE = 1024 * 1024


class UploadRejectedError(Exception):
    """Raised when an uploaded file cannot be accepted."""

    def __init__(self, message: str, status_code: int):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def make_filename(original_name: str | None) -> str:
    """Build a stored filename from the current time and a random suffix.

    The original extension is kept (lower-cased); the rest of the client's
    filename is discarded.
    """
    suffix = PurePosixPath(original_name or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{suffix}"


class UploadHandler:
    """Store uploaded images for one uploads root."""

    def __init__(self, uploads_dir: Path, max_file_size: int):
        self.uploads_dir = Path(uploads_dir)
        self.max_file_size = max_file_size

    async def save_all(
        self,
        files: list[UploadFile],
        category: str,
        *,
        max_files: int = 1,
    ) -> list[str]:
        """Store every file of a request and return their public paths.

        If any file is rejected, the files already written for this request
        are removed before the error propagates.

        Raises:
            UploadRejectedError: Too many files, a non-image content type,
                or a file over the size limit.
        """
        if len(files) > max_files:
            raise UploadRejectedError(
                f"Too many files: at most {max_files} allowed",
                400,
            )

        saved: list[str] = []
        try:
            for upload in files:
                saved.append(await self.save(upload, category))
        except UploadRejectedError:
            for public_path in saved:
                self.remove(public_path)
            raise
        return saved

    async def save(self, upload: UploadFile, category: str) -> str:
        """Stream one upload to disk and return its public path."""
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            logger.warning(f"Rejected upload {upload.filename!r} with type {content_type!r}")
            raise UploadRejectedError(
                "Only image files are allowed!",
                415,
            )

        directory = self.uploads_dir / category
        directory.mkdir(parents=True, exist_ok=True)
        filename = make_filename(upload.filename)
        destination = directory / filename

        written = 0
        with open(destination, "wb") as handle:
            while chunk := await upload.read(CHUNK_SIZE):
                written += len(chunk)
                if written > self.max_file_size:
                    break
                handle.write(chunk)

        if written > self.max_file_size:
            destination.unlink(missing_ok=True)
            limit_mb = self.max_file_size / (1024 * 1024)
            logger.warning(f"Rejected upload {upload.filename!r}: larger than {limit_mb:g}MB")
            raise UploadRejectedError(
                f"File too large: the limit is {limit_mb:g}MB",
                413,
            )

        public_path = f"{UPLOADS_URL_PREFIX}/{category}/{filename}"
        logger.info(f"Stored upload {upload.filename!r} as {public_path} ({written} bytes)")
        return public_path

    def resolve(self, public_path: str) -> Path | None:
        """Map a public ``/uploads/...`` path to a file under the uploads root.

        Returns ``None`` for paths outside the uploads root.
        """
        prefix = f"{UPLOADS_URL_PREFIX}/"
        if not public_path or not public_path.startswith(prefix):
            return None
        root = self.uploads_dir.resolve()
        candidate = (root / public_path[len(prefix):]).resolve()
        if candidate == root or root not in candidate.parents:
            return None
        return candidate

    def remove(self, public_path: str) -> bool:
        """Delete the file behind a public path, if it is ours and exists."""
        path = self.resolve(public_path)
        if path is None or not path.is_file():
            return False
        path.unlink()
        logger.info(f"Removed upload {public_path}")
        return True
