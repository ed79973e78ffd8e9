"""Uploaded images with locally served previews.

The browser form shows a thumbnail for each image it has queued for a
generation request. Each upload is written to UPLOAD_DIR and exposed at
``/api/uploads/<id>/preview`` for as long as the form holds it; removing or
replacing the upload revokes the preview and deletes the file.
"""

from __future__ import annotations

import logging
import mimetypes
import threading
import uuid
from pathlib import Path
from typing import Iterable, Literal

from pydantic import BaseModel, ValidationError

import config
from schemas.request import ImageAsset

logger = logging.getLogger(__name__)

UploadKind = Literal["product", "celebrity"]
UPLOAD_KINDS: tuple[str, ...] = ("product", "celebrity")


class UploadError(ValueError):
    """Rejected upload (wrong type, too large, unknown id)."""


class UploadedImage(BaseModel):
    upload_id: str
    kind: UploadKind
    filename: str
    mime_type: str
    size_bytes: int
    path: Path

    @property
    def preview_url(self) -> str:
        return f"/api/uploads/{self.upload_id}/preview"

    def to_asset(self) -> ImageAsset:
        return ImageAsset(filename=self.filename, mime_type=self.mime_type, data=self.path.read_bytes())

    def public_dict(self) -> dict:
        return {
            "id": self.upload_id,
            "kind": self.kind,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "preview_url": self.preview_url,
        }


class UploadRegistry:
    """Owns upload previews for their display lifetime."""

    def __init__(self, root: Path | None = None, max_bytes: int | None = None):
        self.root = Path(root or config.UPLOAD_DIR)
        self.max_bytes = config.MAX_UPLOAD_BYTES if max_bytes is None else max_bytes
        self._items: dict[str, UploadedImage] = {}
        self._lock = threading.Lock()

    def add(self, filename: str, mime_type: str, data: bytes, kind: str = "product") -> UploadedImage:
        if kind not in UPLOAD_KINDS:
            raise UploadError(f"Unknown upload kind '{kind}'. Expected one of: {', '.join(UPLOAD_KINDS)}.")
        mime_type = str(mime_type or "").strip().lower() or (mimetypes.guess_type(filename or "")[0] or "")
        try:
            ImageAsset(filename=filename or "", mime_type=mime_type, data=b"")
        except ValidationError as exc:
            raise UploadError(f"{filename or 'file'}: only image files can be uploaded.") from exc
        if not data:
            raise UploadError(f"{filename or 'file'} is empty.")
        if len(data) > self.max_bytes:
            limit_mb = self.max_bytes / (1024 * 1024)
            raise UploadError(f"{filename or 'file'} is larger than the {limit_mb:g}MB limit.")

        upload_id = uuid.uuid4().hex
        suffix = Path(filename or "").suffix.lower() or (mimetypes.guess_extension(mime_type) or "")
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / f"{upload_id}{suffix}"
        path.write_bytes(data)

        item = UploadedImage(
            upload_id=upload_id,
            kind=kind,
            filename=filename or path.name,
            mime_type=mime_type,
            size_bytes=len(data),
            path=path,
        )
        with self._lock:
            self._items[upload_id] = item
        logger.info("Upload stored: %s (%s, %d bytes)", item.filename, kind, item.size_bytes)
        return item

    def get(self, upload_id: str) -> UploadedImage | None:
        with self._lock:
            return self._items.get(upload_id)

    def list_uploads(self, kind: str | None = None) -> list[UploadedImage]:
        with self._lock:
            items = list(self._items.values())
        return [item for item in items if kind is None or item.kind == kind]

    def remove(self, upload_id: str) -> bool:
        """Revoke a preview. Returns False when the id is unknown."""
        with self._lock:
            item = self._items.pop(upload_id, None)
        if item is None:
            return False
        item.path.unlink(missing_ok=True)
        logger.info("Upload revoked: %s", item.filename)
        return True

    def replace(self, kind: str, keep_ids: Iterable[str]) -> list[str]:
        """Release every preview of ``kind`` not in ``keep_ids``; return released ids."""
        keep = set(keep_ids)
        released = [item.upload_id for item in self.list_uploads(kind) if item.upload_id not in keep]
        for upload_id in released:
            self.remove(upload_id)
        return released

    def resolve(self, upload_ids: Iterable[str]) -> list[ImageAsset]:
        assets: list[ImageAsset] = []
        for upload_id in upload_ids:
            item = self.get(upload_id)
            if item is None or not item.path.exists():
                raise UploadError(f"Upload '{upload_id}' was not found. Please re-upload the image.")
            assets.append(item.to_asset())
        return assets

    def clear(self) -> int:
        ids = [item.upload_id for item in self.list_uploads()]
        for upload_id in ids:
            self.remove(upload_id)
        return len(ids)
