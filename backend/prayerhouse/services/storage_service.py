"""
Object storage for mission and daily-entry images.

A bucket is a directory under UPLOAD_DIR; objects are addressed by opaque
relative paths and served through the static mount.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Iterable, List, Optional
from prayerhouse.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object cannot be written or addressed."""


def mission_image_path(mission_id: str) -> str:
    """New object path for a mission thumbnail."""
    return f"missions/{mission_id}/{uuid.uuid4()}.webp"


def daily_image_path(mission_id: str) -> str:
    """New object path for a daily entry image."""
    return f"missions/{mission_id}/daily/{uuid.uuid4()}.webp"


class StorageBucket:
    """Filesystem-backed bucket with public URL derivation."""

    def __init__(self, name: Optional[str] = None, root: Optional[str] = None, public_url: Optional[str] = None):
        self.name = name or settings.STORAGE_BUCKET
        self.root = Path(root or settings.UPLOAD_DIR) / self.name
        self.public_url = (public_url if public_url is not None else settings.STORAGE_PUBLIC_URL).rstrip("/")

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        target = (root / path).resolve()
        if not path or target == root or root not in target.parents:
            raise StorageError(f"Invalid object path: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str = "image/webp", upsert: bool = False) -> str:
        """Write an object. Refuses to overwrite unless upsert is set."""
        target = self._resolve(path)
        if target.exists() and not upsert:
            raise StorageError(f"Object already exists: {path}")
        os.makedirs(target.parent, exist_ok=True)
        with open(target, "wb") as buffer:
            buffer.write(data)
        logger.debug(f"Stored {len(data)} bytes ({content_type}) at {self.name}/{path}")
        return path

    def remove(self, paths: Iterable[str]) -> List[str]:
        """Delete objects; missing ones are skipped. Returns removed paths."""
        removed = []
        for path in paths:
            target = self._resolve(path)
            if target.exists():
                os.remove(target)
                removed.append(path)
        if removed:
            logger.info(f"Removed {len(removed)} object(s) from bucket {self.name}")
        return removed

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def get_public_url(self, path: str) -> str:
        """Public URL of an object, derived from its stored path."""
        return f"{self.public_url}/{self.name}/{path}"


def get_storage() -> StorageBucket:
    """Dependency for the image bucket."""
    return StorageBucket()
