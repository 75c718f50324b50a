"""Local image store for product photos and material swatches.

Files live under ``MEDIA_DIR/images/<folder>/<uuid>.<ext>`` and are served
at ``MEDIA_BASE_URL/images/<folder>/<uuid>.<ext>``.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger("nammos-media")

MEDIA_DIR = os.getenv("MEDIA_DIR", "/tmp/nammos-media")
MEDIA_BASE_URL = os.getenv("MEDIA_BASE_URL", "http://localhost:8000/media")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

PRODUCT_FOLDER = "products"
MATERIAL_FOLDER = "materials"
ALLOWED_FOLDERS = {PRODUCT_FOLDER, MATERIAL_FOLDER}
ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp", "gif"}
BUCKET = "images"


class ImageStorage:
    def __init__(self, root: str = MEDIA_DIR, base_url: str = MEDIA_BASE_URL):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, folder: str, filename: str, data: bytes) -> str:
        """Store ``data`` under a fresh uuid name and return its public URL."""
        if folder not in ALLOWED_FOLDERS:
            raise ValueError(f"Unknown image folder: {folder}")
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if ext not in ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported image type: .{ext}")

        relative = f"{folder}/{uuid.uuid4()}.{ext}"
        target = self.root / BUCKET / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info(f"Stored image {relative} ({len(data)} bytes)")
        return f"{self.base_url}/{BUCKET}/{relative}"

    def local_path(self, url: str) -> Optional[Path]:
        """Filesystem path for one of our URLs, or None for foreign URLs."""
        marker = f"/{BUCKET}/"
        if not url.startswith(self.base_url) or marker not in url:
            return None
        relative = url.split(marker, 1)[1]
        bucket_root = (self.root / BUCKET).resolve()
        path = (bucket_root / relative).resolve()
        if bucket_root not in path.parents:
            return None
        return path

    def delete(self, url: str) -> bool:
        """Best-effort removal; False when the URL is not ours or already gone."""
        path = self.local_path(url)
        if path is None or not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            logger.error(f"Error deleting image {url}: {e}")
            return False
        return True
