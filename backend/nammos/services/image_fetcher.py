"""Fetch product photos and swatches for server-side compositing.

A failed fetch is never fatal: callers get ``None`` and fall back.
"""
import base64
import logging
import os
from typing import Optional

import httpx

logger = logging.getLogger("nammos-render.fetch")

IMAGE_FETCH_TIMEOUT = float(os.getenv("IMAGE_FETCH_TIMEOUT", "10"))


class ImageFetcher:
    """Resolves an image URL to raw bytes.

    Handles ``data:`` URLs inline, files under the local media store
    directly, and everything else over HTTP.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, storage=None,
                 timeout: float = IMAGE_FETCH_TIMEOUT):
        self.client = client
        self.storage = storage
        self.timeout = timeout

    async def fetch(self, url: Optional[str]) -> Optional[bytes]:
        if not url:
            return None
        try:
            if url.startswith("data:"):
                return _decode_data_url(url)
            if self.storage is not None:
                local = self.storage.local_path(url)
                if local is not None and local.is_file():
                    return local.read_bytes()
            if self.client is not None:
                return await self._get(self.client, url)
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                return await self._get(client, url)
        except Exception as e:
            logger.warning(f"Image fetch failed for {url[:120]}: {e}")
            return None

    async def _get(self, client: httpx.AsyncClient, url: str) -> Optional[bytes]:
        r = await client.get(url)
        if r.status_code != 200:
            logger.warning(f"Image fetch returned HTTP {r.status_code} for {url[:120]}")
            return None
        return r.content


def _decode_data_url(url: str) -> bytes:
    header, _, data = url.partition(",")
    if header.endswith(";base64"):
        return base64.b64decode(data)
    return data.encode()
