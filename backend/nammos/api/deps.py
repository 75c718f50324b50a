"""FastAPI dependency providers for shared services."""
from functools import lru_cache

from nammos.services.image_fetcher import ImageFetcher
from nammos.services.image_storage import ImageStorage
from nammos.services.preview_client import PreviewService


@lru_cache
def get_image_storage() -> ImageStorage:
    return ImageStorage()


def get_image_fetcher() -> ImageFetcher:
    return ImageFetcher(storage=get_image_storage())


def get_preview_service() -> PreviewService:
    return PreviewService(fetcher=get_image_fetcher())
