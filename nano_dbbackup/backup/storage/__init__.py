"""Storage backends for backup artifacts."""

from typing import Optional

from ...config import UploadConfig
from ..models import DriveDestination, ObjectStoreDestination, StorageDestination
from .base import BaseUploader, guess_content_type
from .drive import DriveUploader
from .object_store import ObjectStoreUploader


def get_uploader(
    destination: StorageDestination, config: Optional[UploadConfig] = None
) -> BaseUploader:
    """Pick the uploader for a destination variant."""
    if isinstance(destination, ObjectStoreDestination):
        return ObjectStoreUploader(destination.descriptor, config)
    if isinstance(destination, DriveDestination):
        return DriveUploader(destination.descriptor)
    raise ValueError(f"Unsupported storage destination: {type(destination).__name__}")


__all__ = [
    "BaseUploader",
    "DriveUploader",
    "ObjectStoreUploader",
    "get_uploader",
    "guess_content_type",
]
