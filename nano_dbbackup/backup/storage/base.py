"""Storage uploader abstraction."""

from abc import ABC, abstractmethod

import filetype

from ..models import UploadResult

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def guess_content_type(buffer: bytes) -> str:
    """Sniff the MIME type from the buffer's magic bytes."""
    kind = filetype.guess(buffer)
    return kind.mime if kind else DEFAULT_CONTENT_TYPE


class BaseUploader(ABC):
    """Accepts a byte buffer and a destination name, returns where it landed.

    Implementations raise ``UploadError`` on transport or auth failures and
    never retry on their own.
    """

    provider: str

    @abstractmethod
    async def upload(self, buffer: bytes, destination_name: str) -> UploadResult:
        """Upload buffer under destination_name."""
