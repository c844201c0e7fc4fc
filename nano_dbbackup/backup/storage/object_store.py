"""S3-compatible object store uploader (AWS, Cloudflare R2, DigitalOcean Spaces)."""

import re
import time
from typing import Any, Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..._utils import logger
from ...config import UploadConfig
from ..errors import UploadError
from ..models import ObjectStoreDescriptor, UploadResult
from .base import BaseUploader, guess_content_type

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9\-_.]")


def build_object_key(destination_name: str, base_path: Optional[str] = None) -> str:
    """Sanitize the destination name and prefix it with base_path."""
    path = _UNSAFE_KEY_CHARS.sub("", destination_name.lstrip("/"))
    prefix = (base_path or "").strip("/")
    return f"{prefix}/{path}" if prefix else path


def resolve_endpoint(descriptor: ObjectStoreDescriptor) -> str:
    """Endpoint URL, defaulting to the account's R2 endpoint when empty."""
    if descriptor.endpoint:
        return descriptor.endpoint.rstrip("/")
    return f"https://{descriptor.access_key.get_secret_value()}.r2.cloudflarestorage.com"


class ObjectStoreUploader(BaseUploader):
    """Upload artifacts with path-style addressing to an S3-compatible bucket."""

    def __init__(
        self,
        descriptor: ObjectStoreDescriptor,
        config: Optional[UploadConfig] = None,
        session: Optional[Any] = None,
    ):
        self.descriptor = descriptor
        self.config = config or UploadConfig()
        self.session = session or aioboto3.Session()
        self.provider = descriptor.provider.value
        self.endpoint = resolve_endpoint(descriptor)

    def storage_url(self, key: str) -> str:
        return f"{self.endpoint}/{self.descriptor.bucket}/{key}"

    def public_url(self, key: str) -> str:
        if self.descriptor.base_url:
            return f"{self.descriptor.base_url.rstrip('/')}/{key}"
        return self.storage_url(key)

    def _client_config(self) -> Config:
        return Config(
            s3={"addressing_style": "path"},
            retries={"mode": "standard", "max_attempts": self.config.max_attempts},
            connect_timeout=self.config.connect_timeout,
            read_timeout=self.config.read_timeout,
        )

    async def upload(self, buffer: bytes, destination_name: str) -> UploadResult:
        """Put buffer into the bucket.

        Args:
            buffer: Artifact contents
            destination_name: Object name, sanitized before use

        Returns:
            UploadResult with origin and public URLs

        Raises:
            UploadError: On any transport or authorization failure
        """
        key = build_object_key(destination_name, self.descriptor.base_path)
        content_type = guess_content_type(buffer)
        logger.info(f"Starting file upload: {key} ({len(buffer):,} bytes, {content_type})")
        start_time = time.monotonic()

        try:
            async with self.session.client(
                "s3",
                region_name=self.descriptor.region,
                endpoint_url=self.endpoint,
                aws_access_key_id=self.descriptor.access_key.get_secret_value(),
                aws_secret_access_key=self.descriptor.secret_key.get_secret_value(),
                config=self._client_config(),
            ) as s3:
                await s3.put_object(
                    Bucket=self.descriptor.bucket,
                    Key=key,
                    Body=buffer,
                    ContentType=content_type,
                    CacheControl=self.config.cache_control,
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                f"Upload failed after {time.monotonic() - start_time:.2f}s: {key}: {e}"
            )
            raise UploadError(f"Cloud storage upload failed: {e}", original_error=str(e)) from e

        logger.info(f"File upload completed in {time.monotonic() - start_time:.2f}s: {key}")
        return UploadResult(
            provider=self.provider,
            storage_url=self.storage_url(key),
            public_url=self.public_url(key),
        )
