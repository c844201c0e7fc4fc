"""Google Drive uploader using a service account."""

import asyncio
import io
import json
import os
from typing import Any, Dict, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError
from googleapiclient.http import MediaIoBaseUpload

from ..._utils import logger
from ..errors import UploadError
from ..models import ManagedDriveDescriptor, UploadResult
from .base import BaseUploader, guess_content_type

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
CREDENTIALS_ENV = "GOOGLE_SERVICE_ACCOUNT_CREDENTIALS"


class DriveUploader(BaseUploader):
    """Upload artifacts to Google Drive and apply sharing rules.

    The Drive client is synchronous, so each upload runs in a worker thread.
    """

    provider = "google_drive"

    def __init__(self, descriptor: ManagedDriveDescriptor, service: Optional[Any] = None):
        self.descriptor = descriptor
        self._service = service

    def _service_account_info(self) -> Dict[str, Any]:
        account = self.descriptor.service_account
        if account is not None:
            return {
                "client_email": account.client_email,
                "private_key": account.private_key.get_secret_value(),
                "token_uri": TOKEN_URI,
            }

        raw = os.getenv(CREDENTIALS_ENV)
        if not raw:
            raise UploadError(
                f"No Google service account provided and {CREDENTIALS_ENV} is not set"
            )
        try:
            info = json.loads(raw)
        except json.JSONDecodeError as e:
            raise UploadError(f"{CREDENTIALS_ENV} is not valid JSON", original_error=str(e)) from e
        info.setdefault("token_uri", TOKEN_URI)
        return info

    def _get_service(self) -> Any:
        if self._service is None:
            credentials = service_account.Credentials.from_service_account_info(
                self._service_account_info(), scopes=DRIVE_SCOPES
            )
            self._service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return self._service

    def _upload_sync(self, buffer: bytes, destination_name: str) -> UploadResult:
        service = self._get_service()

        metadata: Dict[str, Any] = {"name": destination_name}
        if self.descriptor.folder_id:
            metadata["parents"] = [self.descriptor.folder_id]

        media = MediaIoBaseUpload(
            io.BytesIO(buffer), mimetype=guess_content_type(buffer), resumable=False
        )
        created = service.files().create(
            body=metadata, media_body=media, fields="id, webViewLink"
        ).execute()

        file_id = created.get("id")
        link = created.get("webViewLink")
        if not file_id or not link:
            raise UploadError("Google Drive upload failed")

        if self.descriptor.is_public:
            service.permissions().create(
                fileId=file_id, body={"type": "anyone", "role": "reader"}
            ).execute()

        for email in self.descriptor.shared_emails:
            service.permissions().create(
                fileId=file_id,
                body={"type": "user", "role": "owner", "emailAddress": email},
                transferOwnership=True,
            ).execute()

        logger.info(f"Uploaded {destination_name} to Google Drive as {file_id}")
        return UploadResult(provider=self.provider, storage_url=link, public_url=link)

    async def upload(self, buffer: bytes, destination_name: str) -> UploadResult:
        logger.info(f"Starting Google Drive upload: {destination_name} ({len(buffer):,} bytes)")
        try:
            return await asyncio.to_thread(self._upload_sync, buffer, destination_name)
        except UploadError:
            raise
        except (GoogleApiError, GoogleAuthError, httplib2.HttpLib2Error, OSError, ValueError) as e:
            logger.error(f"Google Drive upload failed: {e}")
            raise UploadError(f"Google Drive upload failed: {e}", original_error=str(e)) from e
