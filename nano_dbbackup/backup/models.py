"""Data models for backup requests, progress events and results."""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, SecretStr, model_validator


class ObjectStoreProvider(str, Enum):
    AWS = "aws"
    CLOUDFLARE = "cloudflare"
    DIGITALOCEAN = "do"


class ObjectStoreDescriptor(BaseModel):
    """S3-compatible bucket credentials resolved by the caller."""

    model_config = ConfigDict(populate_by_name=True)

    provider: ObjectStoreProvider
    bucket: str = Field(..., min_length=1)
    region: str
    access_key: SecretStr = Field(..., alias="accessKey")
    secret_key: SecretStr = Field(..., alias="secretKey")
    endpoint: str = ""
    base_url: Optional[str] = Field(None, alias="baseUrl")
    base_path: Optional[str] = Field(None, alias="basePath")


class ServiceAccount(BaseModel):
    client_email: str
    private_key: SecretStr


class ManagedDriveDescriptor(BaseModel):
    """Google Drive destination."""

    model_config = ConfigDict(populate_by_name=True)

    folder_id: Optional[str] = Field(None, alias="folderId")
    is_public: bool = Field(True, alias="isPublic")
    shared_emails: List[EmailStr] = Field(default_factory=list, alias="sharedEmails")
    service_account: Optional[ServiceAccount] = Field(None, alias="serviceAccount")


class ObjectStoreDestination(BaseModel):
    kind: Literal["object_store"] = "object_store"
    descriptor: ObjectStoreDescriptor


class DriveDestination(BaseModel):
    kind: Literal["google_drive"] = "google_drive"
    descriptor: ManagedDriveDescriptor


StorageDestination = Annotated[
    Union[ObjectStoreDestination, DriveDestination],
    Field(discriminator="kind"),
]


class BackupRequest(BaseModel):
    """A single, already-authorized backup request.

    Accepts the API body shape ``{name?, connectionUrl, storage}`` where
    ``storage`` is either an object store descriptor or ``{"googleDrive": {...}}``.
    A top-level ``googleDrive`` key is accepted as well and takes precedence.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    connection_url: str = Field(..., alias="connectionUrl", min_length=1)
    destination: StorageDestination

    @model_validator(mode="before")
    @classmethod
    def resolve_destination(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "destination" in data:
            return data

        data = dict(data)
        storage = data.pop("storage", None)
        drive = data.pop("googleDrive", None)
        if drive is None and isinstance(storage, dict) and "googleDrive" in storage:
            drive = storage["googleDrive"]

        if drive is not None:
            data["destination"] = {"kind": "google_drive", "descriptor": drive}
        elif storage is not None:
            data["destination"] = {"kind": "object_store", "descriptor": storage}
        else:
            raise ValueError("Either storage or googleDrive must be provided")
        return data


class ConnectionCheck(BaseModel):
    success: bool
    message: str


class SizeEstimate(BaseModel):
    size_bytes: int = 0
    tables_count: int = 0

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


class TimeoutBudget(BaseModel):
    minutes: int

    @property
    def seconds(self) -> float:
        return self.minutes * 60.0


class UploadResult(BaseModel):
    provider: str
    storage_url: str
    public_url: str


class EventKind(str, Enum):
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


class BackupStage(str, Enum):
    IDLE = "idle"
    PROBING = "probing"
    ESTIMATING = "estimating"
    DUMPING = "dumping"
    VERIFYING = "verifying"
    UPLOADING = "uploading"
    DONE = "done"
    FAILED = "failed"


class ProgressEvent(BaseModel):
    """One event of the progress stream.

    Zero or more ``progress`` events are followed by exactly one terminal
    event (``complete`` or ``error``).
    """

    model_config = ConfigDict(populate_by_name=True)

    kind: EventKind
    percent: Optional[int] = None
    message: Optional[str] = None
    name: Optional[str] = None
    provider: Optional[str] = None
    url: Optional[str] = None
    details: Optional[str] = None
    original_error: Optional[str] = Field(None, alias="originalError")

    @property
    def is_terminal(self) -> bool:
        return self.kind is not EventKind.PROGRESS

    def payload(self) -> Dict[str, Any]:
        """Wire payload, without the event kind."""
        return self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"kind"}
        )

    @classmethod
    def progress(cls, percent: int, message: str) -> "ProgressEvent":
        return cls(kind=EventKind.PROGRESS, percent=percent, message=message)

    @classmethod
    def complete(cls, name: str, provider: str, url: str) -> "ProgressEvent":
        return cls(kind=EventKind.COMPLETE, name=name, provider=provider, url=url)

    @classmethod
    def error(
        cls,
        message: str,
        details: Optional[str] = None,
        original_error: Optional[str] = None,
    ) -> "ProgressEvent":
        return cls(
            kind=EventKind.ERROR,
            message=message,
            details=details,
            original_error=original_error,
        )
