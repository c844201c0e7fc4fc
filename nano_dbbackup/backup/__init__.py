"""Database backup pipeline."""

from .dump import DumpExecutor, DumpResult
from .errors import (
    BackupError,
    BackupTimeoutError,
    ConnectionFailedError,
    DumpError,
    DumpFatalError,
    DumpRetryableError,
    EmptyArtifactError,
    SizeEstimationError,
    ToolNotFoundError,
    UploadError,
)
from .models import BackupRequest, BackupStage, EventKind, ProgressEvent, UploadResult
from .orchestrator import BackupOrchestrator
from .probe import PostgresProbe

__all__ = [
    "BackupError",
    "BackupOrchestrator",
    "BackupRequest",
    "BackupStage",
    "BackupTimeoutError",
    "ConnectionFailedError",
    "DumpError",
    "DumpExecutor",
    "DumpFatalError",
    "DumpResult",
    "DumpRetryableError",
    "EmptyArtifactError",
    "EventKind",
    "PostgresProbe",
    "ProgressEvent",
    "SizeEstimationError",
    "ToolNotFoundError",
    "UploadError",
    "UploadResult",
]
