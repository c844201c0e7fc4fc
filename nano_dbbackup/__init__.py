from .backup import BackupOrchestrator, BackupRequest, ProgressEvent
from .config import BackupConfig, DumpConfig, UploadConfig

__version__ = "0.1.0"
__author__ = "nano-dbbackup"
__url__ = "https://github.com/nano-dbbackup/nano-dbbackup"

__all__ = [
    "BackupOrchestrator",
    "BackupRequest",
    "ProgressEvent",
    "BackupConfig",
    "DumpConfig",
    "UploadConfig",
]
