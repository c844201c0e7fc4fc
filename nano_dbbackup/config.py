"""Configuration management for nano-dbbackup."""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class DumpConfig:
    """pg_dump invocation and retry policy."""
    pg_dump_path: Optional[str] = None  # resolved from PATH when unset
    max_retries: int = 2
    retry_delay: float = 5.0
    attempt_timeout: float = 900.0  # per pg_dump run
    dump_format: str = "c"  # custom format, same as -Fc
    verbose: bool = True

    @classmethod
    def from_env(cls) -> 'DumpConfig':
        """Create config from environment variables."""
        return cls(
            pg_dump_path=os.getenv("PG_DUMP_PATH") or None,
            max_retries=int(os.getenv("DUMP_MAX_RETRIES", "2")),
            retry_delay=float(os.getenv("DUMP_RETRY_DELAY", "5.0")),
            attempt_timeout=float(os.getenv("DUMP_ATTEMPT_TIMEOUT", "900")),
            dump_format=os.getenv("DUMP_FORMAT", "c"),
            verbose=os.getenv("DUMP_VERBOSE", "true").lower() == "true",
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be non-negative, got {self.retry_delay}")
        if self.attempt_timeout <= 0:
            raise ValueError(f"attempt_timeout must be positive, got {self.attempt_timeout}")
        # directory format (-Fd) is not a single uploadable file
        if self.dump_format not in ("c", "p", "t"):
            raise ValueError(f"dump_format must be one of c, p, t, got {self.dump_format}")


@dataclass(frozen=True)
class UploadConfig:
    """Object store client settings."""
    max_attempts: int = 1  # botocore total attempts per request
    connect_timeout: float = 300.0
    read_timeout: float = 300.0
    cache_control: str = "max-age=31536000, s-maxage=31536000"

    @classmethod
    def from_env(cls) -> 'UploadConfig':
        """Create config from environment variables."""
        return cls(
            max_attempts=int(os.getenv("S3_MAX_ATTEMPTS", "1")),
            connect_timeout=float(os.getenv("S3_CONNECT_TIMEOUT", "300")),
            read_timeout=float(os.getenv("S3_READ_TIMEOUT", "300")),
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.max_attempts <= 0:
            raise ValueError(f"max_attempts must be positive, got {self.max_attempts}")
        if self.connect_timeout <= 0 or self.read_timeout <= 0:
            raise ValueError("S3 timeouts must be positive")


@dataclass(frozen=True)
class BackupConfig:
    """Pipeline configuration."""
    artifact_dir: str = "./backups"
    retain_artifacts: bool = False
    min_timeout_minutes: int = 20
    max_timeout_minutes: int = 45
    probe_timeout: float = 5.0
    dump: DumpConfig = field(default_factory=DumpConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    @classmethod
    def from_env(cls) -> 'BackupConfig':
        """Create config from environment variables."""
        return cls(
            artifact_dir=os.getenv("BACKUP_ARTIFACT_DIR", "./backups"),
            retain_artifacts=os.getenv("BACKUP_RETAIN_ARTIFACTS", "false").lower() == "true",
            min_timeout_minutes=int(os.getenv("BACKUP_MIN_TIMEOUT_MINUTES", "20")),
            max_timeout_minutes=int(os.getenv("BACKUP_MAX_TIMEOUT_MINUTES", "45")),
            probe_timeout=float(os.getenv("BACKUP_PROBE_TIMEOUT", "5.0")),
            dump=DumpConfig.from_env(),
            upload=UploadConfig.from_env(),
        )

    def __post_init__(self):
        """Validate configuration."""
        if self.min_timeout_minutes <= 0:
            raise ValueError(f"min_timeout_minutes must be positive, got {self.min_timeout_minutes}")
        if self.max_timeout_minutes < self.min_timeout_minutes:
            raise ValueError(
                f"max_timeout_minutes ({self.max_timeout_minutes}) must be >= "
                f"min_timeout_minutes ({self.min_timeout_minutes})"
            )
        if self.probe_timeout <= 0:
            raise ValueError(f"probe_timeout must be positive, got {self.probe_timeout}")
