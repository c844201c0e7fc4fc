"""Configuration for FastAPI application."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Union
import json

from nano_dbbackup.config import BackupConfig, DumpConfig, UploadConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore extra environment variables
    )

    # API Configuration
    api_prefix: str = "/api/v1"
    api_title: str = "nano-dbbackup API"
    api_version: str = "1.0.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    @field_validator('allowed_origins', mode='before')
    @classmethod
    def parse_allowed_origins(cls, v):
        """Parse allowed_origins from string or list."""
        if isinstance(v, str):
            # If it's a JSON array string, parse it
            if v.startswith('['):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    return [v]
            # Single origin string
            return [v]
        return v

    # Backup pipeline
    backup_artifact_dir: str = "./backups"
    backup_retain_artifacts: bool = False
    backup_min_timeout_minutes: int = 20
    backup_max_timeout_minutes: int = 45
    backup_probe_timeout: float = 5.0

    def backup_config(self) -> BackupConfig:
        """Pipeline config: API settings override the environment defaults."""
        return BackupConfig(
            artifact_dir=self.backup_artifact_dir,
            retain_artifacts=self.backup_retain_artifacts,
            min_timeout_minutes=self.backup_min_timeout_minutes,
            max_timeout_minutes=self.backup_max_timeout_minutes,
            probe_timeout=self.backup_probe_timeout,
            dump=DumpConfig.from_env(),
            upload=UploadConfig.from_env(),
        )


settings = Settings()
