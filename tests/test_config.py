"""Tests for pipeline configuration."""

import pytest

from nano_dbbackup.config import BackupConfig, DumpConfig, UploadConfig


class TestDumpConfig:
    def test_defaults(self):
        config = DumpConfig()
        assert config.pg_dump_path is None
        assert config.max_retries == 2
        assert config.retry_delay == 5.0
        assert config.dump_format == "c"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PG_DUMP_PATH", "/opt/pg/bin/pg_dump")
        monkeypatch.setenv("DUMP_MAX_RETRIES", "4")
        monkeypatch.setenv("DUMP_RETRY_DELAY", "1.5")
        monkeypatch.setenv("DUMP_VERBOSE", "false")

        config = DumpConfig.from_env()

        assert config.pg_dump_path == "/opt/pg/bin/pg_dump"
        assert config.max_retries == 4
        assert config.retry_delay == 1.5
        assert config.verbose is False

    def test_validation(self):
        with pytest.raises(ValueError, match="max_retries"):
            DumpConfig(max_retries=-1)
        with pytest.raises(ValueError, match="dump_format"):
            DumpConfig(dump_format="x")
        with pytest.raises(ValueError, match="attempt_timeout"):
            DumpConfig(attempt_timeout=0)

    def test_directory_format_rejected(self):
        with pytest.raises(ValueError, match="dump_format"):
            DumpConfig(dump_format="d")


class TestUploadConfig:
    def test_defaults_do_not_retry(self):
        assert UploadConfig().max_attempts == 1

    def test_validation(self):
        with pytest.raises(ValueError):
            UploadConfig(max_attempts=0)
        with pytest.raises(ValueError):
            UploadConfig(read_timeout=0)


class TestBackupConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BACKUP_ARTIFACT_DIR", "/var/backups")
        monkeypatch.setenv("BACKUP_RETAIN_ARTIFACTS", "true")
        monkeypatch.setenv("BACKUP_MAX_TIMEOUT_MINUTES", "60")
        monkeypatch.setenv("S3_MAX_ATTEMPTS", "3")

        config = BackupConfig.from_env()

        assert config.artifact_dir == "/var/backups"
        assert config.retain_artifacts is True
        assert config.max_timeout_minutes == 60
        assert config.upload.max_attempts == 3

    def test_timeout_bounds_validated(self):
        with pytest.raises(ValueError, match="max_timeout_minutes"):
            BackupConfig(min_timeout_minutes=30, max_timeout_minutes=20)

    def test_frozen(self):
        config = BackupConfig()
        with pytest.raises(Exception):
            config.artifact_dir = "/tmp"
