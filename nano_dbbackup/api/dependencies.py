"""Dependency injection for FastAPI."""

from fastapi import Request

from nano_dbbackup.backup import BackupOrchestrator
from nano_dbbackup.config import BackupConfig


async def get_backup_config(request: Request) -> BackupConfig:
    """Get pipeline config from app state."""
    return request.app.state.backup_config


async def get_orchestrator(request: Request) -> BackupOrchestrator:
    """New orchestrator per request; instances track one request's stage."""
    return BackupOrchestrator(request.app.state.backup_config)
