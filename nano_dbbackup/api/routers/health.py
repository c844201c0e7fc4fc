"""Health check endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from typing import Dict
import os
from pathlib import Path

from ..models import HealthStatus
from ..dependencies import get_backup_config
from nano_dbbackup.backup import DumpExecutor, ToolNotFoundError
from nano_dbbackup.config import BackupConfig

router = APIRouter(prefix="/health", tags=["health"])


def check_pg_dump(config: BackupConfig) -> bool:
    """Check pg_dump is resolvable."""
    try:
        DumpExecutor(config.dump).locate()
        return True
    except ToolNotFoundError:
        return False


def check_artifact_dir(config: BackupConfig) -> bool:
    """Check the artifact directory exists (or can be created) and is writable."""
    artifact_dir = Path(config.artifact_dir)
    try:
        artifact_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    return os.access(artifact_dir, os.W_OK)


@router.get("", response_model=HealthStatus)
async def health_check(config: BackupConfig = Depends(get_backup_config)) -> HealthStatus:
    """Check the local prerequisites of the backup pipeline."""
    pg_dump_ok = check_pg_dump(config)
    artifact_dir_ok = check_artifact_dir(config)

    if pg_dump_ok and artifact_dir_ok:
        status = "healthy"
    elif not pg_dump_ok and not artifact_dir_ok:
        status = "unhealthy"
    else:
        status = "degraded"

    return HealthStatus(
        status=status,
        pg_dump=pg_dump_ok,
        artifact_dir_writable=artifact_dir_ok,
    )


@router.get("/ready")
async def readiness_probe(config: BackupConfig = Depends(get_backup_config)) -> Dict[str, str]:
    """Kubernetes readiness probe."""
    health = await health_check(config)
    if health.status != "healthy":
        raise HTTPException(status_code=503, detail="Service not ready")
    return {"status": "ready"}


@router.get("/live")
async def liveness_probe() -> Dict[str, str]:
    """Kubernetes liveness probe."""
    return {"status": "alive"}
