"""Backup pipeline: probe, size, dump, verify, upload."""

import asyncio
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from .._utils import StageTimer, logger, mask_connection_url
from ..config import BackupConfig
from .dump import DumpExecutor
from .errors import BackupError, BackupTimeoutError, ConnectionFailedError
from .models import BackupRequest, BackupStage, EventKind, ProgressEvent
from .probe import PostgresProbe
from .storage import BaseUploader, get_uploader
from .utils import build_artifact_name, compute_timeout_budget, generate_backup_name

T = TypeVar("T")

ProgressCallback = Callable[[ProgressEvent], None]
UploaderFactory = Callable[..., BaseUploader]


class BackupOrchestrator:
    """Drive one backup request through the pipeline.

    ``run`` yields progress events followed by exactly one terminal event.
    Cancelling the consuming task cancels the in-flight stage, which kills a
    running pg_dump process or aborts the upload.
    """

    def __init__(
        self,
        config: Optional[BackupConfig] = None,
        probe: Optional[PostgresProbe] = None,
        dump_executor: Optional[DumpExecutor] = None,
        uploader_factory: Optional[UploaderFactory] = None,
    ):
        self.config = config or BackupConfig()
        self.probe = probe or PostgresProbe(connect_timeout=self.config.probe_timeout)
        self.dump_executor = dump_executor or DumpExecutor(self.config.dump)
        self.uploader_factory = uploader_factory or get_uploader
        self.artifact_dir = Path(self.config.artifact_dir)
        self.stage = BackupStage.IDLE

    def resolve_name(self, request: BackupRequest) -> str:
        return request.name or generate_backup_name(request.connection_url)

    async def run(self, request: BackupRequest) -> AsyncIterator[ProgressEvent]:
        """Stream progress for request; never raises BackupError."""
        stages = self._stages(request)
        try:
            async for event in stages:
                yield event
        except BackupError as e:
            logger.error(f"Backup failed during {self.stage.value}: {e}")
            yield ProgressEvent.error(
                message=e.user_message,
                details=e.details or None,
                original_error=e.original_error or e.message,
            )
        except Exception as e:
            logger.exception(f"Unexpected error during {self.stage.value}")
            yield ProgressEvent.error(
                message=f"Database backup failed: {e}", original_error=str(e)
            )
        finally:
            await stages.aclose()

    async def execute(
        self,
        request: BackupRequest,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ProgressEvent:
        """Run without streaming and return the ``complete`` event.

        Raises:
            BackupError: The terminal failure of the pipeline
        """
        result = None
        stages = self._stages(request)
        try:
            async for event in stages:
                if event.kind is EventKind.COMPLETE:
                    result = event
                elif on_progress is not None:
                    on_progress(event)
        except BackupError as e:
            logger.error(f"Backup failed during {self.stage.value}: {e}")
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during {self.stage.value}")
            raise BackupError(f"Database backup failed: {e}", original_error=str(e)) from e
        finally:
            await stages.aclose()
        return result

    async def _stages(self, request: BackupRequest) -> AsyncIterator[ProgressEvent]:
        timer = StageTimer()
        backup_name = self.resolve_name(request)
        artifact_path = self.artifact_dir / build_artifact_name(backup_name)
        logger.info(
            f"Starting backup '{backup_name}' of {mask_connection_url(request.connection_url)}"
        )

        try:
            self.stage = BackupStage.PROBING
            yield ProgressEvent.progress(2, "Testing database connection...")
            check = await self.probe.check_connection(request.connection_url)
            if not check.success:
                raise ConnectionFailedError(
                    f"Database connection test failed: {check.message}",
                    original_error=check.message,
                )
            timer.log("Connection verified")

            self.stage = BackupStage.ESTIMATING
            yield ProgressEvent.progress(5, "Database connection successful, analyzing size...")
            estimate = await self.probe.estimate_size(request.connection_url)
            budget = compute_timeout_budget(
                estimate.size_bytes,
                self.config.min_timeout_minutes,
                self.config.max_timeout_minutes,
            )
            logger.info(f"Setting backup timeout to {budget.minutes} minutes based on database size")

            self.stage = BackupStage.DUMPING
            yield ProgressEvent.progress(
                10,
                f"Starting database backup ({estimate.size_mb:.2f} MB, "
                f"{estimate.tables_count} tables)...",
            )
            await self._with_budget(
                self.dump_executor.run(request.connection_url, artifact_path),
                budget.seconds,
                f"Database backup operation timed out after {budget.minutes} minutes",
            )
            timer.log("pg_dump execution completed")

            self.stage = BackupStage.VERIFYING
            yield ProgressEvent.progress(50, "Database backup completed, preparing for upload...")
            self.dump_executor.verify(artifact_path)

            yield ProgressEvent.progress(60, "Reading backup file...")
            buffer = await asyncio.to_thread(artifact_path.read_bytes)

            self.stage = BackupStage.UPLOADING
            yield ProgressEvent.progress(70, "Uploading to cloud storage...")
            uploader = self.uploader_factory(request.destination, self.config.upload)
            upload = await self._with_budget(
                uploader.upload(buffer, artifact_path.name),
                budget.seconds,
                "Cloud storage upload operation timed out",
            )
            timer.log("Upload completed")

            self.stage = BackupStage.DONE
            yield ProgressEvent.progress(100, "Upload completed successfully")
            logger.info(f"Database backup uploaded to {upload.provider}: {artifact_path.name}")
            yield ProgressEvent.complete(
                name=backup_name, provider=upload.provider, url=upload.public_url
            )
        except BaseException:
            self.stage = BackupStage.FAILED
            raise
        finally:
            self._cleanup(artifact_path)

    @staticmethod
    async def _with_budget(operation: Awaitable[T], seconds: float, message: str) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=seconds)
        except asyncio.TimeoutError as e:
            raise BackupTimeoutError(message, original_error=message) from e

    def _cleanup(self, artifact_path: Path) -> None:
        if self.config.retain_artifacts or not artifact_path.exists():
            return
        try:
            artifact_path.unlink()
            logger.debug(f"Removed local artifact {artifact_path}")
        except OSError as e:
            logger.warning(f"Error cleaning up backup file {artifact_path}: {e}")
