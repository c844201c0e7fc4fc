"""pg_dump execution with retry and timeout policy."""

import asyncio
import re
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Type, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .._utils import logger, redact_secrets
from ..config import DumpConfig
from .errors import (
    DumpError,
    DumpFatalError,
    DumpRetryableError,
    EmptyArtifactError,
    ToolNotFoundError,
)

CONNECTION_ERROR_PATTERNS = [
    re.compile(r"connection to server was lost"),
    re.compile(r"could not connect to server"),
    re.compile(r"server closed the connection unexpectedly"),
    re.compile(r"connection to server at .* failed"),
]

# pg_dump reports most runtime errors with exit code 1
GENERIC_FAILURE_EXIT_CODE = 1


@dataclass(frozen=True)
class DumpResult:
    path: Path
    size_bytes: int
    attempts: int
    duration: float
    stderr: str = ""


def is_connection_error(stderr: str) -> bool:
    return any(pattern.search(stderr) for pattern in CONNECTION_ERROR_PATTERNS)


def classify_failure(exit_code: Optional[int], stderr: str) -> Type[DumpError]:
    """Map a failed pg_dump run to a retryable or fatal error type."""
    if is_connection_error(stderr):
        return DumpRetryableError
    if exit_code == GENERIC_FAILURE_EXIT_CODE:
        return DumpRetryableError
    return DumpFatalError


class DumpExecutor:
    """Run pg_dump into an artifact file.

    Connection losses and per-attempt timeouts are retried with a fixed
    delay; a missing executable, unexpected exit codes and an empty output
    file fail immediately.
    """

    def __init__(self, config: Optional[DumpConfig] = None):
        self.config = config or DumpConfig()

    def locate(self) -> str:
        """Find the pg_dump executable.

        Raises:
            ToolNotFoundError: If pg_dump cannot be resolved
        """
        candidate = self.config.pg_dump_path or "pg_dump"
        resolved = shutil.which(candidate)
        if not resolved:
            raise ToolNotFoundError(
                "pg_dump not found in system PATH. "
                "Please ensure PostgreSQL client tools are installed."
            )
        return resolved

    def build_command(
        self, pg_dump_path: str, connection_url: str, output_path: Path
    ) -> List[str]:
        command = [pg_dump_path, connection_url]
        if self.config.verbose:
            command.append("-v")
        command.extend([f"-F{self.config.dump_format}", "-f", str(output_path)])
        return command

    async def run(self, connection_url: str, output_path: Union[str, Path]) -> DumpResult:
        """Dump the database to output_path.

        Args:
            connection_url: PostgreSQL connection URL
            output_path: Artifact file to write

        Returns:
            DumpResult describing the verified artifact

        Raises:
            DumpError: On any unrecoverable failure
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        pg_dump_path = self.locate()
        command = self.build_command(pg_dump_path, connection_url, output_path)
        logger.debug(f"Using pg_dump from: {pg_dump_path}")

        start_time = time.monotonic()
        stderr = ""
        attempts = 0
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_fixed(self.config.retry_delay),
            retry=retry_if_exception_type(DumpRetryableError),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                attempts = attempt.retry_state.attempt_number
                logger.info(
                    f"pg_dump attempt {attempts}/{self.config.max_retries + 1} starting"
                )
                stderr = await self._run_once(command, connection_url)

        size_bytes = self.verify(output_path)
        duration = time.monotonic() - start_time
        logger.info(
            f"Database backup completed successfully: {output_path.name} "
            f"({size_bytes:,} bytes, {attempts} attempt(s), {duration:.2f}s)"
        )
        return DumpResult(
            path=output_path,
            size_bytes=size_bytes,
            attempts=attempts,
            duration=duration,
            stderr=stderr,
        )

    async def _run_once(self, command: List[str], connection_url: str) -> str:
        attempt_start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                f"pg_dump executable not found at {command[0]}", original_error=str(e)
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.attempt_timeout
            )
        except asyncio.TimeoutError as e:
            await self._terminate(process)
            logger.error("Timeout occurred during pg_dump operation")
            raise DumpRetryableError(
                f"pg_dump timed out after {self.config.attempt_timeout:.0f}s",
                original_error="timeout",
            ) from e
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        stderr_text = redact_secrets(stderr.decode("utf-8", errors="replace"), connection_url)
        exit_code = process.returncode
        logger.info(
            f"pg_dump completed in {time.monotonic() - attempt_start:.2f}s "
            f"with exit code {exit_code}"
        )

        if exit_code != 0:
            error_type = classify_failure(exit_code, stderr_text)
            if error_type is DumpRetryableError and is_connection_error(stderr_text):
                logger.error("Connection error during pg_dump, will retry")
            raise error_type(
                f"pg_dump failed with exit code {exit_code}: {stderr_text.strip()}",
                original_error=stderr_text.strip(),
                exit_code=exit_code,
                stderr=stderr_text,
            )

        if stdout:
            logger.debug(f"pg_dump stdout: {stdout.decode('utf-8', errors='replace')}")
        return stderr_text

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()

    @staticmethod
    def verify(output_path: Path) -> int:
        """Check the artifact exists and is non-empty; return its size."""
        if not output_path.exists():
            raise EmptyArtifactError(f"Backup file was not created: {output_path.name}")
        size_bytes = output_path.stat().st_size
        if size_bytes == 0:
            raise EmptyArtifactError(
                "Backup file is empty. The pg_dump command may have failed silently."
            )
        return size_bytes

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"pg_dump attempt {retry_state.attempt_number} failed: {error}. Retrying..."
        )
