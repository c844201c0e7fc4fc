"""Error responses for the backup API."""

from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_504_GATEWAY_TIMEOUT,
)

from nano_dbbackup._utils import logger
from nano_dbbackup.backup.errors import BackupError, BackupTimeoutError


def error_envelope(error: BackupError) -> Dict[str, Any]:
    """``{success: false, error: {message, details?, originalError?}}``."""
    body: Dict[str, Any] = {"message": error.user_message}
    if error.details:
        body["details"] = error.details
    body["originalError"] = error.original_error or error.message
    return {"success": False, "error": body}


def status_for(error: BackupError) -> int:
    if isinstance(error, BackupTimeoutError):
        return HTTP_504_GATEWAY_TIMEOUT
    return HTTP_500_INTERNAL_SERVER_ERROR


async def backup_error_handler(request: Request, exc: BackupError) -> JSONResponse:
    logger.error(f"Backup process error: {exc}")
    return JSONResponse(status_code=status_for(exc), content=error_envelope(exc))
