"""Database backup endpoint."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from typing import AsyncIterator

from ..dependencies import get_orchestrator
from ..models import BackupCreatedResponse, BackupResultData, ErrorResponse
from nano_dbbackup.backup import BackupOrchestrator, BackupRequest, ProgressEvent
from nano_dbbackup.streaming import ProgressChannel
from nano_dbbackup._utils import logger

router = APIRouter(prefix="/database-backup", tags=["database-backup"])

EVENT_STREAM = "text/event-stream"
STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def wants_event_stream(request: Request, stream: bool) -> bool:
    """Streaming is selected by the Accept header or ``?stream=true``."""
    return stream or EVENT_STREAM in request.headers.get("accept", "")


async def _with_start_event(events: AsyncIterator[ProgressEvent]) -> AsyncIterator[ProgressEvent]:
    yield ProgressEvent.progress(0, "Starting backup process")
    try:
        async for event in events:
            yield event
    finally:
        await events.aclose()


def _log_progress(event: ProgressEvent) -> None:
    logger.info(f"Backup progress: {event.percent}% - {event.message}")


@router.post(
    "",
    status_code=201,
    response_model=BackupCreatedResponse,
    responses={
        200: {"content": {EVENT_STREAM: {}}, "description": "Progress event stream"},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def create_database_backup(
    body: BackupRequest,
    request: Request,
    stream: bool = Query(False),
    orchestrator: BackupOrchestrator = Depends(get_orchestrator),
):
    """Dump a database and upload the artifact to cloud storage.

    With ``Accept: text/event-stream`` (or ``?stream=true``) progress is
    streamed as ``progress`` events ending in one ``complete`` or ``error``
    event. Otherwise the call blocks and returns a single JSON result.
    """
    if wants_event_stream(request, stream):
        channel = ProgressChannel(_with_start_event(orchestrator.run(body)))
        return StreamingResponse(
            channel.frames(),
            media_type=EVENT_STREAM,
            headers=STREAM_HEADERS,
        )

    # BackupError is mapped to 504 / 500 by the app's exception handler
    event = await orchestrator.execute(body, on_progress=_log_progress)
    return BackupCreatedResponse(
        data=BackupResultData(name=event.name, provider=event.provider, url=event.url)
    )
