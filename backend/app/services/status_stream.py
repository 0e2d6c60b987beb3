"""
Job status stream - Server-Sent Events over the job store.

The stream re-reads the store on a fixed tick; the orchestrator never talks
to it directly.
"""

import asyncio
import json
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import structlog

from app.models import Job, TERMINAL_STATUSES
from app.services.job_store import JobStore

logger = structlog.get_logger()


SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def format_event(payload: Any) -> str:
    """Encode a job or plain dict as one SSE ``data:`` frame."""
    if isinstance(payload, Job):
        data = payload.model_dump_json(by_alias=True)
    else:
        data = json.dumps(payload)
    return f"data: {data}\n\n"


async def job_event_stream(
    job_store: JobStore,
    job_id: str,
    poll_interval: float,
    max_duration: float,
    is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
) -> AsyncIterator[str]:
    """
    Yield job snapshots until the job is terminal or gone, the client leaves,
    or ``max_duration`` seconds pass.
    """
    log = logger.bind(job_id=job_id)

    job = await job_store.get_job(job_id)
    if job is None:
        yield format_event({"error": "Job not found"})
        return

    yield format_event(job)
    if job.status in TERMINAL_STATUSES:
        return

    loop = asyncio.get_running_loop()
    deadline = loop.time() + max_duration

    while True:
        await asyncio.sleep(poll_interval)

        if is_disconnected is not None and await is_disconnected():
            log.info("Status stream client disconnected")
            return

        try:
            job = await job_store.get_job(job_id)
        except Exception as e:
            log.exception("Error polling job status", error=str(e))
            yield format_event({"error": "Error polling job status"})
            return

        if job is None:
            yield format_event({"error": "Job not found"})
            return

        yield format_event(job)
        if job.status in TERMINAL_STATUSES:
            return

        if loop.time() >= deadline:
            log.info("Status stream reached max duration")
            return
