"""
Job Store - In-memory storage for generation jobs.

Jobs are ephemeral: a background sweep drops every record older than the
retention window, whatever its status. Every mutation is a plain
read-modify-write with no await in between, so a single event loop needs no
locking. Multiple worker processes would each see their own registry.
"""

import asyncio
import time
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

import structlog

from app.config import settings
from app.exceptions import JobTransitionError
from app.models import Job, JobStatus, WebsiteRequest, utcnow

logger = structlog.get_logger()


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class JobStore:
    """Simple in-memory job store. Replace with Redis for multi-process deployments."""

    def __init__(
        self,
        retention_seconds: Optional[int] = None,
        sweep_interval_seconds: Optional[int] = None,
    ):
        self._jobs: dict[str, Job] = {}
        self.retention = timedelta(
            seconds=retention_seconds if retention_seconds is not None else settings.job_retention_seconds
        )
        self.sweep_interval = (
            sweep_interval_seconds if sweep_interval_seconds is not None else settings.job_sweep_interval_seconds
        )
        self._sweeper: Optional[asyncio.Task] = None

    async def create_job(self, request: WebsiteRequest) -> Job:
        """Create a new queued job for a request."""
        now = utcnow()
        job = Job(
            id=new_job_id(),
            status=JobStatus.QUEUED,
            progress=0,
            message="Job created, waiting to start...",
            created_at=now,
            updated_at=now,
            input=request,
        )
        self._jobs[job.id] = job
        return job

    async def get_job(self, job_id: str) -> Optional[Job]:
        """Get a job by ID."""
        return self._jobs.get(job_id)

    async def update_job(self, job_id: str, **fields: Any) -> Optional[Job]:
        """
        Merge fields into an existing job.

        Returns the merged record, or None if the id is unknown.
        Raises JobTransitionError on an illegal status change and
        pydantic's ValidationError on a value the Job model rejects
        (e.g. progress outside 0-100 or an unknown field).
        """
        job = self._jobs.get(job_id)
        if job is None:
            return None

        status = fields.get("status")
        if status is not None and status != job.status:
            status = JobStatus(status)
            if status not in ALLOWED_TRANSITIONS[job.status]:
                raise JobTransitionError(
                    f"Job {job_id} cannot move from {job.status.value} to {status.value}"
                )
            fields["status"] = status

        fields.pop("id", None)
        fields.pop("input", None)
        fields.pop("created_at", None)
        fields["updated_at"] = utcnow()

        updated = Job.model_validate({**dict(job), **fields})
        self._jobs[job_id] = updated
        return updated

    async def delete_job(self, job_id: str) -> bool:
        """Delete a job."""
        return self._jobs.pop(job_id, None) is not None

    async def list_jobs(self, status: Optional[JobStatus] = None) -> list[Job]:
        """List jobs, newest first, with an optional status filter."""
        jobs = list(self._jobs.values())
        if status:
            jobs = [j for j in jobs if j.status == status]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs

    async def count(self, status: Optional[JobStatus] = None) -> int:
        """Count jobs with optional status filter."""
        if status:
            return len([j for j in self._jobs.values() if j.status == status])
        return len(self._jobs)

    # ========================================================================
    # Retention sweep
    # ========================================================================

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Drop jobs created before the retention window. Returns how many."""
        cutoff = (now or utcnow()) - self.retention
        expired = [job_id for job_id, job in self._jobs.items() if job.created_at < cutoff]
        for job_id in expired:
            del self._jobs[job_id]
        if expired:
            logger.info("Swept expired jobs", count=len(expired))
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            self.sweep()

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
