"""
Exceptions raised by the job store, the generation pipeline and CRM relays.
"""

from typing import Any, Optional


class JobNotFoundError(Exception):
    """Raised when a job id is not in the store."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class JobTransitionError(ValueError):
    """Raised on an illegal job status change."""


# Pipeline failures. The message is copied verbatim into the failed job.

class PipelineError(Exception):
    """A fatal pipeline step failure."""


class ContentGenerationError(PipelineError):
    pass


class SiteBuildError(PipelineError):
    pass


class PublishError(PipelineError):
    pass


class DeploymentError(PipelineError):
    pass


class SiteEditError(PipelineError):
    pass


class UpstreamError(Exception):
    """A relay to an external service failed."""

    def __init__(self, status_code: int, error: str, details: Optional[Any] = None):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details


class ServiceUnavailableError(Exception):
    """Required credentials for a feature are not configured."""
