"""
AI Website Generator - Main Application Entry Point

Accepts business details, generates a website in the background with AI,
publishes it to GitHub/Vercel, and reports progress by polling or
Server-Sent Events. Published sites can be edited with a prompt and are
listed in a registry with their live status. Also relays site forms to
the CRM.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import BackgroundTasks, Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from app.config import settings
from app.exceptions import ServiceUnavailableError, UpstreamError
from app.models import (
    BookingRequest,
    ContactRequest,
    EditWebsiteRequest,
    ErrorResponse,
    FunnelGiftRequest,
    GenerateWebsiteResponse,
    HealthResponse,
    Job,
    JobListResponse,
    JobStatus,
    RelayResponse,
    SaveSiteRequest,
    SaveSiteResponse,
    SiteListResponse,
    WebsiteRequest,
)
from app.services.ai_engine import AIEngineService
from app.services.crm import CRMRelayService
from app.services.deployer import VercelDeployer
from app.services.job_store import JobStore
from app.services.orchestrator import WebsiteGeneratorOrchestrator
from app.services.publisher import GitHubPublisher
from app.services.site_editor import SiteEditorService
from app.services.site_registry import SiteRegistry
from app.services.status_stream import SSE_HEADERS, format_event, job_event_stream

# Configure structured logging
logging.basicConfig(
    format="%(message)s",
    level=logging.DEBUG if settings.debug else logging.INFO,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()

# Per-IP limits; evaluated on each request so they follow settings
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def default_limit() -> str:
    return settings.rate_limit_default


def contact_limit() -> str:
    return settings.rate_limit_contact


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting AI Website Generator", version=settings.app_version)
    app.state.job_store = JobStore()
    app.state.site_registry = SiteRegistry(max_sites=settings.site_registry_max_sites)
    app.state.job_store.start_sweeper()
    yield
    await app.state.job_store.stop_sweeper()
    logger.info("Shutting down AI Website Generator")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Generate and publish small-business websites with AI",
    lifespan=lifespan,
)
app.state.limiter = limiter

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Dependencies
# ============================================================================

def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_site_registry(request: Request) -> SiteRegistry:
    return request.app.state.site_registry


def get_orchestrator_factory(
    job_store: JobStore = Depends(get_job_store),
    site_registry: SiteRegistry = Depends(get_site_registry),
) -> Callable[[], WebsiteGeneratorOrchestrator]:
    """Orchestrators are built only once credentials have been checked."""
    return lambda: WebsiteGeneratorOrchestrator(job_store=job_store, site_registry=site_registry)


def get_site_editor_factory() -> Callable[[], SiteEditorService]:
    return lambda: SiteEditorService(AIEngineService(), GitHubPublisher(), VercelDeployer())


def get_publisher() -> GitHubPublisher:
    return GitHubPublisher()


def get_deployer() -> VercelDeployer:
    return VercelDeployer()


def get_crm_service() -> CRMRelayService:
    return CRMRelayService()


def require_ai_and_github(feature: str) -> None:
    if not settings.anthropic_api_key or not settings.github_token:
        logger.error("Request refused without AI or GitHub credentials", feature=feature)
        raise ServiceUnavailableError(
            f"Website {feature} service is temporarily unavailable. Please contact support."
        )


# ============================================================================
# API Routes
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application health and service configuration."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        services={
            "anthropic": bool(settings.anthropic_api_key),
            "github": bool(settings.github_token),
            "vercel": bool(settings.vercel_token),
            "pexels": bool(settings.pexels_api_key),
            "unsplash": bool(settings.unsplash_access_key),
            "ghl": bool(settings.ghl_webhook_url),
        }
    )


@app.post("/api/generate-website", response_model=GenerateWebsiteResponse, tags=["Jobs"])
@limiter.limit(default_limit)
async def generate_website(
    request: Request,
    website_request: WebsiteRequest,
    background_tasks: BackgroundTasks,
    job_store: JobStore = Depends(get_job_store),
    orchestrator_factory: Callable[[], WebsiteGeneratorOrchestrator] = Depends(get_orchestrator_factory),
):
    """
    Start a website generation job.

    The job runs in the background. Poll or stream the returned status URL
    to follow its progress.
    """
    require_ai_and_github("generation")
    orchestrator = orchestrator_factory()

    job = await job_store.create_job(website_request)

    # Start background processing
    background_tasks.add_task(orchestrator.process_job, job.id)

    logger.info("Job created", job_id=job.id, business_name=website_request.company_name)

    return GenerateWebsiteResponse(
        job_id=job.id,
        status_url=f"/api/generate-website/status?jobId={job.id}",
    )


@app.get("/api/generate-website/status", response_model=Job, tags=["Jobs"])
async def generate_website_status(
    request: Request,
    job_id: Optional[str] = Query(None, alias="jobId"),
    stream: bool = False,
    job_store: JobStore = Depends(get_job_store),
):
    """Job snapshot as JSON, or a Server-Sent Events stream of snapshots."""
    if not job_id:
        raise HTTPException(status_code=400, detail="jobId query parameter is required")

    job = await job_store.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    wants_sse = stream or "text/event-stream" in request.headers.get("accept", "")
    if not wants_sse:
        return job

    return StreamingResponse(
        job_event_stream(
            job_store,
            job_id,
            poll_interval=settings.status_poll_interval_seconds,
            max_duration=settings.status_stream_max_seconds,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@app.get("/api/jobs", response_model=JobListResponse, tags=["Jobs"])
async def list_jobs(
    status: Optional[JobStatus] = None,
    job_store: JobStore = Depends(get_job_store),
):
    """List all jobs with optional filtering."""
    jobs = await job_store.list_jobs(status=status)
    return JobListResponse(jobs=jobs, total=len(jobs))


# ============================================================================
# Published Sites
# ============================================================================

@app.post("/api/edit-website", tags=["Sites"])
@limiter.limit(default_limit)
async def edit_website(
    request: Request,
    edit: EditWebsiteRequest,
    editor_factory: Callable[[], SiteEditorService] = Depends(get_site_editor_factory),
):
    """
    Apply a plain-language edit to a published site.

    Streams ``{message, percentage}`` progress events, then a final event
    with ``success`` and either ``commitSha`` or ``error``.
    """
    require_ai_and_github("editing")
    editor = editor_factory()

    events = (format_event(event) async for event in editor.edit(edit))
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@app.post("/api/save-site", response_model=SaveSiteResponse, tags=["Sites"])
@limiter.limit(default_limit)
async def save_site(
    request: Request,
    site: SaveSiteRequest,
    registry: SiteRegistry = Depends(get_site_registry),
):
    """Record a generated site; a known repo URL replaces its entry."""
    return SaveSiteResponse(site=await registry.save(site))


@app.get("/api/get-sites", response_model=SiteListResponse, tags=["Sites"])
async def get_sites(
    registry: SiteRegistry = Depends(get_site_registry),
    publisher: GitHubPublisher = Depends(get_publisher),
    deployer: VercelDeployer = Depends(get_deployer),
):
    """Saved sites whose repository still exists, with live deployment status."""
    return SiteListResponse(sites=await registry.list_with_status(publisher, deployer))


# ============================================================================
# CRM Relays
# ============================================================================

@app.post("/api/contact", response_model=RelayResponse, response_model_exclude_none=True, tags=["CRM"])
@limiter.limit(contact_limit)
async def submit_contact(
    request: Request,
    form: ContactRequest,
    crm: CRMRelayService = Depends(get_crm_service),
):
    """Forward a contact form submission to the CRM webhook."""
    await crm.forward_contact(form)
    return RelayResponse()


@app.post("/api/funnel-webhook", response_model=RelayResponse, response_model_exclude_none=True, tags=["CRM"])
@limiter.limit(default_limit)
async def submit_funnel_gift(
    request: Request,
    form: FunnelGiftRequest,
    crm: CRMRelayService = Depends(get_crm_service),
):
    """Forward a funnel gift claim to the CRM webhook."""
    await crm.forward_funnel_gift(form)
    return RelayResponse(message="Data sent successfully")


@app.post("/api/onboarding", response_model=RelayResponse, response_model_exclude_none=True, tags=["CRM"])
@limiter.limit(default_limit)
async def submit_onboarding(
    request: Request,
    payload: dict[str, Any] = Body(...),
    crm: CRMRelayService = Depends(get_crm_service),
):
    """Forward an onboarding questionnaire as-is."""
    await crm.forward_onboarding(payload)
    return RelayResponse()


@app.get("/api/ghl/slots", tags=["CRM"])
@limiter.limit(default_limit)
async def calendar_slots(
    request: Request,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    timezone: Optional[str] = None,
    crm: CRMRelayService = Depends(get_crm_service),
):
    """Free calendar slots between two dates."""
    if not start_date or not end_date or not timezone:
        raise HTTPException(status_code=400, detail="Missing required parameters")
    return await crm.free_slots(start_date, end_date, timezone)


@app.post("/api/ghl/book", response_model=RelayResponse, response_model_exclude_none=True, tags=["CRM"])
@limiter.limit(default_limit)
async def calendar_book(
    request: Request,
    booking: BookingRequest,
    crm: CRMRelayService = Depends(get_crm_service),
):
    """Book an appointment for a new or existing CRM contact."""
    if not booking.email and not booking.phone:
        raise HTTPException(status_code=400, detail="Email or Phone is required")
    appointment = await crm.book_appointment(booking)
    return RelayResponse(appointment=appointment)


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail), code=str(exc.status_code)).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    logger.info("Rejected invalid request", path=request.url.path, errors=len(details))
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(ErrorResponse(error="Invalid request", details=details)),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning("Rate limit exceeded", path=request.url.path, limit=str(exc.detail))
    return JSONResponse(
        status_code=429,
        content=ErrorResponse(error="Too many requests, please try again later.", code="429").model_dump(
            exclude_none=True
        ),
    )


@app.exception_handler(ServiceUnavailableError)
async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError):
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=str(exc), code="SERVICE_UNAVAILABLE").model_dump(exclude_none=True),
    )


@app.exception_handler(UpstreamError)
async def upstream_exception_handler(request: Request, exc: UpstreamError):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.error, details=exc.details).model_dump(exclude_none=True),
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
