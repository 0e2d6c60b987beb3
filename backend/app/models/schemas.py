"""
Pydantic models for request/response validation.

Wire format is camelCase (``companyName``, ``createdAt``); attributes are
snake_case and either form is accepted on input.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Any, Literal
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Enums
# ============================================================================

class JobStatus(str, Enum):
    """Status of a website generation job."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


# ============================================================================
# Request Models
# ============================================================================

class PageInput(CamelModel):
    """A page the user wants on the generated site."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=100)
    information: str = Field(..., min_length=1)


class WebsiteRequest(CamelModel):
    """Request to generate a website."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "companyName": "Acme Coffee Shop",
                "industry": "Restaurant",
                "address": "12 Market St",
                "city": "San Francisco, CA",
                "phoneNumber": "+1 415 555 0100",
                "email": "hello@acmecoffee.com",
                "companyType": "Local business",
                "colors": "warm brown and cream",
                "brandThemes": "cozy, artisanal",
                "pages": [
                    {"title": "Home", "information": "Specialty coffee and pastries"},
                ],
            }
        },
    )

    company_name: str = Field(..., min_length=1, max_length=200)
    industry: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    company_type: str = Field(..., min_length=1)
    colors: str = Field(..., min_length=1)
    brand_themes: str = Field(..., min_length=1)
    extra_detailed_info: str = ""
    pages: list[PageInput] = Field(..., min_length=1)
    contact_form: bool = False
    booking_form: bool = False
    quality_tier: str = "mockup"


class ContactRequest(CamelModel):
    """Contact form submission relayed to the CRM."""
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1)
    additional_info: str = ""
    consent_non_marketing: bool = False
    consent_marketing: bool = False


class FunnelGiftRequest(CamelModel):
    """Funnel "private gift" lead relayed to the CRM."""
    phone_number: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    clinic_name: str = Field(..., min_length=1)


class BookingRequest(CamelModel):
    """Calendar booking request."""
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    start_time: str = Field(..., min_length=1)
    title: Optional[str] = None


# ============================================================================
# Generation Models
# ============================================================================

class ColorPalette(CamelModel):
    """Three-color brand palette."""
    primary: str = Field(..., pattern=HEX_COLOR_PATTERN)
    secondary: str = Field(..., pattern=HEX_COLOR_PATTERN)
    accent: str = Field(..., pattern=HEX_COLOR_PATTERN)


class ImageData(CamelModel):
    """A stock photo reference."""
    url: str
    alt: str
    photographer: Optional[str] = None
    photographer_url: Optional[str] = None
    source: Literal["pexels", "unsplash"]


class NavLink(CamelModel):
    label: str
    route: str


class MetaInfo(CamelModel):
    title: str
    description: str = ""
    keywords: str = ""


class Navbar(CamelModel):
    logo_text: str
    links: list[NavLink] = []


class Hero(CamelModel):
    title: str
    subtitle: str = ""
    cta_text: str = "Get Started"
    cta_link: str = "/contact"


class PageSection(CamelModel):
    type: str
    content: dict[str, Any] = {}


class SitePage(CamelModel):
    route: str
    title: str
    sections: list[PageSection] = []


class FooterContact(CamelModel):
    phone: str = ""
    email: str = ""
    address: str = ""


class Footer(CamelModel):
    company_name: str
    description: str = ""
    contact: FooterContact = FooterContact()
    links: list[NavLink] = []


class SiteContent(CamelModel):
    """Page copy for a generated site."""
    meta: MetaInfo
    navbar: Navbar
    hero: Hero
    pages: list[SitePage]
    footer: Footer


class GeneratedFile(BaseModel):
    """A static file ready to publish."""
    name: str
    content: str


# ============================================================================
# Publishing Models
# ============================================================================

class RepoData(BaseModel):
    """A freshly created GitHub repository."""
    repo_url: str
    repo_full_name: str
    repo_owner: str
    repo_id: int
    latest_commit_sha: str


class DeploymentResult(BaseModel):
    """Result of deploying to Vercel."""
    url: str
    project_url: str


class RepoSnapshot(BaseModel):
    """Text files on the default branch of an existing repository."""
    owner: str
    repo: str
    repo_id: int
    default_branch: str
    files: list[GeneratedFile]


# ============================================================================
# Job Models
# ============================================================================

class JobResult(CamelModel):
    """Links to the published artifacts."""
    repo_url: Optional[str] = None
    vercel_url: Optional[str] = None
    project_url: Optional[str] = None


class Job(CamelModel):
    """A website generation job."""
    model_config = ConfigDict(extra="forbid")

    id: str
    status: JobStatus = JobStatus.QUEUED
    progress: int = Field(0, ge=0, le=100)
    message: str = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Input
    input: WebsiteRequest

    # Outcome
    result: Optional[JobResult] = None
    error: Optional[str] = None


# ============================================================================
# Site Registry Models
# ============================================================================

class SiteOutcome(str, Enum):
    """How a generation attempt ended."""
    SUCCESS = "success"
    FAILED = "failed"


class SaveSiteRequest(CamelModel):
    """A generated site to record in the registry."""
    model_config = ConfigDict(str_strip_whitespace=True)

    company_name: str = Field(..., min_length=1)
    repo_url: str = Field(..., min_length=1)
    vercel_url: Optional[str] = None
    project_url: Optional[str] = None
    industry: Optional[str] = None
    form_data: Optional[dict[str, Any]] = None
    status: Optional[SiteOutcome] = None
    error: Optional[str] = None


class SiteRecord(CamelModel):
    """A site in the registry."""
    id: str
    company_name: str
    repo_url: str
    vercel_url: Optional[str] = None
    project_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    industry: Optional[str] = None
    form_data: Optional[dict[str, Any]] = None
    status: SiteOutcome = SiteOutcome.SUCCESS
    error: Optional[str] = None


class SiteStatus(SiteRecord):
    """A registry entry with its live GitHub and Vercel state."""
    github_exists: bool = True
    vercel_deployed: bool = False
    vercel_status: str = "unknown"


# ============================================================================
# Site Edit Models
# ============================================================================

class EditWebsiteRequest(CamelModel):
    """An edit to apply to a published site."""
    model_config = ConfigDict(str_strip_whitespace=True)

    repo_url: str = Field(..., min_length=1)
    edit_prompt: str = Field(..., min_length=1)
    company_name: Optional[str] = None


class FileChange(CamelModel):
    """One file the model wants to change or create."""
    path: str = Field(..., min_length=1)
    reason: str = ""
    changes: str = ""
    content: str = ""


class EditPlan(CamelModel):
    """The model's plan for an edit."""
    files_to_modify: list[FileChange] = []
    files_to_create: list[FileChange] = []


# ============================================================================
# Response Models
# ============================================================================

class GenerateWebsiteResponse(CamelModel):
    """Response to a website generation submission."""
    success: bool = True
    job_id: str
    status_url: str
    message: str = "Website generation started"


class JobListResponse(CamelModel):
    """API response for listing jobs."""
    jobs: list[Job]
    total: int


class RelayResponse(CamelModel):
    """Response of a CRM relay endpoint."""
    success: bool = True
    message: Optional[str] = None
    appointment: Optional[dict[str, Any]] = None


class SaveSiteResponse(CamelModel):
    """Response to saving a site."""
    success: bool = True
    site: SiteRecord


class SiteListResponse(CamelModel):
    """Registry listing with live status."""
    sites: list[SiteStatus]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    environment: str
    services: dict[str, bool]


class ErrorResponse(BaseModel):
    """Error response."""
    success: bool = False
    error: str
    details: Optional[Any] = None
    code: Optional[str] = None
