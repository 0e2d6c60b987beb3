from .job_store import JobStore
from .ai_engine import AIEngineService
from .color_resolver import ColorResolverService
from .template_selector import TemplateSelectorService
from .content_generator import ContentGeneratorService
from .image_fetcher import ImageFetcherService
from .site_builder import SiteFileBuilder
from .publisher import GitHubPublisher
from .deployer import VercelDeployer
from .crm import CRMRelayService
from .site_registry import SiteRegistry
from .site_editor import SiteEditorService
from .orchestrator import WebsiteGeneratorOrchestrator

__all__ = [
    "JobStore",
    "AIEngineService",
    "ColorResolverService",
    "TemplateSelectorService",
    "ContentGeneratorService",
    "ImageFetcherService",
    "SiteFileBuilder",
    "GitHubPublisher",
    "VercelDeployer",
    "CRMRelayService",
    "SiteRegistry",
    "SiteEditorService",
    "WebsiteGeneratorOrchestrator",
]
