"""
Website Generator Orchestrator - Runs the generation pipeline for one job.

Pipeline (progress in brackets):
1. Mark processing [5]
2. Resolve colors [10]            - falls back, never fails
3. Select template [20]           - falls back, never fails
4. Generate content [30]
5. Fetch images [45]              - misses are dropped, never fails
6. Build site files [60]
7. Push to GitHub [80], deploy to Vercel [90] if a token is configured
8. Complete [100] and record the site in the registry, if one is attached

Any exception from steps 4, 6 or 7 fails the job. There are no retries and
no rollback: a repository created before a failed deployment stays live.
"""

import time
from typing import Optional

import structlog

from app.exceptions import JobNotFoundError
from app.models import JobResult, JobStatus, SaveSiteRequest, WebsiteRequest
from app.services.ai_engine import AIEngineService
from app.services.color_resolver import ColorResolverService
from app.services.content_generator import ContentGeneratorService
from app.services.deployer import VercelDeployer
from app.services.image_fetcher import ImageFetcherService
from app.services.job_store import JobStore
from app.services.publisher import GitHubPublisher
from app.services.site_builder import SiteFileBuilder
from app.services.site_registry import SiteRegistry
from app.services.template_selector import TemplateSelectorService
from app.utils import slugify

logger = structlog.get_logger()


def image_search_terms(request: WebsiteRequest) -> list[str]:
    return [
        f"{request.company_name} {request.industry}",
        f"{request.industry} business",
    ]


def repo_name_for(request: WebsiteRequest) -> str:
    return f"{slugify(request.company_name)}-website-{int(time.time() * 1000)}"


class WebsiteGeneratorOrchestrator:
    """Orchestrates the complete website generation pipeline."""

    def __init__(
        self,
        job_store: JobStore,
        ai_engine: Optional[AIEngineService] = None,
        color_resolver: Optional[ColorResolverService] = None,
        template_selector: Optional[TemplateSelectorService] = None,
        content_generator: Optional[ContentGeneratorService] = None,
        image_fetcher: Optional[ImageFetcherService] = None,
        site_builder: Optional[SiteFileBuilder] = None,
        publisher: Optional[GitHubPublisher] = None,
        deployer: Optional[VercelDeployer] = None,
        site_registry: Optional[SiteRegistry] = None,
    ):
        self.job_store = job_store
        self.site_registry = site_registry

        needs_ai = not (color_resolver and template_selector and content_generator)
        if ai_engine is None and needs_ai:
            ai_engine = AIEngineService()

        self.color_resolver = color_resolver or ColorResolverService(ai_engine)
        self.template_selector = template_selector or TemplateSelectorService(ai_engine)
        self.content_generator = content_generator or ContentGeneratorService(ai_engine)
        self.image_fetcher = image_fetcher or ImageFetcherService()
        self.site_builder = site_builder or SiteFileBuilder()
        self.publisher = publisher or GitHubPublisher()
        self.deployer = deployer or VercelDeployer()

    async def process_job(self, job_id: str) -> None:
        """
        Run the pipeline for a queued job.

        Failures are recorded on the job rather than raised; only an unknown
        job id raises.
        """
        job = await self.job_store.get_job(job_id)
        if not job:
            raise JobNotFoundError(job_id)

        request = job.input
        log = logger.bind(job_id=job_id)
        log.info("Starting orchestration", business=request.company_name)

        try:
            await self._progress(job_id, 5, "Initializing...", status=JobStatus.PROCESSING)

            await self._progress(job_id, 10, "Parsing color scheme...")
            colors = await self.color_resolver.resolve(request.colors)
            log.info("Colors parsed", colors=colors.model_dump())

            await self._progress(job_id, 20, "Selecting best template...")
            template_id = await self.template_selector.select(request, colors)
            log.info("Template selected", template=template_id)

            await self._progress(job_id, 30, "Generating website content...")
            content = await self.content_generator.generate(request, colors, template_id)
            log.info("Content generated", pages=len(content.pages))

            await self._progress(job_id, 45, "Fetching relevant images...")
            images = await self.image_fetcher.fetch_images(image_search_terms(request))
            log.info("Images fetched", count=len(images))

            await self._progress(job_id, 60, "Building website files...")
            files = self.site_builder.build(template_id, content, colors, request, images)

            await self._progress(job_id, 80, "Pushing to GitHub...")
            repo_name = repo_name_for(request)
            repo = await self.publisher.create_repo(repo_name, files, request)
            log.info("GitHub repo created", repo_url=repo.repo_url)

            await self._progress(job_id, 90, "Deploying to Vercel...")
            deployment = None
            if self.deployer.is_configured:
                deployment = await self.deployer.deploy(repo.repo_id, repo.latest_commit_sha, repo_name)
                log.info("Vercel deployment", url=deployment.url)
            else:
                log.info("Vercel token not configured, skipping deployment")

            result = JobResult(
                repo_url=repo.repo_url,
                vercel_url=deployment.url if deployment else None,
                project_url=deployment.project_url if deployment else None,
            )
            await self.job_store.update_job(
                job_id,
                status=JobStatus.COMPLETED,
                progress=100,
                message="Website generation complete!",
                result=result,
            )
            log.info("Job completed successfully")

        except Exception as e:
            log.exception("Job failed", error=str(e))
            message = str(e) or "Unknown error occurred"
            await self.job_store.update_job(
                job_id,
                status=JobStatus.FAILED,
                progress=0,
                message=f"Error: {message}",
                error=message,
            )
            return

        # The job is already completed; a registry failure must not touch it
        if self.site_registry is not None:
            await self.site_registry.save(SaveSiteRequest(
                company_name=request.company_name,
                repo_url=repo.repo_url,
                vercel_url=result.vercel_url,
                project_url=result.project_url,
                industry=request.industry,
                form_data=request.model_dump(mode="json", by_alias=True),
            ))

    async def _progress(self, job_id: str, percent: int, message: str, **fields) -> None:
        await self.job_store.update_job(job_id, progress=percent, message=message, **fields)
