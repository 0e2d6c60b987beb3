"""
Site Registry - in-memory list of generated sites.

Saving a site with a repo URL already present replaces that entry in place;
new sites go to the front and the list is capped. Listing with status asks
GitHub whether each repository still exists (deleted ones are hidden) and
Vercel for the state of each project's latest deployment.
"""

import asyncio
import re
import time
import uuid
from typing import Optional

import structlog

from app.models import SaveSiteRequest, SiteOutcome, SiteRecord, SiteStatus
from app.services.deployer import VercelDeployer
from app.services.publisher import GitHubPublisher

logger = structlog.get_logger()


PROJECT_URL_PATTERN = re.compile(r"vercel\.com/.*?projects/([^/?#]+)")
VERCEL_APP_PATTERN = re.compile(r"https?://([^./]+)\.vercel\.app")


def new_site_id() -> str:
    return f"site_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def vercel_project_name(site: SiteRecord) -> Optional[str]:
    """Project slug from the dashboard URL, else from a ``*.vercel.app`` URL."""
    if site.project_url:
        match = PROJECT_URL_PATTERN.search(site.project_url)
        if match:
            return match.group(1)
    if site.vercel_url:
        match = VERCEL_APP_PATTERN.match(site.vercel_url)
        if match:
            return match.group(1)
    return None


class SiteRegistry:
    """Newest-first registry of generated sites."""

    def __init__(self, max_sites: int = 100):
        self.max_sites = max_sites
        self._sites: list[SiteRecord] = []

    async def save(self, request: SaveSiteRequest) -> SiteRecord:
        status = request.status or (SiteOutcome.FAILED if request.error else SiteOutcome.SUCCESS)
        site = SiteRecord(
            id=new_site_id(),
            company_name=request.company_name,
            repo_url=request.repo_url,
            vercel_url=request.vercel_url,
            project_url=request.project_url,
            industry=request.industry,
            form_data=request.form_data,
            status=status,
            error=request.error,
        )

        for index, existing in enumerate(self._sites):
            if existing.repo_url == site.repo_url:
                self._sites[index] = site
                break
        else:
            self._sites.insert(0, site)
            del self._sites[self.max_sites:]

        logger.info("Site saved", site_id=site.id, repo_url=site.repo_url, status=status.value)
        return site

    async def list_sites(self) -> list[SiteRecord]:
        return list(self._sites)

    async def list_with_status(
        self,
        publisher: GitHubPublisher,
        deployer: VercelDeployer,
    ) -> list[SiteStatus]:
        """Sites whose repository still exists, newest first, with live status."""
        sites = await self.list_sites()
        checked = await asyncio.gather(*(self._check(site, publisher, deployer) for site in sites))

        live = [site for site in checked if site.github_exists]
        live.sort(key=lambda s: s.created_at, reverse=True)
        return live

    async def _check(
        self,
        site: SiteRecord,
        publisher: GitHubPublisher,
        deployer: VercelDeployer,
    ) -> SiteStatus:
        github_exists = await publisher.repo_exists(site.repo_url)

        vercel_status = "unknown"
        project_name = vercel_project_name(site)
        if project_name:
            vercel_status = await deployer.deployment_state(project_name)

        return SiteStatus(
            **dict(site),
            github_exists=github_exists,
            vercel_deployed=vercel_status == "ready",
            vercel_status=vercel_status,
        )
