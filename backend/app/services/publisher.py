"""
GitHub Publisher - pushes generated site files to a new repository.

Handles:
1. Resolving the authenticated account
2. Repository creation
3. File upload (one commit per file through the contents API)
4. Looking up the head commit for the deployment step

Site edits reuse the same client: reading an existing repository's files and
committing a batch of changes as a single commit through the git data API.
"""

import base64
import re
from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.config import settings
from app.exceptions import PublishError
from app.models import GeneratedFile, RepoData, RepoSnapshot, WebsiteRequest

logger = structlog.get_logger()


REPO_URL_PATTERN = re.compile(r"github\.com/([^/]+)/([^/]+)")


def parse_repo_url(repo_url: str) -> Optional[tuple[str, str]]:
    """``https://github.com/acme/site`` -> ``("acme", "site")``."""
    match = REPO_URL_PATTERN.search(repo_url)
    if not match:
        return None
    owner, repo = match.groups()
    return owner, repo.removesuffix(".git")


class GitHubPublisher:
    """Create a repository holding the generated site."""

    def __init__(
        self,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        branch_attempts: int = 3,
    ):
        self.base_url = "https://api.github.com"
        self.token = token if token is not None else settings.github_token
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self.timeout = httpx.Timeout(settings.http_timeout_seconds)
        self.transport = transport
        self.branch_attempts = branch_attempts

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def create_repo(
        self,
        repo_name: str,
        files: list[GeneratedFile],
        request: WebsiteRequest,
    ) -> RepoData:
        """Create a public repository and commit every file to it."""
        if not self.token:
            raise PublishError("GITHUB_TOKEN not configured")

        logger.info("Creating GitHub repository", repo=repo_name, files=len(files))

        async with self._client() as client:
            try:
                user = await self._get_json(client, "GET", "/user")
                owner = user["login"]
            except httpx.HTTPStatusError as e:
                raise self._status_error(e) from e
            except httpx.HTTPError as e:
                raise PublishError(f"Failed to create GitHub repository: {e}") from e

            try:
                repo = await self._get_json(client, "POST", "/user/repos", json={
                    "name": repo_name,
                    "description": f"Website for {request.company_name} - {request.industry}",
                    "private": False,
                    "auto_init": False,
                })
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 422:
                    logger.error("GitHub repository name taken", repo=repo_name, body=e.response.text[:500])
                    raise PublishError(
                        "Repository name conflict. Please try again with a different company name."
                    ) from e
                raise self._status_error(e) from e
            except httpx.HTTPError as e:
                raise PublishError(f"Failed to create GitHub repository: {e}") from e

            uploaded = set()
            try:
                for file in files:
                    if file.name in uploaded:
                        logger.warning("Skipping duplicate file", path=file.name)
                        continue
                    response = await client.put(
                        f"/repos/{owner}/{repo_name}/contents/{file.name}",
                        json={
                            "message": f"Add {file.name}",
                            "content": base64.b64encode(file.content.encode("utf-8")).decode("ascii"),
                        },
                    )
                    response.raise_for_status()
                    uploaded.add(file.name)
            except httpx.HTTPStatusError as e:
                logger.error("GitHub file upload failed", repo=repo_name, uploaded=len(uploaded))
                raise self._status_error(e, "Failed to upload website files to GitHub") from e
            except httpx.HTTPError as e:
                raise PublishError(f"Failed to upload website files to GitHub: {e}") from e

            latest_commit_sha = await self._latest_commit_sha(client, owner, repo_name)

        logger.info("GitHub repository created", repo_url=repo["html_url"], sha=latest_commit_sha)

        return RepoData(
            repo_url=repo["html_url"],
            repo_full_name=repo["full_name"],
            repo_owner=owner,
            repo_id=repo["id"],
            latest_commit_sha=latest_commit_sha,
        )

    # ========================================================================
    # Existing repositories
    # ========================================================================

    async def repo_exists(self, repo_url: str) -> bool:
        """False only when GitHub says the repository is gone."""
        parsed = parse_repo_url(repo_url)
        if parsed is None:
            return False
        if not self.token:
            return True

        owner, repo = parsed
        try:
            async with self._client() as client:
                response = await client.get(f"/repos/{owner}/{repo}")
        except httpx.HTTPError as e:
            logger.warning("Could not check GitHub repository", repo_url=repo_url, error=str(e))
            return True
        return response.status_code != 404

    async def fetch_site_files(
        self,
        owner: str,
        repo: str,
        extensions: tuple[str, ...] = (".html", ".css", ".js", ".json"),
        limit: int = 50,
    ) -> RepoSnapshot:
        """Read the default branch's text files, up to ``limit`` of them."""
        try:
            async with self._client() as client:
                repo_data = await self._get_json(client, "GET", f"/repos/{owner}/{repo}")
                branch = repo_data["default_branch"]
                head = await self._get_json(client, "GET", f"/repos/{owner}/{repo}/branches/{branch}")
                tree = await self._get_json(
                    client,
                    "GET",
                    f"/repos/{owner}/{repo}/git/trees/{head['commit']['sha']}",
                    params={"recursive": "1"},
                )

                paths = [
                    item["path"] for item in tree.get("tree", [])
                    if item.get("type") == "blob" and item["path"].endswith(extensions)
                ]

                files = []
                for path in paths[:limit]:
                    response = await client.get(f"/repos/{owner}/{repo}/contents/{path}")
                    if response.status_code != 200:
                        logger.warning("Could not fetch file", path=path, status=response.status_code)
                        continue
                    data = response.json()
                    if data.get("encoding") != "base64":
                        continue
                    files.append(GeneratedFile(
                        name=path,
                        content=base64.b64decode(data["content"]).decode("utf-8"),
                    ))
        except httpx.HTTPStatusError as e:
            raise self._status_error(e, "Failed to read GitHub repository") from e
        except httpx.HTTPError as e:
            raise PublishError(f"Failed to read GitHub repository: {e}") from e

        logger.info("Fetched site files", repo=f"{owner}/{repo}", files=len(files))
        return RepoSnapshot(
            owner=owner,
            repo=repo,
            repo_id=repo_data["id"],
            default_branch=branch,
            files=files,
        )

    async def commit_files(
        self,
        owner: str,
        repo: str,
        branch: str,
        files: list[GeneratedFile],
        message: str,
    ) -> str:
        """Commit ``files`` on top of ``branch`` as one commit and return its SHA."""
        base = f"/repos/{owner}/{repo}"
        try:
            async with self._client() as client:
                latest = await self._get_json(client, "GET", f"{base}/commits/{branch}")

                tree_items = []
                for file in files:
                    blob = await self._get_json(client, "POST", f"{base}/git/blobs", json={
                        "content": file.content,
                        "encoding": "utf-8",
                    })
                    tree_items.append({"path": file.name, "mode": "100644", "type": "blob", "sha": blob["sha"]})

                tree = await self._get_json(client, "POST", f"{base}/git/trees", json={
                    "base_tree": latest["commit"]["tree"]["sha"],
                    "tree": tree_items,
                })
                commit = await self._get_json(client, "POST", f"{base}/git/commits", json={
                    "message": message,
                    "tree": tree["sha"],
                    "parents": [latest["sha"]],
                })
                await self._get_json(client, "PATCH", f"{base}/git/refs/heads/{branch}", json={
                    "sha": commit["sha"],
                })
        except httpx.HTTPStatusError as e:
            raise self._status_error(e, "Failed to commit changes to GitHub") from e
        except httpx.HTTPError as e:
            raise PublishError(f"Failed to commit changes to GitHub: {e}") from e

        logger.info("Committed changes", repo=f"{owner}/{repo}", files=len(files), sha=commit["sha"])
        return commit["sha"]

    # ========================================================================
    # Helpers
    # ========================================================================

    def _status_error(
        self,
        e: httpx.HTTPStatusError,
        message: str = "Failed to create GitHub repository",
    ) -> PublishError:
        status = e.response.status_code
        logger.error("GitHub API error", status=status, url=str(e.request.url), body=e.response.text[:500])
        if status in (401, 403):
            return PublishError("GitHub authentication failed")
        return PublishError(message)

    async def _get_json(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def _latest_commit_sha(self, client: httpx.AsyncClient, owner: str, repo: str) -> str:
        """Head of ``main``; falls back to the branch name if GitHub has not caught up."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.branch_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(httpx.HTTPError),
            ):
                with attempt:
                    branch = await self._get_json(client, "GET", f"/repos/{owner}/{repo}/branches/main")
                    return branch["commit"]["sha"]
        except (RetryError, httpx.HTTPError, KeyError) as e:
            logger.warning("Could not get latest commit SHA, using main branch", error=str(e))
        return "main"
