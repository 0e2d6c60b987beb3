"""
Vercel Deployer Service - Deploys a published GitHub repository to Vercel.

Handles:
1. Account (team or user) resolution
2. Project creation, reusing an existing project of the same name
3. Linking the GitHub repository
4. Triggering a production deployment from the repository's head commit
"""

import asyncio
from typing import Optional

import httpx
import structlog

from app.config import settings
from app.exceptions import DeploymentError
from app.models import DeploymentResult
from app.utils import slugify

logger = structlog.get_logger()


class VercelDeployer:
    """Deploy websites to Vercel."""

    def __init__(
        self,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.base_url = "https://api.vercel.com"
        self.token = token if token is not None else settings.vercel_token
        self.headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        self.timeout = httpx.Timeout(60.0)
        self.transport = transport
        self.settle_seconds = (
            settle_seconds if settle_seconds is not None else settings.vercel_project_settle_seconds
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.token)

    async def deploy(
        self,
        repo_id: int,
        latest_commit_sha: str,
        project_name: str,
    ) -> DeploymentResult:
        """
        Deploy a GitHub repository to Vercel.

        Returns the deployment URL; if Vercel rejects the deployment trigger
        the project's default ``vercel.app`` URL is returned instead.
        """
        if not self.token:
            raise DeploymentError("VERCEL_TOKEN not configured")

        project_slug = slugify(project_name, max_length=52)
        logger.info("Starting Vercel deployment", project=project_slug)

        try:
            async with self._client() as client:
                account_id = await self._resolve_account_id(client)
                params = {"teamId": account_id} if account_id else {}

                project_id = await self._ensure_project(client, project_slug, params)
                await self._link_repository(client, repo_id, project_id, params)

                # Give Vercel a moment to finish provisioning the project
                await asyncio.sleep(self.settle_seconds)

                url = await self._create_deployment(
                    client, project_slug, project_id, repo_id, latest_commit_sha, params
                )
        except DeploymentError:
            raise
        except httpx.HTTPError as e:
            raise DeploymentError(f"Failed to deploy to Vercel: {e}") from e

        team_path = f"teams/{account_id}/" if account_id else ""
        result = DeploymentResult(
            url=url,
            project_url=f"https://vercel.com/{team_path}projects/{project_slug}",
        )
        logger.info("Deployment triggered", url=result.url, project=project_slug)
        return result

    async def redeploy(
        self,
        repo_id: int,
        ref: str,
        sha: str,
        project_name: str,
    ) -> Optional[str]:
        """
        Trigger a production deployment of an existing project.

        Best effort: the GitHub integration redeploys on push anyway, so any
        failure is logged and None returned.
        """
        if not self.token:
            return None

        project_slug = slugify(project_name, max_length=52)
        try:
            async with self._client() as client:
                account_id = await self._resolve_account_id(client)
                params = {"teamId": account_id} if account_id else {}
                response = await client.post(
                    "/v13/deployments",
                    params=params,
                    json={
                        "name": project_slug,
                        "gitSource": {"type": "github", "repoId": repo_id, "ref": ref, "sha": sha},
                        "target": "production",
                    },
                )
        except httpx.HTTPError as e:
            logger.warning("Vercel redeployment failed", project=project_slug, error=str(e))
            return None

        if response.status_code not in (200, 201):
            logger.warning("Vercel redeployment rejected", status=response.status_code)
            return None

        url = response.json().get("url")
        logger.info("Redeployment triggered", project=project_slug, url=url)
        return f"https://{url}" if url else None

    async def deployment_state(self, project_name: str) -> str:
        """Lower-cased state of the project's latest deployment, or ``unknown``."""
        if not self.token:
            return "unknown"

        try:
            async with self._client() as client:
                account_id = await self._resolve_account_id(client)
                params = {"project": project_name, "limit": 1}
                if account_id:
                    params["teamId"] = account_id
                response = await client.get("/v6/deployments", params=params)
        except httpx.HTTPError as e:
            logger.warning("Could not check Vercel deployment", project=project_name, error=str(e))
            return "unknown"

        if response.status_code != 200:
            return "unknown"
        deployments = response.json().get("deployments") or []
        if not deployments:
            return "unknown"
        return str(deployments[0].get("state") or "unknown").lower()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _resolve_account_id(self, client: httpx.AsyncClient) -> Optional[str]:
        """First team id, else the user id, else None."""
        response = await client.get("/v2/teams")
        if response.status_code == 200:
            teams = response.json().get("teams") or []
            if teams:
                return teams[0]["id"]

        response = await client.get("/v2/user")
        if response.status_code == 200:
            return (response.json().get("user") or {}).get("id")

        return None

    async def _ensure_project(
        self,
        client: httpx.AsyncClient,
        project_slug: str,
        params: dict,
    ) -> str:
        """Create project if it doesn't exist, return project ID."""
        response = await client.post(
            "/v9/projects",
            params=params,
            json={
                "name": project_slug,
                "framework": None,
                "publicSource": False,
            },
        )

        if response.status_code in (200, 201):
            project_id = response.json()["id"]
            logger.info("Project created", project_id=project_id)
            return project_id

        error = self._error_body(response)
        if error.get("code") == "project_already_exists":
            get_response = await client.get(f"/v9/projects/{project_slug}", params=params)
            if get_response.status_code == 200:
                project_id = get_response.json()["id"]
                logger.info("Using existing project", project_id=project_id)
                return project_id
            raise DeploymentError("Failed to deploy to Vercel: could not load existing project")

        raise DeploymentError(
            f"Failed to deploy to Vercel: could not create project: {error.get('message', 'Unknown error')}"
        )

    async def _link_repository(
        self,
        client: httpx.AsyncClient,
        repo_id: int,
        project_id: str,
        params: dict,
    ) -> None:
        """Best effort; the repository may already be linked."""
        try:
            response = await client.post(
                f"/v1/integrations/github/repo/{repo_id}",
                params=params,
                json={"projectId": project_id},
            )
        except httpx.HTTPError as e:
            logger.warning("Could not link GitHub repository", error=str(e))
            return

        if response.status_code in (200, 201):
            logger.info("GitHub repository linked", project_id=project_id)
        else:
            logger.warning("GitHub repository link rejected", status=response.status_code)

    async def _create_deployment(
        self,
        client: httpx.AsyncClient,
        project_slug: str,
        project_id: str,
        repo_id: int,
        sha: str,
        params: dict,
    ) -> str:
        """Trigger a production deployment and return its URL."""
        response = await client.post(
            "/v13/deployments",
            params=params,
            json={
                "name": project_slug,
                "project": project_id,
                "gitSource": {
                    "type": "github",
                    "repoId": repo_id,
                    "ref": sha,
                    "sha": sha,
                },
                "target": "production",
            },
        )

        if response.status_code in (200, 201):
            data = response.json()
            if data.get("url"):
                return f"https://{data['url']}"
            if data.get("alias"):
                return f"https://{data['alias'][0]}"
        else:
            logger.warning("Deployment trigger rejected", status=response.status_code, error=self._error_body(response))

        return f"https://{project_slug}.vercel.app"

    def _error_body(self, response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return (body.get("error") or {}) if isinstance(body, dict) else {}
