"""
Site Editor - applies a plain-language edit to a published site.

Steps (progress in brackets):
1. Parse the repository URL [10]
2. Read the site's files from GitHub [20]
3. Ask Claude which files to change or create [40]
4. Rewrite each file with Claude [60-80]
5. Commit everything as one commit [90]
6. Redeploy on Vercel when a token is configured [95]

Progress is yielded as plain dicts so the API can stream them as SSE. A failure
ends the stream with an error event instead of raising.
"""

import re
from typing import Any, AsyncIterator

import structlog

from app.exceptions import SiteEditError
from app.models import EditPlan, EditWebsiteRequest, FileChange, GeneratedFile
from app.services.ai_engine import AIEngineService
from app.services.deployer import VercelDeployer
from app.services.publisher import GitHubPublisher, parse_repo_url

logger = structlog.get_logger()


PLAN_SYSTEM_PROMPT = (
    "You are a senior web developer analyzing website modification requests. "
    "Provide clear, specific instructions for what needs to change. Always return valid JSON."
)
EDIT_SYSTEM_PROMPT = (
    "You are a senior web developer editing static website files. Make precise "
    "changes while keeping markup, styling and navigation consistent."
)
DEFAULT_ERROR = "An unexpected error occurred while editing the website. Please try again."

CODE_FENCE = re.compile(r"```[a-zA-Z]*\n?")


def progress(message: str, percentage: int) -> dict[str, Any]:
    return {"message": message, "percentage": percentage}


def strip_code_fences(text: str) -> str:
    return CODE_FENCE.sub("", text).strip()


def fallback_plan(files: list[GeneratedFile], edit_prompt: str) -> EditPlan:
    """Apply the request to the first few pages when the model gives no usable plan."""
    pages = [f for f in files if f.name.endswith(".html")][:5]
    return EditPlan(
        files_to_modify=[FileChange(path=f.name, reason=edit_prompt, changes=edit_prompt) for f in pages],
    )


class SiteEditorService:
    """Edits published sites in place."""

    def __init__(
        self,
        ai_engine: AIEngineService,
        publisher: GitHubPublisher,
        deployer: VercelDeployer,
    ):
        self.ai_engine = ai_engine
        self.publisher = publisher
        self.deployer = deployer

    async def edit(self, request: EditWebsiteRequest) -> AsyncIterator[dict[str, Any]]:
        """Yield progress events, then a final success or error event."""
        log = logger.bind(repo_url=request.repo_url)
        log.info("Starting website edit")

        try:
            yield progress("Analyzing changes...", 10)
            parsed = parse_repo_url(request.repo_url)
            if parsed is None:
                raise SiteEditError("Invalid GitHub repository URL")
            owner, repo = parsed

            yield progress("Fetching current website files...", 20)
            snapshot = await self.publisher.fetch_site_files(owner, repo)

            yield progress("Analyzing files with AI...", 40)
            plan = await self._plan(request.edit_prompt, snapshot.files)

            yield progress("Applying changes to files...", 60)
            current = {f.name: f for f in snapshot.files}
            to_modify = [change for change in plan.files_to_modify if change.path in current]

            changed: list[GeneratedFile] = []
            for index, change in enumerate(to_modify):
                yield progress(f"Editing {change.path}...", 60 + index * 20 // len(to_modify))
                content = await self._rewrite(request.edit_prompt, change, current[change.path])
                changed.append(GeneratedFile(name=change.path, content=content))

            for change in plan.files_to_create:
                yield progress(f"Creating {change.path}...", 80)
                changed.append(GeneratedFile(name=change.path, content=change.content))

            if not changed:
                raise SiteEditError("The edit did not change any files")

            yield progress("Committing changes to GitHub...", 90)
            commit_sha = await self.publisher.commit_files(
                owner,
                repo,
                snapshot.default_branch,
                changed,
                f"AI Edit: {request.edit_prompt[:72]}",
            )

            yield progress("Triggering Vercel redeployment...", 95)
            if self.deployer.is_configured:
                await self.deployer.redeploy(snapshot.repo_id, snapshot.default_branch, commit_sha, repo)

            yield progress("Edit complete!", 100)
            log.info("Website edit committed", files=len(changed), sha=commit_sha)
            yield {
                "success": True,
                "message": "Website edited and redeployed successfully",
                "commitSha": commit_sha,
            }

        except Exception as e:
            log.exception("Website edit failed", error=str(e))
            yield {"success": False, "error": str(e) or DEFAULT_ERROR, "code": "EDIT_ERROR"}

    async def _plan(self, edit_prompt: str, files: list[GeneratedFile]) -> EditPlan:
        file_list = "\n".join(f"- {f.name}" for f in files)
        prompt = f"""You are analyzing a website that needs to be edited based on user instructions.

User's Edit Request: "{edit_prompt}"

Current Website Files:
{file_list}

Analyze the request and determine:
1. Which files need to be modified
2. What specific changes need to be made to each file
3. Whether any new files need to be created

Return a JSON object with this structure:
{{
  "filesToModify": [
    {{"path": "index.html", "reason": "Why", "changes": "What to change"}}
  ],
  "filesToCreate": [
    {{"path": "gallery/index.html", "reason": "Why", "content": "Full file content"}}
  ]
}}

Only include files that actually need modification."""

        try:
            data = await self.ai_engine.complete_json(prompt, system=PLAN_SYSTEM_PROMPT, max_tokens=4096)
            return EditPlan.model_validate(data)
        except ValueError as e:
            logger.warning("Edit plan unusable, editing pages directly", error=str(e))
            return fallback_plan(files, edit_prompt)

    async def _rewrite(self, edit_prompt: str, change: FileChange, original: GeneratedFile) -> str:
        prompt = f"""You are editing one file of a static HTML/CSS/JS website. Make the following changes:

User's Request: "{edit_prompt}"
Specific Changes Needed: {change.changes or change.reason or edit_prompt}

Original File ({original.name}):
```
{original.content}
```

Requirements:
1. Keep the shared navbar and footer markup and the links to styles.css and script.js
2. Only modify what the request needs
3. The result must still be valid for its file type

Return ONLY the complete modified file content, without explanations or markdown."""

        text = await self.ai_engine.complete(prompt, system=EDIT_SYSTEM_PROMPT, max_tokens=8192)
        return strip_code_fences(text)
