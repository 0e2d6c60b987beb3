import base64
import json
import os
from types import SimpleNamespace

# Settings are read at import time
os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
os.environ["GITHUB_TOKEN"] = "test-github-token"
for name in ("VERCEL_TOKEN", "PEXELS_API_KEY", "UNSPLASH_ACCESS_KEY", "GHL_WEBHOOK_SECRET"):
    os.environ.pop(name, None)

import httpx
import pytest

from app.models import RepoData, WebsiteRequest
from app.services.ai_engine import AIEngineService
from app.services.job_store import JobStore


PALETTE_REPLY = json.dumps({"primary": "#1E88E5", "secondary": "#FFC107", "accent": "#212121"})
TEMPLATE_REPLY = json.dumps({"template": "restaurant", "reason": "Food service business"})

SITE_CONTENT = {
    "meta": {
        "title": "Acme Bistro",
        "description": "Seasonal plates in the heart of town",
        "keywords": "bistro, restaurant, seasonal",
    },
    "navbar": {"logoText": "Acme Bistro", "links": [{"label": "Home", "route": "/"}]},
    "hero": {
        "title": "Fresh food, <b>local</b> flavor",
        "subtitle": "Open every day",
        "ctaText": "Book a table",
        "ctaLink": "/contact",
    },
    "pages": [
        {
            "route": "/",
            "title": "Home",
            "sections": [
                {
                    "type": "features",
                    "content": {
                        "title": "Why Choose Us",
                        "items": [{"title": "Local produce", "description": "From farms nearby"}],
                    },
                },
                {
                    "type": "services",
                    "content": {
                        "title": "Our Services",
                        "items": [{"title": "Catering", "description": "Events of any size"}],
                    },
                },
                {"type": "about", "content": {"title": "About Us", "description": "Family run since 1998"}},
            ],
        }
    ],
    "footer": {
        "companyName": "Acme Bistro",
        "description": "Neighborhood bistro",
        "contact": {"phone": "555-0100", "email": "hi@acme.test", "address": "1 Main St, Springfield"},
        "links": [{"label": "Home", "route": "/"}],
    },
}


class FakeMessages:
    """Stands in for ``AsyncAnthropic().messages``."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.reply(kwargs) if callable(self.reply) else self.reply
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=[SimpleNamespace(text=reply)])


class FakeAnthropic:
    def __init__(self, reply):
        self.messages = FakeMessages(reply)


def routed_reply(content=None):
    """Pick a canned reply from the system prompt of each call."""
    content_reply = json.dumps(content if content is not None else SITE_CONTENT)

    def reply(kwargs):
        system = kwargs["system"]
        if "color expert" in system:
            return PALETTE_REPLY
        if "web design expert" in system:
            return TEMPLATE_REPLY
        return content_reply

    return reply


def make_ai_engine(reply) -> AIEngineService:
    return AIEngineService(client=FakeAnthropic(reply), model="test-model")


class FakePublisher:
    def __init__(self, error=None, deleted=()):
        self.error = error
        self.deleted = set(deleted)
        self.calls = []

    async def repo_exists(self, repo_url):
        return repo_url not in self.deleted

    async def create_repo(self, repo_name, files, request):
        self.calls.append((repo_name, files))
        if self.error:
            raise self.error
        return RepoData(
            repo_url=f"https://github.com/acme/{repo_name}",
            repo_full_name=f"acme/{repo_name}",
            repo_owner="acme",
            repo_id=4242,
            latest_commit_sha="abc123",
        )


class FakeDeployer:
    def __init__(self, configured=False, result=None, state="unknown"):
        self.is_configured = configured
        self.result = result
        self.calls = []
        self.redeploys = []
        self.state = state

    async def deploy(self, repo_id, latest_commit_sha, project_name):
        self.calls.append((repo_id, latest_commit_sha, project_name))
        return self.result

    async def redeploy(self, repo_id, ref, sha, project_name):
        self.redeploys.append((repo_id, ref, sha, project_name))
        return self.result.url if self.result else None

    async def deployment_state(self, project_name):
        return self.state


class FakeImageFetcher:
    def __init__(self, images=None):
        self.images = images or []
        self.terms = None

    async def fetch_images(self, search_terms, limit=2):
        self.terms = search_terms
        return self.images


@pytest.fixture
def request_payload():
    return {
        "companyName": "Acme Bistro",
        "industry": "Restaurant",
        "address": "1 Main St",
        "city": "Springfield",
        "phoneNumber": "555-0100",
        "email": "hi@acme.test",
        "companyType": "Local business",
        "colors": "deep blue with a golden accent",
        "brandThemes": "warm, welcoming",
        "pages": [{"title": "Home", "information": "Seasonal menu and opening hours"}],
        "contactForm": True,
    }


@pytest.fixture
def website_request(request_payload):
    return WebsiteRequest.model_validate(request_payload)


@pytest.fixture
def job_store():
    return JobStore(retention_seconds=3600, sweep_interval_seconds=3600)


def github_repo_handler(files, calls, bodies=None, missing=()):
    """MockTransport handler for an existing ``acme/site`` repository holding ``files``."""
    bodies = bodies if bodies is not None else {}
    blobs = []

    def handler(request):
        calls.append((request.method, request.url.path))
        path = request.url.path
        base = "/repos/acme/site"
        if request.method != "GET":
            bodies.setdefault(path.removeprefix(base), []).append(json.loads(request.content))

        if path == base:
            return httpx.Response(200, json={"id": 7, "default_branch": "main"})
        if path == f"{base}/branches/main":
            return httpx.Response(200, json={"commit": {"sha": "c1"}})
        if path == f"{base}/git/trees/c1":
            tree = [{"path": name, "type": "blob"} for name in files]
            tree.append({"path": "assets", "type": "tree"})
            return httpx.Response(200, json={"tree": tree})
        if path.startswith(f"{base}/contents/"):
            name = path.removeprefix(f"{base}/contents/")
            if name in missing:
                return httpx.Response(404, json={"message": "Not Found"})
            content = base64.b64encode(files[name].encode("utf-8")).decode("ascii")
            return httpx.Response(200, json={"encoding": "base64", "content": content})
        if path == f"{base}/commits/main":
            return httpx.Response(200, json={"sha": "c1", "commit": {"tree": {"sha": "t1"}}})
        if path == f"{base}/git/blobs":
            blobs.append(path)
            return httpx.Response(201, json={"sha": f"b{len(blobs)}"})
        if path == f"{base}/git/trees":
            return httpx.Response(201, json={"sha": "t2"})
        if path == f"{base}/git/commits":
            return httpx.Response(201, json={"sha": "c2"})
        if path == f"{base}/git/refs/heads/main":
            return httpx.Response(200, json={"object": {"sha": "c2"}})
        return httpx.Response(404, json={"message": "Not Found"})

    return handler


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from app.main import limiter

    limiter.reset()
    yield
    limiter.reset()
