import httpx
import pytest

from app.models import SaveSiteRequest, SiteOutcome, SiteRecord
from app.services.deployer import VercelDeployer
from app.services.publisher import GitHubPublisher
from app.services.site_registry import SiteRegistry, vercel_project_name

from conftest import FakeDeployer, FakePublisher


def site_request(repo="site", **fields):
    return SaveSiteRequest(company_name="Acme Bistro", repo_url=f"https://github.com/acme/{repo}", **fields)


async def test_save_defaults_status_from_error():
    registry = SiteRegistry()

    ok = await registry.save(site_request("ok"))
    broken = await registry.save(site_request("broken", error="Deployment failed"))

    assert ok.id.startswith("site_")
    assert ok.status == SiteOutcome.SUCCESS
    assert broken.status == SiteOutcome.FAILED
    assert [s.repo_url for s in await registry.list_sites()] == [broken.repo_url, ok.repo_url]


async def test_save_replaces_entry_with_same_repo():
    registry = SiteRegistry()
    await registry.save(site_request("first"))
    await registry.save(site_request("second"))

    updated = await registry.save(site_request("first", vercel_url="https://first.vercel.app"))

    sites = await registry.list_sites()
    assert [s.repo_url for s in sites] == ["https://github.com/acme/second", "https://github.com/acme/first"]
    assert sites[1] == updated
    assert sites[1].vercel_url == "https://first.vercel.app"


async def test_registry_keeps_newest_sites():
    registry = SiteRegistry(max_sites=2)
    for repo in ("one", "two", "three"):
        await registry.save(site_request(repo))

    assert [s.repo_url.rsplit("/", 1)[1] for s in await registry.list_sites()] == ["three", "two"]


@pytest.mark.parametrize(
    "vercel_url, project_url, expected",
    [
        (None, "https://vercel.com/teams/team_1/projects/acme-site", "acme-site"),
        ("https://acme-site.vercel.app", None, "acme-site"),
        ("https://acme-site-abc.vercel.app", "https://vercel.com/projects/acme-site", "acme-site"),
        ("https://acme.example.com", None, None),
        (None, None, None),
    ],
)
def test_vercel_project_name(vercel_url, project_url, expected):
    site = SiteRecord(
        id="site_1",
        company_name="Acme",
        repo_url="https://github.com/acme/site",
        vercel_url=vercel_url,
        project_url=project_url,
    )

    assert vercel_project_name(site) == expected


async def test_status_listing_hides_deleted_repositories():
    registry = SiteRegistry()
    await registry.save(site_request("gone"))
    await registry.save(site_request("live", vercel_url="https://live.vercel.app"))

    sites = await registry.list_with_status(
        FakePublisher(deleted={"https://github.com/acme/gone"}),
        FakeDeployer(state="ready"),
    )

    [site] = sites
    assert site.repo_url == "https://github.com/acme/live"
    assert site.github_exists is True
    assert site.vercel_deployed is True
    assert site.vercel_status == "ready"


async def test_status_listing_against_live_apis():
    registry = SiteRegistry()
    await registry.save(site_request("site", project_url="https://vercel.com/teams/u1/projects/acme-site"))
    await registry.save(site_request("gone"))
    await registry.save(site_request("undeployed"))

    def github(request):
        return httpx.Response(404 if request.url.path == "/repos/acme/gone" else 200, json={})

    def vercel(request):
        if request.url.path == "/v2/teams":
            return httpx.Response(200, json={"teams": []})
        if request.url.path == "/v2/user":
            return httpx.Response(200, json={"user": {"id": "u1"}})
        assert request.url.params["project"] == "acme-site"
        assert request.url.params["teamId"] == "u1"
        return httpx.Response(200, json={"deployments": [{"state": "BUILDING"}]})

    sites = await registry.list_with_status(
        GitHubPublisher(token="gh-token", transport=httpx.MockTransport(github)),
        VercelDeployer(token="vc-token", transport=httpx.MockTransport(vercel), settle_seconds=0),
    )

    by_repo = {s.repo_url.rsplit("/", 1)[1]: s for s in sites}
    assert set(by_repo) == {"site", "undeployed"}
    assert by_repo["site"].vercel_status == "building"
    assert by_repo["site"].vercel_deployed is False
    assert by_repo["undeployed"].vercel_status == "unknown"
