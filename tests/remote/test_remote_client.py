"""Tests for the remote repository client."""

from __future__ import annotations

import base64
from http.client import BadStatusLine, IncompleteRead
from typing import Dict, List
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import pytest

from pkgdocs.models import DocumentSelection, HostKind, RemoteRepositoryRef
from pkgdocs.planner import DocumentationPlanner, PlanRequest
from pkgdocs.remote.client import (
    AzureDevOpsStrategy,
    FetchStatus,
    GitHubStrategy,
    RemoteRepositoryClient,
)
from tests._fixtures.package_builder import PackageBuilder


class FakeResponse:
    def __init__(self, body: str, status: int = 200) -> None:
        self._body = body
        self.status = status

    def read(self) -> bytes:
        return self._body.encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class FakeServer:
    """Answers by URL path suffix; unknown paths produce a 404."""

    def __init__(self, routes: Dict[str, object]) -> None:
        self.routes = routes
        self.requests: List[Dict[str, object]] = []

    def __call__(self, request, timeout=None):
        self.requests.append(
            {
                "url": request.full_url,
                "headers": {key.lower(): value for key, value in request.header_items()},
                "timeout": timeout,
            }
        )
        for suffix, outcome in self.routes.items():
            if urlparse(request.full_url).path.endswith(suffix):
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise HTTPError(request.full_url, 404, "Not Found", {}, None)


def _github_ref(*paths: str, token: str | None = None) -> RemoteRepositoryRef:
    return RemoteRepositoryRef(
        host_kind=HostKind.GITHUB,
        owner="acme",
        repo="sample",
        branch="main",
        candidate_paths=paths,
        token=token,
    )


def test_fetch_tries_candidates_in_order(monkeypatch) -> None:
    server = FakeServer({"/contents/README": FakeResponse("plain readme")})
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)

    result = RemoteRepositoryClient(request_timeout=5.0).fetch(
        _github_ref("README.md", "readme.md", "README")
    )

    assert result.ok
    assert result.content == "plain readme"
    assert result.path == "README"
    assert [urlparse(req["url"]).path.rsplit("/", 1)[-1] for req in server.requests] == [
        "README.md",
        "readme.md",
        "README",
    ]
    assert all(req["timeout"] == 5.0 for req in server.requests)


def test_fetch_reports_not_found_when_all_candidates_miss(monkeypatch) -> None:
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", FakeServer({}))

    result = RemoteRepositoryClient().fetch(_github_ref("CHANGELOG.md", "changelog.md"))

    assert result.status is FetchStatus.NOT_FOUND
    assert result.content is None


def test_auth_failure_stops_search(monkeypatch) -> None:
    server = FakeServer(
        {"/contents/README.md": HTTPError("https://api.github.com", 401, "Unauthorized", {}, None)}
    )
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)

    result = RemoteRepositoryClient().fetch(_github_ref("README.md", "README"))

    assert result.status is FetchStatus.AUTH_REQUIRED
    assert result.detail == "token required"
    assert len(server.requests) == 1


def test_rejected_token_is_reported(monkeypatch) -> None:
    server = FakeServer(
        {"/contents/README.md": HTTPError("https://api.github.com", 403, "Forbidden", {}, None)}
    )
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)

    result = RemoteRepositoryClient().fetch(_github_ref("README.md", token="bad"))

    assert result.status is FetchStatus.AUTH_REQUIRED
    assert result.detail == "token rejected"


@pytest.mark.parametrize(
    "error",
    [
        URLError("connection refused"),
        TimeoutError("timed out"),
        HTTPError("https://api.github.com", 500, "Server Error", {}, None),
        BadStatusLine("garbage"),
        ValueError("unknown url type"),
    ],
)
def test_transient_errors_are_not_retried(monkeypatch, error: Exception) -> None:
    server = FakeServer({"/contents/README.md": error})
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)

    result = RemoteRepositoryClient().fetch(_github_ref("README.md", "README"))

    assert result.status is FetchStatus.TRANSIENT_ERROR
    assert len(server.requests) == 1


class TruncatedResponse(FakeResponse):
    def read(self) -> bytes:
        raise IncompleteRead(b"partial", 100)


def test_truncated_body_is_transient(monkeypatch, package_builder: PackageBuilder) -> None:
    server = FakeServer({"/contents/README.md": TruncatedResponse("")})
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)
    planner = DocumentationPlanner(remote_client=RemoteRepositoryClient())

    result = RemoteRepositoryClient().fetch(_github_ref("README.md", "README"))
    items = planner.plan(
        PlanRequest(
            bases=package_builder.resolve(),
            selections=[DocumentSelection.README],
            project_uri="https://github.com/acme/sample",
        )
    )

    assert result.status is FetchStatus.TRANSIENT_ERROR
    assert items == []


def test_malformed_api_base_is_transient() -> None:
    client = RemoteRepositoryClient(
        strategies={HostKind.GITHUB: GitHubStrategy("ghe.example.com/api/v3")}
    )

    result = client.fetch(_github_ref("README.md"))

    assert result.status is FetchStatus.TRANSIENT_ERROR


def test_stored_token_is_used_when_ref_has_none(monkeypatch) -> None:
    server = FakeServer({"/contents/LICENSE": FakeResponse("MIT")})
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)
    looked_up: List[HostKind] = []

    def lookup(host_kind: HostKind) -> str:
        looked_up.append(host_kind)
        return "stored-token"

    client = RemoteRepositoryClient(token_lookup=lookup)
    client.fetch(_github_ref("LICENSE"))
    client.fetch(_github_ref("LICENSE", token="explicit"))

    assert looked_up == [HostKind.GITHUB]
    assert server.requests[0]["headers"]["authorization"] == "Bearer stored-token"
    assert server.requests[1]["headers"]["authorization"] == "Bearer explicit"


def test_github_request_shape() -> None:
    request = GitHubStrategy("https://ghe.example.com/api/v3/").build_request(
        RemoteRepositoryRef(HostKind.GITHUB, "acme", "sample", branch="release/1.x"),
        "docs/README.md",
        None,
    )

    parsed = urlparse(request.url)
    assert parsed.netloc == "ghe.example.com"
    assert parsed.path == "/api/v3/repos/acme/sample/contents/docs/README.md"
    assert parse_qs(parsed.query) == {"ref": ["release/1.x"]}
    assert request.headers["Accept"] == "application/vnd.github.raw"
    assert "Authorization" not in request.headers


def test_azure_devops_request_shape() -> None:
    ref = RemoteRepositoryRef(
        HostKind.AZURE_DEVOPS, "contoso", "sample", branch="main", project="Tools"
    )

    request = AzureDevOpsStrategy().build_request(ref, "CHANGELOG.md", "pat")

    parsed = urlparse(request.url)
    query = parse_qs(parsed.query)
    assert parsed.path == "/contoso/Tools/_apis/git/repositories/sample/items"
    assert query["path"] == ["/CHANGELOG.md"]
    assert query["versionDescriptor.version"] == ["main"]
    assert query["$format"] == ["text"]
    expected = base64.b64encode(b":pat").decode("ascii")
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_azure_devops_sign_in_page_means_auth_required(monkeypatch) -> None:
    server = FakeServer({"/items": FakeResponse("<html>sign in</html>", status=203)})
    monkeypatch.setattr("pkgdocs.remote.client.urlopen", server)
    ref = RemoteRepositoryRef(
        HostKind.AZURE_DEVOPS,
        "contoso",
        "sample",
        project="Tools",
        candidate_paths=("README.md",),
    )

    result = RemoteRepositoryClient().fetch(ref)

    assert result.status is FetchStatus.AUTH_REQUIRED
