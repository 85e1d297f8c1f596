"""Raw-file retrieval from GitHub and Azure DevOps repositories."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from http.client import HTTPException
from typing import Callable, Dict, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..config import DEFAULT_AZDO_BASE, DEFAULT_GITHUB_API, DEFAULT_TIMEOUT
from ..logging import get_logger
from ..models import HostKind, RemoteRepositoryRef

_USER_AGENT = "pkgdocs"
_AUTH_STATUSES = {401, 403}
# Azure DevOps answers anonymous requests with a 203 sign-in page.
_AZDO_SIGN_IN_STATUS = 203


class FetchStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    AUTH_REQUIRED = "auth_required"
    TRANSIENT_ERROR = "transient_error"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a remote fetch across all candidate paths."""

    status: FetchStatus
    content: Optional[str] = None
    path: Optional[str] = None
    url: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is FetchStatus.OK


@dataclass(frozen=True)
class HttpRequest:
    url: str
    headers: Dict[str, str]


class HostStrategy(Protocol):
    """Builds raw-content requests for one source-control host."""

    def build_request(self, ref: RemoteRepositoryRef, path: str, token: str | None) -> HttpRequest:
        ...


class GitHubStrategy:
    """Uses the contents API with the raw media type."""

    def __init__(self, api_base: str = DEFAULT_GITHUB_API) -> None:
        self.api_base = api_base.rstrip("/")

    def build_request(self, ref: RemoteRepositoryRef, path: str, token: str | None) -> HttpRequest:
        url = (
            f"{self.api_base}/repos/{quote(ref.owner)}/{quote(ref.repo)}/contents/"
            f"{quote(path.lstrip('/'))}?{urlencode({'ref': ref.branch})}"
        )
        headers = {
            "Accept": "application/vnd.github.raw",
            "User-Agent": _USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return HttpRequest(url=url, headers=headers)


class AzureDevOpsStrategy:
    """Uses the Git items API with text formatting."""

    API_VERSION = "7.1"

    def __init__(self, base_url: str = DEFAULT_AZDO_BASE) -> None:
        self.base_url = base_url.rstrip("/")

    def build_request(self, ref: RemoteRepositoryRef, path: str, token: str | None) -> HttpRequest:
        if not ref.project:
            raise ValueError("Azure DevOps references require a project")
        query = urlencode(
            {
                "path": "/" + path.lstrip("/"),
                "versionDescriptor.version": ref.branch,
                "versionDescriptor.versionType": "branch",
                "includeContent": "true",
                "$format": "text",
                "api-version": self.API_VERSION,
            }
        )
        url = (
            f"{self.base_url}/{quote(ref.owner)}/{quote(ref.project)}/_apis/git/repositories/"
            f"{quote(ref.repo)}/items?{query}"
        )
        headers = {"Accept": "text/plain", "User-Agent": _USER_AGENT}
        if token:
            encoded = base64.b64encode(f":{token}".encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {encoded}"
        return HttpRequest(url=url, headers=headers)


TokenLookup = Callable[[HostKind], Optional[str]]


class RemoteRepositoryClient:
    """Fetches the first available candidate path from a remote repository."""

    def __init__(
        self,
        *,
        token_lookup: TokenLookup | None = None,
        strategies: Dict[HostKind, HostStrategy] | None = None,
        request_timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self._token_lookup = token_lookup
        self._strategies: Dict[HostKind, HostStrategy] = strategies or {
            HostKind.GITHUB: GitHubStrategy(),
            HostKind.AZURE_DEVOPS: AzureDevOpsStrategy(),
        }
        self.request_timeout = request_timeout
        self.logger = get_logger("remote")

    def fetch(self, ref: RemoteRepositoryRef) -> FetchResult:
        """Try ``ref.candidate_paths`` in order and return the first hit.

        A 404 moves on to the next candidate. Authentication failures and
        transient errors end the search immediately; nothing is retried.
        """
        strategy = self._strategies.get(ref.host_kind)
        if strategy is None:
            return FetchResult(FetchStatus.NOT_FOUND, detail=f"Unsupported host {ref.host_kind.value}")

        token = ref.token or self._lookup_token(ref.host_kind)
        for path in ref.candidate_paths:
            try:
                request = strategy.build_request(ref, path, token)
            except ValueError as exc:
                return FetchResult(FetchStatus.NOT_FOUND, path=path, detail=str(exc))
            result = self._fetch_one(request, path, ref.host_kind, has_token=bool(token))
            if result.status is FetchStatus.NOT_FOUND:
                self.logger.debug("Remote miss for %s (%s)", path, request.url)
                continue
            return result
        return FetchResult(FetchStatus.NOT_FOUND, detail="No candidate path found")

    def _lookup_token(self, host_kind: HostKind) -> Optional[str]:
        if self._token_lookup is None:
            return None
        return self._token_lookup(host_kind)

    def _fetch_one(
        self, request: HttpRequest, path: str, host_kind: HostKind, *, has_token: bool
    ) -> FetchResult:
        try:
            http_request = Request(request.url, headers=request.headers, method="GET")
            with urlopen(http_request, timeout=self.request_timeout) as response:
                status = getattr(response, "status", 200)
                body = response.read()
        except HTTPError as exc:
            if exc.code == 404:
                return FetchResult(FetchStatus.NOT_FOUND, path=path, url=request.url)
            if exc.code in _AUTH_STATUSES:
                detail = "token rejected" if has_token else "token required"
                return FetchResult(FetchStatus.AUTH_REQUIRED, path=path, url=request.url, detail=detail)
            return FetchResult(
                FetchStatus.TRANSIENT_ERROR,
                path=path,
                url=request.url,
                detail=f"HTTP {exc.code}: {exc.reason}",
            )
        except (URLError, TimeoutError, OSError, HTTPException, ValueError) as exc:
            # ValueError covers malformed API base URLs.
            reason = getattr(exc, "reason", exc)
            return FetchResult(
                FetchStatus.TRANSIENT_ERROR, path=path, url=request.url, detail=str(reason)
            )

        if host_kind is HostKind.AZURE_DEVOPS and status == _AZDO_SIGN_IN_STATUS:
            detail = "token rejected" if has_token else "token required"
            return FetchResult(FetchStatus.AUTH_REQUIRED, path=path, url=request.url, detail=detail)

        return FetchResult(
            FetchStatus.OK,
            content=body.decode("utf-8", errors="replace"),
            path=path,
            url=request.url,
        )


__all__ = [
    "AzureDevOpsStrategy",
    "FetchResult",
    "FetchStatus",
    "GitHubStrategy",
    "HostStrategy",
    "HttpRequest",
    "RemoteRepositoryClient",
]
