"""Project URI parsing for supported source-control hosts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlparse

from ..models import HostKind


@dataclass(frozen=True)
class RepositoryLocation:
    """Host kind and coordinates of a repository parsed from a project URI."""

    host_kind: HostKind
    owner: str
    repo: str
    project: Optional[str] = None
    branch: Optional[str] = None


def parse_project_uri(uri: str | None) -> Optional[RepositoryLocation]:
    """Parse GitHub and Azure DevOps project URIs; other hosts yield ``None``."""
    if not uri or not uri.strip():
        return None
    parsed = urlparse(uri.strip())
    host = (parsed.hostname or "").lower()
    segments = [unquote(part) for part in parsed.path.split("/") if part]

    if host in {"github.com", "www.github.com"}:
        return _parse_github(segments)
    if host == "dev.azure.com":
        # /{org}/{project}/_git/{repo}
        if len(segments) >= 4 and segments[2] == "_git":
            return RepositoryLocation(
                host_kind=HostKind.AZURE_DEVOPS,
                owner=segments[0],
                project=segments[1],
                repo=segments[3],
            )
        return None
    if host.endswith(".visualstudio.com"):
        # {org}.visualstudio.com/{project}/_git/{repo}
        org = host[: -len(".visualstudio.com")]
        if org and len(segments) >= 3 and segments[1] == "_git":
            return RepositoryLocation(
                host_kind=HostKind.AZURE_DEVOPS,
                owner=org,
                project=segments[0],
                repo=segments[2],
            )
        return None
    return None


def _parse_github(segments: list[str]) -> Optional[RepositoryLocation]:
    if len(segments) < 2:
        return None
    owner, repo = segments[0], segments[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        return None
    branch = None
    if len(segments) >= 4 and segments[2] == "tree":
        # Branch names may contain slashes, e.g. feature/docs-fix.
        branch = "/".join(segments[3:])
    elif len(segments) >= 4 and segments[2] == "blob":
        branch = segments[3]
    return RepositoryLocation(host_kind=HostKind.GITHUB, owner=owner, repo=repo, branch=branch)


__all__ = ["RepositoryLocation", "parse_project_uri"]
