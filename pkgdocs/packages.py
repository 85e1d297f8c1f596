"""Installed-package lookup backed by ``importlib.metadata``."""

from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .logging import get_logger
from .models import PackageReference

_PROJECT_URL_LABELS = ("source", "source code", "repository", "code", "homepage")

_logger = get_logger("packages")


class PackageNotFoundError(LookupError):
    """Raised when a package (or the requested version) is not installed."""


def find_package(
    name: str,
    version: str | None = None,
    *,
    distribution_loader: Callable[[str], metadata.Distribution] | None = None,
) -> PackageReference:
    """Resolve an installed distribution into a :class:`PackageReference`."""
    loader = distribution_loader or metadata.distribution
    try:
        dist = loader(name)
    except metadata.PackageNotFoundError as exc:
        raise PackageNotFoundError(f"Package '{name}' not found.") from exc

    dist_name = dist.metadata["Name"] or name
    dist_version = dist.version
    if version and dist_version != version:
        raise PackageNotFoundError(
            f"Package '{name}' version {version} not found (installed: {dist_version})."
        )

    root = _package_root(dist, dist_name)
    _logger.debug("Resolved %s %s at %s", dist_name, dist_version, root)
    return PackageReference(name=dist_name, version=dist_version, root=root)


def project_uri_from_metadata(
    name: str,
    *,
    distribution_loader: Callable[[str], metadata.Distribution] | None = None,
) -> Optional[str]:
    """Return the repository URL a distribution advertises, if any."""
    loader = distribution_loader or metadata.distribution
    try:
        dist = loader(name)
    except metadata.PackageNotFoundError:
        return None
    return select_project_uri(
        dist.metadata.get_all("Project-URL") or [],
        dist.metadata.get("Home-page"),
    )


def select_project_uri(project_urls: Iterable[str], home_page: str | None) -> Optional[str]:
    labelled: dict[str, str] = {}
    for entry in project_urls:
        label, _, url = entry.partition(",")
        if url.strip():
            labelled.setdefault(label.strip().lower(), url.strip())
    for label in _PROJECT_URL_LABELS:
        if label in labelled:
            return labelled[label]
    if home_page and home_page.strip() and home_page.strip().upper() != "UNKNOWN":
        return home_page.strip()
    return None


def _package_root(dist: metadata.Distribution, dist_name: str) -> Path:
    for top_level in _top_level_names(dist, dist_name):
        candidate = Path(str(dist.locate_file(top_level)))
        if candidate.is_dir():
            return candidate.resolve()
    # Distributions without an importable directory fall back to their install prefix.
    return Path(str(dist.locate_file(""))).resolve()


def _top_level_names(dist: metadata.Distribution, dist_name: str) -> List[str]:
    names: List[str] = []
    top_level = dist.read_text("top_level.txt")
    if top_level:
        names.extend(line.strip() for line in top_level.splitlines() if line.strip())
    names.append(re.sub(r"[-.]+", "_", dist_name).lower())
    return names


__all__ = [
    "PackageNotFoundError",
    "find_package",
    "project_uri_from_metadata",
    "select_project_uri",
]
