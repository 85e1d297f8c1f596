"""Configuration loading for pkgdocs (package manifests and environment settings)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .models import (
    DEFAULT_INTERNALS_PATH,
    DEFAULT_SCRIPTS_PATH,
    DeliveryOptions,
    ImportantLink,
    PackageManifest,
    RepositoryInfo,
)

MANIFEST_FILENAMES = ("pkgdocs.yml", ".pkgdocs.yml")

DEFAULT_HOME = Path("~/.pkgdocs")
DEFAULT_TIMEOUT = 30.0
DEFAULT_GITHUB_API = "https://api.github.com"
DEFAULT_AZDO_BASE = "https://dev.azure.com"


class ConfigError(RuntimeError):
    """Raised when a package manifest cannot be parsed."""


@dataclass
class Settings:
    """Process-level settings sourced from the environment."""

    home: Path
    request_timeout: float = DEFAULT_TIMEOUT
    github_api: str = DEFAULT_GITHUB_API
    azdo_base: str = DEFAULT_AZDO_BASE
    secret_key: Optional[str] = None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build settings from ``PKGDOCS_*`` environment variables."""
    env = os.environ if environ is None else environ
    home = Path(env.get("PKGDOCS_HOME") or DEFAULT_HOME).expanduser()
    timeout = _as_float(env.get("PKGDOCS_TIMEOUT"))
    return Settings(
        home=home,
        request_timeout=timeout if timeout and timeout > 0 else DEFAULT_TIMEOUT,
        github_api=(env.get("PKGDOCS_GITHUB_API") or DEFAULT_GITHUB_API).rstrip("/"),
        azdo_base=(env.get("PKGDOCS_AZDO_BASE") or DEFAULT_AZDO_BASE).rstrip("/"),
        secret_key=env.get("PKGDOCS_SECRET_KEY") or None,
    )


def find_manifest(root: Path) -> Optional[Path]:
    """Return the manifest file inside ``root`` if one exists."""
    for name in MANIFEST_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def read_manifest(root: Path) -> Optional[PackageManifest]:
    """Load the manifest for the package rooted at ``root``.

    Returns ``None`` when the package ships no manifest and raises
    :class:`ConfigError` when one exists but cannot be understood.
    """
    manifest_file = find_manifest(root)
    if manifest_file is None:
        return None
    data = _read_yaml(manifest_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{manifest_file.name} must contain a mapping at the root")
    return parse_manifest(data)


def parse_manifest(data: Mapping[str, Any]) -> PackageManifest:
    """Convert a loosely typed manifest mapping into a :class:`PackageManifest`."""
    delivery_data = _as_dict(data.get("delivery"))
    delivery = DeliveryOptions(
        internals_path=_as_str(delivery_data.get("internals_path")) or DEFAULT_INTERNALS_PATH,
        scripts_path=_as_str(delivery_data.get("scripts_path")) or DEFAULT_SCRIPTS_PATH,
        docs_paths=_as_str_list(delivery_data.get("docs_paths")),
        important_links=_as_links(delivery_data.get("important_links")),
        intro_text=_as_str_list(delivery_data.get("intro_text")),
        upgrade_text=_as_str_list(delivery_data.get("upgrade_text")),
        intro_file=_as_str(delivery_data.get("intro_file")),
        upgrade_file=_as_str(delivery_data.get("upgrade_file")),
    )

    repository_data = _as_dict(data.get("repository"))
    repository = RepositoryInfo(
        branch=_as_str(repository_data.get("branch")),
        paths=_as_str_list(repository_data.get("paths")),
    )

    return PackageManifest(
        name=_as_str(data.get("name")),
        version=_as_str(data.get("version")),
        project_uri=_as_str(data.get("project_uri")),
        delivery=delivery,
        repository=repository,
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_links(value: Any) -> List[ImportantLink]:
    links: List[ImportantLink] = []
    if isinstance(value, dict):
        value = [{"title": key, "url": url} for key, url in value.items()]
    if not isinstance(value, list):
        return links
    for entry in value:
        entry_data = _as_dict(entry)
        title = _as_str(entry_data.get("title"))
        url = _as_str(entry_data.get("url"))
        if title and url:
            links.append(ImportantLink(title=title, url=url))
    return links


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "ConfigError",
    "MANIFEST_FILENAMES",
    "Settings",
    "find_manifest",
    "load_settings",
    "parse_manifest",
    "read_manifest",
]
