"""Resolve package bases and locate conventional documentation files."""

from __future__ import annotations

from dataclasses import dataclass, replace
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from .config import ConfigError, read_manifest
from .logging import get_logger
from .models import (
    DeliveryOptions,
    DocumentKind,
    PackageManifest,
    PackageReference,
    RepositoryInfo,
    ResolvedBases,
)

ManifestReader = Callable[[Path], Optional[PackageManifest]]


@dataclass(frozen=True)
class CandidateFile:
    """A documentation file discovered while listing a package."""

    name: str
    path: Path
    area: str
    kind: DocumentKind


class BaseResolver:
    """Determines a package's root and internals folders from its manifest."""

    def __init__(self, manifest_reader: ManifestReader | None = None) -> None:
        self._manifest_reader = manifest_reader or read_manifest
        self.logger = get_logger("resolver")

    def resolve(
        self, package_root: Path | str, manifest_reader: ManifestReader | None = None
    ) -> ResolvedBases:
        """Resolve bases for ``package_root``; malformed metadata falls back to defaults."""
        root = Path(package_root).expanduser()
        reader = manifest_reader or self._manifest_reader

        manifest: Optional[PackageManifest] = None
        try:
            manifest = reader(root)
        except (ConfigError, OSError, yaml.YAMLError, ValueError, TypeError) as exc:
            self.logger.debug("Ignoring unreadable manifest in %s: %s", root, exc)

        options = manifest.delivery if manifest else DeliveryOptions()
        repository = manifest.repository if manifest else RepositoryInfo()

        internals_candidate = root / (options.internals_path or "Internals")
        internals = internals_candidate if internals_candidate.is_dir() else None
        if internals is None:
            self.logger.debug("No internals folder at %s", internals_candidate)

        return ResolvedBases(
            root_base=root,
            internals_base=internals,
            options=options,
            repository=repository,
            project_uri=manifest.project_uri if manifest else None,
            name=manifest.name if manifest else None,
            version=manifest.version if manifest else None,
        )

    def resolve_package(self, reference: PackageReference) -> ResolvedBases:
        """Resolve bases for an installed package, filling name/version from it."""
        bases = self.resolve(reference.root)
        return replace(
            bases,
            name=bases.name or reference.name,
            version=bases.version or reference.version,
        )


class DocumentLocator:
    """Pure lookup of README/CHANGELOG/LICENSE/UPGRADE files in a package."""

    def locate(
        self, bases: ResolvedBases, kind: DocumentKind, prefer_internals: bool = False
    ) -> Optional[Path]:
        root_pick = _best_match(bases.root_base, kind)
        internals_pick = (
            _best_match(bases.internals_base, kind) if bases.internals_base else None
        )
        if prefer_internals and internals_pick is not None:
            return internals_pick
        return root_pick or internals_pick

    def list_candidates(self, bases: ResolvedBases) -> List[CandidateFile]:
        """List every conventional document in root, internals and declared docs folders."""
        areas: List[tuple[str, Path]] = [("Root", bases.root_base)]
        if bases.internals_base is not None:
            areas.append(("Internals", bases.internals_base))
        for docs_path in bases.options.docs_paths:
            areas.append((docs_path, bases.root_base / docs_path))

        found: List[CandidateFile] = []
        seen: set[Path] = set()
        for area, directory in areas:
            for kind in DocumentKind:
                for path in _matches(directory, kind):
                    if path in seen:
                        continue
                    seen.add(path)
                    found.append(CandidateFile(name=path.name, path=path, area=area, kind=kind))
        return found


def _matches(directory: Path, kind: DocumentKind) -> List[Path]:
    if not directory.is_dir():
        return []
    pattern = kind.pattern.lower()
    matches = [
        entry
        for entry in directory.iterdir()
        if entry.is_file() and fnmatchcase(entry.name.lower(), pattern)
    ]
    return sorted(matches, key=lambda entry: (len(entry.name), entry.name))


def _best_match(directory: Path, kind: DocumentKind) -> Optional[Path]:
    matches = _matches(directory, kind)
    return matches[0] if matches else None


__all__ = ["BaseResolver", "CandidateFile", "DocumentLocator", "ManifestReader"]
