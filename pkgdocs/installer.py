"""Copies a package's bundled documentation into a destination layout."""

from __future__ import annotations

import shutil
import webbrowser
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from .logging import get_logger
from .models import ConflictPolicy, DocumentationLayout, DocumentKind, InstallPlan
from .resolver import BaseResolver

_INTRO_PATTERN = "intro*"


class InstallError(RuntimeError):
    """Raised when documentation cannot be installed."""


class InstallConflictError(InstallError):
    """Raised under the STOP policy when target files already exist."""

    def __init__(self, destination: Path, conflicts: Sequence[Path]) -> None:
        self.destination = destination
        self.conflicts = list(conflicts)
        preview = ", ".join(str(path) for path in self.conflicts[:5])
        if len(self.conflicts) > 5:
            preview += f", ... ({len(self.conflicts)} total)"
        super().__init__(f"Destination '{destination}' already contains: {preview}")


class InstallSourceError(InstallError):
    """Raised when a package has no documentation to install."""


def plan_destination(
    name: str, version: str, base_path: Path | str, layout: DocumentationLayout
) -> Path:
    """Return the install destination for ``layout`` without touching the filesystem."""
    base = Path(base_path)
    if layout is DocumentationLayout.DIRECT:
        return base
    if layout is DocumentationLayout.MODULE:
        return base / name
    if layout is DocumentationLayout.MODULE_AND_VERSION:
        return base / name / version
    raise ValueError(f"Unsupported layout: {layout!r}")


def layout_from_legacy_toggle(create_version_subfolder: bool) -> DocumentationLayout:
    """Map the legacy version-subfolder switch onto a layout."""
    if create_version_subfolder:
        return DocumentationLayout.MODULE_AND_VERSION
    return DocumentationLayout.DIRECT


def _default_opener(path: Path) -> None:  # pragma: no cover - launches a viewer
    webbrowser.open(path.resolve().as_uri())


class DocumentationInstaller:
    """Copies the internals subtree and root documents under a conflict policy."""

    ROOT_DOCUMENT_PATTERNS = tuple(kind.pattern.lower() for kind in DocumentKind)

    def __init__(
        self,
        resolver: BaseResolver | None = None,
        opener: Callable[[Path], None] | None = None,
    ) -> None:
        self.resolver = resolver or BaseResolver()
        self._opener = opener or _default_opener
        self.logger = get_logger("installer")

    plan_destination = staticmethod(plan_destination)

    def plan_install(
        self,
        source_root: Path | str,
        destination: Path | str,
        conflict_policy: ConflictPolicy,
        *,
        exclude_intro: bool = False,
    ) -> InstallPlan:
        """Compute the copy set for ``source_root``; reads the source, never the destination."""
        bases = self.resolver.resolve(source_root)
        root = bases.root_base

        if not root.is_dir():
            raise InstallSourceError(f"Package root '{root}' does not exist.")
        root_files = [
            entry
            for entry in sorted(root.iterdir())
            if entry.is_file() and _matches_any(entry.name, self.ROOT_DOCUMENT_PATTERNS)
        ]

        excluded: List[Path] = []
        if exclude_intro:
            if bases.options.intro_file:
                excluded.append((root / bases.options.intro_file).resolve())
            excluded.extend(
                path.resolve()
                for path in _iter_files(bases.internals_base, root_files)
                if fnmatchcase(path.name.lower(), _INTRO_PATTERN)
            )

        return InstallPlan(
            source_internals_dir=bases.internals_base,
            source_root_files=root_files,
            destination_dir=Path(destination),
            conflict_policy=conflict_policy,
            excluded=excluded,
        )

    def install(
        self,
        source_root: Path | str,
        name: str,
        version: str,
        destination: Path | str,
        conflict_policy: ConflictPolicy = ConflictPolicy.MERGE,
        force: bool = False,
        open_after: bool = False,
        exclude_intro: bool = False,
        *,
        list_only: bool = False,
    ) -> Path:
        """Install documentation for ``name`` ``version`` and return the destination."""
        destination_path = Path(destination)
        if list_only:
            self.logger.info(
                "Would copy %s %s documentation to %s (on-exists=%s)",
                name,
                version,
                destination_path,
                conflict_policy.value,
            )
            return destination_path

        plan = self.plan_install(
            source_root, destination_path, conflict_policy, exclude_intro=exclude_intro
        )
        copy_set = self._copy_set(plan)
        if not copy_set:
            raise InstallSourceError(
                f"No documentation found to install for {name} {version} in {source_root}"
            )

        self._guard_destination(Path(source_root), destination_path, conflict_policy)
        if conflict_policy is ConflictPolicy.STOP:
            existing = sorted(rel for rel in copy_set if (destination_path / rel).exists())
            if existing:
                raise InstallConflictError(destination_path, existing)
        if conflict_policy is ConflictPolicy.OVERWRITE and destination_path.exists():
            self.logger.info("Removing existing destination %s", destination_path)
            _remove_tree(destination_path)

        replace_existing = conflict_policy is ConflictPolicy.MERGE and force
        copied = skipped = 0
        for relative, source in copy_set.items():
            target = destination_path / relative
            if target.exists() and not replace_existing:
                skipped += 1
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied += 1

        self.logger.info(
            "Installed %s %s documentation to %s (%d copied, %d kept)",
            name,
            version,
            destination_path,
            copied,
            skipped,
        )

        if open_after:
            self._open_readme(destination_path)
        return destination_path

    # ------------------------------------------------------------------
    # Helpers

    def _copy_set(self, plan: InstallPlan) -> Dict[Path, Path]:
        """Map destination-relative paths to sources; internals files win on collisions."""
        excluded = set(plan.excluded)
        copy_set: Dict[Path, Path] = {}
        if plan.source_internals_dir is not None:
            internals = plan.source_internals_dir
            for path in sorted(internals.rglob("*")):
                if path.is_file() and path.resolve() not in excluded:
                    copy_set[path.relative_to(internals)] = path
        for path in plan.source_root_files:
            relative = Path(path.name)
            if relative in copy_set or path.resolve() in excluded:
                continue
            copy_set[relative] = path
        return copy_set

    def _guard_destination(
        self, source_root: Path, destination: Path, conflict_policy: ConflictPolicy
    ) -> None:
        if conflict_policy is not ConflictPolicy.OVERWRITE:
            return
        source = source_root.expanduser().resolve()
        target = destination.expanduser().resolve()
        if target == source or target in source.parents or source in target.parents:
            raise InstallError(
                f"Refusing to overwrite '{destination}' because it overlaps the package source."
            )

    def _open_readme(self, destination: Path) -> None:
        readmes = sorted(
            (
                entry
                for entry in destination.iterdir()
                if entry.is_file() and fnmatchcase(entry.name.lower(), "readme*")
            ),
            key=lambda entry: (len(entry.name), entry.name),
        )
        if not readmes:
            self.logger.debug("No README to open in %s", destination)
            return
        self._opener(readmes[0])


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(fnmatchcase(lowered, pattern) for pattern in patterns)


def _iter_files(internals: Path | None, root_files: Sequence[Path]) -> List[Path]:
    files = list(root_files)
    if internals is not None:
        files.extend(path for path in internals.rglob("*") if path.is_file())
    return files


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


__all__ = [
    "DocumentationInstaller",
    "InstallConflictError",
    "InstallError",
    "InstallSourceError",
    "layout_from_legacy_toggle",
    "plan_destination",
]
