"""Decides where each requested document comes from and in which order it is shown."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .logging import get_logger
from .models import (
    ContentItem,
    DocumentKind,
    DocumentSelection,
    ItemKind,
    RemoteRepositoryRef,
    ResolvedBases,
    SourceTier,
)
from .remote.client import FetchStatus, RemoteRepositoryClient
from .remote.uri import parse_project_uri
from .resolver import DocumentLocator

DEFAULT_BRANCH = "main"

# ALL expands to exactly this sequence.
KIND_ORDER: Tuple[DocumentSelection, ...] = (
    DocumentSelection.README,
    DocumentSelection.CHANGELOG,
    DocumentSelection.LICENSE,
    DocumentSelection.INTRO,
    DocumentSelection.UPGRADE,
)

DEFAULT_SELECTIONS: Tuple[DocumentSelection, ...] = (
    DocumentSelection.README,
    DocumentSelection.CHANGELOG,
    DocumentSelection.LICENSE,
)

TITLES: Dict[DocumentSelection, str] = {
    DocumentSelection.README: "README",
    DocumentSelection.CHANGELOG: "CHANGELOG",
    DocumentSelection.LICENSE: "LICENSE",
    DocumentSelection.INTRO: "Introduction",
    DocumentSelection.UPGRADE: "Upgrade",
}

REMOTE_CANDIDATES: Dict[DocumentSelection, Tuple[str, ...]] = {
    DocumentSelection.README: ("README.md", "readme.md", "README"),
    DocumentSelection.CHANGELOG: ("CHANGELOG.md", "changelog.md", "CHANGELOG"),
    DocumentSelection.LICENSE: ("LICENSE", "LICENSE.md", "LICENSE.txt"),
    DocumentSelection.INTRO: ("INTRO.md", "intro.md", "Docs/INTRO.md"),
    DocumentSelection.UPGRADE: ("UPGRADE.md", "upgrade.md", "UPGRADE"),
}

_LOCAL_KINDS: Dict[DocumentSelection, DocumentKind] = {
    DocumentSelection.README: DocumentKind.README,
    DocumentSelection.CHANGELOG: DocumentKind.CHANGELOG,
    DocumentSelection.LICENSE: DocumentKind.LICENSE,
}


@dataclass
class PlanRequest:
    """Inputs for a documentation display plan."""

    bases: ResolvedBases
    selections: Sequence[DocumentSelection] = ()
    prefer_internals: bool = False
    allow_remote: bool = True
    project_uri: Optional[str] = None
    branch: Optional[str] = None
    repository_paths: Sequence[str] = ()
    token: Optional[str] = None
    title_name: Optional[str] = None
    title_version: Optional[str] = None
    single_file: Optional[str] = None
    include_links: bool = False


class DocumentationPlanner:
    """Produces the ordered list of content items for a request.

    README, CHANGELOG and LICENSE are looked up as local files first and
    fetched remotely second. Intro and Upgrade are manifest-declared, so their
    order is manifest file, then inline manifest text, then remote. The first
    tier that yields content wins and anything unresolved is omitted.
    """

    def __init__(
        self,
        locator: DocumentLocator | None = None,
        remote_client: RemoteRepositoryClient | None = None,
    ) -> None:
        self.locator = locator or DocumentLocator()
        self.remote_client = remote_client
        self.logger = get_logger("planner")

    def plan(self, request: PlanRequest) -> List[ContentItem]:
        if request.single_file:
            item = self._single_file_item(request)
            return [item] if item else []

        items: List[ContentItem] = []
        for selection in expand_selections(request.selections):
            item = self._resolve(selection, request)
            if item is None:
                self.logger.debug("No content resolved for %s", selection.value)
                continue
            items.append(item)

        if request.include_links:
            links_item = self._links_item(request)
            if links_item is not None:
                items.append(links_item)
        return items

    # ------------------------------------------------------------------
    # Tier resolution

    def _resolve(self, selection: DocumentSelection, request: PlanRequest) -> Optional[ContentItem]:
        if selection in _LOCAL_KINDS:
            item = self._local_item(selection, request)
        else:
            item = self._manifest_file_item(selection, request) or self._manifest_text_item(
                selection, request
            )
        if item is not None:
            return item
        return self._remote_item(selection, request)

    def _local_item(self, selection: DocumentSelection, request: PlanRequest) -> Optional[ContentItem]:
        bases = request.bases
        path = self.locator.locate(bases, _LOCAL_KINDS[selection], request.prefer_internals)
        if path is None:
            return None
        in_internals = bases.internals_base is not None and path.parent == bases.internals_base
        tier = SourceTier.INTERNALS if in_internals else SourceTier.LOCAL
        self.logger.debug("Using %s file %s for %s", tier.value, path, selection.value)
        return ContentItem(
            title=self._title(selection, request),
            kind=ItemKind.FILE,
            source_tier=tier,
            path=path,
            origin=str(path),
        )

    def _manifest_file_item(
        self, selection: DocumentSelection, request: PlanRequest
    ) -> Optional[ContentItem]:
        options = request.bases.options
        declared = options.intro_file if selection is DocumentSelection.INTRO else options.upgrade_file
        if not declared:
            return None
        path = request.bases.root_base / declared
        if not path.is_file():
            self.logger.warning("Declared %s file %s does not exist", selection.value, path)
            return None
        return ContentItem(
            title=self._title(selection, request),
            kind=ItemKind.FILE,
            source_tier=SourceTier.LOCAL,
            path=path,
            origin=str(path),
        )

    def _manifest_text_item(
        self, selection: DocumentSelection, request: PlanRequest
    ) -> Optional[ContentItem]:
        options = request.bases.options
        lines = options.intro_text if selection is DocumentSelection.INTRO else options.upgrade_text
        if not lines:
            return None
        return ContentItem(
            title=self._title(selection, request),
            kind=ItemKind.TEXT,
            source_tier=SourceTier.MANIFEST_TEXT,
            content="\n".join(lines),
            origin="manifest",
        )

    def _remote_item(self, selection: DocumentSelection, request: PlanRequest) -> Optional[ContentItem]:
        if not request.allow_remote or self.remote_client is None:
            return None
        ref = self.remote_ref(selection, request)
        if ref is None:
            return None

        result = self.remote_client.fetch(ref)
        if result.status is FetchStatus.OK:
            self.logger.debug("Fetched %s from %s", selection.value, result.url)
            return ContentItem(
                title=self._title(selection, request),
                kind=ItemKind.TEXT,
                source_tier=SourceTier.REMOTE,
                content=result.content,
                origin=result.path,
            )
        if result.status is FetchStatus.AUTH_REQUIRED:
            self.logger.warning(
                "Repository requires authentication for %s (%s). "
                "Store a token with `pkgdocs token set`.",
                selection.value,
                result.detail,
            )
        elif result.status is FetchStatus.TRANSIENT_ERROR:
            self.logger.warning(
                "Remote fetch for %s failed: %s", selection.value, result.detail
            )
        return None

    def remote_ref(
        self, selection: DocumentSelection, request: PlanRequest
    ) -> Optional[RemoteRepositoryRef]:
        """Build the remote reference for ``selection`` or ``None`` if remote is unusable."""
        project_uri = request.project_uri or request.bases.project_uri
        location = parse_project_uri(project_uri)
        if location is None:
            if project_uri:
                self.logger.debug("Unsupported project URI %s", project_uri)
            return None

        branch = (
            request.branch
            or request.bases.repository.branch
            or location.branch
            or DEFAULT_BRANCH
        )
        extra_paths = list(request.repository_paths) or list(request.bases.repository.paths)
        return RemoteRepositoryRef(
            host_kind=location.host_kind,
            owner=location.owner,
            repo=location.repo,
            project=location.project,
            branch=branch,
            candidate_paths=candidate_paths(selection, extra_paths),
            token=request.token,
        )

    # ------------------------------------------------------------------
    # Extras

    def _single_file_item(self, request: PlanRequest) -> Optional[ContentItem]:
        bases = request.bases
        requested = Path(request.single_file or "")
        if requested.is_absolute():
            candidates = [requested]
        else:
            candidates = [bases.root_base / requested]
            if bases.internals_base is not None:
                internals_candidate = bases.internals_base / requested
                if request.prefer_internals:
                    candidates.insert(0, internals_candidate)
                else:
                    candidates.append(internals_candidate)
        for candidate in candidates:
            if candidate.is_file():
                tier = (
                    SourceTier.INTERNALS
                    if bases.internals_base is not None
                    and bases.internals_base in candidate.parents
                    else SourceTier.LOCAL
                )
                return ContentItem(
                    title=self._decorate(candidate.name, request),
                    kind=ItemKind.FILE,
                    source_tier=tier,
                    path=candidate,
                    origin=str(candidate),
                )
        self.logger.warning("File %s not found in package", request.single_file)
        return None

    def _links_item(self, request: PlanRequest) -> Optional[ContentItem]:
        links = request.bases.options.important_links
        if not links:
            return None
        return ContentItem(
            title=self._decorate("Important Links", request),
            kind=ItemKind.TEXT,
            source_tier=SourceTier.MANIFEST_TEXT,
            content="\n".join(f"- {link.title}: {link.url}" for link in links),
            origin="manifest",
        )

    def _title(self, selection: DocumentSelection, request: PlanRequest) -> str:
        return self._decorate(TITLES[selection], request)

    @staticmethod
    def _decorate(label: str, request: PlanRequest) -> str:
        name = request.title_name or request.bases.name
        version = request.title_version or request.bases.version
        if not name:
            return label
        heading = f"{name} {version}" if version else name
        return f"{heading} - {label}"


def expand_selections(selections: Iterable[DocumentSelection]) -> List[DocumentSelection]:
    """Expand ALL and the default view, keeping request order and dropping repeats."""
    requested = list(selections) or list(DEFAULT_SELECTIONS)
    expanded: List[DocumentSelection] = []
    for selection in requested:
        group = KIND_ORDER if selection is DocumentSelection.ALL else (selection,)
        for kind in group:
            if kind not in expanded:
                expanded.append(kind)
    return expanded


def candidate_paths(selection: DocumentSelection, extra_paths: Sequence[str] = ()) -> Tuple[str, ...]:
    """Remote paths for ``selection``: repository root first, then each extra folder."""
    names = REMOTE_CANDIDATES[selection]
    paths: List[str] = list(names)
    for prefix in extra_paths:
        cleaned = prefix.strip().strip("/")
        if not cleaned:
            continue
        paths.extend(f"{cleaned}/{name}" for name in names)
    deduped: List[str] = []
    for path in paths:
        if path not in deduped:
            deduped.append(path)
    return tuple(deduped)


__all__ = [
    "DEFAULT_BRANCH",
    "DocumentationPlanner",
    "KIND_ORDER",
    "PlanRequest",
    "REMOTE_CANDIDATES",
    "candidate_paths",
    "expand_selections",
]
