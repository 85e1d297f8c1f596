"""Core data models shared across pkgdocs components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

DEFAULT_INTERNALS_PATH = "Internals"
DEFAULT_SCRIPTS_PATH = "Internals/Scripts"


class DocumentKind(Enum):
    """Conventional document files searched for in a package."""

    README = "README"
    CHANGELOG = "CHANGELOG"
    LICENSE = "LICENSE"
    UPGRADE = "UPGRADE"

    @property
    def pattern(self) -> str:
        return f"{self.value}*"


class DocumentSelection(Enum):
    """Document kinds a caller can request for display."""

    README = "readme"
    CHANGELOG = "changelog"
    LICENSE = "license"
    INTRO = "intro"
    UPGRADE = "upgrade"
    ALL = "all"


class SourceTier(Enum):
    LOCAL = "local"
    INTERNALS = "internals"
    MANIFEST_TEXT = "manifest_text"
    REMOTE = "remote"


class ItemKind(Enum):
    FILE = "FILE"
    TEXT = "TEXT"


class HostKind(Enum):
    GITHUB = "github"
    AZURE_DEVOPS = "azure_devops"


class ConflictPolicy(Enum):
    """Behaviour when an install destination already holds files."""

    STOP = "stop"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    MERGE = "merge"


class DocumentationLayout(Enum):
    """Destination directory shape for an install."""

    DIRECT = "direct"
    MODULE = "module"
    MODULE_AND_VERSION = "module-and-version"


@dataclass(frozen=True)
class PackageReference:
    """An installed package as reported by the package system."""

    name: str
    version: str
    root: Path


@dataclass(frozen=True)
class ImportantLink:
    title: str
    url: str


@dataclass
class DeliveryOptions:
    """Manifest-declared locations and narrative text for bundled documentation.

    All paths are relative to the package root.
    """

    internals_path: str = DEFAULT_INTERNALS_PATH
    scripts_path: str = DEFAULT_SCRIPTS_PATH
    docs_paths: List[str] = field(default_factory=list)
    important_links: List[ImportantLink] = field(default_factory=list)
    intro_text: List[str] = field(default_factory=list)
    upgrade_text: List[str] = field(default_factory=list)
    intro_file: Optional[str] = None
    upgrade_file: Optional[str] = None


@dataclass
class RepositoryInfo:
    """Remote repository overrides declared in the manifest."""

    branch: Optional[str] = None
    paths: List[str] = field(default_factory=list)


@dataclass
class PackageManifest:
    """Typed view of a package's pkgdocs manifest."""

    name: Optional[str] = None
    version: Optional[str] = None
    project_uri: Optional[str] = None
    delivery: DeliveryOptions = field(default_factory=DeliveryOptions)
    repository: RepositoryInfo = field(default_factory=RepositoryInfo)


@dataclass
class ResolvedBases:
    """Root and internals locations of a package plus its delivery metadata."""

    root_base: Path
    internals_base: Optional[Path]
    options: DeliveryOptions = field(default_factory=DeliveryOptions)
    repository: RepositoryInfo = field(default_factory=RepositoryInfo)
    project_uri: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None


@dataclass(frozen=True)
class RemoteRepositoryRef:
    """Everything needed to fetch raw files from a remote repository."""

    host_kind: HostKind
    owner: str
    repo: str
    branch: str = "main"
    candidate_paths: Tuple[str, ...] = ()
    token: Optional[str] = None
    project: Optional[str] = None


@dataclass
class ContentItem:
    """Single unit of documentation to display, in display order."""

    title: str
    kind: ItemKind
    source_tier: SourceTier
    path: Optional[Path] = None
    content: Optional[str] = None
    origin: Optional[str] = None


@dataclass(frozen=True)
class InstallPlan:
    """Copy set and destination computed once per install invocation."""

    source_internals_dir: Optional[Path]
    source_root_files: Sequence[Path]
    destination_dir: Path
    conflict_policy: ConflictPolicy
    excluded: Sequence[Path] = ()
