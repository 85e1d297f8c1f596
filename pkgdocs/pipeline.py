"""Wires resolution, planning and installation together for CLI and service callers."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import Settings, load_settings
from .installer import DocumentationInstaller, InstallError, plan_destination
from .logging import get_logger
from .models import (
    ConflictPolicy,
    ContentItem,
    DocumentationLayout,
    DocumentSelection,
    HostKind,
    PackageReference,
    ResolvedBases,
)
from .packages import find_package, project_uri_from_metadata
from .planner import DocumentationPlanner, PlanRequest
from .remote.client import AzureDevOpsStrategy, GitHubStrategy, RemoteRepositoryClient
from .resolver import BaseResolver, CandidateFile, DocumentLocator
from .stores.token_store import TokenStore


class DocumentationPipeline:
    """Coordinates package lookup, documentation planning and installs."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        resolver: BaseResolver | None = None,
        locator: DocumentLocator | None = None,
        token_store: TokenStore | None = None,
        remote_client: RemoteRepositoryClient | None = None,
        installer: DocumentationInstaller | None = None,
        package_finder: Callable[[str, Optional[str]], PackageReference] | None = None,
        uri_lookup: Callable[[str], Optional[str]] | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.resolver = resolver or BaseResolver()
        self.locator = locator or DocumentLocator()
        self.token_store = token_store or TokenStore(
            self.settings.home, secret_key=self.settings.secret_key
        )
        self.remote_client = remote_client or RemoteRepositoryClient(
            token_lookup=self.token_store.read,
            strategies={
                HostKind.GITHUB: GitHubStrategy(self.settings.github_api),
                HostKind.AZURE_DEVOPS: AzureDevOpsStrategy(self.settings.azdo_base),
            },
            request_timeout=self.settings.request_timeout,
        )
        self.planner = DocumentationPlanner(self.locator, self.remote_client)
        self.installer = installer or DocumentationInstaller(self.resolver)
        self._package_finder = package_finder or find_package
        self._uri_lookup = uri_lookup or project_uri_from_metadata
        self.logger = get_logger("pipeline")

    def resolve(
        self,
        name: str | None = None,
        *,
        path: Path | str | None = None,
        version: str | None = None,
    ) -> ResolvedBases:
        """Resolve bases either from an installed package name or a directory."""
        if path is not None:
            root = Path(path).expanduser()
            if not root.is_dir():
                raise FileNotFoundError(f"Path '{root}' not found.")
            return self.resolver.resolve(root)
        if not name:
            raise ValueError("Specify a package name or a path.")

        reference = self._package_finder(name, version)
        bases = self.resolver.resolve_package(reference)
        if bases.project_uri is None:
            bases = replace(bases, project_uri=self._uri_lookup(reference.name))
        self.logger.debug(
            "Resolved %s %s (internals: %s)", bases.name, bases.version, bases.internals_base
        )
        return bases

    def documents(
        self,
        bases: ResolvedBases,
        selections: Sequence[DocumentSelection] = (),
        *,
        prefer_internals: bool = False,
        allow_remote: bool = True,
        project_uri: str | None = None,
        branch: str | None = None,
        repository_paths: Sequence[str] = (),
        token: str | None = None,
        single_file: str | None = None,
        include_links: bool = False,
    ) -> List[ContentItem]:
        request = PlanRequest(
            bases=bases,
            selections=tuple(selections),
            prefer_internals=prefer_internals,
            allow_remote=allow_remote,
            project_uri=project_uri,
            branch=branch,
            repository_paths=tuple(repository_paths),
            token=token,
            title_name=bases.name,
            title_version=bases.version,
            single_file=single_file,
            include_links=include_links,
        )
        return self.planner.plan(request)

    def list_files(self, bases: ResolvedBases) -> List[CandidateFile]:
        return self.locator.list_candidates(bases)

    def install(
        self,
        bases: ResolvedBases,
        base_path: Path | str,
        *,
        layout: DocumentationLayout = DocumentationLayout.MODULE_AND_VERSION,
        conflict_policy: ConflictPolicy = ConflictPolicy.MERGE,
        force: bool = False,
        open_after: bool = False,
        exclude_intro: bool = False,
        list_only: bool = False,
    ) -> Path:
        name = bases.name or bases.root_base.name
        version = bases.version
        if version is None:
            if layout is DocumentationLayout.MODULE_AND_VERSION:
                raise InstallError(
                    f"Unable to resolve a version for '{name}'; choose another layout."
                )
            version = "unversioned"
        destination = plan_destination(name, version, base_path, layout)
        return self.installer.install(
            bases.root_base,
            name,
            version,
            destination,
            conflict_policy,
            force,
            open_after,
            exclude_intro,
            list_only=list_only,
        )


__all__ = ["DocumentationPipeline"]
