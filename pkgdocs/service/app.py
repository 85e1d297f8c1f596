"""FastAPI application entrypoint for pkgdocs service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..installer import InstallError
from ..models import ConflictPolicy, ContentItem, DocumentationLayout, DocumentSelection, ItemKind
from ..packages import PackageNotFoundError
from ..pipeline import DocumentationPipeline


class PackageTarget(BaseModel):
    name: Optional[str] = None
    path: Optional[str] = None
    required_version: Optional[str] = None


class DocumentsRequest(PackageTarget):
    selections: List[DocumentSelection] = []
    prefer_internals: bool = False
    allow_remote: bool = True
    project_uri: Optional[str] = None
    branch: Optional[str] = None
    repository_paths: List[str] = []
    single_file: Optional[str] = None
    include_links: bool = False


class DocumentItem(BaseModel):
    title: str
    kind: str
    source_tier: str
    path: Optional[str] = None
    content: str


class DocumentsResponse(BaseModel):
    items: List[DocumentItem]


class InstallRequest(PackageTarget):
    destination: str
    layout: DocumentationLayout = DocumentationLayout.MODULE_AND_VERSION
    on_exists: ConflictPolicy = ConflictPolicy.MERGE
    force: bool = False
    exclude_intro: bool = False
    list_only: bool = False


class InstallResponse(BaseModel):
    destination: str
    list_only: bool


class HealthResponse(BaseModel):
    status: str


def _default_pipeline() -> DocumentationPipeline:
    return DocumentationPipeline()


def _to_document(item: ContentItem) -> DocumentItem:
    if item.kind is ItemKind.FILE and item.path is not None:
        content = item.path.read_text(encoding="utf-8", errors="replace")
    else:
        content = item.content or ""
    return DocumentItem(
        title=item.title,
        kind=item.kind.value,
        source_tier=item.source_tier.value,
        path=str(item.path) if item.path else None,
        content=content,
    )


def create_app(
    pipeline_factory: Callable[[], DocumentationPipeline] = _default_pipeline,
) -> FastAPI:
    """Create the FastAPI application exposing pkgdocs operations."""
    app = FastAPI(title="pkgdocs Service", version="1.0.0")

    async def get_pipeline() -> DocumentationPipeline:
        return pipeline_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/documents", response_model=DocumentsResponse)
    async def documents(
        payload: DocumentsRequest,
        pipeline: DocumentationPipeline = Depends(get_pipeline),
    ) -> DocumentsResponse:
        def _run() -> List[DocumentItem]:
            bases = pipeline.resolve(
                payload.name, path=payload.path, version=payload.required_version
            )
            items = pipeline.documents(
                bases,
                payload.selections,
                prefer_internals=payload.prefer_internals,
                allow_remote=payload.allow_remote,
                project_uri=payload.project_uri,
                branch=payload.branch,
                repository_paths=payload.repository_paths,
                single_file=payload.single_file,
                include_links=payload.include_links,
            )
            return [_to_document(item) for item in items]

        loop = asyncio.get_running_loop()
        items = await loop.run_in_executor(None, _run)
        return DocumentsResponse(items=items)

    @app.post("/install", response_model=InstallResponse)
    async def install(
        payload: InstallRequest,
        pipeline: DocumentationPipeline = Depends(get_pipeline),
    ) -> InstallResponse:
        def _run() -> Path:
            bases = pipeline.resolve(
                payload.name, path=payload.path, version=payload.required_version
            )
            return pipeline.install(
                bases,
                payload.destination,
                layout=payload.layout,
                conflict_policy=payload.on_exists,
                force=payload.force,
                exclude_intro=payload.exclude_intro,
                list_only=payload.list_only,
            )

        loop = asyncio.get_running_loop()
        destination = await loop.run_in_executor(None, _run)
        return InstallResponse(destination=str(destination), list_only=payload.list_only)

    @app.exception_handler(PackageNotFoundError)
    async def package_not_found_handler(
        _: Any, exc: PackageNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InstallError)
    async def install_error_handler(
        _: Any, exc: InstallError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(
        _: Any, exc: ValueError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["create_app", "run_service"]
