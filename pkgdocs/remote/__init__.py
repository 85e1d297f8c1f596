"""Remote repository access for documentation fallback."""

from .client import FetchResult, FetchStatus, RemoteRepositoryClient
from .uri import RepositoryLocation, parse_project_uri

__all__ = [
    "FetchResult",
    "FetchStatus",
    "RemoteRepositoryClient",
    "RepositoryLocation",
    "parse_project_uri",
]
