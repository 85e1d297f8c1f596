"""Persistent stores used by pkgdocs."""

from .protectors import Base64Protector, FernetProtector, SecretProtector, select_protector
from .token_store import TokenStore, TokenStoreError, tokens_from_environment

__all__ = [
    "Base64Protector",
    "FernetProtector",
    "SecretProtector",
    "TokenStore",
    "TokenStoreError",
    "select_protector",
    "tokens_from_environment",
]
