"""Secret protection for tokens persisted at rest."""

from __future__ import annotations

import base64
import binascii
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

KEY_FILENAME = "secret.key"


class SecretProtectionError(RuntimeError):
    """Raised when a stored secret cannot be recovered."""


class SecretProtector(ABC):
    """Reversible transformation applied to secrets before they hit disk."""

    name: str

    @abstractmethod
    def protect(self, secret: str) -> str:
        """Return the at-rest form of ``secret``."""

    @abstractmethod
    def unprotect(self, stored: str) -> str:
        """Recover the secret from its at-rest form."""


class FernetProtector(SecretProtector):
    """Symmetric encryption with a per-user key."""

    name = "fernet"

    def __init__(self, key: bytes | str) -> None:
        try:
            raw = key.encode("ascii") if isinstance(key, str) else key
            self._fernet = Fernet(raw)
        except (ValueError, UnicodeError) as exc:
            raise SecretProtectionError("Encryption key is not a valid Fernet key") from exc

    def protect(self, secret: str) -> str:
        return self._fernet.encrypt(secret.encode("utf-8")).decode("ascii")

    def unprotect(self, stored: str) -> str:
        try:
            return self._fernet.decrypt(stored.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as exc:
            raise SecretProtectionError("Stored secret could not be decrypted") from exc


class Base64Protector(SecretProtector):
    """Obscures secrets only; used where no key can be kept private."""

    name = "base64"

    def protect(self, secret: str) -> str:
        return base64.b64encode(secret.encode("utf-8")).decode("ascii")

    def unprotect(self, stored: str) -> str:
        try:
            return base64.b64decode(stored.encode("ascii"), validate=True).decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            raise SecretProtectionError("Stored secret is not valid base64") from exc


def supports_private_files(os_name: str | None = None) -> bool:
    """POSIX permissions let us keep a key file readable by the owner only."""
    return (os_name or os.name) == "posix"


def select_protector(
    home: Path, *, secret_key: str | None = None, os_name: str | None = None
) -> SecretProtector:
    """Pick the strongest protector available on this platform."""
    if secret_key:
        return FernetProtector(secret_key)
    if supports_private_files(os_name):
        return FernetProtector(load_or_create_key(home))
    return Base64Protector()


def protector_for(
    name: str, home: Path, *, secret_key: str | None = None
) -> SecretProtector:
    """Return the protector that produced a stored record named ``name``."""
    if name == Base64Protector.name:
        return Base64Protector()
    if name == FernetProtector.name:
        if secret_key:
            return FernetProtector(secret_key)
        key = read_key(home)
        if key is None:
            raise SecretProtectionError(f"Encryption key missing from {home / KEY_FILENAME}")
        return FernetProtector(key)
    raise SecretProtectionError(f"Unknown secret protector '{name}'")


def read_key(home: Path) -> Optional[bytes]:
    key_path = home / KEY_FILENAME
    try:
        return key_path.read_bytes().strip()
    except FileNotFoundError:
        return None


def load_or_create_key(home: Path) -> bytes:
    existing = read_key(home)
    if existing:
        return existing
    home.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    key_path = home / KEY_FILENAME
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(key)
    return key


__all__ = [
    "Base64Protector",
    "FernetProtector",
    "KEY_FILENAME",
    "SecretProtectionError",
    "SecretProtector",
    "protector_for",
    "select_protector",
]
