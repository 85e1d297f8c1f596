"""Per-user persistence for repository access tokens."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from ..config import load_settings
from ..logging import get_logger
from ..models import HostKind
from .protectors import SecretProtectionError, protector_for, select_protector

TOKENS_FILENAME = "tokens.json"
_STORE_VERSION = 1

_ENV_TOKEN_KEYS: Dict[HostKind, Tuple[str, ...]] = {
    HostKind.GITHUB: ("PKGDOCS_GITHUB_TOKEN", "GITHUB_TOKEN"),
    HostKind.AZURE_DEVOPS: ("PKGDOCS_AZDO_PAT", "AZURE_DEVOPS_EXT_PAT"),
}


class TokenStoreError(RuntimeError):
    """Raised when tokens cannot be saved."""


class TokenStore:
    """Stores GitHub and Azure DevOps tokens under the user's pkgdocs home.

    The file is read on every lookup and rewritten atomically on every change;
    nothing is cached between calls.
    """

    def __init__(
        self,
        home: Path | None = None,
        *,
        secret_key: str | None = None,
        os_name: str | None = None,
    ) -> None:
        if home is None:
            settings = load_settings()
            home = settings.home
            secret_key = secret_key or settings.secret_key
        self.home = Path(home).expanduser()
        self._secret_key = secret_key
        self._os_name = os_name
        self.logger = get_logger("tokens")

    @property
    def path(self) -> Path:
        return self.home / TOKENS_FILENAME

    def save(
        self, github_token: str | None = None, azure_devops_token: str | None = None
    ) -> None:
        """Persist the given tokens, leaving any other host's token untouched."""
        updates = {
            HostKind.GITHUB: github_token,
            HostKind.AZURE_DEVOPS: azure_devops_token,
        }
        updates = {host: token for host, token in updates.items() if token}
        if not updates:
            raise TokenStoreError("Provide a GitHub token and/or an Azure DevOps PAT.")

        try:
            protector = select_protector(
                self.home, secret_key=self._secret_key, os_name=self._os_name
            )
        except SecretProtectionError as exc:
            raise TokenStoreError(f"Unable to protect tokens: {exc}") from exc
        entries = self._load_entries()
        for host, token in updates.items():
            entries[host.value] = {"protector": protector.name, "secret": protector.protect(token)}
        self._write_entries(entries)
        self.logger.debug("Stored tokens for %s", ", ".join(host.value for host in updates))

    def read(self, host_kind: HostKind) -> Optional[str]:
        """Return the stored token for ``host_kind`` or ``None``."""
        entry = self._load_entries().get(host_kind.value)
        if not isinstance(entry, dict):
            return None
        protector_name = entry.get("protector")
        secret = entry.get("secret")
        if not isinstance(protector_name, str) or not isinstance(secret, str):
            return None
        try:
            protector = protector_for(protector_name, self.home, secret_key=self._secret_key)
            return protector.unprotect(secret)
        except SecretProtectionError as exc:
            self.logger.warning("Ignoring stored %s token: %s", host_kind.value, exc)
            return None

    def clear(self) -> None:
        """Remove every stored token."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    # ------------------------------------------------------------------
    # Internal helpers

    def _load_entries(self) -> Dict[str, object]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Token store %s is unreadable: %s", self.path, exc)
            return {}
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            return {}
        tokens = data.get("tokens")
        return dict(tokens) if isinstance(tokens, dict) else {}

    def _write_entries(self, entries: Mapping[str, object]) -> None:
        payload = {"version": _STORE_VERSION, "tokens": dict(entries)}
        try:
            self.home.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".tokens-", dir=self.home)
        except OSError as exc:
            raise TokenStoreError(f"Unable to write {self.path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except (OSError, TypeError, ValueError) as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise TokenStoreError(f"Unable to write {self.path}: {exc}") from exc


def tokens_from_environment(
    environ: Mapping[str, str] | None = None,
) -> Dict[HostKind, Optional[str]]:
    """Read tokens from the conventional CI environment variables."""
    env = os.environ if environ is None else environ
    tokens: Dict[HostKind, Optional[str]] = {}
    for host, keys in _ENV_TOKEN_KEYS.items():
        tokens[host] = next((env[key] for key in keys if env.get(key)), None)
    return tokens


__all__ = ["TOKENS_FILENAME", "TokenStore", "TokenStoreError", "tokens_from_environment"]
