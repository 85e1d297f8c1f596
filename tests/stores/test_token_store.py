"""Tests for the token store and secret protectors."""

from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest
from cryptography.fernet import Fernet

from pkgdocs.models import HostKind
from pkgdocs.stores.protectors import KEY_FILENAME, Base64Protector, FernetProtector
from pkgdocs.stores.token_store import (
    TOKENS_FILENAME,
    TokenStore,
    TokenStoreError,
    tokens_from_environment,
)


def test_save_and_read_round_trip(tmp_path: Path) -> None:
    store = TokenStore(tmp_path, os_name="posix")

    store.save(github_token="ghp_secret")

    assert store.read(HostKind.GITHUB) == "ghp_secret"
    assert store.read(HostKind.AZURE_DEVOPS) is None
    raw = store.path.read_text(encoding="utf-8")
    assert "ghp_secret" not in raw
    assert json.loads(raw)["tokens"]["github"]["protector"] == FernetProtector.name


@pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
def test_generated_key_is_private(tmp_path: Path) -> None:
    TokenStore(tmp_path, os_name="posix").save(github_token="ghp_secret")

    mode = stat.S_IMODE((tmp_path / KEY_FILENAME).stat().st_mode)
    assert mode == 0o600


def test_partial_saves_keep_other_host(tmp_path: Path) -> None:
    store = TokenStore(tmp_path, os_name="posix")

    store.save(github_token="gh-one", azure_devops_token="ado-one")
    store.save(azure_devops_token="ado-two")

    assert store.read(HostKind.GITHUB) == "gh-one"
    assert store.read(HostKind.AZURE_DEVOPS) == "ado-two"


def test_read_sees_changes_from_other_instances(tmp_path: Path) -> None:
    reader = TokenStore(tmp_path, os_name="posix")
    assert reader.read(HostKind.GITHUB) is None

    TokenStore(tmp_path, os_name="posix").save(github_token="later")

    assert reader.read(HostKind.GITHUB) == "later"


def test_clear_removes_tokens(tmp_path: Path) -> None:
    store = TokenStore(tmp_path, os_name="posix")
    store.save(github_token="gh")

    store.clear()
    store.clear()

    assert not (tmp_path / TOKENS_FILENAME).exists()
    assert store.read(HostKind.GITHUB) is None


def test_base64_protector_used_without_private_files(tmp_path: Path) -> None:
    store = TokenStore(tmp_path, os_name="nt")

    store.save(azure_devops_token="pat")

    entry = json.loads(store.path.read_text(encoding="utf-8"))["tokens"]["azure_devops"]
    assert entry["protector"] == Base64Protector.name
    assert not (tmp_path / KEY_FILENAME).exists()
    assert store.read(HostKind.AZURE_DEVOPS) == "pat"


def test_secret_key_from_settings_is_used(tmp_path: Path) -> None:
    key = Fernet.generate_key().decode("ascii")
    TokenStore(tmp_path, secret_key=key, os_name="nt").save(github_token="gh")

    assert not (tmp_path / KEY_FILENAME).exists()
    assert TokenStore(tmp_path, secret_key=key).read(HostKind.GITHUB) == "gh"
    # Without the key the record cannot be decrypted and is ignored.
    assert TokenStore(tmp_path).read(HostKind.GITHUB) is None


@pytest.mark.parametrize("bad_key", ["not-a-fernet-key", "clé"])
def test_malformed_secret_key_reads_as_absent(tmp_path: Path, bad_key: str) -> None:
    TokenStore(tmp_path, os_name="posix").save(github_token="gh")

    assert TokenStore(tmp_path, secret_key=bad_key).read(HostKind.GITHUB) is None


def test_malformed_secret_key_fails_save(tmp_path: Path) -> None:
    store = TokenStore(tmp_path, secret_key="not-a-fernet-key", os_name="nt")

    with pytest.raises(TokenStoreError, match="Fernet"):
        store.save(github_token="gh")

    assert not (tmp_path / TOKENS_FILENAME).exists()


def test_failed_write_leaves_no_temp_file(tmp_path: Path, monkeypatch) -> None:
    def refuse_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("pkgdocs.stores.token_store.os.replace", refuse_replace)

    with pytest.raises(TokenStoreError, match="disk full"):
        TokenStore(tmp_path, os_name="nt").save(github_token="gh")

    assert list(tmp_path.glob(".tokens-*")) == []
    assert not (tmp_path / TOKENS_FILENAME).exists()


def test_default_home_comes_from_environment(isolated_home: Path) -> None:
    store = TokenStore(os_name="nt")

    store.save(github_token="gh")

    assert store.path == isolated_home / TOKENS_FILENAME
    assert store.path.exists()


def test_save_without_tokens_raises(tmp_path: Path) -> None:
    with pytest.raises(TokenStoreError):
        TokenStore(tmp_path).save()
    with pytest.raises(TokenStoreError):
        TokenStore(tmp_path).save(github_token="", azure_devops_token=None)


def test_corrupt_store_reads_as_empty(tmp_path: Path) -> None:
    (tmp_path / TOKENS_FILENAME).write_text("{not json", encoding="utf-8")
    store = TokenStore(tmp_path, os_name="nt")

    assert store.read(HostKind.GITHUB) is None

    store.save(github_token="fresh")
    assert store.read(HostKind.GITHUB) == "fresh"


def test_tokens_from_environment_prefers_pkgdocs_names() -> None:
    tokens = tokens_from_environment(
        {
            "PKGDOCS_GITHUB_TOKEN": "primary",
            "GITHUB_TOKEN": "fallback",
            "AZURE_DEVOPS_EXT_PAT": "ado",
        }
    )

    assert tokens == {HostKind.GITHUB: "primary", HostKind.AZURE_DEVOPS: "ado"}
    assert tokens_from_environment({}) == {HostKind.GITHUB: None, HostKind.AZURE_DEVOPS: None}
