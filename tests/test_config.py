"""Tests for pkgdocs.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgdocs.config import ConfigError, load_settings, parse_manifest, read_manifest
from pkgdocs.models import DeliveryOptions, ImportantLink


def test_read_manifest_returns_none_when_missing(tmp_path: Path) -> None:
    assert read_manifest(tmp_path) is None


def test_read_manifest_parses_expected_fields(tmp_path: Path) -> None:
    (tmp_path / "pkgdocs.yml").write_text(
        """
name: sample
version: 1.4.0
project_uri: "https://github.com/acme/sample"
delivery:
  internals_path: Extras
  scripts_path: Extras/Scripts
  docs_paths: [Docs, Extras/Docs]
  important_links:
    - title: Wiki
      url: "https://example.com/wiki"
    - title: missing-url
  intro_text:
    - "Welcome to sample."
    - ""
    - "Read the docs."
  upgrade_file: Extras/UPGRADING.md
repository:
  branch: develop
  paths:
    - docs
""",
        encoding="utf-8",
    )

    manifest = read_manifest(tmp_path)

    assert manifest is not None
    assert manifest.name == "sample"
    assert manifest.version == "1.4.0"
    assert manifest.project_uri == "https://github.com/acme/sample"
    assert manifest.delivery.internals_path == "Extras"
    assert manifest.delivery.scripts_path == "Extras/Scripts"
    assert manifest.delivery.docs_paths == ["Docs", "Extras/Docs"]
    assert manifest.delivery.important_links == [
        ImportantLink(title="Wiki", url="https://example.com/wiki")
    ]
    assert manifest.delivery.intro_text == ["Welcome to sample.", "", "Read the docs."]
    assert manifest.delivery.intro_file is None
    assert manifest.delivery.upgrade_file == "Extras/UPGRADING.md"
    assert manifest.repository.branch == "develop"
    assert manifest.repository.paths == ["docs"]


def test_parse_manifest_applies_defaults_for_missing_fields() -> None:
    manifest = parse_manifest({"delivery": {"internals_path": "  "}})

    assert manifest.delivery == DeliveryOptions()
    assert manifest.repository.branch is None
    assert manifest.project_uri is None


def test_read_manifest_accepts_hidden_filename(tmp_path: Path) -> None:
    (tmp_path / ".pkgdocs.yml").write_text("name: hidden\n", encoding="utf-8")

    manifest = read_manifest(tmp_path)

    assert manifest is not None
    assert manifest.name == "hidden"


def test_read_manifest_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / "pkgdocs.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        read_manifest(tmp_path)


def test_read_manifest_wraps_yaml_errors(tmp_path: Path) -> None:
    (tmp_path / "pkgdocs.yml").write_text("delivery: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        read_manifest(tmp_path)


def test_load_settings_reads_environment(tmp_path: Path) -> None:
    settings = load_settings(
        {
            "PKGDOCS_HOME": str(tmp_path / "home"),
            "PKGDOCS_TIMEOUT": "12.5",
            "PKGDOCS_GITHUB_API": "https://ghe.example.com/api/v3/",
            "PKGDOCS_SECRET_KEY": "key",
        }
    )

    assert settings.home == tmp_path / "home"
    assert settings.request_timeout == pytest.approx(12.5)
    assert settings.github_api == "https://ghe.example.com/api/v3"
    assert settings.azdo_base == "https://dev.azure.com"
    assert settings.secret_key == "key"


def test_load_settings_ignores_invalid_timeout() -> None:
    settings = load_settings({"PKGDOCS_TIMEOUT": "soon"})

    assert settings.request_timeout == pytest.approx(30.0)
    assert settings.home == Path("~/.pkgdocs").expanduser()
