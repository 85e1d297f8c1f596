"""Tests for installed-package lookup."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path
from typing import Dict

import pytest

from pkgdocs.packages import (
    PackageNotFoundError,
    find_package,
    project_uri_from_metadata,
    select_project_uri,
)


class FakeDistribution(metadata.Distribution):
    """In-memory distribution whose files live under ``base``."""

    def __init__(self, base: Path, files: Dict[str, str]) -> None:
        self._base = base
        self._files = files

    def read_text(self, filename):
        return self._files.get(filename)

    def locate_file(self, path):
        return self._base / path


def _loader(dist: FakeDistribution):
    def load(name: str) -> metadata.Distribution:
        if name.lower() not in {"sample-pkg", "sample_pkg"}:
            raise metadata.PackageNotFoundError(name)
        return dist

    return load


@pytest.fixture
def sample_dist(tmp_path: Path) -> FakeDistribution:
    (tmp_path / "sample_pkg").mkdir()
    return FakeDistribution(
        tmp_path,
        {
            "METADATA": (
                "Metadata-Version: 2.1\n"
                "Name: sample-pkg\n"
                "Version: 2.3.0\n"
                "Home-page: https://sample.example.com\n"
                "Project-URL: Documentation, https://docs.example.com\n"
                "Project-URL: Source, https://github.com/acme/sample-pkg\n"
            ),
        },
    )


def test_find_package_uses_normalised_top_level(sample_dist: FakeDistribution, tmp_path: Path) -> None:
    reference = find_package("sample-pkg", distribution_loader=_loader(sample_dist))

    assert reference.name == "sample-pkg"
    assert reference.version == "2.3.0"
    assert reference.root == (tmp_path / "sample_pkg").resolve()


def test_find_package_prefers_top_level_txt(tmp_path: Path) -> None:
    (tmp_path / "sampler").mkdir()
    dist = FakeDistribution(
        tmp_path,
        {
            "METADATA": "Metadata-Version: 2.1\nName: sample-pkg\nVersion: 1.0\n",
            "top_level.txt": "sampler\n",
        },
    )

    reference = find_package("sample-pkg", distribution_loader=_loader(dist))

    assert reference.root == (tmp_path / "sampler").resolve()


def test_find_package_rejects_other_versions(sample_dist: FakeDistribution) -> None:
    with pytest.raises(PackageNotFoundError, match="2.3.0"):
        find_package("sample-pkg", "9.9.9", distribution_loader=_loader(sample_dist))


def test_find_package_missing(sample_dist: FakeDistribution) -> None:
    with pytest.raises(PackageNotFoundError):
        find_package("missing", distribution_loader=_loader(sample_dist))


def test_project_uri_from_metadata(sample_dist: FakeDistribution) -> None:
    loader = _loader(sample_dist)

    assert project_uri_from_metadata("sample-pkg", distribution_loader=loader) == (
        "https://github.com/acme/sample-pkg"
    )
    assert project_uri_from_metadata("missing", distribution_loader=loader) is None


def test_select_project_uri_falls_back_to_home_page() -> None:
    assert select_project_uri(["Docs, https://docs.example.com"], "https://home") == "https://home"
    assert select_project_uri([], "UNKNOWN") is None
    assert select_project_uri(["Repository, https://gitlab.com/x/y"], None) == "https://gitlab.com/x/y"
