from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tests._fixtures.package_builder import PackageBuilder


@pytest.fixture
def package_builder(tmp_path: Path) -> PackageBuilder:
    """Provide a reusable package builder rooted at the pytest tmp_path."""
    return PackageBuilder(tmp_path)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Keep token stores and keys out of the real user profile."""
    home = tmp_path / "pkgdocs-home"
    monkeypatch.setenv("PKGDOCS_HOME", str(home))
    monkeypatch.delenv("PKGDOCS_SECRET_KEY", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_pkgdocs_logger():
    """Drop handlers the CLI attached so later tests never write to closed streams."""
    yield
    logger = logging.getLogger("pkgdocs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
