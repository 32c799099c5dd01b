from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import ACME_FILES, RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def acme_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """Small Next.js-style repository with one page and one route file."""
    repo_builder.write(ACME_FILES)
    return repo_builder
