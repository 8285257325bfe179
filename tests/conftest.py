"""Shared pytest fixtures for advisory validator tests."""

from __future__ import annotations

import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from advisory_validator.repository import RepositoryCache

# Fixed "now" for rules that compare against the current time
NOW: float = datetime(2024, 6, 1, tzinfo=timezone.utc).timestamp()

# Packages known to the fake repositories
KNOWN_PACKAGES: frozenset[str] = frozenset(
    {"acme/widget", "acme/widget-extra", "symfony/http-kernel", "private/tool"}
)

VALID_ADVISORY = """\
title: Remote code execution in widget rendering
link: https://example.com/advisories/widget-rce
cve: CVE-2021-1234
reference: composer://acme/widget
branches:
    1.0.x:
        time: 2020-01-01 10:00:00
        versions: ['>=1.0.0', '<1.0.5']
    2.0.x:
        time: 2020-01-02 10:00:00
        versions: ['>=2.0.0', '<2.0.3']
"""


def advisory(text: str) -> str:
    """Dedent an inline advisory so tests can indent YAML naturally."""
    return textwrap.dedent(text).lstrip("\n")


class FakeRepository:
    """In-memory package repository that records its searches."""

    def __init__(self, url: str, packages: frozenset[str] = KNOWN_PACKAGES) -> None:
        self.url = url
        self.packages = packages
        self.searches: list[str] = []

    def search_name(self, name: str) -> list[dict[str, Any]]:
        self.searches.append(name)
        # Substring matches, like a real search endpoint
        return [{"name": package} for package in sorted(self.packages) if name in package]


class FakeRepositoryFactory:
    """Repository factory for RepositoryCache that remembers what it built."""

    def __init__(self) -> None:
        self.created: dict[str, FakeRepository] = {}

    def __call__(self, url: str) -> FakeRepository:
        repository = FakeRepository(url)
        self.created[url] = repository
        return repository


@pytest.fixture
def repository_factory() -> FakeRepositoryFactory:
    """Factory building fake repositories."""
    return FakeRepositoryFactory()


@pytest.fixture
def repositories(repository_factory: FakeRepositoryFactory) -> RepositoryCache:
    """RepositoryCache backed by fake repositories (no network)."""
    return RepositoryCache(factory=repository_factory)


@pytest.fixture
def corpus(tmp_path: Path) -> Path:
    """An advisory corpus with one valid advisory."""
    package_dir = tmp_path / "acme" / "widget"
    package_dir.mkdir(parents=True)
    (package_dir / "CVE-2021-1234.yaml").write_text(VALID_ADVISORY)
    return tmp_path
