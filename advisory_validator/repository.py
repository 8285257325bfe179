"""Package repository client used to confirm that advisory packages exist.

A Composer repository publishes a root metadata file, ``packages.json``.
Depending on the repository, that file tells us how to look a name up:

- ``available-packages``: the full list of package names, inline
- ``list``: an endpoint answering ``?filter=<name>`` with ``packageNames``
- ``search``: a search endpoint with a ``%query%`` placeholder
- ``packages`` and ``includes``: the package metadata itself, keyed by
  package name, inline and in the include files the root lists

Clients are created once per repository URL and reused for every advisory
of a run through RepositoryCache, so the root metadata is fetched at most
once per repository.

Transport and protocol failures raise RepositoryError subclasses. They are
not findings: callers let them abort the run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx

from advisory_validator.constants import DEFAULT_TIMEOUT
from advisory_validator.errors import RepositoryResponseError, RepositoryUnreachableError

logger = logging.getLogger(__name__)

ROOT_METADATA_FILE = "packages.json"


class PackageRepository(Protocol):
    """Anything that can search a package index by exact name."""

    url: str

    def search_name(self, name: str) -> list[dict[str, Any]]:
        """Return package descriptors (each with a ``name`` key) matching name."""
        ...


def has_package(repository: PackageRepository, name: str) -> bool:
    """True if the repository returns a descriptor named exactly name."""
    return any(package.get("name") == name for package in repository.search_name(name))


class ComposerRepositoryClient:
    """Read-only client for one Composer repository.

    Attributes:
        url: Base URL of the repository (e.g. https://repo.packagist.org).
    """

    def __init__(self, url: str, http: httpx.Client) -> None:
        self.url = url.rstrip("/")
        self._http = http
        self._root: dict[str, Any] | None = None
        self._static_names: frozenset[str] | None = None

    def _resolve(self, reference: str) -> str:
        """Resolve a URL from the root metadata against the repository URL."""
        return str(httpx.URL(self.url + "/").join(reference))

    def _get_json(self, url: str, params: dict[str, str] | None = None) -> Any:
        logger.debug("Fetching %s %s", url, params or "")
        try:
            response = self._http.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RepositoryResponseError(url, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise RepositoryUnreachableError(url, str(e) or type(e).__name__) from e

        try:
            return response.json()
        except ValueError as e:
            raise RepositoryResponseError(url, "response is not valid JSON") from e

    def root_metadata(self) -> dict[str, Any]:
        """Return the repository's packages.json, fetching it on first use."""
        if self._root is None:
            url = self._resolve(ROOT_METADATA_FILE)
            data = self._get_json(url)
            if not isinstance(data, dict):
                raise RepositoryResponseError(url, "root metadata is not an object")
            self._root = data
        return self._root

    def search_name(self, name: str) -> list[dict[str, Any]]:
        """Search the repository for packages named name.

        Args:
            name: Full package name, e.g. ``symfony/http-kernel``.

        Returns:
            Package descriptors, each a dict with at least a ``name`` key.
            Lookups are exact except for the search endpoint, which may
            return similar names as well.
        """
        root = self.root_metadata()

        available = root.get("available-packages")
        if isinstance(available, list):
            return [{"name": candidate} for candidate in available if candidate == name]

        list_url = root.get("list")
        if isinstance(list_url, str):
            data = self._get_json(self._resolve(list_url), params={"filter": name})
            names = data.get("packageNames", []) if isinstance(data, dict) else []
            return [{"name": candidate} for candidate in names if isinstance(candidate, str)]

        search_url = root.get("search")
        if isinstance(search_url, str):
            url = search_url.replace("%query%", name).replace("%type%", "")
            data = self._get_json(self._resolve(url))
            results = data.get("results", []) if isinstance(data, dict) else []
            return [result for result in results if isinstance(result, dict) and "name" in result]

        if name in self.static_package_names():
            return [{"name": name}]
        return []

    def static_package_names(self) -> frozenset[str]:
        """Names from the inline ``packages`` of the root and of every include.

        Include paths are relative to the repository URL and may list
        further includes. Each file is fetched once per client.
        """
        if self._static_names is None:
            names: set[str] = set()
            seen: set[str] = set()
            pending: list[dict[str, Any]] = [self.root_metadata()]
            while pending:
                data = pending.pop()
                packages = data.get("packages")
                if isinstance(packages, dict):
                    names.update(packages)
                includes = data.get("includes")
                if not isinstance(includes, dict):
                    continue
                for reference in includes:
                    url = self._resolve(reference)
                    if url in seen:
                        continue
                    seen.add(url)
                    included = self._get_json(url)
                    if not isinstance(included, dict):
                        raise RepositoryResponseError(url, "include file is not an object")
                    pending.append(included)
            self._static_names = frozenset(names)
        return self._static_names


RepositoryFactory = Callable[[str], PackageRepository]


class RepositoryCache:
    """One package repository client per repository URL, for one run.

    Usage:
        with RepositoryCache(timeout=10.0) as repositories:
            repository = repositories.get("https://repo.packagist.org")
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.Client | None = None,
        factory: RepositoryFactory | None = None,
    ) -> None:
        """Create an empty cache.

        Args:
            timeout: Request timeout in seconds for the shared HTTP client.
            http: HTTP client to share between repositories. Created lazily
                (and closed by close()) when not given.
            factory: Builds a repository for a URL. Defaults to a
                ComposerRepositoryClient using the shared HTTP client.
        """
        self._timeout = timeout
        self._http = http
        self._owns_http = http is None
        self._factory = factory
        self._repositories: dict[str, PackageRepository] = {}

    def _http_client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                headers={"Accept": "application/json"},
            )
        return self._http

    def get(self, url: str) -> PackageRepository:
        """Return the repository for url, creating it on first request."""
        repository = self._repositories.get(url)
        if repository is None:
            logger.info("Using package repository %s", url)
            if self._factory is not None:
                repository = self._factory(url)
            else:
                repository = ComposerRepositoryClient(url, self._http_client())
            self._repositories[url] = repository
        return repository

    def __len__(self) -> int:
        return len(self._repositories)

    def close(self) -> None:
        """Close the HTTP client if this cache created it."""
        if self._owns_http and self._http is not None:
            self._http.close()
            self._http = None

    def __enter__(self) -> RepositoryCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
