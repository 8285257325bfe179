"""Discovery of advisory files in a corpus directory.

Advisories live in ``<vendor>/<package>/`` folders below the corpus root.
The walk skips:

- hidden directories (``.git``, editor folders)
- the ``vendor`` directory at the root (tooling dependencies)
- regular files directly at the root (README, config files)

Every other regular file is yielded, whatever its extension: a file that is
not ``.yaml`` is reported by the validator rather than silently ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from advisory_validator.constants import VENDOR_DIRNAME
from advisory_validator.errors import AdvisoryFileError

logger = logging.getLogger(__name__)


def _is_hidden(name: str) -> bool:
    """Check if a filename is hidden (starts with dot)."""
    return name.startswith(".")


def discover_advisory_paths(root: Path) -> list[Path]:
    """List candidate advisory files below root, in sorted order.

    Args:
        root: Corpus root directory.

    Returns:
        Absolute paths of the files to validate.
    """
    found: list[Path] = []

    def _walk(directory: Path, depth: int) -> None:
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except PermissionError:
            logger.warning("Permission denied, skipping %s", directory)
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError:
                continue

            if is_dir:
                if _is_hidden(entry.name):
                    continue
                if depth == 0 and entry.name == VENDOR_DIRNAME:
                    continue
                _walk(Path(entry.path), depth + 1)
            elif is_file and depth > 0:
                found.append(Path(entry.path))

    _walk(root, 0)
    logger.debug("Discovered %d files below %s", len(found), root)
    return found


def relative_advisory_path(path: Path, root: Path) -> str:
    """Path of an advisory relative to root, with ``/`` separators."""
    return path.relative_to(root).as_posix()


def read_advisory(path: Path) -> str:
    """Read an advisory as text.

    Bytes that are not valid UTF-8 are kept as surrogates; the YAML reader
    rejects them, so they end up as a parse finding for the file.
    """
    return path.read_bytes().decode("utf-8", errors="surrogateescape")


def iter_advisory_files(
    root: Path, paths: list[Path] | None = None
) -> Iterator[tuple[str, str]]:
    """Yield (relative path, text) for every candidate advisory below root.

    Files are read lazily, one at a time.

    Args:
        root: Corpus root directory.
        paths: Files to read, as returned by discover_advisory_paths().
            Discovered from root when not given.

    Raises:
        AdvisoryFileError: If a file cannot be read, e.g. because it was
            removed after discovery.
    """
    for path in discover_advisory_paths(root) if paths is None else paths:
        relative = relative_advisory_path(path, root)
        try:
            text = read_advisory(path)
        except OSError as e:
            raise AdvisoryFileError(relative, e.strerror or str(e)) from e
        yield relative, text
