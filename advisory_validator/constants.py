"""Shared constants for the advisory validator.

Key sets, defaults and patterns used by the rules, the discovery walk
and the CLI.
"""

from __future__ import annotations

import re

# Advisory files must use this extension
ADVISORY_EXTENSION: str = ".yaml"

# Top-level keys an advisory may carry
SUPPORTED_KEYS: tuple[str, ...] = (
    "reference",
    "branches",
    "title",
    "link",
    "cve",
    "composer-repository",
)

# Top-level keys an advisory must carry (in reporting order)
REQUIRED_KEYS: tuple[str, ...] = ("reference", "title", "link", "branches")

# Keys a branch may carry
SUPPORTED_BRANCH_KEYS: tuple[str, ...] = ("time", "versions")

REFERENCE_PREFIX: str = "composer://"

CVE_PREFIX: str = "CVE-"

# Repository used when an advisory does not declare composer-repository
DEFAULT_REPOSITORY: str = "https://repo.packagist.org"

# Seconds before a repository request gives up
DEFAULT_TIMEOUT: float = 30.0

# Directory at the corpus root holding tooling dependencies, never advisories
VENDOR_DIRNAME: str = "vendor"

BRANCH_NAME_PATTERN: re.Pattern[str] = re.compile(
    r"^([\d.\-]+(\.x)?(-dev)?|master|main)$", re.ASCII
)

VERSION_CONSTRAINT_PATTERN: re.Pattern[str] = re.compile(
    r"""^
    [<>]=?
    (([1-9]\d*)|0)
    (\.(([1-9]\d*)|0))*
    (-(alpha|beta|rc|p(atch)?)[1-9]\d*)?
    $""",
    re.VERBOSE | re.ASCII,
)
