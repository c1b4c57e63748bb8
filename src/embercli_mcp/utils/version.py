"""Version reading and range matching for installed npm packages."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.version import InvalidVersion, Version

logger = logging.getLogger(__name__)

# Pessimistic constraint as written in Gemfiles and package requirements: "~> 1.13"
PESSIMISTIC_PATTERN = re.compile(r"^~>\s*(?P<version>\S+)$")

# Bare version like "0.0.13"
BARE_VERSION_PATTERN = re.compile(r"^v?\d+(?:\.\d+)*$")


def to_specifier(requirement: str) -> SpecifierSet:
    """Convert a version range expression to a ``SpecifierSet``.

    Accepts "~> X.Y[.Z]" (compatible release), bare versions (exact match)
    and any PEP 440 specifier string.

    Raises:
        InvalidSpecifier: If the expression cannot be understood
    """
    requirement = requirement.strip()

    match = PESSIMISTIC_PATTERN.match(requirement)
    if match:
        version = match.group("version")
        # "~> 1" is ">= 1, < 2"; compatible release needs two components
        if "." not in version:
            version += ".0"
        return SpecifierSet(f"~={version}")

    if BARE_VERSION_PATTERN.match(requirement):
        return SpecifierSet(f"=={requirement.lstrip('v')}")

    return SpecifierSet(requirement)


def satisfies(version: str | None, requirements: str | list[str] | tuple[str, ...]) -> bool:
    """Check whether a version matches at least one of the given ranges.

    Args:
        version: Installed version string (e.g. "1.13.2")
        requirements: One range or a list of ranges, OR-combined

    Returns:
        True if any range matches
    """
    if not version:
        return False

    if isinstance(requirements, str):
        requirements = [requirements]

    try:
        candidate = Version(version)
    except InvalidVersion:
        logger.debug(f"Unparseable version: {version!r}")
        return False

    for requirement in requirements:
        try:
            specifier = to_specifier(requirement)
        except InvalidSpecifier:
            logger.warning(f"Ignoring invalid version range: {requirement!r}")
            continue
        if specifier.contains(candidate, prereleases=True):
            return True

    return False


def read_manifest_version(path: Path) -> str | None:
    """Read the ``version`` field from a package.json manifest.

    Returns:
        Version string, or None if the manifest has no usable version
    """
    with open(path, encoding="utf-8") as f:
        manifest = json.load(f)

    if not isinstance(manifest, dict):
        return None

    version = manifest.get("version")
    return str(version) if version is not None else None
