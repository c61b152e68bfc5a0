"""Version parsing, bumping and Cargo requirement matching.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0"),
and implements the subset of Cargo's requirement syntax that appears in
workspace manifests (caret, tilde, exact, comparison and wildcard).
"""

from __future__ import annotations

import re
from enum import Enum

import semver


class BumpStrategy(str, Enum):
    """How a package version is incremented before release.

    MINOR_KEEP_PATCH reproduces the historical behavior of incrementing the
    minor component without zeroing patch ("1.2.3" → "1.3.3").
    """

    MAJOR = "major"
    MINOR = "minor"
    MINOR_KEEP_PATCH = "minor-keep-patch"
    PATCH = "patch"


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Raises:
        ValueError: If the string is not a valid semantic version.
    """
    return semver.Version.parse(version_str.strip(), optional_minor_and_patch=True)


def bump_patch(version_str: str) -> str:
    """Increment the patch version and return as a string.

    Examples:
        "1.2.3" → "1.2.4"
        "1.0" → "1.0.1"
    """
    return str(parse_version(version_str).bump_patch())


def bump_minor(version_str: str) -> str:
    """Increment the minor version and reset patch.

    Examples:
        "1.2.3" → "1.3.0"
        "0.9" → "0.10.0"
    """
    return str(parse_version(version_str).bump_minor())


def bump_minor_keep_patch(version_str: str) -> str:
    """Increment the minor version, leaving patch as it was.

    Examples:
        "1.2.3" → "1.3.3"
    """
    v = parse_version(version_str)
    return str(v.replace(minor=v.minor + 1, prerelease=None, build=None))


def bump_major(version_str: str) -> str:
    """Increment the major version, resetting minor and patch."""
    return str(parse_version(version_str).bump_major())


_BUMPERS = {
    BumpStrategy.MAJOR: bump_major,
    BumpStrategy.MINOR: bump_minor,
    BumpStrategy.MINOR_KEEP_PATCH: bump_minor_keep_patch,
    BumpStrategy.PATCH: bump_patch,
}


def bump(version_str: str, strategy: BumpStrategy = BumpStrategy.MINOR) -> str:
    """Apply a bump strategy to a version string."""
    return _BUMPERS[BumpStrategy(strategy)](version_str)


def caret_req(version_str: str) -> str:
    """Format a caret requirement pinned to a version.

    Examples:
        "1.3.0" → "^1.3.0"
    """
    return f"^{parse_version(version_str)}"


_COMPARATOR_RE = re.compile(
    r"^\s*(?P<op>\^|~|=|>=|<=|>|<)?\s*"
    r"(?P<major>\d+|\*|x|X)"
    r"(?:\.(?P<minor>\d+|\*|x|X))?"
    r"(?:\.(?P<patch>\d+|\*|x|X))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?\s*$"
)


def _num(part: str | None) -> int | None:
    if part is None or part in ("*", "x", "X"):
        return None
    return int(part)


def _bounds(
    op: str, major: int, minor: int | None, patch: int | None, pre: str | None
) -> tuple[semver.Version | None, semver.Version | None]:
    """Translate one comparator into an inclusive lower and exclusive upper bound."""
    floor = semver.Version(major, minor or 0, patch or 0, prerelease=pre)

    if op == "^":
        if major > 0 or minor is None:
            upper = semver.Version(major + 1, 0, 0)
        elif minor > 0 or patch is None:
            upper = semver.Version(0, minor + 1, 0)
        else:
            upper = semver.Version(0, 0, patch + 1)
        return floor, upper
    if op == "~":
        if minor is None:
            return floor, semver.Version(major + 1, 0, 0)
        return floor, semver.Version(major, minor + 1, 0)
    if op == "=":
        if minor is None:
            return floor, semver.Version(major + 1, 0, 0)
        if patch is None:
            return floor, semver.Version(major, minor + 1, 0)
        return floor, floor.bump_patch() if pre is None else floor.finalize_version()
    if op == ">=":
        return floor, None
    if op == ">":
        if minor is None:
            return semver.Version(major + 1, 0, 0), None
        if patch is None:
            return semver.Version(major, minor + 1, 0), None
        return floor.bump_patch() if pre is None else floor.finalize_version(), None
    if op == "<":
        return None, floor
    if op == "<=":
        if minor is None:
            return None, semver.Version(major + 1, 0, 0)
        if patch is None:
            return None, semver.Version(major, minor + 1, 0)
        return None, floor.bump_patch() if pre is None else floor.finalize_version()
    raise ValueError(f"Unsupported operator: {op!r}")


def req_matches(req: str, version_str: str) -> bool:
    """Check whether a version satisfies a Cargo version requirement.

    A bare version ("1.2") is a caret requirement, "*" matches anything, and
    comma-separated comparators must all match.

    Examples:
        req_matches("^1.2.0", "1.3.0") → True
        req_matches("0.2", "0.3.0") → False
        req_matches(">=1.0, <2.0", "1.9.9") → True

    Raises:
        ValueError: If the requirement or version cannot be parsed.
    """
    version = parse_version(version_str)
    req = req.strip()
    if req in ("", "*"):
        return True

    for comparator in req.split(","):
        m = _COMPARATOR_RE.match(comparator)
        if not m:
            raise ValueError(f"Invalid version requirement: {req!r}")
        major = _num(m.group("major"))
        if major is None:
            continue  # "*" inside a list matches anything
        minor = _num(m.group("minor"))
        patch = _num(m.group("patch")) if minor is not None else None
        op = m.group("op")
        if op is None:
            # Wildcards ("1.*", "1.2.x") behave like a tilde over the given parts
            wildcard = m.group("minor") in ("*", "x", "X") or m.group("patch") in (
                "*",
                "x",
                "X",
            )
            op = "~" if wildcard else "^"

        lower, upper = _bounds(op, major, minor, patch, m.group("pre"))
        if lower is not None and version < lower:
            return False
        if upper is not None and version >= upper:
            return False
    return True
