"""Version utilities for update classification and normalized comparison."""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from packaging import version as pkg_version

MAJOR = 'major'
MINOR = 'minor'
PATCH = 'patch'
PRERELEASE = 'prerelease'
BUILD = 'build'
CHANGED = 'changed'
NONE = 'none'

# Shown in place of a version npm did not report
UNKNOWN_VERSION = 'unknown'


# Values npm puts in version fields for packages it cannot resolve from the registry
NON_REGISTRY_VERSIONS = ('linked', 'git', 'remote', 'exotic', 'missing')

SEMVER_PATTERN = re.compile(
    r'^[v=]?\s*'
    r'(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?'
    r'(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$'
)

SEGMENT_SEPARATOR = re.compile(r'([.+-])')


@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = field(default_factory=tuple)
    build: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)


def parse_semver(ver_str) -> Optional[SemVer]:
    """
    Parse a strict semantic version (major.minor.patch[-prerelease][+build]).

    A single leading 'v' or '=' is accepted, as npm does.

    Returns:
        SemVer or None if the string is not a semantic version
    """
    if not ver_str:
        return None

    match = SEMVER_PATTERN.match(str(ver_str).strip())
    if not match:
        return None

    major, minor, patch, prerelease, build = match.groups()
    return SemVer(
        int(major),
        int(minor),
        int(patch),
        tuple(prerelease.split('.')) if prerelease else (),
        tuple(build.split('.')) if build else (),
    )


def canonicalize_version(ver_str):
    """
    Parse and canonicalize a loosely formatted version string.

    Returns a normalized packaging.version.Version object that treats
    equivalent versions like 2.0 and 2.0.0 as equal.

    Args:
        ver_str: Version string (e.g., "2.0", "2.0.0", "=1.0.0", "1.0.0-rc1")

    Returns:
        packaging.version.Version object or None if parsing fails
    """
    if not ver_str or str(ver_str) in NON_REGISTRY_VERSIONS:
        return None

    # Clean up version string
    ver_str = str(ver_str).strip().strip('"')
    if not ver_str:
        return None
    ver_str = ver_str.split()[0]

    # Handle leading '='
    if ver_str.startswith('='):
        ver_str = ver_str[1:]

    try:
        return pkg_version.parse(ver_str)
    except (pkg_version.InvalidVersion, ValueError):
        return None


def versions_equal(ver1, ver2):
    """
    Check if two version strings denote the same version.

    Semantic versions are compared component by component, other versions are
    normalized with packaging (so 2.0 equals 2.0.0). Strings neither parser
    understands are compared as they are.

    Args:
        ver1, ver2: Version strings or None

    Returns:
        True if versions are equal, False otherwise
    """
    if not ver1 or not ver2:
        return not ver1 and not ver2

    semver1 = parse_semver(ver1)
    semver2 = parse_semver(ver2)
    if semver1 and semver2:
        return semver1 == semver2

    parsed1 = canonicalize_version(ver1)
    parsed2 = canonicalize_version(ver2)
    if parsed1 is None or parsed2 is None:
        return str(ver1).strip() == str(ver2).strip()

    return parsed1 == parsed2


def classify_update(current, latest):
    """
    Classify the difference between the installed and the latest version.

    Returns one of MAJOR, MINOR, PATCH, PRERELEASE, BUILD when both versions
    are semantic versions and latest moves forward, NONE when nothing moved
    forward (equal versions or a downgrade), and CHANGED when a version is
    missing or the versions differ in a way semver cannot describe.
    """
    if not current or not latest:
        return CHANGED

    cur = parse_semver(current)
    lat = parse_semver(latest)

    if cur is None or lat is None:
        return NONE if str(current).strip() == str(latest).strip() else CHANGED

    if lat.core != cur.core:
        if lat.core < cur.core:
            return NONE
        if lat.major != cur.major:
            return MAJOR
        if lat.minor != cur.minor:
            return MINOR
        return PATCH

    if lat.prerelease != cur.prerelease:
        return PRERELEASE

    if lat.build != cur.build:
        return BUILD

    return NONE


def diff_segments(ver_str, baseline) -> List[Tuple[str, bool]]:
    """
    Split a version into segments and flag the ones that differ from baseline.

    Separators ('.', '-', '+') are kept as segments of their own, so the result
    joins back to the original string. Segments are compared position by
    position; without a baseline every segment is flagged.

    Args:
        ver_str: Version to split
        baseline: Version to compare against, may be None

    Returns:
        List of (segment, differs) tuples
    """
    if not ver_str:
        return []

    segments = [part for part in SEGMENT_SEPARATOR.split(str(ver_str)) if part]
    if not baseline:
        return [(part, True) for part in segments]

    baseline_segments = [part for part in SEGMENT_SEPARATOR.split(str(baseline)) if part]

    result = []
    for index, part in enumerate(segments):
        other = baseline_segments[index] if index < len(baseline_segments) else None
        result.append((part, part != other))
    return result
