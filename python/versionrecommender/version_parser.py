"""Version parsing and ordering utilities."""

import functools
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

LOCAL_QUALIFIER = 'LOCAL'
SNAPSHOT_QUALIFIER = 'SNAPSHOT'


@dataclass
class VersionInfo:
    """
    Parsed version information.

    Attributes:
        original_string: The version string as-is
        segments: Leading dot separated numbers (9.3.11.v2016 -> (9, 3, 11))
        qualifier: Everything after the numbers without the leading separator
        separator: Character between numbers and qualifier ('-' or '.')
    """
    original_string: str
    segments: Tuple[int, ...] = field(default_factory=tuple)
    qualifier: str = ""
    separator: str = ""

    @property
    def is_release(self) -> bool:
        return not self.qualifier

    def segment(self, index: int) -> int:
        """Numeric segment at index, missing segments count as 0."""
        return self.segments[index] if index < len(self.segments) else 0

    @property
    def numbers(self) -> str:
        return '.'.join(str(s) for s in self.segments)


class VersionParser:
    """Parser and comparator for dependency versions."""

    # Numeric head followed by an optional qualifier: 1.0.0-dev11, 9.3.11.v20160721
    VERSION_PATTERN = re.compile(r'^(\d+(?:\.\d+)*)(?:([.\-_+])?(.*))?$')
    QUALIFIER_TOKEN = re.compile(r'\d+|[A-Za-z]+')

    @classmethod
    def parse(cls, version: str) -> VersionInfo:
        """
        Parse a version string into numeric segments and qualifier.

        Args:
            version: The version string to parse

        Returns:
            VersionInfo; a string without numeric head keeps everything in the qualifier
        """
        version = version.strip()
        match = cls.VERSION_PATTERN.match(version)
        if not match:
            return VersionInfo(original_string=version, qualifier=version)

        segments = tuple(int(s) for s in match.group(1).split('.'))
        return VersionInfo(
            original_string=version,
            segments=segments,
            qualifier=match.group(3) or "",
            separator=match.group(2) or ""
        )

    @classmethod
    def _compare_qualifiers(cls, left: str, right: str) -> int:
        if left == right:
            return 0
        # A release is newer than any qualified version with the same numbers
        if not left:
            return 1
        if not right:
            return -1

        left_tokens = cls.QUALIFIER_TOKEN.findall(left)
        right_tokens = cls.QUALIFIER_TOKEN.findall(right)
        for lt, rt in zip(left_tokens, right_tokens):
            if lt.isdigit() and rt.isdigit():
                diff = int(lt) - int(rt)
                if diff:
                    return 1 if diff > 0 else -1
            elif lt.isdigit() != rt.isdigit():
                # numbers sort above text
                return 1 if lt.isdigit() else -1
            else:
                lt_lower, rt_lower = lt.lower(), rt.lower()
                if lt_lower != rt_lower:
                    return 1 if lt_lower > rt_lower else -1

        if len(left_tokens) != len(right_tokens):
            return 1 if len(left_tokens) > len(right_tokens) else -1
        return (left > right) - (left < right)

    @classmethod
    def compare(cls, left: str, right: str) -> int:
        """Compare two version strings, returns -1, 0 or 1."""
        left_info = cls.parse(left)
        right_info = cls.parse(right)

        length = max(len(left_info.segments), len(right_info.segments))
        for index in range(length):
            diff = left_info.segment(index) - right_info.segment(index)
            if diff:
                return 1 if diff > 0 else -1

        return cls._compare_qualifiers(left_info.qualifier, right_info.qualifier)

    @classmethod
    def sort_key(cls):
        """Key function for sorted()/max()."""
        return functools.cmp_to_key(cls.compare)

    @classmethod
    def latest(cls, versions: Iterable[str]) -> Optional[str]:
        """Return the greatest version, the first one wins on equal order."""
        best = None
        for version in versions:
            if best is None or cls.compare(version, best) > 0:
                best = version
        return best

    @classmethod
    def sort(cls, versions: Iterable[str]) -> List[str]:
        return sorted(versions, key=cls.sort_key())

    @classmethod
    def strip_qualifier(cls, version: str, qualifiers=(LOCAL_QUALIFIER, SNAPSHOT_QUALIFIER)) -> str:
        """Remove a trailing -LOCAL / -SNAPSHOT marker."""
        for qualifier in qualifiers:
            suffix = f"-{qualifier}"
            if version.endswith(suffix):
                return version[:-len(suffix)]
        return version

    @classmethod
    def with_qualifier(cls, version: str, qualifier: str) -> str:
        """Replace an existing -LOCAL / -SNAPSHOT marker by the given qualifier."""
        return f"{cls.strip_qualifier(version)}-{qualifier}"
