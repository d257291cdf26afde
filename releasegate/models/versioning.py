"""Version identifier model — monotonic release versions."""

from __future__ import annotations

import re
from enum import Enum
from functools import total_ordering

from pydantic import BaseModel, ConfigDict, Field

# Semver: 1.2.3 or v1.2.3 (leading 'v' accepted on parse, never written)
_SEMVER_RE = re.compile(r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)$")


class InvalidVersionError(ValueError):
    """Raised when a string is not a MAJOR.MINOR.PATCH version."""


@total_ordering
class VersionIdentifier(BaseModel):
    """A release version, ordered by its numeric (major, minor, patch) triple."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(ge=0)
    patch: int = Field(ge=0)

    @classmethod
    def parse(cls, text: str) -> VersionIdentifier:
        m = _SEMVER_RE.match(text.strip())
        if m is None:
            raise InvalidVersionError(f"Not a MAJOR.MINOR.PATCH version: {text.strip()!r}")
        return cls(
            major=int(m.group("major")),
            minor=int(m.group("minor")),
            patch=int(m.group("patch")),
        )

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionIdentifier):
            return NotImplemented
        return self.key < other.key

    def __hash__(self) -> int:
        return hash(self.key)


class BumpPolicy(str, Enum):
    """Which component of the version a bump advances."""

    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"

    def apply(self, version: VersionIdentifier) -> VersionIdentifier:
        """Return the next version under this policy."""
        if self is BumpPolicy.MAJOR:
            return VersionIdentifier(major=version.major + 1, minor=0, patch=0)
        if self is BumpPolicy.MINOR:
            return VersionIdentifier(major=version.major, minor=version.minor + 1, patch=0)
        return version.model_copy(update={"patch": version.patch + 1})
