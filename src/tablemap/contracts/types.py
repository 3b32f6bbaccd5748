"""Scalar value types that have no standard-library counterpart."""

from __future__ import annotations

import re
from dataclasses import dataclass

_VERSION_PATTERN = re.compile(r"^\s*(\d+)\.(\d+)(?:\.(\d+)(?:\.(\d+))?)?\s*$")


class Ticks(int):
    """A raw tick count: 100-nanosecond intervals since 0001-01-01 00:00.

    Plain ints are read as whole epoch seconds by the coercion engine;
    wrapping a value in Ticks selects the tick interpretation instead.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Ticks({int(self)})"


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """A dotted ``major.minor[.build[.revision]]`` version number.

    Unset trailing components are -1 and are omitted from the text form.
    """

    major: int
    minor: int
    build: int = -1
    revision: int = -1

    def __post_init__(self) -> None:
        if self.major < 0 or self.minor < 0:
            raise ValueError(f"Version components must be non-negative, got {self.major}.{self.minor}")
        if self.build < -1 or self.revision < -1:
            raise ValueError("Version build/revision must be -1 (unset) or non-negative")
        if self.build == -1 and self.revision != -1:
            raise ValueError("Version revision requires a build component")

    @classmethod
    def parse(cls, text: str) -> Version | None:
        """Parse dotted text, returning None when it is not a version."""
        match = _VERSION_PATTERN.match(text)
        if match is None:
            return None
        major, minor, build, revision = match.groups()
        return cls(
            int(major),
            int(minor),
            int(build) if build is not None else -1,
            int(revision) if revision is not None else -1,
        )

    def __str__(self) -> str:
        parts = [self.major, self.minor]
        if self.build >= 0:
            parts.append(self.build)
            if self.revision >= 0:
                parts.append(self.revision)
        return ".".join(str(p) for p in parts)
