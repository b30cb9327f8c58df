"""
Version pattern matching.

A version pattern constrains which build identifiers are acceptable. A
candidate is accepted when the pattern matches anywhere inside it, the same
way a search in the repository listing would find it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

# Two-digit (e.g. 15.0.6) or four-digit (e.g. 2016.3) release line prefix.
STABLE_PATTERN = r"([0-9]{2}|[0-9]{4})\."


class PatternMode(Enum):
    LITERAL = "literal"
    STABLE = "stable"
    RAW = "raw-pattern"
    UNSET = "unset"


@dataclass(frozen=True)
class VersionPattern:
    """
    User supplied version constraint.

    Attributes:
        mode: How ``text`` is interpreted
        text: The raw user string (empty for ``stable`` and ``unset``)
    """
    mode: PatternMode = PatternMode.UNSET
    text: str = ""
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "_regex", re.compile(self.expression))

    @classmethod
    def literal(cls, text: str) -> "VersionPattern":
        return cls(PatternMode.LITERAL, text)

    @classmethod
    def stable(cls) -> "VersionPattern":
        return cls(PatternMode.STABLE)

    @classmethod
    def raw(cls, expression: str) -> "VersionPattern":
        """
        Build a pattern from a regular expression.

        Raises:
            re.error: If the expression does not compile
        """
        return cls(PatternMode.RAW, expression)

    @classmethod
    def unset(cls) -> "VersionPattern":
        return cls()

    @property
    def expression(self) -> str:
        """Regular expression source equivalent to this pattern."""
        if self.mode is PatternMode.LITERAL:
            return re.escape(self.text)
        if self.mode is PatternMode.STABLE:
            return STABLE_PATTERN
        if self.mode is PatternMode.RAW:
            return self.text
        return ""

    @property
    def is_unset(self) -> bool:
        return self.mode is PatternMode.UNSET

    def matches(self, candidate: str) -> bool:
        """True if this pattern occurs anywhere in the candidate identifier."""
        return self._regex.search(candidate) is not None

    def predicate(self) -> Callable[[str], bool]:
        return self.matches

    def filter(self, candidates: Iterable[str]) -> list[str]:
        """Matching candidates, order preserved."""
        return [c for c in candidates if self.matches(c)]

    def describe(self) -> str:
        """Short description for log messages."""
        if self.mode is PatternMode.UNSET:
            return "<undefined>"
        if self.mode is PatternMode.STABLE:
            return f"stable ({STABLE_PATTERN})"
        return self.text
