"""
Product editions and their archive/directory codes.
"""

from __future__ import annotations

from enum import Enum


class Edition(Enum):
    """IntelliJ IDEA edition; the value is the code used in archive and directory names."""
    COMMUNITY = "ideaIC"
    ULTIMATE = "ideaIU"

    @property
    def code(self) -> str:
        return self.value

    @property
    def title(self) -> str:
        """Capitalized edition name, e.g. ``Community``."""
        return self.name.capitalize()

    @classmethod
    def from_name(cls, name: str) -> "Edition":
        """
        Look up an edition by its user-facing name.

        Raises:
            ValueError: If the name is not a known edition
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(e.name.lower() for e in cls)
            raise ValueError(f"Unknown edition: {name}. Must be one of: {valid}") from None

    def __str__(self) -> str:
        return self.name.lower()
