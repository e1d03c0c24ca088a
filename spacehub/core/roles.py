"""
Fixed space role catalog and its hierarchy.
"""

from enum import IntEnum
from typing import Optional


class SpaceRole(IntEnum):
    """Reserved role ids. Never reassigned."""

    OWNER = 1
    EDITOR = 2
    VIEWER = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @property
    def rank(self) -> int:
        # Lower id = more privilege
        return len(SpaceRole) + 1 - int(self)

    @classmethod
    def from_id(cls, role_id: Optional[int]) -> Optional["SpaceRole"]:
        """Return the role for a catalog id, or None for null/unknown ids."""
        if role_id is None:
            return None
        try:
            return cls(role_id)
        except ValueError:
            return None


def role_satisfies(role: Optional[SpaceRole], minimum: SpaceRole) -> bool:
    """Whether ``role`` is at least as privileged as ``minimum``."""
    if role is None:
        return False
    return role.rank >= minimum.rank
