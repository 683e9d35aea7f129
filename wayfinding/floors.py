"""Building floor catalogue.

Every floor carries the key used to prefix its graph labels and name its
asset file, so floor detection never relies on scattered string checks.

Usage example:
    >>> from wayfinding.floors import Floor
    >>> Floor.from_label("1st_path_escalator_west")
    <Floor.FIRST: '1st'>
"""

from __future__ import annotations

from enum import Enum


class Floor(Enum):
    """Floors of the building, ordered bottom to top."""

    LOWER_GROUND = ("lowerground", -1, "Lower Ground Floor")
    GROUND = ("ground", 0, "Ground Floor")
    FIRST = ("1st", 1, "1st Floor")
    SECOND = ("2nd", 2, "2nd Floor")
    THIRD = ("3rd", 3, "3rd Floor")
    FOURTH = ("4th", 4, "4th Floor")

    def __new__(cls, key: str, level: int, display_name: str) -> "Floor":
        obj = object.__new__(cls)
        obj._value_ = key
        obj.level = level
        obj.display_name = display_name
        return obj

    def __repr__(self) -> str:
        return f"<Floor.{self.name}: '{self.value}'>"

    @property
    def key(self) -> str:
        return self.value

    @property
    def path_prefix(self) -> str:
        """Prefix shared by every label that belongs to this floor."""
        return f"{self.value}_"

    @property
    def file_name(self) -> str:
        """Asset stem and label qualifier, e.g. `ground_path`."""
        return f"{self.value}_path"

    def qualify(self, label: str) -> str:
        """Return the globally unique label for a floor-local label."""
        return f"{self.file_name}_{label}"

    def unqualify(self, label: str) -> str:
        """Strip this floor's qualifier from `label` if present."""
        prefix = f"{self.file_name}_"
        return label[len(prefix):] if label.startswith(prefix) else label

    @classmethod
    def from_key(cls, key: str) -> "Floor":
        """Look up a floor by key (`ground`, `1st`, ...) or enum name."""
        normalized = key.strip().lower()
        for floor in cls:
            if normalized in (floor.value, floor.name.lower(), floor.file_name):
                return floor
        raise ValueError(f"Unknown floor key: {key!r}")

    @classmethod
    def from_label(cls, label: str) -> "Floor | None":
        """Return the floor a qualified label belongs to, or None."""
        matches = [floor for floor in cls if label.startswith(floor.path_prefix)]
        if not matches:
            return None
        return max(matches, key=lambda floor: len(floor.path_prefix))


def level_difference(a: Floor, b: Floor) -> int:
    """Absolute number of levels between two floors."""
    return abs(a.level - b.level)
