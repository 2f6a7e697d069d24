"""Eight-way compass directions used by DMI states.

The numeric value matches the direction ordinal of the DMI format: a state with
``dirs = 4`` stores South, North, East, West in that order, ``dirs = 8`` adds
the four diagonals.
"""

from __future__ import annotations

from enum import IntEnum

VALID_DIR_COUNTS = (1, 4, 8)


class Direction(IntEnum):
    SOUTH = 0
    NORTH = 1
    EAST = 2
    WEST = 3
    SOUTHEAST = 4
    SOUTHWEST = 5
    NORTHEAST = 6
    NORTHWEST = 7

    @classmethod
    def from_index(cls, value: int) -> Direction:
        """Map a direction ordinal to a Direction; unknown ordinals fall back to SOUTH."""
        try:
            return cls(int(value))
        except ValueError:
            return cls.SOUTH

    @property
    def label(self) -> str:
        return _LABELS[self]

    def __str__(self) -> str:
        return self.label


_LABELS = {
    Direction.SOUTH: "South",
    Direction.NORTH: "North",
    Direction.EAST: "East",
    Direction.WEST: "West",
    Direction.SOUTHEAST: "SouthEast",
    Direction.SOUTHWEST: "SouthWest",
    Direction.NORTHEAST: "NorthEast",
    Direction.NORTHWEST: "NorthWest",
}


def directions_for(dir_count: int) -> list[Direction]:
    """Directions populated by a state declaring ``dir_count`` directions, in ordinal order."""
    return [Direction.from_index(i) for i in range(max(0, int(dir_count)))]
