"""3x3 goal grid coordinates.

Cells are numbered row-major. Computation uses 0..8, storage uses 1..9.
"""

from typing import Tuple

from goalie.errors import InvalidCoordinate, InvalidGridIndex

GRID_SIZE = 3
MIN_GRID_INDEX = 1
MAX_GRID_INDEX = GRID_SIZE * GRID_SIZE

VERTICAL_OFFSETS = {
    "top": 0,
    "middle": 3,
    "bottom": 6,
}

HORIZONTAL_OFFSETS = {
    "left": 0,
    "center": 1,
    "right": 2,
}


def _normalize(label) -> str:
    if not isinstance(label, str):
        return ""
    return label.strip().lower()


def to_index(vertical: str, horizontal: str) -> int:
    """Map a (vertical, horizontal) label pair to a 0-based cell index.

    Args:
        vertical (str): top, middle or bottom (case-insensitive)
        horizontal (str): left, center or right (case-insensitive)

    Raises:
        InvalidCoordinate: Either label is not recognized

    Returns:
        int: Cell index in 0..8
    """
    vertical_offset = VERTICAL_OFFSETS.get(_normalize(vertical))
    horizontal_offset = HORIZONTAL_OFFSETS.get(_normalize(horizontal))
    if vertical_offset is None:
        raise InvalidCoordinate(f"Invalid vertical label: {vertical!r}")
    if horizontal_offset is None:
        raise InvalidCoordinate(f"Invalid horizontal label: {horizontal!r}")
    return vertical_offset + horizontal_offset


def to_grid_index(vertical: str, horizontal: str) -> int:
    """Same as to_index but in the 1-based storage form."""
    return to_index(vertical, horizontal) + 1


def validate_grid_index(grid_index: int) -> int:
    if isinstance(grid_index, bool) or not isinstance(grid_index, int):
        raise InvalidGridIndex(f"grid index must be an integer, got {grid_index!r}")
    if grid_index < MIN_GRID_INDEX or grid_index > MAX_GRID_INDEX:
        raise InvalidGridIndex(
            f"grid index must be between {MIN_GRID_INDEX} and {MAX_GRID_INDEX}, got {grid_index}"
        )
    return grid_index


def from_grid_index(grid_index: int) -> Tuple[str, str]:
    """Inverse of to_grid_index, used when rendering results."""
    validate_grid_index(grid_index)
    row, column = divmod(grid_index - 1, GRID_SIZE)
    vertical = next(label for label, offset in VERTICAL_OFFSETS.items() if offset == row * GRID_SIZE)
    horizontal = next(label for label, offset in HORIZONTAL_OFFSETS.items() if offset == column)
    return vertical, horizontal
