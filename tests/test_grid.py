import pytest

from goalie.domain.grid import from_grid_index, to_grid_index, to_index, validate_grid_index
from goalie.errors import InvalidCoordinate, InvalidGridIndex, InvalidInput

VERTICALS = ["top", "middle", "bottom"]
HORIZONTALS = ["left", "center", "right"]


def test_to_index_is_a_bijection_onto_cells():
    indexes = [to_index(v, h) for v in VERTICALS for h in HORIZONTALS]
    assert sorted(indexes) == list(range(9))


@pytest.mark.parametrize(
    "vertical, horizontal, expected",
    [
        ("top", "left", 0),
        ("middle", "center", 4),
        ("bottom", "right", 8),
        ("top", "right", 2),
        ("bottom", "left", 6),
    ],
)
def test_to_index_row_major(vertical, horizontal, expected):
    assert to_index(vertical, horizontal) == expected


def test_labels_are_case_insensitive():
    assert to_index("TOP", "Center") == 1
    assert to_index(" Middle ", "RIGHT") == 5


def test_to_grid_index_is_one_based():
    assert to_grid_index("top", "left") == 1
    assert to_grid_index("bottom", "right") == 9


@pytest.mark.parametrize(
    "vertical, horizontal",
    [("upper", "left"), ("top", "middle"), ("", "left"), ("top", None)],
)
def test_unknown_labels_raise(vertical, horizontal):
    with pytest.raises(InvalidCoordinate):
        to_index(vertical, horizontal)


def test_invalid_coordinate_is_invalid_input():
    with pytest.raises(InvalidInput):
        to_index("side", "left")


def test_from_grid_index_inverts_to_grid_index():
    for v in VERTICALS:
        for h in HORIZONTALS:
            assert from_grid_index(to_grid_index(v, h)) == (v, h)


@pytest.mark.parametrize("grid_index", [0, 10, -1, 5.0, True, "5"])
def test_validate_grid_index_rejects(grid_index):
    with pytest.raises(InvalidGridIndex):
        validate_grid_index(grid_index)
