from __future__ import annotations

import numpy as np
import pytest


def mask_from_rows(*rows: str) -> np.ndarray:
    """Build a boolean skeleton from ``#`` (foreground) / ``.`` (background) rows."""

    return np.array([[char == "#" for char in row] for row in rows], dtype=bool)


def ring_mask(size: int = 9) -> np.ndarray:
    """Square one-pixel ring inset by one pixel from the border."""

    mask = np.zeros((size, size), dtype=bool)
    mask[1, 1 : size - 1] = True
    mask[size - 2, 1 : size - 1] = True
    mask[1 : size - 1, 1] = True
    mask[1 : size - 1, size - 2] = True
    return mask


@pytest.fixture
def tee_mask() -> np.ndarray:
    # Three endpoints, one branch at (1, 5).
    return mask_from_rows(
        "...........",
        ".#########.",
        ".....#.....",
        ".....#.....",
        ".....#.....",
        ".....#.....",
        "...........",
    )


@pytest.fixture
def lollipop_mask() -> np.ndarray:
    # A ring hanging off a branch at (2, 4) with a tail ending at (2, 7).
    return mask_from_rows(
        "#####...",
        "#...#...",
        "#...####",
        "#...#...",
        "#####...",
    )
