"""Evaluation grid construction."""

from typing import Sequence, Tuple

import numpy as np

from local_correlation.core.constants import GRID_PADDING_FRACTION, MIN_GRID_SIZE
from local_correlation.core.exceptions import DegenerateAxisError, InvalidInputError


def build_axis_grid(
    values: Sequence[float],
    grid_size: int,
    axis: str = "x",
    padding: float = GRID_PADDING_FRACTION
) -> np.ndarray:
    """
    Evenly spaced coordinates over the data range padded on both sides.

    The grid covers [min - padding*span, max + padding*span] inclusive of
    both ends, where span = max - min.

    Args:
        values: One axis' sample values (non-empty)
        grid_size: Number of coordinates (>= 2)
        axis: Axis name, used in error details
        padding: Fraction of the span added on each side

    Returns:
        Strictly increasing array of length ``grid_size``

    Raises:
        InvalidInputError: grid_size below 2 or no values
        DegenerateAxisError: All values are equal
    """
    if (isinstance(grid_size, bool) or not isinstance(grid_size, (int, np.integer))
            or grid_size < MIN_GRID_SIZE):
        raise InvalidInputError(
            f"grid_size must be an integer >= {MIN_GRID_SIZE}, got {grid_size}",
            parameter="grid_size",
            value=grid_size
        )

    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise InvalidInputError(f"Axis '{axis}' has no values", parameter=axis, value=0)

    low = float(data.min())
    high = float(data.max())
    span = high - low
    if span <= 0:
        raise DegenerateAxisError(axis=axis, value=low)

    pad = span * padding
    return np.linspace(low - pad, high + pad, int(grid_size))


def build_grid(
    x: Sequence[float],
    y: Sequence[float],
    grid_size: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Build (x_grid, y_grid) for a dataset."""
    return (
        build_axis_grid(x, grid_size, axis="x"),
        build_axis_grid(y, grid_size, axis="y"),
    )
