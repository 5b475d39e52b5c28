"""
Marginal integration of local correlation grids.

A 2D grid (local correlation or bootstrap t-statistic) is reduced to two
curves by density-weighted averaging: along each row for the curve indexed
by y, along each column for the curve indexed by x. Null cells of the grid
contribute no weight.
"""

from typing import Optional, Sequence

import numpy as np

from local_correlation.core.exceptions import InvalidInputError
from local_correlation.estimation.results import GridLike, MarginalCurves, as_masked_grid


def _weighted_average(values: np.ma.MaskedArray, weights: np.ndarray, axis: int) -> np.ma.MaskedArray:
    total_weight = weights.sum(axis=axis)
    weighted_sum = (values.filled(0.0) * weights).sum(axis=axis)
    defined = total_weight > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        average = np.where(defined, weighted_sum / total_weight, np.nan)
    return np.ma.array(average, mask=~defined, fill_value=np.nan)


def density_weighted_marginals(
    grid: GridLike,
    density_grid: GridLike,
    grid_size: Optional[int] = None
) -> MarginalCurves:
    """
    Reduce a grid to its two density-weighted marginal curves.

    Args:
        grid: Values per cell, rows follow y and columns follow x
        density_grid: Density per cell (same shape)
        grid_size: Expected side length, checked when given

    Returns:
        MarginalCurves where marginal_y[j] averages row j over x and
        marginal_x[i] averages column i over y; a curve point is null when
        no non-null cell with positive density contributes to it

    Raises:
        InvalidInputError: Shapes disagree with each other or with grid_size
    """
    values = as_masked_grid(grid, name="grid")
    density = as_masked_grid(density_grid, name="density_grid")

    if values.shape != density.shape:
        raise InvalidInputError(
            f"grid shape {values.shape} does not match density_grid shape {density.shape}",
            parameter="density_grid",
            value=density.shape
        )
    if grid_size is not None and values.shape != (grid_size, grid_size):
        raise InvalidInputError(
            f"grid shape {values.shape} does not match grid_size {grid_size}",
            parameter="grid_size",
            value=grid_size
        )

    contributes = ~np.ma.getmaskarray(values) & ~np.ma.getmaskarray(density)
    weights = np.where(contributes, density.filled(0.0), 0.0)

    return MarginalCurves(
        marginal_x=_weighted_average(values, weights, axis=0),
        marginal_y=_weighted_average(values, weights, axis=1),
    )


def kernel_density_1d(points: Sequence[float], data: Sequence[float], h: float) -> np.ndarray:
    """
    Normalised Gaussian kernel density of ``data`` evaluated at ``points``.

    density(p) = mean_k( exp(-0.5 * ((p - d_k) / h)^2) / (h * sqrt(2 * pi)) )
    """
    points = np.asarray(points, dtype=float)
    data = np.asarray(data, dtype=float)
    scaled = (points[:, np.newaxis] - data[np.newaxis, :]) / h
    kernel = np.exp(-0.5 * scaled * scaled) / (h * np.sqrt(2.0 * np.pi))
    return kernel.mean(axis=1)
