"""
Local Gaussian correlation estimator.

For a grid cell centred at (x0, y0) every sample k receives the weight

    w_k = exp(-0.5 * ((x_k - x0) / hx)^2 - 0.5 * ((y_k - y0) / hy)^2)

and the cell's correlation is the Pearson correlation computed from the
weighted mean, variances and covariance (weights normalised by their total
W). A cell is null when W < min_weight or either weighted variance is not
positive. The density value W / n is an unnormalised relative density used
to weight marginal averages.

The grid evaluation is vectorised one y-row at a time: every x cell and
every sample of a row are handled in a single numpy expression, so memory
stays at O(grid_size * n) while the cost remains O(grid_size^2 * n).
"""

from typing import Optional, Tuple

import numpy as np

from local_correlation.core.constants import DEFAULT_MIN_WEIGHT
from local_correlation.core.exceptions import InvalidInputError
from local_correlation.core.logging_config import get_logger
from local_correlation.estimation.results import Bandwidth

logger = get_logger(__name__)


def _kernel_exponent(values: np.ndarray, centres: np.ndarray, h: float) -> np.ndarray:
    """-0.5 * ((value - centre) / h)^2 for every (centre, value) pair."""
    scaled = (values[np.newaxis, :] - centres[:, np.newaxis]) / h
    return -0.5 * scaled * scaled


def _weighted_moments(
    weights: np.ndarray,
    x: np.ndarray,
    y: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Weighted total, variances and covariance along the last axis.

    Uses centred (two-pass) sums so local spread is not lost to
    cancellation when the cell sits far from the origin.
    """
    total = weights.sum(axis=-1)
    with np.errstate(divide="ignore", invalid="ignore"):
        mean_x = (weights * x).sum(axis=-1) / total
        mean_y = (weights * y).sum(axis=-1) / total
        dx = x - mean_x[..., np.newaxis]
        dy = y - mean_y[..., np.newaxis]
        var_x = (weights * dx * dx).sum(axis=-1) / total
        var_y = (weights * dy * dy).sum(axis=-1) / total
        cov_xy = (weights * dx * dy).sum(axis=-1) / total
    return total, var_x, var_y, cov_xy


class LocalCorrelationEstimator:
    """
    Kernel-weighted correlation and density on a grid.

    Stateless apart from its support threshold, so one instance can be
    shared by the primary evaluation and every bootstrap resample.
    """

    def __init__(self, min_weight: float = DEFAULT_MIN_WEIGHT):
        """
        Initialize estimator.

        Args:
            min_weight: Minimum total kernel weight for a non-null cell
        """
        if not np.isfinite(min_weight) or min_weight < 0:
            raise InvalidInputError(
                f"min_weight must be a finite number >= 0, got {min_weight}",
                parameter="min_weight",
                value=min_weight
            )
        self.min_weight = float(min_weight)

    def estimate_cell(
        self,
        x: np.ndarray,
        y: np.ndarray,
        x0: float,
        y0: float,
        bandwidth: Bandwidth
    ) -> Tuple[Optional[float], Optional[float]]:
        """
        Correlation and density at a single point.

        Returns:
            (correlation, density), both None when the cell lacks support
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        exponent = (
            _kernel_exponent(x, np.array([x0], dtype=float), bandwidth.x)
            + _kernel_exponent(y, np.array([y0], dtype=float), bandwidth.y)
        )
        total, var_x, var_y, cov_xy = (
            float(moment[0]) for moment in _weighted_moments(np.exp(exponent), x, y)
        )

        if total < self.min_weight or not (var_x > 0 and var_y > 0):
            return None, None

        rho = min(1.0, max(-1.0, cov_xy / np.sqrt(var_x * var_y)))
        return float(rho), total / len(x)

    def estimate_grid(
        self,
        x: np.ndarray,
        y: np.ndarray,
        x_grid: np.ndarray,
        y_grid: np.ndarray,
        bandwidth: Bandwidth
    ) -> Tuple[np.ma.MaskedArray, np.ma.MaskedArray]:
        """
        Correlation and density for every cell of the grid.

        Args:
            x: Sample values along x
            y: Sample values along y
            x_grid: Evaluation coordinates along x (columns)
            y_grid: Evaluation coordinates along y (rows)
            bandwidth: Kernel bandwidth per axis

        Returns:
            (z_grid, density_grid) masked arrays of shape (len(y_grid), len(x_grid)),
            masked together where the cell lacks support
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        x_grid = np.asarray(x_grid, dtype=float)
        y_grid = np.asarray(y_grid, dtype=float)
        n = len(x)

        shape = (len(y_grid), len(x_grid))
        z = np.full(shape, np.nan)
        density = np.full(shape, np.nan)
        valid = np.zeros(shape, dtype=bool)

        x_exponent = _kernel_exponent(x, x_grid, bandwidth.x)
        y_exponent = _kernel_exponent(y, y_grid, bandwidth.y)

        for j in range(shape[0]):
            weights = np.exp(x_exponent + y_exponent[j][np.newaxis, :])
            total, var_x, var_y, cov_xy = _weighted_moments(weights, x, y)

            row_valid = (total >= self.min_weight) & (var_x > 0) & (var_y > 0)
            if row_valid.any():
                with np.errstate(divide="ignore", invalid="ignore"):
                    rho = cov_xy / np.sqrt(var_x * var_y)
                z[j, row_valid] = np.clip(rho[row_valid], -1.0, 1.0)
                density[j, row_valid] = total[row_valid] / n
            valid[j] = row_valid

        z_grid = np.ma.array(z, mask=~valid, fill_value=np.nan)
        density_grid = np.ma.array(density, mask=~valid, fill_value=np.nan)

        logger.debug(
            f"Estimated {shape[0]}x{shape[1]} grid from {n} samples: "
            f"{int(valid.sum())} supported cells"
        )
        return z_grid, density_grid
