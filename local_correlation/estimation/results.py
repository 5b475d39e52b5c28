"""
Data structures for local correlation results.

Grids are ``numpy.ma.MaskedArray`` objects: a masked cell is a null cell
(insufficient local support, or too few bootstrap replicates). Row index j
follows ``y_grid`` and column index i follows ``x_grid``.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence, Union

import numpy as np

from local_correlation.core.exceptions import InvalidInputError


GridLike = Union[np.ndarray, np.ma.MaskedArray, Sequence[Sequence[Optional[float]]]]


def convert_numpy_types(obj):
    """
    Recursively convert numpy types to Python native types.

    Masked cells and NaN become None so consumers never see a null cell as
    a number.

    Args:
        obj: Any object that might contain numpy types

    Returns:
        Object with numpy types converted to Python types
    """
    if obj is np.ma.masked:
        return None
    elif isinstance(obj, np.ma.MaskedArray):
        return convert_numpy_types(obj.tolist())
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.floating, float)):
        value = float(obj)
        return None if np.isnan(value) else value
    elif isinstance(obj, np.ndarray):
        return convert_numpy_types(obj.tolist())
    elif isinstance(obj, dict):
        return {key: convert_numpy_types(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    elif isinstance(obj, tuple):
        return tuple(convert_numpy_types(item) for item in obj)
    else:
        return obj


def as_masked_grid(values: GridLike, name: str = "grid") -> np.ma.MaskedArray:
    """
    Normalize a 2D grid to a float masked array.

    Accepts masked arrays, plain arrays (NaN marks a null cell) and nested
    lists (None marks a null cell).

    Raises:
        InvalidInputError: If the input is not two-dimensional
    """
    if isinstance(values, np.ma.MaskedArray):
        grid = np.ma.array(values, dtype=float, copy=True)
    else:
        raw = np.array(values, dtype=object)
        if raw.ndim != 2:
            raise InvalidInputError(f"{name} must be two-dimensional", parameter=name, value=raw.shape)
        null = np.vectorize(lambda v: v is None, otypes=[bool])(raw)
        data = np.where(null, np.nan, raw).astype(float)
        grid = np.ma.array(data, mask=null)

    if grid.ndim != 2:
        raise InvalidInputError(f"{name} must be two-dimensional", parameter=name, value=grid.shape)

    grid = np.ma.masked_invalid(grid)
    grid.set_fill_value(np.nan)
    return grid


@dataclass(frozen=True)
class Bandwidth:
    """
    Kernel bandwidth per axis.

    Attributes:
        x: Smoothing bandwidth along x
        y: Smoothing bandwidth along y
        automatic: True when chosen by Silverman's rule, False for an override
    """
    x: float
    y: float
    automatic: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {"x": float(self.x), "y": float(self.y), "automatic": self.automatic}


@dataclass
class MarginalCurves:
    """
    Density-weighted marginal averages of a grid.

    Attributes:
        marginal_x: One value per x_grid coordinate (averaged over y)
        marginal_y: One value per y_grid coordinate (averaged over x)
    """
    marginal_x: np.ma.MaskedArray
    marginal_y: np.ma.MaskedArray

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "marginal_x": convert_numpy_types(self.marginal_x),
            "marginal_y": convert_numpy_types(self.marginal_y),
        }


@dataclass
class LocalCorrelationResult:
    """
    Output of one local correlation evaluation.

    Attributes:
        x_grid: Evaluation coordinates along x
        y_grid: Evaluation coordinates along y
        z_grid: Local correlation per cell, masked where unsupported
        density_grid: Relative kernel density (total weight / n), masked with z_grid
        marginal_x: Density-weighted correlation per x coordinate
        marginal_y: Density-weighted correlation per y coordinate
        marginal_x_density: 1D kernel density of the x data at each x coordinate
        marginal_y_density: 1D kernel density of the y data at each y coordinate
        bandwidth: Bandwidth used for both the 2D and 1D kernels
        n_samples: Number of samples the grid was computed from
        min_weight: Support threshold the grid was computed with
    """
    x_grid: np.ndarray
    y_grid: np.ndarray
    z_grid: np.ma.MaskedArray
    density_grid: np.ma.MaskedArray
    marginal_x: np.ma.MaskedArray
    marginal_y: np.ma.MaskedArray
    marginal_x_density: np.ndarray
    marginal_y_density: np.ndarray
    bandwidth: Bandwidth
    n_samples: int
    min_weight: float

    @property
    def grid_size(self) -> int:
        """Number of grid points per axis."""
        return len(self.x_grid)

    @property
    def supported_cells(self) -> int:
        """Number of non-null correlation cells."""
        return int(np.ma.count(self.z_grid))

    @property
    def marginals(self) -> MarginalCurves:
        """Correlation marginals as a MarginalCurves pair."""
        return MarginalCurves(marginal_x=self.marginal_x, marginal_y=self.marginal_y)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (null cells become None)."""
        return convert_numpy_types({
            "x_grid": self.x_grid,
            "y_grid": self.y_grid,
            "z_grid": self.z_grid,
            "density_grid": self.density_grid,
            "marginal_x": self.marginal_x,
            "marginal_y": self.marginal_y,
            "marginal_x_density": self.marginal_x_density,
            "marginal_y_density": self.marginal_y_density,
            "bandwidth": self.bandwidth.to_dict(),
            "n_samples": self.n_samples,
            "min_weight": self.min_weight,
        })


@dataclass
class BootstrapResult:
    """
    Bootstrap significance of a correlation grid.

    Attributes:
        t_grid: Original correlation divided by bootstrap standard error
        se_grid: Bootstrap standard error (sample standard deviation of replicates)
        replicate_counts: Number of non-null replicates observed per cell
        iterations: Number of resamples drawn
        x_grid: Geometry the grids refer to (same as the source correlation result)
        y_grid: Geometry the grids refer to
    """
    t_grid: np.ma.MaskedArray
    se_grid: np.ma.MaskedArray
    replicate_counts: np.ndarray
    iterations: int
    x_grid: np.ndarray = field(default_factory=lambda: np.array([]))
    y_grid: np.ndarray = field(default_factory=lambda: np.array([]))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (null cells become None)."""
        return convert_numpy_types({
            "t_grid": self.t_grid,
            "se_grid": self.se_grid,
            "replicate_counts": self.replicate_counts,
            "iterations": self.iterations,
        })


__all__: List[str] = [
    "Bandwidth",
    "BootstrapResult",
    "LocalCorrelationResult",
    "MarginalCurves",
    "as_masked_grid",
    "convert_numpy_types",
]
