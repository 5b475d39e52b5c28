"""
Significance and summary helpers for local correlation results.

Bootstrap t-statistics are read against the standard normal distribution:
|t| > 1.96 marks a cell whose local correlation differs from zero at the
5% level (two-sided).
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np
from scipy import stats

from local_correlation.core.constants import (
    DEFAULT_SIGNIFICANCE_LEVEL,
    STRENGTH_VERY_STRONG,
    STRENGTH_STRONG,
    STRENGTH_MODERATE
)
from local_correlation.core.exceptions import InvalidInputError
from local_correlation.estimation.results import (
    BootstrapResult,
    GridLike,
    LocalCorrelationResult,
    as_masked_grid,
    convert_numpy_types
)


def _check_level(significance_level: float) -> None:
    if not 0 < significance_level < 1:
        raise InvalidInputError(
            f"significance_level must lie in (0, 1), got {significance_level}",
            parameter="significance_level",
            value=significance_level
        )


def critical_t(significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL) -> float:
    """Two-sided normal critical value (1.96 for 0.05)."""
    _check_level(significance_level)
    return float(stats.norm.ppf(1.0 - significance_level / 2.0))


def p_value_grid(t_grid: GridLike) -> np.ma.MaskedArray:
    """Two-sided normal-approximation p-values, masked where t is null."""
    t = as_masked_grid(t_grid, name="t_grid")
    p = 2.0 * stats.norm.sf(np.abs(t.filled(0.0)))
    return np.ma.array(p, mask=np.ma.getmaskarray(t), fill_value=np.nan)


def significance_mask(
    t_grid: GridLike,
    significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL
) -> np.ndarray:
    """Boolean grid: True where |t| exceeds the critical value. Null cells are False."""
    t = as_masked_grid(t_grid, name="t_grid")
    threshold = critical_t(significance_level)
    return (np.abs(t.filled(0.0)) > threshold) & ~np.ma.getmaskarray(t)


def correlation_direction(correlation: float) -> str:
    """Sign of a correlation as positive, negative or none (exactly zero)."""
    if correlation > 0:
        return "positive"
    elif correlation < 0:
        return "negative"
    return "none"


def classify_strength(abs_correlation: float) -> str:
    """
    Classify correlation strength.

    Args:
        abs_correlation: Absolute value of correlation

    Returns:
        Strength classification (very_strong, strong, moderate, weak)
    """
    if abs_correlation >= STRENGTH_VERY_STRONG:
        return "very_strong"
    elif abs_correlation >= STRENGTH_STRONG:
        return "strong"
    elif abs_correlation >= STRENGTH_MODERATE:
        return "moderate"
    else:
        return "weak"


def summarize(
    result: LocalCorrelationResult,
    x_data: Sequence[float],
    y_data: Sequence[float],
    bootstrap: Optional[BootstrapResult] = None,
    significance_level: float = DEFAULT_SIGNIFICANCE_LEVEL
) -> Dict[str, Any]:
    """
    Summarize a local correlation result next to the global Pearson correlation.

    Args:
        result: Local correlation result
        x_data: Data the result was computed from (x)
        y_data: Data the result was computed from (y)
        bootstrap: Optional bootstrap result for the same grid
        significance_level: Two-sided level for counting significant cells

    Returns:
        Dict with global correlation, local correlation range and support,
        and (with a bootstrap) the share of significant cells
    """
    r, p_value = stats.pearsonr(np.asarray(x_data, dtype=float), np.asarray(y_data, dtype=float))
    total_cells = result.z_grid.size
    supported = result.supported_cells

    summary: Dict[str, Any] = {
        "n_samples": result.n_samples,
        "grid_size": result.grid_size,
        "bandwidth": result.bandwidth.to_dict(),
        "global_correlation": {
            "method": "pearson",
            "correlation": float(r),
            "p_value": float(p_value),
            "is_significant": bool(p_value < significance_level),
            "strength": classify_strength(abs(float(r))),
            "direction": correlation_direction(float(r)),
        },
        "supported_cells": supported,
        "supported_fraction": supported / total_cells if total_cells else 0.0,
        "local_correlation": {
            "min": result.z_grid.min() if supported else None,
            "max": result.z_grid.max() if supported else None,
            "density_weighted_mean": None,
        },
    }

    if supported:
        weights = result.density_grid.filled(0.0)
        if weights.sum() > 0:
            summary["local_correlation"]["density_weighted_mean"] = float(
                (result.z_grid.filled(0.0) * weights).sum() / weights.sum()
            )

    if bootstrap is not None:
        tested = int(bootstrap.t_grid.count())
        significant = int(significance_mask(bootstrap.t_grid, significance_level).sum())
        summary["bootstrap"] = {
            "iterations": bootstrap.iterations,
            "cells_with_t": tested,
            "significant_cells": significant,
            "significant_fraction": significant / tested if tested else 0.0,
            "critical_t": critical_t(significance_level),
        }

    return convert_numpy_types(summary)
