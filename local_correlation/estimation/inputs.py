"""
Input preparation for the local correlation engine.

The engine itself only accepts finite, equal-length samples. These helpers
do the filtering a data layer is expected to do before calling it.
"""

from typing import Sequence, Tuple

import numpy as np
import pandas as pd

from local_correlation.core.constants import MIN_VALID_SAMPLES
from local_correlation.core.exceptions import InsufficientDataError, InvalidInputError
from local_correlation.core.logging_config import get_logger

logger = get_logger(__name__)


def _as_float_array(values: Sequence[float], name: str) -> np.ndarray:
    try:
        array = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} must contain numeric values", parameter=name) from e
    if array.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional", parameter=name, value=array.shape)
    return array


def validate_samples(
    x_data: Sequence[float],
    y_data: Sequence[float],
    min_samples: int = MIN_VALID_SAMPLES
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Check engine input without altering it.

    Args:
        x_data: Sample values along x
        y_data: Sample values along y
        min_samples: Minimum number of pairs required

    Returns:
        Tuple of float arrays (x, y)

    Raises:
        InvalidInputError: Lengths differ or a value is not finite
        InsufficientDataError: Fewer than ``min_samples`` pairs
    """
    x = _as_float_array(x_data, "x_data")
    y = _as_float_array(y_data, "y_data")

    if len(x) != len(y):
        raise InvalidInputError(
            f"x_data and y_data must have the same length ({len(x)} != {len(y)})",
            parameter="y_data",
            value=len(y)
        )

    finite = np.isfinite(x) & np.isfinite(y)
    if not finite.all():
        raise InvalidInputError(
            f"{int((~finite).sum())} sample pairs are not finite; filter them before estimating",
            parameter="x_data/y_data",
            value=int((~finite).sum())
        )

    if len(x) < min_samples:
        raise InsufficientDataError(valid_count=len(x), min_required=min_samples)

    return x, y


def prepare_pairs(
    x_data: Sequence[float],
    y_data: Sequence[float],
    min_samples: int = MIN_VALID_SAMPLES
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Drop pairs where either value is missing or not finite.

    Args:
        x_data: Raw values along x
        y_data: Raw values along y (same length)
        min_samples: Minimum number of valid pairs required

    Returns:
        Tuple of float arrays containing only finite pairs, in input order

    Raises:
        InvalidInputError: Lengths differ
        InsufficientDataError: Fewer than ``min_samples`` valid pairs remain
    """
    x = _as_float_array(x_data, "x_data")
    y = _as_float_array(y_data, "y_data")

    if len(x) != len(y):
        raise InvalidInputError(
            f"x_data and y_data must have the same length ({len(x)} != {len(y)})",
            parameter="y_data",
            value=len(y)
        )

    keep = np.isfinite(x) & np.isfinite(y)
    dropped = int((~keep).sum())
    if dropped:
        logger.debug(f"Dropped {dropped} non-finite pairs out of {len(x)}")

    valid_count = int(keep.sum())
    if valid_count < min_samples:
        raise InsufficientDataError(valid_count=valid_count, min_required=min_samples)

    return x[keep], y[keep]


def pairs_from_frame(
    df: pd.DataFrame,
    x_column: str,
    y_column: str,
    min_samples: int = MIN_VALID_SAMPLES
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Extract a clean (x, y) sample pair from two DataFrame columns.

    Non-numeric cells are coerced to NaN and dropped with their partner.

    Args:
        df: Source DataFrame
        x_column: Column holding x values
        y_column: Column holding y values
        min_samples: Minimum number of valid pairs required

    Returns:
        Tuple of float arrays (x, y)

    Raises:
        InvalidInputError: A column does not exist
        InsufficientDataError: Fewer than ``min_samples`` valid pairs remain
    """
    for column in (x_column, y_column):
        if column not in df.columns:
            raise InvalidInputError(
                f"Column '{column}' not found in data. Available: {', '.join(map(str, df.columns))}",
                parameter="column",
                value=column
            )

    x = pd.to_numeric(df[x_column], errors="coerce").to_numpy(dtype=float)
    y = pd.to_numeric(df[y_column], errors="coerce").to_numpy(dtype=float)
    return prepare_pairs(x, y, min_samples=min_samples)
