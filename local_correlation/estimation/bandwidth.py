"""Kernel bandwidth selection (Silverman's rule of thumb)."""

import math
from typing import Optional, Sequence

import numpy as np

from local_correlation.core.constants import (
    MIN_BANDWIDTH_SAMPLES,
    SILVERMAN_FACTOR,
    SILVERMAN_EXPONENT
)
from local_correlation.core.exceptions import DegenerateBandwidthError
from local_correlation.core.logging_config import get_logger
from local_correlation.estimation.results import Bandwidth

logger = get_logger(__name__)


def silverman_bandwidth(values: Sequence[float], axis: str = "x") -> float:
    """
    Silverman's rule: h = 1.06 * sigma * n^(-1/5).

    sigma is the population standard deviation (denominator n).

    Args:
        values: One axis' sample values
        axis: Axis name, used in error details

    Returns:
        Bandwidth h > 0

    Raises:
        DegenerateBandwidthError: Fewer than two samples or zero variance
    """
    data = np.asarray(values, dtype=float)
    n = len(data)
    if n < MIN_BANDWIDTH_SAMPLES:
        raise DegenerateBandwidthError(
            f"Silverman's rule needs at least {MIN_BANDWIDTH_SAMPLES} samples on axis '{axis}', got {n}",
            axis=axis
        )

    sigma = float(np.std(data))
    h = SILVERMAN_FACTOR * sigma * n ** SILVERMAN_EXPONENT
    if not h > 0 or not math.isfinite(h):
        raise DegenerateBandwidthError(
            f"Axis '{axis}' has zero variance; bandwidth would be {h}",
            axis=axis,
            bandwidth=h
        )
    return h


def select_bandwidth(
    x: Sequence[float],
    y: Sequence[float],
    override: Optional[float] = None
) -> Bandwidth:
    """
    Pick the kernel bandwidth for both axes.

    An override is used directly for both axes; otherwise each axis gets
    its own Silverman bandwidth.

    Raises:
        DegenerateBandwidthError: Override <= 0 or not finite, or an axis is degenerate
    """
    if override is not None:
        h = float(override)
        if not math.isfinite(h) or h <= 0:
            raise DegenerateBandwidthError(
                f"Bandwidth override must be a positive finite number, got {override}",
                bandwidth=h
            )
        return Bandwidth(x=h, y=h, automatic=False)

    bandwidth = Bandwidth(
        x=silverman_bandwidth(x, axis="x"),
        y=silverman_bandwidth(y, axis="y"),
        automatic=True
    )
    logger.debug(f"Silverman bandwidth: hx={bandwidth.x:.6g}, hy={bandwidth.y:.6g}")
    return bandwidth
