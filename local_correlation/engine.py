"""
Local Gaussian correlation engine.

Module-level functions are pure computations of their arguments:

- ``compute_local_correlation``: grids, density and marginal curves
- ``compute_bootstrap_t_stats``: bootstrap SE and t-statistic grids
- ``compute_t_stat_marginals``: marginal curves of a t-statistic grid

``LocalCorrelationEngine`` wraps them for one chart: it owns a ResultCache,
recomputes the grid only when its inputs change, computes the bootstrap
lazily on request and never returns a bootstrap computed for other inputs.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from local_correlation.core.config import EngineConfig
from local_correlation.core.constants import (
    DEFAULT_BOOTSTRAP_ITERATIONS,
    DEFAULT_GRID_SIZE,
    DEFAULT_MIN_WEIGHT,
    DEFAULT_PROGRESS_EVERY
)
from local_correlation.core.exceptions import DegenerateBandwidthError, LocalCorrelationException
from local_correlation.core.logging_config import get_logger
from local_correlation.core.observers import BootstrapObserver
from local_correlation.estimation.bandwidth import select_bandwidth
from local_correlation.estimation.bootstrap import BootstrapEngine, CancellationToken, RandomState
from local_correlation.estimation.cache import CacheEntry, ResultCache, fingerprint
from local_correlation.estimation.estimator import LocalCorrelationEstimator
from local_correlation.estimation.grid import build_grid
from local_correlation.estimation.inputs import validate_samples
from local_correlation.estimation.marginals import density_weighted_marginals, kernel_density_1d
from local_correlation.estimation.results import (
    Bandwidth,
    BootstrapResult,
    GridLike,
    LocalCorrelationResult,
    MarginalCurves
)
from local_correlation.estimation.significance import summarize

logger = get_logger(__name__)


def _compute_from_clean(x, y, grid_size: int, bandwidth: Optional[float], min_weight: float) -> LocalCorrelationResult:
    x_grid, y_grid = build_grid(x, y, grid_size)
    selected = select_bandwidth(x, y, override=bandwidth)

    estimator = LocalCorrelationEstimator(min_weight=min_weight)
    z_grid, density_grid = estimator.estimate_grid(x, y, x_grid, y_grid, selected)
    marginals = density_weighted_marginals(z_grid, density_grid)

    result = LocalCorrelationResult(
        x_grid=x_grid,
        y_grid=y_grid,
        z_grid=z_grid,
        density_grid=density_grid,
        marginal_x=marginals.marginal_x,
        marginal_y=marginals.marginal_y,
        marginal_x_density=kernel_density_1d(x_grid, x, selected.x),
        marginal_y_density=kernel_density_1d(y_grid, y, selected.y),
        bandwidth=selected,
        n_samples=len(x),
        min_weight=estimator.min_weight
    )
    logger.info(
        f"Computed {result.grid_size}x{result.grid_size} local correlation grid "
        f"({result.supported_cells} supported cells, hx={selected.x:.4g}, hy={selected.y:.4g})"
    )
    return result


def compute_local_correlation(
    x_data: Sequence[float],
    y_data: Sequence[float],
    grid_size: int = DEFAULT_GRID_SIZE,
    bandwidth: Optional[float] = None,
    min_weight: float = DEFAULT_MIN_WEIGHT
) -> LocalCorrelationResult:
    """
    Local correlation and density over a padded grid.

    Args:
        x_data: Finite sample values along x
        y_data: Finite sample values along y (same length, at least 10)
        grid_size: Grid points per axis (>= 2)
        bandwidth: Bandwidth override for both axes (None for Silverman's rule)
        min_weight: Minimum total kernel weight for a non-null cell

    Returns:
        LocalCorrelationResult

    Raises:
        InsufficientDataError: Fewer than 10 pairs
        InvalidInputError: Mismatched lengths, non-finite samples, bad grid_size
        DegenerateAxisError: An axis is constant
        DegenerateBandwidthError: Bandwidth override <= 0 or zero-variance axis
    """
    try:
        x, y = validate_samples(x_data, y_data)
        result = _compute_from_clean(x, y, grid_size, bandwidth, min_weight)
    except LocalCorrelationException as e:
        logger.warning(f"Local correlation refused: {e.message}")
        raise

    return result


def _bootstrap_engine(iterations, min_weight, progress_every, random_state) -> BootstrapEngine:
    return BootstrapEngine(
        iterations=iterations,
        min_weight=min_weight,
        progress_every=progress_every,
        random_state=random_state
    )


def _explicit_bandwidth(hx: float, hy: float) -> Bandwidth:
    for axis, h in (("x", hx), ("y", hy)):
        if h is None or not math.isfinite(h) or h <= 0:
            raise DegenerateBandwidthError(
                f"Bandwidth along {axis} must be a positive finite number, got {h}",
                axis=axis,
                bandwidth=h
            )
    return Bandwidth(x=float(hx), y=float(hy), automatic=False)


def compute_bootstrap_t_stats(
    x_data: Sequence[float],
    y_data: Sequence[float],
    x_grid: Sequence[float],
    y_grid: Sequence[float],
    hx: float,
    hy: float,
    original_z_grid: GridLike,
    iterations: int = DEFAULT_BOOTSTRAP_ITERATIONS,
    progress_callback: Optional[Callable[[float], None]] = None,
    min_weight: float = DEFAULT_MIN_WEIGHT,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
    random_state: RandomState = None,
    cancel_token: Optional[CancellationToken] = None,
    observers: Optional[List[BootstrapObserver]] = None
) -> BootstrapResult:
    """
    Bootstrap standard errors and t-statistics for a correlation grid.

    Args:
        x_data: Sample values the grid was computed from (x)
        y_data: Sample values the grid was computed from (y)
        x_grid: Grid coordinates along x
        y_grid: Grid coordinates along y
        hx: Bandwidth along x
        hy: Bandwidth along y
        original_z_grid: Correlation grid being tested (masked, NaN or None for null)
        iterations: Number of resamples
        progress_callback: Receives fractions in [0, 1], ending with 1.0
        min_weight: Support threshold, same as used for the original grid
        progress_every: Report progress every N resamples
        random_state: Seed or numpy Generator
        cancel_token: Optional cancellation token
        observers: Additional progress observers

    Returns:
        BootstrapResult with t_grid and se_grid on the original geometry
    """
    try:
        x, y = validate_samples(x_data, y_data)
        bandwidth = _explicit_bandwidth(hx, hy)
        engine = _bootstrap_engine(iterations, min_weight, progress_every, random_state)
    except LocalCorrelationException as e:
        logger.warning(f"Bootstrap refused: {e.message}")
        raise

    return engine.run(
        x, y, x_grid, y_grid, bandwidth, original_z_grid,
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        observers=observers
    )


async def compute_bootstrap_t_stats_async(
    x_data: Sequence[float],
    y_data: Sequence[float],
    x_grid: Sequence[float],
    y_grid: Sequence[float],
    hx: float,
    hy: float,
    original_z_grid: GridLike,
    iterations: int = DEFAULT_BOOTSTRAP_ITERATIONS,
    progress_callback: Optional[Callable[[float], None]] = None,
    min_weight: float = DEFAULT_MIN_WEIGHT,
    progress_every: int = DEFAULT_PROGRESS_EVERY,
    random_state: RandomState = None,
    cancel_token: Optional[CancellationToken] = None,
    observers: Optional[List[BootstrapObserver]] = None
) -> BootstrapResult:
    """``compute_bootstrap_t_stats`` for asyncio hosts; yields after every resample."""
    try:
        x, y = validate_samples(x_data, y_data)
        bandwidth = _explicit_bandwidth(hx, hy)
        engine = _bootstrap_engine(iterations, min_weight, progress_every, random_state)
    except LocalCorrelationException as e:
        logger.warning(f"Bootstrap refused: {e.message}")
        raise

    return await engine.run_async(
        x, y, x_grid, y_grid, bandwidth, original_z_grid,
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        observers=observers
    )


def compute_t_stat_marginals(
    t_grid: GridLike,
    density_grid: GridLike,
    grid_size: Optional[int] = None
) -> MarginalCurves:
    """Density-weighted marginal curves of a t-statistic grid."""
    return density_weighted_marginals(t_grid, density_grid, grid_size=grid_size)


class LocalCorrelationEngine:
    """
    Stateful engine for one chart.

    Holds the chart's cache; nothing is shared between engine instances.

    Example:
        >>> engine = LocalCorrelationEngine(EngineConfig({"grid_size": 30}))
        >>> result = engine.compute(x, y)
        >>> boot = engine.bootstrap(x, y, progress_callback=print)
        >>> engine.compute(x, y) is result   # cached
        True
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        observers: Optional[List[BootstrapObserver]] = None
    ):
        """
        Initialize engine.

        Args:
            config: Engine configuration (defaults when None)
            observers: Observers notified on every bootstrap run
        """
        self.config = config or EngineConfig()
        self.observers = list(observers or [])
        self.cache = ResultCache(max_entries=self.config.cache_entries)

    def _entry(self, x_data, y_data, bandwidth: Optional[float]):
        override = self.config.bandwidth if bandwidth is None else bandwidth
        try:
            x, y = validate_samples(x_data, y_data)
        except LocalCorrelationException as e:
            logger.warning(f"Local correlation refused: {e.message}")
            raise

        key = fingerprint(x, y, override, self.config.grid_size, self.config.min_weight)

        def compute() -> LocalCorrelationResult:
            try:
                return _compute_from_clean(x, y, self.config.grid_size, override, self.config.min_weight)
            except LocalCorrelationException as e:
                logger.warning(f"Local correlation refused: {e.message}")
                raise

        entry = self.cache.get_or_compute(key, compute)
        return x, y, entry

    def compute(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None
    ) -> LocalCorrelationResult:
        """
        Correlation grid for the data, reusing the cached one when inputs match.

        Args:
            x_data: Finite sample values along x
            y_data: Finite sample values along y
            bandwidth: Override for this call (None uses the configured bandwidth)
        """
        _, _, entry = self._entry(x_data, y_data, bandwidth)
        return entry.correlation

    def cached_bootstrap(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None
    ) -> Optional[BootstrapResult]:
        """Bootstrap already computed for these inputs, or None."""
        _, _, entry = self._entry(x_data, y_data, bandwidth)
        return entry.bootstrap

    def _bootstrap_runner(self) -> BootstrapEngine:
        return _bootstrap_engine(
            self.config.bootstrap_iterations,
            self.config.min_weight,
            self.config.progress_every,
            self.config.random_seed
        )

    def _store(self, entry: CacheEntry, result: BootstrapResult) -> BootstrapResult:
        if not self.cache.store_bootstrap(entry.key, result):
            logger.info("Inputs changed during bootstrap; result not cached")
        return result

    def bootstrap(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> BootstrapResult:
        """
        Bootstrap t-statistics for the data's correlation grid, computed lazily.

        A cached result for identical inputs is returned without resampling
        (the progress callback then receives a single 1.0).
        """
        x, y, entry = self._entry(x_data, y_data, bandwidth)
        if entry.bootstrap is not None:
            logger.debug("Using cached bootstrap result")
            if progress_callback is not None:
                progress_callback(1.0)
            return entry.bootstrap

        result = entry.correlation
        runner = self._bootstrap_runner()
        boot = runner.run(
            x, y, result.x_grid, result.y_grid, result.bandwidth, result.z_grid,
            progress_callback=progress_callback,
            cancel_token=cancel_token,
            observers=self.observers
        )
        return self._store(entry, boot)

    async def bootstrap_async(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> BootstrapResult:
        """``bootstrap`` for asyncio hosts; yields to the loop after every resample."""
        x, y, entry = self._entry(x_data, y_data, bandwidth)
        if entry.bootstrap is not None:
            if progress_callback is not None:
                progress_callback(1.0)
            return entry.bootstrap

        result = entry.correlation
        runner = self._bootstrap_runner()
        boot = await runner.run_async(
            x, y, result.x_grid, result.y_grid, result.bandwidth, result.z_grid,
            progress_callback=progress_callback,
            cancel_token=cancel_token,
            observers=self.observers
        )
        return self._store(entry, boot)

    def t_stat_marginals(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None,
        progress_callback: Optional[Callable[[float], None]] = None
    ) -> MarginalCurves:
        """Marginal curves of the bootstrap t-statistics (bootstrapping if needed)."""
        boot = self.bootstrap(x_data, y_data, bandwidth, progress_callback=progress_callback)
        correlation = self.compute(x_data, y_data, bandwidth)
        return compute_t_stat_marginals(boot.t_grid, correlation.density_grid, correlation.grid_size)

    def summarize(
        self,
        x_data: Sequence[float],
        y_data: Sequence[float],
        bandwidth: Optional[float] = None
    ) -> Dict[str, Any]:
        """Summary of the cached (or freshly computed) result, with the bootstrap if available."""
        x, y, entry = self._entry(x_data, y_data, bandwidth)
        return summarize(
            entry.correlation, x, y,
            bootstrap=entry.bootstrap,
            significance_level=self.config.significance_level
        )

    def invalidate(self) -> None:
        """Forget every cached grid and bootstrap."""
        self.cache.invalidate()
