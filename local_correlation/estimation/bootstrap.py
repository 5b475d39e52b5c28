"""
Bootstrap significance of local correlation grids.

The local correlation estimator has no closed-form standard error, so it is
estimated empirically: the dataset is resampled with replacement B times,
the full grid is recomputed for each resample, and the spread of the
replicate correlations in each cell gives that cell's standard error and
t-statistic (original correlation / SE).

The loop is written as a generator (``BootstrapEngine.iter_run``) that
yields after every resample. Hosts with a cooperative scheduler drive it
step by step; ``run`` drives it to completion synchronously and
``run_async`` drives it from an asyncio event loop, yielding control after
every resample.
"""

import asyncio
import threading
from typing import Callable, Generator, List, Optional, Sequence, Union

import numpy as np

from local_correlation.core.constants import (
    DEFAULT_BOOTSTRAP_ITERATIONS,
    DEFAULT_MIN_WEIGHT,
    DEFAULT_PROGRESS_EVERY,
    MIN_BOOTSTRAP_REPLICATES,
    SE_SATURATION_THRESHOLD,
    SATURATED_T_STAT
)
from local_correlation.core.exceptions import BootstrapCancelledError, InvalidInputError
from local_correlation.core.logging_config import get_logger
from local_correlation.core.observers import BootstrapObserver, CallbackProgressObserver
from local_correlation.estimation.estimator import LocalCorrelationEstimator
from local_correlation.estimation.results import (
    Bandwidth,
    BootstrapResult,
    GridLike,
    as_masked_grid
)

logger = get_logger(__name__)

RandomState = Union[None, int, np.random.Generator]


class CancellationToken:
    """
    Best-effort cancellation flag for a bootstrap run.

    Checked before every resample; safe to set from another thread.

    Example:
        >>> token = CancellationToken()
        >>> # from a UI handler: token.cancel()
        >>> engine.run(..., cancel_token=token)
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._event.is_set()


class ReplicateAccumulator:
    """
    Per-cell running count, mean and sum of squared deviations.

    Equivalent to keeping every replicate correlation per cell and taking
    the sample standard deviation at the end (Welford's update), with
    memory independent of the number of iterations.
    """

    def __init__(self, shape):
        self.count = np.zeros(shape, dtype=np.int64)
        self.mean = np.zeros(shape, dtype=float)
        self.m2 = np.zeros(shape, dtype=float)

    def add(self, replicate: np.ma.MaskedArray) -> None:
        """Fold one replicate grid in; masked cells are skipped."""
        present = ~np.ma.getmaskarray(replicate)
        values = replicate.filled(0.0)

        self.count += present
        delta = np.where(present, values - self.mean, 0.0)
        safe_count = np.maximum(self.count, 1)
        self.mean += delta / safe_count
        self.m2 += np.where(present, delta * (values - self.mean), 0.0)

    def sample_std(self) -> np.ndarray:
        """Sample standard deviation (n - 1 denominator); NaN below two replicates."""
        with np.errstate(divide="ignore", invalid="ignore"):
            variance = np.where(self.count > 1, self.m2 / (self.count - 1), np.nan)
        return np.sqrt(np.maximum(variance, 0.0))


def t_statistics(
    original_z: np.ma.MaskedArray,
    accumulator: ReplicateAccumulator,
    min_replicates: int = MIN_BOOTSTRAP_REPLICATES
):
    """
    Turn accumulated replicates into (t_grid, se_grid).

    A cell is null unless the original correlation is non-null and at least
    ``min_replicates`` replicates were observed. When the standard error is
    at or below the saturation threshold the t-statistic is
    sign(rho0) * 10 (0 for rho0 == 0) instead of a near-infinite ratio.
    """
    defined = (~np.ma.getmaskarray(original_z)) & (accumulator.count >= min_replicates)
    rho0 = original_z.filled(0.0)
    se = accumulator.sample_std()

    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = rho0 / se
    t = np.where(se > SE_SATURATION_THRESHOLD, ratio, np.sign(rho0) * SATURATED_T_STAT)

    t_grid = np.ma.array(np.where(defined, t, np.nan), mask=~defined, fill_value=np.nan)
    se_grid = np.ma.array(np.where(defined, se, np.nan), mask=~defined, fill_value=np.nan)
    return t_grid, se_grid


class BootstrapEngine:
    """
    Resampling engine producing bootstrap standard errors and t-statistics.

    Iterations are independent; their order changes only which random
    numbers are consumed, not the aggregate.
    """

    def __init__(
        self,
        iterations: int = DEFAULT_BOOTSTRAP_ITERATIONS,
        min_weight: float = DEFAULT_MIN_WEIGHT,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        random_state: RandomState = None
    ):
        """
        Initialize bootstrap engine.

        Args:
            iterations: Number of resamples (B)
            min_weight: Support threshold passed to the estimator
            progress_every: Report progress every N completed resamples
            random_state: Seed or numpy Generator (None for fresh entropy)
        """
        if isinstance(iterations, bool) or not isinstance(iterations, (int, np.integer)) or iterations < 1:
            raise InvalidInputError(
                f"iterations must be a positive integer, got {iterations}",
                parameter="iterations",
                value=iterations
            )
        if isinstance(progress_every, bool) or not isinstance(progress_every, (int, np.integer)) or progress_every < 1:
            raise InvalidInputError(
                f"progress_every must be a positive integer, got {progress_every}",
                parameter="progress_every",
                value=progress_every
            )
        self.iterations = int(iterations)
        self.progress_every = int(progress_every)
        self.random_state = random_state
        self.estimator = LocalCorrelationEstimator(min_weight=min_weight)

    def iter_run(
        self,
        x: Sequence[float],
        y: Sequence[float],
        x_grid: Sequence[float],
        y_grid: Sequence[float],
        bandwidth: Bandwidth,
        original_z_grid: GridLike,
        cancel_token: Optional[CancellationToken] = None
    ) -> Generator[float, None, BootstrapResult]:
        """
        Run the bootstrap one resample per step.

        Yields the completed fraction after each resample (the last value is
        1.0) and returns the BootstrapResult as the generator's return value,
        so ``result = yield from engine.iter_run(...)`` works. Inputs are
        checked when iter_run is called, before the first resample is drawn.

        Raises:
            InvalidInputError: Grid shapes do not agree
            BootstrapCancelledError: The token was cancelled before a resample
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        x_grid = np.asarray(x_grid, dtype=float)
        y_grid = np.asarray(y_grid, dtype=float)
        original_z = as_masked_grid(original_z_grid, name="original_z_grid")

        shape = (len(y_grid), len(x_grid))
        if original_z.shape != shape:
            raise InvalidInputError(
                f"original_z_grid shape {original_z.shape} does not match grid shape {shape}",
                parameter="original_z_grid",
                value=original_z.shape
            )
        return self._resample(x, y, x_grid, y_grid, bandwidth, original_z, cancel_token)

    def _resample(self, x, y, x_grid, y_grid, bandwidth, original_z, cancel_token):
        n = len(x)
        rng = np.random.default_rng(self.random_state)
        accumulator = ReplicateAccumulator(original_z.shape)

        for b in range(self.iterations):
            if cancel_token is not None and cancel_token.is_cancelled:
                raise BootstrapCancelledError(completed_iterations=b, requested_iterations=self.iterations)

            indices = rng.integers(0, n, size=n)
            replicate, _ = self.estimator.estimate_grid(
                x[indices], y[indices], x_grid, y_grid, bandwidth
            )
            accumulator.add(replicate)

            yield (b + 1) / self.iterations

        t_grid, se_grid = t_statistics(original_z, accumulator)
        return BootstrapResult(
            t_grid=t_grid,
            se_grid=se_grid,
            replicate_counts=accumulator.count,
            iterations=self.iterations,
            x_grid=x_grid,
            y_grid=y_grid
        )

    def _observers(
        self,
        progress_callback: Optional[Callable[[float], None]],
        observers: Optional[List[BootstrapObserver]]
    ) -> List[BootstrapObserver]:
        combined = list(observers or [])
        if progress_callback is not None:
            combined.append(CallbackProgressObserver(progress_callback))
        return combined

    def _should_report(self, completed: int) -> bool:
        return completed % self.progress_every == 0 and completed < self.iterations

    def run(
        self,
        x: Sequence[float],
        y: Sequence[float],
        x_grid: Sequence[float],
        y_grid: Sequence[float],
        bandwidth: Bandwidth,
        original_z_grid: GridLike,
        progress_callback: Optional[Callable[[float], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
        observers: Optional[List[BootstrapObserver]] = None
    ) -> BootstrapResult:
        """
        Run every resample synchronously.

        Progress is reported as 0.0 before the first resample, then every
        ``progress_every`` completed resamples, then exactly once as 1.0.

        Returns:
            BootstrapResult on the same geometry as ``original_z_grid``
        """
        observers = self._observers(progress_callback, observers)
        steps = self.iter_run(x, y, x_grid, y_grid, bandwidth, original_z_grid, cancel_token)
        completed = 0

        self._notify_start(observers, x, x_grid, y_grid)
        try:
            while True:
                try:
                    fraction = next(steps)
                except StopIteration as stop:
                    result = stop.value
                    break
                completed += 1
                if self._should_report(completed):
                    self._notify_progress(observers, fraction, completed)
        except Exception as e:
            self._notify_error(observers, e, completed)
            raise

        self._notify_finish(observers, result)
        return result

    async def run_async(
        self,
        x: Sequence[float],
        y: Sequence[float],
        x_grid: Sequence[float],
        y_grid: Sequence[float],
        bandwidth: Bandwidth,
        original_z_grid: GridLike,
        progress_callback: Optional[Callable[[float], None]] = None,
        cancel_token: Optional[CancellationToken] = None,
        observers: Optional[List[BootstrapObserver]] = None
    ) -> BootstrapResult:
        """
        Same contract as ``run``, yielding to the event loop after every resample.
        """
        observers = self._observers(progress_callback, observers)
        steps = self.iter_run(x, y, x_grid, y_grid, bandwidth, original_z_grid, cancel_token)
        completed = 0

        self._notify_start(observers, x, x_grid, y_grid)
        try:
            while True:
                try:
                    fraction = next(steps)
                except StopIteration as stop:
                    result = stop.value
                    break
                completed += 1
                if self._should_report(completed):
                    self._notify_progress(observers, fraction, completed)
                await asyncio.sleep(0)
        except Exception as e:
            self._notify_error(observers, e, completed)
            raise

        self._notify_finish(observers, result)
        return result

    def _notify_start(self, observers, x, x_grid, y_grid) -> None:
        logger.info(f"Bootstrap started: {self.iterations} iterations over {len(x)} samples")
        for observer in observers:
            observer.on_bootstrap_start(self.iterations, len(x), (len(y_grid), len(x_grid)))
        self._notify_progress(observers, 0.0, 0)

    def _notify_progress(self, observers, fraction: float, completed: int) -> None:
        for observer in observers:
            observer.on_bootstrap_progress(fraction, completed)

    def _notify_finish(self, observers, result: BootstrapResult) -> None:
        self._notify_progress(observers, 1.0, self.iterations)
        for observer in observers:
            observer.on_bootstrap_complete(result)
        logger.info(
            f"Bootstrap finished: {int(result.t_grid.count())} cells with t-statistics"
        )

    def _notify_error(self, observers, error: Exception, completed: int) -> None:
        logger.warning(f"Bootstrap stopped after {completed} iterations: {error}")
        context = {'completed_iterations': completed, 'iterations': self.iterations}
        for observer in observers:
            observer.on_error(error, context)
