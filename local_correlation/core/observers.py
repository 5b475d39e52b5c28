"""
Observer Pattern for Bootstrap Event Notifications.

The bootstrap is the only long-running operation of the engine. Rather than
printing or logging progress itself, it notifies observers, which keeps the
numerical code independent of how progress is shown (progress callback of
a UI layer, CLI progress bar, log lines).

Design Pattern: Observer (Behavioral)
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Tuple

from local_correlation.core.pretty_output import PrettyOutput
from local_correlation.estimation.results import BootstrapResult


class BootstrapObserver(ABC):
    """
    Abstract base class for bootstrap event observers.

    All methods are called synchronously from the bootstrap loop, so
    observers should return quickly.

    Progress values passed to ``on_bootstrap_progress`` are monotonically
    increasing fractions in [0, 1]; the last one of a completed run is 1.0.

    Example:
        >>> class PrintObserver(BootstrapObserver):
        ...     def on_bootstrap_progress(self, fraction, completed_iterations):
        ...         print(f"{fraction:.0%}")
        ...     ...
        >>> engine.bootstrap(x, y, observers=[PrintObserver()])
    """

    @abstractmethod
    def on_bootstrap_start(self, iterations: int, n_samples: int, grid_shape: Tuple[int, int]) -> None:
        """
        Called before the first resample is drawn.

        Args:
            iterations: Number of resamples requested
            n_samples: Dataset size
            grid_shape: Shape of the correlation grid
        """
        pass

    @abstractmethod
    def on_bootstrap_progress(self, fraction: float, completed_iterations: int) -> None:
        """
        Called at the reporting cadence.

        Args:
            fraction: Completed fraction in [0, 1]
            completed_iterations: Number of resamples finished
        """
        pass

    @abstractmethod
    def on_bootstrap_complete(self, result: BootstrapResult) -> None:
        """
        Called once the t and SE grids are final.

        Args:
            result: Finished bootstrap result
        """
        pass

    @abstractmethod
    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """
        Called when the run fails or is cancelled.

        Args:
            error: Exception that stopped the run
            context: Context dict (completed_iterations, iterations)
        """
        pass


class CallbackProgressObserver(BootstrapObserver):
    """
    Adapter from a plain ``callback(fraction)`` to the observer interface.

    This is how the ``progress_callback`` argument of the public functions
    is delivered.

    Example:
        >>> observer = CallbackProgressObserver(lambda p: bar.set(p))
    """

    def __init__(self, callback: Callable[[float], Any]):
        """
        Initialize callback adapter.

        Args:
            callback: Function receiving the completed fraction
        """
        self.callback = callback

    def on_bootstrap_start(self, iterations: int, n_samples: int, grid_shape: Tuple[int, int]) -> None:
        """No action needed for start (progress 0.0 follows)."""
        pass

    def on_bootstrap_progress(self, fraction: float, completed_iterations: int) -> None:
        """Forward fraction to the callback."""
        self.callback(fraction)

    def on_bootstrap_complete(self, result: BootstrapResult) -> None:
        """No action needed for completion (progress 1.0 already sent)."""
        pass

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """No action needed; the error propagates to the caller."""
        pass


class CLIProgressObserver(BootstrapObserver):
    """
    Observer for CLI progress output.

    Attributes:
        verbose (bool): Whether to print progress lines
        po (PrettyOutput): Pretty output utility class
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize CLI progress observer.

        Args:
            verbose: If True, show progress. If False, no output.
        """
        self.verbose = verbose
        self.started_at = None
        self.po = PrettyOutput

    def on_bootstrap_start(self, iterations: int, n_samples: int, grid_shape: Tuple[int, int]) -> None:
        """Display bootstrap banner."""
        self.started_at = time.perf_counter()
        if self.verbose:
            self.po.task_start(
                f"Bootstrap: {iterations} resamples of {n_samples:,} points "
                f"on a {grid_shape[0]}x{grid_shape[1]} grid"
            )

    def on_bootstrap_progress(self, fraction: float, completed_iterations: int) -> None:
        """Display progress bar."""
        if self.verbose:
            self.po.progress(fraction, f"({completed_iterations} resamples)")

    def on_bootstrap_complete(self, result: BootstrapResult) -> None:
        """Display completion line."""
        if self.verbose:
            duration = time.perf_counter() - self.started_at if self.started_at is not None else None
            self.po.task_complete(f"Bootstrap complete ({result.iterations} iterations)", duration=duration)

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """Display error message."""
        if self.verbose:
            self.po.error(f"Bootstrap stopped: {str(error)}")


class LoggingProgressObserver(BootstrapObserver):
    """
    Observer for structured logging of bootstrap events.

    Example:
        >>> observer = LoggingProgressObserver()
        >>> engine.bootstrap(x, y, observers=[observer])
    """

    def __init__(self, logger: logging.Logger = None):
        """Initialize logging observer."""
        self.logger = logger or logging.getLogger('local_correlation.bootstrap')

    def on_bootstrap_start(self, iterations: int, n_samples: int, grid_shape: Tuple[int, int]) -> None:
        """Log bootstrap start."""
        self.logger.info(
            f"Bootstrap started: {iterations} iterations, {n_samples} samples",
            extra={'iterations': iterations, 'n_samples': n_samples, 'grid_shape': grid_shape}
        )

    def on_bootstrap_progress(self, fraction: float, completed_iterations: int) -> None:
        """Log progress."""
        self.logger.debug(
            f"Bootstrap progress: {fraction:.0%}",
            extra={'fraction': fraction, 'completed_iterations': completed_iterations}
        )

    def on_bootstrap_complete(self, result: BootstrapResult) -> None:
        """Log completion."""
        self.logger.info(
            f"Bootstrap completed: {result.iterations} iterations, "
            f"{int(result.t_grid.count())} cells with t-statistics"
        )

    def on_error(self, error: Exception, context: Dict[str, Any]) -> None:
        """Log error with context."""
        self.logger.warning(f"Bootstrap error: {str(error)}", extra=context)
