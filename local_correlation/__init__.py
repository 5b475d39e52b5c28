"""
Local Gaussian correlation.

Estimates how the correlation between two continuous variables varies
across their joint distribution, and how significant that local
correlation is under bootstrap resampling.

Key Components:
- compute_local_correlation: correlation/density grids and marginal curves
- compute_bootstrap_t_stats: bootstrap standard errors and t-statistics
- compute_t_stat_marginals: marginal curves of a t-statistic grid
- LocalCorrelationEngine: cached, per-chart engine
"""

from local_correlation.engine import (
    LocalCorrelationEngine,
    compute_bootstrap_t_stats,
    compute_bootstrap_t_stats_async,
    compute_local_correlation,
    compute_t_stat_marginals
)
from local_correlation.core.config import EngineConfig
from local_correlation.core.exceptions import (
    BootstrapCancelledError,
    DegenerateAxisError,
    DegenerateBandwidthError,
    InsufficientDataError,
    InvalidInputError,
    LocalCorrelationException
)
from local_correlation.estimation.bootstrap import CancellationToken
from local_correlation.estimation.results import (
    Bandwidth,
    BootstrapResult,
    LocalCorrelationResult,
    MarginalCurves
)

__version__ = "0.1.0"

__all__ = [
    'LocalCorrelationEngine',
    'EngineConfig',
    'compute_local_correlation',
    'compute_bootstrap_t_stats',
    'compute_bootstrap_t_stats_async',
    'compute_t_stat_marginals',
    'CancellationToken',
    'Bandwidth',
    'BootstrapResult',
    'LocalCorrelationResult',
    'MarginalCurves',
    'LocalCorrelationException',
    'InsufficientDataError',
    'InvalidInputError',
    'DegenerateAxisError',
    'DegenerateBandwidthError',
    'BootstrapCancelledError',
]
