"""
Tests for the public engine operations and the per-chart engine.

Covers the statistical properties of the estimator end to end, the
bootstrap entry points and cache behaviour of LocalCorrelationEngine.
"""

import asyncio

import numpy as np
import pytest
from scipy import stats

from local_correlation import (
    BootstrapCancelledError,
    CancellationToken,
    DegenerateAxisError,
    DegenerateBandwidthError,
    EngineConfig,
    InsufficientDataError,
    InvalidInputError,
    LocalCorrelationEngine,
    compute_bootstrap_t_stats,
    compute_bootstrap_t_stats_async,
    compute_local_correlation,
    compute_t_stat_marginals
)


class TestComputeLocalCorrelation:
    """Test compute_local_correlation end to end."""

    def test_correlations_bounded(self, correlated_data):
        """Test every non-null correlation lies in [-1, 1]."""
        x, y = correlated_data

        result = compute_local_correlation(x, y, grid_size=20)

        assert result.supported_cells > 0
        assert np.all(np.abs(result.z_grid.compressed()) <= 1.0)

    @pytest.mark.parametrize("slope", [2.5, -0.7])
    def test_linear_relation_follows_slope_sign(self, rng, slope):
        """Test y = a*x + b with a wide bandwidth gives sign(a) in supported cells."""
        x = rng.uniform(-3.0, 3.0, size=120)
        y = slope * x + 4.0

        result = compute_local_correlation(x, y, grid_size=10, bandwidth=5.0)

        assert result.supported_cells > 0
        np.testing.assert_allclose(result.z_grid.compressed(), np.sign(slope), atol=1e-6)

    def test_densities_nonnegative(self, independent_data):
        """Test densities are nonnegative."""
        x, y = independent_data

        result = compute_local_correlation(x, y, grid_size=12)

        assert np.all(result.density_grid.compressed() >= 0.0)
        assert np.all(result.marginal_x_density >= 0.0)
        assert np.all(result.marginal_y_density >= 0.0)

    @pytest.mark.parametrize("grid_size", [2, 7, 30])
    def test_grid_shapes(self, correlated_data, grid_size):
        """Test grid_size g gives axes of length g and g x g grids."""
        x, y = correlated_data

        result = compute_local_correlation(x, y, grid_size=grid_size)

        assert len(result.x_grid) == len(result.y_grid) == grid_size
        assert result.z_grid.shape == (grid_size, grid_size)
        assert result.density_grid.shape == (grid_size, grid_size)
        assert len(result.marginal_x) == len(result.marginal_y) == grid_size
        assert len(result.marginal_x_density) == grid_size

    def test_identity_data(self, identity_data):
        """Test x = y = 1..10 gives correlation 1 wherever supported."""
        x, y = identity_data

        result = compute_local_correlation(x, y, grid_size=5, min_weight=0.1)

        assert result.supported_cells > 0
        np.testing.assert_allclose(result.z_grid.compressed(), 1.0, atol=1e-9)
        assert result.marginal_x.count() > 0
        np.testing.assert_allclose(result.marginal_x.compressed(), 1.0, atol=1e-9)
        np.testing.assert_allclose(result.marginal_y.compressed(), 1.0, atol=1e-9)
        assert result.z_grid.mask[0, 4]
        assert result.z_grid.mask[4, 0]

    def test_huge_bandwidth_equals_pearson(self, correlated_data):
        """Test the central cell equals Pearson's r for a very large bandwidth."""
        x, y = correlated_data
        r, _ = stats.pearsonr(x, y)

        result = compute_local_correlation(x, y, grid_size=5, bandwidth=1e6)

        assert result.z_grid[2, 2] == pytest.approx(r, abs=1e-6)
        assert result.bandwidth.automatic is False

    def test_deterministic(self, correlated_data):
        """Test repeated calls give identical results."""
        x, y = correlated_data

        first = compute_local_correlation(x, y, grid_size=15)
        second = compute_local_correlation(x, y, grid_size=15)

        np.testing.assert_array_equal(first.z_grid.filled(np.nan), second.z_grid.filled(np.nan))
        np.testing.assert_array_equal(first.density_grid.filled(np.nan), second.density_grid.filled(np.nan))
        np.testing.assert_array_equal(np.ma.getmaskarray(first.z_grid), np.ma.getmaskarray(second.z_grid))

    def test_to_dict_uses_none_for_null_cells(self, identity_data):
        """Test null cells serialize as None."""
        x, y = identity_data

        data = compute_local_correlation(x, y, grid_size=5).to_dict()

        assert data["z_grid"][0][4] is None
        assert data["density_grid"][0][4] is None
        assert data["z_grid"][2][2] == pytest.approx(1.0)
        assert data["bandwidth"]["automatic"] is True

    def test_insufficient_data(self):
        """Test nine pairs are refused."""
        with pytest.raises(InsufficientDataError):
            compute_local_correlation(np.arange(9.0), np.arange(9.0))

    def test_non_finite_refused(self):
        """Test NaN input is refused."""
        x = np.arange(12.0)
        x[0] = np.nan

        with pytest.raises(InvalidInputError):
            compute_local_correlation(x, np.arange(12.0))

    def test_constant_axis(self):
        """Test a constant axis raises DegenerateAxisError."""
        with pytest.raises(DegenerateAxisError):
            compute_local_correlation(np.arange(12.0), np.full(12, 3.0))

    def test_constant_axis_is_degenerate_bandwidth(self):
        """Test a constant axis is caught as DegenerateBandwidthError."""
        with pytest.raises(DegenerateBandwidthError) as exc_info:
            compute_local_correlation(np.arange(12.0), np.full(12, 3.0))

        assert exc_info.value.axis == "y"

    def test_non_positive_bandwidth(self, correlated_data):
        """Test a bandwidth override <= 0 raises DegenerateBandwidthError."""
        x, y = correlated_data

        with pytest.raises(DegenerateBandwidthError):
            compute_local_correlation(x, y, bandwidth=0.0)

    def test_invalid_grid_size(self, correlated_data):
        """Test grid_size below two is refused."""
        x, y = correlated_data

        with pytest.raises(InvalidInputError):
            compute_local_correlation(x, y, grid_size=1)


class TestComputeBootstrapTStats:
    """Test the bootstrap entry points."""

    def test_identity_data_saturates(self, identity_data):
        """Test perfectly correlated data gives t = +10 and never inf or NaN."""
        x, y = identity_data
        result = compute_local_correlation(x, y, grid_size=5)

        boot = compute_bootstrap_t_stats(
            x, y, result.x_grid, result.y_grid, result.bandwidth.x, result.bandwidth.y,
            result.z_grid, iterations=200, random_state=0
        )

        assert boot.t_grid.count() > 0
        np.testing.assert_array_equal(boot.t_grid.compressed(), 10.0)
        assert np.all(boot.se_grid.compressed() <= 0.001)
        assert not np.any(np.isinf(boot.t_grid.filled(0.0)))

    def test_independent_noise_not_significant(self, rng):
        """Test local correlation of independent data is within bootstrap error of zero."""
        x = rng.normal(size=600)
        y = rng.normal(size=600)
        result = compute_local_correlation(x, y, grid_size=9)

        boot = compute_bootstrap_t_stats(
            x, y, result.x_grid, result.y_grid, result.bandwidth.x, result.bandwidth.y,
            result.z_grid, iterations=60, random_state=1
        )

        centre_rho = result.z_grid[4, 4]
        centre_se = boot.se_grid[4, 4]
        assert abs(centre_rho) < 3.0 * centre_se

    def test_progress_callback(self, identity_data):
        """Test progress starts at 0.0 and ends with a single 1.0."""
        x, y = identity_data
        result = compute_local_correlation(x, y, grid_size=5)
        progress = []

        compute_bootstrap_t_stats(
            x, y, result.x_grid, result.y_grid, result.bandwidth.x, result.bandwidth.y,
            result.z_grid, iterations=60, progress_callback=progress.append, random_state=0
        )

        assert progress[0] == 0.0
        assert progress[-1] == 1.0
        assert progress.count(1.0) == 1
        assert progress == sorted(progress)

    @pytest.mark.parametrize("hx, hy", [(0.0, 1.0), (1.0, -2.0), (float("nan"), 1.0)])
    def test_invalid_bandwidth(self, identity_data, hx, hy):
        """Test non-positive bandwidths are refused."""
        x, y = identity_data
        result = compute_local_correlation(x, y, grid_size=5)

        with pytest.raises(DegenerateBandwidthError):
            compute_bootstrap_t_stats(x, y, result.x_grid, result.y_grid, hx, hy, result.z_grid, iterations=5)

    def test_async_matches_sync(self, correlated_data):
        """Test the asyncio entry point returns the same grids."""
        x, y = correlated_data
        result = compute_local_correlation(x, y, grid_size=6)
        args = (x, y, result.x_grid, result.y_grid, result.bandwidth.x, result.bandwidth.y, result.z_grid)

        async_boot = asyncio.run(compute_bootstrap_t_stats_async(*args, iterations=20, random_state=4))
        sync_boot = compute_bootstrap_t_stats(*args, iterations=20, random_state=4)

        np.testing.assert_array_equal(async_boot.t_grid.filled(np.nan), sync_boot.t_grid.filled(np.nan))


class TestComputeTStatMarginals:
    """Test marginals of t-statistic grids."""

    def test_weighted_by_density(self):
        """Test t marginals are density-weighted averages."""
        t = [[2.0, None], [4.0, 1.0]]
        density = [[1.0, None], [3.0, 1.0]]

        curves = compute_t_stat_marginals(t, density, grid_size=2)

        np.testing.assert_allclose(curves.marginal_x, [3.5, 1.0])
        np.testing.assert_allclose(curves.marginal_y, [2.0, 3.25])


class TestLocalCorrelationEngine:
    """Test caching, lazy bootstrap and invalidation."""

    @pytest.fixture
    def engine(self):
        """Engine with a small grid and bootstrap."""
        return LocalCorrelationEngine(EngineConfig({"grid_size": 6, "iterations": 20, "random_seed": 0}))

    def test_compute_cached(self, engine, correlated_data):
        """Test identical inputs return the cached result."""
        x, y = correlated_data

        first = engine.compute(x, y)
        second = engine.compute(list(x), list(y))

        assert first is second
        assert engine.cache.hits == 1

    def test_new_data_recomputes(self, engine, correlated_data):
        """Test changed data gives a new result."""
        x, y = correlated_data

        first = engine.compute(x, y)
        second = engine.compute(x, y * 2.0)

        assert first is not second

    def test_bandwidth_override_changes_key(self, engine, correlated_data):
        """Test a per-call bandwidth is part of the cache key."""
        x, y = correlated_data

        automatic = engine.compute(x, y)
        fixed = engine.compute(x, y, bandwidth=0.8)

        assert automatic is not fixed
        assert fixed.bandwidth.x == 0.8

    def test_configured_bandwidth_used(self, correlated_data):
        """Test the configured bandwidth applies when no override is given."""
        x, y = correlated_data
        engine = LocalCorrelationEngine(EngineConfig({"grid_size": 4, "bandwidth": 1.5}))

        assert engine.compute(x, y).bandwidth.x == 1.5

    def test_bootstrap_lazy_and_cached(self, engine, correlated_data):
        """Test bootstrap runs on request and is reused afterwards."""
        x, y = correlated_data

        assert engine.cached_bootstrap(x, y) is None
        first = engine.bootstrap(x, y)
        progress = []
        second = engine.bootstrap(x, y, progress_callback=progress.append)

        assert first is second
        assert progress == [1.0]
        assert engine.cached_bootstrap(x, y) is first
        assert first.t_grid.shape == (6, 6)

    def test_stale_bootstrap_never_returned(self, engine, correlated_data):
        """Test a bootstrap for old data is discarded when the data changes."""
        x, y = correlated_data
        engine.bootstrap(x, y)

        engine.compute(x, -y)

        assert engine.cached_bootstrap(x, -y) is None
        assert engine.cached_bootstrap(x, y) is None

    def test_invalidate(self, engine, correlated_data):
        """Test invalidate forgets results."""
        x, y = correlated_data
        first = engine.compute(x, y)

        engine.invalidate()

        assert len(engine.cache) == 0
        assert engine.compute(x, y) is not first

    def test_cancelled_bootstrap_not_cached(self, engine, correlated_data):
        """Test a cancelled bootstrap leaves nothing in the cache."""
        x, y = correlated_data
        token = CancellationToken()
        token.cancel()

        with pytest.raises(BootstrapCancelledError):
            engine.bootstrap(x, y, cancel_token=token)

        assert engine.cached_bootstrap(x, y) is None

    def test_bootstrap_async(self, engine, correlated_data):
        """Test the async bootstrap fills the same cache slot."""
        x, y = correlated_data

        boot = asyncio.run(engine.bootstrap_async(x, y))

        assert engine.cached_bootstrap(x, y) is boot

    def test_engine_observers_notified(self, correlated_data, recording_observer):
        """Test engine-level observers see every bootstrap run."""
        x, y = correlated_data
        engine = LocalCorrelationEngine(
            EngineConfig({"grid_size": 4, "iterations": 10, "random_seed": 0}),
            observers=[recording_observer]
        )

        engine.bootstrap(x, y)

        assert recording_observer.events[0][0] == "start"
        assert recording_observer.events[-1] == ("complete", 10)

    def test_t_stat_marginals(self, engine, correlated_data):
        """Test t marginals share the grid length."""
        x, y = correlated_data

        curves = engine.t_stat_marginals(x, y)

        assert len(curves.marginal_x) == len(curves.marginal_y) == 6

    def test_summarize_includes_bootstrap(self, engine, correlated_data):
        """Test the summary picks up a cached bootstrap."""
        x, y = correlated_data

        assert "bootstrap" not in engine.summarize(x, y)
        engine.bootstrap(x, y)
        summary = engine.summarize(x, y)

        assert summary["bootstrap"]["iterations"] == 20

    def test_instances_independent(self, correlated_data):
        """Test engines do not share caches."""
        x, y = correlated_data
        first = LocalCorrelationEngine(EngineConfig({"grid_size": 4}))
        second = LocalCorrelationEngine(EngineConfig({"grid_size": 4}))

        assert first.compute(x, y) is not second.compute(x, y)
