"""
Unit tests for constants module.

Tests that all constants are properly defined and have sensible values.
"""

from local_correlation.core.constants import (
    # Input
    MIN_VALID_SAMPLES,
    MIN_BANDWIDTH_SAMPLES,
    # Grid
    DEFAULT_GRID_SIZE,
    MIN_GRID_SIZE,
    GRID_PADDING_FRACTION,
    # Kernel
    SILVERMAN_FACTOR,
    SILVERMAN_EXPONENT,
    DEFAULT_MIN_WEIGHT,
    # Bootstrap
    DEFAULT_BOOTSTRAP_ITERATIONS,
    DEFAULT_PROGRESS_EVERY,
    MIN_BOOTSTRAP_REPLICATES,
    SE_SATURATION_THRESHOLD,
    SATURATED_T_STAT,
    # Significance
    DEFAULT_SIGNIFICANCE_LEVEL,
    STRENGTH_VERY_STRONG,
    STRENGTH_STRONG,
    STRENGTH_MODERATE,
    # Cache
    DEFAULT_CACHE_ENTRIES,
    # Security
    MAX_YAML_FILE_SIZE,
    MAX_YAML_NESTING_DEPTH,
    MAX_YAML_KEY_COUNT,
    # Logging
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    VALID_LOG_LEVELS
)


class TestInputConstants:
    """Test input constants."""

    def test_minimum_samples(self):
        """Test that at least ten pairs are required."""
        assert MIN_VALID_SAMPLES == 10

    def test_bandwidth_needs_fewer_samples_than_estimator(self):
        """Test Silverman minimum never exceeds the estimator minimum."""
        assert 2 == MIN_BANDWIDTH_SAMPLES <= MIN_VALID_SAMPLES


class TestGridConstants:
    """Test grid constants."""

    def test_grid_size_bounds(self):
        """Test default grid size is above the minimum."""
        assert MIN_GRID_SIZE == 2
        assert DEFAULT_GRID_SIZE == 30
        assert MIN_GRID_SIZE < DEFAULT_GRID_SIZE

    def test_padding_fraction(self):
        """Test grid padding is 5% of the span."""
        assert GRID_PADDING_FRACTION == 0.05


class TestKernelConstants:
    """Test kernel constants."""

    def test_silverman_rule(self):
        """Test Silverman's rule of thumb coefficients."""
        assert SILVERMAN_FACTOR == 1.06
        assert SILVERMAN_EXPONENT == -0.2

    def test_min_weight(self):
        """Test default support threshold."""
        assert DEFAULT_MIN_WEIGHT == 0.1


class TestBootstrapConstants:
    """Test bootstrap constants."""

    def test_iterations_and_cadence(self):
        """Test default iterations divide into progress reports."""
        assert DEFAULT_BOOTSTRAP_ITERATIONS == 200
        assert DEFAULT_PROGRESS_EVERY == 20
        assert DEFAULT_BOOTSTRAP_ITERATIONS % DEFAULT_PROGRESS_EVERY == 0

    def test_replicate_minimum(self):
        """Test minimum replicates per cell."""
        assert MIN_BOOTSTRAP_REPLICATES == 10
        assert MIN_BOOTSTRAP_REPLICATES < DEFAULT_BOOTSTRAP_ITERATIONS

    def test_saturation(self):
        """Test saturated t-statistic settings."""
        assert SE_SATURATION_THRESHOLD == 0.001
        assert SATURATED_T_STAT == 10.0


class TestSignificanceConstants:
    """Test significance constants."""

    def test_default_level(self):
        """Test default two-sided level."""
        assert DEFAULT_SIGNIFICANCE_LEVEL == 0.05

    def test_strength_thresholds_ordered(self):
        """Test strength thresholds are ordered strongest first."""
        assert 1.0 > STRENGTH_VERY_STRONG > STRENGTH_STRONG > STRENGTH_MODERATE > 0.0


class TestCacheConstants:
    """Test cache constants."""

    def test_single_slot(self):
        """Test one result is kept per engine by default."""
        assert DEFAULT_CACHE_ENTRIES == 1


class TestSecurityConstants:
    """Test security-related constants."""

    def test_yaml_size_limit(self):
        """Test YAML file size limit is 1MB."""
        assert MAX_YAML_FILE_SIZE == 1024 * 1024

    def test_yaml_nesting_depth(self):
        """Test YAML nesting depth allows the nested bootstrap section."""
        assert 2 < MAX_YAML_NESTING_DEPTH < 100

    def test_yaml_key_count(self):
        """Test YAML key count prevents memory exhaustion."""
        assert 10 < MAX_YAML_KEY_COUNT < 100_000


class TestLoggingConstants:
    """Test logging constants."""

    def test_log_format_fields(self):
        """Test log format names the logger and level."""
        assert "%(name)s" in LOG_FORMAT
        assert "%(levelname)s" in LOG_FORMAT
        assert "%Y" in LOG_DATE_FORMAT

    def test_valid_log_levels(self):
        """Test CLI log levels."""
        assert VALID_LOG_LEVELS == ["DEBUG", "INFO", "WARNING", "ERROR"]
