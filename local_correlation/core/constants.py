"""
Local Correlation Engine Constants.

This module defines the magic numbers and configuration defaults used
throughout the engine. Centralizing these values keeps the estimator,
bootstrap and configuration layer in agreement about thresholds.
"""

# ============================================================================
# Input Constants
# ============================================================================

# Minimum number of valid finite (x, y) pairs required before estimating
MIN_VALID_SAMPLES: int = 10

# Minimum number of samples for Silverman's rule (a spread needs two points)
MIN_BANDWIDTH_SAMPLES: int = 2


# ============================================================================
# Grid Constants
# ============================================================================

# Default number of grid points per axis
DEFAULT_GRID_SIZE: int = 30

# Smallest usable grid (two points define an axis)
MIN_GRID_SIZE: int = 2

# Fraction of the data span added on each side of an axis
GRID_PADDING_FRACTION: float = 0.05


# ============================================================================
# Kernel Constants
# ============================================================================

# Silverman's rule of thumb: h = 1.06 * sigma * n^(-1/5)
SILVERMAN_FACTOR: float = 1.06
SILVERMAN_EXPONENT: float = -0.2

# Minimum total kernel weight at a grid cell for a correlation estimate
# Cells below this are reported as null (insufficient local support)
DEFAULT_MIN_WEIGHT: float = 0.1


# ============================================================================
# Bootstrap Constants
# ============================================================================

# Number of bootstrap resamples
DEFAULT_BOOTSTRAP_ITERATIONS: int = 200

# Report progress every N completed iterations
DEFAULT_PROGRESS_EVERY: int = 20

# Minimum number of valid replicates in a cell for a standard error
MIN_BOOTSTRAP_REPLICATES: int = 10

# Standard errors at or below this value saturate the t-statistic
SE_SATURATION_THRESHOLD: float = 0.001

# Magnitude of a saturated t-statistic
SATURATED_T_STAT: float = 10.0


# ============================================================================
# Significance Constants
# ============================================================================

# Default two-sided significance level (|t| > 1.96 under normal approximation)
DEFAULT_SIGNIFICANCE_LEVEL: float = 0.05

# Correlation strength thresholds (absolute value)
STRENGTH_VERY_STRONG: float = 0.9
STRENGTH_STRONG: float = 0.7
STRENGTH_MODERATE: float = 0.5


# ============================================================================
# Cache Constants
# ============================================================================

# Number of fingerprints retained per engine instance
DEFAULT_CACHE_ENTRIES: int = 1


# ============================================================================
# Configuration Security Limits
# ============================================================================

# Maximum YAML configuration file size (1MB)
MAX_YAML_FILE_SIZE: int = 1024 * 1024

# Maximum YAML nesting depth
MAX_YAML_NESTING_DEPTH: int = 10

# Maximum number of keys in YAML mapping
MAX_YAML_KEY_COUNT: int = 1_000


# ============================================================================
# Logging Constants
# ============================================================================

# Default log message format
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Log date format
LOG_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

# Valid log levels accepted by the CLI
VALID_LOG_LEVELS: list = ["DEBUG", "INFO", "WARNING", "ERROR"]
