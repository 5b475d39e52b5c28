"""
Errors raised by the local correlation engine.

Every engine error derives from LocalCorrelationException and carries a
severity the caller can act on:
    - FATAL: the configuration is unusable, nothing can run
    - CRITICAL: this call's input is degenerate or too small, nothing is computed
    - RECOVERABLE: the call may succeed with other parameters
    - WARNING: work stopped on request (cancellation)

A null grid cell is ordinary output ("not enough local support") and is
never reported through an exception.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """How far an error reaches."""
    FATAL = "fatal"
    CRITICAL = "critical"
    RECOVERABLE = "recoverable"
    WARNING = "warning"


class LocalCorrelationException(Exception):
    """
    Base class of engine errors.

    Attributes:
        message (str): Human-readable description
        severity (ErrorSeverity): How far the error reaches
        details (Dict[str, Any]): Structured context (axis, counts, parameter)
        original_exception (Optional[Exception]): Wrapped lower-level error

    Example:
        >>> try:
        ...     result = compute_local_correlation(x, y)
        ... except LocalCorrelationException as e:
        ...     logger.warning(e.to_dict())
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.RECOVERABLE,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.details = details or {}
        self.original_exception = original_exception

    def to_dict(self) -> Dict[str, Any]:
        """
        Structured form for logs and JSON output.

        Example:
            >>> InsufficientDataError(valid_count=4, min_required=10).to_dict()['details']
            {'valid_count': 4, 'min_required': 10}
        """
        return {
            'type': type(self).__name__,
            'message': self.message,
            'severity': self.severity.value,
            'details': self.details,
            'original_error': None if self.original_exception is None else str(self.original_exception)
        }


# ============================================================================
# Configuration Errors (Fatal)
# ============================================================================

class ConfigError(LocalCorrelationException):
    """
    Engine configuration cannot be used.

    Raised for a missing or unparsable YAML file and for a configuration
    that is not a mapping.

    Attributes:
        field (Optional[str]): Setting that was rejected, when known
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            severity=ErrorSeverity.FATAL,
            details={} if field is None else {'field': field}
        )
        self.field = field


class YAMLSizeError(ConfigError):
    """Configuration file larger than the accepted maximum."""

    def __init__(self, message: str, file_size: Optional[int] = None, max_size: Optional[int] = None):
        super().__init__(message)
        self.details['file_size'] = file_size
        self.details['max_size'] = max_size


class ConfigValidationError(ConfigError):
    """
    A setting is out of range, of the wrong type, or the YAML is too complex.

    Example:
        >>> raise ConfigValidationError(
        ...     "grid_size must be an integer >= 2",
        ...     field="grid_size",
        ...     expected="integer >= 2",
        ...     actual="1"
        ... )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[str] = None
    ):
        super().__init__(message, field)
        self.details['expected'] = expected
        self.details['actual'] = actual


# ============================================================================
# Estimation Errors (Critical)
# ============================================================================

class EstimationError(LocalCorrelationException):
    """
    Base class for input problems that make an estimate meaningless.

    The engine refuses to compute rather than emit a misleading grid.
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            details=details,
            original_exception=original_exception
        )


class InvalidInputError(EstimationError):
    """
    Malformed engine input (mismatched lengths, non-finite samples, bad shapes).

    Example:
        >>> raise InvalidInputError(
        ...     "x and y must have the same length",
        ...     parameter="y_data",
        ...     value=12
        ... )
    """

    def __init__(self, message: str, parameter: Optional[str] = None, value: Any = None):
        """
        Initialize invalid input error.

        Args:
            message: Error description
            parameter: Argument that was rejected
            value: Offending value (or a short description of it)
        """
        super().__init__(message, details={'parameter': parameter, 'value': value})
        self.parameter = parameter
        self.value = value


class InsufficientDataError(EstimationError):
    """
    Fewer valid finite sample pairs than the estimator requires.

    Example:
        >>> raise InsufficientDataError(valid_count=7, min_required=10)
    """

    def __init__(self, valid_count: int, min_required: int):
        """
        Initialize insufficient data error.

        Args:
            valid_count: Number of valid pairs available
            min_required: Number of pairs required
        """
        super().__init__(
            f"Need at least {min_required} valid data points for local correlation "
            f"analysis, got {valid_count}",
            details={'valid_count': valid_count, 'min_required': min_required}
        )
        self.valid_count = valid_count
        self.min_required = min_required


class DegenerateBandwidthError(EstimationError):
    """
    Selected or supplied bandwidth is not strictly positive.

    Raised before any kernel evaluation when the bandwidth is <= 0 or not
    finite, when an axis has fewer than two samples, or when an axis has
    zero variance.

    Example:
        >>> raise DegenerateBandwidthError(
        ...     "Axis 'y' has zero variance",
        ...     axis="y",
        ...     bandwidth=0.0
        ... )
    """

    def __init__(self, message: str, axis: Optional[str] = None, bandwidth: Optional[float] = None):
        """
        Initialize degenerate bandwidth error.

        Args:
            message: Error description
            axis: Axis name ('x', 'y') or None for an override applied to both
            bandwidth: Offending bandwidth value, if one was computed or supplied
        """
        super().__init__(message, details={'axis': axis, 'bandwidth': bandwidth})
        self.axis = axis
        self.bandwidth = bandwidth


class DegenerateAxisError(DegenerateBandwidthError):
    """
    An axis has zero span, so no evaluation grid can be laid over it.

    A zero-span axis also has zero variance, so this is caught by handlers
    for DegenerateBandwidthError.

    Example:
        >>> raise DegenerateAxisError(axis="x", value=3.0)
    """

    def __init__(self, axis: str, value: float):
        """
        Initialize degenerate axis error.

        Args:
            axis: Axis name
            value: The single value every sample takes on this axis
        """
        super().__init__(
            f"Axis '{axis}' is constant (every value is {value}); "
            f"cannot build an evaluation grid over a zero-width range",
            axis=axis,
            bandwidth=0.0
        )
        self.details["value"] = value
        self.value = value


# ============================================================================
# Bootstrap Errors
# ============================================================================

class BootstrapCancelledError(LocalCorrelationException):
    """
    Bootstrap run stopped early because its cancellation token was set.

    Example:
        >>> raise BootstrapCancelledError(completed_iterations=40, requested_iterations=200)
    """

    def __init__(self, completed_iterations: int, requested_iterations: int):
        """
        Initialize bootstrap cancellation error.

        Args:
            completed_iterations: Iterations finished before cancellation
            requested_iterations: Iterations originally requested
        """
        super().__init__(
            f"Bootstrap cancelled after {completed_iterations} of "
            f"{requested_iterations} iterations",
            severity=ErrorSeverity.WARNING,
            details={
                'completed_iterations': completed_iterations,
                'requested_iterations': requested_iterations
            }
        )
        self.completed_iterations = completed_iterations
        self.requested_iterations = requested_iterations
