"""Configuration parsing and validation."""

import yaml
import os
import math
from typing import Dict, Any, List, Optional
from pathlib import Path
from local_correlation.core.exceptions import (
    ConfigError,
    YAMLSizeError,
    ConfigValidationError
)
from local_correlation.core.constants import (
    MAX_YAML_FILE_SIZE,
    MAX_YAML_NESTING_DEPTH,
    MAX_YAML_KEY_COUNT,
    DEFAULT_GRID_SIZE,
    MIN_GRID_SIZE,
    DEFAULT_MIN_WEIGHT,
    DEFAULT_BOOTSTRAP_ITERATIONS,
    DEFAULT_PROGRESS_EVERY,
    DEFAULT_CACHE_ENTRIES,
    DEFAULT_SIGNIFICANCE_LEVEL
)


# Top-level key of an engine configuration file
CONFIG_ROOT_KEY = "local_correlation"


class EngineConfig:
    """Configuration for a local correlation engine."""

    # Security limits for YAML files - imported from constants module
    MAX_YAML_FILE_SIZE = MAX_YAML_FILE_SIZE
    MAX_YAML_NESTING_DEPTH = MAX_YAML_NESTING_DEPTH
    MAX_YAML_KEYS = MAX_YAML_KEY_COUNT

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize from configuration dictionary.

        Accepts either a mapping nested under ``local_correlation`` or the
        flat settings mapping itself. Missing keys take their defaults.

        Args:
            config_dict: Configuration dictionary (None for all defaults)

        Raises:
            ConfigError: If the structure is not a mapping
            ConfigValidationError: If a value is out of range
        """
        self.raw_config = config_dict or {}
        self._parse_config()

    @classmethod
    def from_yaml(cls, config_path: str) -> "EngineConfig":
        """
        Load configuration from YAML file with security validations.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            EngineConfig instance

        Raises:
            ConfigError: If file not found or invalid
            YAMLSizeError: If file exceeds size limit
            ConfigValidationError: If YAML structure is too complex
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        file_size = os.path.getsize(config_file)
        if file_size > cls.MAX_YAML_FILE_SIZE:
            raise YAMLSizeError(
                f"Configuration file too large: {file_size:,} bytes. "
                f"Maximum allowed: {cls.MAX_YAML_FILE_SIZE:,} bytes",
                file_size=file_size,
                max_size=cls.MAX_YAML_FILE_SIZE
            )

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                # Use safe_load to prevent code execution
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML file: {str(e)}")
        except UnicodeDecodeError as e:
            raise ConfigError(f"Invalid file encoding (expected UTF-8): {str(e)}")

        if config_dict is not None:
            cls._validate_yaml_structure(config_dict)

        return cls(config_dict)

    @classmethod
    def _validate_yaml_structure(cls, obj: Any, current_depth: int = 0, total_keys: List[int] = None) -> None:
        """
        Validate YAML structure to prevent resource exhaustion.

        Args:
            obj: Object to validate (dict, list, or primitive)
            current_depth: Current nesting depth
            total_keys: Mutable list with single element tracking total key count

        Raises:
            ConfigValidationError: If structure is too complex
        """
        if total_keys is None:
            total_keys = [0]

        if current_depth > cls.MAX_YAML_NESTING_DEPTH:
            raise ConfigValidationError(
                f"YAML nesting depth exceeds maximum of {cls.MAX_YAML_NESTING_DEPTH} levels."
            )

        if isinstance(obj, dict):
            total_keys[0] += len(obj)
            if total_keys[0] > cls.MAX_YAML_KEYS:
                raise ConfigValidationError(
                    f"YAML structure contains more than {cls.MAX_YAML_KEYS:,} keys/items."
                )
            for value in obj.values():
                cls._validate_yaml_structure(value, current_depth + 1, total_keys)

        elif isinstance(obj, list):
            total_keys[0] += len(obj)
            if total_keys[0] > cls.MAX_YAML_KEYS:
                raise ConfigValidationError(
                    f"YAML structure contains more than {cls.MAX_YAML_KEYS:,} keys/items."
                )
            for item in obj:
                cls._validate_yaml_structure(item, current_depth + 1, total_keys)

    def _parse_config(self) -> None:
        """Parse and validate configuration."""
        if not isinstance(self.raw_config, dict):
            raise ConfigError("Configuration must be a mapping")

        settings = self.raw_config.get(CONFIG_ROOT_KEY, self.raw_config)
        if settings is None:
            settings = {}
        if not isinstance(settings, dict):
            raise ConfigError(f"'{CONFIG_ROOT_KEY}' must be a mapping", field=CONFIG_ROOT_KEY)

        self.grid_size: int = self._parse_int(
            settings, "grid_size", DEFAULT_GRID_SIZE, minimum=MIN_GRID_SIZE
        )
        self.bandwidth: Optional[float] = self._parse_bandwidth(settings.get("bandwidth"))
        self.min_weight: float = self._parse_float(
            settings, "min_weight", DEFAULT_MIN_WEIGHT, minimum=0.0
        )
        self.significance_level: float = self._parse_float(
            settings, "significance_level", DEFAULT_SIGNIFICANCE_LEVEL,
            minimum=0.0, maximum=1.0, exclusive=True
        )
        self.cache_entries: int = self._parse_int(
            settings, "cache_entries", DEFAULT_CACHE_ENTRIES, minimum=1
        )

        # Bootstrap options - support both nested and flat structure
        bootstrap = settings.get("bootstrap", {}) or {}
        if not isinstance(bootstrap, dict):
            raise ConfigError("'bootstrap' must be a mapping", field="bootstrap")
        merged = {**settings, **bootstrap}

        self.bootstrap_iterations: int = self._parse_int(
            merged, "iterations", DEFAULT_BOOTSTRAP_ITERATIONS, minimum=1
        )
        self.progress_every: int = self._parse_int(
            merged, "progress_every", DEFAULT_PROGRESS_EVERY, minimum=1
        )
        seed = merged.get("random_seed")
        if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int) or seed < 0):
            raise ConfigValidationError(
                "random_seed must be a non-negative integer or null",
                field="random_seed",
                expected="non-negative integer",
                actual=repr(seed)
            )
        self.random_seed: Optional[int] = seed

    @staticmethod
    def _parse_int(settings: Dict[str, Any], key: str, default: int, minimum: int) -> int:
        value = settings.get(key, default)
        if value is None:
            value = default
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ConfigValidationError(
                f"{key} must be an integer >= {minimum}",
                field=key,
                expected=f"integer >= {minimum}",
                actual=repr(value)
            )
        return value

    @staticmethod
    def _parse_float(
        settings: Dict[str, Any],
        key: str,
        default: float,
        minimum: float,
        maximum: Optional[float] = None,
        exclusive: bool = False
    ) -> float:
        value = settings.get(key, default)
        if value is None:
            value = default
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ConfigValidationError(
                f"{key} must be a finite number",
                field=key,
                expected="finite number",
                actual=repr(value)
            )
        low_ok = value > minimum if exclusive else value >= minimum
        high_ok = maximum is None or (value < maximum if exclusive else value <= maximum)
        if not (low_ok and high_ok):
            bounds = f"({minimum}, {maximum})" if exclusive else f"[{minimum}, {maximum if maximum is not None else 'inf'}]"
            raise ConfigValidationError(
                f"{key} must lie in {bounds}",
                field=key,
                expected=bounds,
                actual=repr(value)
            )
        return float(value)

    @staticmethod
    def _parse_bandwidth(value: Any) -> Optional[float]:
        """Bandwidth is null/absent for Silverman's rule, otherwise a positive number."""
        if value is None:
            return None
        if (isinstance(value, bool) or not isinstance(value, (int, float))
                or not math.isfinite(value) or value <= 0):
            raise ConfigValidationError(
                "bandwidth must be a positive number or null (automatic)",
                field="bandwidth",
                expected="positive number or null",
                actual=repr(value)
            )
        return float(value)

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        """
        Return a new config with the given settings replaced.

        Keys whose value is None are ignored, so CLI options that were not
        given leave the file value in place.
        """
        settings = self.to_dict()
        settings.update({key: value for key, value in overrides.items() if value is not None})
        return EngineConfig(settings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (flat settings form)."""
        return {
            "grid_size": self.grid_size,
            "bandwidth": self.bandwidth,
            "min_weight": self.min_weight,
            "significance_level": self.significance_level,
            "cache_entries": self.cache_entries,
            "iterations": self.bootstrap_iterations,
            "progress_every": self.progress_every,
            "random_seed": self.random_seed,
        }
