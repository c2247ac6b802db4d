"""
Configuration dataclasses for the filter list cleaner.

All tunables live in one immutable CleanerConfig that is passed explicitly
into the scheduler, prober and exporter. Nothing here is process-wide state.
"""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from .enums import FetchEngine, ParseMode
from .exceptions import ConfigError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 50

# Empirical markers of an access-denied page served by an anti-bot edge.
# A body matches when every phrase of one group is present.
DEFAULT_ANTI_BOT_SIGNATURES: tuple[tuple[str, ...], ...] = (
    ("Access Denied", "Reference #"),
    ("errors.edgesuite.net",),
)

LOG_CATEGORIES = frozenset({"verbose", "network", "browser"})
LOG_LEVELS = frozenset({"debug", "info", "warn", "error"})


@dataclass(frozen=True)
class LoggingConfig:
    """Logging and debug output configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'
    categories: frozenset[str] = frozenset()


@dataclass(frozen=True)
class CleanerConfig:
    """Main configuration for one cleaning run."""

    input_file: Path
    mode: ParseMode = ParseMode.RULES
    add_www: bool = False
    ignore_similar: bool = False
    block_resources: bool = True
    concurrency: int = 12
    navigation_timeout_seconds: float = 25.0
    force_close_timeout_seconds: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    engine: FetchEngine = FetchEngine.PLAYWRIGHT
    dns_check: bool = False
    dns_keep_resolving: bool = False
    dns_timeout_seconds: float = 5.0
    test_count: Optional[int] = None
    ignored_domains: frozenset[str] = frozenset()
    output_dir: Path = Path(".")
    dead_domains_file: str = "dead_domains.txt"
    redirect_domains_file: str = "redirect_domains.txt"
    error_max_length: int = 120
    forbidden_body_threshold: int = 500
    anti_bot_signatures: tuple[tuple[str, ...], ...] = DEFAULT_ANTI_BOT_SIGNATURES
    suffix_table_path: Optional[Path] = None
    color: bool = False
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def navigation_timeout_ms(self) -> float:
        return self.navigation_timeout_seconds * 1000

    @property
    def dead_domains_path(self) -> Path:
        return self.output_dir / self.dead_domains_file

    @property
    def redirect_domains_path(self) -> Path:
        return self.output_dir / self.redirect_domains_file

    def validate(self) -> "CleanerConfig":
        """
        Check value ranges.

        Returns:
            self, so calls can be chained

        Raises:
            ConfigError: If any value is out of range
        """
        if not MIN_CONCURRENCY <= self.concurrency <= MAX_CONCURRENCY:
            raise ConfigError(
                code="invalid_concurrency",
                message=(
                    f"Concurrency must be between {MIN_CONCURRENCY} and "
                    f"{MAX_CONCURRENCY}, got {self.concurrency}"
                ),
                details={"concurrency": self.concurrency},
            )
        if self.navigation_timeout_seconds <= 0:
            raise ConfigError(
                code="invalid_timeout",
                message="Navigation timeout must be positive",
                details={"navigation_timeout_seconds": self.navigation_timeout_seconds},
            )
        if self.force_close_timeout_seconds <= self.navigation_timeout_seconds:
            raise ConfigError(
                code="invalid_timeout",
                message="Force-close timeout must be longer than the navigation timeout",
                details={
                    "navigation_timeout_seconds": self.navigation_timeout_seconds,
                    "force_close_timeout_seconds": self.force_close_timeout_seconds,
                },
            )
        if self.dns_timeout_seconds <= 0:
            raise ConfigError(
                code="invalid_timeout",
                message="DNS timeout must be positive",
                details={"dns_timeout_seconds": self.dns_timeout_seconds},
            )
        if self.test_count is not None and self.test_count < 1:
            raise ConfigError(
                code="invalid_test_count",
                message=f"Test count must be at least 1, got {self.test_count}",
                details={"test_count": self.test_count},
            )
        if self.error_max_length < 1:
            raise ConfigError(
                code="invalid_error_max_length",
                message="Error message cap must be at least 1",
                details={"error_max_length": self.error_max_length},
            )
        if self.logging.level not in LOG_LEVELS:
            raise ConfigError(
                code="invalid_log_level",
                message=f"Invalid log level: {self.logging.level}",
                details={"level": self.logging.level},
            )
        if self.logging.output_format not in ("json", "text", "both"):
            raise ConfigError(
                code="invalid_log_format",
                message=f"Invalid log output format: {self.logging.output_format}",
                details={"output_format": self.logging.output_format},
            )
        unknown = set(self.logging.categories) - LOG_CATEGORIES
        if unknown:
            raise ConfigError(
                code="invalid_log_category",
                message=f"Unknown debug categories: {', '.join(sorted(unknown))}",
                details={"categories": sorted(unknown)},
            )
        return self


def load_config_from_file(config_path: Path, input_file: Optional[Path] = None) -> CleanerConfig:
    """
    Load configuration from a JSON file.

    Keys mirror the CleanerConfig field names; unknown keys are rejected.

    Args:
        config_path: Path to the configuration file
        input_file: Input file used when the config does not name one

    Returns:
        Validated CleanerConfig

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(
            code="config_not_found",
            message=f"Config file not found: {config_path}",
            details={"path": str(config_path)},
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(
            code="config_unreadable",
            message=f"Error loading config: {e}",
            details={"path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            code="config_invalid",
            message="Config file must contain a JSON object",
            details={"path": str(config_path)},
        )

    raw_input = data.pop("input_file", None)
    if raw_input is None and input_file is None:
        raise ConfigError(
            code="config_invalid",
            message="No input file given in config or on the command line",
            details={"path": str(config_path)},
        )
    config = CleanerConfig(input_file=Path(raw_input) if raw_input else input_file)
    return apply_overrides(config, data)


def apply_overrides(config: CleanerConfig, overrides: dict) -> CleanerConfig:
    """
    Return a copy of ``config`` with JSON-style overrides applied.

    Raises:
        ConfigError: If a key is unknown or a value has the wrong shape
    """
    converted = {}
    try:
        for key, value in overrides.items():
            if key == "logging":
                logging_data = dict(value)
                if "categories" in logging_data:
                    logging_data["categories"] = frozenset(logging_data["categories"])
                converted[key] = LoggingConfig(**logging_data)
            elif key == "mode":
                converted[key] = ParseMode(value)
            elif key == "engine":
                converted[key] = FetchEngine(value)
            elif key in ("input_file", "output_dir", "suffix_table_path"):
                converted[key] = Path(value) if value is not None else None
            elif key == "ignored_domains":
                converted[key] = frozenset(d.strip().lower() for d in value if d.strip())
            elif key == "anti_bot_signatures":
                converted[key] = tuple(tuple(group) for group in value)
            else:
                converted[key] = value
        return replace(config, **converted).validate()
    except (TypeError, ValueError, AttributeError) as e:
        raise ConfigError(
            code="config_invalid",
            message=f"Invalid configuration value: {e}",
            details={"keys": sorted(overrides)},
        ) from e
