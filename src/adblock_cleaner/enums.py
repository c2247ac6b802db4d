"""
Enumeration types for the filter list cleaner.

These enums provide type-safe constants for classifications, error kinds,
and configuration options throughout the system.
"""

from enum import Enum


class ClassificationType(Enum):
    """Terminal outcome of probing one domain."""

    DEAD = "dead"
    REDIRECT = "redirect"
    ACTIVE = "active"


class ErrorKind(Enum):
    """Category of a transport or navigation failure."""

    CERTIFICATE = "certificate"
    NAVIGATION_TIMEOUT = "navigation_timeout"
    CONNECTION = "connection"
    FORCE_CLOSED = "force_closed"
    UNKNOWN = "unknown"


class ParseMode(Enum):
    """Grammar applied to every line of the input file."""

    RULES = "rules"
    DOMAINS = "domains"


class FetchEngine(Enum):
    """Page fetch adapter used for probing."""

    PLAYWRIGHT = "playwright"
    HTTPX = "httpx"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
