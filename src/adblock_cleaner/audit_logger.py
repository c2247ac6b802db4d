"""
Audit Logger module for the filter list cleaner.

Structured log entries are written to stderr as JSON lines, as text lines
or as both. Entries below the configured level are dropped, and entries
tagged with a debug category (verbose state machine tracing, network
events, page lifecycle) are only written when that category is enabled.
Console progress for the user does not go through here; see messages.
"""

import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, TextIO

from .config import LoggingConfig
from .enums import LogLevel


LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARN: 2,
    LogLevel.ERROR: 3,
}

OUTPUT_FORMATS = ("json", "text", "both")


@dataclass
class LogEntry:
    """One emitted log record."""

    timestamp: str
    level: LogLevel
    component: str
    message: str
    data: dict = field(default_factory=dict)
    category: Optional[str] = None

    def to_dict(self) -> dict:
        record = {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "component": self.component,
            "message": self.message,
            "data": self.data,
        }
        if self.category:
            record["category"] = self.category
        return record

    def to_text(self) -> str:
        # [timestamp] LEVEL[/CATEGORY] [component] message {data}
        label = self.level.value.upper()
        if self.category:
            label += f"/{self.category.upper()}"
        line = f"[{self.timestamp}] {label} [{self.component}] {self.message}"
        if self.data:
            line += " " + json.dumps(self.data, ensure_ascii=False, default=str)
        return line


class AuditLogger:
    """
    Structured logger with level and category filtering.

    Every emitted entry is also kept in memory, so a run can be inspected
    after the fact.
    """

    def __init__(
        self,
        output_format: str = "text",
        output_stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        categories: frozenset[str] = frozenset(),
    ):
        """
        Args:
            output_format: 'json', 'text' or 'both'
            output_stream: Destination of log lines (defaults to sys.stderr)
            level: Minimum level that is emitted
            categories: Enabled debug categories ('verbose', 'network', 'browser')
        """
        if output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Invalid output_format: {output_format}")

        self._format = output_format
        self._stream = output_stream or sys.stderr
        self._level = level
        self._categories = frozenset(categories)
        self._emitted: list[LogEntry] = []

    @classmethod
    def from_config(cls, config: LoggingConfig, output_stream: Optional[TextIO] = None) -> "AuditLogger":
        return cls(
            output_format=config.output_format,
            output_stream=output_stream,
            level=LogLevel(config.level),
            categories=config.categories,
        )

    @property
    def output_format(self) -> str:
        return self._format

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._emitted)

    def is_enabled(self, level: LogLevel, category: Optional[str] = None) -> bool:
        if LEVEL_ORDER[level] < LEVEL_ORDER[self._level]:
            return False
        return category is None or category in self._categories

    def log(
        self,
        level: LogLevel,
        component: str,
        message: str,
        data: Optional[dict] = None,
        category: Optional[str] = None,
    ) -> Optional[LogEntry]:
        """
        Emit an entry if its level and category are enabled.

        Returns:
            The emitted LogEntry, or None if it was filtered out
        """
        if not self.is_enabled(level, category):
            return None

        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            component=component,
            message=message,
            data=dict(data or {}),
            category=category,
        )
        self._emitted.append(entry)
        self._write(entry)
        return entry

    def debug(self, component: str, message: str, data: Optional[dict] = None, category: Optional[str] = None):
        return self.log(LogLevel.DEBUG, component, message, data, category)

    def info(self, component: str, message: str, data: Optional[dict] = None):
        return self.log(LogLevel.INFO, component, message, data)

    def warn(self, component: str, message: str, data: Optional[dict] = None):
        return self.log(LogLevel.WARN, component, message, data)

    def log_error(
        self,
        component: str,
        message: str,
        error: Optional[BaseException] = None,
        url: Optional[str] = None,
        extra: Optional[dict] = None,
    ) -> Optional[LogEntry]:
        """
        Log an error together with the exception and the URL involved.

        Args:
            component: Component name generating the log
            message: Human-readable error message
            error: Exception that caused the failure, if any
            url: URL being fetched when the failure happened, if any
            extra: Further context merged into the entry data
        """
        data = dict(extra or {})
        if error is not None:
            data["error_type"] = type(error).__name__
            data["error_message"] = str(error)
        if url is not None:
            data["url"] = url
        return self.log(LogLevel.ERROR, component, message, data)

    def format_json(self, entry: LogEntry) -> str:
        return json.dumps(entry.to_dict(), ensure_ascii=False, default=str)

    def format_text(self, entry: LogEntry) -> str:
        return entry.to_text()

    def _write(self, entry: LogEntry) -> None:
        if self._format in ("json", "both"):
            print(self.format_json(entry), file=self._stream)
        if self._format in ("text", "both"):
            print(self.format_text(entry), file=self._stream)
        self._stream.flush()
