"""
Data models for the filter list cleaner.

This module defines the probing unit of work, the fetch and DNS outcomes
reported by the adapters, and the classification results consumed by
the exporter.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .enums import ClassificationType


@dataclass(frozen=True)
class DomainCheckTask:
    """One original domain and the ordered host variants to probe for it."""

    original: str
    variants: tuple[str, ...]  # original first


@dataclass(frozen=True)
class FetchResult:
    """What a page fetch adapter reports for a completed navigation."""

    status_code: Optional[int]
    final_url: str
    body: str = ""


@dataclass(frozen=True)
class DeadDomain:
    """A domain that failed on every variant."""

    domain: str
    reason: str
    status_code: Optional[int] = None

    @property
    def type(self) -> ClassificationType:
        return ClassificationType.DEAD


@dataclass(frozen=True)
class RedirectDomain:
    """A domain whose page ended up on a different host."""

    domain: str
    final_domain: str
    original_url: str
    final_url: str
    status_code: Optional[int] = None

    @property
    def type(self) -> ClassificationType:
        return ClassificationType.REDIRECT


@dataclass(frozen=True)
class ActiveDomain:
    """A live domain. Never written to any report."""

    domain: str
    detail: str = ""

    @property
    def type(self) -> ClassificationType:
        return ClassificationType.ACTIVE


ClassificationResult = Union[DeadDomain, RedirectDomain, ActiveDomain]


@dataclass(frozen=True)
class DnsResult:
    """A-record lookup outcome for one domain."""

    domain: str
    variant: Optional[str] = None  # host that answered, if any
    addresses: tuple[str, ...] = ()

    @property
    def resolves(self) -> bool:
        return bool(self.addresses)


@dataclass
class ExportStats:
    """Counts reported after rewriting a filter list."""

    output_path: Optional[Path] = None
    removed: int = 0
    modified: int = 0
    kept: int = 0


@dataclass
class RunSummary:
    """Totals printed at the end of a run, before any file is written."""

    total: int
    dead: list[DeadDomain] = field(default_factory=list)
    redirects: list[RedirectDomain] = field(default_factory=list)
    ignored: int = 0

    @property
    def active(self) -> int:
        return self.total - len(self.dead) - len(self.redirects)
