"""
Domain validation and base-domain logic.

Provides the syntactic validity predicate used by every parser grammar,
normalization of raw tokens, and a heuristic registrable-domain lookup
backed by a table of multi-label public suffixes.

The base-domain lookup is an approximation of the public suffix algorithm:
only 2- and 3-label suffixes are consulted, so 4+-label public suffixes
are not supported.
"""

import json
import re
from pathlib import Path
from typing import Iterable, Optional

import idna

from .exceptions import SuffixTableError


IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
DOMAIN_CHARS_PATTERN = re.compile(r"^[a-z0-9.-]+$")

FALLBACK_SUFFIXES = frozenset({"co.uk", "com.au", "com.br", "co.nz", "co.za"})

DEFAULT_SUFFIX_TABLE_PATH = Path(__file__).resolve().parent / "data" / "multi_label_suffixes.json"


def is_valid_domain(token: str) -> bool:
    """
    Check whether a token is a syntactically usable domain.

    Rejects empty tokens, tokens without a dot, anything containing ':',
    .onion hosts, IPv4 literals and characters outside [a-z0-9.-].
    """
    if not token or "." not in token or ":" in token:
        return False
    lowered = token.lower()
    if lowered.endswith(".onion"):
        return False
    if IPV4_PATTERN.match(lowered):
        return False
    return bool(DOMAIN_CHARS_PATTERN.match(lowered))


def normalize_domain(raw: str) -> str:
    """
    Convert a raw token to lowercase, IDNA-encoding international names.

    Falls back to the lowercased token when IDNA encoding fails; such a
    token is then rejected by is_valid_domain.
    """
    domain = raw.strip().lower()
    if any(ord(c) > 127 for c in domain):
        try:
            return idna.encode(domain, uts46=True).decode("ascii")
        except idna.IDNAError:
            return domain
    return domain


def strip_www(domain: str) -> str:
    return domain[4:] if domain.startswith("www.") else domain


class BaseDomainTable:
    """
    Read-only set of known multi-label public suffixes (e.g. co.uk).

    Loaded once at startup; lookups need no locking.
    """

    def __init__(self, suffixes: Iterable[str]) -> None:
        self._suffixes = frozenset(s.strip().lower() for s in suffixes if s.strip())

    @classmethod
    def from_file(cls, path: Path) -> "BaseDomainTable":
        """
        Load a table from a JSON document {"multi_label_suffixes": [...]}.

        Raises:
            SuffixTableError: If the file is missing or malformed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            suffixes = data["multi_label_suffixes"]
            if not isinstance(suffixes, list):
                raise TypeError("multi_label_suffixes must be a list")
        except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise SuffixTableError(
                code="suffix_table_unavailable",
                message=f"Could not load multi-label suffix table: {e}",
                details={"path": str(path)},
            ) from e
        return cls(suffixes)

    @classmethod
    def fallback(cls) -> "BaseDomainTable":
        return cls(FALLBACK_SUFFIXES)

    def __contains__(self, suffix: str) -> bool:
        return suffix in self._suffixes

    def __len__(self) -> int:
        return len(self._suffixes)

    def get_base_domain(self, domain: str) -> str:
        """
        Return the registrable base of a host name.

        Examples:
            shop.example.co.uk -> example.co.uk (co.uk in table)
            a.b.example.com    -> example.com
        """
        stripped = strip_www(domain)
        # www.com and www.co.uk are names in their own right
        if "." in stripped and stripped not in self._suffixes:
            domain = stripped
        parts = domain.split(".")
        if len(parts) <= 2:
            return domain

        # Longest suffix first
        for suffix_labels in (3, 2):
            if len(parts) > suffix_labels:
                suffix = ".".join(parts[-suffix_labels:])
                if suffix in self._suffixes:
                    return ".".join(parts[-(suffix_labels + 1):])

        return ".".join(parts[-2:])

    def is_similar_domain_redirect(self, original: str, final: str, enabled: bool) -> bool:
        """True when the feature is enabled and both hosts share a base domain."""
        if not enabled:
            return False
        return self.get_base_domain(original) == self.get_base_domain(final)


def get_base_domain(domain: str, table: Optional[BaseDomainTable] = None) -> str:
    return (table or BaseDomainTable.fallback()).get_base_domain(domain)


def is_similar_domain_redirect(
    original: str,
    final: str,
    enabled: bool,
    table: Optional[BaseDomainTable] = None,
) -> bool:
    return (table or BaseDomainTable.fallback()).is_similar_domain_redirect(
        original, final, enabled
    )


def load_base_domain_table(path: Optional[Path] = None, logger=None) -> BaseDomainTable:
    """
    Load the suffix table, falling back to a small built-in set.

    A load failure is logged as a warning and never raised.
    """
    table_path = path or DEFAULT_SUFFIX_TABLE_PATH
    try:
        return BaseDomainTable.from_file(table_path)
    except SuffixTableError as e:
        if logger is not None:
            logger.warn(
                "DomainValidator",
                f"{e.message}; using built-in fallback",
                {"path": str(table_path), "fallback": sorted(FALLBACK_SUFFIXES)},
            )
        return BaseDomainTable.fallback()
