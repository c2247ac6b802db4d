"""
Domain extraction from ad-blocking filter list lines.

Two top-level modes exist:

- rules: uBlock Origin / Adguard syntax. Grammars are tried in priority
  order and the first one yielding a valid domain wins, so a domain is
  never counted twice from a cosmetic prefix and a coincidental match
  elsewhere on the same line.
- domains: a plain list of host names or URLs, comma separated.
"""

import re
from pathlib import Path
from typing import Iterable

from .domain_validator import is_valid_domain, normalize_domain
from .enums import ParseMode
from .exceptions import InputFileError


# domain.com##.ad, a.com,b.com#@#.ad, x.com#$#css, x.com#%#//scriptlet, x.com#?#sel,
# x.com#@$?#sel, x.com$$script
COSMETIC_PATTERN = re.compile(r"^([^#$]+)(?:#[@$%?]*#|\$\$)")
# Same split, keeping the rule part for rewriting
COSMETIC_SPLIT_PATTERN = re.compile(r"^([^#$]+)((?:#[@$%?]*#|\$\$).*)$", re.DOTALL)
DOMAIN_PARAM_PATTERN = re.compile(r"domain=([^,\s$]+)")
# Wildcards are captured so a partial host is never mistaken for a domain
NETWORK_ANCHOR_PATTERN = re.compile(r"\|\|([a-z0-9.*-]+)", re.IGNORECASE)
UBLOCK_FALLBACK_PATTERN = re.compile(r"^([^#\s]+?)(?:##(?:\+js\()?|#@#|##\^)")

SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)

MIN_CANDIDATE_LENGTH = 4


def is_comment_line(line: str) -> bool:
    """Blank lines and lines starting with '!' or '[' carry no rules."""
    stripped = line.strip()
    return not stripped or stripped.startswith("!") or stripped.startswith("[")


def _accept_candidate(candidate: str) -> bool:
    return (
        "." in candidate
        and len(candidate) >= MIN_CANDIDATE_LENGTH
        and is_valid_domain(candidate)
    )


def _cosmetic_candidates(prefix: str) -> set[str]:
    found = set()
    for raw in prefix.split(","):
        candidate = raw.strip().lstrip(".~")
        if "*" in candidate:
            continue
        candidate = candidate.lower()
        if _accept_candidate(candidate):
            found.add(candidate)
    return found


def _domain_param_candidates(line: str) -> set[str]:
    match = DOMAIN_PARAM_PATTERN.search(line)
    if not match:
        return set()
    found = set()
    for raw in match.group(1).split("|"):
        candidate = raw.strip()
        # Negated entries are exceptions, not targets
        if "*" in candidate or candidate.startswith("~"):
            continue
        candidate = candidate.lstrip(".").lower()
        if _accept_candidate(candidate):
            found.add(candidate)
    return found


def network_anchor_host(line: str) -> str:
    """Return the host after '||', lowercased, or '' when there is none."""
    if "||" not in line:
        return ""
    match = NETWORK_ANCHOR_PATTERN.search(line)
    return match.group(1).lower() if match else ""


def _anchor_candidates(line: str) -> set[str]:
    host = network_anchor_host(line)
    if host and "*" not in host and is_valid_domain(host):
        return {host}
    return set()


def cosmetic_domain_prefix(line: str) -> str:
    """Return the domain list before a cosmetic separator, or ''."""
    match = COSMETIC_PATTERN.match(line)
    return match.group(1) if match else ""


def extract_domains(line: str) -> set[str]:
    """
    Extract the domains a single filter rule targets.

    Grammars, in priority order (first non-empty result wins):
        1. comments and blank lines yield nothing
        2. cosmetic / Adguard prefix before ##, #@#, #$#, #%#, #?#, #@$?#, $$
        3. network rule: domain= values together with the ||host anchor
        4. uBlock cosmetic fallback (##, ##+js(, #@#, ##^)

    Args:
        line: One raw line of a filter list

    Returns:
        Set of lowercase, validated domains
    """
    if is_comment_line(line):
        return set()
    line = line.strip()

    prefix = cosmetic_domain_prefix(line)
    if prefix:
        found = _cosmetic_candidates(prefix)
        if found:
            return found

    found = _domain_param_candidates(line) | _anchor_candidates(line)
    if found:
        return found

    match = UBLOCK_FALLBACK_PATTERN.match(line)
    if match:
        return _cosmetic_candidates(match.group(1))

    return set()


def extract_all_domains(line: str) -> set[str]:
    """
    Union of every rule grammar without short-circuiting.

    Used when rewriting a list, where any referenced domain matters.
    """
    if is_comment_line(line):
        return set()
    line = line.strip()
    found = _domain_param_candidates(line) | _anchor_candidates(line)
    prefix = cosmetic_domain_prefix(line)
    if prefix:
        found |= _cosmetic_candidates(prefix)
    match = UBLOCK_FALLBACK_PATTERN.match(line)
    if match:
        found |= _cosmetic_candidates(match.group(1))
    return found


def is_simple_list_comment(line: str) -> bool:
    stripped = line.strip()
    return (
        not stripped
        or stripped.startswith("#")
        or stripped.startswith("!")
        or stripped.startswith("//")
    )


def extract_domains_simple(line: str) -> set[str]:
    """
    Extract domains from a plain domain list line.

    Each comma separated entry may be a bare host or a URL; scheme, path
    and port are dropped before validation.
    """
    if is_simple_list_comment(line):
        return set()
    found = set()
    for raw in line.strip().split(","):
        candidate = SCHEME_PATTERN.sub("", raw.strip())
        candidate = candidate.split("/", 1)[0]
        candidate = candidate.split(":", 1)[0]
        candidate = normalize_domain(candidate)
        if is_valid_domain(candidate):
            found.add(candidate)
    return found


def extract_for_mode(line: str, mode: ParseMode) -> set[str]:
    if mode == ParseMode.DOMAINS:
        return extract_domains_simple(line)
    return extract_domains(line)


def parse_domains(lines: Iterable[str], mode: ParseMode = ParseMode.RULES) -> list[str]:
    """
    Collect the unique domains of every line, sorted for stable ordering.
    """
    domains: set[str] = set()
    for line in lines:
        domains.update(extract_for_mode(line, mode))
    return sorted(domains)


def read_lines(file_path: Path) -> list[str]:
    """
    Read a filter list as lines without trailing newlines.

    Raises:
        InputFileError: If the file is missing or unreadable
    """
    try:
        with open(file_path, "r", encoding="utf-8", errors="replace") as f:
            return f.read().split("\n")
    except FileNotFoundError as e:
        raise InputFileError(
            code="file_not_found",
            message=f"File not found: {file_path}",
            details={"path": str(file_path)},
        ) from e
    except OSError as e:
        raise InputFileError(
            code="file_unreadable",
            message=f"Error reading input file: {e}",
            details={"path": str(file_path)},
        ) from e


def parse_domains_from_file(file_path: Path, mode: ParseMode = ParseMode.RULES) -> list[str]:
    """Read a filter list and return its unique domains, sorted."""
    return parse_domains(read_lines(file_path), mode)
