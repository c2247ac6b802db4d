"""
Filter list rewriting and report output.

The rewriter removes dead and redirecting domains from a filter list
without breaking rule syntax: domain lists inside ``domain=`` options and
cosmetic prefixes are narrowed, and a rule is dropped only when nothing
it targets is left alive.

Every file produced here is written atomically: the text goes to a
temporary file in the destination directory which then replaces the
target, so a failed run never leaves a half-written report behind.
"""

import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from .domain_validator import BaseDomainTable
from .enums import ParseMode
from .exceptions import OutputWriteError
from .models import DeadDomain, DnsResult, ExportStats, RedirectDomain
from .rule_parser import (
    COSMETIC_PATTERN,
    COSMETIC_SPLIT_PATTERN,
    DOMAIN_PARAM_PATTERN,
    extract_all_domains,
    extract_domains_simple,
    is_comment_line,
    is_simple_list_comment,
    network_anchor_host,
    read_lines,
)


DOMAIN_OPTION_PREFIX = "domain="
REDIRECT_SEPARATOR = "?"

DEAD_REPORT_HEADER = (
    "# Dead/Non-Existent Domains",
    "# These domains don't resolve and should be removed from filter lists",
)
DEAD_REPORT_NOTES = (
    "#",
    "# These domains returned errors:",
    "# - HTTP 404, 410, 5xx (not found/gone/server error)",
    "# - DNS failures (domain doesn't exist)",
    "# - Connection failures (refused/reset/unreachable)",
)
REDIRECT_REPORT_HEADER = (
    "# Redirecting Domains",
    "# These domains redirect to different domains - review for updates",
)
REDIRECT_REPORT_NOTES = (
    "#",
    f"# Format: original_domain {REDIRECT_SEPARATOR} final_domain # final_url",
    "# Note: These domains still work, but redirect elsewhere",
    "# Action: Review if filter rules should be updated",
)


def _entry_key(entry: str) -> str:
    return entry.strip().lstrip(".~").lower()


def _keep_entry(entry: str, removal: frozenset[str]) -> bool:
    key = _entry_key(entry)
    # Wildcards cannot be checked and always survive
    return "*" in key or key not in removal


def build_removal_set(
    dead: Iterable[DeadDomain],
    redirects: Iterable[RedirectDomain],
    ignore_similar: bool,
    table: BaseDomainTable,
    dns_results: Optional[Mapping[str, DnsResult]] = None,
    keep_resolving: bool = False,
) -> frozenset[str]:
    """
    Collect the domains to strip from the filter list.

    Args:
        dead: Dead classifications
        redirects: Redirect classifications
        ignore_similar: Skip redirects that stay within one base domain
        table: Multi-label suffix table for base domain comparison
        dns_results: Optional DNS verification of the dead domains
        keep_resolving: Keep dead domains that still have an A record

    Returns:
        Lowercase domains to remove
    """
    removal = set()
    for item in dead:
        if keep_resolving and dns_results:
            result = dns_results.get(item.domain)
            if result is not None and result.resolves:
                continue
        removal.add(item.domain.lower())

    for item in redirects:
        if table.is_similar_domain_redirect(item.domain, item.final_domain, ignore_similar):
            continue
        removal.add(item.domain.lower())

    return frozenset(removal)


def _strip_domain_option(line: str) -> str:
    """Drop the domain= option from a network rule's $ options."""
    if "$" not in line:
        return line
    head, options = line.rsplit("$", 1)
    remaining = [
        option for option in options.split(",")
        if not option.strip().startswith(DOMAIN_OPTION_PREFIX)
    ]
    if not remaining:
        return head
    return f"{head}${','.join(remaining)}"


def clean_domain_parameter(
    line: str,
    removal: frozenset[str],
    network_domain_dead: bool = False,
) -> Optional[str]:
    """
    Prune the domain= value of a rule.

    Returns:
        The line unchanged, the line with a narrowed (or dropped) domain=
        option, or None when the rule should be deleted
    """
    match = DOMAIN_PARAM_PATTERN.search(line)
    if not match:
        return line

    entries = match.group(1).split("|")
    kept = [entry for entry in entries if _keep_entry(entry, removal)]

    if not kept:
        if network_anchor_host(line) and not network_domain_dead:
            return _strip_domain_option(line)
        return None

    if len(kept) == len(entries):
        return line

    return f"{line[:match.start(1)]}{'|'.join(kept)}{line[match.end(1):]}"


def clean_cosmetic_domains(line: str, removal: frozenset[str]) -> Optional[str]:
    """Prune the domain prefix of a cosmetic rule; None when nothing is left."""
    match = COSMETIC_SPLIT_PATTERN.match(line)
    if not match:
        return line

    prefix, rule = match.group(1), match.group(2)
    entries = [entry.strip() for entry in prefix.split(",")]
    kept = [entry for entry in entries if _keep_entry(entry, removal)]

    if not kept:
        return None
    if len(kept) == len(entries):
        return line
    return ",".join(kept) + rule


def rewrite_line(line: str, removal: frozenset[str], mode: ParseMode = ParseMode.RULES) -> Optional[str]:
    """
    Rewrite one filter list line against the removal set.

    Plain domain lists have no rule syntax to narrow: a line is kept as is
    or deleted when any of its entries is removed.

    Returns:
        The (possibly narrowed) line, or None to delete it
    """
    if mode == ParseMode.DOMAINS:
        if is_simple_list_comment(line) or not extract_domains_simple(line) & removal:
            return line
        return None

    if is_comment_line(line):
        return line

    processed = line
    has_domain_param = DOMAIN_OPTION_PREFIX in line

    if has_domain_param:
        anchor = network_anchor_host(line)
        anchor_dead = bool(anchor) and anchor in removal
        processed = clean_domain_parameter(processed, removal, anchor_dead)
        if processed is None or anchor_dead:
            return None

    if COSMETIC_PATTERN.match(processed):
        processed = clean_cosmetic_domains(processed, removal)
        if processed is None:
            return None

    if not has_domain_param and extract_all_domains(processed) & removal:
        return None

    return processed


def rewrite_lines(
    lines: Sequence[str],
    removal: frozenset[str],
    mode: ParseMode = ParseMode.RULES,
) -> tuple[list[str], ExportStats]:
    """Rewrite every line; counts removed, modified and kept lines."""
    output = []
    stats = ExportStats()
    for line in lines:
        rewritten = rewrite_line(line, removal, mode)
        if rewritten is None:
            stats.removed += 1
            continue
        if rewritten != line:
            stats.modified += 1
        output.append(rewritten)
    stats.kept = len(output)
    return output, stats


def cleaned_output_path(input_path: Path) -> Path:
    """lists/easylist.txt -> lists/easylist_cleaned.txt"""
    input_path = Path(input_path)
    return input_path.with_name(f"{input_path.stem}_cleaned{input_path.suffix}")


def write_atomic(path: Path, text: str) -> Path:
    """
    Write text to path via a temporary sibling file and os.replace.

    Raises:
        OutputWriteError: If the file cannot be written
    """
    path = Path(path)
    tmp_name = None
    try:
        directory = path.parent if str(path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise OutputWriteError(
            code="write_failed",
            message=f"Error writing {path}: {e}",
            details={"path": str(path)},
        ) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
    return path


def export_cleaned_list(
    input_path: Path,
    removal: frozenset[str],
    output_path: Optional[Path] = None,
    mode: ParseMode = ParseMode.RULES,
) -> ExportStats:
    """
    Rewrite a filter list file next to the original.

    Raises:
        InputFileError: If the input cannot be read
        OutputWriteError: If the cleaned list cannot be written
    """
    lines = read_lines(input_path)
    output, stats = rewrite_lines(lines, removal, mode)
    target = Path(output_path) if output_path else cleaned_output_path(input_path)
    stats.output_path = write_atomic(target, "\n".join(output))
    return stats


def _generated_at() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dns_suffix(result: Optional[DnsResult]) -> str:
    if result is None:
        return ""
    if result.resolves:
        return f" | DNS: {result.variant} -> {','.join(result.addresses)}"
    return " | DNS: No A record"


def format_dead_report(
    dead: Sequence[DeadDomain],
    source: str,
    dns_results: Optional[Mapping[str, DnsResult]] = None,
    generated_at: Optional[str] = None,
) -> str:
    lines = [
        *DEAD_REPORT_HEADER,
        f"# Source: {source}",
        f"# Generated: {generated_at or _generated_at()}",
        f"# Total found: {len(dead)}",
        *DEAD_REPORT_NOTES,
        "",
    ]
    for item in dead:
        suffix = _dns_suffix(dns_results.get(item.domain)) if dns_results else ""
        lines.append(f"{item.domain} # {item.reason}{suffix}")
    return "\n".join(lines)


def format_redirect_report(
    redirects: Sequence[RedirectDomain],
    source: str,
    generated_at: Optional[str] = None,
) -> str:
    lines = [
        *REDIRECT_REPORT_HEADER,
        f"# Source: {source}",
        f"# Generated: {generated_at or _generated_at()}",
        f"# Total found: {len(redirects)}",
        *REDIRECT_REPORT_NOTES,
        "",
    ]
    for item in redirects:
        lines.append(f"{item.domain} {REDIRECT_SEPARATOR} {item.final_domain} # {item.final_url}")
    return "\n".join(lines)


def write_dead_domains(
    path: Path,
    dead: Sequence[DeadDomain],
    source: str,
    dns_results: Optional[Mapping[str, DnsResult]] = None,
) -> Path:
    return write_atomic(path, format_dead_report(dead, source, dns_results))


def write_redirect_domains(path: Path, redirects: Sequence[RedirectDomain], source: str) -> Path:
    return write_atomic(path, format_redirect_report(redirects, source))
