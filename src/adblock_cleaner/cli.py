"""
Command-line interface for the filter list cleaner.

Reads a filter list, probes every referenced domain, prints a summary,
writes the dead and redirect reports and optionally exports a cleaned
copy of the list.

Exit codes:
- 0: run completed
- 1: input, engine or output failure
- 2: invalid configuration
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, TextIO

from . import __version__
from .audit_logger import AuditLogger
from .config import LOG_CATEGORIES, CleanerConfig, apply_overrides, load_config_from_file
from .decision_engine import DecisionEngine
from .dns_client import DnsVerifier
from .domain_validator import BaseDomainTable, load_base_domain_table
from .enums import ClassificationType, ParseMode
from .exceptions import CleanerError, ConfigError
from .exporter import (
    build_removal_set,
    export_cleaned_list,
    write_dead_domains,
    write_redirect_domains,
)
from .fetcher import PageFetcher, create_fetcher
from .messages import get_message, tag
from .models import DnsResult, RunSummary
from .prober import DomainProber
from .rule_parser import parse_domains, read_lines
from .scheduler import BatchScheduler
from .variants import expand_domains_with_www


def _say(out: TextIO, key: str, **kwargs) -> None:
    print(get_message(key, **kwargs), file=out)


def read_ignore_file(path: Path) -> list[str]:
    """Domains listed in an ignore file; accepts bare hosts and URLs."""
    return parse_domains(read_lines(path), ParseMode.DOMAINS)


def build_config(args: argparse.Namespace) -> CleanerConfig:
    """
    Turn parsed arguments into a validated config.

    Values from --config are loaded first; flags given on the command
    line override them.

    Raises:
        ConfigError: If the input is missing or a value is out of range
        InputFileError: If the ignore file cannot be read
    """
    input_arg = args.input_option or args.input
    input_file = Path(input_arg) if input_arg else None

    if args.config:
        config = load_config_from_file(Path(args.config), input_file)
    elif input_file is None:
        raise ConfigError(
            code="missing_input",
            message="No input file given",
        )
    else:
        config = CleanerConfig(input_file=input_file)

    overrides = {}
    if input_file is not None:
        overrides["input_file"] = str(input_file)

    for name, key in (
        ("mode", "mode"),
        ("add_www", "add_www"),
        ("ignore_similar", "ignore_similar"),
        ("block_resources", "block_resources"),
        ("concurrency", "concurrency"),
        ("timeout", "navigation_timeout_seconds"),
        ("force_close_timeout", "force_close_timeout_seconds"),
        ("engine", "engine"),
        ("dns_check", "dns_check"),
        ("dns_keep_resolving", "dns_keep_resolving"),
        ("test_count", "test_count"),
        ("output_dir", "output_dir"),
        ("suffix_table", "suffix_table_path"),
        ("color", "color"),
    ):
        value = getattr(args, name)
        if value is not None:
            overrides[key] = value

    ignored = list(config.ignored_domains) + list(args.ignore or [])
    if args.ignore_file:
        ignored.extend(read_ignore_file(Path(args.ignore_file)))
    if ignored:
        overrides["ignored_domains"] = ignored

    categories = set(config.logging.categories)
    if args.debug_all:
        categories |= LOG_CATEGORIES
    for category in ("verbose", "network", "browser"):
        if getattr(args, f"debug_{category}"):
            categories.add(category)
    debug = args.debug or bool(categories)

    overrides["logging"] = {
        "level": "debug" if debug else config.logging.level,
        "output_format": args.log_format or config.logging.output_format,
        "categories": sorted(categories),
    }

    return apply_overrides(config, overrides)


def _confirm_export(out: TextIO, in_stream: TextIO) -> bool:
    if not in_stream.isatty():
        return False
    print(get_message("export.prompt"), end="", file=out, flush=True)
    answer = in_stream.readline().strip().lower()
    return answer in ("y", "yes")


def _print_dns_results(out: TextIO, dns_results: dict[str, DnsResult], color: bool) -> None:
    for result in dns_results.values():
        if result.resolves:
            _say(
                out,
                "dns.resolved",
                tag=tag("dns", color),
                domain=result.domain,
                variant=result.variant,
                addresses=", ".join(result.addresses),
            )
        else:
            _say(out, "dns.no_record", tag=tag("dns", color), domain=result.domain)


def _print_summary(out: TextIO, summary: RunSummary) -> None:
    print("", file=out)
    _say(out, "summary.header")
    _say(out, "summary.total", count=summary.total)
    _say(out, "summary.dead", count=len(summary.dead))
    _say(out, "summary.redirect", count=len(summary.redirects))
    _say(out, "summary.active", count=summary.active)
    if summary.ignored:
        _say(out, "cli.ignored_domains", count=summary.ignored)


def _write_reports(
    out: TextIO,
    config: CleanerConfig,
    summary: RunSummary,
    dns_results: Optional[dict[str, DnsResult]],
) -> None:
    color = config.color
    source = str(config.input_file)
    if summary.dead:
        path = write_dead_domains(config.dead_domains_path, summary.dead, source, dns_results)
        _say(out, "summary.dead_written", tag=tag("saved", color), path=path)
        _say(out, "summary.dead_tip", tag=tag("tip", color), count=len(summary.dead))
    else:
        _say(out, "summary.no_dead", tag=tag("ok", color))

    if summary.redirects:
        path = write_redirect_domains(config.redirect_domains_path, summary.redirects, source)
        _say(out, "summary.redirect_written", tag=tag("saved", color), path=path)
        _say(out, "summary.redirect_tip", tag=tag("tip", color), count=len(summary.redirects))
    else:
        _say(out, "summary.no_redirect", tag=tag("ok", color))


def _export(
    out: TextIO,
    config: CleanerConfig,
    summary: RunSummary,
    table: BaseDomainTable,
    dns_results: Optional[dict[str, DnsResult]],
) -> None:
    print("", file=out)
    _say(out, "export.header")
    removal = build_removal_set(
        summary.dead,
        summary.redirects,
        config.ignore_similar,
        table,
        dns_results,
        config.dns_keep_resolving,
    )
    if config.dns_keep_resolving and dns_results:
        still_resolving = sum(
            1 for item in summary.dead
            if item.domain in dns_results and dns_results[item.domain].resolves
        )
        _say(out, "export.dns_kept", count=still_resolving)
    _say(out, "export.removal", count=len(removal))

    stats = export_cleaned_list(config.input_file, removal, mode=config.mode)
    _say(out, "export.written", tag=tag("saved", config.color), path=stats.output_path)
    _say(out, "export.removed", count=stats.removed)
    _say(out, "export.modified", count=stats.modified)
    _say(out, "export.kept", count=stats.kept)


async def run(
    config: CleanerConfig,
    fetcher: Optional[PageFetcher] = None,
    dns_verifier: Optional[DnsVerifier] = None,
    export: Optional[bool] = None,
    logger: Optional[AuditLogger] = None,
    output_stream: Optional[TextIO] = None,
    input_stream: Optional[TextIO] = None,
) -> RunSummary:
    """
    Run one full cleaning pass.

    Args:
        config: Validated configuration
        fetcher: Page fetch adapter (built from the config when omitted)
        dns_verifier: DNS verifier (built from the config when omitted)
        export: True/False to force or skip the export, None to ask
        logger: Structured logger (built from the config when omitted)
        output_stream: Console output (defaults to stdout)
        input_stream: Console input for the export prompt (defaults to stdin)

    Returns:
        The run summary

    Raises:
        InputFileError: If the input list cannot be read
        FetcherStartupError: If the probing engine fails to start
        OutputWriteError: If a report or the cleaned list cannot be written
    """
    out = output_stream or sys.stdout
    in_stream = input_stream or sys.stdin
    logger = logger or AuditLogger.from_config(config.logging)
    color = config.color

    _say(out, "cli.banner")
    print("", file=out)
    _say(out, "cli.input_file", path=config.input_file)
    _say(out, "cli.mode", mode=config.mode.value)
    if config.add_www:
        _say(out, "cli.add_www")
    if config.ignore_similar:
        _say(out, "cli.ignore_similar")

    table = load_base_domain_table(config.suffix_table_path, logger)
    domains = parse_domains(read_lines(config.input_file), config.mode)
    logger.debug(
        "cli",
        "Parsed filter list",
        {"domains": len(domains), "mode": config.mode.value},
        category="verbose",
    )

    if not domains:
        _say(out, "cli.no_domains", path=config.input_file)
        return RunSummary(total=0)

    ignored = [domain for domain in domains if domain in config.ignored_domains]
    domains = [domain for domain in domains if domain not in config.ignored_domains]
    _say(out, "cli.found_domains", count=len(domains))
    if ignored:
        _say(out, "cli.ignored_domains", count=len(ignored))

    if config.test_count is not None and len(domains) > config.test_count:
        _say(out, "cli.test_mode", count=config.test_count, total=len(domains))
        domains = domains[: config.test_count]

    tasks = expand_domains_with_www(domains, config.add_www)
    if config.add_www:
        _say(
            out,
            "cli.expanded",
            checks=sum(len(task.variants) for task in tasks),
            with_www=sum(1 for task in tasks if len(task.variants) > 1),
        )

    fetcher = fetcher or create_fetcher(config, logger)
    async with fetcher:
        _say(out, "cli.engine_started", engine=fetcher.name)
        print("", file=out)
        engine = DecisionEngine(config, table)
        prober = DomainProber(config, fetcher, engine, logger, out)
        scheduler = BatchScheduler(config, prober, fetcher, logger, out)
        results = await scheduler.run(tasks)

    summary = RunSummary(
        total=len(tasks),
        dead=[result for result in results if result.type == ClassificationType.DEAD],
        redirects=[result for result in results if result.type == ClassificationType.REDIRECT],
        ignored=len(ignored),
    )

    dns_results = None
    if config.dns_check and summary.dead:
        verifier = dns_verifier or DnsVerifier(
            timeout=config.dns_timeout_seconds,
            concurrency=config.concurrency,
            logger=logger,
        )
        print("", file=out)
        _say(out, "dns.checking", count=len(summary.dead))
        dns_results = await verifier.verify_all(item.domain for item in summary.dead)
        _print_dns_results(out, dns_results, color)

    _print_summary(out, summary)
    print("", file=out)
    _write_reports(out, config, summary, dns_results)

    if not summary.dead and not summary.redirects:
        return summary

    if export is None:
        print("", file=out)
        export = _confirm_export(out, in_stream)
    if export:
        _export(out, config, summary, table, dns_results)
    else:
        _say(out, "export.skipped")

    return summary


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="adblock-cleaner",
        description="Find dead and redirecting domains in ad-blocking filter lists",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "input",
        nargs="?",
        help="Filter list to check",
    )
    parser.add_argument(
        "--input", "-i",
        dest="input_option",
        help="Filter list to check (alternative to the positional argument)",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to JSON configuration file; flags override its values",
    )

    parsing = parser.add_argument_group("parsing")
    parsing.add_argument(
        "--mode",
        choices=[mode.value for mode in ParseMode],
        help="Parse adblock rule syntax or a plain domain list (default: rules)",
    )
    parsing.add_argument(
        "--ignore",
        action="append",
        metavar="DOMAIN",
        help="Domain to skip entirely (repeatable)",
    )
    parsing.add_argument(
        "--ignore-file",
        metavar="PATH",
        help="File with domains to skip, one per line",
    )
    parsing.add_argument(
        "--test-count",
        type=int,
        metavar="N",
        help="Only check the first N domains",
    )

    probing = parser.add_argument_group("probing")
    probing.add_argument(
        "--add-www",
        action="store_true",
        default=None,
        help="Also try www.<domain> for bare domains",
    )
    probing.add_argument(
        "--ignore-similar",
        action="store_true",
        default=None,
        help="Ignore redirects within the same base domain",
    )
    probing.add_argument(
        "--block-resources",
        dest="block_resources",
        action="store_const",
        const=True,
        default=None,
        help="Block images, stylesheets, fonts and media (default)",
    )
    probing.add_argument(
        "--no-block-resources",
        dest="block_resources",
        action="store_const",
        const=False,
        help="Load every resource type",
    )
    probing.add_argument(
        "--concurrency",
        type=int,
        metavar="N",
        help="Domains checked in parallel, 1-50 (default: 12)",
    )
    probing.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Navigation timeout (default: 25)",
    )
    probing.add_argument(
        "--force-close-timeout",
        type=float,
        metavar="SECONDS",
        help="Hard limit per attempt before the page is force-closed (default: 60)",
    )
    probing.add_argument(
        "--engine",
        choices=["playwright", "httpx"],
        help="Page fetch engine (default: playwright)",
    )
    probing.add_argument(
        "--dns-check",
        action="store_true",
        default=None,
        help="Look up A records of dead domains",
    )
    probing.add_argument(
        "--dns-keep-resolving",
        action="store_true",
        default=None,
        help="Keep dead domains that still resolve in the cleaned list",
    )
    probing.add_argument(
        "--suffix-table",
        metavar="PATH",
        help="JSON file with multi-label public suffixes",
    )

    output = parser.add_argument_group("output")
    output.add_argument(
        "--output-dir",
        metavar="DIR",
        help="Directory for the dead and redirect reports (default: .)",
    )
    output.add_argument(
        "--export",
        dest="export",
        action="store_const",
        const=True,
        default=None,
        help="Write the cleaned filter list without asking",
    )
    output.add_argument(
        "--no-export",
        dest="export",
        action="store_const",
        const=False,
        help="Do not write the cleaned filter list",
    )
    output.add_argument(
        "--color",
        action="store_true",
        default=None,
        help="Colour status tags with ANSI codes",
    )

    debug = parser.add_argument_group("debugging")
    debug.add_argument("--debug", action="store_true", help="Enable debug logging")
    debug.add_argument("--debug-verbose", action="store_true", help="Trace the probing state machine")
    debug.add_argument("--debug-network", action="store_true", help="Log network requests and responses")
    debug.add_argument("--debug-browser", action="store_true", help="Log page lifecycle events")
    debug.add_argument("--debug-all", action="store_true", help="Enable every debug category")
    debug.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Format of log entries on stderr (default: text)",
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigError as e:
        print(get_message("error.fatal", tag=tag("error"), message=e.message), file=sys.stderr)
        return 2
    except CleanerError as e:
        print(get_message("error.fatal", tag=tag("error"), message=e.message), file=sys.stderr)
        return 1

    try:
        asyncio.run(run(config, export=args.export))
    except CleanerError as e:
        print(
            get_message("error.fatal", tag=tag("error", config.color), message=e.message),
            file=sys.stderr,
        )
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
