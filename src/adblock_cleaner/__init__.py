"""
Adblock Cleaner - find dead and redirecting domains in ad-blocking filter lists.

This package extracts the domains referenced by uBlock Origin / Adguard
rules (or a plain domain list), probes them concurrently through a
headless browser or an HTTP client, and rewrites the list without the
entries whose domains are gone.
"""

__version__ = "0.1.0"
__author__ = "Adblock Cleaner Team"

from adblock_cleaner.exceptions import (
    CleanerError,
    InputFileError,
    ConfigError,
    FetcherStartupError,
    FetchError,
    OutputWriteError,
    SuffixTableError,
)
from adblock_cleaner.enums import (
    ClassificationType,
    ErrorKind,
    FetchEngine,
    LogLevel,
    ParseMode,
)
from adblock_cleaner.config import (
    CleanerConfig,
    LoggingConfig,
    apply_overrides,
    load_config_from_file,
)
from adblock_cleaner.models import (
    ActiveDomain,
    ClassificationResult,
    DeadDomain,
    DnsResult,
    DomainCheckTask,
    ExportStats,
    FetchResult,
    RedirectDomain,
    RunSummary,
)
from adblock_cleaner.domain_validator import (
    BaseDomainTable,
    get_base_domain,
    is_similar_domain_redirect,
    is_valid_domain,
    load_base_domain_table,
    normalize_domain,
)
from adblock_cleaner.rule_parser import (
    extract_all_domains,
    extract_domains,
    extract_domains_simple,
    parse_domains,
    parse_domains_from_file,
)
from adblock_cleaner.variants import (
    expand_domains_with_www,
)
from adblock_cleaner.decision_engine import (
    AttemptDecision,
    DecisionEngine,
    classify_error_message,
    truncate_error,
)
from adblock_cleaner.audit_logger import (
    AuditLogger,
    LogEntry,
)
from adblock_cleaner.fetcher import (
    HttpxFetcher,
    PageFetcher,
    PageHandle,
    PlaywrightFetcher,
    create_fetcher,
)
from adblock_cleaner.prober import (
    DomainProber,
)
from adblock_cleaner.scheduler import (
    BatchScheduler,
    non_active,
)
from adblock_cleaner.dns_client import (
    DnsVerifier,
)
from adblock_cleaner.exporter import (
    build_removal_set,
    export_cleaned_list,
    rewrite_line,
    rewrite_lines,
    write_dead_domains,
    write_redirect_domains,
)
from adblock_cleaner.messages import (
    get_message,
    get_all_message_keys,
)
from adblock_cleaner.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "CleanerError",
    "InputFileError",
    "ConfigError",
    "FetcherStartupError",
    "FetchError",
    "OutputWriteError",
    "SuffixTableError",
    # Enums
    "ClassificationType",
    "ErrorKind",
    "FetchEngine",
    "LogLevel",
    "ParseMode",
    # Configuration
    "CleanerConfig",
    "LoggingConfig",
    "apply_overrides",
    "load_config_from_file",
    # Models
    "ActiveDomain",
    "ClassificationResult",
    "DeadDomain",
    "DnsResult",
    "DomainCheckTask",
    "ExportStats",
    "FetchResult",
    "RedirectDomain",
    "RunSummary",
    # Domain Validator
    "BaseDomainTable",
    "get_base_domain",
    "is_similar_domain_redirect",
    "is_valid_domain",
    "load_base_domain_table",
    "normalize_domain",
    # Rule Parser
    "extract_all_domains",
    "extract_domains",
    "extract_domains_simple",
    "parse_domains",
    "parse_domains_from_file",
    # Variants
    "expand_domains_with_www",
    # Decision Engine
    "AttemptDecision",
    "DecisionEngine",
    "classify_error_message",
    "truncate_error",
    # Audit Logger
    "AuditLogger",
    "LogEntry",
    # Fetchers
    "HttpxFetcher",
    "PageFetcher",
    "PageHandle",
    "PlaywrightFetcher",
    "create_fetcher",
    # Prober / Scheduler
    "DomainProber",
    "BatchScheduler",
    "non_active",
    # DNS
    "DnsVerifier",
    # Exporter
    "build_removal_set",
    "export_cleaned_list",
    "rewrite_line",
    "rewrite_lines",
    "write_dead_domains",
    "write_redirect_domains",
    # Messages
    "get_message",
    "get_all_message_keys",
    # CLI
    "cli_main",
    "create_parser",
]
