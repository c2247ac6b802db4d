"""
Console message catalogue for the filter list cleaner.

All user-facing progress lines are looked up by key and formatted with
keyword arguments. Status tags such as [DEAD] or [OK] are optionally
wrapped in ANSI colour codes.
"""


ANSI_COLORS = {
    "reset": "\x1b[0m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "cyan": "\x1b[36m",
    "gray": "\x1b[90m",
    "bright_cyan": "\x1b[96m",
}

# tag name -> (label, colour)
TAGS: dict[str, tuple[str, str]] = {
    "ok": ("OK", "green"),
    "dead": ("DEAD", "red"),
    "redirect": ("REDIRECT", "yellow"),
    "error": ("ERROR", "red"),
    "retry": ("RETRY", "cyan"),
    "timeout": ("TIMEOUT", "red"),
    "cleanup": ("CLEANUP", "gray"),
    "tip": ("TIP", "bright_cyan"),
    "saved": ("SAVED", "green"),
    "dns": ("DNS", "blue"),
    "403": ("403", "yellow"),
}


MESSAGES: dict[str, str] = {
    # Startup
    "cli.banner": "=== Adblock Filter List Cleaner ===",
    "cli.input_file": "Input file: {path}",
    "cli.mode": "Parsing mode: {mode}",
    "cli.add_www": "--add-www enabled: checking both domain.com and www.domain.com for bare domains",
    "cli.ignore_similar": "--ignore-similar enabled: redirects within the same base domain are ignored",
    "cli.found_domains": "Found {count} unique domains to check",
    "cli.ignored_domains": "Skipping {count} ignored domain(s)",
    "cli.test_mode": "TEST MODE: limiting to first {count} domains (from {total} total)",
    "cli.expanded": "Expanded to {checks} total checks ({with_www} domains will try www variant)",
    "cli.engine_started": "{engine} engine started. Starting domain checks...",
    "cli.no_domains": "No domains found in {path}",

    # Probing progress
    "probe.checking": "[{index}/{total}] Checking {domain}...",
    "probe.checking_www": "[{index}/{total}] Checking {domain}... (with www fallback)",
    "probe.trying_next": "  {tag} {variant} - {reason}, trying next...",
    "probe.dead": "  {tag} {domain} - {reason}{variant_label}",
    "probe.redirect": "  {tag} {domain} - Redirects to {final_domain}{variant_label}",
    "probe.active": "  {tag} {domain} - Active ({detail}){variant_label}",
    "probe.force_close": "  {tag} Force-closing {variant} after {seconds:g}s timeout",
    "probe.cleanup": "  {tag} Found {count} lingering page(s), closed",

    # DNS
    "dns.checking": "Verifying {count} dead domain(s) via DNS...",
    "dns.resolved": "  {tag} {domain} -> {variant}: {addresses}",
    "dns.no_record": "  {tag} {domain}: No A record",

    # Summary
    "summary.header": "=== Summary ===",
    "summary.total": "Total domains checked: {count}",
    "summary.dead": "Dead/non-existent: {count}",
    "summary.redirect": "Redirecting: {count}",
    "summary.active": "Active (no issues): {count}",
    "summary.no_dead": "{tag} No dead domains found",
    "summary.no_redirect": "{tag} No redirecting domains found",
    "summary.dead_written": "{tag} Dead domains written to {path}",
    "summary.redirect_written": "{tag} Redirect domains written to {path}",
    "summary.dead_tip": "{tag} Remove these {count} dead domains from your filter list",
    "summary.redirect_tip": "{tag} Review these {count} redirecting domains - they may need rule updates",

    # Export
    "export.header": "=== Exporting Cleaned Filter List ===",
    "export.prompt": "Export cleaned filter list? [y/N] ",
    "export.removal": "Total domains to remove: {count}",
    "export.dns_kept": "Keeping {count} dead domain(s) that still resolve",
    "export.written": "{tag} Cleaned filter list: {path}",
    "export.removed": "  Removed: {count} lines",
    "export.modified": "  Modified: {count} lines",
    "export.kept": "  Kept: {count} lines",
    "export.skipped": "Skipping export of cleaned filter list",

    # Errors
    "error.fatal": "{tag} {message}",
}


def colorize(text: str, color: str, enabled: bool) -> str:
    if not enabled:
        return text
    return f"{ANSI_COLORS[color]}{text}{ANSI_COLORS['reset']}"


def tag(name: str, color: bool = False) -> str:
    """Return a bracketed status tag such as [DEAD], coloured if requested."""
    label, tag_color = TAGS[name]
    return colorize(f"[{label}]", tag_color, color)


def get_message(key: str, **kwargs) -> str:
    """
    Get a formatted console message.

    Unknown keys are returned as-is; formatting errors leave the template
    unformatted.
    """
    message = MESSAGES.get(key)
    if message is None:
        return key

    if kwargs:
        try:
            message = message.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            pass

    return message


def get_all_message_keys() -> set[str]:
    return set(MESSAGES.keys())
