"""
Decision Engine for domain liveness classification.

This module holds the rules that turn one page fetch attempt into either a
terminal classification or a request to try the next host variant. It is
pure: no I/O, no clocks, no logging.

Rules per attempt:
- HTTP >= 400 (except 403) or no response: provisionally dead; the next
  variant is tried, the last variant finalizes as DEAD
- HTTP 403: ACTIVE when the page has substantial content or matches an
  anti-bot denial signature; otherwise treated like other dead statuses
- success: ACTIVE, unless the final host differs from the requested host,
  in which case REDIRECT (or ACTIVE for same-base-domain redirects when
  similarity ignoring is enabled)
- transport errors: connection failures are dead; certificate errors,
  navigation timeouts and anything unrecognised are inconclusive and
  finalize as ACTIVE without a record
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from .config import CleanerConfig
from .domain_validator import BaseDomainTable, strip_www
from .enums import ErrorKind
from .exceptions import FetchError
from .models import (
    ActiveDomain,
    ClassificationResult,
    DeadDomain,
    DomainCheckTask,
    FetchResult,
    RedirectDomain,
)


ELLIPSIS = "..."

CERTIFICATE_MARKERS = ("ERR_CERT", "SSL", "certificate")
NAVIGATION_TIMEOUT_MARKER = "navigation timeout"
CONNECTION_MARKERS = (
    "ERR_NAME_NOT_RESOLVED",
    "ERR_CONNECTION_REFUSED",
    "ERR_CONNECTION_TIMED_OUT",
    "ERR_CONNECTION_RESET",
    "ERR_ADDRESS_UNREACHABLE",
)
GENERIC_TIMEOUT_MARKERS = ("timeout", "timed out")

BLANK_URLS = frozenset({"", "about:blank"})

INCONCLUSIVE_KINDS = frozenset({
    ErrorKind.CERTIFICATE,
    ErrorKind.NAVIGATION_TIMEOUT,
    ErrorKind.FORCE_CLOSED,
    ErrorKind.UNKNOWN,
})


def truncate_error(message: str, max_length: int = 120) -> str:
    """
    Cap a message at ``max_length`` characters, ellipsis included.

    >>> len(truncate_error("x" * 200, 120))
    120
    """
    if len(message) <= max_length:
        return message
    if max_length <= len(ELLIPSIS):
        return message[:max_length]
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def classify_error_message(message: str) -> ErrorKind:
    """
    Map a human-readable transport error to an ErrorKind.

    Certificate markers are checked first since certificate failures are
    never treated as dead. A navigation timeout is told apart from other
    timeout phrasing.
    """
    if any(marker in message for marker in CERTIFICATE_MARKERS):
        return ErrorKind.CERTIFICATE
    lowered = message.lower()
    if NAVIGATION_TIMEOUT_MARKER in lowered:
        return ErrorKind.NAVIGATION_TIMEOUT
    if any(marker in message for marker in CONNECTION_MARKERS):
        return ErrorKind.CONNECTION
    if any(marker in lowered for marker in GENERIC_TIMEOUT_MARKERS):
        return ErrorKind.CONNECTION
    return ErrorKind.UNKNOWN


def host_of(url: str) -> str:
    """Hostname of a URL with www. stripped; the raw string if unparsable."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        hostname = None
    return strip_www(hostname.lower() if hostname else url)


@dataclass(frozen=True)
class AttemptDecision:
    """
    Outcome of evaluating one variant attempt.

    ``result`` is None when the attempt was provisionally dead and the
    next variant should be tried.
    """

    result: Optional[ClassificationResult]
    reason: str

    @property
    def is_terminal(self) -> bool:
        return self.result is not None


class DecisionEngine:
    """
    Liveness decision rules for a single probing attempt.

    Thresholds and signatures come from the config; the content sniffing
    for 403 pages is empirical and not a guaranteed detector.
    """

    def __init__(self, config: CleanerConfig, table: BaseDomainTable) -> None:
        self._config = config
        self._table = table

    def is_anti_bot_page(self, body: str) -> bool:
        """True when every phrase of any configured signature group is present."""
        return any(
            all(phrase in body for phrase in group)
            for group in self._config.anti_bot_signatures
            if group
        )

    def _provisionally_dead(
        self,
        task: DomainCheckTask,
        reason: str,
        status_code: Optional[int],
        is_last: bool,
    ) -> AttemptDecision:
        if not is_last:
            return AttemptDecision(result=None, reason=reason)
        return AttemptDecision(
            result=DeadDomain(domain=task.original, reason=reason, status_code=status_code),
            reason=reason,
        )

    def evaluate_response(
        self,
        task: DomainCheckTask,
        url: str,
        fetch_result: FetchResult,
        is_last: bool,
    ) -> AttemptDecision:
        """
        Evaluate a navigation that produced a response (or none at all).

        Args:
            task: The task being probed
            url: The URL that was requested
            fetch_result: Status, final URL and body reported by the fetcher
            is_last: Whether this was the last variant of the task

        Returns:
            AttemptDecision, terminal unless the attempt was provisionally dead
        """
        status = fetch_result.status_code

        if status is None:
            return self._provisionally_dead(task, "No response", None, is_last)

        if status == 403:
            body = fetch_result.body or ""
            if (
                len(body) > self._config.forbidden_body_threshold
                and fetch_result.final_url not in BLANK_URLS
            ):
                return AttemptDecision(
                    result=ActiveDomain(task.original, "HTTP 403 with content"),
                    reason="HTTP 403 with content",
                )
            if self.is_anti_bot_page(body):
                return AttemptDecision(
                    result=ActiveDomain(task.original, "HTTP 403 anti-bot page"),
                    reason="HTTP 403 anti-bot page",
                )
            return self._provisionally_dead(task, "HTTP 403", status, is_last)

        if status >= 400:
            return self._provisionally_dead(task, f"HTTP {status}", status, is_last)

        origin = host_of(url)
        final = host_of(fetch_result.final_url)
        if origin == final:
            return AttemptDecision(
                result=ActiveDomain(task.original, f"HTTP {status}"),
                reason=f"HTTP {status}",
            )

        if self._table.is_similar_domain_redirect(origin, final, self._config.ignore_similar):
            reason = f"similar redirect: {final}"
            return AttemptDecision(result=ActiveDomain(task.original, reason), reason=reason)

        return AttemptDecision(
            result=RedirectDomain(
                domain=task.original,
                final_domain=final,
                original_url=url,
                final_url=fetch_result.final_url,
                status_code=status,
            ),
            reason=f"redirects to {final}",
        )

    def evaluate_error(
        self,
        task: DomainCheckTask,
        error: FetchError,
        is_last: bool,
    ) -> AttemptDecision:
        """
        Evaluate a navigation that raised instead of returning a response.

        Connection-class failures are dead; every other kind gives the
        domain the benefit of the doubt.
        """
        reason = truncate_error(error.message, self._config.error_max_length)

        if error.kind in INCONCLUSIVE_KINDS:
            return AttemptDecision(
                result=ActiveDomain(task.original, f"{error.kind.value}: {reason}"),
                reason=reason,
            )

        return self._provisionally_dead(task, reason, None, is_last)
