"""
Domain prober.

Runs the per-domain state machine: each variant of a DomainCheckTask is
fetched in order on its own page until the DecisionEngine returns a
terminal classification. Every attempt runs under a force-close timer
that is independent of the navigation timeout, and its page is closed on
every exit path.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from typing import Optional, TextIO

from .audit_logger import AuditLogger
from .config import CleanerConfig
from .decision_engine import AttemptDecision, DecisionEngine
from .enums import ClassificationType, ErrorKind
from .exceptions import FetchError
from .fetcher import PageFetcher
from .messages import get_message, tag
from .models import ClassificationResult, DeadDomain, DomainCheckTask


@dataclass
class ProbeState:
    """Loop state for one task."""

    index: int = 0
    reasons: list[str] = field(default_factory=list)


class DomainProber:
    """Classifies one DomainCheckTask at a time."""

    COMPONENT = "DomainProber"

    def __init__(
        self,
        config: CleanerConfig,
        fetcher: PageFetcher,
        engine: DecisionEngine,
        logger: Optional[AuditLogger] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        self._config = config
        self._fetcher = fetcher
        self._engine = engine
        self._logger = logger
        self._out = output_stream or sys.stdout
        self._color = config.color

    def _print(self, key: str, **kwargs) -> None:
        print(get_message(key, **kwargs), file=self._out)

    def _verbose(self, message: str, data: Optional[dict] = None) -> None:
        if self._logger:
            self._logger.debug(self.COMPONENT, message, data, category="verbose")

    async def _attempt(self, task: DomainCheckTask, variant: str, is_last: bool) -> AttemptDecision:
        url = f"https://{variant}"
        page = await self._fetcher.new_page()
        try:
            self._verbose(f"Attempting to navigate to: {url}", {"timeout_ms": self._config.navigation_timeout_ms})
            try:
                fetch_result = await asyncio.wait_for(
                    page.navigate(url, self._config.navigation_timeout_ms),
                    timeout=self._config.force_close_timeout_seconds,
                )
            except asyncio.TimeoutError:
                self._print(
                    "probe.force_close",
                    tag=tag("timeout", self._color),
                    variant=variant,
                    seconds=self._config.force_close_timeout_seconds,
                )
                await page.close()
                return self._engine.evaluate_error(
                    task,
                    FetchError(
                        f"Force-closed after {self._config.force_close_timeout_seconds:g}s",
                        ErrorKind.FORCE_CLOSED,
                        {"url": url},
                    ),
                    is_last,
                )
            except FetchError as e:
                self._verbose(f"Error caught for {variant}: {e.message}", {"kind": e.kind.value})
                return self._engine.evaluate_error(task, e, is_last)

            self._verbose(
                f"Navigation completed for {variant}",
                {"status": fetch_result.status_code, "final_url": fetch_result.final_url},
            )
            return self._engine.evaluate_response(task, url, fetch_result, is_last)
        finally:
            await page.close()

    def _report(self, task: DomainCheckTask, variant: str, result: ClassificationResult) -> None:
        variant_label = "" if variant == task.original else f" (via {variant})"
        if result.type == ClassificationType.DEAD:
            self._print(
                "probe.dead",
                tag=tag("dead", self._color),
                domain=task.original,
                reason=result.reason,
                variant_label=variant_label,
            )
        elif result.type == ClassificationType.REDIRECT:
            self._print(
                "probe.redirect",
                tag=tag("redirect", self._color),
                domain=task.original,
                final_domain=result.final_domain,
                variant_label=variant_label,
            )
        else:
            self._print(
                "probe.active",
                tag=tag("403" if result.detail.startswith("HTTP 403") else "ok", self._color),
                domain=task.original,
                detail=result.detail,
                variant_label=variant_label,
            )

    async def check(self, task: DomainCheckTask, index: int = 0, total: int = 1) -> ClassificationResult:
        """
        Classify one task.

        Args:
            task: Domain and its ordered variants
            index: Zero-based position, for progress output
            total: Number of tasks in the run, for progress output

        Returns:
            The first terminal classification among the variants
        """
        key = "probe.checking_www" if len(task.variants) > 1 else "probe.checking"
        self._print(key, index=index + 1, total=total, domain=task.original)
        self._verbose(f"Variants to check: {', '.join(task.variants)}")

        state = ProbeState()
        while state.index < len(task.variants):
            variant = task.variants[state.index]
            is_last = state.index == len(task.variants) - 1
            decision = await self._attempt(task, variant, is_last)

            if decision.is_terminal:
                self._report(task, variant, decision.result)
                return decision.result

            state.reasons.append(decision.reason)
            self._print(
                "probe.trying_next",
                tag=tag("retry", self._color),
                variant=variant,
                reason=decision.reason,
            )
            state.index += 1

        # Only reachable for a task without variants
        reason = "; ".join(state.reasons) or "All variants failed"
        return DeadDomain(domain=task.original, reason=reason)
