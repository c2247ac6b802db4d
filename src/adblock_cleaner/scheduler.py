"""
Batch scheduler for the domain prober.

Tasks are split into fixed-size batches. All tasks of a batch run
concurrently; the next batch starts only once the whole batch has
resolved. Results land in slots indexed by task position so the output
order matches the submission order regardless of completion order.
"""

import asyncio
import sys
from typing import Iterator, Optional, Sequence, TextIO, TypeVar

from .audit_logger import AuditLogger
from .config import CleanerConfig
from .enums import ClassificationType
from .fetcher import PageFetcher
from .messages import get_message, tag
from .models import ClassificationResult, DomainCheckTask
from .prober import DomainProber


T = TypeVar("T")


def chunk(items: Sequence[T], size: int) -> Iterator[tuple[int, Sequence[T]]]:
    """Yield (start offset, slice) pairs of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield start, items[start:start + size]


def non_active(results: Sequence[ClassificationResult]) -> list[ClassificationResult]:
    """Keep only Dead and Redirect outcomes, in order."""
    return [result for result in results if result.type != ClassificationType.ACTIVE]


class BatchScheduler:
    """Runs the prober over a task list under the configured concurrency."""

    COMPONENT = "BatchScheduler"

    def __init__(
        self,
        config: CleanerConfig,
        prober: DomainProber,
        fetcher: PageFetcher,
        logger: Optional[AuditLogger] = None,
        output_stream: Optional[TextIO] = None,
    ) -> None:
        self._config = config
        self._prober = prober
        self._fetcher = fetcher
        self._logger = logger
        self._out = output_stream or sys.stdout
        self._batches_run = 0

    @property
    def batches_run(self) -> int:
        return self._batches_run

    async def _run_batch(
        self,
        start: int,
        batch: Sequence[DomainCheckTask],
        total: int,
        slots: list[Optional[ClassificationResult]],
    ) -> None:
        async def run_one(offset: int, task: DomainCheckTask) -> None:
            slots[start + offset] = await self._prober.check(task, start + offset, total)

        await asyncio.gather(*(run_one(offset, task) for offset, task in enumerate(batch)))

    async def _sweep(self) -> int:
        lingering = self._fetcher.open_page_count()
        if lingering == 0:
            return 0
        closed = await self._fetcher.close_lingering()
        print(
            get_message("probe.cleanup", tag=tag("cleanup", self._config.color), count=closed),
            file=self._out,
        )
        if self._logger:
            self._logger.debug(self.COMPONENT, "Closed lingering pages", {"count": closed}, category="browser")
        return closed

    async def run(self, tasks: Sequence[DomainCheckTask]) -> list[ClassificationResult]:
        """
        Classify every task.

        Returns:
            One result per task, in task order
        """
        total = len(tasks)
        slots: list[Optional[ClassificationResult]] = [None] * total

        for start, batch in chunk(tasks, self._config.concurrency):
            if self._logger:
                self._logger.debug(
                    self.COMPONENT,
                    f"Starting batch at {start}",
                    {"size": len(batch), "total": total},
                    category="verbose",
                )
            await self._run_batch(start, batch, total, slots)
            self._batches_run += 1
            await self._sweep()

        return [result for result in slots if result is not None]
