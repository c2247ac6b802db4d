"""
Property-based tests for the batch scheduler.

Verifies result ordering, the concurrency bound, batch sequencing and the
post-batch leak sweep.
"""

import asyncio
from io import StringIO
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from adblock_cleaner.config import CleanerConfig
from adblock_cleaner.decision_engine import DecisionEngine
from adblock_cleaner.domain_validator import BaseDomainTable
from adblock_cleaner.enums import ClassificationType
from adblock_cleaner.models import ActiveDomain, DeadDomain, DomainCheckTask, RedirectDomain
from adblock_cleaner.prober import DomainProber
from adblock_cleaner.scheduler import BatchScheduler, chunk, non_active

from fakes import FakeFetcher, ok


def build(fetcher: FakeFetcher, concurrency: int) -> tuple[BatchScheduler, StringIO]:
    config = CleanerConfig(input_file=Path("list.txt"), concurrency=concurrency)
    out = StringIO()
    prober = DomainProber(config, fetcher, DecisionEngine(config, BaseDomainTable.fallback()), output_stream=out)
    return BatchScheduler(config, prober, fetcher, output_stream=out), out


def domains_strategy() -> st.SearchStrategy[list[str]]:
    return st.lists(
        st.integers(min_value=0, max_value=999).map(lambda n: f"site{n}.example"),
        min_size=1,
        max_size=12,
        unique=True,
    )


class TestOrderPreservationProperty:
    """
    **Property 1: Results follow task order regardless of completion order**
    """

    @given(
        domains=domains_strategy(),
        delays=st.lists(st.sampled_from([0, 0.001, 0.003, 0.005]), min_size=12, max_size=12),
        concurrency=st.integers(min_value=1, max_value=5),
        alive=st.lists(st.booleans(), min_size=12, max_size=12),
    )
    @settings(max_examples=30, deadline=None)
    def test_results_match_task_order(
        self, domains: list[str], delays: list[float], concurrency: int, alive: list[bool]
    ) -> None:
        """
        Property 1: *For any* task list with shuffled per-task latency, the
        i-th result belongs to the i-th task.
        """
        outcomes = {}
        delay_map = {}
        for i, domain in enumerate(domains):
            url = f"https://{domain}"
            delay_map[url] = delays[i]
            if alive[i]:
                outcomes[url] = ok(url + "/")
        fetcher = FakeFetcher(outcomes, delay_map)
        scheduler, _ = build(fetcher, concurrency)
        tasks = [DomainCheckTask(domain, (domain,)) for domain in domains]

        results = asyncio.run(scheduler.run(tasks))

        assert [result.domain for result in results] == domains
        for i, result in enumerate(results):
            expected = ClassificationType.ACTIVE if alive[i] else ClassificationType.DEAD
            assert result.type == expected


class TestConcurrencyBoundProperty:
    """
    **Property 2: No more than `concurrency` pages are open at once**
    """

    @given(domains=domains_strategy(), concurrency=st.integers(min_value=1, max_value=4))
    @settings(max_examples=30, deadline=None)
    def test_open_pages_bounded(self, domains: list[str], concurrency: int) -> None:
        outcomes = {f"https://{d}": ok(f"https://{d}/") for d in domains}
        delays = {f"https://{d}": 0.002 for d in domains}
        fetcher = FakeFetcher(outcomes, delays)
        scheduler, _ = build(fetcher, concurrency)

        asyncio.run(scheduler.run([DomainCheckTask(d, (d,)) for d in domains]))

        assert fetcher.max_open <= concurrency
        assert fetcher.open_page_count() == 0

    @given(count=st.integers(min_value=0, max_value=20), concurrency=st.integers(min_value=1, max_value=6))
    @settings(max_examples=50, deadline=None)
    def test_batch_count(self, count: int, concurrency: int) -> None:
        domains = [f"site{n}.example" for n in range(count)]
        fetcher = FakeFetcher({f"https://{d}": ok(f"https://{d}/") for d in domains})
        scheduler, _ = build(fetcher, concurrency)

        asyncio.run(scheduler.run([DomainCheckTask(d, (d,)) for d in domains]))

        assert scheduler.batches_run == -(-count // concurrency)

    def test_batches_are_sequential(self) -> None:
        """The second batch starts only after the slow first batch resolves."""
        domains = ["a.example", "b.example", "c.example"]
        fetcher = FakeFetcher(
            {f"https://{d}": ok(f"https://{d}/") for d in domains},
            {"https://a.example": 0.02},
        )
        scheduler, _ = build(fetcher, 2)

        asyncio.run(scheduler.run([DomainCheckTask(d, (d,)) for d in domains]))

        assert fetcher.navigations[-1] == "https://c.example"


class LeakyProber:
    """Opens a page per task and never closes it."""

    def __init__(self, fetcher: FakeFetcher) -> None:
        self._fetcher = fetcher

    async def check(self, task: DomainCheckTask, index: int = 0, total: int = 1):
        page = await self._fetcher.new_page()
        page.current_url = f"https://{task.original}"
        return ActiveDomain(domain=task.original)


class TestLeakSweepProperty:
    """
    **Property 3: Pages left open after a batch are force-closed**
    """

    @given(count=st.integers(min_value=1, max_value=10), concurrency=st.integers(min_value=1, max_value=4))
    @settings(max_examples=30, deadline=None)
    def test_lingering_pages_are_closed(self, count: int, concurrency: int) -> None:
        fetcher = FakeFetcher()
        config = CleanerConfig(input_file=Path("list.txt"), concurrency=concurrency)
        out = StringIO()
        scheduler = BatchScheduler(config, LeakyProber(fetcher), fetcher, output_stream=out)
        tasks = [DomainCheckTask(f"leak{n}.example", (f"leak{n}.example",)) for n in range(count)]

        asyncio.run(scheduler.run(tasks))

        assert fetcher.open_page_count() == 0
        assert fetcher.closed_pages == count
        assert out.getvalue().count("lingering page(s), closed") == scheduler.batches_run

    def test_clean_batches_print_nothing(self) -> None:
        fetcher = FakeFetcher({"https://ok.example": ok("https://ok.example/")})
        scheduler, out = build(fetcher, 4)

        asyncio.run(scheduler.run([DomainCheckTask("ok.example", ("ok.example",))]))

        assert "lingering" not in out.getvalue()


class TestHelpers:
    @given(items=st.lists(st.integers(), max_size=30), size=st.integers(min_value=1, max_value=8))
    @settings(max_examples=100)
    def test_chunk_covers_items_in_order(self, items: list[int], size: int) -> None:
        pieces = list(chunk(items, size))
        assert [x for _, piece in pieces for x in piece] == items
        for start, piece in pieces:
            assert 0 < len(piece) <= size
            assert items[start:start + len(piece)] == piece

    def test_chunk_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            list(chunk([1, 2], 0))

    def test_non_active_filters_and_keeps_order(self) -> None:
        results = [
            DeadDomain("a.example", "HTTP 404"),
            ActiveDomain("b.example"),
            RedirectDomain("c.example", "d.example", "https://c.example", "https://d.example/"),
            ActiveDomain("e.example"),
        ]
        assert [r.domain for r in non_active(results)] == ["a.example", "c.example"]
