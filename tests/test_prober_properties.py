"""
Property-based tests for the domain prober state machine.

The page fetch capability is replaced by an in-memory fake serving canned
outcomes per URL.
"""

import asyncio
from io import StringIO
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from adblock_cleaner.config import CleanerConfig
from adblock_cleaner.decision_engine import DecisionEngine
from adblock_cleaner.domain_validator import BaseDomainTable
from adblock_cleaner.enums import ClassificationType, ErrorKind
from adblock_cleaner.exceptions import FetchError
from adblock_cleaner.models import DomainCheckTask, FetchResult
from adblock_cleaner.prober import DomainProber

from fakes import HANG, FakeFetcher, ok


def make_prober(fetcher: FakeFetcher, **overrides) -> tuple[DomainProber, StringIO]:
    config = CleanerConfig(input_file=Path("list.txt"), **overrides)
    engine = DecisionEngine(config, BaseDomainTable.fallback())
    out = StringIO()
    return DomainProber(config, fetcher, engine, output_stream=out), out


def two_variants(domain: str) -> DomainCheckTask:
    return DomainCheckTask(original=domain, variants=(domain, f"www.{domain}"))


class TestVariantFallbackProperty:
    """
    **Property 1: Variants are tried in order until one is terminal**
    """

    def test_dead_first_variant_falls_back_to_www(self) -> None:
        fetcher = FakeFetcher({
            "https://example.com": FetchResult(status_code=404, final_url="https://example.com/"),
            "https://www.example.com": ok("https://www.example.com/"),
        })
        prober, out = make_prober(fetcher)

        result = asyncio.run(prober.check(two_variants("example.com"), 0, 1))

        assert result.type == ClassificationType.ACTIVE
        assert fetcher.navigations == ["https://example.com", "https://www.example.com"]
        assert "trying next" in out.getvalue()

    def test_success_on_first_variant_skips_second(self) -> None:
        fetcher = FakeFetcher({"https://example.com": ok("https://example.com/")})
        prober, _ = make_prober(fetcher)

        result = asyncio.run(prober.check(two_variants("example.com")))

        assert result.type == ClassificationType.ACTIVE
        assert fetcher.navigations == ["https://example.com"]

    def test_all_variants_dead(self) -> None:
        fetcher = FakeFetcher({
            "https://gone.example": FetchResult(status_code=404, final_url="https://gone.example/"),
            "https://www.gone.example": FetchResult(status_code=500, final_url="https://www.gone.example/"),
        })
        prober, out = make_prober(fetcher)

        result = asyncio.run(prober.check(two_variants("gone.example"), 4, 9))

        assert result.type == ClassificationType.DEAD
        assert result.domain == "gone.example"
        assert result.reason == "HTTP 500"
        assert "[5/9] Checking gone.example" in out.getvalue()

    def test_connection_error_then_inconclusive(self) -> None:
        fetcher = FakeFetcher({
            "https://www.flaky.example": FetchError(
                "net::ERR_CERT_COMMON_NAME_INVALID", ErrorKind.CERTIFICATE
            ),
        })
        prober, _ = make_prober(fetcher)

        result = asyncio.run(prober.check(two_variants("flaky.example")))

        assert result.type == ClassificationType.ACTIVE

    def test_inconclusive_first_variant_finalizes(self) -> None:
        fetcher = FakeFetcher({
            "https://slow.example": FetchError(
                "Navigation timeout of 25000 ms exceeded", ErrorKind.NAVIGATION_TIMEOUT
            ),
        })
        prober, _ = make_prober(fetcher)

        result = asyncio.run(prober.check(two_variants("slow.example")))

        assert result.type == ClassificationType.ACTIVE
        assert fetcher.navigations == ["https://slow.example"]

    def test_unresolved_single_variant_is_dead(self) -> None:
        fetcher = FakeFetcher()
        prober, _ = make_prober(fetcher)

        result = asyncio.run(prober.check(DomainCheckTask("nx.example", ("nx.example",))))

        assert result.type == ClassificationType.DEAD
        assert "ERR_NAME_NOT_RESOLVED" in result.reason

    def test_redirect_scenario(self) -> None:
        fetcher = FakeFetcher({"https://old.example": ok("https://new.example/")})
        prober, out = make_prober(fetcher)

        result = asyncio.run(prober.check(DomainCheckTask("old.example", ("old.example",))))

        assert result.type == ClassificationType.REDIRECT
        assert result.final_domain == "new.example"
        assert "Redirects to new.example" in out.getvalue()

    def test_forbidden_page_with_content_is_tagged(self) -> None:
        fetcher = FakeFetcher({"https://guarded.example": ok("https://guarded.example/", 403, "x" * 600)})
        prober, out = make_prober(fetcher)

        result = asyncio.run(prober.check(DomainCheckTask("guarded.example", ("guarded.example",))))

        assert result.type == ClassificationType.ACTIVE
        assert "[403] guarded.example - Active (HTTP 403 with content)" in out.getvalue()
        assert "[OK]" not in out.getvalue()

    def test_task_without_variants_is_dead(self) -> None:
        prober, _ = make_prober(FakeFetcher())
        result = asyncio.run(prober.check(DomainCheckTask("empty.example", ())))
        assert result.type == ClassificationType.DEAD
        assert result.reason == "All variants failed"


class TestPageLifecycleProperty:
    """
    **Property 2: Every attempt closes its page on every exit path**
    """

    @given(
        outcomes=st.lists(
            st.sampled_from(["ok", "404", "403", "refused", "cert", "none"]),
            min_size=2,
            max_size=2,
        )
    )
    @settings(max_examples=50, deadline=None)
    def test_no_page_outlives_its_attempt(self, outcomes: list[str]) -> None:
        """
        Property 2: *For any* combination of attempt outcomes, no page is
        left open after the task is classified.
        """
        urls = ["https://site.example", "https://www.site.example"]
        canned = {}
        for url, outcome in zip(urls, outcomes):
            if outcome == "ok":
                canned[url] = ok(url + "/")
            elif outcome == "404":
                canned[url] = FetchResult(status_code=404, final_url=url + "/")
            elif outcome == "403":
                canned[url] = FetchResult(status_code=403, final_url=url + "/", body="no")
            elif outcome == "cert":
                canned[url] = FetchError("net::ERR_CERT_INVALID", ErrorKind.CERTIFICATE)
            elif outcome == "none":
                canned[url] = FetchResult(status_code=None, final_url="")
        fetcher = FakeFetcher(canned)
        prober, _ = make_prober(fetcher)

        asyncio.run(prober.check(two_variants("site.example")))

        assert fetcher.open_page_count() == 0
        assert fetcher.opened_pages == fetcher.closed_pages == len(fetcher.navigations)

    def test_force_close_reclaims_hung_page(self) -> None:
        fetcher = FakeFetcher({"https://hung.example": HANG})
        prober, out = make_prober(
            fetcher,
            navigation_timeout_seconds=0.01,
            force_close_timeout_seconds=0.05,
        )

        result = asyncio.run(prober.check(DomainCheckTask("hung.example", ("hung.example",))))

        assert result.type == ClassificationType.ACTIVE
        assert ErrorKind.FORCE_CLOSED.value in result.detail
        assert fetcher.open_page_count() == 0
        assert "Force-closing hung.example" in out.getvalue()

    def test_force_close_on_first_variant_is_inconclusive(self) -> None:
        fetcher = FakeFetcher({
            "https://hung.example": HANG,
            "https://www.hung.example": ok("https://www.hung.example/"),
        })
        prober, _ = make_prober(
            fetcher,
            navigation_timeout_seconds=0.01,
            force_close_timeout_seconds=0.05,
        )

        result = asyncio.run(prober.check(two_variants("hung.example")))

        assert result.type == ClassificationType.ACTIVE
        assert fetcher.navigations == ["https://hung.example"]
