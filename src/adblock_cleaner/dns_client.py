"""
DNS verification of dead domains.

Annotates dead domains with their A records so a human can tell a host
that is down from one that no longer exists. A lookup that finds nothing
for the domain retries with the www. prefix toggled. Lookups never raise:
every resolver failure yields an empty result.
"""

import asyncio
from typing import Iterable, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from .audit_logger import AuditLogger
from .models import DnsResult


LOOKUP_ERRORS = (
    dns.resolver.NXDOMAIN,
    dns.resolver.NoAnswer,
    dns.resolver.NoNameservers,
    dns.resolver.YXDOMAIN,
    dns.exception.Timeout,
)


def toggle_www(domain: str) -> str:
    return domain[4:] if domain.startswith("www.") else f"www.{domain}"


class DnsVerifier:
    """
    A-record lookups via dnspython's async resolver.

    Attributes:
        timeout: Lifetime of a single query in seconds
        concurrency: Maximum number of lookups in flight
    """

    COMPONENT = "DnsVerifier"

    def __init__(
        self,
        timeout: float = 5.0,
        concurrency: int = 12,
        resolver: Optional[dns.asyncresolver.Resolver] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self.timeout = timeout
        self.concurrency = concurrency
        self._resolver = resolver
        self._logger = logger

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
        return self._resolver

    async def _query_a(self, name: str) -> tuple[str, ...]:
        try:
            answer = await self._get_resolver().resolve(name, "A", lifetime=self.timeout)
        except LOOKUP_ERRORS as e:
            if self._logger:
                self._logger.debug(
                    self.COMPONENT,
                    f"No A record for {name}",
                    {"error": f"{type(e).__name__}: {str(e)[:80]}"},
                    category="network",
                )
            return ()
        except dns.exception.DNSException as e:
            if self._logger:
                self._logger.warn(self.COMPONENT, f"DNS lookup failed for {name}", {"error": str(e)[:80]})
            return ()
        return tuple(str(rdata) for rdata in answer)

    async def lookup(self, domain: str) -> DnsResult:
        """Resolve A records for the domain, then for its www.-toggled variant."""
        addresses = await self._query_a(domain)
        if addresses:
            return DnsResult(domain=domain, variant=domain, addresses=addresses)

        alternate = toggle_www(domain)
        addresses = await self._query_a(alternate)
        if addresses:
            return DnsResult(domain=domain, variant=alternate, addresses=addresses)

        return DnsResult(domain=domain)

    async def verify_all(self, domains: Iterable[str]) -> dict[str, DnsResult]:
        """Look up every domain concurrently, bounded by ``concurrency``."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(domain: str) -> DnsResult:
            async with semaphore:
                return await self.lookup(domain)

        results = await asyncio.gather(*(bounded(domain) for domain in domains))
        return {result.domain: result for result in results}
