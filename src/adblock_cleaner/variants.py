"""
Expansion of domains into probing tasks with optional www. variants.
"""

from typing import Iterable

from .domain_validator import strip_www
from .models import DomainCheckTask


def is_bare_domain(domain: str) -> bool:
    """example.com is bare; shop.example.com and www.example.co.uk are not."""
    return strip_www(domain).count(".") == 1


def expand_domains_with_www(domains: Iterable[str], add_www: bool) -> list[DomainCheckTask]:
    """
    Build one task per domain.

    With ``add_www`` a bare domain is probed as itself first and then as
    www.<domain>. Domains that already start with www. or carry their own
    subdomain keep a single variant.
    """
    tasks = []
    for domain in domains:
        if add_www and not domain.startswith("www.") and is_bare_domain(domain):
            tasks.append(DomainCheckTask(original=domain, variants=(domain, f"www.{domain}")))
        else:
            tasks.append(DomainCheckTask(original=domain, variants=(domain,)))
    return tasks
