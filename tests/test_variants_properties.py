"""
Property-based tests for www. variant expansion.
"""

import string

from hypothesis import given, settings
from hypothesis import strategies as st

from adblock_cleaner.variants import expand_domains_with_www, is_bare_domain


label = st.text(alphabet=string.ascii_lowercase + string.digits, min_size=2, max_size=10).filter(
    lambda s: s != "www"
)
bare_domain = st.builds(lambda name, tld: f"{name}.{tld}", label, st.sampled_from(["com", "net", "org"]))
sub_domain = st.builds(lambda sub, base: f"{sub}.{base}", label, bare_domain)


class TestVariantOrderProperty:
    """
    **Property 1: The original domain is always the first variant**
    """

    @given(
        domains=st.lists(st.one_of(bare_domain, sub_domain), min_size=1, max_size=10, unique=True),
        add_www=st.booleans(),
    )
    @settings(max_examples=100)
    def test_original_is_first(self, domains: list[str], add_www: bool) -> None:
        """
        Property 1: *For any* domain list, each task starts with the
        original domain and tasks keep input order.
        """
        tasks = expand_domains_with_www(domains, add_www)
        assert [task.original for task in tasks] == domains
        for task in tasks:
            assert task.variants[0] == task.original

    @given(domains=st.lists(st.one_of(bare_domain, sub_domain), min_size=1, max_size=10))
    @settings(max_examples=100)
    def test_disabled_gives_single_variant(self, domains: list[str]) -> None:
        for task in expand_domains_with_www(domains, False):
            assert task.variants == (task.original,)


class TestWwwExpansionProperty:
    """
    **Property 2: Only bare domains gain a www. variant**
    """

    @given(domain=bare_domain)
    @settings(max_examples=100)
    def test_bare_domain_gets_www_second(self, domain: str) -> None:
        (task,) = expand_domains_with_www([domain], True)
        assert task.variants == (domain, f"www.{domain}")

    @given(domain=sub_domain)
    @settings(max_examples=100)
    def test_subdomain_keeps_single_variant(self, domain: str) -> None:
        (task,) = expand_domains_with_www([domain], True)
        assert task.variants == (domain,)

    @given(domain=bare_domain)
    @settings(max_examples=100)
    def test_www_domain_keeps_single_variant(self, domain: str) -> None:
        (task,) = expand_domains_with_www([f"www.{domain}"], True)
        assert task.variants == (f"www.{domain}",)

    def test_is_bare_domain(self) -> None:
        assert is_bare_domain("example.com")
        assert is_bare_domain("www.example.com")
        assert not is_bare_domain("shop.example.com")
        assert not is_bare_domain("example.co.uk")
