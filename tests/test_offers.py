import threading
from decimal import Decimal

import pytest

from storefront.services.offers import OfferResolver, eligible_range, tiers_to_probe


class FakeCatalog:
    def __init__(self, tiers=None, failing=()):
        self.tiers = tiers or {}
        self.failing = set(failing)
        self.calls = []

    def __call__(self, tier):
        self.calls.append(tier)
        if tier in self.failing:
            raise RuntimeError("offer service down")
        return self.tiers.get(tier, [])


@pytest.mark.parametrize("subtotal,expected", [
    ("0", None),
    ("999.99", None),
    ("1000", "1000"),
    ("4999", "1000"),
    ("5000", "5000"),
    ("24999.99", "10000"),
    ("25000", "25000"),
    ("80000", "25000"),
])
def test_eligible_range(subtotal, expected):
    assert eligible_range(Decimal(subtotal), True) == expected


def test_no_regular_item_means_no_range():
    assert eligible_range(Decimal("30000"), False) is None


def test_tier_order_only_goes_down():
    assert tiers_to_probe("5000") == ("5000", "1000")
    assert tiers_to_probe("25000") == ("25000", "10000", "5000", "1000")


@pytest.mark.parametrize("subtotal", ["0", "500", "999.99"])
def test_below_lowest_tier_fetches_nothing(subtotal):
    catalog = FakeCatalog({"1000": ["bottle"]})
    res = OfferResolver(catalog).resolve(Decimal(subtotal), True)
    assert res.eligible_range is None
    assert res.effective_range is None
    assert res.products == []
    assert catalog.calls == []


def test_falls_back_to_first_tier_with_offers():
    catalog = FakeCatalog({"10000": [], "5000": ["a", "b", "c"]})
    res = OfferResolver(catalog).resolve(Decimal("6000"), True)
    assert res.eligible_range == "5000"
    assert res.effective_range == "5000"
    assert res.products == ["a", "b", "c"]


def test_stops_at_first_non_empty_tier():
    catalog = FakeCatalog({"25000": ["tv"], "10000": ["x"], "5000": ["y"]})
    resolver = OfferResolver(catalog)
    res = resolver.resolve(Decimal("30000"), True)
    assert res.effective_range == "25000"
    assert resolver.fetch_count == 1
    assert catalog.calls == ["25000"]


def test_never_probes_upward():
    catalog = FakeCatalog({"25000": ["tv"], "10000": ["x"]})
    res = OfferResolver(catalog).resolve(Decimal("6000"), True)
    assert catalog.calls == ["5000", "1000"]
    assert res.effective_range is None
    assert res.products == []


def test_failing_tier_is_treated_as_empty(caplog):
    catalog = FakeCatalog({"5000": ["cap"]}, failing={"10000"})
    res = OfferResolver(catalog).resolve(Decimal("12000"), True)
    assert res.effective_range == "5000"
    assert res.products == ["cap"]
    assert "10000" in caplog.text


def test_newer_resolution_supersedes_in_flight_fetch():
    resolver = None
    results = {}

    def fetch(tier):
        # a cart change lands while the first probe is waiting on 10000
        if tier == "10000" and "inner" not in results:
            results["inner"] = resolver.resolve(Decimal("1500"), True)
        return {"1000": ["bottle"], "5000": ["cap"]}.get(tier, [])

    resolver = OfferResolver(fetch)
    outer = resolver.resolve(Decimal("12000"), True)

    assert outer is None
    assert results["inner"].effective_range == "1000"
    assert resolver.current.effective_range == "1000"
    assert resolver.current.products == ["bottle"]


def test_resolution_as_api():
    catalog = FakeCatalog({"5000": [{"id": "1"}]})
    payload = OfferResolver(catalog).resolve(Decimal("5000"), True).as_api()
    assert payload["eligibleRange"] == "5000"
    assert payload["effectiveRange"] == "5000"
    assert payload["items"] == [{"id": "1"}]
    assert payload["label"]


def test_fetch_count_is_exact_across_threads():
    catalog = FakeCatalog({"1000": ["bottle"]})
    resolver = OfferResolver(catalog)

    def work():
        for _ in range(200):
            resolver.resolve(Decimal("6000"), True)

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert resolver.fetch_count == len(catalog.calls)
    assert resolver.current.effective_range == "1000"
