"""
Unit tests for the competitive leverage engine.

WHAT: Test sibling/self minima, strictness, anonymity and failure handling
WHY: Leverage is the only information flowing between sessions
HOW: Real store on in-memory SQLite; a broken store for failure paths
"""

import pytest

from negbot.services.leverage import LEVERAGE_MARKER, LeverageEngine, format_price
from negbot.utils.exceptions import StoreError


@pytest.fixture
def group_with_two(store, vendors):
    group = store.create_group("Laptops Q4", quantity=20)
    first = store.create_negotiation(vendors[0].id, "conv-a", group.id)
    second = store.create_negotiation(vendors[1].id, "conv-b", group.id)
    return group, first, second


class BrokenStore:
    """Store whose every read fails."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise StoreError(name, "database is locked")
        return fail


@pytest.mark.unit
class TestBestPrices:
    """Test minimum-price queries."""

    def test_best_of_self_is_historical_minimum(self, store, leverage, group_with_two):
        _, first, _ = group_with_two
        for price in (100.0, 80.0, 90.0):
            store.append_state(first.id, price, f"quote {price}")

        best = leverage.best_of_self(first.id)
        assert best.price == 80.0
        assert best.description == "quote 80.0"

    def test_best_of_self_without_snapshots(self, leverage, group_with_two):
        _, first, _ = group_with_two
        assert leverage.best_of_self(first.id) is None

    def test_best_of_siblings_excludes_caller(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 50.0, "own cheap quote")
        store.append_state(second.id, 70.0, "sibling quote")

        assert leverage.best_of_siblings(group.id, first.id).price == 70.0

    def test_best_of_siblings_without_group(self, leverage, group_with_two):
        _, first, _ = group_with_two
        assert leverage.best_of_siblings(None, first.id) is None

    def test_best_of_siblings_without_sibling_snapshots(self, store, leverage, group_with_two):
        group, first, _ = group_with_two
        store.append_state(first.id, 50.0, "own quote")
        assert leverage.best_of_siblings(group.id, first.id) is None


@pytest.mark.unit
class TestAnnouncement:
    """Test leverage announcement rules."""

    def test_announces_strictly_better_sibling(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 1000.0, "list price")
        store.append_state(second.id, 900.0, "volume discount")

        text = leverage.compute_leverage_announcement(group.id, first.id)
        assert text.startswith(LEVERAGE_MARKER)
        assert format_price(900.0) in text
        assert "volume discount" in text
        assert format_price(1000.0) in text

    def test_worse_sibling_yields_nothing(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 900.0, "own")
        store.append_state(second.id, 1000.0, "sibling")
        assert leverage.compute_leverage_announcement(group.id, first.id) is None

    def test_tie_never_triggers(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 900.0, "own")
        store.append_state(second.id, 900.0, "sibling")
        assert leverage.compute_leverage_announcement(group.id, first.id) is None

    def test_no_own_snapshot_yields_nothing(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(second.id, 900.0, "sibling")
        assert leverage.compute_leverage_announcement(group.id, first.id) is None

    def test_monotone_under_new_sibling_snapshots(self, store, leverage, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 1000.0, "own")
        store.append_state(second.id, 950.0, "sibling first")
        assert format_price(950.0) in leverage.compute_leverage_announcement(group.id, first.id)

        # A higher sibling quote cannot hide the earlier better one
        store.append_state(second.id, 1100.0, "sibling second")
        text = leverage.compute_leverage_announcement(group.id, first.id)
        assert format_price(950.0) in text

    def test_announcement_is_anonymous(self, store, leverage, vendors, group_with_two):
        group, first, second = group_with_two
        store.append_state(first.id, 1000.0, "own")
        store.append_state(second.id, 900.0, "Bolt Industrial bundle with BOLT INDUSTRIAL support")

        text = leverage.compute_leverage_announcement(group.id, first.id)
        assert "bolt industrial" not in text.lower()
        assert "another vendor" in text
        assert str(vendors[1].id) not in text
        assert str(second.id) not in text.replace(format_price(900.0), "").replace(format_price(1000.0), "")

    def test_store_failure_degrades_to_none(self, reporter):
        engine = LeverageEngine(BrokenStore(), reporter)
        assert engine.compute_leverage_announcement(1, 1) is None
        assert reporter.operations == ["compute_leverage"]
        context, error = reporter.reports[0]
        assert context["group_id"] == 1
        assert isinstance(error, StoreError)
