"""
Unit tests for the group completion protocol.

WHAT: Test k-of-n progress, exactly-once transition and notification
WHY: A group must finish only when every vendor submitted final offers
HOW: Real store on in-memory SQLite with a recording notifier
"""

import pytest

from negbot.services.group_completion import GroupCompletionProtocol
from negbot.utils.exceptions import StoreError


@pytest.fixture
def group_of_three(store, vendors):
    third = store.create_vendor("Cobalt Traders", vendor_id=9)
    group = store.create_group("Desks", quantity=3)
    negotiations = [
        store.create_negotiation(vendor_id, f"conv-{vendor_id}", group.id)
        for vendor_id in (vendors[0].id, vendors[1].id, third.id)
    ]
    return group, negotiations


class FailingFinishStore:
    """Delegates reads, fails the status update."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    def mark_group_finished(self, group_id):
        raise StoreError("mark_group_finished", "disk I/O error")


@pytest.mark.unit
class TestCompletion:
    """Test completion evaluation."""

    @pytest.mark.asyncio
    async def test_n_minus_one_of_n_stays_running(self, store, completion, notifier, group_of_three):
        group, negotiations = group_of_three
        for negotiation in negotiations[:2]:
            store.append_offer(negotiation.id, "offer", 100.0)

        result = await completion.evaluate(group.id)
        assert result.complete is False
        assert (result.finished_count, result.total) == (2, 3)
        assert store.get_group(group.id).status == "running"
        assert notifier.groups == []

    @pytest.mark.asyncio
    async def test_n_of_n_transitions_exactly_once(self, store, completion, notifier, group_of_three):
        group, negotiations = group_of_three
        for negotiation in negotiations:
            store.append_offer(negotiation.id, "offer", 100.0)

        first = await completion.evaluate(group.id)
        second = await completion.evaluate(group.id)

        assert first.complete and first.transitioned
        assert second.complete and not second.transitioned
        assert store.get_group(group.id).status == "finished"
        assert [g.id for g in notifier.groups] == [group.id]

    @pytest.mark.asyncio
    async def test_multiple_offers_count_once(self, store, completion, group_of_three):
        group, negotiations = group_of_three
        for _ in range(3):
            store.append_offer(negotiations[0].id, "offer", 100.0)

        result = await completion.evaluate(group.id)
        assert result.finished_count == 1
        assert result.complete is False

    @pytest.mark.asyncio
    async def test_single_member_group_completes(self, store, completion, vendors):
        group = store.create_group("Solo")
        negotiation = store.create_negotiation(vendors[0].id, "conv-solo", group.id)
        store.append_offer(negotiation.id, "offer", 10.0)

        assert (await completion.evaluate(group.id)).complete is True

    @pytest.mark.asyncio
    async def test_empty_group_never_completes(self, store, completion):
        group = store.create_group("Empty")
        result = await completion.evaluate(group.id)
        assert result.complete is False
        assert store.get_group(group.id).status == "running"

    @pytest.mark.asyncio
    async def test_accepted_group_stays_accepted(self, store, completion, notifier, group_of_three):
        group, negotiations = group_of_three
        offers = [store.append_offer(n.id, "offer", 100.0) for n in negotiations]
        store.accept_offer(group.id, offers[0].id)

        result = await completion.evaluate(group.id)
        assert result.complete is True
        assert result.transitioned is False
        assert store.get_group(group.id).status == "accepted"
        assert notifier.groups == []


@pytest.mark.unit
class TestCompletionFailures:
    """Test reporting of store and notifier failures."""

    @pytest.mark.asyncio
    async def test_update_failure_is_reported(self, store, reporter, group_of_three):
        group, negotiations = group_of_three
        for negotiation in negotiations:
            store.append_offer(negotiation.id, "offer", 100.0)

        protocol = GroupCompletionProtocol(FailingFinishStore(store), reporter)
        result = await protocol.evaluate(group.id)

        assert result.complete is True
        assert result.transitioned is False
        assert reporter.operations == ["mark_group_finished"]

    @pytest.mark.asyncio
    async def test_notifier_failure_is_reported(self, store, reporter, group_of_three):
        from tests.fixtures.fakes import RecordingNotifier

        group, negotiations = group_of_three
        for negotiation in negotiations:
            store.append_offer(negotiation.id, "offer", 100.0)

        protocol = GroupCompletionProtocol(store, reporter, RecordingNotifier(should_fail=True))
        result = await protocol.evaluate(group.id)

        assert result.transitioned is True
        assert reporter.operations == ["notify_group_completion"]
