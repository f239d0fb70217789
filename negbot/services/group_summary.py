"""
Group summary.

WHAT: Best price, savings and per-vendor price history of a negotiation group
WHY: The principal follows running groups and compares finished ones
HOW: Computed from snapshots while running, from final offers afterwards
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from ..core.state_store import NegotiationStore
from ..models.negotiation import OfferRecord
from ..utils.logger import get_logger

logger = get_logger(__name__)


class GroupSummary(BaseModel):
    """Aggregated view of one negotiation group."""

    group_id: int
    name: str
    status: str
    best_price: float = 0.0
    starting_price: float = 0.0
    savings_percent: int = 0
    vendors_engaged: int = 0
    price_history: List[Dict[str, float]] = Field(default_factory=list)
    offers: List[OfferRecord] = Field(default_factory=list)


def savings_percent(starting_price: float, best_price: float) -> int:
    """Whole-percent saving of best over starting price; 0 unless 0 < best < start."""
    if starting_price > 0 and 0 < best_price < starting_price:
        return round((starting_price - best_price) / starting_price * 100)
    return 0


def build_price_history(prices_by_vendor: Dict[str, List[float]]) -> List[Dict[str, float]]:
    """
    Align each vendor's snapshot sequence into numbered rounds.

    A vendor with fewer snapshots keeps its last known price in later rounds.
    """
    rounds = max((len(prices) for prices in prices_by_vendor.values()), default=0)
    history = []
    for i in range(rounds):
        row: Dict[str, float] = {"round": i + 1}
        for vendor_key, prices in prices_by_vendor.items():
            if prices:
                row[vendor_key] = prices[min(i, len(prices) - 1)]
        history.append(row)
    return history


def summarize_group(store: NegotiationStore, group_id: int) -> GroupSummary | None:
    """
    Summarize a group.

    Returns:
        GroupSummary, or None if the group does not exist

    Raises:
        StoreError: A read failed
    """
    group = store.get_group(group_id)
    if group is None:
        return None

    negotiations = store.list_group_negotiations(group_id)
    negotiation_ids = [n.id for n in negotiations]
    vendor_by_negotiation = {n.id: n.vendor_id for n in negotiations}

    history = store.list_state_history(negotiation_ids)
    offers = store.list_offers(negotiation_ids)

    prices_by_negotiation: Dict[int, List[float]] = {nid: [] for nid in negotiation_ids}
    for snapshot in history:
        if snapshot.price > 0:
            prices_by_negotiation[snapshot.negotiation_id].append(snapshot.price)

    if group.status == "running":
        best_per_vendor = [min(p) for p in prices_by_negotiation.values() if p]
        first_per_vendor = [p[0] for p in prices_by_negotiation.values() if p]
        best_price = min(best_per_vendor, default=0.0)
        starting_price = max(first_per_vendor, default=0.0)
    else:
        offer_prices = [o.price for o in offers if o.price > 0]
        best_price = min(offer_prices, default=0.0)
        starting_price = max(offer_prices, default=0.0)

    prices_by_vendor: Dict[str, List[float]] = {}
    for nid, prices in prices_by_negotiation.items():
        vendor_id = vendor_by_negotiation.get(nid)
        if vendor_id is not None and prices:
            prices_by_vendor.setdefault(str(vendor_id), []).extend(prices)

    summary = GroupSummary(
        group_id=group.id,
        name=group.name,
        status=group.status,
        best_price=best_price,
        starting_price=starting_price,
        savings_percent=savings_percent(starting_price, best_price),
        vendors_engaged=len(negotiations),
        price_history=build_price_history(prices_by_vendor),
        offers=offers,
    )
    logger.debug(
        f"Group {group_id} [{group.status}]: start {starting_price}, best {best_price}, "
        f"savings {summary.savings_percent}%"
    )
    return summary
