"""
Competitive leverage engine.

WHAT: Compare a negotiation's best price with the best price of its siblings
WHY: Concurrent vendor sessions stay isolated, yet each can use a better
     competing bid as anonymous negotiation pressure
HOW: Minimum-price snapshot queries against the store; only price and
     description leave the sibling negotiation
"""

import re

from ..core.state_store import NegotiationStore
from ..models.negotiation import LeverageQuote
from ..utils.exceptions import StoreError
from ..utils.logger import get_logger
from .error_reporter import ErrorReporter, LoggingErrorReporter

logger = get_logger(__name__)

LEVERAGE_MARKER = "[COMPETITIVE LEVERAGE]"


def format_price(price: float) -> str:
    """Render a price with thousands separators and two decimals."""
    return f"{price:,.2f}"


class LeverageEngine:
    """
    Compute anonymous leverage announcements for a negotiation.

    WHAT: best_of_siblings / best_of_self / compute_leverage_announcement
    WHY: The announcement is the only channel between concurrent sessions
    HOW: Re-query the store on every call; store failures degrade to None
    """

    def __init__(self, store: NegotiationStore, reporter: ErrorReporter | None = None):
        self.store = store
        self.reporter = reporter or LoggingErrorReporter()

    def best_of_siblings(self, group_id: int | None, exclude_negotiation_id: int | None) -> LeverageQuote | None:
        """
        Cheapest snapshot among the other negotiations of the group.

        Args:
            group_id: Negotiation group (None for standalone negotiations)
            exclude_negotiation_id: The caller's own negotiation

        Returns:
            LeverageQuote or None if no sibling has recorded a price
        """
        if group_id is None:
            return None

        sibling_ids = self.store.list_group_negotiation_ids(group_id, exclude=exclude_negotiation_id)
        if not sibling_ids:
            return None

        best = self.store.list_states(sibling_ids, limit=1)
        if not best:
            return None

        quote = LeverageQuote(price=best[0].price, description=best[0].description)
        return self._redact(group_id, exclude_negotiation_id, quote)

    def best_of_self(self, negotiation_id: int | None) -> LeverageQuote | None:
        """Cheapest snapshot of exactly one negotiation."""
        if negotiation_id is None:
            return None

        best = self.store.list_states([negotiation_id], limit=1)
        if not best:
            return None
        return LeverageQuote(price=best[0].price, description=best[0].description)

    def compute_leverage_announcement(self, group_id: int | None, negotiation_id: int | None) -> str | None:
        """
        Anonymous announcement of a strictly better sibling price.

        Returns:
            Announcement text, or None when there is no better sibling price,
            when either side has no snapshot, or when the store fails
        """
        if group_id is None or negotiation_id is None:
            return None

        try:
            sibling = self.best_of_siblings(group_id, negotiation_id)
            own = self.best_of_self(negotiation_id)
        except StoreError as e:
            self.reporter.report(
                {"operation": "compute_leverage", "negotiation_id": negotiation_id, "group_id": group_id},
                e
            )
            return None

        if sibling is None or own is None:
            return None

        # Ties never trigger leverage
        if not sibling.price < own.price:
            return None

        logger.info(
            f"Leverage available for negotiation {negotiation_id} in group {group_id}: "
            f"{sibling.price} < {own.price}"
        )
        return render_announcement(sibling, own)

    def _redact(self, group_id: int, exclude_negotiation_id: int | None, quote: LeverageQuote) -> LeverageQuote:
        """Remove sibling vendor names the model may have written into a description."""
        if not quote.description:
            return quote

        siblings = [
            n for n in self.store.list_group_negotiations(group_id)
            if n.id != exclude_negotiation_id and n.vendor_id is not None
        ]
        vendors = self.store.get_vendors({n.vendor_id for n in siblings})

        description = quote.description
        for vendor in vendors:
            if vendor.name and vendor.name.strip():
                pattern = re.compile(re.escape(vendor.name.strip()), re.IGNORECASE)
                description = pattern.sub("another vendor", description)

        if description != quote.description:
            logger.warning(f"Redacted sibling vendor name from leverage description (group {group_id})")
        return LeverageQuote(price=quote.price, description=description)


def render_announcement(sibling: LeverageQuote, own: LeverageQuote) -> str:
    """Vendor-anonymous leverage sentence."""
    details = f" ({sibling.description})" if sibling.description else ""
    return (
        f"{LEVERAGE_MARKER} A competing vendor has offered {format_price(sibling.price)}"
        f"{details} for this request, which beats this vendor's best price so far "
        f"({format_price(own.price)}). Use this as leverage, but never name or identify "
        f"the competing vendor."
    )
