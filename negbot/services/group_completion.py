"""
Group completion protocol.

WHAT: Decide whether every negotiation of a group has produced a final offer
WHY: A multi-vendor negotiation is done only when all vendors have concluded
HOW: Re-evaluated from the store at every finish event; the running ->
     finished update is conditional, so racing sibling sessions are harmless
"""

from dataclasses import dataclass

from ..core.state_store import NegotiationStore
from ..utils.exceptions import StoreError
from ..utils.logger import get_logger
from .error_reporter import ErrorReporter, LoggingErrorReporter
from .notifier import CompletionNotifier

logger = get_logger(__name__)


@dataclass
class CompletionResult:
    """Outcome of one completion evaluation."""
    group_id: int
    finished_count: int
    total: int
    complete: bool
    transitioned: bool = False


class GroupCompletionProtocol:
    """Evaluate group completion after a negotiation finishes."""

    def __init__(
        self,
        store: NegotiationStore,
        reporter: ErrorReporter | None = None,
        notifier: CompletionNotifier | None = None
    ):
        self.store = store
        self.reporter = reporter or LoggingErrorReporter()
        self.notifier = notifier

    async def evaluate(self, group_id: int) -> CompletionResult:
        """
        Run the completion check for a group.

        Args:
            group_id: Negotiation group to evaluate

        Returns:
            CompletionResult; complete is False when the store could not be read
        """
        try:
            negotiation_ids = self.store.list_group_negotiation_ids(group_id)
            offers = self.store.list_offers(negotiation_ids)
        except StoreError as e:
            self.reporter.report({"operation": "evaluate_group_completion", "group_id": group_id}, e)
            return CompletionResult(group_id=group_id, finished_count=0, total=0, complete=False)

        total = len(negotiation_ids)
        finished_count = len({offer.negotiation_id for offer in offers})

        # A group without negotiations never completes
        if total == 0 or finished_count < total:
            logger.info(f"Group {group_id} progress: {finished_count} of {total} negotiations finished")
            return CompletionResult(
                group_id=group_id, finished_count=finished_count, total=total, complete=False
            )

        try:
            transitioned = self.store.mark_group_finished(group_id)
        except StoreError as e:
            self.reporter.report({"operation": "mark_group_finished", "group_id": group_id}, e)
            return CompletionResult(
                group_id=group_id, finished_count=finished_count, total=total, complete=True
            )

        if transitioned:
            logger.info(f"Group {group_id} finished: all {total} negotiations submitted final offers")
            await self._notify(group_id)
        else:
            logger.debug(f"Group {group_id} already finished")

        return CompletionResult(
            group_id=group_id,
            finished_count=finished_count,
            total=total,
            complete=True,
            transitioned=transitioned
        )

    async def _notify(self, group_id: int) -> None:
        if self.notifier is None:
            return
        try:
            group = self.store.get_group(group_id)
            if group is not None:
                await self.notifier.notify(group)
        except Exception as e:
            self.reporter.report({"operation": "notify_group_completion", "group_id": group_id}, e)
