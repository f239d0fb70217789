"""
Negotiation tools exposed to the agent runtime.

WHAT: send_message, record_state, finish_negotiation bound to one session
WHY: The model reads and writes negotiation state only through these calls
HOW: Handlers receive validated pydantic arguments, touch the store, the
     channel and the leverage engine, and always answer with text
"""

import enum
from dataclasses import dataclass

from ..channels.messaging import MessagingChannel
from ..core.config import settings as default_settings
from ..core.models import MessageType
from ..core.state_store import NegotiationStore
from ..models.tool_args import SendMessageArgs, RecordStateArgs, FinishNegotiationArgs
from ..runtime.toolset import ToolSet, ToolSpec
from ..services.error_reporter import ErrorReporter, LoggingErrorReporter
from ..services.group_completion import GroupCompletionProtocol
from ..services.leverage import LeverageEngine, format_price
from ..utils.exceptions import ChannelError, StoreError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SEND_MESSAGE = "send_message"
RECORD_STATE = "record_state"
FINISH_NEGOTIATION = "finish_negotiation"

NO_CONVERSATION_ERROR = "Error: No active conversation; cannot send message."
NO_NEGOTIATION_ERROR = "Error: No negotiation is bound to this session; cannot {action}."

RECORD_STATE_GUIDANCE = "[NEXT STEP] Record the vendor's current best price with record_state before writing your next email."
SEND_MESSAGE_DIRECTIVE = "You must now call send_message to continue the negotiation with the vendor."


class SessionPhase(str, enum.Enum):
    """Where a session stands in the reply -> snapshot -> message cycle."""
    IDLE = "idle"
    AWAITING_PRICE_SNAPSHOT = "awaiting_price_snapshot"
    AWAITING_VENDOR_MESSAGE = "awaiting_vendor_message"
    CONCLUDED = "concluded"


@dataclass
class ToolContext:
    """Identity and sequencing state shared by a session and its tools."""
    conversation_id: str | None = None
    negotiation_id: int | None = None
    group_id: int | None = None
    phase: SessionPhase = SessionPhase.IDLE

    @property
    def finished(self) -> bool:
        return self.phase == SessionPhase.CONCLUDED

    def as_report_context(self) -> dict:
        return {
            "negotiation_id": self.negotiation_id,
            "group_id": self.group_id,
            "conversation_id": self.conversation_id,
        }


class NegotiationTools:
    """
    Tool handlers for one negotiation session.

    The store is re-read on every call. Persistence failures around message
    delivery are reported and do not stop the turn; only a failed delivery
    ends a send_message call early.
    """

    def __init__(
        self,
        store: NegotiationStore,
        channel: MessagingChannel,
        context: ToolContext,
        *,
        leverage: LeverageEngine | None = None,
        completion: GroupCompletionProtocol | None = None,
        reporter: ErrorReporter | None = None,
        settings=None
    ):
        self.store = store
        self.channel = channel
        self.context = context
        self.reporter = reporter or LoggingErrorReporter()
        self.leverage = leverage or LeverageEngine(store, self.reporter)
        self.completion = completion or GroupCompletionProtocol(store, self.reporter)
        self.settings = settings or default_settings

    def _report(self, operation: str, error: BaseException) -> None:
        self.reporter.report({"operation": operation, **self.context.as_report_context()}, error)

    def toolset(self) -> ToolSet:
        """Build the registry handed to the runtime."""
        return ToolSet(
            [
                ToolSpec(
                    name=SEND_MESSAGE,
                    description=(
                        "Write and send an email to the vendor. Returns the vendor's reply, "
                        "possibly followed by competitive information you may use as leverage."
                    ),
                    args_model=SendMessageArgs,
                    handler=self.send_message,
                ),
                ToolSpec(
                    name=RECORD_STATE,
                    description=(
                        "Record the vendor's current best offer: total price and a short description. "
                        "Call this after every vendor reply that mentions a price."
                    ),
                    args_model=RecordStateArgs,
                    handler=self.record_state,
                ),
                ToolSpec(
                    name=FINISH_NEGOTIATION,
                    description=(
                        "Finish the negotiation and submit all final offers of the vendor. "
                        "Never accept an offer yourself; the principal decides."
                    ),
                    args_model=FinishNegotiationArgs,
                    handler=self.finish_negotiation,
                ),
            ],
            reporter=self.reporter,
            context=self.context.as_report_context,
        )

    async def send_message(self, args: SendMessageArgs) -> str:
        ctx = self.context
        if not ctx.conversation_id:
            logger.warning(f"send_message called without conversation (negotiation {ctx.negotiation_id})")
            return NO_CONVERSATION_ERROR

        try:
            self.store.append_message(ctx.conversation_id, MessageType.ASSISTANT, args.body)
        except StoreError as e:
            self._report("persist_outgoing_message", e)

        try:
            reply = await self.channel.send_and_await_reply(ctx.conversation_id, args.body)
        except ChannelError as e:
            self._report("deliver_message", e)
            return f"Error: Failed to send message: {e}"

        logger.info(f"Vendor replied in conversation {ctx.conversation_id} (negotiation {ctx.negotiation_id})")

        try:
            self.store.append_message(ctx.conversation_id, MessageType.USER, reply)
        except StoreError as e:
            self._report("persist_vendor_reply", e)

        if not ctx.finished:
            ctx.phase = SessionPhase.AWAITING_PRICE_SNAPSHOT

        parts = [reply]
        announcement = self.leverage.compute_leverage_announcement(ctx.group_id, ctx.negotiation_id)
        if announcement:
            logger.info(f"Leverage available for negotiation {ctx.negotiation_id} in group {ctx.group_id}")
            parts.append(announcement)
        if not ctx.finished:
            parts.append(RECORD_STATE_GUIDANCE)
        return "\n\n".join(parts)

    async def record_state(self, args: RecordStateArgs) -> str:
        ctx = self.context
        if ctx.negotiation_id is None:
            return NO_NEGOTIATION_ERROR.format(action="record state")

        if self.settings.ENFORCE_TOOL_SEQUENCING and ctx.phase == SessionPhase.AWAITING_VENDOR_MESSAGE:
            logger.warning(f"Refused repeated record_state for negotiation {ctx.negotiation_id}")
            return (
                "Error: A price snapshot was already recorded since the last vendor reply. "
                + SEND_MESSAGE_DIRECTIVE
            )

        try:
            self.store.append_state(ctx.negotiation_id, args.price, args.description)
        except StoreError as e:
            self._report("record_state", e)
            return f"Error: Failed to record state: {e}"

        logger.info(f"Recorded price {format_price(args.price)} for negotiation {ctx.negotiation_id}")
        if not ctx.finished:
            ctx.phase = SessionPhase.AWAITING_VENDOR_MESSAGE
        return f"State recorded: {format_price(args.price)} ({args.description}). {SEND_MESSAGE_DIRECTIVE}"

    async def finish_negotiation(self, args: FinishNegotiationArgs) -> str:
        ctx = self.context
        if ctx.negotiation_id is None:
            return NO_NEGOTIATION_ERROR.format(action="record final offers")

        if ctx.finished and not self.settings.ALLOW_REPEATED_FINISH:
            logger.warning(f"Refused repeated finish_negotiation for negotiation {ctx.negotiation_id}")
            return "Error: This negotiation is already finished; final offers were submitted before."

        saved = 0
        last_error = None
        for offer in args.offers:
            try:
                self.store.append_offer(
                    ctx.negotiation_id,
                    offer.description,
                    offer.price,
                    pros=offer.pros,
                    cons=offer.cons
                )
                saved += 1
            except StoreError as e:
                last_error = e
                self._report("persist_final_offer", e)

        if saved == 0:
            logger.warning(f"No final offers saved for negotiation {ctx.negotiation_id}")
            return f"Error: Failed to record final offers: {last_error}"

        logger.info(f"Negotiation {ctx.negotiation_id} finished with {saved} of {len(args.offers)} offers saved")
        ctx.phase = SessionPhase.CONCLUDED

        if ctx.group_id is not None:
            await self.completion.evaluate(ctx.group_id)

        result = args.model_dump_json()
        if saved < len(args.offers):
            result += f"\nWarning: only {saved} of {len(args.offers)} offers were recorded ({last_error})."
        return result
