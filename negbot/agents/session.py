"""
Negotiation session.

WHAT: One autonomous negotiation with one vendor
WHY: Binds conversation, negotiation record, tools and runtime together
HOW: initialize() opens the channel and builds the runtime; invoke() runs
     one turn with a fresh leverage note
"""

import enum

from ..channels.messaging import MessagingChannel
from ..core.config import settings as default_settings
from ..core.state_store import NegotiationStore
from ..models.negotiation import ProductContext, VendorProfile
from ..runtime.provider import AgentRuntime, RuntimeFactory
from ..runtime.types import RuntimeResult
from ..services.error_reporter import ErrorReporter, LoggingErrorReporter
from ..services.group_completion import GroupCompletionProtocol
from ..services.leverage import LeverageEngine
from ..utils.exceptions import NegotiationRecordError, SessionNotInitializedError, StoreError
from ..utils.logger import get_logger
from .prompts import render_leverage_note, render_session_instructions
from .tools import NegotiationTools, ToolContext

logger = get_logger(__name__)


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    CONCLUDED = "concluded"


class NegotiationSession:
    """
    Autonomous negotiation with a single vendor.

    Collaborators are injected; the store is the only state shared with
    sibling sessions of the same group.
    """

    def __init__(
        self,
        store: NegotiationStore,
        channel: MessagingChannel,
        runtime_factory: RuntimeFactory,
        reporter: ErrorReporter | None = None,
        *,
        leverage: LeverageEngine | None = None,
        completion: GroupCompletionProtocol | None = None,
        settings=None
    ):
        self.store = store
        self.channel = channel
        self.runtime_factory = runtime_factory
        self.reporter = reporter or LoggingErrorReporter()
        self.leverage = leverage or LeverageEngine(store, self.reporter)
        self.completion = completion or GroupCompletionProtocol(store, self.reporter)
        self.settings = settings or default_settings

        self.context = ToolContext()
        self.vendor: VendorProfile | None = None
        self.vendor_id: int | None = None
        self.instructions: str | None = None
        self.tools: NegotiationTools | None = None
        self.runtime: AgentRuntime | None = None
        self._initialized = False

    @property
    def state(self) -> SessionState:
        if not self._initialized:
            return SessionState.UNINITIALIZED
        if self.context.finished:
            return SessionState.CONCLUDED
        return SessionState.ACTIVE

    @property
    def conversation_id(self) -> str | None:
        return self.context.conversation_id

    @property
    def negotiation_id(self) -> int | None:
        return self.context.negotiation_id

    @property
    def group_id(self) -> int | None:
        return self.context.group_id

    def _lookup_vendor(self, vendor_id: int) -> VendorProfile | None:
        try:
            vendor = self.store.get_vendor(vendor_id)
        except StoreError as e:
            self.reporter.report({"operation": "get_vendor", "vendor_id": vendor_id}, e)
            return None
        if vendor is None:
            logger.warning(f"Vendor {vendor_id} not found, negotiating without behaviour profile")
        return vendor

    async def initialize(self, vendor_id: int, group_id: int | None, product: ProductContext) -> None:
        """
        Prepare the session.

        Args:
            vendor_id: Vendor to negotiate with
            group_id: Negotiation group, None for a standalone negotiation
            product: Purchase request

        Raises:
            ChannelError: The conversation could not be opened
            NegotiationRecordError: Record creation failed and REQUIRE_NEGOTIATION_RECORD is set
        """
        self.vendor_id = vendor_id
        self.context.group_id = group_id
        self.vendor = self._lookup_vendor(vendor_id)

        title = f"Price Negotiation - {product.name}"
        self.context.conversation_id = await self.channel.open_conversation(vendor_id, title)

        try:
            record = self.store.create_negotiation(vendor_id, self.context.conversation_id, group_id)
            self.context.negotiation_id = record.id
        except StoreError as e:
            self.reporter.report(
                {
                    "operation": "create_negotiation",
                    "vendor_id": vendor_id,
                    "group_id": group_id,
                    "conversation_id": self.context.conversation_id,
                },
                e
            )
            if self.settings.REQUIRE_NEGOTIATION_RECORD:
                raise NegotiationRecordError(vendor_id, group_id, str(e)) from e

        self.instructions = render_session_instructions(
            self.vendor,
            product,
            self.settings.BUYER_NAME,
            self.settings.BUYER_COMPANY
        )
        self.tools = NegotiationTools(
            self.store,
            self.channel,
            self.context,
            leverage=self.leverage,
            completion=self.completion,
            reporter=self.reporter,
            settings=self.settings
        )
        self.runtime = self.runtime_factory.create_runtime(self.instructions, self.tools.toolset())
        self._initialized = True

        logger.info(
            f"Session ready: vendor {vendor_id}, group {group_id}, "
            f"negotiation {self.context.negotiation_id}, conversation {self.context.conversation_id}"
        )

    async def invoke(self, text: str) -> RuntimeResult:
        """
        Run one turn of the agent.

        Raises:
            SessionNotInitializedError: initialize() has not completed
            Runtime errors from the agent runtime propagate unchanged
        """
        if not self._initialized or self.runtime is None:
            raise SessionNotInitializedError(self.state.value)

        announcement = self.leverage.compute_leverage_announcement(
            self.context.group_id, self.context.negotiation_id
        )
        result = await self.runtime.invoke(
            text,
            max_steps=self.settings.MAX_AGENT_STEPS,
            extra_instructions=render_leverage_note(announcement)
        )

        if self.context.finished:
            logger.info(f"Negotiation {self.context.negotiation_id} concluded")
        return result
