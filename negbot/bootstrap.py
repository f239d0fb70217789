"""
Default object graph.

WHAT: Build store, adapters, services and coordinator from settings
WHY: One place that knows the concrete implementations
HOW: Explicit construction; any collaborator can be passed in instead
"""

from dataclasses import dataclass
from typing import Dict

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .agents.runner import GroupLaunch, GroupNegotiationCoordinator, SessionRunResult
from .channels.messaging import HttpMessagingChannel, MessagingChannel
from .core.config import settings as default_settings
from .core.database import close_db, create_db_engine, init_db, make_session_factory
from .core.state_store import NegotiationStore
from .models.negotiation import ProductContext
from .runtime.openai_compat import OpenAICompatRuntimeFactory
from .runtime.provider import RuntimeFactory
from .services.error_reporter import ErrorReporter, LoggingErrorReporter
from .services.group_completion import GroupCompletionProtocol
from .services.group_summary import GroupSummary, summarize_group
from .services.leverage import LeverageEngine
from .services.notifier import CompletionNotifier, LoggingNotifier, ResendNotifier
from .utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@dataclass
class Orchestrator:
    """Wired components of a running service."""
    settings: object
    store: NegotiationStore
    reporter: ErrorReporter
    channel: MessagingChannel
    runtime_factory: RuntimeFactory
    notifier: CompletionNotifier
    leverage: LeverageEngine
    completion: GroupCompletionProtocol
    coordinator: GroupNegotiationCoordinator
    db_engine: Engine | None = None

    async def negotiate(
        self,
        name: str,
        vendor_ids: list[int],
        product: ProductContext
    ) -> tuple[GroupLaunch, Dict[int, SessionRunResult], GroupSummary | None]:
        """Start a group, run all its sessions to the end and summarize it."""
        launch = await self.coordinator.start(name, vendor_ids, product)
        statuses = await self.coordinator.run(launch)
        return launch, statuses, summarize_group(self.store, launch.group.id)

    async def close(self):
        """Close HTTP clients owned by the adapters and the engine built for the store."""
        for component in (self.channel, self.runtime_factory, self.notifier):
            close = getattr(component, "close", None)
            if close is not None:
                await close()
        if self.db_engine is not None:
            close_db(self.db_engine)


def build_orchestrator(
    settings=None,
    *,
    session_factory: sessionmaker | None = None,
    channel: MessagingChannel | None = None,
    runtime_factory: RuntimeFactory | None = None,
    notifier: CompletionNotifier | None = None,
    reporter: ErrorReporter | None = None,
    configure_logging: bool = True
) -> Orchestrator:
    """
    Build the default orchestrator.

    Without a session_factory a new engine is created from DATABASE_URL and
    the schema is created if missing.
    """
    settings = settings or default_settings
    if configure_logging:
        setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    db_engine = None
    if session_factory is None:
        db_engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        init_db(db_engine)
        session_factory = make_session_factory(db_engine)

    store = NegotiationStore(session_factory)
    reporter = reporter or LoggingErrorReporter()
    if notifier is None:
        notifier = ResendNotifier(settings) if settings.RESEND_API_KEY else LoggingNotifier()

    leverage = LeverageEngine(store, reporter)
    completion = GroupCompletionProtocol(store, reporter, notifier)
    channel = channel or HttpMessagingChannel(settings)
    runtime_factory = runtime_factory or OpenAICompatRuntimeFactory(settings)

    coordinator = GroupNegotiationCoordinator(
        store,
        channel,
        runtime_factory,
        reporter,
        leverage=leverage,
        completion=completion,
        settings=settings
    )
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} ready")

    return Orchestrator(
        settings=settings,
        store=store,
        reporter=reporter,
        channel=channel,
        runtime_factory=runtime_factory,
        notifier=notifier,
        leverage=leverage,
        completion=completion,
        coordinator=coordinator,
        db_engine=db_engine,
    )
