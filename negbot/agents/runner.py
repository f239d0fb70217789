"""
Session runner and group coordinator.

WHAT: Drive sessions turn by turn and launch one session per vendor of a group
WHY: A negotiation needs many turns; a group needs many vendors at once
HOW: Bounded loop with stop conditions per session; asyncio.gather with a
     semaphore across sessions
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..channels.messaging import MessagingChannel
from ..core.config import settings as default_settings
from ..core.state_store import NegotiationStore
from ..models.negotiation import GroupRecord, ProductContext
from ..runtime.provider import RuntimeFactory
from ..services.error_reporter import ErrorReporter, LoggingErrorReporter
from ..services.group_completion import GroupCompletionProtocol
from ..services.leverage import LeverageEngine
from ..utils.logger import get_logger, get_negotiation_logger
from .session import NegotiationSession

logger = get_logger(__name__)

KICKOFF_INPUT = "kickoff negotiations"
CONTINUE_INPUT = "continue negotiating"

STATUS_COMPLETED = "completed"
STATUS_STUCK = "stuck"
STATUS_ERROR = "error"
STATUS_MAX_ITERATIONS = "max_iterations"


@dataclass
class SessionRunResult:
    """Final status of one driven session."""
    vendor_id: Optional[int]
    negotiation_id: Optional[int]
    status: str
    iterations: int
    error: Optional[str] = None


async def run_session(session: NegotiationSession, settings=None) -> SessionRunResult:
    """
    Drive a session until it finishes or a stop condition triggers.

    Stop conditions:
        completed       finish_negotiation saved offers and concluded the session
        stuck           MAX_CONSECUTIVE_NO_PROGRESS turns without tool calls
        error           same limit reached, last failure was an exception
        max_iterations  MAX_SESSION_ITERATIONS turns
    """
    settings = settings or default_settings
    no_progress = 0
    iteration = 0
    last_error: Optional[str] = None
    log = get_negotiation_logger(__name__, session.negotiation_id, session.vendor_id)

    def result(status: str) -> SessionRunResult:
        return SessionRunResult(
            vendor_id=session.vendor_id,
            negotiation_id=session.negotiation_id,
            status=status,
            iterations=iteration,
            error=last_error if status == STATUS_ERROR else None
        )

    while iteration < settings.MAX_SESSION_ITERATIONS:
        turn_input = KICKOFF_INPUT if iteration == 0 else CONTINUE_INPUT
        iteration += 1
        log.debug(f"Iteration {iteration}, input: {turn_input}")

        try:
            turn = await session.invoke(turn_input)
        except Exception as e:
            last_error = f"{type(e).__name__}: {e}"
            session.reporter.report(
                {
                    "operation": "invoke_session",
                    "negotiation_id": session.negotiation_id,
                    "group_id": session.group_id,
                    "vendor_id": session.vendor_id,
                },
                e
            )
            no_progress += 1
            if no_progress >= settings.MAX_CONSECUTIVE_NO_PROGRESS:
                log.warning("Stopping: too many errors")
                return result(STATUS_ERROR)
        else:
            tool_calls = turn.tool_calls
            log.info(f"Turn {iteration} made {len(tool_calls)} tool calls: {[m.tool_name for m in tool_calls]}")

            if session.context.finished:
                log.info("Negotiation finished")
                return result(STATUS_COMPLETED)

            if tool_calls:
                no_progress = 0
                last_error = None
            else:
                no_progress += 1
                log.info(f"No tools called ({no_progress}/{settings.MAX_CONSECUTIVE_NO_PROGRESS})")
                if no_progress >= settings.MAX_CONSECUTIVE_NO_PROGRESS:
                    log.warning("Stopping: agent stuck")
                    return result(STATUS_ERROR if last_error else STATUS_STUCK)

        await asyncio.sleep(settings.SESSION_ITERATION_DELAY)

    log.warning(f"Max iterations reached ({settings.MAX_SESSION_ITERATIONS})")
    return result(STATUS_MAX_ITERATIONS)


@dataclass
class GroupLaunch:
    """A created group and the sessions that started for it."""
    group: GroupRecord
    sessions: Dict[int, NegotiationSession] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)

    @property
    def vendor_ids(self) -> List[int]:
        return list(self.sessions)


class GroupNegotiationCoordinator:
    """
    Start and run a multi-vendor negotiation.

    WHAT: One session per vendor, all sharing the same group
    WHY: Vendors compete; the leverage engine only works within a group
    HOW: Sessions initialize concurrently; failures are collected per vendor
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
        settings=None,
        session_class: Callable[..., NegotiationSession] = NegotiationSession
    ):
        self.store = store
        self.channel = channel
        self.runtime_factory = runtime_factory
        self.reporter = reporter or LoggingErrorReporter()
        self.leverage = leverage or LeverageEngine(store, self.reporter)
        self.completion = completion or GroupCompletionProtocol(store, self.reporter)
        self.settings = settings or default_settings
        self.session_class = session_class
        self.semaphore = asyncio.Semaphore(self.settings.PARALLEL_SESSION_LIMIT)

    def _new_session(self) -> NegotiationSession:
        return self.session_class(
            self.store,
            self.channel,
            self.runtime_factory,
            self.reporter,
            leverage=self.leverage,
            completion=self.completion,
            settings=self.settings
        )

    async def start(self, name: str, vendor_ids: List[int], product: ProductContext) -> GroupLaunch:
        """
        Create a running group and initialize one session per vendor.

        Raises:
            ValueError: No vendor ids given, or a vendor id given twice
            StoreError: The group could not be created
        """
        if not vendor_ids:
            raise ValueError("vendor_ids must not be empty")
        duplicates = sorted({v for v in vendor_ids if vendor_ids.count(v) > 1})
        if duplicates:
            raise ValueError(f"vendor_ids must be unique, got duplicates: {duplicates}")

        group = self.store.create_group(name or "Untitled Negotiation", product.quantity, product.name)
        logger.info(f"Created negotiation group {group.id} with {len(vendor_ids)} vendors")

        sessions = [self._new_session() for _ in vendor_ids]
        outcomes = await asyncio.gather(
            *(s.initialize(vendor_id, group.id, product) for s, vendor_id in zip(sessions, vendor_ids)),
            return_exceptions=True
        )

        launch = GroupLaunch(group=group)
        for vendor_id, session, outcome in zip(vendor_ids, sessions, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self.reporter.report(
                    {"operation": "start_session", "group_id": group.id, "vendor_id": vendor_id},
                    outcome
                )
                launch.failures[vendor_id] = f"{type(outcome).__name__}: {outcome}"
            else:
                launch.sessions[vendor_id] = session

        logger.info(
            f"Group {group.id}: {len(launch.sessions)} sessions started, {len(launch.failures)} failed"
        )
        return launch

    async def _run_one(self, session: NegotiationSession) -> SessionRunResult:
        async with self.semaphore:
            return await run_session(session, self.settings)

    async def run(self, launch: GroupLaunch) -> Dict[int, SessionRunResult]:
        """Run every started session of a launch concurrently."""
        vendor_ids = launch.vendor_ids
        results = await asyncio.gather(*(self._run_one(launch.sessions[v]) for v in vendor_ids))
        statuses = dict(zip(vendor_ids, results))
        logger.info(
            f"Group {launch.group.id} sessions done: "
            + ", ".join(f"vendor {v}={r.status}" for v, r in statuses.items())
        )
        return statuses
