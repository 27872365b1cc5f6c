"""
State machine runner shared by the console workflows.

A workflow declares a ``str`` Enum of states and one async handler per
non-terminal state; each handler performs its step and returns the next
state. The runner records every visited state and wraps any exception raised
by a handler in ``StepFailed`` so the failing step is named.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional

from browser.session_manager import BrowserSessionManager, SessionKey
from browser.wing_console import DEFAULT_BASE_URL, WingConsole
from core.errors import StepFailed
from core.models import JobContext

logger = logging.getLogger(__name__)

Handler = Callable[[], Awaitable[Enum]]


class StateMachine:
    """
    Args:
        name: Workflow name used in logs and ``StepFailed``
        handlers: state -> async handler returning the next state
        terminal: States that end the run
        job: Job the run belongs to (log correlation)
    """

    def __init__(
        self,
        name: str,
        handlers: Dict[Enum, Handler],
        terminal: Iterable[Enum],
        job: Optional[JobContext] = None,
    ):
        self.name = name
        self.handlers = handlers
        self.terminal: FrozenSet[Enum] = frozenset(terminal)
        self.job = job
        self.history: List[Enum] = []
        self.state: Optional[Enum] = None

    async def run(self, initial: Enum) -> Enum:
        """Drive the machine from ``initial`` to a terminal state and return it."""
        tag = self.job.tag if self.job else ""
        self.state = initial
        self.history.append(initial)

        while self.state not in self.terminal:
            handler = self.handlers.get(self.state)
            if handler is None:
                raise StepFailed(self.name, self.state.value, KeyError(f"no handler for {self.state.value}"))
            try:
                next_state = await handler()
            except StepFailed:
                raise
            except Exception as e:
                logger.error(f"{tag} {self.name}: step {self.state.value} failed: {e}")
                raise StepFailed(self.name, self.state.value, e) from e

            logger.debug(f"{tag} {self.name}: {self.state.value} -> {next_state.value}")
            self.state = next_state
            self.history.append(next_state)

        return self.state


ConsoleFactory = Callable[..., WingConsole]


class ConsoleWorkflow:
    """
    Base for workflows that drive the seller console through one session.

    Args:
        sessions: Session manager owning the browser
        store: Store identifier, first part of every session key
        base_url: Console origin passed to the console wrapper
        console_factory: ``(page, base_url) -> WingConsole``; swapped in tests
        sleep: Awaitable sleep for UI-settle waits
    """

    name = "workflow"

    def __init__(
        self,
        sessions: BrowserSessionManager,
        store: str,
        base_url: str = DEFAULT_BASE_URL,
        console_factory: ConsoleFactory = WingConsole,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.sessions = sessions
        self.store = store
        self.base_url = base_url
        self.console_factory = console_factory
        self._sleep = sleep
        self.last_history: List[Enum] = []

    def session_key(self, job: JobContext, variant: Optional[str] = None) -> SessionKey:
        return SessionKey(store=self.store, job_id=job.job_id, variant=variant)

    def console(self, page) -> WingConsole:
        return self.console_factory(page, self.base_url)

    def machine(self, handlers: Dict[Enum, Handler], terminal: Iterable[Enum], job: JobContext) -> StateMachine:
        machine = StateMachine(self.name, handlers, terminal, job)
        self.last_history = machine.history
        return machine

    async def pause(self, seconds: float):
        if seconds > 0:
            await self._sleep(seconds)
