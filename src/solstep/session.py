"""
Debug session: wires the store, the trace engine, the call-stack tracker,
the variable resolver and the control dispatcher together on one event loop,
and offers an awaitable API over the control commands.
"""

import asyncio
from typing import Dict, Iterable, List, Optional

from .config import DebuggerConfig
from .core import events
from .core.bindings import VariableResolver
from .core.breakpoints import Breakpoint
from .core.callstack import CallFrame, CallStackTracker
from .core.controller import ControlDispatcher
from .core.store import StateStore
from .core.trace import ExecutionStep, TraceProgression, steps_from_struct_logs
from .evm.view import ProgramRegistry, SolidityView
from .parsers.storage import allocate_declarations
from .utils.exceptions import CommandInProgressError, TraceNotLoadedError
from .utils.logging import get_logger, setup_logging

logger = get_logger('session')


class DebugSession:
    """
    A single trace being debugged.

    Usage::

        async with DebugSession(programs) as session:
            await session.load(steps, address=tx_to)
            await session.step_over()
            print(session.cursor, session.call_stack, session.bindings())
    """

    def __init__(self, programs: Optional[ProgramRegistry] = None,
                 config: Optional[DebuggerConfig] = None,
                 allocate=allocate_declarations,
                 configure_logging: bool = False):
        self.config = config or DebuggerConfig()
        if configure_logging:
            setup_logging(
                level=self.config.level,
                log_file=self.config.log_file,
                use_colors=self.config.use_colors,
                cursor=lambda: self.cursor if self.trace.loaded else None,
            )

        self.store = StateStore()
        self.view = SolidityView(
            self.store,
            programs,
            initial_function_depth=self.config.initial_function_depth,
            checksum_addresses=self.config.checksum_addresses,
        )
        self.engine = TraceProgression(self.store, checksum_addresses=self.config.checksum_addresses)
        self.tracker = CallStackTracker(self.store, self.view)
        self.resolver = VariableResolver(self.store, self.view, allocate)
        self.dispatcher = ControlDispatcher(self.store, self.view)
        self._engine_task: Optional[asyncio.Task] = None
        self._dispatcher_task: Optional[asyncio.Task] = None
        self._running: Optional[str] = None

    async def __aenter__(self) -> "DebugSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        if self._engine_task is not None:
            return
        self._engine_task = asyncio.ensure_future(self.engine.run())
        self._dispatcher_task = asyncio.ensure_future(self.dispatcher.run())
        # Let both tasks reach their first wait
        await asyncio.sleep(0)

    async def close(self) -> None:
        tasks = [t for t in (self._engine_task, self._dispatcher_task) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._engine_task = self._dispatcher_task = None

    async def load(self, steps: Iterable[ExecutionStep], address: Optional[str] = None,
                   binary: Optional[str] = None) -> List[str]:
        """
        Save the trace and wait for the engine to accept it.

        Args:
            steps: The recorded execution steps
            address: Address the transaction calls, pushed as the first frame
            binary: Creation code, for contract-creation transactions

        Returns:
            The deduplicated CALL/DELEGATECALL targets found in the trace
        """
        if self._engine_task is None:
            await self.start()
        if self.trace.loaded:
            raise RuntimeError("A trace is already loaded; start a new session")

        received = self.store.take(events.RECEIVE_ADDRESSES)
        self.store.put(events.save_steps(steps))
        event = await received

        if address:
            self.store.put(events.call(address))
        elif binary:
            self.store.put(events.create(binary))

        logger.info("loaded %d steps, %d call target(s)", self.trace.length, len(event["addresses"]))
        return list(event["addresses"])

    async def load_struct_logs(self, struct_logs: List[dict], **kwargs) -> List[str]:
        """Load a ``debug_traceTransaction`` result's ``structLogs``."""
        return await self.load(steps_from_struct_logs(struct_logs), **kwargs)

    # -- control -----------------------------------------------------------

    async def _command(self, event: events.Event) -> bool:
        """Issue a command and wait for its cycle. True if it ran to completion."""
        if not self.trace.loaded:
            raise TraceNotLoadedError()
        self._raise_if_crashed()
        running = self._running or self.dispatcher.active
        if running is not None:
            raise CommandInProgressError(event.type, running)

        self._running = event.type
        try:
            ended = self.store.take(events.END_STEP)
            self.store.put(event)
            done, _ = await asyncio.wait({ended, self._dispatcher_task},
                                         return_when=asyncio.FIRST_COMPLETED)
        finally:
            self._running = None
        self._raise_if_crashed()
        if ended not in done:
            ended.cancel()
            return False
        return not ended.result()["interrupted"]

    def _raise_if_crashed(self) -> None:
        if self._dispatcher_task is not None and self._dispatcher_task.done():
            # Re-raises the algorithm's exception
            self._dispatcher_task.result()

    async def advance(self) -> bool:
        return await self._command(events.advance())

    async def step_next(self) -> bool:
        return await self._command(events.step_next())

    async def step_into(self) -> bool:
        return await self._command(events.step_into())

    async def step_over(self) -> bool:
        return await self._command(events.step_over())

    async def step_out(self) -> bool:
        return await self._command(events.step_out())

    async def continue_until(self, *breakpoints: Breakpoint) -> bool:
        return await self._command(events.continue_until(*breakpoints))

    def interrupt(self) -> None:
        self.store.put(events.interrupt())

    # -- state -------------------------------------------------------------

    @property
    def trace(self):
        return self.engine.state

    @property
    def cursor(self) -> int:
        return self.trace.cursor

    @property
    def finished(self) -> bool:
        return self.trace.finished

    @property
    def current_step(self) -> Optional[ExecutionStep]:
        return self.trace.next_step

    @property
    def addresses(self) -> List[str]:
        return list(self.trace.addresses)

    @property
    def call_stack(self) -> List[CallFrame]:
        return list(self.tracker.state.frames)

    @property
    def current_call(self) -> CallFrame:
        return self.tracker.state.current

    @property
    def function_depth(self) -> int:
        return self.view.function_depth()

    @property
    def source_range(self):
        return self.view.next_source_range()

    @property
    def node(self):
        return self.view.next_node()

    def bindings(self, tree_id: Optional[int] = None) -> Dict[int, object]:
        """Variable bindings of a tree (default: the tree of the current step)."""
        if tree_id is None:
            tree_id = self.view.current_tree_id()
        return self.resolver.state.for_tree(tree_id)
