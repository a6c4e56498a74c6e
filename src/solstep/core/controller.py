"""
Control dispatcher and stepping algorithms.

The dispatcher takes one control command at a time, announces it with
BEGIN_STEP and runs the matching algorithm as a task raced against
INTERRUPT. Every algorithm is built on ``advance``, which processes exactly
one trace step. An interrupted algorithm simply stops issuing advances: the
steps it already processed stay processed.
"""

import asyncio
import contextlib
from typing import Optional

from ..parsers.ast import NodeKind
from ..utils.exceptions import TraceNotLoadedError, UnknownCommandError
from ..utils.logging import get_logger
from . import events
from .breakpoints import any_hit
from .store import StateStore

logger = get_logger('controller')


def _same_range(a, b) -> bool:
    if a is None or b is None:
        return a is b
    return a.same_as(b)


def _same_line(a, b) -> bool:
    if a is None or b is None:
        return False
    return a.lines.start.line == b.lines.start.line


def _contains(outer, inner) -> bool:
    if outer is None or inner is None:
        return False
    return outer.contains(inner)


class ControlDispatcher:
    def __init__(self, store: StateStore, view):
        self.store = store
        self.view = view
        self.active: Optional[str] = None
        self.algorithms = {
            events.ADVANCE: self.advance,
            events.STEP_NEXT: self.step_next,
            events.STEP_OVER: self.step_over,
            events.STEP_INTO: self.step_into,
            events.STEP_OUT: self.step_out,
            events.CONTINUE_UNTIL: self.continue_until,
        }
        store.listen(events.CONTROL_COMMANDS, self._on_command)

    def _on_command(self, event: events.Event) -> None:
        if self.active is not None:
            logger.warning("%s ignored: %s still running", event.type, self.active)

    async def run(self) -> None:
        while True:
            logger.debug("waiting for control action")
            action = await self.store.take(*events.CONTROL_COMMANDS)
            logger.debug("got control action %s", action.type)
            await self.dispatch(action)

    async def dispatch(self, action: events.Event) -> bool:
        """
        Run one command to completion or interruption.

        Returns:
            True if INTERRUPT arrived before the algorithm finished
        """
        algorithm = self.algorithms.get(action.type)
        if algorithm is None:
            raise UnknownCommandError(action.type)

        self.store.put(events.begin_step(action.type))
        self.active = action.type

        interrupt = self.store.take(events.INTERRUPT)
        execution = asyncio.ensure_future(algorithm(action))
        try:
            await asyncio.wait({execution, interrupt}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            interrupted = not execution.done()
            if interrupted:
                execution.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await execution
            interrupt.cancel()
            self.active = None

        if interrupted:
            logger.info("%s interrupted at step %d", action.type, self.view.trace.cursor)
        self.store.put(events.end_step(action.type, interrupted))

        if not interrupted:
            # A failing algorithm is a logic defect: surface it
            execution.result()
        return interrupted

    # -- primitives --------------------------------------------------------

    async def advance(self, action: events.Event = None) -> None:
        """Advance the state by one instruction."""
        if not self.view.trace.loaded:
            raise TraceNotLoadedError()

        completion = self.store.take(events.TOCK, events.END_OF_TRACE)
        self.store.put(events.next_step())
        await completion

    async def step_next(self, action: events.Event = None) -> None:
        """
        Step to the next logical code segment.

        Several instructions usually map to the same source range; they are
        one step for the user. ContractDefinition nodes are never a stopping
        point.
        """
        starting_range = self.view.next_source_range()

        while True:
            await self.advance()
            if self.view.finished():
                return

            next_node = self.view.next_node()
            next_range = self.view.next_source_range()

            # HACK - just skip over ContractDefinition nodes
            if next_node is not None and next_node.kind is NodeKind.CONTRACT_DEFINITION:
                continue
            # Unmapped instructions are not a place to stop either
            if next_range is None or _same_range(next_range, starting_range):
                continue
            return

    async def step_into(self, action: events.Event = None) -> None:
        """
        Step into the function call at the current position.

        Intermediate steps inside the current range (evaluating arguments,
        say) are skipped until a call is entered; a step outside the range
        ends the step.
        """
        if self.view.next_is_jump():
            await self.step_next()
            return

        if self.view.next_is_multiline():
            await self.step_over()
            return

        starting_depth = self.view.function_depth()
        starting_range = self.view.next_source_range()

        while True:
            await self.step_next()
            if self.view.finished():
                return

            current_depth = self.view.function_depth()
            next_range = self.view.next_source_range()

            if not (current_depth <= starting_depth and _contains(starting_range, next_range)):
                return

    async def step_out(self, action: events.Event = None) -> None:
        """Run until function depth decreases."""
        if self.view.next_is_multiline():
            await self.step_over()
            return

        starting_depth = self.view.function_depth()

        while True:
            await self.step_next()
            if self.view.finished():
                return

            if self.view.function_depth() < starting_depth:
                return

    async def step_over(self, action: events.Event = None) -> None:
        """
        Step to the next line at the same function depth, running any
        nested calls to completion.
        """
        starting_depth = self.view.function_depth()
        starting_range = self.view.next_source_range()

        while True:
            await self.step_next()
            if self.view.finished():
                return

            current_depth = self.view.function_depth()
            next_range = self.view.next_source_range()

            keep_stepping = (
                # we haven't jumped out
                not current_depth < starting_depth and
                # deeper calls are skipped; at the same depth, wait for a new line
                (current_depth > starting_depth or _same_line(next_range, starting_range))
            )
            if not keep_stepping:
                return

    async def continue_until(self, action: events.Event) -> None:
        """Step until the current call frame and location match a breakpoint."""
        breakpoints = action["breakpoints"]

        while True:
            await self.step_next()
            if self.view.finished():
                return

            if any_hit(breakpoints, self.view.current_call(),
                       self.view.next_source_range(), self.view.next_node()):
                logger.debug("breakpoint hit at step %d", self.view.trace.cursor)
                return
