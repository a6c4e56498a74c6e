"""
Call-stack tracking.

The frame stack is derived purely from the opcodes seen so far: a call-class
step pushes a frame for its target address, a create-class step pushes a
frame for the code being deployed, a halting step pops.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..evm.opcodes import is_call, is_create, is_halting
from ..utils.helpers import format_address_display
from ..utils.logging import get_logger
from . import events
from .store import StateStore

logger = get_logger('callstack')


@dataclass(frozen=True)
class CallFrame:
    """One entry of the call stack: who is executing, and how deep."""
    address: Optional[str] = None
    binary: Optional[str] = None
    depth: int = 0


@dataclass
class CallStackState:
    """Store slice: the frames, innermost last."""
    frames: List[CallFrame] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.frames)

    @property
    def current(self) -> CallFrame:
        """Innermost frame; an empty frame when nothing is executing."""
        if self.frames:
            return self.frames[-1]
        return CallFrame()

    def reduce(self, event: events.Event) -> None:
        if event.type == events.SAVE_STEPS:
            self.frames = []
        elif event.type == events.CALL:
            self.frames.append(CallFrame(address=event["address"], depth=self.depth + 1))
        elif event.type == events.CREATE:
            self.frames.append(CallFrame(binary=event["binary"], depth=self.depth + 1))
        elif event.type == events.RETURN_CALL:
            if self.frames:
                self.frames.pop()


class CallStackTracker:
    """Publishes CALL / CREATE / RETURN_CALL for the step under the cursor."""

    def __init__(self, store: StateStore, view):
        self.store = store
        self.view = view
        self.state = CallStackState()
        store.register('callstack', self.state)
        store.listen([events.TICK], self.on_tick)

    def on_tick(self, event: events.Event) -> None:
        step = self.view.next_step()
        if step is None:
            return

        if is_call(step.op):
            address = self.view.next_call_address()
            logger.debug("got call to %s", format_address_display(address))
            self.store.put(events.call(address))

        elif is_create(step.op):
            binary = self.view.next_create_binary()
            logger.debug("got create (%s bytes of init code)",
                         len(binary) // 2 - 1 if binary else "unknown")
            self.store.put(events.create(binary))

        elif is_halting(step.op):
            logger.debug("got %s, returning from depth %d", step.op, self.state.depth)
            self.store.put(events.return_call())
