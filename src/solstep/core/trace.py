"""
Trace progression.

The recorded trace is an immutable sequence of steps plus a cursor. The
cursor only moves forward, one TOCK at a time, until the trace is exhausted.
``TraceProgression`` owns that cursor: every NEXT request processes the step
under the cursor (TICK) and then either moves past it (TOCK) or, for the last
step, announces END_OF_TRACE.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from eth_utils import remove_0x_prefix

from ..evm.opcodes import ADDRESS_SCAN_OPCODES
from ..utils.exceptions import InvalidStepError, TraceNotLoadedError
from ..utils.helpers import dedupe, extract_address_from_word, normalize_word
from ..utils.logging import get_logger
from . import events
from .store import StateStore

logger = get_logger('trace')


@dataclass(frozen=True)
class ExecutionStep:
    """A single step in EVM execution trace."""
    pc: int
    op: str
    gas: int = 0
    gas_cost: int = 0
    depth: int = 1
    stack: Optional[Tuple[str, ...]] = ()  # bottom first, top last
    memory: Optional[str] = None
    storage: Optional[Dict[str, str]] = None
    error: Optional[str] = None
    # Calling context, when the trace source provides it
    address: Optional[str] = None
    code: Optional[str] = None

    @property
    def top(self) -> int:
        """Index of the top-of-stack slot, counted from the bottom."""
        return len(self.stack) - 1

    def format_stack(self, max_items: int = 3) -> str:
        """Format the top of the stack for display."""
        if not self.stack:
            return "[empty]"

        items = []
        for i, val in enumerate(reversed(self.stack[-max_items:])):
            items.append(f"[{i}] 0x{val.lstrip('0') or '0'}")

        if len(self.stack) > max_items:
            items.append(f"... +{len(self.stack) - max_items} more")

        return " ".join(items)


def _memory_hex(memory) -> Optional[str]:
    if memory is None:
        return None
    if isinstance(memory, (list, tuple)):
        # geth reports memory as a list of 32-byte words
        return "".join(normalize_word(word) for word in memory)
    return remove_0x_prefix(str(memory))


def step_from_struct_log(index: int, log: Dict[str, Any]) -> ExecutionStep:
    """Convert one ``debug_traceTransaction`` structLog entry."""
    try:
        pc = int(log["pc"])
        op = str(log["op"])
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidStepError(index, f"missing or malformed field {e}")

    stack = log.get("stack")
    return ExecutionStep(
        pc=pc,
        op=op,
        gas=int(log.get("gas", 0)),
        gas_cost=int(log.get("gasCost", 0)),
        depth=int(log.get("depth", 1)),
        stack=tuple(normalize_word(word) for word in stack) if stack is not None else None,
        memory=_memory_hex(log.get("memory")),
        storage=log.get("storage"),
        error=log.get("error"),
        address=log.get("address"),
        code=log.get("code"),
    )


def steps_from_struct_logs(struct_logs: List[Dict[str, Any]]) -> Tuple[ExecutionStep, ...]:
    return tuple(step_from_struct_log(i, log) for i, log in enumerate(struct_logs))


@dataclass
class TraceState:
    """Store slice: the saved steps and the cursor."""
    steps: Tuple[ExecutionStep, ...] = ()
    cursor: int = 0
    loaded: bool = False
    addresses: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.steps)

    @property
    def steps_remaining(self) -> int:
        return len(self.steps) - self.cursor

    @property
    def finished(self) -> bool:
        return self.loaded and self.cursor >= len(self.steps)

    @property
    def next_step(self) -> Optional[ExecutionStep]:
        """The step under the cursor, i.e. the one about to execute."""
        if self.cursor < len(self.steps):
            return self.steps[self.cursor]
        return None

    def reduce(self, event: events.Event) -> None:
        if event.type == events.SAVE_STEPS:
            self.steps = tuple(event["steps"])
            self.cursor = 0
            self.loaded = True
            self.addresses = ()
        elif event.type == events.RECEIVE_ADDRESSES:
            self.addresses = tuple(event["addresses"])
        elif event.type == events.TOCK:
            if self.cursor < len(self.steps):
                self.cursor += 1
        elif event.type == events.END_OF_TRACE:
            self.cursor = len(self.steps)


def call_addresses(steps, checksum: bool = False) -> List[str]:
    """
    Deduplicated CALL/DELEGATECALL targets, in first-seen order.

    The target is the second word from the top of the stack.
    """
    return dedupe(
        extract_address_from_word(step.stack[-2], checksum=checksum)
        for step in steps
        if step.op in ADDRESS_SCAN_OPCODES and step.stack and len(step.stack) >= 2
    )


class TraceProgression:
    """Drives the cursor in response to NEXT requests."""

    def __init__(self, store: StateStore, checksum_addresses: bool = False):
        self.store = store
        self.checksum_addresses = checksum_addresses
        self.state = TraceState()
        store.register('trace', self.state)

    async def wait_for_trace(self) -> asyncio.Queue:
        """
        Block until a trace is saved, publish its call targets and return the
        channel NEXT requests arrive on.
        """
        event = await self.store.take(events.SAVE_STEPS)
        # Listen before announcing the addresses so no NEXT slips past
        queue = self.store.subscribe(events.NEXT)
        addresses = call_addresses(event["steps"], checksum=self.checksum_addresses)
        logger.debug("trace saved: %d steps, %d call targets", len(event["steps"]), len(addresses))
        self.store.put(events.receive_addresses(addresses))
        return queue

    def next(self) -> None:
        if not self.state.loaded:
            raise TraceNotLoadedError()

        remaining = self.state.steps_remaining
        logger.debug("remaining: %d of %d", remaining, self.state.length)

        if remaining > 0:
            # updates derived state for the step under the cursor
            self.store.put(events.tick())
            remaining -= 1

        if remaining:
            self.store.put(events.tock())
        else:
            self.store.put(events.end_trace())

    async def run(self) -> None:
        """Wait for the trace, then serve every NEXT request in order."""
        queue = await self.wait_for_trace()
        try:
            while True:
                await queue.get()
                self.next()
        finally:
            self.store.unsubscribe(queue)
