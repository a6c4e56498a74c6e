"""
Event vocabulary of the debugger core.

Every state change goes through ``StateStore.put(event)``; these are the
event types and their constructors.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# Control commands
ADVANCE = "ADVANCE"
STEP_NEXT = "STEP_NEXT"
STEP_OVER = "STEP_OVER"
STEP_INTO = "STEP_INTO"
STEP_OUT = "STEP_OUT"
CONTINUE_UNTIL = "CONTINUE_UNTIL"
INTERRUPT = "INTERRUPT"
BEGIN_STEP = "BEGIN_STEP"
END_STEP = "END_STEP"

CONTROL_COMMANDS = (ADVANCE, STEP_NEXT, STEP_OVER, STEP_INTO, STEP_OUT, CONTINUE_UNTIL)

# Trace progression
SAVE_STEPS = "SAVE_STEPS"
RECEIVE_ADDRESSES = "RECEIVE_ADDRESSES"
NEXT = "NEXT"
TICK = "TICK"
TOCK = "TOCK"
END_OF_TRACE = "END_OF_TRACE"

# Call stack
CALL = "CALL"
CREATE = "CREATE"
RETURN_CALL = "RETURN_CALL"

# Function depth
JUMP = "JUMP"

# Variable bindings
ASSIGN = "ASSIGN"


@dataclass(frozen=True)
class Event:
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key):
        return self.payload[key]

    def get(self, key, default=None):
        return self.payload.get(key, default)


def command(command_type: str, **payload) -> Event:
    return Event(command_type, payload)


def advance() -> Event:
    return Event(ADVANCE)


def step_next() -> Event:
    return Event(STEP_NEXT)


def step_over() -> Event:
    return Event(STEP_OVER)


def step_into() -> Event:
    return Event(STEP_INTO)


def step_out() -> Event:
    return Event(STEP_OUT)


def continue_until(*breakpoints) -> Event:
    return Event(CONTINUE_UNTIL, {"breakpoints": tuple(breakpoints)})


def interrupt() -> Event:
    return Event(INTERRUPT)


def begin_step(command_type: str) -> Event:
    return Event(BEGIN_STEP, {"command": command_type})


def end_step(command_type: str, interrupted: bool) -> Event:
    return Event(END_STEP, {"command": command_type, "interrupted": interrupted})


def save_steps(steps) -> Event:
    return Event(SAVE_STEPS, {"steps": tuple(steps)})


def receive_addresses(addresses) -> Event:
    return Event(RECEIVE_ADDRESSES, {"addresses": tuple(addresses)})


def next_step() -> Event:
    return Event(NEXT)


def tick() -> Event:
    return Event(TICK)


def tock() -> Event:
    return Event(TOCK)


def end_trace() -> Event:
    return Event(END_OF_TRACE)


def call(address: str) -> Event:
    return Event(CALL, {"address": address})


def create(binary: Optional[str]) -> Event:
    return Event(CREATE, {"binary": binary})


def return_call() -> Event:
    return Event(RETURN_CALL)


def jump(delta: int) -> Event:
    return Event(JUMP, {"delta": delta})


def assign(tree_id: int, assignments: Dict[int, Any]) -> Event:
    return Event(ASSIGN, {"tree_id": tree_id, "assignments": dict(assignments)})
