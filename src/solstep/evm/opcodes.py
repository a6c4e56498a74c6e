"""
Structural opcode classification.

Only the categories stepping and call-stack bookkeeping need: jumps, calls,
creates and halts. No opcode semantics are modelled.
"""

JUMP_OPCODES = frozenset({"JUMP", "JUMPI"})
CALL_OPCODES = frozenset({"CALL", "CALLCODE", "DELEGATECALL", "STATICCALL"})
CREATE_OPCODES = frozenset({"CREATE", "CREATE2"})
HALTING_OPCODES = frozenset({"STOP", "RETURN", "REVERT", "INVALID", "SELFDESTRUCT", "SUICIDE"})

# Call targets collected when a trace is loaded
ADDRESS_SCAN_OPCODES = frozenset({"CALL", "DELEGATECALL"})


def is_jump(op: str) -> bool:
    return op in JUMP_OPCODES


def is_call(op: str) -> bool:
    return op in CALL_OPCODES


def is_create(op: str) -> bool:
    return op in CREATE_OPCODES


def is_halting(op: str) -> bool:
    return op in HALTING_OPCODES
