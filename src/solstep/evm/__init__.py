"""
EVM-facing helpers: opcode classification and the read accessors
(``solstep.evm.view``) the stepping core queries.
"""

from .opcodes import (
    JUMP_OPCODES,
    CALL_OPCODES,
    CREATE_OPCODES,
    HALTING_OPCODES,
    is_jump,
    is_call,
    is_create,
    is_halting,
)

__all__ = [
    'JUMP_OPCODES',
    'CALL_OPCODES',
    'CREATE_OPCODES',
    'HALTING_OPCODES',
    'is_jump',
    'is_call',
    'is_create',
    'is_halting',
]
