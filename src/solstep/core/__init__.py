"""
Core module for solstep.

This module contains the execution-control core:
- StateStore: explicit state container driven by events
- TraceProgression: owns the trace cursor
- CallStackTracker: derives call frames from opcodes
- VariableResolver: binds declarations to stack/storage locations
- ControlDispatcher: the stepping commands
"""

from . import events
from .store import StateStore
from .trace import (
    ExecutionStep,
    TraceState,
    TraceProgression,
    call_addresses,
    step_from_struct_log,
    steps_from_struct_logs,
)
from .callstack import CallFrame, CallStackState, CallStackTracker
from .bindings import (
    StackLocation,
    StorageLocation,
    BindingState,
    VariableResolver,
)
from .breakpoints import Breakpoint
from .controller import ControlDispatcher

__all__ = [
    'events',
    'StateStore',
    'ExecutionStep',
    'TraceState',
    'TraceProgression',
    'call_addresses',
    'step_from_struct_log',
    'steps_from_struct_logs',
    'CallFrame',
    'CallStackState',
    'CallStackTracker',
    'StackLocation',
    'StorageLocation',
    'BindingState',
    'VariableResolver',
    'Breakpoint',
    'ControlDispatcher',
]
