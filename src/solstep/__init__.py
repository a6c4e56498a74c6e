"""
solstep - source-level stepping core for Solidity execution traces
"""

__version__ = "0.1.0"

# Session
from .session import DebugSession
from .config import DebuggerConfig

# Core components
from .core import (
    StateStore,
    ExecutionStep,
    TraceProgression,
    CallFrame,
    CallStackTracker,
    StackLocation,
    StorageLocation,
    VariableResolver,
    Breakpoint,
    ControlDispatcher,
)
from .evm.view import Program, ProgramRegistry, SolidityView

# Parsers
from .parsers import (
    CompiledTree,
    NodeKind,
    ProgramMap,
    SourceRange,
)

# Utilities
from .utils import (
    SolstepError,
    setup_logging,
    get_logger,
)

__all__ = [
    # Version
    '__version__',
    # Session
    'DebugSession',
    'DebuggerConfig',
    # Core
    'StateStore',
    'ExecutionStep',
    'TraceProgression',
    'CallFrame',
    'CallStackTracker',
    'StackLocation',
    'StorageLocation',
    'VariableResolver',
    'Breakpoint',
    'ControlDispatcher',
    'Program',
    'ProgramRegistry',
    'SolidityView',
    # Parsers
    'CompiledTree',
    'NodeKind',
    'ProgramMap',
    'SourceRange',
    # Utils
    'SolstepError',
    'setup_logging',
    'get_logger',
]
