"""
Parsers module for solstep.

This module contains the readers for compiler output:
- Source maps (srcmap-runtime) and line/column ranges
- Compact-JSON ASTs and scope tables
- Static storage layout of state variables
"""

from .source_map import (
    SourceMapEntry,
    SourceRange,
    LineColumn,
    LineSpan,
    LineIndex,
    ProgramMap,
    parse_srcmap,
    parse_src,
    build_pc_to_instruction_map,
)
from .ast import (
    ASTNode,
    CompiledTree,
    NodeKind,
    format_pointer,
)
from .storage import Allocation, allocate_declarations

__all__ = [
    # Source maps
    'SourceMapEntry',
    'SourceRange',
    'LineColumn',
    'LineSpan',
    'LineIndex',
    'ProgramMap',
    'parse_srcmap',
    'parse_src',
    'build_pc_to_instruction_map',
    # AST
    'ASTNode',
    'CompiledTree',
    'NodeKind',
    'format_pointer',
    # Storage
    'Allocation',
    'allocate_declarations',
]
