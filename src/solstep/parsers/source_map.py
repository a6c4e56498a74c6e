"""
Source Map Parser

Parses solc's compressed ``srcmap-runtime`` and resolves program counters to
source ranges with line/column information.
Format specification: https://docs.soliditylang.org/en/latest/internals/source_mappings.html

Each srcmap entry is `s:l:f:j:m` where:
- s = byte offset in source file
- l = length in bytes
- f = source file index
- j = jump type (i=into function, o=out of function, -=regular)
- m = modifier depth

Entries are separated by `;`. Empty fields inherit from previous entry.
"""

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from ..utils.exceptions import SourceMapParseError


# EVM opcodes PUSH1 (0x60) .. PUSH32 (0x7f) carry 1..32 bytes of immediate data
PUSH_OPCODES = {0x60 + i: i + 1 for i in range(32)}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class SourceMapEntry:
    """Single source mapping entry."""
    offset: int      # s - byte offset in source file
    length: int      # l - length in bytes
    file_index: int  # f - source file index (-1 = no source)
    jump_type: str   # j - jump type (i/o/-)
    modifier_depth: int  # m - modifier depth

    def is_valid(self) -> bool:
        """Check if this entry points to valid source."""
        return self.file_index >= 0 and self.offset >= 0


@dataclass(frozen=True)
class LineColumn:
    line: int
    column: int


@dataclass(frozen=True)
class LineSpan:
    start: LineColumn
    end: LineColumn


@dataclass(frozen=True)
class SourceRange:
    """
    A byte span of source text with its derived line/column positions.

    Equality for stepping purposes is ``same_as``: start and length only.
    """
    start: int
    length: int
    lines: LineSpan
    file_index: int = 0

    @property
    def end(self) -> int:
        return self.start + self.length

    def same_as(self, other: "SourceRange") -> bool:
        return self.start == other.start and self.length == other.length

    def contains(self, other: "SourceRange") -> bool:
        """Closed containment: other starts on/after and ends on/before self."""
        return other.start >= self.start and other.end <= self.end

    @property
    def is_multiline(self) -> bool:
        return self.lines.start.line != self.lines.end.line


class LineIndex:
    """Byte offset -> (line, column) lookup for a single source text."""

    def __init__(self, source: str):
        self.source = source
        # Offsets at which each line starts
        self._line_starts = [0]
        for i, ch in enumerate(source):
            if ch == '\n':
                self._line_starts.append(i + 1)

    def line_col(self, offset: int) -> LineColumn:
        """1-based line and column for a byte offset."""
        offset = max(0, min(offset, len(self.source)))
        line = bisect_right(self._line_starts, offset)
        column = offset - self._line_starts[line - 1] + 1
        return LineColumn(line, column)

    def range(self, start: int, length: int, file_index: int = 0) -> SourceRange:
        # The end position is the last character covered by the range
        last = start + length - 1 if length > 0 else start
        return SourceRange(
            start=start,
            length=length,
            lines=LineSpan(self.line_col(start), self.line_col(last)),
            file_index=file_index,
        )


@dataclass
class ProgramMap:
    """
    Everything needed to turn a program counter of one contract's runtime
    code into a source range.
    """
    contract_name: str
    sources: List[str]  # Source texts by file index
    entries: List[SourceMapEntry]  # One per instruction
    pc_to_instruction_index: Dict[int, int]
    _indexes: Dict[int, LineIndex] = field(default_factory=dict, repr=False)

    def entry_at(self, pc: int) -> Optional[SourceMapEntry]:
        """Get source mapping entry for a specific PC."""
        instr_idx = self.pc_to_instruction_index.get(pc)
        if instr_idx is None or instr_idx >= len(self.entries):
            return None
        return self.entries[instr_idx]

    def line_index(self, file_index: int) -> LineIndex:
        if file_index not in self._indexes:
            self._indexes[file_index] = LineIndex(self.sources[file_index])
        return self._indexes[file_index]

    def source_range(self, pc: int) -> Optional[SourceRange]:
        entry = self.entry_at(pc)
        if entry is None:
            return None
        file_index = entry.file_index
        if not 0 <= file_index < len(self.sources):
            # Compiler-generated code: report the raw span without line info
            zero = LineColumn(0, 0)
            return SourceRange(entry.offset, entry.length, LineSpan(zero, zero), file_index)
        return self.line_index(file_index).range(entry.offset, entry.length, file_index)

    def jump_type(self, pc: int) -> str:
        entry = self.entry_at(pc)
        return entry.jump_type if entry else "-"

    @classmethod
    def from_compiler_output(
        cls,
        contract_name: str,
        bytecode: Union[str, bytes],
        srcmap: str,
        sources: List[str],
    ) -> "ProgramMap":
        """
        Build a map from ``bin-runtime`` and ``srcmap-runtime`` as emitted in
        solc's combined.json.

        Args:
            contract_name: Name of the contract
            bytecode: Runtime bytecode as hex (0x optional) or raw bytes
            srcmap: Compressed source map string
            sources: Source texts in ``sourceList`` order
        """
        if isinstance(bytecode, str):
            hex_code = bytecode[2:] if bytecode.startswith('0x') else bytecode
            try:
                bytecode = bytes.fromhex(hex_code)
            except ValueError as e:
                raise SourceMapParseError(
                    f"Invalid runtime bytecode for {contract_name}: {e}",
                    source=contract_name
                )
        return cls(
            contract_name=contract_name,
            sources=list(sources),
            entries=parse_srcmap(srcmap),
            pc_to_instruction_index=build_pc_to_instruction_map(bytecode),
        )


# =============================================================================
# Parsing
# =============================================================================

def build_pc_to_instruction_map(bytecode: bytes) -> Dict[int, int]:
    """
    Build mapping from PC (bytecode offset) to instruction index.

    PUSH opcodes are followed by N bytes of data that are not instructions.
    """
    pc_to_idx = {}
    pc = 0
    instr_idx = 0

    while pc < len(bytecode):
        pc_to_idx[pc] = instr_idx
        opcode = bytecode[pc]

        if opcode in PUSH_OPCODES:
            pc += 1 + PUSH_OPCODES[opcode]
        else:
            pc += 1

        instr_idx += 1

    return pc_to_idx


def _field(fields: List[str], index: int, previous, convert=int):
    if len(fields) > index and fields[index].strip():
        return convert(fields[index])
    return previous


def parse_srcmap(srcmap: str) -> List[SourceMapEntry]:
    """
    Parse srcmap string into list of SourceMapEntry.

    Format: "s:l:f:j:m;s:l:f:j:m;..."
    Empty fields inherit from previous entry.
    """
    if not srcmap:
        return []

    entries = []
    previous = SourceMapEntry(offset=0, length=0, file_index=-1, jump_type="-", modifier_depth=0)

    for position, part in enumerate(srcmap.split(";")):
        fields = part.split(":")
        try:
            entry = SourceMapEntry(
                offset=_field(fields, 0, previous.offset),
                length=_field(fields, 1, previous.length),
                file_index=_field(fields, 2, previous.file_index),
                jump_type=_field(fields, 3, previous.jump_type, str.strip),
                modifier_depth=_field(fields, 4, previous.modifier_depth),
            )
        except ValueError as e:
            raise SourceMapParseError(
                f"Malformed srcmap entry #{position} '{part}': {e}",
                entry=position
            )
        if entry.jump_type not in ("i", "o", "-"):
            raise SourceMapParseError(
                f"Unknown jump type '{entry.jump_type}' in srcmap entry #{position}",
                entry=position
            )
        entries.append(entry)
        previous = entry

    return entries


def parse_src(src: str) -> Tuple[int, int, int]:
    """Parse an AST node's ``src`` attribute ("start:length:file")."""
    try:
        start, length, file_index = (int(part) for part in src.split(":"))
    except ValueError:
        raise SourceMapParseError(f"Malformed src attribute '{src}'", source=src)
    return start, length, file_index
