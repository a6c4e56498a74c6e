"""
Read accessors over the store and the compiled programs.

``SolidityView`` answers every question the stepping algorithms, the
call-stack tracker and the variable resolver ask about "the step under the
cursor": its opcode classification, its source range and AST node, the
current function depth and the current call frame. It also owns the
function-depth slice, which follows the jump annotations of the source map.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..core import events
from ..core.store import StateStore
from ..parsers.ast import ASTNode, CompiledTree, Pointer
from ..parsers.source_map import ProgramMap, SourceRange
from ..utils.helpers import extract_address_from_word
from ..utils.logging import get_logger
from .opcodes import is_call, is_create, is_halting, is_jump

logger = get_logger('view')


@dataclass
class Program:
    """A contract's runtime source map and the ASTs of its sources by file index."""
    program_map: ProgramMap
    trees: Dict[int, CompiledTree] = field(default_factory=dict)

    def tree_for(self, source_range: Optional[SourceRange]) -> Optional[CompiledTree]:
        if source_range is None:
            return None
        return self.trees.get(source_range.file_index)


class ProgramRegistry:
    """Programs by deployed address or by creation code, with a fallback."""

    def __init__(self, default: Optional[Program] = None):
        self.default = default
        self.by_address: Dict[str, Program] = {}
        self.by_binary: Dict[str, Program] = {}

    def add(self, program: Program, address: Optional[str] = None,
            binary: Optional[str] = None) -> None:
        if address:
            self.by_address[address.lower()] = program
        if binary:
            self.by_binary[binary.lower()] = program
        if self.default is None:
            self.default = program

    def lookup(self, address: Optional[str] = None, binary: Optional[str] = None) -> Optional[Program]:
        if address and address.lower() in self.by_address:
            return self.by_address[address.lower()]
        if binary and binary.lower() in self.by_binary:
            return self.by_binary[binary.lower()]
        return self.default


@dataclass
class SolidityState:
    """Store slice: how many internal function calls deep execution is."""
    initial_depth: int = 1
    function_depth: int = 1

    def reduce(self, event: events.Event) -> None:
        if event.type == events.SAVE_STEPS:
            self.function_depth = self.initial_depth
        elif event.type == events.JUMP:
            self.function_depth = max(0, self.function_depth + event["delta"])


class SolidityView:
    def __init__(self, store: StateStore, programs: ProgramRegistry = None,
                 initial_function_depth: int = 1, checksum_addresses: bool = False):
        self.store = store
        self.programs = programs or ProgramRegistry()
        self.checksum_addresses = checksum_addresses
        self.solidity = SolidityState(initial_function_depth, initial_function_depth)
        self._tick_frame = None
        store.register('solidity', self.solidity)
        store.listen([events.TICK], self._hold_frame_on_tick)
        store.listen([events.TICK], self._function_depth_on_tick)
        store.listen([events.TOCK, events.END_OF_TRACE], self._release_frame)

    def _hold_frame_on_tick(self, event: events.Event) -> None:
        # Frame the processed step runs in, before its own CALL, CREATE or
        # halt changes the stack
        self._tick_frame = self.current_call()

    def _release_frame(self, event: events.Event) -> None:
        self._tick_frame = None

    def _function_depth_on_tick(self, event: events.Event) -> None:
        jump_type = self.next_jump_type()
        if jump_type == "i":
            self.store.put(events.jump(1))
        elif jump_type == "o":
            self.store.put(events.jump(-1))

    # -- trace -------------------------------------------------------------

    @property
    def trace(self):
        return self.store.slice('trace')

    def next_step(self):
        return self.trace.next_step

    def next_state(self):
        """Machine state (stack, memory, storage) of the step under the cursor."""
        return self.trace.next_step

    def finished(self) -> bool:
        return self.trace.finished

    # -- evm ---------------------------------------------------------------

    def current_call(self):
        return self.store.slice('callstack').current

    def _next_op(self) -> Optional[str]:
        step = self.next_step()
        return step.op if step else None

    def next_is_jump(self) -> bool:
        return is_jump(self._next_op())

    def next_is_call(self) -> bool:
        return is_call(self._next_op())

    def next_is_create(self) -> bool:
        return is_create(self._next_op())

    def next_is_halting(self) -> bool:
        return is_halting(self._next_op())

    def next_call_address(self) -> Optional[str]:
        step = self.next_step()
        if not step or not step.stack or len(step.stack) < 2:
            return None
        return extract_address_from_word(step.stack[-2], checksum=self.checksum_addresses)

    def next_create_binary(self) -> Optional[str]:
        """Init code of a CREATE/CREATE2: ``memory[offset:offset+size]``."""
        step = self.next_step()
        if not step or not step.stack or len(step.stack) < 3 or not step.memory:
            return None
        # value, offset, size from the top of the stack
        offset = int(step.stack[-2], 16)
        size = int(step.stack[-3], 16)
        start, end = offset * 2, (offset + size) * 2
        if end > len(step.memory):
            return None
        return "0x" + step.memory[start:end]

    # -- solidity ----------------------------------------------------------

    def function_depth(self) -> int:
        return self.solidity.function_depth

    def _program(self) -> Optional[Program]:
        step = self.next_step()
        if step is not None and step.address:
            return self.programs.lookup(address=step.address)
        frame = self._tick_frame if self._tick_frame is not None else self.current_call()
        return self.programs.lookup(address=frame.address, binary=frame.binary)

    def next_jump_type(self) -> str:
        step = self.next_step()
        program = self._program()
        if step is None or program is None:
            return "-"
        return program.program_map.jump_type(step.pc)

    def next_source_range(self) -> Optional[SourceRange]:
        step = self.next_step()
        program = self._program()
        if step is None or program is None:
            return None
        return program.program_map.source_range(step.pc)

    def next_is_multiline(self) -> bool:
        source_range = self.next_source_range()
        return source_range is not None and source_range.is_multiline

    # -- ast ---------------------------------------------------------------

    def current_tree(self) -> Optional[CompiledTree]:
        program = self._program()
        if program is None:
            return None
        return program.tree_for(self.next_source_range())

    def current_tree_id(self) -> Optional[int]:
        tree = self.current_tree()
        return tree.index if tree else None

    def next_node(self) -> Optional[ASTNode]:
        source_range = self.next_source_range()
        tree = self.current_tree()
        if source_range is None or tree is None:
            return None
        return tree.find_range(source_range.start, source_range.length)

    def next_pointer(self) -> Optional[Pointer]:
        node = self.next_node()
        return node.pointer if node else None

    def scopes(self) -> Dict[int, dict]:
        tree = self.current_tree()
        return tree.scopes if tree else {}

    def definitions(self) -> Dict[int, dict]:
        tree = self.current_tree()
        return tree.definitions if tree else {}
