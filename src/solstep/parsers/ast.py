"""
Compiled Solidity AST access.

Indexes a solc compact-JSON AST by node id and by pointer (the path of keys
and list indices from the tree root, rendered like a JSON pointer), and
answers "which node does this source range belong to".
"""

import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..utils.exceptions import ASTError, NodeNotFoundError
from .source_map import parse_src

Pointer = Tuple[Any, ...]


class NodeKind(Enum):
    """The node types the stepping core distinguishes; everything else is OTHER."""
    FUNCTION_DEFINITION = "FunctionDefinition"
    CONTRACT_DEFINITION = "ContractDefinition"
    VARIABLE_DECLARATION = "VariableDeclaration"
    OTHER = "Other"

    @classmethod
    def of(cls, node_type: str) -> "NodeKind":
        try:
            return cls(node_type)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class ASTNode:
    id: int
    node_type: str
    start: int
    length: int
    file_index: int
    pointer: Pointer
    raw: Dict[str, Any]

    @property
    def kind(self) -> NodeKind:
        return NodeKind.of(self.node_type)

    @property
    def pointer_string(self) -> str:
        return format_pointer(self.pointer)

    def parameter_pointers(self, group: str) -> List[Pointer]:
        """
        Pointers to the declarations of ``parameters`` or ``returnParameters``
        of a FunctionDefinition, in declaration order.
        """
        declared = self.raw.get(group) or {}
        return [
            self.pointer + (group, "parameters", i)
            for i in range(len(declared.get("parameters", [])))
        ]


def format_pointer(pointer: Pointer) -> str:
    return "".join(f"/{part}" for part in pointer)


class CompiledTree:
    """
    One compiled source unit's AST.

    Args:
        ast: The ``ast`` object of a solc standard-json ``sources`` entry
        index: Tree id (the source's position in the compilation's source list)
    """

    def __init__(self, ast: Dict[str, Any], index: int = 0):
        if not isinstance(ast, dict) or "nodeType" not in ast:
            raise ASTError("AST root must be a node object with a nodeType")
        self.ast = ast
        self.index = index
        self.nodes_by_id: Dict[int, ASTNode] = {}
        self.nodes_by_pointer: Dict[Pointer, ASTNode] = {}
        for node in self._walk(ast, ()):
            self.nodes_by_id[node.id] = node
            self.nodes_by_pointer[node.pointer] = node

    def _walk(self, value: Any, pointer: Pointer) -> Iterator[ASTNode]:
        if isinstance(value, dict):
            if "nodeType" in value and "id" in value and "src" in value:
                start, length, file_index = parse_src(value["src"])
                yield ASTNode(
                    id=value["id"],
                    node_type=value["nodeType"],
                    start=start,
                    length=length,
                    file_index=file_index,
                    pointer=pointer,
                    raw=value,
                )
            for key, child in value.items():
                yield from self._walk(child, pointer + (key,))
        elif isinstance(value, list):
            for i, child in enumerate(value):
                yield from self._walk(child, pointer + (i,))

    def resolve(self, pointer: Pointer) -> ASTNode:
        node = self.nodes_by_pointer.get(tuple(pointer))
        if node is None:
            raise NodeNotFoundError(format_pointer(pointer))
        return node

    def node(self, node_id: int) -> ASTNode:
        node = self.nodes_by_id.get(node_id)
        if node is None:
            raise NodeNotFoundError(f"id {node_id}")
        return node

    def find_range(self, start: int, length: int) -> Optional[ASTNode]:
        """
        Node for a source range: an exact match if one exists, otherwise the
        narrowest node enclosing the range. Ties go to the deepest node.
        """
        best = None
        for node in self.nodes_by_pointer.values():
            if node.start > start or node.start + node.length < start + length:
                continue
            if best is None:
                best = node
            elif node.length < best.length:
                best = node
            elif node.length == best.length and len(node.pointer) > len(best.pointer):
                best = node
        return best

    @functools.cached_property
    def scopes(self) -> Dict[int, Dict[str, Any]]:
        """
        Scope tables per contract: ``{contract id: {"variables": [decls]}}``
        where the declarations are this contract's state variables and those
        inherited through ``linearizedBaseContracts`` (most base first).
        """
        contracts = {
            node.id: node for node in self.nodes_by_id.values()
            if node.kind is NodeKind.CONTRACT_DEFINITION
        }
        own = {
            contract_id: [
                {"name": child.get("name"), "id": child["id"]}
                for child in contract.raw.get("nodes", [])
                if child.get("nodeType") == "VariableDeclaration"
                and child.get("stateVariable", False)
                and child.get("mutability", "mutable") == "mutable"
                and not child.get("constant", False)
            ]
            for contract_id, contract in contracts.items()
        }
        tables = {}
        for contract_id, contract in contracts.items():
            bases = contract.raw.get("linearizedBaseContracts") or [contract_id]
            variables = []
            for base_id in reversed(bases):
                variables.extend(own.get(base_id, []))
            tables[contract_id] = {"id": contract_id, "variables": variables}
        return tables

    @functools.cached_property
    def definitions(self) -> Dict[int, Dict[str, Any]]:
        """Inlined definitions: every node's raw JSON by id."""
        return {node_id: node.raw for node_id, node in self.nodes_by_id.items()}
