"""
Static storage layout for contract state variables.

Follows solc's layout rules: value types are packed right-to-left into
32-byte slots in declaration order; a variable that does not fit in the
remaining bytes of the slot starts a new one; structs and static arrays
always start (and end) on a slot boundary; mappings and dynamic arrays
(including ``bytes``/``string``) occupy one full slot.
"""

import re
from typing import Any, Dict, List

from ..utils.exceptions import ASTError
from ..utils.helpers import WORD_SIZE

_SIZED = re.compile(r"^(u?int|bytes)(\d+)$")


def _elementary_size(name: str) -> int:
    if name in ("address", "address payable"):
        return 20
    if name == "bool":
        return 1
    if name in ("string", "bytes"):
        return WORD_SIZE
    if name in ("uint", "int"):
        return WORD_SIZE
    match = _SIZED.match(name)
    if match:
        bits_or_bytes = int(match.group(2))
        return bits_or_bytes if match.group(1) == "bytes" else bits_or_bytes // 8
    raise ASTError(f"Unsupported elementary type '{name}'")


class _Slots:
    """Size of a type in bytes if it packs, or in whole slots if it does not."""

    def __init__(self, size: int, whole_slots: bool):
        self.size = size
        self.whole_slots = whole_slots

    def slots(self) -> int:
        return self.size if self.whole_slots else 1


def _type_size(type_name: Dict[str, Any], definitions: Dict[int, Dict[str, Any]]) -> _Slots:
    node_type = type_name.get("nodeType")

    if node_type == "ElementaryTypeName":
        return _Slots(_elementary_size(type_name.get("name", "")), False)

    if node_type == "Mapping":
        return _Slots(1, True)

    if node_type == "ArrayTypeName":
        length = type_name.get("length")
        if length is None:
            return _Slots(1, True)
        count = int(length.get("value", "0"), 0)
        element = _type_size(type_name["baseType"], definitions)
        if element.whole_slots:
            return _Slots(count * element.size, True)
        per_slot = WORD_SIZE // element.size
        return _Slots(-(-count // per_slot), True)

    if node_type == "UserDefinedTypeName":
        referenced = definitions.get(type_name.get("referencedDeclaration"))
        if referenced is None:
            raise ASTError(
                f"Unresolved type reference {type_name.get('referencedDeclaration')}"
            )
        kind = referenced.get("nodeType")
        if kind == "ContractDefinition":
            return _Slots(20, False)
        if kind == "EnumDefinition":
            return _Slots(1, False)
        if kind == "UserDefinedValueTypeDefinition":
            return _type_size(referenced["underlyingType"], definitions)
        if kind == "StructDefinition":
            members = allocate_declarations(referenced.get("members", []), definitions)
            return _Slots(members.slots_used, True)
        raise ASTError(f"Unsupported user-defined type {kind}")

    if node_type == "FunctionTypeName":
        # External function pointers are address + selector
        external = type_name.get("visibility") == "external"
        return _Slots(24 if external else 8, False)

    raise ASTError(f"Unsupported type name node '{node_type}'")


class Allocation:
    """Result of laying out a list of declarations."""

    def __init__(self):
        self.children: Dict[int, Dict[str, int]] = {}
        self.slots_used = 0


def allocate_declarations(
    variables: List[Dict[str, Any]],
    definitions: Dict[int, Dict[str, Any]],
) -> Allocation:
    """
    Lay out declarations starting at slot 0.

    Args:
        variables: Declarations (``{"id": ...}``; full nodes or references
            resolvable through ``definitions``)
        definitions: Raw AST nodes by id

    Returns:
        Allocation whose ``children`` maps declaration id to
        ``{"slot", "offset", "size"}``; offset counts bytes from the
        low-order (right) end of the slot
    """
    allocation = Allocation()
    slot = 0
    offset = 0  # bytes used in the current slot

    for variable in variables:
        declaration = definitions.get(variable["id"], variable)
        type_name = declaration.get("typeName")
        if type_name is None:
            raise ASTError(f"Declaration {variable['id']} has no typeName")
        size = _type_size(type_name, definitions)

        if size.whole_slots:
            if offset:
                slot += 1
                offset = 0
            allocation.children[variable["id"]] = {
                "slot": slot, "offset": 0, "size": size.size * WORD_SIZE
            }
            slot += size.size
            continue

        if offset + size.size > WORD_SIZE:
            slot += 1
            offset = 0
        allocation.children[variable["id"]] = {
            "slot": slot, "offset": offset, "size": size.size
        }
        offset += size.size

    allocation.slots_used = slot + (1 if offset else 0)
    return allocation
