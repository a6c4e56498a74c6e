import pytest

from solstep.parsers.ast import CompiledTree, NodeKind, format_pointer
from solstep.parsers.storage import allocate_declarations
from solstep.utils.exceptions import ASTError, NodeNotFoundError


class TestCompiledTree:
    def test_exact_range_wins(self, token_tree):
        assert token_tree.find_range(200, 100).id == 10
        assert token_tree.find_range(262, 10).id == 30

    def test_narrowest_enclosing_node(self, token_tree):
        # inside the function body but not a node of its own
        assert token_tree.find_range(285, 3).id == 16

    def test_tie_goes_to_the_deeper_node(self, token_tree):
        node = token_tree.find_range(0, 800)
        assert node.id == 2
        assert node.kind is NodeKind.CONTRACT_DEFINITION

    def test_range_outside_every_node(self, token_tree):
        assert token_tree.find_range(790, 20) is None

    def test_node_kinds(self, token_tree):
        assert token_tree.node(10).kind is NodeKind.FUNCTION_DEFINITION
        assert token_tree.node(30).kind is NodeKind.VARIABLE_DECLARATION
        assert token_tree.node(16).kind is NodeKind.OTHER

    def test_parameter_pointers_resolve_to_declarations(self, token_tree):
        function = token_tree.node(10)
        params = [token_tree.resolve(p).id for p in function.parameter_pointers("parameters")]
        returns = [token_tree.resolve(p).id for p in function.parameter_pointers("returnParameters")]
        assert params == [12, 13]
        assert returns == [15]
        assert format_pointer(function.pointer) == "/nodes/0/nodes/5"

    def test_unknown_references(self, token_tree):
        with pytest.raises(NodeNotFoundError):
            token_tree.node(999)
        with pytest.raises(NodeNotFoundError):
            token_tree.resolve(("nodes", 7))

    def test_root_must_be_a_node(self):
        with pytest.raises(ASTError):
            CompiledTree([])

    def test_scopes_hold_mutable_state_variables(self, token_tree):
        scope = token_tree.scopes[2]
        assert [v["name"] for v in scope["variables"]] == ["total", "flag", "owner", "balances"]

    def test_inherited_variables_come_first(self):
        ast = {
            "id": 1, "nodeType": "SourceUnit", "src": "0:200:0",
            "nodes": [
                {
                    "id": 2, "nodeType": "ContractDefinition", "src": "0:50:0",
                    "linearizedBaseContracts": [2],
                    "nodes": [{
                        "id": 3, "nodeType": "VariableDeclaration", "src": "10:10:0",
                        "name": "base", "stateVariable": True,
                        "typeName": {"nodeType": "ElementaryTypeName", "name": "uint8"},
                    }],
                },
                {
                    "id": 4, "nodeType": "ContractDefinition", "src": "60:50:0",
                    "linearizedBaseContracts": [4, 2],
                    "nodes": [{
                        "id": 5, "nodeType": "VariableDeclaration", "src": "70:10:0",
                        "name": "child", "stateVariable": True,
                        "typeName": {"nodeType": "ElementaryTypeName", "name": "uint8"},
                    }],
                },
            ],
        }
        tree = CompiledTree(ast)
        assert [v["id"] for v in tree.scopes[4]["variables"]] == [3, 5]

        layout = allocate_declarations(tree.scopes[4]["variables"], tree.definitions)
        assert layout.children == {
            3: {"slot": 0, "offset": 0, "size": 1},
            5: {"slot": 0, "offset": 1, "size": 1},
        }
        assert layout.slots_used == 1


def _var(node_id, type_name):
    return {"id": node_id, "nodeType": "VariableDeclaration", "typeName": type_name}


def _elementary(name):
    return {"nodeType": "ElementaryTypeName", "name": name}


class TestStorageLayout:
    def test_values_pack_until_the_slot_is_full(self):
        variables = [
            _var(1, _elementary("uint128")),
            _var(2, _elementary("uint64")),
            _var(3, _elementary("uint128")),
            _var(4, _elementary("address")),
            _var(5, _elementary("bool")),
        ]
        layout = allocate_declarations(variables, {})
        assert layout.children == {
            1: {"slot": 0, "offset": 0, "size": 16},
            2: {"slot": 0, "offset": 16, "size": 8},
            3: {"slot": 1, "offset": 0, "size": 16},
            4: {"slot": 2, "offset": 0, "size": 20},
            5: {"slot": 2, "offset": 20, "size": 1},
        }
        assert layout.slots_used == 3

    def test_static_arrays_and_structs_take_whole_slots(self):
        definitions = {
            50: {
                "id": 50,
                "nodeType": "StructDefinition",
                "members": [_var(51, _elementary("uint256")), _var(52, _elementary("bool"))],
            },
        }
        variables = [
            _var(1, _elementary("bool")),
            _var(2, {
                "nodeType": "ArrayTypeName",
                "baseType": _elementary("uint128"),
                "length": {"value": "3"},
            }),
            _var(3, {"nodeType": "UserDefinedTypeName", "referencedDeclaration": 50}),
            _var(4, {"nodeType": "ArrayTypeName", "baseType": _elementary("uint8")}),
            _var(5, _elementary("bytes4")),
        ]
        layout = allocate_declarations(variables, definitions)
        assert layout.children[1] == {"slot": 0, "offset": 0, "size": 1}
        # three uint128 need two slots
        assert layout.children[2] == {"slot": 1, "offset": 0, "size": 64}
        assert layout.children[3] == {"slot": 3, "offset": 0, "size": 64}
        # dynamic arrays keep only their length in the slot
        assert layout.children[4] == {"slot": 5, "offset": 0, "size": 32}
        assert layout.children[5] == {"slot": 6, "offset": 0, "size": 4}

    def test_contracts_and_enums_are_value_types(self):
        definitions = {
            60: {"id": 60, "nodeType": "ContractDefinition"},
            61: {"id": 61, "nodeType": "EnumDefinition"},
        }
        variables = [
            _var(1, {"nodeType": "UserDefinedTypeName", "referencedDeclaration": 60}),
            _var(2, {"nodeType": "UserDefinedTypeName", "referencedDeclaration": 61}),
        ]
        layout = allocate_declarations(variables, definitions)
        assert layout.children[2] == {"slot": 0, "offset": 20, "size": 1}

    def test_unknown_types_are_rejected(self):
        with pytest.raises(ASTError):
            allocate_declarations([_var(1, _elementary("fixed128x18"))], {})
        with pytest.raises(ASTError):
            allocate_declarations(
                [_var(1, {"nodeType": "UserDefinedTypeName", "referencedDeclaration": 9})], {}
            )
