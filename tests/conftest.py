"""
Shared fixtures: a synthetic source file, a hand-built program map over it,
and a small compact-JSON AST.

Every source line is LINE_WIDTH bytes long, so ``TraceBuilder.at(line)``
gives byte offsets that land on a known line. The program map maps pc ``i``
to instruction ``i``, so each recorded step picks its own source mapping.
"""

import asyncio

import pytest

from solstep import DebugSession
from solstep.core.trace import ExecutionStep
from solstep.evm.view import Program, ProgramRegistry
from solstep.parsers.ast import CompiledTree
from solstep.parsers.source_map import ProgramMap, SourceMapEntry

LINE_WIDTH = 20
LINE_COUNT = 40
SOURCE = ("x" * (LINE_WIDTH - 1) + "\n") * LINE_COUNT

CONTRACT = "0x" + "c0" * 20


def word(value) -> str:
    """A 32-byte stack word from an int (hex strings pass through)."""
    if isinstance(value, int):
        return format(value, "x").zfill(64)
    return value


class TraceBuilder:
    """Assembles a trace and the source map that goes with it, one step at a time."""

    def __init__(self):
        self.rows = []

    @staticmethod
    def at(line: int, column: int = 0, length: int = 5):
        """(start, length) of a span on one line; columns are 0-based here."""
        return ((line - 1) * LINE_WIDTH + column, length)

    def step(self, op, src, jump="-", stack=None, memory=None):
        self.rows.append((op, src, jump, stack, memory))
        return self

    def lines(self, *lines, op="PUSH1"):
        """One step per line number, each with its own span."""
        for i, line in enumerate(lines):
            self.step(op, self.at(line, column=i % 10))
        return self

    def program(self, trees=None) -> Program:
        entries = [
            SourceMapEntry(offset=src[0], length=src[1], file_index=0,
                           jump_type=jump, modifier_depth=0)
            for _, src, jump, _, _ in self.rows
        ]
        program_map = ProgramMap(
            contract_name="Token",
            sources=[SOURCE],
            entries=entries,
            pc_to_instruction_index={pc: pc for pc in range(len(entries))},
        )
        return Program(program_map, trees or {})

    def steps(self):
        return [
            ExecutionStep(
                pc=pc,
                op=op,
                stack=tuple(word(v) for v in stack) if stack is not None else None,
                memory=memory,
            )
            for pc, (op, _, _, stack, memory) in enumerate(self.rows)
        ]

    def run(self, scenario, trees=None, address=CONTRACT, binary=None,
            others=(), **session_options):
        """
        Load the trace into a fresh session and run ``scenario(session)``.

        ``others`` are extra ``(program, address)`` pairs for the registry;
        the trace's own program stays the fallback.
        """
        registry = ProgramRegistry()
        registry.add(self.program(trees), address=address, binary=binary)
        for program, other_address in others:
            registry.add(program, address=other_address)

        async def main():
            async with DebugSession(registry, **session_options) as session:
                await session.load(self.steps(), address=address, binary=binary)
                return await scenario(session)

        return asyncio.run(main())


@pytest.fixture
def trace():
    return TraceBuilder()


def _elementary(node_id, name, src):
    return {"id": node_id, "nodeType": "ElementaryTypeName", "name": name, "src": src}


def _declaration(node_id, name, src, type_name, **extra):
    node = {
        "id": node_id,
        "nodeType": "VariableDeclaration",
        "name": name,
        "src": src,
        "typeName": type_name,
    }
    node.update(extra)
    return node


def token_ast():
    """
    contract Token {                        // 0:800
        uint256 total;                      // id 20, slot 0
        bool flag;                          // id 21, slot 1
        address owner;                      // id 22, slot 1 after flag
        mapping(address => uint) balances;  // id 23, slot 2
        uint256 constant CAP = 1;           // id 24, not in storage

        function transfer(address to, uint amount)  // id 10, 200:100
            returns (bool ok)                       // return param id 15
        {
            uint256 fee = 1;                        // id 30, 262:10
        }
    }
    """
    state = [
        _declaration(20, "total", "20:10:0", _elementary(40, "uint256", "20:7:0"),
                     stateVariable=True, mutability="mutable"),
        _declaration(21, "flag", "40:10:0", _elementary(41, "bool", "40:4:0"),
                     stateVariable=True, mutability="mutable"),
        _declaration(22, "owner", "60:10:0", _elementary(42, "address", "60:7:0"),
                     stateVariable=True, mutability="mutable"),
        _declaration(23, "balances", "80:10:0", {
            "id": 43,
            "nodeType": "Mapping",
            "src": "80:5:0",
            "keyType": _elementary(44, "address", "81:1:0"),
            "valueType": _elementary(45, "uint", "83:1:0"),
        }, stateVariable=True, mutability="mutable"),
        _declaration(24, "CAP", "100:10:0", _elementary(46, "uint256", "100:7:0"),
                     stateVariable=True, constant=True, mutability="constant"),
    ]
    function = {
        "id": 10,
        "nodeType": "FunctionDefinition",
        "name": "transfer",
        "src": "200:100:0",
        "parameters": {
            "id": 11,
            "nodeType": "ParameterList",
            "src": "210:30:0",
            "parameters": [
                _declaration(12, "to", "211:9:0", _elementary(47, "address", "211:7:0")),
                _declaration(13, "amount", "222:9:0", _elementary(48, "uint", "222:4:0")),
            ],
        },
        "returnParameters": {
            "id": 14,
            "nodeType": "ParameterList",
            "src": "250:6:0",
            "parameters": [
                _declaration(15, "ok", "251:4:0", _elementary(49, "bool", "251:4:0")),
            ],
        },
        "body": {
            "id": 16,
            "nodeType": "Block",
            "src": "260:40:0",
            "statements": [
                {
                    "id": 17,
                    "nodeType": "VariableDeclarationStatement",
                    "src": "262:20:0",
                    "declarations": [
                        _declaration(30, "fee", "262:10:0", _elementary(50, "uint256", "262:7:0")),
                    ],
                },
            ],
        },
    }
    return {
        "id": 1,
        "nodeType": "SourceUnit",
        "src": "0:800:0",
        "nodes": [
            {
                "id": 2,
                "nodeType": "ContractDefinition",
                "name": "Token",
                "src": "0:800:0",
                "linearizedBaseContracts": [2],
                "nodes": state + [function],
            },
        ],
    }


@pytest.fixture
def token_tree():
    return CompiledTree(token_ast(), index=0)
