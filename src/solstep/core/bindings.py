"""
Variable-binding resolution.

Keeps, per compiled tree, a map from declaration node id to the place its
value lives at the current point of execution: a stack slot (counted from
the bottom of the EVM stack) or a storage slot. Bindings are produced only
at the steps that define a node: entering a function binds its parameters,
entering a contract lays out its state variables, a variable declaration
binds the slot on top of the stack.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Union

from ..parsers.ast import NodeKind
from ..parsers.storage import allocate_declarations
from ..utils.logging import get_logger, log_trace
from . import events
from .store import StateStore

logger = get_logger('bindings')


@dataclass(frozen=True)
class StackLocation:
    stack: int


@dataclass(frozen=True)
class StorageLocation:
    slot: int
    offset: int
    size: int


Location = Union[StackLocation, StorageLocation]


@dataclass
class BindingState:
    """Store slice: ``{tree id: {node id: location}}``."""
    assignments: Dict[int, Dict[int, Location]] = field(default_factory=dict)

    def for_tree(self, tree_id: int) -> Dict[int, Location]:
        return dict(self.assignments.get(tree_id, {}))

    def reduce(self, event: events.Event) -> None:
        if event.type == events.SAVE_STEPS:
            self.assignments = {}
        elif event.type == events.ASSIGN:
            self.assignments.setdefault(event["tree_id"], {}).update(event["assignments"])


class VariableResolver:
    """
    Publishes ASSIGN for the AST node at the step under the cursor.

    Args:
        store: Shared state store
        view: Read accessors over the store and the compiled program
        allocate: Storage layout routine, ``(variables, definitions)`` to an
            object whose ``children`` maps ids to ``{slot, offset, size}``
    """

    def __init__(self, store: StateStore, view, allocate: Callable = allocate_declarations):
        self.store = store
        self.view = view
        self.allocate = allocate
        self.state = BindingState()
        store.register('bindings', self.state)
        store.listen([events.TICK], self.on_tick)

    def on_tick(self, event: events.Event) -> None:
        state = self.view.next_state()
        if state is None or state.stack is None:
            log_trace(logger, "no stack at this step, skipping bindings")
            return

        node = self.view.next_node()
        tree = self.view.current_tree()
        if node is None or tree is None:
            return

        top = len(state.stack) - 1
        kind = node.kind

        if kind is NodeKind.FUNCTION_DEFINITION:
            assignments = self.function_parameters(tree, node, top)
        elif kind is NodeKind.CONTRACT_DEFINITION:
            assignments = self.state_variables(node)
        elif kind is NodeKind.VARIABLE_DECLARATION:
            assignments = {node.id: StackLocation(top)}
        elif kind is NodeKind.OTHER:
            return

        logger.debug("assigning %d binding(s) at %s", len(assignments), node.pointer_string)
        self.store.put(events.assign(self.view.current_tree_id(), assignments))

    @staticmethod
    def function_parameters(tree, node, top: int) -> Dict[int, Location]:
        """
        Stack slots of a function's declarations at its entry jump.

        The combined sequence (return parameters, then parameters) is consumed
        from the top of the stack downwards: the first return parameter sits
        on top, the last parameter deepest. The sequence is deliberately not
        reversed first, so ``returns (bool ok)`` with ``(to, amount)`` at top 5
        gives ``ok=5, to=4, amount=3``.
        """
        pointers = node.parameter_pointers("returnParameters") + node.parameter_pointers("parameters")
        return {
            tree.resolve(pointer).id: StackLocation(top - rank)
            for rank, pointer in enumerate(pointers)
        }

    def state_variables(self, node) -> Dict[int, Location]:
        scope = self.view.scopes().get(node.id) or {}
        variables = scope.get("variables") or []
        logger.debug("storage vars %s", [v.get("name") for v in variables])

        allocation = self.allocate(variables, self.view.definitions())
        return {
            node_id: StorageLocation(**storage)
            for node_id, storage in allocation.children.items()
        }
