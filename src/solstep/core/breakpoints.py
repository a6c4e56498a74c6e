"""
Breakpoints for ``continue_until``.
"""

from dataclasses import dataclass
from typing import Iterable, Optional


def _same_hex(a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and a.lower() == b.lower()


@dataclass(frozen=True)
class Breakpoint:
    """
    A call site plus a location in its source.

    The call site is given by ``address`` (deployed contract) or ``binary``
    (creation code); leave both unset to stop in whichever contract reaches
    the location. The location is a source ``line`` (1-based) or an AST
    ``node`` id, and one of them is needed for the breakpoint to be hit.
    """
    address: Optional[str] = None
    binary: Optional[str] = None
    line: Optional[int] = None
    node: Optional[int] = None

    def at_call_site(self, frame) -> bool:
        if self.address is None and self.binary is None:
            return True
        return _same_hex(self.address, frame.address) or _same_hex(self.binary, frame.binary)

    def matches(self, frame, source_range, node) -> bool:
        at_location = (
            (self.line is not None and source_range is not None
             and self.line == source_range.lines.start.line)
            or (self.node is not None and node is not None and self.node == node.id)
        )
        return at_location and self.at_call_site(frame)


def any_hit(breakpoints: Iterable[Breakpoint], frame, source_range, node) -> bool:
    return any(bp.matches(frame, source_range, node) for bp in breakpoints)
