import asyncio

from solstep import DebugSession
from solstep.core import events
from solstep.core.callstack import CallFrame, CallStackState

from conftest import CONTRACT

CALLEE = "0x" + "ee" * 20


def call_stack_words(target):
    # bottom -> top: out size, out offset, in size, in offset, value, address, gas
    return [0, 0, 0, 0, 0, int(target, 16), 50000]


class TestCallStackTracker:
    def test_call_return_depth_sequence(self, trace):
        trace.step("CALL", trace.at(1), stack=call_stack_words(CALLEE))
        trace.step("ADD", trace.at(2), stack=[1, 2])
        trace.step("RETURN", trace.at(3), stack=[0, 0])
        trace.step("STOP", trace.at(4), stack=[])

        async def scenario(session):
            depths = [len(session.call_stack)]
            for _ in range(3):
                await session.advance()
                depths.append(len(session.call_stack))
            return depths

        assert trace.run(scenario, address=None) == [0, 1, 1, 0]

    def test_call_frame_carries_target(self, trace):
        trace.step("DELEGATECALL", trace.at(1), stack=call_stack_words(CALLEE))
        trace.step("STOP", trace.at(2))

        async def scenario(session):
            await session.advance()
            return session.call_stack

        frames = trace.run(scenario)
        assert frames == [
            CallFrame(address=CONTRACT, depth=1),
            CallFrame(address=CALLEE, depth=2),
        ]

    def test_create_frame_carries_init_code(self, trace):
        init_code = "6080604052"
        memory = "00" * 4 + init_code + "00" * 23
        # bottom -> top: size, offset, value
        trace.step("CREATE", trace.at(1), stack=[5, 4, 0], memory=memory)
        trace.step("STOP", trace.at(2))

        async def scenario(session):
            await session.advance()
            return session.current_call

        frame = trace.run(scenario, address=None)
        assert frame.binary == "0x" + init_code
        assert frame.address is None
        assert frame.depth == 1

    def test_halt_with_empty_stack_is_ignored(self, trace):
        trace.step("STOP", trace.at(1))
        trace.step("STOP", trace.at(2))

        async def scenario(session):
            await session.advance()
            await session.advance()
            return session.call_stack, session.current_call

        frames, current = trace.run(scenario)
        assert frames == []
        assert current == CallFrame()

    def test_creation_transaction_starts_with_a_binary_frame(self, trace):
        trace.lines(1)

        async def main():
            async with DebugSession() as session:
                await session.load(trace.steps(), binary="0x6080")
                return session.call_stack

        assert asyncio.run(main()) == [CallFrame(binary="0x6080", depth=1)]


class TestCallStackState:
    def test_reducer(self):
        state = CallStackState()
        state.reduce(events.call("0x01"))
        state.reduce(events.create("0x6080"))
        assert state.depth == 2
        assert state.current == CallFrame(binary="0x6080", depth=2)

        state.reduce(events.return_call())
        state.reduce(events.return_call())
        state.reduce(events.return_call())
        assert state.depth == 0

    def test_saving_a_trace_resets_frames(self):
        state = CallStackState()
        state.reduce(events.call("0x01"))
        state.reduce(events.save_steps([]))
        assert state.frames == []
