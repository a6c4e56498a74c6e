import pytest

from solstep.parsers.source_map import (
    LineColumn,
    LineIndex,
    ProgramMap,
    SourceMapEntry,
    build_pc_to_instruction_map,
    parse_src,
    parse_srcmap,
)
from solstep.utils.exceptions import SourceMapParseError

SOURCE = "pragma solidity ^0.8.0;\ncontract A {\n    uint x;\n}\n"


class TestParseSrcmap:
    def test_empty_fields_inherit(self):
        entries = parse_srcmap("0:10:0:-:0;;12:3;:5::i;::::1")
        assert entries == [
            SourceMapEntry(0, 10, 0, "-", 0),
            SourceMapEntry(0, 10, 0, "-", 0),
            SourceMapEntry(12, 3, 0, "-", 0),
            SourceMapEntry(12, 5, 0, "i", 0),
            SourceMapEntry(12, 5, 0, "i", 1),
        ]

    def test_empty_map(self):
        assert parse_srcmap("") == []

    def test_compiler_generated_entries(self):
        entry = parse_srcmap("5:2:-1:o")[0]
        assert entry.jump_type == "o"
        assert not entry.is_valid()

    def test_unknown_jump_type(self):
        with pytest.raises(SourceMapParseError) as excinfo:
            parse_srcmap("0:1:0:-;1:1:0:x")
        assert excinfo.value.details["entry"] == 1

    def test_malformed_number(self):
        with pytest.raises(SourceMapParseError):
            parse_srcmap("0:abc:0")

    def test_parse_src(self):
        assert parse_src("24:15:1") == (24, 15, 1)
        with pytest.raises(SourceMapParseError):
            parse_src("24:15")


class TestPcMapping:
    def test_push_data_is_skipped(self):
        # PUSH1 0x80 PUSH1 0x40 MSTORE PUSH2 0x0102 STOP
        code = bytes.fromhex("6080604052610102" + "00")
        assert build_pc_to_instruction_map(code) == {0: 0, 2: 1, 4: 2, 5: 3, 8: 4}

    def test_program_map_from_compiler_output(self):
        program = ProgramMap.from_compiler_output(
            "A", "0x6080604052", "0:10:0;24:12:0:i;37:6:0:o", [SOURCE]
        )
        assert program.jump_type(2) == "i"
        assert program.jump_type(4) == "o"
        assert program.jump_type(1) == "-"

        source_range = program.source_range(2)
        assert (source_range.start, source_range.length) == (24, 12)
        assert source_range.lines.start == LineColumn(2, 1)
        assert source_range.lines.end == LineColumn(2, 12)
        assert not source_range.is_multiline

    def test_unmapped_pc(self):
        program = ProgramMap.from_compiler_output("A", "6080", "0:10:0", [SOURCE])
        assert program.source_range(1) is None
        assert program.entry_at(7) is None

    def test_range_outside_known_sources(self):
        program = ProgramMap.from_compiler_output("A", "00", "3:4:-1", [SOURCE])
        source_range = program.source_range(0)
        assert (source_range.start, source_range.length) == (3, 4)
        assert source_range.lines.start.line == 0

    def test_bad_bytecode(self):
        with pytest.raises(SourceMapParseError):
            ProgramMap.from_compiler_output("A", "0xzz", "", [SOURCE])


class TestLineIndex:
    def test_positions_are_one_based(self):
        index = LineIndex(SOURCE)
        assert index.line_col(0) == LineColumn(1, 1)
        assert index.line_col(24) == LineColumn(2, 1)
        assert index.line_col(41) == LineColumn(3, 5)

    def test_multiline_range(self):
        source_range = LineIndex(SOURCE).range(24, 26)
        assert source_range.is_multiline
        assert source_range.lines.end.line == 4

    def test_range_ending_at_newline_stays_on_its_line(self):
        # "contract A {" plus its newline
        source_range = LineIndex(SOURCE).range(24, 13)
        assert source_range.lines.end.line == 2

    def test_containment_and_identity(self):
        index = LineIndex(SOURCE)
        outer = index.range(100, 20)
        assert outer.contains(index.range(100, 5))
        assert outer.contains(index.range(100, 20))
        assert not outer.contains(index.range(130, 4))
        assert outer.same_as(index.range(100, 20))
        assert not outer.same_as(index.range(100, 19))
