"""
Unit Tests for the P-Code Disassembler
======================================

Tests for instruction decoding and jump resolution.

Test coverage includes:
- Short-form opcode bands
- Big operand, word and byte operands
- Jump operands: fall-through, relative and jump-table routed
- Comparison families and their accepted flavors
- Standard procedure calls
- Variable-length operands (LSA, LPA, LDC, XJP) and word alignment
- Unknown opcodes, unknown flavors, bad case ranges and truncation
"""

import types

import pytest

from builders import u16
from pcode_sdk.codefile import walk_procedure_table
from pcode_sdk.disassembler import (
    PCODE_TABLE,
    JumpTableResolver,
    OperandKind,
    PCodeDisassembler,
    resolve_jump,
)
from pcode_sdk.errors import (
    CaseRangeError,
    DecodeError,
    TruncatedError,
    UnknownFlavorError,
    UnknownOpcodeError,
)


class TestShortForms:
    """Tests for opcodes carrying their operand in the opcode byte."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    @pytest.mark.parametrize("opcode,expected", [
        (0, "SLDC 0"),
        (1, "SLDC 1"),
        (127, "SLDC 127"),
        (216, "SLDL 1"),
        (231, "SLDL 16"),
        (232, "SLDO 1"),
        (247, "SLDO 16"),
        (248, "SIND 0"),
        (255, "SIND 7"),
    ])
    def test_band_values(self, opcode, expected):
        instr = self.disasm.disassemble_one(bytes([opcode]), 0, 0)
        assert instr.size == 1
        assert f"{instr.mnemonic} {instr.operand_str}" == expected
        assert instr.operands[0].kind == OperandKind.IMPLICIT


class TestOperands:
    """Tests for fixed-size operand formats."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    def test_big_one_byte(self):
        instr = self.disasm.disassemble_one(bytes([202, 0x05]), 0, 0)
        assert instr.mnemonic == "LDL"
        assert instr.operands[0].value == 5
        assert instr.size == 2

    def test_big_two_bytes(self):
        """The second byte is ORed into the low seven bits."""
        instr = self.disasm.disassemble_one(bytes([202, 0x85, 0x10]), 0, 0)
        assert instr.operands[0].value == 0x15
        assert instr.size == 3

    def test_ldci_word(self):
        instr = self.disasm.disassemble_one(bytes([199, 0x34, 0x12]), 0, 0)
        assert instr.mnemonic == "LDCI"
        assert instr.operands[0].value == 0x1234
        assert str(instr) == "0000\tLDCI 4660"

    def test_ldci_negative(self):
        instr = self.disasm.disassemble_one(bytes([199, 0xFF, 0xFF]), 0, 0)
        assert instr.operands[0].value == -1

    def test_ldcn_no_operands(self):
        instr = self.disasm.disassemble_one(bytes([159]), 0, 0)
        assert instr.mnemonic == "LDCN"
        assert instr.operands == ()
        assert instr.size == 1
        assert str(instr) == "0000\tLDCN"

    def test_level_and_offset(self):
        instr = self.disasm.disassemble_one(bytes([182, 2, 7]), 0, 0)
        assert instr.operand_str == "2, 7"
        assert instr.mnemonic == "LOD"

    def test_external_call(self):
        instr = self.disasm.disassemble_one(bytes([205, 3, 4]), 0, 0)
        assert str(instr) == "0000\tCXP 3, 4"

    def test_store_extended_mnemonic(self):
        instr = self.disasm.disassemble_one(bytes([209, 1, 2]), 0, 0)
        assert instr.mnemonic == "STE"
        assert instr.operand_str == "1, 2"

    def test_raw_bytes(self):
        instr = self.disasm.disassemble_one(bytes([0, 199, 0x34, 0x12, 0]), 1, 0)
        assert instr.raw_bytes == bytes([199, 0x34, 0x12])
        assert instr.address == 1
        assert instr.end == 4


class TestJumps:
    """Tests for jump operands and the jump table resolver."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    def test_zero_offset_is_nop(self):
        instr = self.disasm.disassemble_one(bytes([185, 0]), 0, 0)
        assert instr.size == 2
        assert instr.operands[0].target is None
        assert str(instr) == "0000\tUJP 0 ; NOP"

    def test_positive_offset(self):
        """Relative to the start of the jump instruction."""
        instr = self.disasm.disassemble_one(bytes([0, 0, 161, 5]), 2, 0)
        assert instr.operands[0].target == 7
        assert not instr.operands[0].via_jump_table
        assert str(instr) == "0002\tFJP 5h ; 0007"

    def test_negative_offset_reads_jump_table(self):
        data = bytearray(12)
        data[0:2] = bytes([185, 0xFF])
        data[9:11] = u16(3)

        instr = self.disasm.disassemble_one(bytes(data), 0, 10)

        assert instr.operands[0].target == 6
        assert instr.operands[0].via_jump_table
        assert str(instr) == "0000\tUJP ffh ; 0006 (thru jump table)"

    def test_resolver_directly(self):
        data = bytearray(16)
        data[4:6] = u16(4)
        resolver = JumpTableResolver(bytes(data), 14)

        assert resolver.resolve(2, 0) == (None, False)
        assert resolver.resolve(2, 3) == (5, False)
        assert resolver.resolve(2, -10) == (0, True)

    def test_resolve_jump_function(self):
        data = bytearray(8)
        data[2:4] = u16(2)
        assert resolve_jump(bytes(data), 6, 0, -4) == (0, True)
        assert resolve_jump(bytes(data), 6, 4, 0) == (None, False)

    def test_jump_table_entry_outside_segment(self):
        with pytest.raises(TruncatedError):
            self.disasm.disassemble_one(bytes([185, 0x80, 0, 0]), 0, 4)

    def test_jump_table_target_before_segment(self):
        data = bytearray(12)
        data[0:2] = bytes([185, 0xFF])
        data[9:11] = u16(100)
        with pytest.raises(TruncatedError):
            self.disasm.disassemble_one(bytes(data), 0, 10)


class TestComparisons:
    """Tests for the EQU/NEQ/LEQ/LES/GEQ/GRT families."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    @pytest.mark.parametrize("data,expected", [
        ([175, 2], "EQUREAL"),
        ([175, 4], "EQUSTR"),
        ([183, 6], "NEQBOOL"),
        ([183, 8], "NEQPOWR"),
        ([180, 8], "LEQPOWR"),
        ([176, 4], "GEQSTR"),
        ([181, 2], "LESREAL"),
        ([177, 6], "GRTBOOL"),
    ])
    def test_flavor_suffix(self, data, expected):
        instr = self.disasm.disassemble_one(bytes(data), 0, 0)
        assert instr.mnemonic == expected
        assert instr.operands == ()
        assert instr.size == 2

    def test_byte_flavor_reads_big_operand(self):
        instr = self.disasm.disassemble_one(bytes([181, 10, 0x81, 0x02]), 0, 0)
        assert instr.mnemonic == "LESBYT"
        assert instr.operands[0].value == 3
        assert instr.size == 4

    def test_word_flavor_reads_big_operand(self):
        instr = self.disasm.disassemble_one(bytes([183, 12, 5]), 0, 0)
        assert str(instr) == "0000\tNEQWORD 5"

    @pytest.mark.parametrize("data", [
        [180, 12],   # LEQ has no WORD flavor
        [176, 12],   # GEQ has no WORD flavor
        [181, 8],    # LES has no POWR flavor
        [177, 12],   # GRT has no WORD flavor
        [175, 0],
        [175, 3],
        [183, 14],
    ])
    def test_rejected_flavors(self, data):
        with pytest.raises(UnknownFlavorError) as exc_info:
            self.disasm.disassemble_one(bytes(data), 0, 0)
        assert exc_info.value.flavor == data[1]
        assert exc_info.value.offset == 1

    def test_flavor_error_names_family(self):
        with pytest.raises(UnknownFlavorError) as exc_info:
            self.disasm.disassemble_one(bytes([177, 3]), 0, 0)
        assert exc_info.value.family == "GRT"
        assert "GRT" in str(exc_info.value)


class TestStandardProcedures:
    """Tests for CSP calls."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    @pytest.mark.parametrize("number,name", [
        (1, "NEW"), (2, "MVL"), (3, "MVR"), (4, "EXIT"), (9, "TIM"), (10, "FLC"),
        (11, "SCN"), (22, "TNC"), (23, "RND"), (31, "MRK"), (32, "RLS"), (35, "POT"),
    ])
    def test_named(self, number, name):
        instr = self.disasm.disassemble_one(bytes([158, number]), 0, 0)
        assert instr.mnemonic == name
        assert str(instr) == f"0000\t{name}"

    def test_unnamed_number(self):
        instr = self.disasm.disassemble_one(bytes([158, 40]), 0, 0)
        assert str(instr) == "0000\tCSP 40"


class TestVariableLength:
    """Tests for LSA, LPA, LDC and XJP."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    def test_lsa(self):
        instr = self.disasm.disassemble_one(bytes([166, 3]) + b"abc", 0, 0)
        assert instr.operands[0].value == "abc"
        assert instr.operand_str == "3, `abc`"
        assert instr.size == 5

    def test_lsa_trims_text(self):
        instr = self.disasm.disassemble_one(bytes([166, 4]) + b" hi ", 0, 0)
        assert instr.operands[0].value == "hi"
        assert instr.size == 6

    def test_lsa_empty(self):
        instr = self.disasm.disassemble_one(bytes([166, 0]), 0, 0)
        assert instr.operand_str == "0"
        assert instr.size == 2

    def test_lpa(self):
        instr = self.disasm.disassemble_one(bytes([208, 2, 0xAB, 0x01]), 0, 0)
        assert instr.operands[0].value == b"\xab\x01"
        assert str(instr) == "0000\tLPA 2, ab 01"

    def test_ldc_aligned(self):
        data = bytes([0, 179, 2, 0xEE, 0x34, 0x12, 0x78, 0x56])
        instr = self.disasm.disassemble_one(data, 1, 0)

        assert instr.operands[0].value == (0x1234, 0x5678)
        assert instr.operand_str == "2, 1234h, 5678h"
        assert instr.size == 7

    def test_ldc_already_even(self):
        data = bytes([179, 1, 0xCD, 0xAB])
        instr = self.disasm.disassemble_one(data, 0, 0)
        assert instr.operands[0].value == (0xABCD,)
        assert instr.size == 4

    def test_ldc_zero_does_not_align(self):
        instr = self.disasm.disassemble_one(bytes([0, 179, 0, 0]), 1, 0)
        assert instr.operand_str == "0"
        assert instr.size == 2

    def test_xjp(self):
        data = (bytes([172, 0xEE]) + u16(1) + u16(3)
                + u16(0xFFF0) + u16(4) + u16(8) + u16(0xFFFE))
        instr = self.disasm.disassemble_one(data, 0, 0)

        assert instr.size == 14
        assert instr.operands[0].value == (1, 3, -16, 4, 8, -2)
        assert instr.operand_str == "1, 3, fff0h, 4h, 8h, fffeh"

    def test_xjp_single_case(self):
        data = bytes([0, 172]) + u16(5) + u16(5) + u16(2) + u16(6)
        instr = self.disasm.disassemble_one(data, 1, 0)
        assert instr.size == 9
        assert instr.operand_str == "5, 5, 2h, 6h"

    def test_xjp_empty_range(self):
        """hi == lo - 1 is a table with no cases, only the default."""
        data = bytes([172, 0]) + u16(3) + u16(2) + u16(0x10)
        instr = self.disasm.disassemble_one(data, 0, 0)

        assert instr.size == 8
        assert instr.operands[0].value == (3, 2, 0x10)
        assert instr.operand_str == "3, 2, 10h"

    def test_xjp_inverted_range(self):
        data = bytes([172, 0]) + u16(3) + u16(1) + bytes(8)
        with pytest.raises(CaseRangeError) as exc_info:
            self.disasm.disassemble_one(data, 0, 0)
        assert exc_info.value.low == 3
        assert exc_info.value.high == 1
        assert exc_info.value.offset == 2


class TestDecodeErrors:
    """Tests for undecodable input."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    @pytest.mark.parametrize("opcode", [210, 211, 212])
    def test_unassigned_opcodes(self, opcode):
        with pytest.raises(UnknownOpcodeError) as exc_info:
            self.disasm.disassemble_one(bytes([0, opcode, 0]), 1, 0)
        assert exc_info.value.opcode == opcode
        assert exc_info.value.offset == 1
        assert isinstance(exc_info.value, DecodeError)

    def test_truncated_operand(self):
        with pytest.raises(TruncatedError):
            self.disasm.disassemble_one(bytes([199, 0x34]), 0, 0)

    def test_truncated_string(self):
        with pytest.raises(TruncatedError):
            self.disasm.disassemble_one(bytes([166, 5]) + b"ab", 0, 0)

    def test_every_assigned_opcode_decodes(self):
        for opcode in range(256):
            if opcode in (210, 211, 212):
                continue
            data = bytes([opcode, 2]) + bytes(16)
            instr = self.disasm.disassemble_one(data, 0, 0)
            assert instr.size >= 1, opcode

    def test_table_covers_long_opcodes(self):
        assert set(PCODE_TABLE) == set(range(128, 216)) - {210, 211, 212}


class TestProcedureDecoding:
    """Tests for decoding whole procedure bodies."""

    def setup_method(self):
        self.disasm = PCodeDisassembler()

    def test_iter_is_lazy(self, two_proc_segment):
        data, _ = two_proc_segment
        proc = walk_procedure_table(data)[0]
        gen = self.disasm.disassemble_procedure(data, proc)
        assert isinstance(gen, types.GeneratorType)
        assert next(gen).address == 0

    def test_first_procedure(self, two_proc_segment):
        data, _ = two_proc_segment
        proc = walk_procedure_table(data)[0]
        lines = [str(i) for i in self.disasm.disassemble_procedure(data, proc)]

        assert lines == [
            "0000\tSLDC 1",
            "0001\tFJP 5h ; 0006",
            "0003\tLDCI 4660",
            "0006\tUJP f6h ; 0000 (thru jump table)",
            "0008\tRNP 0",
        ]

    def test_second_procedure(self, two_proc_segment):
        data, _ = two_proc_segment
        proc = walk_procedure_table(data)[1]
        lines = [str(i) for i in self.disasm.disassemble_procedure(data, proc)]

        assert lines == [
            "0016\tLDL 3",
            "0018\tLOD 1, 21",
            "001c\tEQUBYT 7",
            "001f\tNEW",
            "0021\tSLDL 1",
            "0022\tRBP 0",
        ]

    def test_body_consumed_exactly(self, two_proc_segment):
        data, _ = two_proc_segment
        for proc in walk_procedure_table(data):
            instrs = self.disasm.disassemble_procedure(data, proc)
            instrs = list(instrs)
            assert instrs[0].address == proc.enter_addr
            assert instrs[-1].address == proc.exit_addr
            for prev, cur in zip(instrs, instrs[1:]):
                assert prev.end == cur.address

    def test_decoding_is_repeatable(self, two_proc_segment):
        data, _ = two_proc_segment
        proc = walk_procedure_table(data)[0]
        first = self.disasm.disassemble(data, proc.enter_addr, proc.exit_addr, proc.jtab)
        second = self.disasm.disassemble(data, proc.enter_addr, proc.exit_addr, proc.jtab)
        assert first == second

    def test_to_line_with_bytes(self):
        instr = self.disasm.disassemble_one(bytes([199, 0x34, 0x12]), 0, 0)
        assert instr.to_line(show_bytes=True) == f"0000\t{'c7 34 12':<26}\tLDCI 4660"

    def test_to_line_long_instruction(self):
        instr = self.disasm.disassemble_one(bytes([166, 9]) + b"ABCDEFGHI", 0, 0)
        line = instr.to_line(show_bytes=True)
        assert "a6 09 41 42 43 44 45 46 .." in line
