"""
P-Code Disassembler
===================

Disassembles Apple II Pascal p-code into human-readable form. P-code is
the bytecode executed by the p-System interpreter; each procedure in a
codefile segment is a run of p-code between its enter and exit addresses.

Instruction Encoding:
    One opcode byte selects the instruction. Some opcodes are followed by
    a second "flavor" byte selecting a variant (the comparison families and
    CSP). Four byte ranges are packed short forms carrying their operand in
    the opcode byte itself:

        0-127     SLDC n      short load constant (n = byte)
        216-231   SLDL n      short load local (n = byte - 215)
        232-247   SLDO n      short load global (n = byte - 231)
        248-255   SIND n      short index and load (n = byte - 248)

Operand Formats:
    "W" = word, 16-bit signed little-endian
    "B" = big, 1 byte, or 2 when the high bit is set: (b0 & 0x7F) | b1
    "D" = don't-care byte (lexical level deltas)
    "U" = unsigned byte
    "J" = signed byte jump offset, resolved through JumpTableResolver
    "S" = string: length byte + text (LSA)
    "P" = packed bytes: length byte + raw bytes (LPA)
    "C" = constant block: length byte, word-align, length x u16 (LDC)
    "X" = case table: word-align, lo, hi, (hi-lo+1) x i16, default (XJP)
    "F" = comparison flavor byte (EQU/NEQ/LEQ/LES/GEQ/GRT)
    "K" = standard procedure number (CSP)

Jump Operands:
    0 falls through. A positive offset is relative to the start of the
    jump instruction. A negative offset indexes the procedure's jump table:
    the word at ``jtab + off`` is subtracted from its own address to give
    the target. Branch targets that must survive relocation are routed
    through the table by the compiler.

Reference:
    Apple II Pascal 1.1 Operating System Reference Manual, Appendix C
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

from pcode_sdk.codefile.cursor import ByteCursor
from pcode_sdk.codefile.records import PCodeProcedure
from pcode_sdk.errors import (
    CaseRangeError,
    TruncatedError,
    UnknownFlavorError,
    UnknownOpcodeError,
)


class PCodeCategory(Enum):
    """Categories of p-code operations for documentation."""
    CONSTANT = auto()     # Push constants
    LOAD = auto()         # Loads and address loads
    STORE = auto()        # Stores
    INDEX = auto()        # Array, record and string indexing
    ARITHMETIC = auto()   # Integer and real arithmetic
    COMPARE = auto()      # Comparisons
    LOGIC = auto()        # Boolean operators
    SET = auto()          # Set operators
    JUMP = auto()         # Branches
    CALL = auto()         # Calls and returns
    SYSTEM = auto()       # Standard procedures, breakpoints, misc


@dataclass(frozen=True)
class PCodeInfo:
    """Information about a p-code opcode."""
    opcode: int
    mnemonic: str
    operand_format: str
    category: PCodeCategory
    description: str


# =============================================================================
# P-Code Opcode Table
# =============================================================================
# Opcodes 128-215. Bytes 0-127 and 216-255 are the short forms handled by
# SHORT_FORMS. Opcodes 210-212 are unassigned.
# =============================================================================

def _info(opcode: int, mnemonic: str, fmt: str,
          category: PCodeCategory, description: str) -> Tuple[int, PCodeInfo]:
    return opcode, PCodeInfo(opcode, mnemonic, fmt, category, description)


PCODE_TABLE: Dict[int, PCodeInfo] = dict([
    # =========================================================================
    # Constants
    # =========================================================================
    _info(159, "LDCN", "", PCodeCategory.CONSTANT, "Load constant NIL"),
    _info(199, "LDCI", "W", PCodeCategory.CONSTANT, "Load constant word"),
    _info(179, "LDC", "C", PCodeCategory.CONSTANT, "Load multiple-word constant"),
    _info(166, "LSA", "S", PCodeCategory.CONSTANT, "Load string address"),
    _info(208, "LPA", "P", PCodeCategory.CONSTANT, "Load packed array address"),

    # =========================================================================
    # Local, global, intermediate and extended variables
    # =========================================================================
    _info(202, "LDL", "B", PCodeCategory.LOAD, "Load local word"),
    _info(198, "LLA", "B", PCodeCategory.LOAD, "Load local address"),
    _info(204, "STL", "B", PCodeCategory.STORE, "Store local word"),
    _info(169, "LDO", "B", PCodeCategory.LOAD, "Load global word"),
    _info(165, "LAO", "B", PCodeCategory.LOAD, "Load global address"),
    _info(171, "SRO", "B", PCodeCategory.STORE, "Store global word"),
    _info(182, "LOD", "DB", PCodeCategory.LOAD, "Load intermediate word"),
    _info(178, "LDA", "DB", PCodeCategory.LOAD, "Load intermediate address"),
    _info(184, "STR", "DB", PCodeCategory.STORE, "Store intermediate word"),
    _info(157, "LDE", "UB", PCodeCategory.LOAD, "Load extended word"),
    _info(167, "LAE", "UB", PCodeCategory.LOAD, "Load extended address"),
    _info(209, "STE", "UB", PCodeCategory.STORE, "Store extended word"),

    # =========================================================================
    # Indirect, multiple-word, byte and packed access
    # =========================================================================
    _info(163, "IND", "B", PCodeCategory.LOAD, "Static index and load word"),
    _info(154, "STO", "", PCodeCategory.STORE, "Store indirect word"),
    _info(188, "LDM", "U", PCodeCategory.LOAD, "Load multiple words"),
    _info(189, "STM", "U", PCodeCategory.STORE, "Store multiple words"),
    _info(190, "LDB", "", PCodeCategory.LOAD, "Load byte"),
    _info(191, "STB", "", PCodeCategory.STORE, "Store byte"),
    _info(186, "LDP", "", PCodeCategory.LOAD, "Load packed field"),
    _info(187, "STP", "", PCodeCategory.STORE, "Store packed field"),
    _info(170, "SAS", "U", PCodeCategory.STORE, "String assign"),
    _info(168, "MOV", "B", PCodeCategory.STORE, "Move words"),

    # =========================================================================
    # Indexing
    # =========================================================================
    _info(155, "IXS", "", PCodeCategory.INDEX, "Index string array"),
    _info(162, "INC", "B", PCodeCategory.INDEX, "Increment field pointer"),
    _info(164, "IXA", "B", PCodeCategory.INDEX, "Index array"),
    _info(192, "IXP", "UU", PCodeCategory.INDEX, "Index packed array"),

    # =========================================================================
    # Integer arithmetic
    # =========================================================================
    _info(128, "ABI", "", PCodeCategory.ARITHMETIC, "Absolute value of integer"),
    _info(130, "ADI", "", PCodeCategory.ARITHMETIC, "Add integers"),
    _info(145, "NGI", "", PCodeCategory.ARITHMETIC, "Negate integer"),
    _info(149, "SBI", "", PCodeCategory.ARITHMETIC, "Subtract integers"),
    _info(143, "MPI", "", PCodeCategory.ARITHMETIC, "Multiply integers"),
    _info(152, "SQI", "", PCodeCategory.ARITHMETIC, "Square integer"),
    _info(134, "DVI", "", PCodeCategory.ARITHMETIC, "Divide integers"),
    _info(142, "MODI", "", PCodeCategory.ARITHMETIC, "Integer remainder"),
    _info(136, "CHK", "", PCodeCategory.ARITHMETIC, "Check subrange bounds"),

    # =========================================================================
    # Integer comparisons
    # =========================================================================
    _info(195, "EQUI", "", PCodeCategory.COMPARE, "Integer equal"),
    _info(203, "NEQI", "", PCodeCategory.COMPARE, "Integer not equal"),
    _info(200, "LEQI", "", PCodeCategory.COMPARE, "Integer less or equal"),
    _info(201, "LESI", "", PCodeCategory.COMPARE, "Integer less than"),
    _info(196, "GEQI", "", PCodeCategory.COMPARE, "Integer greater or equal"),
    _info(197, "GRTI", "", PCodeCategory.COMPARE, "Integer greater than"),

    # =========================================================================
    # Typed comparison families (flavor byte selects the operand type)
    # =========================================================================
    _info(175, "EQU", "F", PCodeCategory.COMPARE, "Equal"),
    _info(183, "NEQ", "F", PCodeCategory.COMPARE, "Not equal"),
    _info(180, "LEQ", "F", PCodeCategory.COMPARE, "Less or equal"),
    _info(181, "LES", "F", PCodeCategory.COMPARE, "Less than"),
    _info(176, "GEQ", "F", PCodeCategory.COMPARE, "Greater or equal"),
    _info(177, "GRT", "F", PCodeCategory.COMPARE, "Greater than"),

    # =========================================================================
    # Real arithmetic
    # =========================================================================
    _info(138, "FLT", "", PCodeCategory.ARITHMETIC, "Float top of stack"),
    _info(137, "FLO", "", PCodeCategory.ARITHMETIC, "Float next to top of stack"),
    _info(129, "ABR", "", PCodeCategory.ARITHMETIC, "Absolute value of real"),
    _info(131, "ADR", "", PCodeCategory.ARITHMETIC, "Add reals"),
    _info(146, "NGR", "", PCodeCategory.ARITHMETIC, "Negate real"),
    _info(150, "SBR", "", PCodeCategory.ARITHMETIC, "Subtract reals"),
    _info(144, "MPR", "", PCodeCategory.ARITHMETIC, "Multiply reals"),
    _info(153, "SQR", "", PCodeCategory.ARITHMETIC, "Square real"),
    _info(135, "DVR", "", PCodeCategory.ARITHMETIC, "Divide reals"),

    # =========================================================================
    # Logic
    # =========================================================================
    _info(132, "LAND", "", PCodeCategory.LOGIC, "Logical AND"),
    _info(141, "LOR", "", PCodeCategory.LOGIC, "Logical OR"),
    _info(147, "LNOT", "", PCodeCategory.LOGIC, "Logical NOT"),

    # =========================================================================
    # Sets
    # =========================================================================
    _info(160, "ADJ", "U", PCodeCategory.SET, "Adjust set size"),
    _info(151, "SGS", "", PCodeCategory.SET, "Build singleton set"),
    _info(148, "SRS", "", PCodeCategory.SET, "Build subrange set"),
    _info(139, "INN", "", PCodeCategory.SET, "Set membership"),
    _info(156, "UNI", "", PCodeCategory.SET, "Set union"),
    _info(140, "INT", "", PCodeCategory.SET, "Set intersection"),
    _info(133, "DIF", "", PCodeCategory.SET, "Set difference"),

    # =========================================================================
    # Jumps
    # =========================================================================
    _info(185, "UJP", "J", PCodeCategory.JUMP, "Unconditional jump"),
    _info(161, "FJP", "J", PCodeCategory.JUMP, "False jump"),
    _info(172, "XJP", "X", PCodeCategory.JUMP, "Case jump"),

    # =========================================================================
    # Calls and returns
    # =========================================================================
    _info(206, "CLP", "U", PCodeCategory.CALL, "Call local procedure"),
    _info(207, "CGP", "U", PCodeCategory.CALL, "Call global procedure"),
    _info(174, "CIP", "U", PCodeCategory.CALL, "Call intermediate procedure"),
    _info(194, "CBP", "U", PCodeCategory.CALL, "Call base procedure"),
    _info(205, "CXP", "UU", PCodeCategory.CALL, "Call external procedure"),
    _info(173, "RNP", "D", PCodeCategory.CALL, "Return from non-base procedure"),
    _info(193, "RBP", "D", PCodeCategory.CALL, "Return from base procedure"),
    _info(158, "CSP", "K", PCodeCategory.CALL, "Call standard procedure"),

    # =========================================================================
    # System
    # =========================================================================
    _info(214, "XIT", "", PCodeCategory.SYSTEM, "Exit the operating system"),
    _info(215, "NOP", "", PCodeCategory.SYSTEM, "No operation"),
    _info(213, "BPT", "B", PCodeCategory.SYSTEM, "Breakpoint"),
])


# Short forms: (first opcode, last opcode, mnemonic, band base, category)
SHORT_FORMS: Tuple[Tuple[int, int, str, int, PCodeCategory], ...] = (
    (0, 127, "SLDC", 0, PCodeCategory.CONSTANT),
    (216, 231, "SLDL", 215, PCodeCategory.LOAD),
    (232, 247, "SLDO", 231, PCodeCategory.LOAD),
    (248, 255, "SIND", 248, PCodeCategory.LOAD),
)

SHORT_FORM_DESCRIPTIONS: Dict[str, str] = {
    "SLDC": "Short load constant",
    "SLDL": "Short load local word",
    "SLDO": "Short load global word",
    "SIND": "Short index and load word",
}

# Comparison flavor byte -> (mnemonic suffix, extra operand format)
COMPARISON_FLAVORS: Dict[int, Tuple[str, str]] = {
    2: ("REAL", ""),
    4: ("STR", ""),
    6: ("BOOL", ""),
    8: ("POWR", ""),
    10: ("BYT", "B"),
    12: ("WORD", "B"),
}

# Flavors each comparison family accepts
COMPARISON_FAMILIES: Dict[int, FrozenSet[int]] = {
    175: frozenset({2, 4, 6, 8, 10, 12}),   # EQU
    183: frozenset({2, 4, 6, 8, 10, 12}),   # NEQ
    180: frozenset({2, 4, 6, 8, 10}),       # LEQ
    181: frozenset({2, 4, 6, 10}),          # LES
    176: frozenset({2, 4, 6, 8, 10}),       # GEQ
    177: frozenset({2, 4, 6, 10}),          # GRT
}

# CSP flavor byte -> standard procedure; unnamed numbers render as "CSP n"
STANDARD_PROCEDURES: Dict[int, str] = {
    1: "NEW",
    2: "MVL",
    3: "MVR",
    4: "EXIT",
    9: "TIM",
    10: "FLC",
    11: "SCN",
    22: "TNC",
    23: "RND",
    31: "MRK",
    32: "RLS",
    35: "POT",
}


# =============================================================================
# Data Structures
# =============================================================================

class OperandKind(Enum):
    """How an operand was encoded."""
    IMPLICIT = auto()     # Carried in a short-form opcode byte
    WORD = auto()
    BIG = auto()
    BYTE = auto()
    JUMP = auto()
    STRING = auto()
    BLOB = auto()
    CONSTANTS = auto()
    CASES = auto()


@dataclass(frozen=True)
class Operand:
    """
    One decoded operand.

    Attributes:
        kind: Encoding the operand was read with
        value: Decoded value (int, str, bytes or tuple of ints)
        text: Rendering used in the listing
        target: Resolved code address (jump operands only)
        via_jump_table: True when the target came from the jump table
    """
    kind: OperandKind
    value: Union[int, str, bytes, Tuple[int, ...]]
    text: str
    target: Optional[int] = None
    via_jump_table: bool = False


@dataclass
class DisassembledPCode:
    """
    Represents a single disassembled p-code instruction.

    Attributes:
        address: Segment-relative offset of the opcode
        opcode: The opcode byte
        mnemonic: Mnemonic, including the flavor suffix for typed families
        operands: Decoded operands in encoding order
        size: Total size in bytes, including alignment padding
        raw_bytes: All bytes of this instruction
        description: Opcode description
        comment: Jump annotation (target address or NOP)
    """
    address: int
    opcode: int
    mnemonic: str
    operands: Tuple[Operand, ...]
    size: int
    raw_bytes: bytes
    description: str
    comment: str = ""

    @property
    def operand_str(self) -> str:
        return ", ".join(op.text for op in self.operands)

    @property
    def end(self) -> int:
        """Offset of the byte after this instruction."""
        return self.address + self.size

    def to_line(self, show_bytes: bool = False) -> str:
        """
        Format as a listing line: ``<offset>\\t<MNEMONIC> <operands>``.

        Args:
            show_bytes: Insert the raw instruction bytes after the offset
        """
        asm = f"{self.mnemonic} {self.operand_str}" if self.operands else self.mnemonic
        if self.comment:
            asm = f"{asm} ; {self.comment}"
        if show_bytes:
            hex_bytes = " ".join(f"{b:02x}" for b in self.raw_bytes[:8])
            if len(self.raw_bytes) > 8:
                hex_bytes += " .."
            return f"{self.address:04x}\t{hex_bytes:<26}\t{asm}"
        return f"{self.address:04x}\t{asm}"

    def __str__(self) -> str:
        return self.to_line()


# =============================================================================
# Jump Table Resolver
# =============================================================================

class JumpTableResolver:
    """
    Resolves signed-byte jump operands for one procedure.

    Attributes:
        segment: Segment bytes
        jtab: Jump table base of the procedure
    """

    def __init__(self, segment: bytes, jtab: int):
        self.segment = segment
        self.jtab = jtab
        self._reader = ByteCursor(segment)

    def resolve(self, instruction_start: int, offset: int) -> Tuple[Optional[int], bool]:
        """
        Resolve a jump operand.

        Args:
            instruction_start: Offset of the jump opcode
            offset: The signed jump byte

        Returns:
            (target, via_jump_table); target is None for a zero offset

        Raises:
            TruncatedError: If the jump table entry lies outside the segment
                or points before its start
        """
        if offset == 0:
            return None, False
        if offset > 0:
            return instruction_start + offset, False

        entry = self.jtab + offset
        target = entry - self._reader.word_at(entry)
        if target < 0:
            raise TruncatedError(target, 1, len(self.segment), "jump table target")
        return target, True


def resolve_jump(
    segment: bytes,
    jtab: int,
    instruction_start: int,
    offset: int,
) -> Tuple[Optional[int], bool]:
    """One-off form of JumpTableResolver.resolve()."""
    return JumpTableResolver(segment, jtab).resolve(instruction_start, offset)


# =============================================================================
# P-Code Disassembler
# =============================================================================

class PCodeDisassembler:
    """
    Table-driven disassembler for Apple II Pascal p-code.

    Any opcode or comparison flavor without a mapping raises immediately:
    skipping it would desynchronise every later instruction.

    Usage:
        disasm = PCodeDisassembler()
        for instr in disasm.iter_instructions(seg, enter, exit, jtab):
            print(instr)
    """

    def __init__(self):
        self._operand_decoders = {
            "W": self._decode_word,
            "B": self._decode_big,
            "D": self._decode_byte,
            "U": self._decode_byte,
            "S": self._decode_string,
            "P": self._decode_blob,
            "C": self._decode_constants,
            "X": self._decode_cases,
        }

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def disassemble_one(self, segment: bytes, offset: int, jtab: int) -> DisassembledPCode:
        """
        Decode the instruction starting at offset.

        Args:
            segment: Segment bytes
            offset: Offset of the opcode byte
            jtab: Jump table base of the enclosing procedure

        Raises:
            TruncatedError: If the instruction runs past the segment
            DecodeError: For unknown opcodes or flavors
        """
        cur = ByteCursor(segment, offset)
        return self._decode(cur, JumpTableResolver(segment, jtab))

    def iter_instructions(
        self,
        segment: bytes,
        enter_addr: int,
        exit_addr: int,
        jtab: int,
    ) -> Iterator[DisassembledPCode]:
        """
        Lazily decode a procedure body.

        Decoding starts at enter_addr and continues while the cursor is at
        or before exit_addr, so the last instruction is the one starting at
        (or straddling) exit_addr.
        """
        cur = ByteCursor(segment, enter_addr)
        resolver = JumpTableResolver(segment, jtab)
        while cur.position <= exit_addr:
            yield self._decode(cur, resolver)

    def disassemble(
        self,
        segment: bytes,
        enter_addr: int,
        exit_addr: int,
        jtab: int,
    ) -> List[DisassembledPCode]:
        """Decode a procedure body into a list."""
        return list(self.iter_instructions(segment, enter_addr, exit_addr, jtab))

    def disassemble_procedure(
        self,
        segment: bytes,
        proc: PCodeProcedure,
    ) -> Iterator[DisassembledPCode]:
        """Lazily decode the body of a walked p-code procedure."""
        return self.iter_instructions(segment, proc.enter_addr, proc.exit_addr, proc.jtab)

    # -------------------------------------------------------------------------
    # Instruction decoding
    # -------------------------------------------------------------------------

    def _decode(self, cur: ByteCursor, resolver: JumpTableResolver) -> DisassembledPCode:
        start = cur.position
        opcode = cur.read_u8()

        short = _short_form(opcode)
        if short is not None:
            mnemonic, base = short
            value = opcode - base
            return self._finish(
                cur, start, opcode, mnemonic,
                (Operand(OperandKind.IMPLICIT, value, str(value)),),
                SHORT_FORM_DESCRIPTIONS[mnemonic],
            )

        info = PCODE_TABLE.get(opcode)
        if info is None:
            raise UnknownOpcodeError(opcode, start)

        mnemonic = info.mnemonic
        operands: List[Operand] = []
        comment = ""

        for code in info.operand_format:
            if code == "F":
                mnemonic, extra = self._decode_comparison(cur, opcode, info.mnemonic)
                operands.extend(extra)
            elif code == "K":
                mnemonic, extra = self._decode_standard_procedure(cur)
                operands.extend(extra)
            elif code == "J":
                operand = self._decode_jump(cur, resolver, start)
                comment = _jump_comment(operand)
                operands.append(operand)
            else:
                operands.append(self._operand_decoders[code](cur))

        return self._finish(cur, start, opcode, mnemonic, tuple(operands),
                            info.description, comment)

    @staticmethod
    def _finish(
        cur: ByteCursor,
        start: int,
        opcode: int,
        mnemonic: str,
        operands: Tuple[Operand, ...],
        description: str,
        comment: str = "",
    ) -> DisassembledPCode:
        return DisassembledPCode(
            address=start,
            opcode=opcode,
            mnemonic=mnemonic,
            operands=operands,
            size=cur.position - start,
            raw_bytes=bytes(cur.data[start:cur.position]),
            description=description,
            comment=comment,
        )

    def _decode_comparison(
        self,
        cur: ByteCursor,
        opcode: int,
        family: str,
    ) -> Tuple[str, List[Operand]]:
        """Shared decoder for the EQU/NEQ/LEQ/LES/GEQ/GRT families."""
        flavor_pos = cur.position
        flavor = cur.read_u8()
        if flavor not in COMPARISON_FAMILIES[opcode]:
            raise UnknownFlavorError(family, flavor, flavor_pos)

        suffix, extra_format = COMPARISON_FLAVORS[flavor]
        operands = [self._operand_decoders[code](cur) for code in extra_format]
        return family + suffix, operands

    def _decode_standard_procedure(self, cur: ByteCursor) -> Tuple[str, List[Operand]]:
        number = cur.read_u8()
        name = STANDARD_PROCEDURES.get(number)
        if name is not None:
            return name, []
        return "CSP", [Operand(OperandKind.BYTE, number, str(number))]

    # -------------------------------------------------------------------------
    # Operand decoders
    # -------------------------------------------------------------------------

    @staticmethod
    def _decode_word(cur: ByteCursor) -> Operand:
        value = cur.read_i16()
        return Operand(OperandKind.WORD, value, str(value))

    @staticmethod
    def _decode_big(cur: ByteCursor) -> Operand:
        # The second byte is ORed in, not shifted; kept as found in codefiles.
        value = cur.read_u8()
        if value & 0x80:
            value = (value & 0x7F) | cur.read_u8()
        return Operand(OperandKind.BIG, value, str(value))

    @staticmethod
    def _decode_byte(cur: ByteCursor) -> Operand:
        value = cur.read_u8()
        return Operand(OperandKind.BYTE, value, str(value))

    @staticmethod
    def _decode_jump(cur: ByteCursor, resolver: JumpTableResolver, start: int) -> Operand:
        offset = cur.read_i8()
        target, via_table = resolver.resolve(start, offset)
        text = "0" if offset == 0 else f"{offset & 0xFF:x}h"
        return Operand(OperandKind.JUMP, offset, text, target, via_table)

    @staticmethod
    def _decode_string(cur: ByteCursor) -> Operand:
        length = cur.read_u8()
        if length == 0:
            return Operand(OperandKind.STRING, "", "0")
        text = cur.read_string(length)
        return Operand(OperandKind.STRING, text, f"{length}, `{text}`")

    @staticmethod
    def _decode_blob(cur: ByteCursor) -> Operand:
        length = cur.read_u8()
        if length == 0:
            return Operand(OperandKind.BLOB, b"", "0")
        data = cur.read_bytes(length)
        pairs = " ".join(f"{b:02x}" for b in data)
        return Operand(OperandKind.BLOB, data, f"{length}, {pairs}")

    @staticmethod
    def _decode_constants(cur: ByteCursor) -> Operand:
        count = cur.read_u8()
        if count == 0:
            return Operand(OperandKind.CONSTANTS, (), "0")
        cur.align_to_word()
        words = cur.read_u16_array(count)
        rendered = ", ".join(f"{w:04x}h" for w in words)
        return Operand(OperandKind.CONSTANTS, tuple(words), f"{count}, {rendered}")

    @staticmethod
    def _decode_cases(cur: ByteCursor) -> Operand:
        cur.align_to_word()
        table_pos = cur.position
        low = cur.read_i16()
        high = cur.read_i16()
        # hi == lo - 1 is an empty table
        count = high - low + 1
        if count < 0:
            raise CaseRangeError(low, high, table_pos)
        cases = cur.read_i16_array(count)
        default = cur.read_i16()

        parts = [str(low), str(high)]
        parts.extend(f"{c & 0xFFFF:x}h" for c in cases)
        parts.append(f"{default & 0xFFFF:x}h")
        text = ", ".join(parts)
        return Operand(OperandKind.CASES, (low, high) + tuple(cases) + (default,), text)


# =============================================================================
# Helpers
# =============================================================================

def _short_form(opcode: int) -> Optional[Tuple[str, int]]:
    """Return (mnemonic, band base) when opcode is a packed short form."""
    for first, last, mnemonic, base, _ in SHORT_FORMS:
        if first <= opcode <= last:
            return mnemonic, base
    return None


def _jump_comment(operand: Operand) -> str:
    if operand.target is None:
        return "NOP"
    if operand.via_jump_table:
        return f"{operand.target:04x} (thru jump table)"
    return f"{operand.target:04x}"
