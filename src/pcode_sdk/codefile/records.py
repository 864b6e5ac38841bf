"""
Codefile Record Definitions
===========================

Data structures for the pieces of an Apple II Pascal codefile: the segment
dictionary, segments, and the per-procedure records found at a segment's
tail.

Codefile Structure Overview
---------------------------
A codefile contains:
1. Segment Dictionary (block 0, 288 bytes used): sixteen slots stored as
   five parallel arrays, not interleaved:
   - 16 x (code_addr: u16, code_len: u16)
   - 16 x 8-byte space-padded name
   - 16 x kind: u16
   - 16 x text_addr: u16
   - 16 x (num: u8, packed: u8 = version << 5 | machine_type)
2. Segment bodies at ``code_addr * 512``, ``code_len`` bytes each.

Segment Tail
------------
    ... procedure code ... | pointer table | segment num | proc count
                             (u16 x count)    (u8)          (u8)

Pointer ``i`` (1-based, counted from the end) sits at ``len - 2 - 2*i``.
Subtracting the pointer from its own offset gives the procedure's jump
table base, ``jtab``.

Procedure Footer (10 bytes, ending at ``jtab + 2``)
---------------------------------------------------
    Offset      Field
    jtab - 8    data_size   (u16)
    jtab - 6    param_size  (u16)
    jtab - 4    exit_ic     (u16)
    jtab - 2    enter_ic    (u16)
    jtab        proc_num    (u8)   0 = native procedure
    jtab + 1    lex_level   (u8)

Reference
---------
- Apple II Pascal 1.1 Operating System Reference Manual, "Codefiles"
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Tuple


# =============================================================================
# Layout Constants
# =============================================================================

BLOCK_SIZE = 512            # code_addr is a block number
DICTIONARY_SLOTS = 16
NAME_LENGTH = 8
DICTIONARY_SIZE = DICTIONARY_SLOTS * (4 + NAME_LENGTH + 2 + 2 + 2)  # 288
FOOTER_SIZE = 10
NATIVE_SENTINEL = 0         # proc_num byte at jtab for native procedures


# =============================================================================
# Enumeration Types
# =============================================================================

class SegmentKind(IntEnum):
    """Segment kind word from the dictionary (values 0-7)."""
    LINKED = 0
    HOST = 1
    SEGMENT_PROC = 2
    UNIT = 3
    SEPARATE_PROC = 4
    UNLINKED_INTRINSIC_UNIT = 5
    LINKED_INTRINSIC_UNIT = 6
    DATA = 7

    def get_description(self) -> str:
        """Get the CamelCase name used in listings."""
        descriptions = {
            SegmentKind.LINKED: "Linked",
            SegmentKind.HOST: "HostSegment",
            SegmentKind.SEGMENT_PROC: "SegmentProcedure",
            SegmentKind.UNIT: "UnitSegment",
            SegmentKind.SEPARATE_PROC: "SeparateProcedureSegment",
            SegmentKind.UNLINKED_INTRINSIC_UNIT: "UnlinkedIntrinsicUnit",
            SegmentKind.LINKED_INTRINSIC_UNIT: "LinkedIntrinsicUnit",
            SegmentKind.DATA: "DataSegment",
        }
        return descriptions[self]


class MachineType(Enum):
    """
    Machine type from the low four bits of the packed dictionary byte.

    Only two values are meaningful; everything else maps to UNKNOWN.
    This is advisory: the per-procedure sentinel byte decides how a
    procedure is actually handled.
    """
    UNKNOWN = "Unknown"
    PCODE = "PCodeAppleII"
    NATIVE = "Native6502"

    @classmethod
    def from_packed(cls, packed: int) -> "MachineType":
        return {2: cls.PCODE, 7: cls.NATIVE}.get(packed & 0x0F, cls.UNKNOWN)


# =============================================================================
# Segment Dictionary
# =============================================================================

@dataclass(frozen=True)
class SegmentDictionaryEntry:
    """
    One used slot of the segment dictionary.

    Attributes:
        slot: Dictionary slot index (0-15)
        code_addr: Block number of the segment body
        code_len: Segment length in bytes
        name: Segment name, trimmed (up to 8 characters)
        kind: Segment kind
        text_addr: Block number of the interface text (units only)
        num: Segment number
        machine_type: Advisory machine type
        version: System version (high 3 bits of the packed byte)
    """
    slot: int
    code_addr: int
    code_len: int
    name: str
    kind: SegmentKind
    text_addr: int
    num: int
    machine_type: MachineType
    version: int

    @property
    def base_offset(self) -> int:
        """File offset of the first byte of the segment."""
        return self.code_addr * BLOCK_SIZE

    @property
    def end_offset(self) -> int:
        return self.base_offset + self.code_len


@dataclass(frozen=True)
class Segment:
    """
    A segment's bytes together with its dictionary entry.

    The bytes are a slice of the codefile and are never modified. All
    procedure addresses are relative to the start of this slice.
    """
    entry: SegmentDictionaryEntry
    data: bytes = field(repr=False)

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def has_procedure_table(self) -> bool:
        """True unless this is a data segment or too short to hold a tail."""
        return self.entry.kind != SegmentKind.DATA and len(self.data) >= 2

    @property
    def proc_count(self) -> int:
        return self.data[-1] if self.has_procedure_table else 0

    @property
    def segment_num(self) -> int:
        return self.data[-2] if self.has_procedure_table else 0


# =============================================================================
# Procedures
# =============================================================================

@dataclass(frozen=True)
class ProcedureFooter:
    """
    The fixed 10-byte record that ends at ``jtab + 2``.

    Enter and exit addresses are not stored; they are derived from the
    footer position in PCodeProcedure.
    """
    data_size: int
    param_size: int
    exit_ic: int
    enter_ic: int
    proc_num: int
    lex_level: int


@dataclass(frozen=True)
class ProcedureRecord:
    """
    Base class for entries found through the procedure pointer table.

    Attributes:
        index: 1-based position in the pointer table, counted from the end
        jtab: Jump table base address (segment-relative)
    """
    index: int
    jtab: int

    @property
    def is_native(self) -> bool:
        return False


@dataclass(frozen=True)
class PCodeProcedure(ProcedureRecord):
    """A p-code procedure whose instruction stream can be decoded."""
    footer: ProcedureFooter

    @property
    def footer_start(self) -> int:
        return self.jtab + 2 - FOOTER_SIZE

    @property
    def enter_addr(self) -> int:
        return self.jtab + 2 - 4 - self.footer.enter_ic

    @property
    def exit_addr(self) -> int:
        return self.jtab + 2 - 6 - self.footer.exit_ic

    @property
    def proc_num(self) -> int:
        return self.footer.proc_num

    @property
    def lex_level(self) -> int:
        return self.footer.lex_level


@dataclass(frozen=True)
class NativeProcedure(ProcedureRecord):
    """
    A native 6502 procedure. Only its attribute table is parsed.

    Attributes:
        relocation_segment: Segment number used for relocation
        enter_ic: Self-relative pointer stored at ``jtab - 2``
        enter_addr: Derived entry address
        base_relocs: Base-relative relocation pointers
        segment_relocs: Segment-relative relocation pointers
        procedure_relocs: Procedure-relative relocation pointers
        interpreter_relocs: Interpreter-relative relocation pointers
        code_end: First byte past the code (start of the relocation tables)
    """
    relocation_segment: int
    enter_ic: int
    enter_addr: int
    base_relocs: Tuple[int, ...]
    segment_relocs: Tuple[int, ...]
    procedure_relocs: Tuple[int, ...]
    interpreter_relocs: Tuple[int, ...]
    code_end: int

    @property
    def is_native(self) -> bool:
        return True

    @property
    def code_size(self) -> int:
        return max(0, self.code_end - self.enter_addr)
