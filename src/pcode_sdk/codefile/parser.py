"""
Codefile Parser
===============

This module reads the structure of an Apple II Pascal codefile: the segment
dictionary at the front of the file, and each segment's procedure table at
the segment's tail.

Segment Dictionary
------------------
``parse_segment_dictionary()`` reads the five parallel arrays of block 0 and
returns the used slots in slot order. A kind word outside 0-7 is a hard
failure.

Procedure Table
---------------
``walk_procedure_table()`` walks the backward pointer array at the end of a
segment. Each pointer leads to a jump table base (``jtab``) and the 10-byte
footer just below it. The byte at ``jtab`` decides what follows:

- non-zero: a p-code procedure; the footer gives enter/exit addresses
- zero: a native procedure; only its attribute table is parsed by
  ``parse_native_procedure()``

Usage Examples
--------------
    >>> from pcode_sdk.codefile import CodefileParser
    >>> parser = CodefileParser.from_file("TEST.CODE")
    >>> for segment in parser.iter_segments():
    ...     for proc in parser.procedures(segment):
    ...         print(segment.name, proc.index, proc.jtab)

Reference
---------
- Apple II Pascal 1.1 Operating System Reference Manual, "Codefiles"
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Union
import logging

from pcode_sdk.errors import CodefileError, InvalidSegmentKindError, TruncatedError
from pcode_sdk.codefile.cursor import ByteCursor, TailCursor
from pcode_sdk.codefile.records import (
    DICTIONARY_SIZE,
    DICTIONARY_SLOTS,
    FOOTER_SIZE,
    NAME_LENGTH,
    NATIVE_SENTINEL,
    MachineType,
    NativeProcedure,
    PCodeProcedure,
    ProcedureFooter,
    ProcedureRecord,
    Segment,
    SegmentDictionaryEntry,
    SegmentKind,
)

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Segment Dictionary
# =============================================================================

def parse_kind(value: int) -> SegmentKind:
    """
    Convert a dictionary kind word to a SegmentKind.

    Raises:
        InvalidSegmentKindError: If value is outside 0-7
    """
    if not 0 <= value <= 7:
        raise InvalidSegmentKindError(value)
    return SegmentKind(value)


def parse_machine_type(packed: int) -> MachineType:
    """Machine type from the low four bits of the packed byte."""
    return MachineType.from_packed(packed)


def parse_segment_dictionary(data: bytes) -> List[SegmentDictionaryEntry]:
    """
    Parse the 16-slot segment dictionary at the start of a codefile.

    Args:
        data: The whole codefile

    Returns:
        Used entries (code_addr != 0) in slot order

    Raises:
        TruncatedError: If the file is shorter than the dictionary
        InvalidSegmentKindError: If any slot holds a kind outside 0-7
    """
    if len(data) < DICTIONARY_SIZE:
        raise TruncatedError(0, DICTIONARY_SIZE, len(data), "segment dictionary")

    cur = ByteCursor(data)
    slots = range(DICTIONARY_SLOTS)

    extents = [(cur.read_u16(), cur.read_u16()) for _ in slots]
    names = [cur.read_string(NAME_LENGTH) for _ in slots]

    kinds = []
    for slot in slots:
        raw_kind = cur.read_u16()
        try:
            kinds.append(parse_kind(raw_kind))
        except InvalidSegmentKindError:
            raise InvalidSegmentKindError(raw_kind, slot) from None

    text_addrs = [cur.read_u16() for _ in slots]
    info = [(cur.read_u8(), cur.read_u8()) for _ in slots]

    entries = []
    for slot in slots:
        code_addr, code_len = extents[slot]
        if code_addr == 0:
            continue
        num, packed = info[slot]
        entry = SegmentDictionaryEntry(
            slot=slot,
            code_addr=code_addr,
            code_len=code_len,
            name=names[slot],
            kind=kinds[slot],
            text_addr=text_addrs[slot],
            num=num,
            machine_type=parse_machine_type(packed),
            version=packed >> 5,
        )
        logger.debug(
            f"Slot {slot}: segment '{entry.name}' at block {code_addr}, "
            f"{code_len} bytes, {entry.kind.name}"
        )
        entries.append(entry)

    return entries


# =============================================================================
# Procedure Table
# =============================================================================

def parse_footer(segment: bytes, jtab: int) -> ProcedureFooter:
    """
    Read the 10-byte footer occupying ``[jtab - 8, jtab + 2)``.

    Raises:
        TruncatedError: If the footer does not fit inside the segment
    """
    start = jtab + 2 - FOOTER_SIZE
    if start < 0 or jtab + 2 > len(segment):
        raise TruncatedError(start, FOOTER_SIZE, len(segment), "procedure footer")

    cur = ByteCursor(segment, start)
    return ProcedureFooter(
        data_size=cur.read_u16(),
        param_size=cur.read_u16(),
        exit_ic=cur.read_u16(),
        enter_ic=cur.read_u16(),
        proc_num=cur.read_u8(),
        lex_level=cur.read_u8(),
    )


def parse_native_procedure(segment: bytes, index: int, jtab: int) -> NativeProcedure:
    """
    Parse the attribute table of a native procedure.

    Walking down from ``jtab + 2``: relocation segment number, a reserved
    byte (the zero sentinel), the self-relative enter_ic word, and then four
    count-prefixed relocation tables.

    Args:
        segment: Segment bytes
        index: 1-based pointer table index
        jtab: Jump table base of the procedure

    Returns:
        NativeProcedure describing the tables and code range

    Raises:
        TruncatedError: If the tables run below the start of the segment
    """
    tail = TailCursor(segment, jtab + 2)

    relocation_segment = tail.read_down_u8()
    tail.read_down_u8()  # reserved

    enter_ic_pos = tail.end - 2
    enter_ic = tail.read_down_u16()
    enter_addr = enter_ic_pos - enter_ic
    if enter_addr < 0:
        raise TruncatedError(enter_addr, 1, len(segment), "native entry point")

    tables = []
    for _ in range(4):
        count = tail.read_down_u16()
        tables.append(tail.read_down_u16_array(count))

    base, seg, proc, interp = tables
    logger.debug(
        f"Native procedure {index}: enter {enter_addr:04x}h, relocations "
        f"{len(base)}/{len(seg)}/{len(proc)}/{len(interp)}"
    )

    return NativeProcedure(
        index=index,
        jtab=jtab,
        relocation_segment=relocation_segment,
        enter_ic=enter_ic,
        enter_addr=enter_addr,
        base_relocs=base,
        segment_relocs=seg,
        procedure_relocs=proc,
        interpreter_relocs=interp,
        code_end=tail.end,
    )


def walk_procedure_table(segment: bytes) -> List[ProcedureRecord]:
    """
    Locate every procedure of a segment through its pointer table.

    The last byte of the segment is the procedure count, the byte before
    it the segment number. Pointers are read from the tail downward, so
    procedure 1 is the entry nearest the end.

    Args:
        segment: Segment bytes

    Returns:
        Procedures in walk order (index 1 first); each is either a
        PCodeProcedure or a NativeProcedure

    Raises:
        TruncatedError: If a pointer, footer or derived address falls
            outside the segment
    """
    tail = TailCursor(segment)
    proc_count = tail.read_down_u8()
    tail.read_down_u8()  # segment number

    procedures: List[ProcedureRecord] = []
    for index in range(1, proc_count + 1):
        try:
            procedures.append(_parse_procedure(segment, tail, index))
        except CodefileError as e:
            raise e.add_context(procedure=index)

    return procedures


def _parse_procedure(segment: bytes, tail: TailCursor, index: int) -> ProcedureRecord:
    """Follow the next pointer down the table and parse what it leads to."""
    pointer_position = tail.end - 2
    pointer = tail.read_down_u16()
    jtab = pointer_position - pointer
    if jtab < 0 or jtab >= len(segment):
        raise TruncatedError(jtab, 1, len(segment), "procedure pointer")

    if segment[jtab] == NATIVE_SENTINEL:
        return parse_native_procedure(segment, index, jtab)

    proc = PCodeProcedure(index=index, jtab=jtab, footer=parse_footer(segment, jtab))
    if proc.enter_addr < 0 or proc.exit_addr < 0:
        raise TruncatedError(
            min(proc.enter_addr, proc.exit_addr), 1, len(segment), "procedure code range",
        )
    logger.debug(
        f"Procedure {index}: jtab {jtab:04x}h, enter {proc.enter_addr:04x}h, "
        f"exit {proc.exit_addr:04x}h"
    )
    return proc


# =============================================================================
# Codefile Parser
# =============================================================================

@dataclass
class CodefileParser:
    """
    Parser for whole codefiles.

    The file is held in memory and never modified. The dictionary is read
    on construction; segments and procedure tables are read on demand.

    Attributes:
        data: The raw codefile bytes
        entries: Used segment dictionary entries in slot order

    Example:
        >>> parser = CodefileParser.from_file("TEST.CODE")
        >>> [seg.name for seg in parser.iter_segments()]
        ['TEST', 'PASCALIO']
    """
    # Raw codefile data (not exposed in repr)
    data: bytes = field(repr=False)

    # Parsed dictionary
    entries: List[SegmentDictionaryEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Parse the segment dictionary after initialization."""
        self.entries = parse_segment_dictionary(self.data)
        logger.debug(f"Codefile: {len(self.data)} bytes, {len(self.entries)} segments")

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "CodefileParser":
        """
        Create a CodefileParser from a file path.

        Raises:
            FileNotFoundError: If the file doesn't exist
            CodefileError: If the dictionary cannot be parsed
        """
        filepath = Path(filepath)
        return cls(data=filepath.read_bytes())

    @classmethod
    def from_bytes(cls, data: bytes) -> "CodefileParser":
        """Create a CodefileParser from raw bytes."""
        return cls(data=bytes(data))

    def segment(self, entry: SegmentDictionaryEntry) -> Segment:
        """
        Slice the bytes of one segment out of the file.

        Raises:
            TruncatedError: If the segment extends past the end of the file
        """
        if entry.end_offset > len(self.data):
            raise TruncatedError(
                entry.base_offset, entry.code_len, len(self.data),
                f"segment '{entry.name}'",
            ).add_context(segment=entry.name)
        return Segment(entry=entry, data=self.data[entry.base_offset:entry.end_offset])

    def iter_segments(self) -> Iterator[Segment]:
        """Yield segments in dictionary order."""
        for entry in self.entries:
            yield self.segment(entry)

    def procedures(self, segment: Segment) -> List[ProcedureRecord]:
        """
        Walk the procedure table of a segment.

        Data segments and segments too short for a tail have none.
        """
        if not segment.has_procedure_table:
            return []
        try:
            return walk_procedure_table(segment.data)
        except CodefileError as e:
            raise e.add_context(segment=segment.name)

    def get_segment(self, name: str) -> Segment:
        """
        Look up a segment by name (case-insensitive).

        Raises:
            KeyError: If no segment has that name
        """
        for entry in self.entries:
            if entry.name.upper() == name.upper():
                return self.segment(entry)
        raise KeyError(name)
