"""
Codefile Handling for Apple II Pascal
=====================================

This module reads the structure of p-System codefiles: the segment
dictionary and each segment's procedure table.

This module provides:
- **CodefileParser**: Load a codefile and iterate its segments
- **ByteCursor / TailCursor**: Forward and backward byte readers
- **Record types**: Dictionary entries, segments, procedure records

Quick Start
-----------
    >>> from pcode_sdk.codefile import CodefileParser
    >>> parser = CodefileParser.from_file("TEST.CODE")
    >>> for segment in parser.iter_segments():
    ...     print(segment.name, segment.proc_count)
"""

# =============================================================================
# Public API Exports
# =============================================================================

from pcode_sdk.codefile.cursor import ByteCursor, TailCursor, decode_text
from pcode_sdk.codefile.records import (
    # Constants
    BLOCK_SIZE,
    DICTIONARY_SIZE,
    DICTIONARY_SLOTS,
    FOOTER_SIZE,
    # Enums
    SegmentKind,
    MachineType,
    # Data structures
    SegmentDictionaryEntry,
    Segment,
    ProcedureFooter,
    ProcedureRecord,
    PCodeProcedure,
    NativeProcedure,
)
from pcode_sdk.codefile.parser import (
    CodefileParser,
    parse_kind,
    parse_machine_type,
    parse_segment_dictionary,
    parse_footer,
    parse_native_procedure,
    walk_procedure_table,
)

__all__ = [
    "ByteCursor",
    "TailCursor",
    "decode_text",
    "BLOCK_SIZE",
    "DICTIONARY_SIZE",
    "DICTIONARY_SLOTS",
    "FOOTER_SIZE",
    "SegmentKind",
    "MachineType",
    "SegmentDictionaryEntry",
    "Segment",
    "ProcedureFooter",
    "ProcedureRecord",
    "PCodeProcedure",
    "NativeProcedure",
    "CodefileParser",
    "parse_kind",
    "parse_machine_type",
    "parse_segment_dictionary",
    "parse_footer",
    "parse_native_procedure",
    "walk_procedure_table",
]
