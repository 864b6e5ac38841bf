"""
P-Code SDK - Codefile Tools for Apple II Pascal
===============================================

This package reads the object files ("codefiles") produced by the Apple II
Pascal p-System toolchain and disassembles the p-code procedures they
contain.

A codefile starts with a 16-slot segment dictionary. Each segment ends in a
procedure pointer table; each pointer leads to a procedure's jump table and
a fixed footer describing where its code starts and stops.

Main Components
---------------
- **codefile**: Segment dictionary and procedure table parsing
    ByteCursor/TailCursor readers, record types and CodefileParser

- **disassembler**: P-code decoding
    PCodeDisassembler, JumpTableResolver and the CodefileLister

- **config**: Listing options (ListingConfig)

Quick Start
-----------
List a codefile:
    >>> from pcode_sdk import CodefileParser, CodefileLister
    >>> parser = CodefileParser.from_file("TEST.CODE")
    >>> for line in CodefileLister().iter_lines(parser):
    ...     print(line)

Or use the command-line tool:
    $ pcdisasm TEST.CODE

Version History
---------------
1.0.0 - Initial release with dictionary/procedure parsing and p-code listing
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from pcode_sdk.errors import (
    PCodeError,
    CodefileError,
    CodeLocation,
    TruncatedError,
    InvalidSegmentKindError,
    DecodeError,
    UnknownOpcodeError,
    UnknownFlavorError,
    CaseRangeError,
)

from pcode_sdk.codefile import (
    ByteCursor,
    TailCursor,
    CodefileParser,
    SegmentKind,
    MachineType,
    SegmentDictionaryEntry,
    Segment,
    ProcedureFooter,
    PCodeProcedure,
    NativeProcedure,
    parse_kind,
    parse_segment_dictionary,
    walk_procedure_table,
)

from pcode_sdk.disassembler import (
    PCodeDisassembler,
    DisassembledPCode,
    JumpTableResolver,
    CodefileLister,
    list_codefile,
)

from pcode_sdk.config import ListingConfig

__all__ = [
    # Version info
    "__version__",
    # Exception hierarchy
    "PCodeError",
    "CodefileError",
    "CodeLocation",
    "TruncatedError",
    "InvalidSegmentKindError",
    "DecodeError",
    "UnknownOpcodeError",
    "UnknownFlavorError",
    "CaseRangeError",
    # Codefile structure
    "ByteCursor",
    "TailCursor",
    "CodefileParser",
    "SegmentKind",
    "MachineType",
    "SegmentDictionaryEntry",
    "Segment",
    "ProcedureFooter",
    "PCodeProcedure",
    "NativeProcedure",
    "parse_kind",
    "parse_segment_dictionary",
    "walk_procedure_table",
    # Disassembly
    "PCodeDisassembler",
    "DisassembledPCode",
    "JumpTableResolver",
    "CodefileLister",
    "list_codefile",
    # Configuration
    "ListingConfig",
]
