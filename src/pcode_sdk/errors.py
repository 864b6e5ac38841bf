"""
P-Code SDK Error Hierarchy
==========================

This module defines the exception hierarchy for the codefile reader and
the p-code disassembler. All exceptions inherit from PCodeError, allowing
callers to catch every SDK-related error with a single except clause.

Exception Hierarchy
-------------------
PCodeError (base)
└── CodefileError (carries a CodeLocation)
    ├── TruncatedError - read past the end of a buffer or slice
    ├── InvalidSegmentKindError - dictionary kind outside 0-7
    └── DecodeError (instruction stream errors)
        ├── UnknownOpcodeError - opcode byte with no mapping
        ├── UnknownFlavorError - known opcode, unknown flavor byte
        └── CaseRangeError - XJP case table with hi < lo - 1

Design Philosophy
-----------------
Every decode error is terminal. A misread opcode shifts every following
offset in the procedure, so nothing downstream of the first failure can be
trusted. Errors are therefore raised at the point of detection with the byte
offset, and the listing driver fills in the segment name and procedure
number on the way out.

Error messages follow this format:
    SEGNAME proc table entry 2 @ 01a4h: error: description

The procedure is identified by its pointer-table index, not by the
procedure number stored in its footer (which names it in listings).
"""

from dataclasses import dataclass, replace
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class PCodeError(Exception):
    """
    Base exception for all P-Code SDK errors.

        try:
            parser = CodefileParser.from_file("SYSTEM.PASCAL")
        except PCodeError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Location Tracking
# =============================================================================

@dataclass(frozen=True)
class CodeLocation:
    """
    Identifies where in a codefile an error occurred.

    Attributes:
        segment: Segment name from the dictionary (optional)
        procedure: 1-based pointer-table index within the segment (optional)
        offset: Byte offset; segment-relative once a segment is known.
            Offsets below zero come from corrupt pointers and are shown
            in decimal.
    """
    segment: Optional[str] = None
    procedure: Optional[int] = None
    offset: Optional[int] = None

    def __str__(self) -> str:
        parts = []
        if self.segment is not None:
            parts.append(self.segment)
        if self.procedure is not None:
            parts.append(f"proc table entry {self.procedure}")
        if self.offset is not None and self.offset < 0:
            parts.append(f"@ {self.offset}")
        elif self.offset is not None:
            parts.append(f"@ {self.offset:04x}h")
        return " ".join(parts)


# =============================================================================
# Codefile Exceptions
# =============================================================================

class CodefileError(PCodeError):
    """
    Base exception for errors found while reading a codefile.

    Attributes:
        message: The error description
        location: Where the error occurred
    """

    def __init__(self, message: str, location: Optional[CodeLocation] = None):
        self.message = message
        self.location = location or CodeLocation()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        where = str(self.location)
        if where:
            return f"{where}: error: {self.message}"
        return f"error: {self.message}"

    @property
    def offset(self) -> Optional[int]:
        return self.location.offset

    def add_context(
        self,
        segment: Optional[str] = None,
        procedure: Optional[int] = None,
    ) -> "CodefileError":
        """
        Fill in location fields that are still unknown.

        Fields already set by a lower layer are kept. The rendered message
        is rebuilt so str(error) reflects the new context.

        Returns:
            self, so callers can write ``raise err.add_context(...)``
        """
        updates = {}
        if self.location.segment is None and segment is not None:
            updates["segment"] = segment
        if self.location.procedure is None and procedure is not None:
            updates["procedure"] = procedure
        if updates:
            self.location = replace(self.location, **updates)
            self.args = (self._format_message(),)
        return self


class TruncatedError(CodefileError):
    """
    A read ran past the end (or below the start) of the available bytes.

    Raised by the cursors for every out-of-range access, including
    jump-table lookups and footer slices that point outside the segment.
    """

    def __init__(self, offset: int, needed: int, available: int, what: str = ""):
        self.needed = needed
        self.available = available
        subject = f"{what}: " if what else ""
        super().__init__(
            f"{subject}truncated data, needed {needed} byte(s) at offset "
            f"{offset}, buffer holds {available}",
            CodeLocation(offset=offset),
        )


class InvalidSegmentKindError(CodefileError):
    """
    Segment dictionary kind outside the range 0-7.

    Attributes:
        value: The raw 16-bit kind word
        slot: Dictionary slot holding the value (when known)
    """

    def __init__(self, value: int, slot: Optional[int] = None):
        self.value = value
        self.slot = slot
        where = f" in dictionary slot {slot}" if slot is not None else ""
        super().__init__(f"invalid segment kind {value}{where}")


# =============================================================================
# Instruction Decode Exceptions
# =============================================================================

class DecodeError(CodefileError):
    """Base exception for errors in a procedure's instruction stream."""
    pass


class UnknownOpcodeError(DecodeError):
    """
    Opcode byte that is not part of the instruction set.

    The stream is either corrupt or uses an extension this decoder does not
    know. Decoding stops here rather than skipping the byte.
    """

    def __init__(self, opcode: int, offset: int):
        self.opcode = opcode
        super().__init__(
            f"unknown opcode {opcode} ({opcode:02x}h)",
            CodeLocation(offset=offset),
        )


class UnknownFlavorError(DecodeError):
    """
    Recognised two-level opcode followed by an unknown flavor byte.

    Attributes:
        family: Mnemonic family name (e.g. "EQU")
        flavor: The flavor byte that was read
    """

    def __init__(self, family: str, flavor: int, offset: int):
        self.family = family
        self.flavor = flavor
        super().__init__(
            f"unknown flavor of {family}: {flavor}",
            CodeLocation(offset=offset),
        )


class CaseRangeError(DecodeError):
    """
    XJP case table whose case count, hi - lo + 1, is negative.

    hi == lo - 1 is a valid empty table and does not raise.

    A negative case count cannot be sized, so the stream is unreadable from
    this point on.
    """

    def __init__(self, low: int, high: int, offset: int):
        self.low = low
        self.high = high
        super().__init__(
            f"invalid case range {low}..{high}",
            CodeLocation(offset=offset),
        )
