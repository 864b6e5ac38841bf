"""
Codefile Listing
================

Renders a whole codefile as a line-oriented disassembly listing: one header
block per segment, one per procedure, then one line per instruction.

    ; Code Segment "TEST" (Num: 1)
    ;   Code Addr: 1 (200h)
    ;   Code Len: 58 bytes
    ;   Segment Kind: Linked
    ;   Machine Type: PCodeAppleII
    ;   Version: 2
    ;   Number of Procedures: 1

    ; Procedure TEST_1
    ;   Lexical Level: 0
    ;   Data Size: 2 bytes
    ;   Param Size: 0 bytes
    ;   Enter At: 0000h
    ;   Exit At: 0008h

    0000    SLDC 1
    0001    FJP 4h ; 0005
    ...         (offset and instruction are tab-separated)

Native procedures get a metadata block instead of an instruction listing.

Lines are produced lazily. The first decode error stops the listing; it is
re-raised with the segment name and procedure number attached, and lines
already yielded stay yielded.
"""

from typing import Iterator, List, Optional
import logging

from pcode_sdk.codefile.cursor import ByteCursor
from pcode_sdk.codefile.parser import CodefileParser
from pcode_sdk.codefile.records import (
    NativeProcedure,
    PCodeProcedure,
    Segment,
)
from pcode_sdk.config import ListingConfig
from pcode_sdk.disassembler.pcode import PCodeDisassembler
from pcode_sdk.errors import CodefileError

logger = logging.getLogger(__name__)


class CodefileLister:
    """
    Produces disassembly listings for codefiles.

    Attributes:
        config: Listing options
        disassembler: Instruction decoder shared by every procedure

    Example:
        >>> lister = CodefileLister(ListingConfig(show_bytes=True))
        >>> for line in lister.iter_lines(CodefileParser.from_file("TEST.CODE")):
        ...     print(line)
    """

    def __init__(
        self,
        config: Optional[ListingConfig] = None,
        disassembler: Optional[PCodeDisassembler] = None,
    ):
        self.config = config or ListingConfig()
        self.disassembler = disassembler or PCodeDisassembler()

    def iter_lines(self, parser: CodefileParser) -> Iterator[str]:
        """Yield the listing of every selected segment in dictionary order."""
        for entry in parser.entries:
            if not self.config.wants_segment(entry.name):
                logger.debug(f"Skipping segment '{entry.name}'")
                continue
            segment = parser.segment(entry)
            yield from self.iter_segment_lines(parser, segment)

    def iter_segment_lines(self, parser: CodefileParser, segment: Segment) -> Iterator[str]:
        """Yield the header and procedure listings of one segment."""
        yield from self.segment_header(segment)

        for proc in parser.procedures(segment):
            try:
                if isinstance(proc, NativeProcedure):
                    yield from self.native_report(segment, proc)
                else:
                    yield from self.procedure_lines(segment, proc)
            except CodefileError as e:
                raise e.add_context(segment=segment.name, procedure=proc.index)

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    def segment_header(self, segment: Segment) -> List[str]:
        entry = segment.entry
        lines = [
            f'; Code Segment "{entry.name}" (Num: {entry.num})',
            f";   Code Addr: {entry.code_addr} ({entry.base_offset:x}h)",
            f";   Code Len: {entry.code_len} bytes",
            f";   Segment Kind: {entry.kind.get_description()}",
            f";   Machine Type: {entry.machine_type.value}",
            f";   Version: {entry.version}",
        ]
        if segment.has_procedure_table:
            lines.append(f";   Number of Procedures: {segment.proc_count}")
        lines.append("")
        return lines

    def procedure_lines(self, segment: Segment, proc: PCodeProcedure) -> Iterator[str]:
        """Yield the header, instructions and jump table of a p-code procedure."""
        name = f"{segment.name}_{proc.proc_num}"
        yield f"; Procedure {name}"
        yield f";   Lexical Level: {proc.lex_level}"
        yield f";   Data Size: {proc.footer.data_size} bytes"
        yield f";   Param Size: {proc.footer.param_size} bytes"
        yield f";   Enter At: {proc.enter_addr:04x}h"
        yield f";   Exit At: {proc.exit_addr:04x}h"
        yield ""

        end = proc.enter_addr
        for instr in self.disassembler.disassemble_procedure(segment.data, proc):
            yield instr.to_line(self.config.show_bytes)
            end = instr.end
        yield ""

        if self.config.show_jump_tables and end < proc.footer_start:
            yield f"; Jump table for {name}"
            yield ""
            yield from self.jump_table_lines(segment.data, end, proc.footer_start)
            yield ""

    @staticmethod
    def jump_table_lines(data: bytes, start: int, stop: int) -> Iterator[str]:
        """Dump the words between the end of the code and the footer."""
        cur = ByteCursor(data, start)
        while cur.position < stop:
            pos = cur.position
            word = cur.read_i16()
            yield f"{pos:04x}\t{word & 0xFFFF:04x}h"

    def native_report(self, segment: Segment, proc: NativeProcedure) -> List[str]:
        """Metadata block for a native procedure; its code is not decoded."""
        return [
            f"; Native Procedure {segment.name} (#{proc.index})",
            f";   Relocation Segment: {proc.relocation_segment}",
            f";   Enter At: {proc.enter_addr:04x}h",
            f";   Code Range: {proc.enter_addr:04x}h-{proc.code_end:04x}h "
            f"({proc.code_size} bytes)",
            f";   Base-Relative Relocations: {len(proc.base_relocs)}",
            f";   Segment-Relative Relocations: {len(proc.segment_relocs)}",
            f";   Procedure-Relative Relocations: {len(proc.procedure_relocs)}",
            f";   Interpreter-Relative Relocations: {len(proc.interpreter_relocs)}",
            "",
        ]


def list_codefile(data: bytes, config: Optional[ListingConfig] = None) -> str:
    """
    Disassemble a codefile held in memory and return the full listing.

    Raises:
        CodefileError: On the first structural or decode error
    """
    parser = CodefileParser.from_bytes(data)
    return "\n".join(CodefileLister(config).iter_lines(parser)) + "\n"
