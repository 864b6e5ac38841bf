"""
P-Code SDK Disassembler Module
==============================

This module provides:
- PCodeDisassembler: decodes Apple II Pascal p-code procedure bodies
- JumpTableResolver: resolves jump operands routed through a jump table
- CodefileLister: renders complete codefile listings

Usage:
    from pcode_sdk.disassembler import PCodeDisassembler

    disasm = PCodeDisassembler()
    for instr in disasm.iter_instructions(segment, enter, exit, jtab):
        print(instr)
"""

from .pcode import (
    PCodeDisassembler,
    DisassembledPCode,
    JumpTableResolver,
    resolve_jump,
    Operand,
    OperandKind,
    PCODE_TABLE,
)
from .listing import CodefileLister, list_codefile

__all__ = [
    "PCodeDisassembler",
    "DisassembledPCode",
    "JumpTableResolver",
    "resolve_jump",
    "Operand",
    "OperandKind",
    "PCODE_TABLE",
    "CodefileLister",
    "list_codefile",
]
