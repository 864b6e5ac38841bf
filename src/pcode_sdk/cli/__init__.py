"""
P-Code SDK Command-Line Interface
=================================

This package provides command-line tools for the P-Code SDK:

- **pcdisasm**: Codefile disassembler

Each tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["pcdisasm"]
