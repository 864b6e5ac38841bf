"""
Listing Configuration
=====================

Options that shape the disassembly listing. Configuration can come from:
- Default values (defined here)
- Environment variables
- Command-line flags (applied by the CLI on top of the environment)

Environment variables (all optional):
    PCODE_SHOW_BYTES: "1"/"true"/"yes" to add a raw-bytes column
    PCODE_SHOW_JUMP_TABLES: "0"/"false"/"no" to omit jump table dumps
    PCODE_SEGMENTS: Comma-separated segment names to list
"""

from dataclasses import dataclass, field
from typing import List, Optional
import os


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_flag(value: Optional[str], default: bool) -> bool:
    """Interpret a boolean setting, ignoring unrecognised values."""
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return default


@dataclass
class ListingConfig:
    """
    Configuration for codefile listings.

    Attributes:
        show_bytes: Add the raw bytes of each instruction after its offset
        show_jump_tables: Dump words left between a procedure's last
            instruction and its footer
        segments: Names of segments to list (empty = every segment)
    """
    show_bytes: bool = False
    show_jump_tables: bool = True
    segments: List[str] = field(default_factory=list)

    def wants_segment(self, name: str) -> bool:
        """True if the segment should appear in the listing."""
        if not self.segments:
            return True
        return name.upper() in (s.upper() for s in self.segments)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ListingConfig":
        """
        Create ListingConfig from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Returns:
            ListingConfig with values from the environment
        """
        config = cls()
        source = os.environ if environ is None else environ

        config.show_bytes = _parse_flag(source.get("PCODE_SHOW_BYTES"), config.show_bytes)
        config.show_jump_tables = _parse_flag(
            source.get("PCODE_SHOW_JUMP_TABLES"), config.show_jump_tables
        )

        if segments := source.get("PCODE_SEGMENTS"):
            config.segments = [s.strip() for s in segments.split(",") if s.strip()]

        return config
