"""
pcdisasm - Apple II Pascal Codefile Disassembler
================================================

This module implements the command-line interface for the codefile
disassembler. It reads a whole codefile, walks its segment dictionary and
procedure tables, and prints a p-code listing.

Usage Examples
--------------
Disassemble every segment:
    $ pcdisasm TEST.CODE

Only some segments:
    $ pcdisasm SYSTEM.PASCAL -s PASCALSY -s USERPROG

Output to file, with raw bytes:
    $ pcdisasm TEST.CODE --bytes -o test.lst

Show the segment dictionary only:
    $ pcdisasm TEST.CODE --list-segments

Defaults for --bytes, --jump-tables and --segment can also be set with the
PCODE_SHOW_BYTES, PCODE_SHOW_JUMP_TABLES and PCODE_SEGMENTS environment
variables.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import click

from pcode_sdk import __version__
from pcode_sdk.cli.errors import handle_cli_exception
from pcode_sdk.codefile import CodefileParser
from pcode_sdk.config import ListingConfig
from pcode_sdk.disassembler import CodefileLister


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def format_dictionary(parser: CodefileParser) -> str:
    """Render the used segment dictionary slots as a table."""
    lines = [
        f"{'Slot':<5}{'Name':<10}{'Num':<5}{'Kind':<26}{'Machine':<14}"
        f"{'Ver':<5}{'Block':<7}{'Length':>6}",
        "-" * 78,
    ]
    for entry in parser.entries:
        lines.append(
            f"{entry.slot:<5}{entry.name:<10}{entry.num:<5}"
            f"{entry.kind.get_description():<26}{entry.machine_type.value:<14}"
            f"{entry.version:<5}{entry.code_addr:<7}{entry.code_len:>6}"
        )
    lines.append(f"\n{len(parser.entries)} segment(s)")
    return "\n".join(lines)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: stdout)",
)
@click.option(
    "-s", "--segment",
    "segments",
    multiple=True,
    help="Only list the named segment (repeatable)",
)
@click.option(
    "--bytes/--no-bytes",
    "show_bytes",
    default=None,
    help="Include raw instruction bytes (default: off)",
)
@click.option(
    "--jump-tables/--no-jump-tables",
    "show_jump_tables",
    default=None,
    help="Dump trailing jump table words after each procedure (default: on)",
)
@click.option(
    "--list-segments",
    is_flag=True,
    help="Print the segment dictionary and exit",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="pcdisasm")
def main(
    input_file: Path,
    output: Optional[Path],
    segments: Tuple[str, ...],
    show_bytes: Optional[bool],
    show_jump_tables: Optional[bool],
    list_segments: bool,
    verbose: bool,
) -> None:
    """
    Disassemble an Apple II Pascal codefile.

    INPUT_FILE is the codefile to read.

    Examples:

        # Full listing
        pcdisasm TEST.CODE

        # One segment, with instruction bytes
        pcdisasm TEST.CODE -s TEST --bytes
    """
    setup_logging(verbose)

    config = ListingConfig.from_env()
    if show_bytes is not None:
        config.show_bytes = show_bytes
    if show_jump_tables is not None:
        config.show_jump_tables = show_jump_tables
    if segments:
        config.segments = list(segments)

    try:
        data = input_file.read_bytes()
        if verbose:
            click.echo(f"Input file: {input_file} ({len(data)} bytes)", err=True)

        parser = CodefileParser.from_bytes(data)

        if list_segments:
            click.echo(format_dictionary(parser))
            return

        missing = [s for s in config.segments
                   if not any(e.name.upper() == s.upper() for e in parser.entries)]
        if missing:
            raise click.BadParameter(
                f"no segment named {', '.join(missing)}", param_hint="--segment"
            )

        lister = CodefileLister(config)
        count = 0
        if output:
            with output.open("w", encoding="utf-8") as fh:
                for line in lister.iter_lines(parser):
                    fh.write(line + "\n")
                    count += 1
            if verbose:
                click.echo(f"Output written to: {output}", err=True)
        else:
            for line in lister.iter_lines(parser):
                click.echo(line)
                count += 1

        if verbose:
            click.echo(f"Lines written: {count}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
