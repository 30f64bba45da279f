"""
DLX3 Command-Line Interface

Exposes three subcommands for inspecting DLX3 recorder files:

    dlx3 summary <file> [--timezone TZ]              Header info and block counts
    dlx3 dump    <file> [--tag TAG] [--format ...]   Decoded blocks as table or JSON
    dlx3 check   <file> [--strict-checksum] [...]    Validate; non-zero exit on faults

The package must be installed (``pip install -e .``) for the ``dlx3`` entry
point to be available.

Package Location: src/dlx3/cli.py
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import List, Optional


# ===========================================================================
# Shared helpers
# ===========================================================================

def _die(message: str) -> None:
    """Print an error message and exit with status 1.

    Args:
        message: Human-readable error text.
    """
    print(f"\n❌  Error: {message}", file=sys.stderr)
    sys.exit(1)


def _reader_config(args: argparse.Namespace):
    """Map CLI flags onto a ``ReaderConfig``."""
    from dlx3.analysis import ReaderConfig

    return ReaderConfig(
        strict_checksum=getattr(args, "strict_checksum", False),
        stop_at_file_end=not getattr(args, "no_stop_at_end", False),
    )


def _load(args: argparse.Namespace):
    """Read and decode ``args.file``, exiting cleanly when it is missing.

    Returns:
        The ``ParseResult`` of the file.
    """
    from dlx3.data import read_dlx3_file

    path = Path(args.file)
    if not path.is_file():
        _die(f"File not found: {path}")
    return read_dlx3_file(path, config=_reader_config(args))


def _format_time(timestamp: int, zone) -> str:
    from dlx3.utils.timezone import epoch_to_datetime

    moment = epoch_to_datetime(timestamp, zone)
    return moment.isoformat() if moment is not None else "n/a"


# ===========================================================================
# Subcommand handlers
# ===========================================================================

# ---------------------------------------------------------------------------
# summary
# ---------------------------------------------------------------------------

def handle_summary(args: argparse.Namespace) -> None:
    """Print the file header, per-tag block counts and problem totals.

    Timestamps are shown in ``--timezone`` when given, otherwise in the
    zone named by the file header (UTC when absent).

    Args:
        args: Parsed CLI arguments.  Required field: ``args.file``.
    """
    from dlx3.analysis import PassengerCountBlock
    from dlx3.utils.timezone import header_timezone, resolve_pytz

    result = _load(args)
    zone = resolve_pytz(args.timezone or header_timezone(result))
    header = result.header

    print(f"\n📄  {Path(args.file).name}")
    if header is not None:
        print(f"    Device:    {header.device_model} (serial {header.device_serial})")
        print(f"    Vehicle:   {header.vehicle_id}  Operator: {header.operator}")
        print(f"    Created:   {_format_time(header.creation_time, zone)}")
        print(f"    Previous:  {_format_time(header.previous_file_time, zone)}")
        print(f"    Revision:  {header.file_revision}  TZ: {zone}")
    else:
        print("    ⚠️   No FHDR block")

    print(f"\n    Blocks: {len(result.blocks)}")
    for tag, count in sorted(Counter(b.type_tag for b in result.blocks).items()):
        print(f"      {tag:<6}{count:>6}")

    counts = result.of_type(PassengerCountBlock)
    if counts:
        boarding = sum(b.total_boarding for b in counts)
        alighting = sum(b.total_alighting for b in counts)
        print(f"\n    Passengers: {boarding} boarding, {alighting} alighting")

    warnings = result.all_warnings()
    print(f"\n    Warnings: {len(warnings)}")
    for kind, count in sorted(Counter(w.kind.value for w in warnings).items()):
        print(f"      {kind:<20}{count:>6}")

    if result.error is not None:
        print(f"\n    ❌  Parse stopped: {result.error}")


# ---------------------------------------------------------------------------
# dump
# ---------------------------------------------------------------------------

def handle_dump(args: argparse.Namespace) -> None:
    """Print decoded blocks, optionally filtered to one tag.

    ``--format table`` prints the block summary DataFrame; ``--format json``
    prints one JSON object per block.

    Args:
        args: Parsed CLI arguments.
    """
    from dlx3.data import get_block_summary_dataframe

    result = _load(args)
    blocks = result.by_tag(args.tag) if args.tag else result.blocks

    if args.format == "json":
        payload = {
            "blocks": [b.to_dict(include_payload=args.payload) for b in blocks],
            "warnings": [str(w) for w in result.warnings],
            "error": str(result.error) if result.error else None,
        }
        print(json.dumps(payload, indent=2, default=str))
        return

    df = get_block_summary_dataframe(blocks)
    if df.empty:
        print("No blocks.")
        return
    print(df.to_string(index=False))


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def handle_check(args: argparse.Namespace) -> None:
    """Validate a file and exit non-zero on a fatal error.

    With ``--fail-on-warning`` any block or result warning also fails.

    Args:
        args: Parsed CLI arguments.
    """
    result = _load(args)
    warnings = result.all_warnings()

    for block in result.blocks:
        for warning in block.warnings:
            print(f"  ⚠️   {block.type_tag}@{block.offset}  {warning}")
    for warning in result.warnings:
        print(f"  ⚠️   {warning}")

    if result.error is not None:
        _die(f"{Path(args.file).name}: {result.error}")

    if warnings and args.fail_on_warning:
        _die(f"{Path(args.file).name}: {len(warnings)} warning(s)")

    print(
        f"\n✅  {Path(args.file).name}: {len(result.blocks)} blocks, "
        f"{len(warnings)} warning(s)"
    )


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _add_reader_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "file",
        metavar="FILE",
        help="Path to a .dlx3 file.",
    )
    parser.add_argument(
        "--strict-checksum",
        action="store_true",
        default=False,
        help="Stop at the first block whose CRC does not match.",
    )
    parser.add_argument(
        "--no-stop-at-end",
        action="store_true",
        default=False,
        help="Keep decoding frames that follow the FEND block.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Construct and return the top-level argument parser.

    Returns:
        Configured ``ArgumentParser`` with ``summary``, ``dump``, and
        ``check`` subcommands attached.
    """
    parser = argparse.ArgumentParser(
        prog="dlx3",
        description=(
            "DLX3 – passenger counting recorder files\n"
            "Inspect, dump and validate DLX3 block streams."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        help="Emit log records as JSON lines on stderr.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log every decode warning (DEBUG level).",
    )
    subs = parser.add_subparsers(dest="command", metavar="<command>")
    subs.required = True

    # ------------------------------------------------------------------
    # summary
    # ------------------------------------------------------------------
    p_sum = subs.add_parser(
        "summary",
        help="Show header information and per-tag block counts.",
    )
    _add_reader_flags(p_sum)
    p_sum.add_argument(
        "--timezone",
        default=None,
        metavar="TZ",
        help="IANA timezone for displayed times (default: zone from FHDR).",
    )
    p_sum.set_defaults(func=handle_summary)

    # ------------------------------------------------------------------
    # dump
    # ------------------------------------------------------------------
    p_dump = subs.add_parser(
        "dump",
        help="Print decoded blocks as a table or JSON.",
    )
    _add_reader_flags(p_dump)
    p_dump.add_argument(
        "--tag",
        default=None,
        metavar="TAG",
        help="Only blocks with this 4-character tag, e.g. CDAT.",
    )
    p_dump.add_argument(
        "--format",
        choices=("table", "json"),
        default="table",
        help="Output format (default: table).",
    )
    p_dump.add_argument(
        "--payload",
        action="store_true",
        default=False,
        help="Include the raw payload (hex) in JSON output.",
    )
    p_dump.set_defaults(func=handle_dump)

    # ------------------------------------------------------------------
    # check
    # ------------------------------------------------------------------
    p_chk = subs.add_parser(
        "check",
        help="Validate a file; exit status 1 on a fatal framing error.",
    )
    _add_reader_flags(p_chk)
    p_chk.add_argument(
        "--fail-on-warning",
        action="store_true",
        default=False,
        help="Also exit with status 1 when any decode warning was recorded.",
    )
    p_chk.set_defaults(func=handle_check)

    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def main(argv: Optional[List[str]] = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate handler.

    This function is registered as the ``dlx3`` console script entry point
    in ``pyproject.toml``.
    """
    from dlx3.utils.logging import configure_logging

    parser = _build_parser()
    args   = parser.parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        json_output=args.log_json,
    )
    args.func(args)


if __name__ == "__main__":
    main()
