from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.table import Table

from stdfprr.config import ConfigError, ExtractorConfig, load_config
from stdfprr.core.extract import ScanOutcome, extract_part_results, process_message
from stdfprr.core.frequency import TypeFrequency
from stdfprr.core.messages import MessageError, SyncMessage, parse_sync_time, try_parse_position
from stdfprr.core.progress import TransferProgress
from stdfprr.core.serialize import OutputError, render_json, write_results
from stdfprr.logs import configure_logging, shutdown_logging

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

_FAILED = {ScanOutcome.CONFIG_ERROR, ScanOutcome.STRUCTURAL_ERROR, ScanOutcome.ABORTED}


def _position(text: str) -> int:
    value = try_parse_position(text)
    if value is None:
        raise argparse.ArgumentTypeError(f"not a byte position: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stdfprr", description="Extract Part Results from a (growing) STDF file"
    )
    parser.add_argument("--config", help="YAML extractor config")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", help="Append log lines to this file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_extract = sub.add_parser("extract", help="Extract PRRs from a byte window of one file")
    p_extract.add_argument("path", help="Path to STDF file")
    p_extract.add_argument("--start", type=_position, default=0)
    p_extract.add_argument("--end", type=_position, default=-1, help="-1 = through EOF")
    p_extract.add_argument("--sync-time", help="Epoch seconds or local timestamp (default: now)")
    p_extract.add_argument("-o", "--output", help="Write JSON here instead of stdout")
    p_extract.add_argument(
        "--type-stats", action="store_true", help="Log the most common non-PRR record types"
    )

    p_message = sub.add_parser("message", help="Process one sync message (JSON)")
    p_message.add_argument("message", help="Message JSON text, or '-' to read stdin")
    p_message.add_argument("--output-dir", default=".")
    p_message.add_argument("--base-dir", help="Resolve relative file names against this")

    p_progress = sub.add_parser(
        "progress", help="Read rsync output on stdin, print sync messages as JSON lines"
    )
    p_progress.add_argument("--file-name", help="File name to use before one is itemized")
    p_progress.add_argument("--sync-time", help="Epoch seconds or local timestamp (default: now)")
    return parser


def _summary(console: Console, path: str, outcome: ScanOutcome, count: int, extra: dict) -> None:
    table = Table(title="PRR extraction", show_header=False)
    table.add_row("file", path)
    table.add_row("outcome", outcome.value)
    table.add_row("records", str(count))
    for key, value in extra.items():
        table.add_row(key, str(value))
    console.print(table)


def _run_extract(args: argparse.Namespace, config: ExtractorConfig, console: Console) -> int:
    diagnostics = TypeFrequency() if args.type_stats else None
    sync_time = parse_sync_time(args.sync_time)
    with extract_part_results(
        args.path, args.start, args.end, config=config, diagnostics=diagnostics
    ) as result:
        if result.usable:
            if args.output:
                write_results(
                    result.records, args.output, sync_time, annotate_empty=config.annotate_empty
                )
            else:
                print(render_json(result.records, sync_time, annotate_empty=config.annotate_empty))
        _summary(
            console,
            args.path,
            result.outcome,
            len(result),
            {
                "window": result.window or "-",
                "scanned": result.records_scanned,
                "rejected": result.rejected,
            },
        )
        return EXIT_FAILED if result.outcome in _FAILED else EXIT_OK


def _run_message(args: argparse.Namespace, config: ExtractorConfig, console: Console) -> int:
    text = sys.stdin.read() if args.message == "-" else args.message
    message = SyncMessage.from_json(text)
    summary = process_message(
        message, output_dir=args.output_dir, base_dir=args.base_dir, config=config
    )
    _summary(
        console,
        message.file_name,
        summary.outcome,
        summary.record_count,
        {"output": summary.output_path or "-"},
    )
    return EXIT_FAILED if summary.outcome in _FAILED else EXIT_OK


def _run_progress(args: argparse.Namespace) -> int:
    tracker = TransferProgress(
        file_name=args.file_name, sync_time=parse_sync_time(args.sync_time)
    )
    for message in tracker.iter_messages(sys.stdin):
        print(message.to_json(), flush=True)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console(stderr=True)

    try:
        config = load_config(args.config) if args.config else ExtractorConfig()
    except (OSError, ConfigError) as e:
        print(f"stdfprr: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        configure_logging(args.log_level, args.log_file, console=console)
    except (ValueError, OSError) as e:
        print(f"stdfprr: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.command == "extract":
            return _run_extract(args, config, console)
        if args.command == "message":
            return _run_message(args, config, console)
        return _run_progress(args)
    except MessageError as e:
        print(f"stdfprr: {e}", file=sys.stderr)
        return EXIT_USAGE
    except OutputError as e:
        print(f"stdfprr: {e}", file=sys.stderr)
        return EXIT_FAILED
    finally:
        shutdown_logging()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
