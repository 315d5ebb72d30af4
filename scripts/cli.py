"""Minimal CLI entry point for running Gmail Drive flows."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from gmail_drive_flow.config.settings import GmailDriveFlowSettings
from gmail_drive_flow.core.models import FlowConfig, FlowProgress
from gmail_drive_flow.core.query import build_search_query
from gmail_drive_flow.pipeline.runner import FlowRunner


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def on_progress(progress: FlowProgress) -> None:
    """Print progress updates to stderr."""
    print(
        f"[{progress.current_stage}] "
        f"batch={progress.current_batch}/{progress.total_batches} "
        f"threads={progress.threads_processed}/{progress.total_threads} "
        f"saved={progress.attachments_saved}",
        end="\r",
        file=sys.stderr,
        flush=True,
    )


def _parse_file_types(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(t.strip().lower() for t in value.split(",") if t.strip())


def _add_flow_args(subparser: argparse.ArgumentParser) -> None:
    """Add the flow definition flags to a subparser."""
    subparser.add_argument("--flow-name", dest="flow_name", default="flow", help="Flow name")
    subparser.add_argument(
        "--folder", "-f", default="", help="Drive folder path, e.g. Invoices/2024"
    )
    subparser.add_argument(
        "--file-types",
        dest="file_types",
        default=None,
        help="Comma-separated categories: pdf,images,documents",
    )
    subparser.add_argument(
        "--senders", "-s", default="", help="Comma-separated sender addresses"
    )
    subparser.add_argument("--query", "-q", default=None, help="Explicit Gmail search query")
    subparser.add_argument("--user-email", dest="user_email", default=None)


def _add_pagination_args(subparser: argparse.ArgumentParser) -> None:
    """Add --limit, --offset and --timeout flags to a subparser."""
    subparser.add_argument(
        "--limit", type=int, default=None, help="Cap total threads processed"
    )
    subparser.add_argument("--offset", type=int, default=0, help="Skip the first N threads")
    subparser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        dest="timeout_ms",
        help="Stop starting new threads after this many milliseconds",
    )


def _validate_args(args: argparse.Namespace) -> None:
    """Reject invalid run arguments."""
    if args.command == "run" and not args.folder.strip():
        print("Error: --folder is required", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "limit", None) is not None and args.limit <= 0:
        print("Error: --limit must be positive", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "offset", 0) < 0:
        print("Error: --offset must be non-negative", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "timeout_ms", None) is not None and args.timeout_ms <= 0:
        print("Error: --timeout-ms must be positive", file=sys.stderr)
        sys.exit(1)


def _flow_from_args(args: argparse.Namespace) -> FlowConfig:
    return FlowConfig(
        flow_name=args.flow_name,
        drive_folder=args.folder,
        file_types=_parse_file_types(args.file_types),
        senders=args.senders,
        email_filter=args.query,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Gmail Drive Flow - Save Gmail attachments to Google Drive"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run a flow and print the result as JSON")
    _add_flow_args(run_parser)
    _add_pagination_args(run_parser)

    query_parser = subparsers.add_parser("query", help="Print the Gmail query for a flow")
    _add_flow_args(query_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    _validate_args(args)

    settings = GmailDriveFlowSettings()
    setup_logging(settings.log_level)
    flow = _flow_from_args(args)

    if args.command == "query":
        print(build_search_query(flow, args.user_email, window=settings.search_window))
        return

    runner = FlowRunner(settings=settings, on_progress=on_progress)

    try:
        result = runner.run(
            flow,
            user_email=args.user_email,
            offset=args.offset,
            limit=args.limit,
            timeout_ms=args.timeout_ms,
        )
        print(file=sys.stderr)
        print(json.dumps(result.to_dict(), indent=2))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
