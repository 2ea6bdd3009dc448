# Copyright 2026 Cisco Systems, Inc. and its affiliates
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Command-line interface for Archive Intake."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from ..config.config import Config
from ..config.constants import ArchiveIntakeConstants
from ..core.models import ExtractOptions, ToolResult
from ..core.service import IntakeService

logger = logging.getLogger("archive_intake.cli")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _load_config(args: argparse.Namespace) -> Config:
    """Build a Config from ``--env-file`` / environment, then apply CLI overrides."""
    env_file = getattr(args, "env_file", None)
    config = Config.from_file(Path(env_file)) if env_file else Config.from_env()

    if getattr(args, "data_dir", None):
        config.data_dir = Path(args.data_dir)
    if getattr(args, "log_dir", None):
        config.log_dir = Path(args.log_dir)
    if getattr(args, "log_level", None):
        config.log_level = args.log_level.upper()
    return config


def _setup_logging(config: Config) -> None:
    """Log to stderr and to ``Config.log_file`` so snapshots can bundle the logs."""
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr)
    root.setLevel(level)

    log_file = config.log_file.resolve()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file:
            return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        print(f"Warning: cannot write log file {log_file}: {e}", file=sys.stderr)
        return
    file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(file_handler)


def _print_result(result: ToolResult, compact: bool = False) -> int:
    """Print a result as JSON; failures go to stderr and exit with 1."""
    output = json.dumps(result.to_dict(), indent=None if compact else 2)
    if result.success:
        print(output)
        return 0
    print(output, file=sys.stderr)
    return 1


def _build_service(args: argparse.Namespace) -> IntakeService:
    config = _load_config(args)
    _setup_logging(config)
    return IntakeService(config)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def extract_command(args: argparse.Namespace) -> int:
    """Extract an archive and, unless ``--no-context``, record a pending context."""
    archive = Path(args.file_path)
    if not archive.is_file():
        print(f"Error: File does not exist: {archive}", file=sys.stderr)
        return 1

    service = _build_service(args)
    options = ExtractOptions(overwrite=args.overwrite, preserve_structure=not args.flatten)
    if args.no_context:
        result = service.extract_archive(archive, args.extract_to, options)
    else:
        result = service.ingest(archive, original_name=archive.name, extract_to=args.extract_to, options=options)
    return _print_result(result, args.compact)


def approve_command(args: argparse.Namespace) -> int:
    """Approve (or with ``--reject``, reject) a context."""
    service = _build_service(args)
    result = service.set_approval(args.context_id, approved=not args.reject, reason=args.reason)
    return _print_result(result, args.compact)


def list_contexts_command(args: argparse.Namespace) -> int:
    service = _build_service(args)
    result = service.list_contexts(
        status=args.status,
        type=args.type,
        search=args.search,
        limit=args.limit,
        offset=args.offset,
    )
    return _print_result(result, args.compact)


def show_context_command(args: argparse.Namespace) -> int:
    service = _build_service(args)
    return _print_result(service.get_context(args.context_id), args.compact)


def snapshot_command(args: argparse.Namespace) -> int:
    """Create a snapshot, or list existing ones with ``--list``."""
    service = _build_service(args)
    if args.list:
        return _print_result(service.list_snapshots(), args.compact)
    result = service.create_snapshot(
        include_logs=not args.no_logs,
        include_context=not args.no_context,
        include_files=args.include_files,
    )
    return _print_result(result, args.compact)


def stats_command(args: argparse.Namespace) -> int:
    service = _build_service(args)
    return _print_result(service.stats(), args.compact)


def serve_command(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    config = _load_config(args)
    _setup_logging(config)
    # The API app builds its service from the environment
    os.environ["ARCHIVE_INTAKE_DATA_DIR"] = str(config.data_dir)
    os.environ["ARCHIVE_INTAKE_LOG_DIR"] = str(config.log_dir)

    from ..api.api_server import run_server

    host = args.host or config.api_host
    port = args.port or config.api_port
    logger.info("Starting API server on %s:%d", host, port)
    run_server(host=host, port=port, reload=args.reload)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    """Add flags shared by every subcommand."""
    parser.add_argument("--data-dir", metavar="PATH", help="Data directory (or set ARCHIVE_INTAKE_DATA_DIR)")
    parser.add_argument("--log-dir", metavar="PATH", help="Log directory (or set ARCHIVE_INTAKE_LOG_DIR)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (or set ARCHIVE_INTAKE_LOG_LEVEL)",
    )
    parser.add_argument("--env-file", metavar="PATH", help="Load configuration from a .env file")
    parser.add_argument("--compact", action="store_true", help="Compact JSON output")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Archive Intake - Secure ZIP ingestion with a human approval workflow",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  archive-intake extract upload.zip
  archive-intake extract upload.zip --extract-to review/batch1 --overwrite
  archive-intake list-contexts --status pending
  archive-intake approve 3f2a... --reason "reviewed by security"
  archive-intake approve 3f2a... --reject --reason "contains credentials"
  archive-intake snapshot --include-files
  archive-intake serve --port 8080
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # -- extract -----------------------------------------------------------
    ex_p = subparsers.add_parser("extract", help="Validate and extract a ZIP archive")
    ex_p.add_argument("file_path", help="Path to the ZIP archive")
    ex_p.add_argument(
        "--extract-to",
        default=ArchiveIntakeConstants.DEFAULT_EXTRACT_TO,
        help="Extraction directory, relative to the data directory (default: extracted)",
    )
    ex_p.add_argument("--overwrite", action="store_true", help="Replace files that already exist")
    ex_p.add_argument("--flatten", action="store_true", help="Drop the archive's directory layout")
    ex_p.add_argument("--no-context", action="store_true", help="Do not record a context for this archive")
    _add_common_flags(ex_p)

    # -- approve -----------------------------------------------------------
    ap_p = subparsers.add_parser("approve", help="Approve or reject a context")
    ap_p.add_argument("context_id", help="Context id")
    ap_p.add_argument("--reject", action="store_true", help="Reject instead of approve")
    ap_p.add_argument("--reason", help="Justification stored on the context")
    _add_common_flags(ap_p)

    # -- list-contexts -----------------------------------------------------
    ls_p = subparsers.add_parser("list-contexts", help="List contexts, newest first")
    ls_p.add_argument("--status", choices=["pending", "approved", "rejected", "all"], help="Filter by status")
    ls_p.add_argument("--type", choices=["zip", "file", "directory", "all"], help="Filter by type")
    ls_p.add_argument("--search", help="Case-insensitive substring of the context name")
    ls_p.add_argument("--limit", type=int, default=ArchiveIntakeConstants.DEFAULT_LIST_LIMIT, help="Page size")
    ls_p.add_argument("--offset", type=int, default=0, help="Page offset")
    _add_common_flags(ls_p)

    # -- show-context ------------------------------------------------------
    sc_p = subparsers.add_parser("show-context", help="Show a single context")
    sc_p.add_argument("context_id", help="Context id")
    _add_common_flags(sc_p)

    # -- snapshot ----------------------------------------------------------
    sn_p = subparsers.add_parser("snapshot", help="Create a diagnostic snapshot archive")
    sn_p.add_argument("--no-logs", action="store_true", help="Leave logs out of the snapshot")
    sn_p.add_argument("--no-context", action="store_true", help="Leave the context listing out of the snapshot")
    sn_p.add_argument("--include-files", action="store_true", help="Include extracted files")
    sn_p.add_argument("--list", action="store_true", help="List existing snapshots instead")
    _add_common_flags(sn_p)

    # -- stats -------------------------------------------------------------
    st_p = subparsers.add_parser("stats", help="Show context and storage statistics")
    _add_common_flags(st_p)

    # -- serve -------------------------------------------------------------
    sv_p = subparsers.add_parser("serve", help="Run the HTTP API server")
    sv_p.add_argument("--host", help="Host to bind to (default: ARCHIVE_INTAKE_API_HOST or localhost)")
    sv_p.add_argument("--port", type=int, help="Port to bind to (default: ARCHIVE_INTAKE_API_PORT or 8000)")
    sv_p.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    _add_common_flags(sv_p)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    dispatch = {
        "extract": extract_command,
        "approve": approve_command,
        "list-contexts": list_contexts_command,
        "show-context": show_context_command,
        "snapshot": snapshot_command,
        "stats": stats_command,
        "serve": serve_command,
    }
    handler = dispatch.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
