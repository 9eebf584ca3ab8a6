#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
assetpatch - Command line entry point

    start_assetpatch.py apply OLD PATCH [-o OUTPUT]
    start_assetpatch.py info PATCH
    start_assetpatch.py config [--write PATH]
"""

import argparse
import json
import logging
import signal
import sys
from typing import List, Optional

from assetpatch.config import ConfigModel, load_settings, save_config
from assetpatch.exceptions import ConfigurationError, CorruptPatchError
from assetpatch.logging_config import log_exceptions, setup_logging
from assetpatch.patching import CancelToken, Patcher
from assetpatch.version import load_version

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CORRUPT = 2
EXIT_CANCELLED = 3

_EXIT_CODES = {
    "CORRUPT_PATCH": EXIT_CORRUPT,
    "PATCH_CANCELLED": EXIT_CANCELLED,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="assetpatch - apply BSDIFF40 patches to game assets")
    parser.add_argument("--version", action="store_true", help="Show version information")
    parser.add_argument("--config", metavar="PATH", help="Config file (JSON or YAML)")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit structured JSON logs")

    subparsers = parser.add_subparsers(dest="command")

    apply_parser = subparsers.add_parser("apply", help="Apply a patch to an old file")
    apply_parser.add_argument("old", help="Old file")
    apply_parser.add_argument("patch", help="BSDIFF40 patch file")
    apply_parser.add_argument("-o", "--output", help="Output file (default: <old>.patched<ext>)")

    info_parser = subparsers.add_parser("info", help="Print the patch header as JSON")
    info_parser.add_argument("patch", help="BSDIFF40 patch file")

    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    config_parser.add_argument("--write", metavar="PATH", help="Also save it to PATH (JSON or YAML)")

    return parser


def _cmd_apply(args: argparse.Namespace, settings: ConfigModel) -> int:
    token = CancelToken()
    previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: token.cancel())
    try:
        result = Patcher(settings.patching).apply(args.old, args.patch, args.output, cancel_token=token)
    except OSError as exc:
        print(f"I/O error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if not result.success:
        print(f"Patch failed: {result.error}", file=sys.stderr)
        return _EXIT_CODES.get(result.error_code or "", EXIT_ERROR)

    print(f"{result.output_path} ({result.patched_size:,} bytes)")
    return EXIT_OK


@log_exceptions("assetpatch.cli")
def _read_header(patch_path: str):
    return Patcher().inspect(patch_path)


def _cmd_info(args: argparse.Namespace) -> int:
    try:
        header = _read_header(args.patch)
    except CorruptPatchError as exc:
        print(f"Corrupt patch: {exc}", file=sys.stderr)
        return EXIT_CORRUPT
    except OSError as exc:
        print(f"I/O error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    print(json.dumps(header.to_dict(), indent=2))
    return EXIT_OK


def _cmd_config(args: argparse.Namespace, settings: ConfigModel) -> int:
    data = settings.model_dump()
    print(json.dumps(data, indent=2))
    if args.write and not save_config(data, args.write):
        print(f"Could not write config: {args.write}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main function of the command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"assetpatch v{load_version()}")
        return EXIT_OK

    try:
        settings = load_settings(args.config)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc} {exc.details}", file=sys.stderr)
        return EXIT_ERROR

    log_cfg = settings.logging
    setup_logging(
        log_level=args.log_level or log_cfg.level,
        log_dir=log_cfg.log_dir,
        enable_file_logging=log_cfg.file_logging,
        max_log_size=log_cfg.max_log_size,
        backup_count=log_cfg.backup_count,
        structured_json=True if args.log_json else log_cfg.structured_json,
    )

    if args.command == "apply":
        return _cmd_apply(args, settings)
    if args.command == "info":
        return _cmd_info(args)
    if args.command == "config":
        return _cmd_config(args, settings)

    parser.print_help()
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
