from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, TextIO

from bestchain.chain import BestChain, ChainError, find_best_chain
from bestchain.config import CONFIG, TIE_BREAKS, WORK_MODES, ScanConfig
from bestchain.emitter import write_chain, write_summary
from bestchain.reader import read_headers


def _config_from_args(args: argparse.Namespace) -> ScanConfig:
    return replace(
        CONFIG,
        work_mode=args.work,
        tie_break=args.tie_break,
        reject_duplicates=bool(args.reject_duplicates),
    )


def _scan(source: BinaryIO, config: ScanConfig) -> BestChain:
    return find_best_chain(read_headers(source, config), config)


def run(args: argparse.Namespace, stdin: BinaryIO, stdout: BinaryIO, stderr: TextIO) -> BestChain:
    config = _config_from_args(args)

    if args.input:
        try:
            with Path(args.input).open("rb") as handle:
                chain = _scan(handle, config)
        except OSError as exc:
            raise ChainError(f"Failed to read headers from '{args.input}': {exc}") from exc
    else:
        chain = _scan(stdin, config)

    write_summary(stderr, chain)

    # Hashes are only written once a best chain exists.
    if args.output:
        try:
            with Path(args.output).open("wb") as handle:
                write_chain(handle, chain)
        except OSError as exc:
            raise ChainError(f"Failed to write chain to '{args.output}': {exc}") from exc
    else:
        write_chain(stdout, chain)
    return chain


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rebuild the best chain from raw 80-byte block headers and write its hashes genesis-first"
    )
    parser.add_argument("-i", "--input", help="Header file (default: stdin)")
    parser.add_argument("-o", "--output", help="Hash output file (default: stdout)")
    parser.add_argument(
        "--work",
        choices=list(WORK_MODES),
        default=CONFIG.work_mode,
        help="Chain work measure: raw bits sum or true target work",
    )
    parser.add_argument(
        "--tie-break",
        choices=list(TIE_BREAKS),
        default=CONFIG.tie_break,
        help="Equal-work tips: keep the first seen or the smallest hash",
    )
    parser.add_argument("--reject-duplicates", action="store_true", help="Fail on repeated headers")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level for diagnostics",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level,
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        run(args, sys.stdin.buffer, sys.stdout.buffer, sys.stderr)
    except ChainError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
