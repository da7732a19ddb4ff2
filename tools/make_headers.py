from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from bestchain.models import HASH_SIZE, display_hex, hash256, pack_header


def build_branch(prev_hash: bytes, length: int, bits: int, start_time: int, salt: int) -> list[bytes]:
    records: list[bytes] = []
    for i in range(length):
        raw = pack_header(prev_hash, bits, nonce=salt, timestamp=start_time + i * 600)
        records.append(raw)
        prev_hash = hash256(raw)
    return records


def build_records(args: argparse.Namespace) -> list[bytes]:
    bits = int(args.bits, 16)
    main = build_branch(bytes(HASH_SIZE), args.length, bits, args.start_time, salt=0)

    records = list(main)
    for n, fork_at in enumerate(args.fork or []):
        if not 0 <= fork_at < len(main):
            raise SystemExit(f"--fork height {fork_at} is outside the main chain (0..{len(main) - 1})")
        fork_parent = hash256(main[fork_at])
        fork_time = args.start_time + (fork_at + 1) * 600
        records.extend(build_branch(fork_parent, args.fork_length, bits, fork_time, salt=n + 1))

    if args.shuffle is not None:
        random.Random(args.shuffle).shuffle(records)
    return records


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a synthetic stream of 80-byte block headers")
    parser.add_argument("out", help="Output file")
    parser.add_argument("--length", type=int, default=10, help="Main chain length")
    parser.add_argument("--bits", default="1d00ffff", help="Compact bits for every header (hex)")
    parser.add_argument("--start-time", type=int, default=1_231_006_505, help="Timestamp of the first header")
    parser.add_argument("--fork", type=int, action="append", help="Main chain height to branch from (repeatable)")
    parser.add_argument("--fork-length", type=int, default=2, help="Headers per fork branch")
    parser.add_argument("--shuffle", type=int, help="Shuffle records with this seed")
    args = parser.parse_args()

    records = build_records(args)
    target = Path(args.out)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(b"".join(records))
    tip = hash256(records[-1]) if records and args.shuffle is None else None
    print(f"Wrote {len(records)} headers to {target}")
    if tip is not None:
        print(f"Last written header: {display_hex(tip)}")


if __name__ == "__main__":
    main()
