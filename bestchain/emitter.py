from __future__ import annotations

from typing import BinaryIO, TextIO

from .chain import BestChain


def chain_bytes(chain: BestChain) -> bytes:
    return b"".join(chain.hashes())


def summary_lines(chain: BestChain) -> list[str]:
    return [
        f"Found {chain.tip_count} chain tips",
        "Found best chain",
        f"- Height: {chain.height}",
        f"- Genesis: {chain.genesis.display_hash}",
        f"- Tip: {chain.tip.display_hash}",
    ]


def write_summary(err: TextIO, chain: BestChain) -> None:
    for line in summary_lines(chain):
        print(line, file=err)
    err.flush()


def write_chain(out: BinaryIO, chain: BestChain) -> int:
    payload = chain_bytes(chain)
    out.write(payload)
    out.flush()
    return len(payload)
