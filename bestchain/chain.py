from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Iterator

from .config import CONFIG, ScanConfig
from .models import ChainNode, Header


logger = logging.getLogger(__name__)


class ChainError(Exception):
    pass


class HeaderParseError(ChainError):
    pass


class EmptyChainError(ChainError):
    pass


class DuplicateHeaderError(ChainError):
    pass


class ForestCycleError(ChainError):
    pass


class BlockIndex:
    """Lookup of headers by block hash."""

    def __init__(self, reject_duplicates: bool = False):
        self.reject_duplicates = reject_duplicates
        self.duplicates = 0
        self._headers: dict[bytes, Header] = {}

    @classmethod
    def build(cls, headers: Iterable[Header], reject_duplicates: bool = False) -> "BlockIndex":
        index = cls(reject_duplicates=reject_duplicates)
        for header in headers:
            index.add(header)
        if index.duplicates:
            logger.debug("Collapsed %d duplicate headers", index.duplicates)
        return index

    def add(self, header: Header) -> None:
        if header.hash in self._headers:
            if self.reject_duplicates:
                raise DuplicateHeaderError(f"Duplicate header {header.display_hash}")
            self.duplicates += 1
        self._headers[header.hash] = header

    def get(self, block_hash: bytes) -> Header | None:
        return self._headers.get(block_hash)

    def __contains__(self, block_hash: object) -> bool:
        return block_hash in self._headers

    def __len__(self) -> int:
        return len(self._headers)

    def __iter__(self) -> Iterator[Header]:
        return iter(self._headers.values())


class ChainForest:
    """Parent-linked nodes for every indexed header.

    Headers whose parent is not indexed become roots. Linking walks
    ancestors iteratively, so chain depth is bounded by memory only.
    """

    def __init__(self, index: BlockIndex):
        self._index = index
        self._nodes: dict[bytes, ChainNode] = {}

    @classmethod
    def build(cls, index: BlockIndex) -> "ChainForest":
        forest = cls(index)
        for header in index:
            forest.link(header)
        logger.info("Linked %d blocks into %d roots", len(forest), len(forest.roots()))
        return forest

    def link(self, header: Header) -> ChainNode:
        node = self._nodes.get(header.hash)
        if node is not None:
            return node

        # Descend until an ancestor is already linked or its parent is unknown.
        path = [header]
        on_path = {header.hash}
        parent: ChainNode | None = None
        current = header
        while True:
            prev_header = self._index.get(current.prev_hash)
            if prev_header is None:
                break
            parent = self._nodes.get(prev_header.hash)
            if parent is not None:
                break
            if prev_header.hash in on_path:
                raise ForestCycleError(f"Parent cycle through block {prev_header.display_hash}")
            path.append(prev_header)
            on_path.add(prev_header.hash)
            current = prev_header

        for item in reversed(path):
            node = ChainNode(
                header=item,
                parent=parent,
                height=parent.height + 1 if parent is not None else 0,
            )
            self._nodes[item.hash] = node
            parent = node
        return node

    def node(self, block_hash: bytes) -> ChainNode | None:
        return self._nodes.get(block_hash)

    def roots(self) -> list[ChainNode]:
        return [node for node in self._nodes.values() if node.parent is None]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ChainNode]:
        return iter(self._nodes.values())


def find_tips(forest: Iterable[ChainNode]) -> list[ChainNode]:
    nodes = list(forest)
    parents = {node.parent.hash for node in nodes if node.parent is not None}
    return [node for node in nodes if node.hash not in parents]


def aggregate_work(node: ChainNode, mode: str = "bits") -> int:
    """Work summed from ``node`` up to its root, cached on every node passed.

    Cached values assume one work mode per forest.
    """
    pending: list[ChainNode] = []
    current: ChainNode | None = node
    while current is not None and current.work is None:
        pending.append(current)
        current = current.parent

    total = current.work if current is not None else 0
    for item in reversed(pending):
        total += item.header.work(mode)
        item.work = total
    return total


def select_best(tips: list[ChainNode], mode: str = "bits", tie_break: str = "first") -> ChainNode:
    if not tips:
        raise EmptyChainError("No chain tips to choose from")

    best = tips[0]
    best_work = aggregate_work(best, mode)
    for tip in tips[1:]:
        work = aggregate_work(tip, mode)
        if work > best_work:
            best, best_work = tip, work
        elif work == best_work and tie_break == "hash" and tip.hash[::-1] < best.hash[::-1]:
            best = tip
    return best


def chain_to_root(tip: ChainNode) -> list[Header]:
    return [node.header for node in tip.ancestors()]


@dataclass
class BestChain:
    # Genesis first, tip last.
    blocks: list[Header]
    tip_count: int
    work: int

    @property
    def height(self) -> int:
        return len(self.blocks) - 1

    @property
    def genesis(self) -> Header:
        return self.blocks[0]

    @property
    def tip(self) -> Header:
        return self.blocks[-1]

    def hashes(self) -> list[bytes]:
        return [header.hash for header in self.blocks]


def find_best_chain(headers: Iterable[Header], config: ScanConfig = CONFIG) -> BestChain:
    config.validate()

    index = BlockIndex.build(headers, reject_duplicates=config.reject_duplicates)
    if not len(index):
        raise EmptyChainError("No headers in input")

    forest = ChainForest.build(index)
    tips = find_tips(forest)
    logger.info("Found %d chain tips", len(tips))

    tip = select_best(tips, mode=config.work_mode, tie_break=config.tie_break)
    work = aggregate_work(tip, config.work_mode)
    blocks = chain_to_root(tip)
    blocks.reverse()
    logger.info("Best tip %s at height %d (work %d)", tip.header.display_hash, tip.height, work)
    return BestChain(blocks=blocks, tip_count=len(tips), work=work)
