from __future__ import annotations

import hashlib
import random
from bisect import bisect_left
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Protocol, Set, Tuple

from .errors import EmptyPoolError
from .holders import eligible_holders
from .models import HolderBalance, NFTAsset, SelectionResult
from .project_constants import NON_PRIZE_COLLECTION


class RandomSource(Protocol):
    """Anything with random.Random's random()/randrange() works here."""

    def random(self) -> float: ...

    def randrange(self, stop: int) -> int: ...


@dataclass(frozen=True)
class HolderRange:
    holder: HolderBalance
    start: Decimal
    end: Decimal  # cumulative balance up to and including this holder


def seed_hash(seed: str) -> Tuple[str, int]:
    seed_hash_hex = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return seed_hash_hex, int(seed_hash_hex, 16)


def seeded_source(seed: str) -> random.Random:
    """Reproducible source: the same seed string always yields the same draws."""
    return random.Random(seed_hash(seed)[1])


def system_source() -> random.SystemRandom:
    return random.SystemRandom()


def build_ranges(holders: Iterable[HolderBalance]) -> Tuple[List[HolderRange], Decimal]:
    ranges: List[HolderRange] = []
    cursor = Decimal(0)
    for h in holders:
        start = cursor
        cursor = cursor + h.balance
        ranges.append(HolderRange(h, start, cursor))
    return ranges, cursor


def find_winner(ranges: List[HolderRange], point: Decimal) -> HolderRange:
    """First range whose cumulative end is >= point."""
    if not ranges:
        raise EmptyPoolError("No holder ranges to draw from.")
    idx = bisect_left([r.end for r in ranges], point)
    # Float rounding can only push the point onto the final boundary, never past it.
    return ranges[min(idx, len(ranges) - 1)]


def eligible_nfts(
    nfts: Iterable[NFTAsset], non_prize_collection: str = NON_PRIZE_COLLECTION
) -> List[NFTAsset]:
    return [n for n in nfts if n.collection_name != non_prize_collection]


def select_winner(
    holders: Iterable[HolderBalance],
    nfts: Iterable[NFTAsset],
    excluded: Set[str],
    rng: RandomSource,
    non_prize_collection: str = NON_PRIZE_COLLECTION,
) -> SelectionResult:
    """
    Weighted draw: each eligible holder wins with probability balance / total.
    Holders are walked in the order given, which must be deterministic.
    """
    pool = eligible_holders(holders, excluded)
    if not pool:
        raise EmptyPoolError("No eligible holders (all excluded or zero balance).")

    prizes = eligible_nfts(nfts, non_prize_collection)
    if not prizes:
        raise EmptyPoolError("No eligible NFTs in the custody wallet.")

    ranges, total = build_ranges(pool)
    point = Decimal(rng.random()) * total
    winner = find_winner(ranges, point)

    nft = prizes[rng.randrange(len(prizes))]
    return SelectionResult(holder=winner.holder, nft=nft)
