from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Set, Tuple

from .models import HolderBalance, NFTAsset

log = logging.getLogger(__name__)


def to_tokens(raw_amount: int, decimals: int) -> Decimal:
    return Decimal(int(raw_amount)).scaleb(-decimals)


def normalize_balances(
    records: Iterable[Dict[str, Any]],
    custody_address: str,
    decimals: int,
) -> Tuple[HolderBalance, ...]:
    """
    Indexer rows {accountId, balance: "<raw int>"} -> holders in whole token units.
    The custody wallet and zero balances are dropped before percentages are
    taken, so they total 100 over the remaining holders.
    """
    balances: Dict[str, Decimal] = {}
    for rec in records:
        addr = str(rec["accountId"])
        if addr == custody_address:
            continue
        raw = int(rec["balance"])
        if raw < 0:
            raise ValueError(f"Negative balance for {addr}: {raw}")
        # Zero-balance accounts are not holders
        if raw == 0:
            continue
        balances[addr] = balances.get(addr, Decimal(0)) + to_tokens(raw, decimals)

    total = sum(balances.values(), Decimal(0))
    holders = [
        HolderBalance(
            address=addr,
            balance=bal,
            percentage=float(bal / total * 100) if total > 0 else 0.0,
        )
        for addr, bal in balances.items()
    ]

    # Deterministic ordering (critical for reproducibility)
    holders.sort(key=lambda h: (-h.balance, h.address))
    return tuple(holders)


def parse_nft_records(records: Iterable[Dict[str, Any]]) -> Tuple[NFTAsset, ...]:
    seen: Dict[Tuple[int, int], NFTAsset] = {}
    for rec in records:
        nft = NFTAsset(
            contract_id=int(rec["contractId"]),
            token_id=int(rec["tokenId"]),
            collection_name=str(rec.get("collectionName") or ""),
            metadata_blob=rec.get("metadata") or "{}",
        )
        if not isinstance(nft.metadata_blob, str):
            raise ValueError(f"NFT {nft.contract_id}/{nft.token_id}: metadata must be a string")
        if nft.key in seen:
            log.warning("Duplicate NFT record %s/%s ignored", *nft.key)
            continue
        seen[nft.key] = nft
    return tuple(seen[k] for k in sorted(seen))


def load_excluded_wallets(path: str | None) -> Set[str]:
    if not path:
        return set()
    out: Set[str] = set()
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            w = line.strip()
            if not w or w.startswith("#"):
                continue
            out.add(w)
    return out


def eligible_holders(
    holders: Iterable[HolderBalance], excluded: Set[str]
) -> List[HolderBalance]:
    return [h for h in holders if h.address not in excluded and h.balance > 0]
