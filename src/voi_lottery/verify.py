from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .draw import seed_hash, seeded_source, select_winner
from .models import HolderBalance, NFTAsset, SelectionResult, Snapshot
from .project_constants import NON_PRIZE_COLLECTION


def build_audit(
    snapshot: Snapshot,
    excluded: Set[str],
    result: SelectionResult,
    seed: Optional[str],
    seed_source: str,
    token_id: int,
    custody_address: str,
) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "tool": "voi-holder-lottery",
        "version": "1.0.0",
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "snapshot_fetched_at_utc": snapshot.fetched_at.isoformat(),
        "token_id": token_id,
        "custody_address": custody_address,
        "non_prize_collection": NON_PRIZE_COLLECTION,
        "seed": seed,
        "seed_source": seed_source,
    }
    if seed is not None:
        meta["seed_hash_hex"] = seed_hash(seed)[0]

    return {
        "metadata": meta,
        "winner": {
            "address": result.holder.address,
            "balance": str(result.holder.balance),
            "contract_id": result.nft.contract_id,
            "token_id": result.nft.token_id,
        },
        "excluded": sorted(excluded),
        # Stored in draw order so anyone can re-run.
        "all_holders": [
            {"address": h.address, "balance": str(h.balance), "percentage": h.percentage}
            for h in snapshot.holders
        ],
        "all_nfts": [
            {
                "contract_id": n.contract_id,
                "token_id": n.token_id,
                "collection_name": n.collection_name,
                "metadata": n.metadata_blob,
            }
            for n in snapshot.nfts
        ],
    }


def load_audit_pool(audit: Dict[str, Any]) -> Tuple[List[HolderBalance], List[NFTAsset]]:
    holders = [
        HolderBalance(e["address"], Decimal(e["balance"]), float(e.get("percentage", 0.0)))
        for e in audit["all_holders"]
    ]
    nfts = [
        NFTAsset(
            int(n["contract_id"]),
            int(n["token_id"]),
            n.get("collection_name", ""),
            n.get("metadata", "{}"),
        )
        for n in audit["all_nfts"]
    ]
    return holders, nfts


def find_nft(nfts: Iterable[NFTAsset], contract_id: int, token_id: int) -> NFTAsset:
    for n in nfts:
        if n.key == (contract_id, token_id):
            return n
    raise RuntimeError(f"NFT {contract_id}/{token_id} not in audit pool")


def verify_audit(audit_path: str) -> Dict[str, Any]:
    with open(audit_path, "r", encoding="utf-8") as f:
        audit = json.load(f)

    meta = audit["metadata"]
    seed = meta.get("seed")
    if not seed:
        raise RuntimeError("Audit has no seed; draws from system randomness cannot be verified.")

    expected_hash = meta.get("seed_hash_hex")
    seed_hash_hex, seed_int = seed_hash(seed)
    if expected_hash and expected_hash != seed_hash_hex:
        raise RuntimeError(f"Seed hash mismatch: audit={expected_hash} recomputed={seed_hash_hex}")

    holders, nfts = load_audit_pool(audit)
    result = select_winner(
        holders,
        nfts,
        set(audit.get("excluded", [])),
        seeded_source(seed),
        non_prize_collection=meta.get("non_prize_collection", NON_PRIZE_COLLECTION),
    )

    winner_expected = audit["winner"]["address"]
    if result.holder.address != winner_expected:
        raise RuntimeError(
            f"Winner mismatch: audit={winner_expected} recomputed={result.holder.address}"
        )
    nft_expected = (int(audit["winner"]["contract_id"]), int(audit["winner"]["token_id"]))
    if result.nft.key != nft_expected:
        raise RuntimeError(f"Prize mismatch: audit={nft_expected} recomputed={result.nft.key}")

    return {
        "ok": True,
        "seed_hash_hex": seed_hash_hex,
        "seed_int": seed_int,
        "winner": result.holder.address,
        "nft": result.nft.key,
    }
