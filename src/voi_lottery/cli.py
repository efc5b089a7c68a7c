from __future__ import annotations

import argparse
import asyncio
import json
import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from .cache import CacheStore
from .config import Settings
from .draw import seeded_source, select_winner, system_source
from .errors import LotteryError, MetadataParseError, RpcError
from .holders import load_excluded_wallets
from .models import HolderBalance, NFTAsset, NFTMetadata, SelectionResult
from .pipeline import TransferPipeline
from .project_constants import EXCLUDED_WALLETS_FILE
from .rpc import AlgodClient, IndexerClient
from .signer import FileSigner
from .snapshot import SnapshotFetcher
from .verify import build_audit, find_nft, load_audit_pool, verify_audit
from .transfer import compose_transfer


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        algod_url_override=args.algod_url, indexer_url_override=args.indexer_url
    )


async def _fetch(settings: Settings, args: argparse.Namespace, force_fresh: bool):
    indexer = IndexerClient(settings.indexer_url, timeout_s=args.timeout)
    try:
        fetcher = SnapshotFetcher(
            cache=CacheStore(),
            indexer=indexer,
            token_id=settings.token_id,
            custody_address=settings.custody_address,
        )
        return await fetcher.fetch_snapshot(force_fresh=force_fresh)
    finally:
        await indexer.aclose()


def cmd_holders(args: argparse.Namespace) -> int:
    settings = _settings(args)
    snapshot = asyncio.run(_fetch(settings, args, force_fresh=False))

    print(f"{'#':>4}  {'Address':<58}  {'Balance':>20}  {'Share':>8}")
    for i, h in enumerate(snapshot.holders[: args.limit], start=1):
        print(f"{i:>4}  {h.address:<58}  {h.balance:>20,.2f}  {h.percentage:>7.3f}%")
    print(f"Holders: {len(snapshot.holders)}   NFTs in custody: {len(snapshot.nfts)}")
    return 0


async def _resolve_seed(settings: Settings, args: argparse.Namespace) -> Optional[str]:
    if args.round is None:
        return None
    algod = AlgodClient(settings.algod_url, settings.algod_token, timeout_s=args.timeout)
    try:
        return await algod.get_block_seed(args.round)
    finally:
        await algod.aclose()


def prize_metadata(nft: NFTAsset) -> NFTMetadata:
    try:
        return nft.metadata()
    except MetadataParseError as e:
        logging.getLogger("draw").warning("%s", e)
        return NFTMetadata(name=f"NFT #{nft.token_id}")


def cmd_draw(args: argparse.Namespace) -> int:
    settings = _settings(args)
    log = logging.getLogger("draw")

    excluded = load_excluded_wallets(args.excluded_file)
    log.info("Excluded wallets  : %d", len(excluded))

    try:
        seed = asyncio.run(_resolve_seed(settings, args))
    except RpcError as e:
        raise SystemExit(f"Could not read seed for round {args.round}: {e}")
    if seed is not None:
        rng = seeded_source(seed)
        seed_source = f"algod:block/{args.round}"
        log.info("Seed (block seed) : %s", seed)
    else:
        rng = system_source()
        seed_source = "os:urandom"
        log.info("No --round given; draw is not reproducible")

    snapshot = asyncio.run(_fetch(settings, args, force_fresh=False))
    result = select_winner(snapshot.holders, snapshot.nfts, excluded, rng)

    audit = build_audit(
        snapshot,
        excluded,
        result,
        seed=seed,
        seed_source=seed_source,
        token_id=settings.token_id,
        custody_address=settings.custody_address,
    )
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump(audit, f, indent=2)

    meta = prize_metadata(result.nft)
    print("========================================")
    print("🎲 VOI HOLDER LOTTERY DRAW")
    print("========================================")
    print(f"Token         : {settings.token_id}")
    print(f"Seed          : {seed or '(system randomness)'}")
    print("----------------------------------------")
    print("🏆 WINNER")
    print(f"Address       : {result.holder.address}")
    print(f"Balance       : {result.holder.balance:,.2f} ({result.holder.percentage:.3f}%)")
    print(f"Prize         : {meta.name} [{result.nft.contract_id}/{result.nft.token_id}]")
    if meta.image_url:
        print(f"Image         : {meta.image_url}")
    print("----------------------------------------")
    print(f"🧾 Wrote audit: {args.out}")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    result = verify_audit(args.audit)
    print("✅ AUDIT VERIFIED")
    print(f"Winner        : {result['winner']}")
    print(f"Prize         : {result['nft'][0]}/{result['nft'][1]}")
    print(f"Seed SHA-256  : {result['seed_hash_hex']}")
    return 0


def _selection_from_audit(audit: Dict[str, Any]) -> SelectionResult:
    holders, nfts = load_audit_pool(audit)
    winner = audit["winner"]
    holder = next((h for h in holders if h.address == winner["address"]), None)
    if holder is None:
        holder = HolderBalance(winner["address"], Decimal(winner["balance"]))
    nft = find_nft(nfts, int(winner["contract_id"]), int(winner["token_id"]))
    return SelectionResult(holder=holder, nft=nft)


async def _transfer(settings: Settings, args: argparse.Namespace, selection: SelectionResult):
    algod = AlgodClient(settings.algod_url, settings.algod_token, timeout_s=args.timeout)
    try:
        plan = await compose_transfer(
            selection, settings.custody_address, algod, network=settings.network
        )
        signer = FileSigner(network=settings.network, unsigned_path=args.unsigned_out)
        pipeline = TransferPipeline(algod, signer, network=settings.network)
        return plan, await pipeline.run(plan)
    finally:
        await algod.aclose()


def cmd_transfer(args: argparse.Namespace) -> int:
    settings = _settings(args)
    with open(args.audit, "r", encoding="utf-8") as f:
        audit = json.load(f)
    if audit["metadata"].get("custody_address") != settings.custody_address:
        raise SystemExit("Audit was produced for a different custody wallet.")

    selection = _selection_from_audit(audit)
    plan, outcome = asyncio.run(_transfer(settings, args, selection))

    print("========================================")
    print(f"NFT {plan.contract_id}/{plan.token_id} -> {plan.recipient_address}")
    print(f"Group size    : {len(plan.unsigned_group)} (rent funded: {plan.funded})")
    print(f"Path          : {' -> '.join(s.value for s in outcome.history)}")
    if outcome.ok:
        print(f"✅ Submitted  : {outcome.tx_id}")
        return 0
    print(f"❌ Failed     : {outcome.failure.cause_kind.value}: {outcome.failure}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="voi-lottery",
        description="Weighted ARC-200 holder lottery with ARC-72 prize delivery.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--algod-url", default=None, help="Override algod URL (else use env).")
    p.add_argument("--indexer-url", default=None, help="Override indexer URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="HTTP timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    h = sub.add_parser("holders", help="Print the current holder snapshot.")
    h.add_argument("--limit", type=int, default=50, help="Rows to print.")
    h.set_defaults(func=cmd_holders)

    d = sub.add_parser("draw", help="Run the draw and write an audit JSON.")
    d.add_argument(
        "--round",
        type=int,
        default=None,
        help="Finalized round whose block seed drives the draw (omit for system randomness).",
    )
    d.add_argument("--excluded-file", default=EXCLUDED_WALLETS_FILE, help="Exclusion list.")
    d.add_argument("--out", default="audit.json", help="Audit output JSON path.")
    d.set_defaults(func=cmd_draw)

    v = sub.add_parser("verify", help="Verify an existing audit.json deterministically.")
    v.add_argument("--audit", required=True, help="Path to audit.json.")
    v.set_defaults(func=cmd_verify)

    t = sub.add_parser("transfer", help="Deliver the prize recorded in an audit.json.")
    t.add_argument("--audit", required=True, help="Path to audit.json.")
    t.add_argument(
        "--unsigned-out", default="unsigned.txn", help="Where to write the unsigned group."
    )
    t.set_defaults(func=cmd_transfer)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except LotteryError as e:
        logging.getLogger("voi_lottery").error("%s", e)
        code = 2
    raise SystemExit(code)
