from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from .cache import CacheStore
from .errors import FetchError, RpcError
from .holders import normalize_balances, parse_nft_records
from .models import Snapshot
from .project_constants import SNAPSHOT_TTL_S, TOKEN_DECIMALS
from .rpc import IndexerClient

log = logging.getLogger(__name__)

SNAPSHOT_KEY = "snapshot"


class SnapshotFetcher:
    def __init__(
        self,
        cache: CacheStore,
        indexer: IndexerClient,
        token_id: int,
        custody_address: str,
        decimals: int = TOKEN_DECIMALS,
        ttl_s: float = SNAPSHOT_TTL_S,
    ) -> None:
        self.cache = cache
        self.indexer = indexer
        self.token_id = token_id
        self.custody_address = custody_address
        self.decimals = decimals
        self.ttl_s = ttl_s

    async def fetch_snapshot(self, force_fresh: bool = False) -> Snapshot:
        """
        Returns the cached snapshot when one is live, otherwise reads holders
        and NFT inventory from the indexer. Either read failing raises
        FetchError and leaves the cache untouched.
        """
        if force_fresh:
            log.debug("Forced refresh: clearing cache")
            self.cache.invalidate_all()
        else:
            cached: Optional[Snapshot] = self.cache.get(SNAPSHOT_KEY)
            if cached is not None:
                log.debug("Snapshot cache hit (fetched at %s)", cached.fetched_at.isoformat())
                return cached

        log.info("Fetching holder balances for token %d...", self.token_id)
        try:
            balance_rows = await self.indexer.get_token_balances(self.token_id)
        except RpcError as e:
            raise FetchError(f"Failed to fetch token holders: {e}", cause=e) from e

        log.info("Fetching NFTs owned by custody wallet...")
        try:
            token_rows = await self.indexer.get_owned_tokens(self.custody_address)
        except RpcError as e:
            raise FetchError(f"Failed to fetch NFTs: {e}", cause=e) from e

        try:
            holders = normalize_balances(balance_rows, self.custody_address, self.decimals)
            nfts = parse_nft_records(token_rows)
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed indexer data: {e!r}", cause=e) from e

        snapshot = Snapshot(
            holders=holders,
            nfts=nfts,
            fetched_at=datetime.now(timezone.utc),
        )
        self.cache.set(SNAPSHOT_KEY, snapshot, self.ttl_s)
        log.info("Snapshot: %d holders, %d NFTs", len(holders), len(nfts))
        return snapshot
