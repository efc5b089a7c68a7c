from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .project_constants import DEFAULT_ALGOD_URL, DEFAULT_INDEXER_URL, NETWORK_GENESIS_ID


@dataclass(frozen=True)
class Settings:
    algod_url: str
    algod_token: str
    indexer_url: str
    token_id: int
    custody_address: str
    network: str = NETWORK_GENESIS_ID

    @staticmethod
    def from_env(
        algod_url_override: str | None = None,
        indexer_url_override: str | None = None,
    ) -> "Settings":
        load_dotenv()

        token_id = os.getenv("TOKEN_ID", "").strip()
        if not token_id:
            raise RuntimeError("Missing TOKEN_ID. Put it in .env or export it.")
        try:
            token_id_int = int(token_id)
        except ValueError:
            raise RuntimeError(f"TOKEN_ID must be an integer, got {token_id!r}")

        custody = os.getenv("CUSTODY_ADDRESS", "").strip()
        if not custody:
            raise RuntimeError("Missing CUSTODY_ADDRESS. Put it in .env or export it.")

        # If user provides --algod-url / --indexer-url, trust them.
        algod_url = algod_url_override or os.getenv("ALGOD_URL", "").strip() or DEFAULT_ALGOD_URL
        indexer_url = (
            indexer_url_override
            or os.getenv("INDEXER_URL", "").strip()
            or DEFAULT_INDEXER_URL
        )

        return Settings(
            algod_url=algod_url.rstrip("/"),
            algod_token=os.getenv("ALGOD_TOKEN", "").strip(),
            indexer_url=indexer_url.rstrip("/"),
            token_id=token_id_int,
            custody_address=custody,
            network=os.getenv("NETWORK", "").strip() or NETWORK_GENESIS_ID,
        )
