from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from .errors import MetadataParseError

IPFS_GATEWAY = "https://ipfs.io"


@dataclass(frozen=True)
class HolderBalance:
    address: str
    balance: Decimal  # whole token units
    percentage: float = 0.0


def resolve_ipfs_url(url: str) -> str:
    if not url:
        return url
    if url.startswith("ipfs://"):
        return f"{IPFS_GATEWAY}/ipfs/{url[len('ipfs://'):]}"
    if url.startswith("/ipfs/"):
        return f"{IPFS_GATEWAY}{url}"
    return url


@dataclass(frozen=True)
class NFTMetadata:
    name: str = ""
    image: str = ""
    description: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)
    image_integrity: Optional[str] = None

    @property
    def image_url(self) -> str:
        return resolve_ipfs_url(self.image)


@dataclass(frozen=True)
class NFTAsset:
    contract_id: int
    token_id: int
    collection_name: str
    metadata_blob: str = "{}"

    @property
    def key(self) -> Tuple[int, int]:
        return self.contract_id, self.token_id

    def metadata(self) -> NFTMetadata:
        """Parse the metadata blob. Raises MetadataParseError on malformed input."""
        try:
            raw = json.loads(self.metadata_blob or "{}")
        except (TypeError, ValueError) as e:
            raise MetadataParseError(
                f"NFT {self.contract_id}/{self.token_id}: metadata is not valid JSON", cause=e
            ) from e

        if not isinstance(raw, dict):
            raise MetadataParseError(
                f"NFT {self.contract_id}/{self.token_id}: metadata is not a JSON object"
            )

        properties = raw.get("properties") or {}
        if not isinstance(properties, dict):
            raise MetadataParseError(
                f"NFT {self.contract_id}/{self.token_id}: properties must be an object"
            )

        return NFTMetadata(
            name=str(raw.get("name") or f"NFT #{self.token_id}"),
            image=str(raw.get("image") or ""),
            description=str(raw.get("description") or ""),
            properties=properties,
            image_integrity=raw.get("image_integrity"),
        )


@dataclass(frozen=True)
class Snapshot:
    holders: Tuple[HolderBalance, ...]  # balance desc, address asc
    nfts: Tuple[NFTAsset, ...]  # (contract_id, token_id) asc
    fetched_at: datetime


@dataclass(frozen=True)
class SelectionResult:
    holder: HolderBalance
    nft: NFTAsset


@dataclass(frozen=True)
class TransferPlan:
    custody_address: str
    recipient_address: str
    contract_id: int
    token_id: int
    unsigned_group: Tuple[bytes, ...]  # msgpack-encoded transactions, in group order
    group_id: bytes
    genesis_id: str
    funded: bool = False
