"""
Project-wide immutable parameters for the Voi holder lottery.

These values define the public rules of the draw.
Changing them changes eligibility and MUST be publicly announced.
"""

# ARC-200 tokens on Voi use 6 decimals
TOKEN_DECIMALS = 6

# Public exclusion list (committed to repo)
EXCLUDED_WALLETS_FILE = "excluded_wallets.mainnet.txt"

# Name-service tokens are held by the custody wallet but never awarded
NON_PRIZE_COLLECTION = "en.Voi"

# ARC-72 transfer entry point
TRANSFER_METHOD_SIGNATURE = "arc72_transferFrom(address,address,uint256)void"

# Box storage rent for one ownership transfer (microunits)
BOX_COST = 28500

# Prize NFTs and the custody account live on Voi mainnet only
NETWORK_GENESIS_ID = "voimain-v1.0"

DEFAULT_ALGOD_URL = "https://mainnet-api.voi.nodely.dev"
DEFAULT_INDEXER_URL = "https://mainnet-idx.nautilus.sh/nft-indexer/v1"

# Snapshot cache lifetime in seconds
SNAPSHOT_TTL_S = 300.0
