from __future__ import annotations

import base64
import logging
from typing import List

from algosdk import abi, encoding, error, logic, transaction

from .errors import CompositionError, RpcError, WrongNetworkError
from .models import SelectionResult, TransferPlan
from .project_constants import BOX_COST, NETWORK_GENESIS_ID, TRANSFER_METHOD_SIGNATURE
from .rpc import AlgodClient

log = logging.getLogger(__name__)

TRANSFER_METHOD = abi.Method.from_signature(TRANSFER_METHOD_SIGNATURE)


def encode_transfer_args(custody: str, recipient: str, token_id: int) -> List[bytes]:
    args = [custody, recipient, token_id]
    try:
        encoded = [m.type.encode(a) for m, a in zip(TRANSFER_METHOD.args, args)]
    except (
        error.ABIEncodingError,
        error.WrongChecksumError,
        error.WrongKeyLengthError,
        ValueError,
        TypeError,
    ) as e:
        raise CompositionError(f"ABI encoding failed: {e}", cause=e) from e
    return [TRANSFER_METHOD.get_selector(), *encoded]


def available_balance(account_info: dict) -> int:
    """Spendable microunits: balance above the account's minimum reserve."""
    return int(account_info["amount"]) - int(account_info["min-balance"])


def needs_funding(available: int, box_cost: int) -> bool:
    return not available > box_cost


async def compose_transfer(
    selection: SelectionResult,
    custody: str,
    algod: AlgodClient,
    network: str = NETWORK_GENESIS_ID,
    box_cost: int = BOX_COST,
) -> TransferPlan:
    """
    Builds the unsigned atomic group moving the prize NFT from custody to the
    winner: [optional rent payment to the contract account] + ARC-72 transfer.
    """
    nft = selection.nft
    recipient = selection.holder.address
    app_args = encode_transfer_args(custody, recipient, nft.token_id)

    try:
        sp = await algod.get_suggested_params()
    except (RpcError, KeyError, TypeError) as e:
        raise CompositionError(f"Could not obtain suggested params: {e}", cause=e) from e
    if sp.gen != network:
        raise WrongNetworkError(network, sp.gen)

    app_address = logic.get_application_address(nft.contract_id)
    try:
        acct = await algod.get_account_info(app_address)
        available = available_balance(acct)
    except (RpcError, KeyError, TypeError, ValueError) as e:
        raise CompositionError(f"Could not read contract account {app_address}: {e}", cause=e) from e

    funded = needs_funding(available, box_cost)
    txns: List[transaction.Transaction] = []
    if funded:
        shortfall = box_cost - max(available, 0)
        log.info("Contract %d short %d for box storage; adding payment", nft.contract_id, shortfall)
        txns.append(
            transaction.PaymentTxn(
                sender=custody,
                sp=sp,
                receiver=app_address,
                amt=shortfall,
                note=f"Transfer NFT {nft.token_id}".encode("utf-8"),
            )
        )
    else:
        log.debug("Contract %d covers box storage", nft.contract_id)

    txns.append(
        transaction.ApplicationCallTxn(
            sender=custody,
            sp=sp,
            index=nft.contract_id,
            on_complete=transaction.OnComplete.NoOpOC,
            app_args=app_args,
        )
    )

    transaction.assign_group_id(txns)
    blobs = tuple(base64.b64decode(encoding.msgpack_encode(t)) for t in txns)

    return TransferPlan(
        custody_address=custody,
        recipient_address=recipient,
        contract_id=nft.contract_id,
        token_id=nft.token_id,
        unsigned_group=blobs,
        group_id=txns[0].group,
        genesis_id=sp.gen,
        funded=funded,
    )


def decode_group(plan: TransferPlan) -> List[transaction.Transaction]:
    return [encoding.msgpack_decode(base64.b64encode(b).decode("ascii")) for b in plan.unsigned_group]
