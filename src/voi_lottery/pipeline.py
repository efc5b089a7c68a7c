"""
Simulate -> sign -> submit for a composed TransferPlan.

Each run is strictly sequential. Simulation failures stop the run before
the signer is ever asked, so the operator is never shown a doomed group.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Sequence

from algosdk import encoding

from .errors import (
    NetworkRejected,
    PipelineFailure,
    RejectedError,
    RpcError,
    SignedGroupMismatch,
    SimulationFailure,
    UserCancelled,
    WrongNetworkError,
)
from .models import TransferPlan
from .rpc import AlgodClient
from .transfer import decode_group

log = logging.getLogger(__name__)


class PipelineState(str, Enum):
    COMPOSED = "composed"
    SIMULATED = "simulated"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class Signer(Protocol):
    """External signing capability (wallet session). Holds no keys we can see."""

    network: str

    async def sign_group(self, unsigned: Sequence[bytes]) -> List[bytes]:
        """Returns signed blobs in group order, or raises UserCancelled."""
        ...


@dataclass
class PipelineOutcome:
    state: PipelineState
    tx_id: Optional[str] = None
    failure: Optional[PipelineFailure] = None
    history: List[PipelineState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state == PipelineState.CONFIRMED


def simulation_errors(response: dict) -> List[str]:
    errors: List[str] = []
    for group in response.get("txn-groups", []):
        msg = group.get("failure-message")
        if msg:
            errors.append(f"{msg} (failed at {group.get('failed-at', [])})")
    return errors


def signed_txid(blob: bytes) -> Optional[str]:
    """Txid of the transaction inside a signed blob, None if it does not decode."""
    try:
        stxn = encoding.msgpack_decode(base64.b64encode(blob).decode("ascii"))
    except (ValueError, TypeError, KeyError, AttributeError):
        return None
    txn = getattr(stxn, "transaction", None)
    return txn.get_txid() if txn is not None else None


def group_mismatch(plan: TransferPlan, signed: Sequence[bytes]) -> Optional[str]:
    """Describes how the signed group differs from the plan, or None if it matches."""
    expected = [t.get_txid() for t in decode_group(plan)]
    if len(signed) != len(expected):
        return f"Signer returned {len(signed)} transactions for a group of {len(expected)}"
    for i, (blob, txid) in enumerate(zip(signed, expected)):
        got = signed_txid(blob)
        if got != txid:
            return f"Signed transaction {i} is {got or 'undecodable'}, expected {txid}"
    return None


class TransferPipeline:
    def __init__(self, algod: AlgodClient, signer: Signer, network: str) -> None:
        self.algod = algod
        self.signer = signer
        self.network = network

    def _check_network(self, plan: TransferPlan) -> None:
        if self.signer.network != self.network:
            raise WrongNetworkError(self.network, self.signer.network)
        if plan.genesis_id != self.network:
            raise WrongNetworkError(self.network, plan.genesis_id)

    async def run(self, plan: TransferPlan) -> PipelineOutcome:
        """
        Drives one plan to CONFIRMED or FAILED. Wrong-network use raises
        WrongNetworkError before anything is sent; every other failure is
        reported in the returned outcome. No step is retried.
        """
        self._check_network(plan)
        outcome = PipelineOutcome(state=PipelineState.COMPOSED, history=[PipelineState.COMPOSED])

        def advance(state: PipelineState) -> None:
            log.info("Transfer %s/%s: %s", plan.contract_id, plan.token_id, state.value)
            outcome.state = state
            outcome.history.append(state)

        def fail(failure: PipelineFailure) -> PipelineOutcome:
            log.error("Transfer failed (%s): %s", failure.cause_kind.value, failure)
            outcome.failure = failure
            advance(PipelineState.FAILED)
            return outcome

        # Simulated
        try:
            response = await self.algod.simulate_group(decode_group(plan))
        except RpcError as e:
            return fail(SimulationFailure(f"Simulation request failed: {e}", cause=e))
        errors = simulation_errors(response)
        if errors:
            failed_at = [g.get("failed-at") for g in response.get("txn-groups", [])]
            return fail(SimulationFailure("; ".join(errors), failed_at=failed_at))
        advance(PipelineState.SIMULATED)

        # Signed: no timeout here, the operator may take as long as they need
        try:
            signed = await self.signer.sign_group(list(plan.unsigned_group))
        except UserCancelled as e:
            return fail(e)
        mismatch = group_mismatch(plan, signed)
        if mismatch:
            return fail(SignedGroupMismatch(mismatch))
        advance(PipelineState.SIGNED)

        # Submitted
        try:
            tx_id = await self.algod.send_raw_group(signed)
        except RejectedError as e:
            return fail(NetworkRejected(f"Network rejected group: {e.message}", cause=e))
        except RpcError as e:
            return fail(NetworkRejected(f"Submission failed: {e}", cause=e))
        advance(PipelineState.SUBMITTED)

        outcome.tx_id = tx_id
        advance(PipelineState.CONFIRMED)
        return outcome
