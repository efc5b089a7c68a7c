from decimal import Decimal

import pytest
from algosdk import abi, logic, transaction

from voi_lottery.errors import CompositionError, WrongNetworkError
from voi_lottery.models import HolderBalance, NFTAsset, SelectionResult
from voi_lottery.project_constants import BOX_COST, TRANSFER_METHOD_SIGNATURE
from voi_lottery.transfer import compose_transfer, decode_group, needs_funding

CONTRACT_ID = 40000


@pytest.fixture
def selection(winner_address):
    return SelectionResult(
        holder=HolderBalance(winner_address, Decimal(50), 25.0),
        nft=NFTAsset(CONTRACT_ID, 17, "Voi Punks"),
    )


def test_needs_funding_threshold():
    assert not needs_funding(BOX_COST + 1, BOX_COST)
    assert needs_funding(BOX_COST, BOX_COST)
    assert needs_funding(0, BOX_COST)


@pytest.mark.asyncio
async def test_funded_contract_gets_single_app_call(selection, custody, fake_algod):
    fake_algod.account = {"amount": 500_000, "min-balance": 100_000}
    algod = fake_algod.client()
    try:
        plan = await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()

    txns = decode_group(plan)
    assert len(txns) == 1
    assert not plan.funded
    call = txns[0]
    assert isinstance(call, transaction.ApplicationCallTxn)
    assert call.index == CONTRACT_ID
    assert call.sender == custody
    assert call.group == plan.group_id
    assert plan.recipient_address == selection.holder.address

    # No submission during composition
    assert "/v2/transactions" not in fake_algod.paths()
    assert "/v2/transactions/simulate" not in fake_algod.paths()


@pytest.mark.asyncio
async def test_shortfall_adds_one_payment_first(selection, custody, fake_algod):
    fake_algod.account = {"amount": 110_000, "min-balance": 100_000}
    algod = fake_algod.client()
    try:
        plan = await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()

    txns = decode_group(plan)
    assert len(txns) == 2
    assert plan.funded
    pay, call = txns
    assert isinstance(pay, transaction.PaymentTxn)
    assert pay.receiver == logic.get_application_address(CONTRACT_ID)
    assert pay.amt == BOX_COST - 10_000
    assert isinstance(call, transaction.ApplicationCallTxn)
    assert {t.group for t in txns} == {plan.group_id}
    assert plan.group_id is not None


@pytest.mark.asyncio
async def test_app_args_are_abi_encoded(selection, custody, fake_algod):
    algod = fake_algod.client()
    try:
        plan = await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()

    method = abi.Method.from_signature(TRANSFER_METHOD_SIGNATURE)
    call = decode_group(plan)[-1]
    assert call.app_args[0] == method.get_selector()
    assert abi.AddressType().decode(call.app_args[1]) == custody
    assert abi.AddressType().decode(call.app_args[2]) == selection.holder.address
    assert abi.UintType(256).decode(call.app_args[3]) == 17


@pytest.mark.asyncio
async def test_oversized_token_id_fails_before_network(custody, winner_address, fake_algod):
    selection = SelectionResult(
        holder=HolderBalance(winner_address, Decimal(1)),
        nft=NFTAsset(CONTRACT_ID, 2**256, "Voi Punks"),
    )
    algod = fake_algod.client()
    try:
        with pytest.raises(CompositionError, match="ABI"):
            await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()
    assert fake_algod.requests == []


@pytest.mark.asyncio
async def test_bad_recipient_address_is_composition_error(custody, fake_algod):
    selection = SelectionResult(
        holder=HolderBalance("NOT-AN-ADDRESS", Decimal(1)),
        nft=NFTAsset(CONTRACT_ID, 1, "Voi Punks"),
    )
    algod = fake_algod.client()
    try:
        with pytest.raises(CompositionError):
            await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()


@pytest.mark.asyncio
async def test_params_failure_is_composition_error(selection, custody, fake_algod):
    fake_algod.params_status = 500
    algod = fake_algod.client()
    try:
        with pytest.raises(CompositionError, match="suggested params"):
            await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()


@pytest.mark.asyncio
async def test_other_network_is_rejected(selection, custody, fake_algod):
    fake_algod.genesis_id = "testnet-v1.0"
    algod = fake_algod.client()
    try:
        with pytest.raises(WrongNetworkError):
            await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()


@pytest.mark.asyncio
async def test_available_equal_to_box_cost_still_funds(selection, custody, fake_algod):
    fake_algod.account = {"amount": 100_000 + BOX_COST, "min-balance": 100_000}
    algod = fake_algod.client()
    try:
        plan = await compose_transfer(selection, custody, algod)
    finally:
        await algod.aclose()

    txns = decode_group(plan)
    assert plan.funded
    assert len(txns) == 2
    payments = [t for t in txns if isinstance(t, transaction.PaymentTxn)]
    assert len(payments) == 1
    assert payments[0].amt == 0
    assert {t.group for t in txns} == {plan.group_id}
