"""Pytest configuration and fixtures."""

import base64
import json
from typing import Any, Callable, Dict, List

import httpx
import pytest
from algosdk import account, encoding, transaction

from voi_lottery.errors import UserCancelled
from voi_lottery.rpc import AlgodClient

GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="
NETWORK = "voimain-v1.0"


def new_address() -> str:
    return account.generate_account()[1]


@pytest.fixture
def custody():
    return new_address()


@pytest.fixture
def winner_address():
    return new_address()


def params_payload(genesis_id: str = NETWORK) -> Dict[str, Any]:
    return {
        "consensus-version": "future",
        "fee": 0,
        "genesis-hash": GENESIS_HASH,
        "genesis-id": genesis_id,
        "last-round": 1000,
        "min-fee": 1000,
    }


class FakeAlgod:
    """Routes algod REST calls to canned responses and records every request."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.genesis_id = NETWORK
        self.params_status = 200
        self.account = {"amount": 1_000_000, "min-balance": 100_000}
        self.simulate_response: Dict[str, Any] = {"txn-groups": [{"txn-results": []}]}
        self.send_status = 200
        self.send_response: Dict[str, Any] = {"txId": "TXID123"}

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/v2/transactions/params":
            if self.params_status != 200:
                return httpx.Response(self.params_status, json={"message": "node down"})
            return httpx.Response(200, json=params_payload(self.genesis_id))
        if path.startswith("/v2/accounts/"):
            return httpx.Response(200, json=self.account)
        if path == "/v2/transactions/simulate":
            return httpx.Response(200, json=self.simulate_response)
        if path == "/v2/transactions":
            return httpx.Response(self.send_status, json=self.send_response)
        if path.startswith("/v2/blocks/"):
            return httpx.Response(200, json={"block": {"seed": "c2VlZA==", "rnd": 5}})
        return httpx.Response(404, json={"message": f"no route {path}"})

    def client(self) -> AlgodClient:
        return AlgodClient(
            "http://algod.test", "token", transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture
def fake_algod():
    return FakeAlgod()


class RecordingSigner:
    """Signing capability fake: counts calls, optionally declines."""

    def __init__(self, network: str = NETWORK, cancel: bool = False) -> None:
        self.network = network
        self.cancel = cancel
        self.calls: List[List[bytes]] = []
        self.returned: List[bytes] = []

    async def sign_group(self, unsigned):
        self.calls.append(list(unsigned))
        if self.cancel:
            raise UserCancelled("declined")
        self.returned = [sign_blob(b) for b in unsigned]
        return self.returned


DUMMY_SIG = base64.b64encode(bytes(64)).decode("ascii")


def sign_blob(unsigned: bytes) -> bytes:
    """Wraps an unsigned transaction blob in a signed envelope with a dummy signature."""
    txn = encoding.msgpack_decode(base64.b64encode(unsigned).decode("ascii"))
    stxn = transaction.SignedTransaction(txn, DUMMY_SIG)
    return base64.b64decode(encoding.msgpack_encode(stxn))


@pytest.fixture
def signer():
    return RecordingSigner()


class ScriptedRandom:
    """RandomSource that replays fixed values."""

    def __init__(self, floats: List[float], indexes: List[int] = None) -> None:
        self.floats = list(floats)
        self.indexes = list(indexes or [0])

    def random(self) -> float:
        return self.floats.pop(0)

    def randrange(self, stop: int) -> int:
        return self.indexes.pop(0) % stop


def json_handler(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]):
    def handler(request: httpx.Request) -> httpx.Response:
        fn = routes.get(request.url.path)
        if fn is None:
            return httpx.Response(404, content=json.dumps({"message": "not found"}))
        return fn(request)

    return handler
