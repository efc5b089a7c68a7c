from __future__ import annotations

import base64
from typing import Any, Dict, List, Optional, Sequence

import httpx
from algosdk import encoding, transaction
from algosdk.v2client.models import SimulateRequest, SimulateRequestTransactionGroup

from .errors import RejectedError, TransportError


class _JsonClient:
    def __init__(
        self,
        base_url: str,
        timeout_s: float = 60.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout_s, headers=headers, transport=transport)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self.client.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path}: {e}") from e

        if resp.is_error:
            raise RejectedError(resp.status_code, _error_message(resp))
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{method} {path}: response is not JSON") from e


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)


class IndexerClient(_JsonClient):
    """Read-only client for the NFT/ARC-200 indexer."""

    async def get_token_balances(self, contract_id: int) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/arc200/balances", params={"contractId": contract_id})
        if not isinstance(data, dict) or not isinstance(data.get("balances"), list):
            raise TransportError("arc200/balances: missing 'balances' list")
        return data["balances"]

    async def get_owned_tokens(self, owner: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/tokens", params={"owner": owner, "include": "all"})
        if not isinstance(data, dict) or not isinstance(data.get("tokens"), list):
            raise TransportError("tokens: missing 'tokens' list")
        return data["tokens"]


class AlgodClient(_JsonClient):
    """Async subset of the algod v2 REST API."""

    def __init__(
        self,
        algod_url: str,
        algod_token: str = "",
        timeout_s: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"X-Algo-API-Token": algod_token} if algod_token else None
        super().__init__(algod_url, timeout_s=timeout_s, headers=headers, transport=transport)

    async def get_suggested_params(self) -> transaction.SuggestedParams:
        data = await self._request("GET", "/v2/transactions/params")
        return transaction.SuggestedParams(
            data["fee"],
            data["last-round"],
            data["last-round"] + 1000,
            data["genesis-hash"],
            data["genesis-id"],
            False,
            data["consensus-version"],
            data["min-fee"],
        )

    async def get_account_info(self, address: str) -> Dict[str, Any]:
        return await self._request("GET", f"/v2/accounts/{address}", params={"exclude": "all"})

    async def get_block_seed(self, round_num: int) -> str:
        data = await self._request("GET", f"/v2/blocks/{round_num}", params={"format": "json"})
        block = data.get("block") if isinstance(data, dict) else None
        if not block or not block.get("seed"):
            raise RejectedError(404, f"Round {round_num}: block has no seed")
        return block["seed"]

    async def simulate_group(
        self, txns: Sequence[transaction.Transaction]
    ) -> Dict[str, Any]:
        """
        Simulates an unsigned group. Signatures are not checked and the
        simulator may resolve accounts/apps the group does not name.
        """
        request = SimulateRequest(
            txn_groups=[
                SimulateRequestTransactionGroup(
                    txns=[transaction.SignedTransaction(t, None) for t in txns]
                )
            ],
            allow_empty_signatures=True,
            allow_unnamed_resources=True,
        )
        body = base64.b64decode(encoding.msgpack_encode(request))
        return await self._request(
            "POST",
            "/v2/transactions/simulate",
            params={"format": "json"},
            content=body,
            headers={"Content-Type": "application/msgpack"},
        )

    async def send_raw_group(self, signed: Sequence[bytes]) -> str:
        data = await self._request(
            "POST",
            "/v2/transactions",
            content=b"".join(signed),
            headers={"Content-Type": "application/x-binary"},
        )
        if not isinstance(data, dict) or "txId" not in data:
            raise TransportError("transactions: response has no txId")
        return data["txId"]
