from __future__ import annotations

import asyncio
import base64
import logging
from typing import Callable, List, Sequence

from algosdk import encoding, transaction

from .errors import UserCancelled

log = logging.getLogger(__name__)


class FileSigner:
    """
    Hands the unsigned group to the operator as a file any standard signing
    tool can read, then waits for the signed file to come back.
    An empty answer (or "cancel") declines.
    """

    def __init__(
        self,
        network: str,
        unsigned_path: str = "unsigned.txn",
        ask: Callable[[str], str] = input,
    ) -> None:
        self.network = network
        self.unsigned_path = unsigned_path
        self.ask = ask

    async def sign_group(self, unsigned: Sequence[bytes]) -> List[bytes]:
        txns = [
            encoding.msgpack_decode(base64.b64encode(b).decode("ascii")) for b in unsigned
        ]
        transaction.write_to_file(txns, self.unsigned_path)
        log.info("Wrote %d unsigned transactions to %s", len(txns), self.unsigned_path)

        answer = await asyncio.to_thread(
            self.ask, f"Sign {self.unsigned_path} and enter the signed file path (blank to cancel): "
        )
        answer = answer.strip()
        if not answer or answer.lower() in ("cancel", "n", "no"):
            raise UserCancelled("Signing declined by operator")

        try:
            signed = transaction.retrieve_from_file(answer)
            return [base64.b64decode(encoding.msgpack_encode(s)) for s in signed]
        except OSError as e:
            raise UserCancelled(f"Could not read signed file {answer}: {e}", cause=e) from e
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise UserCancelled(
                f"{answer} is not a signed transaction file: {e!r}", cause=e
            ) from e
