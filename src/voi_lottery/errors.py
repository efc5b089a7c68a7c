"""
Error taxonomy for the lottery core.

Every failure path ends in one of these types so callers can tell a stale
snapshot apart from a declined signature or a rejected submission.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LotteryError(Exception):
    """Base class for all lottery errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class FetchError(LotteryError):
    """A remote read failed or returned malformed data. Nothing was cached."""


class EmptyPoolError(LotteryError):
    """No eligible holders or no eligible NFTs."""


class CompositionError(LotteryError):
    """Suggested params could not be obtained or an ABI argument did not encode."""


class MetadataParseError(LotteryError):
    """NFT metadata blob is not a JSON object."""


class WrongNetworkError(LotteryError):
    """The active network differs from the one holding the prize and custody account."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Wrong network: expected {expected!r}, got {actual!r}")
        self.expected = expected
        self.actual = actual


class FailureCause(str, Enum):
    SIMULATION_FAILURE = "simulation_failure"
    USER_CANCELLED = "user_cancelled"
    NETWORK_REJECTED = "network_rejected"
    SIGNED_GROUP_MISMATCH = "signed_group_mismatch"


class PipelineFailure(LotteryError):
    cause_kind: FailureCause


class SimulationFailure(PipelineFailure):
    """The candidate group would fail on-chain."""

    cause_kind = FailureCause.SIMULATION_FAILURE

    def __init__(
        self,
        message: str,
        failed_at: Optional[list] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.failed_at = failed_at or []


class UserCancelled(PipelineFailure):
    """The operator declined to sign."""

    cause_kind = FailureCause.USER_CANCELLED


class NetworkRejected(PipelineFailure):
    """Submission failed after signing. The group never partially applies."""

    cause_kind = FailureCause.NETWORK_REJECTED


class SignedGroupMismatch(PipelineFailure):
    """The signer returned transactions other than the simulated group."""

    cause_kind = FailureCause.SIGNED_GROUP_MISMATCH


# Transport-level errors raised by the HTTP clients.


class RpcError(Exception):
    """Base class for remote call failures."""


class TransportError(RpcError):
    """Connection, timeout or protocol failure before a response was read."""


class RejectedError(RpcError):
    """The remote service answered with an error status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
