"""Timeout configuration and the interfaces that a consensus host provides."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Sequence

INIT_HEIGHT = 0
INIT_ROUND = 0

_RATIO_DENOMINATOR = 10


@dataclass(frozen=True)
class DurationConfig:
    """Timeout of each step as a ratio of the height interval, in tenths."""

    propose_ratio: int = 0
    prevote_ratio: int = 0
    precommit_ratio: int = 0
    brake_ratio: int = 0

    def propose_config(self) -> tuple[int, int]:
        """Return the propose timeout as (numerator, denominator)."""
        return self.propose_ratio, _RATIO_DENOMINATOR

    def prevote_config(self) -> tuple[int, int]:
        """Return the prevote timeout as (numerator, denominator)."""
        return self.prevote_ratio, _RATIO_DENOMINATOR

    def precommit_config(self) -> tuple[int, int]:
        """Return the precommit timeout as (numerator, denominator)."""
        return self.precommit_ratio, _RATIO_DENOMINATOR

    def brake_config(self) -> tuple[int, int]:
        """Return the brake retry timeout as (numerator, denominator)."""
        return self.brake_ratio, _RATIO_DENOMINATOR

    def is_default(self) -> bool:
        """Whether every ratio is zero."""
        return self == DurationConfig()


class Codec(abc.ABC):
    """A block content type that can turn itself into bytes and back."""

    @abc.abstractmethod
    def encode(self) -> bytes:
        """Serialize into bytes."""

    @classmethod
    @abc.abstractmethod
    def decode(cls, data: bytes) -> "Codec":
        """Deserialize from bytes."""


class Wal(abc.ABC):
    """Storage of write-ahead log information."""

    @abc.abstractmethod
    async def save(self, info: bytes) -> None:
        """Save the log information."""

    @abc.abstractmethod
    async def load(self) -> bytes | None:
        """Load the last saved log information, or None."""


class Crypto(abc.ABC):
    """Hashing and signature operations."""

    @abc.abstractmethod
    def hash(self, msg: bytes) -> bytes:
        """Hash a message."""

    @abc.abstractmethod
    def sign(self, hash: bytes) -> bytes:
        """Sign a hash with the private key."""

    @abc.abstractmethod
    def aggregate_signatures(
        self, signatures: Sequence[bytes], voters: Sequence[bytes]
    ) -> bytes:
        """Aggregate signatures of the given voters into one."""

    @abc.abstractmethod
    def verify_signature(self, signature: bytes, hash: bytes, voter: bytes) -> None:
        """Raise if the signature of the voter over the hash is invalid."""

    @abc.abstractmethod
    def verify_aggregated_signature(
        self, aggregate_signature: bytes, msg_hash: bytes, voters: Sequence[bytes]
    ) -> None:
        """Raise if the aggregated signature is invalid."""


class Consensus(abc.ABC):
    """Operations the host application offers to the consensus engine."""

    @abc.abstractmethod
    async def get_block(self, ctx: Any, height: int) -> tuple[Any, bytes]:
        """Return a block for the height together with its hash."""

    @abc.abstractmethod
    async def check_block(self, ctx: Any, height: int, hash: bytes, block: Any) -> None:
        """Raise if the block is not correct."""

    @abc.abstractmethod
    async def commit(self, ctx: Any, height: int, commit: Any) -> Any:
        """Commit the height and return the rich status of the next one."""

    @abc.abstractmethod
    async def get_authority_list(self, ctx: Any, height: int) -> list[Any]:
        """Return the authority list for the height."""

    @abc.abstractmethod
    async def broadcast_to_other(self, ctx: Any, msg: Any) -> None:
        """Broadcast a message to the other replicas."""

    @abc.abstractmethod
    async def transmit_to_relayer(self, ctx: Any, addr: bytes, msg: Any) -> None:
        """Send a message to the replica with the given address."""

    @abc.abstractmethod
    def report_error(self, ctx: Any, error: Exception) -> None:
        """Report an error of the engine."""

    @abc.abstractmethod
    def report_view_change(self, ctx: Any, height: int, round: int, reason: Any) -> None:
        """Report why the engine changed view."""