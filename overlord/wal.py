"""Choke messages and the write-ahead log record of a replica."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .messages import (
    AggregatedVote,
    _content_bytes,
    _fields,
    _optional_item,
    _read_bytes,
    _read_content,
    _read_optional,
    _read_uint,
    _uint,
)
from .rlp import RlpError
from .smr_types import Step

_U8 = 8
_U64 = 64


class UpdateKind(enum.IntEnum):
    """Which quorum certificate a replica updated its round from."""

    PREVOTE_QC = 0
    PRECOMMIT_QC = 1
    CHOKE_QC = 2


@dataclass(frozen=True)
class AggregatedChoke:
    """A quorum certificate of chokes with the addresses of its voters."""

    height: int
    round: int
    signature: bytes
    voters: list = field(default_factory=list)

    def _rlp_item(self) -> list:
        return [
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            bytes(self.signature),
            [bytes(voter) for voter in self.voters],
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "AggregatedChoke":
        height, round_, signature, voters = _fields(item, 4)
        if not isinstance(voters, list):
            raise RlpError("expected a list")
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            signature=_read_bytes(signature),
            voters=[_read_bytes(voter) for voter in voters],
        )


@dataclass(frozen=True)
class UpdateFrom:
    """The quorum certificate that moved a replica to its current round."""

    kind: UpdateKind
    qc: Union[AggregatedVote, AggregatedChoke]

    def __post_init__(self) -> None:
        expected = AggregatedChoke if self.kind is UpdateKind.CHOKE_QC else AggregatedVote
        if not isinstance(self.qc, expected):
            raise ValueError(f"{self.kind.name} needs an {expected.__name__}")

    def _rlp_item(self) -> list:
        return [_uint(int(self.kind), _U8), self.qc._rlp_item()]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "UpdateFrom":
        tag, qc = _fields(item, 2)
        value = _read_uint(tag, _U8)
        try:
            kind = UpdateKind(value)
        except ValueError:
            raise RlpError(f"Invalid update kind {value}") from None
        if kind is UpdateKind.CHOKE_QC:
            return cls(kind, AggregatedChoke._from_rlp_item(qc))
        return cls(kind, AggregatedVote._from_rlp_item(qc))


@dataclass(frozen=True)
class Choke:
    """A request to leave a stuck round, justified by a quorum certificate."""

    height: int
    round: int
    from_: UpdateFrom

    def _rlp_item(self) -> list:
        return [_uint(self.height, _U64), _uint(self.round, _U64), self.from_._rlp_item()]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Choke":
        height, round_, from_ = _fields(item, 3)
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            from_=UpdateFrom._from_rlp_item(from_),
        )


@dataclass(frozen=True)
class SignedChoke:
    """A choke with the signature and address of its sender."""

    signature: bytes
    choke: Choke
    address: bytes

    def _rlp_item(self) -> list:
        return [bytes(self.signature), self.choke._rlp_item(), bytes(self.address)]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "SignedChoke":
        signature, choke, address = _fields(item, 3)
        return cls(
            signature=_read_bytes(signature),
            choke=Choke._from_rlp_item(choke),
            address=_read_bytes(address),
        )


@dataclass(frozen=True)
class HashChoke:
    """The part of a choke that is hashed and signed."""

    height: int
    round: int

    def _rlp_item(self) -> list:
        return [_uint(self.height, _U64), _uint(self.round, _U64)]


@dataclass(frozen=True)
class WalLock:
    """A lock saved in the log: round, prevote certificate and locked block."""

    lock_round: int
    lock_votes: AggregatedVote
    content: Any

    def _rlp_item(self) -> list:
        return [
            _uint(self.lock_round, _U64),
            self.lock_votes._rlp_item(),
            _content_bytes(self.content),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "WalLock":
        lock_round, lock_votes, content = _fields(item, 3)
        return cls(
            lock_round=_read_uint(lock_round, _U64),
            lock_votes=AggregatedVote._from_rlp_item(lock_votes),
            content=_read_content(content, content_type),
        )


@dataclass(frozen=True)
class WalInfo:
    """The position of a replica saved to the write-ahead log."""

    height: int
    round: int
    step: Step
    lock: Optional[WalLock]
    from_: UpdateFrom

    def _rlp_item(self) -> list:
        return [
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            _uint(int(self.step), _U8),
            _optional_item(self.lock),
            self.from_._rlp_item(),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "WalInfo":
        height, round_, step, lock, from_ = _fields(item, 5)
        step_value = _read_uint(step, _U8)
        try:
            step_kind = Step(step_value)
        except ValueError:
            raise RlpError(f"Invalid step {step_value}") from None
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            step=step_kind,
            lock=_read_optional(lock, WalLock, content_type),
            from_=UpdateFrom._from_rlp_item(from_),
        )