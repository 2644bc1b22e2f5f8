"""Consensus messages and their wire encoding."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

from . import rlp
from .config import DurationConfig
from .rlp import RlpError

_U8 = 8
_U32 = 32
_U64 = 64


def _uint(value: int, bits: int) -> bytes:
    if not 0 <= value < (1 << bits):
        raise RlpError(f"value {value} does not fit in {bits} bits")
    return rlp.encode_uint(value)


def _read_uint(item: Any, bits: int) -> int:
    value = rlp.decode_uint(item)
    if value >= (1 << bits):
        raise RlpError("value is too big")
    return value


def _read_bytes(item: Any) -> bytes:
    if not isinstance(item, bytes):
        raise RlpError("expected data, found a list")
    return item


def _fields(item: Any, count: int) -> list:
    if not isinstance(item, list) or len(item) != count:
        raise RlpError("inconsistent length and data")
    return item


def _optional_item(value: Any) -> list:
    return [] if value is None else [value._rlp_item()]


def _read_optional(item: Any, kind: type, content_type: Any = None) -> Any:
    if not isinstance(item, list):
        raise RlpError("expected a list")
    if not item:
        return None
    if len(item) != 1:
        raise RlpError("incorrect list length for an optional value")
    return kind._from_rlp_item(item[0], content_type)


def _content_bytes(content: Any) -> bytes:
    return bytes(content.encode())


def _read_content(item: Any, content_type: Any) -> Any:
    if content_type is None:
        raise TypeError("a content type is needed to decode block content")
    data = _read_bytes(item)
    try:
        return content_type.decode(data)
    except Exception as exc:
        raise RlpError("Codec decode error.") from exc


def _config_item(config: DurationConfig) -> list:
    return [
        _uint(config.propose_ratio, _U64),
        _uint(config.prevote_ratio, _U64),
        _uint(config.precommit_ratio, _U64),
        _uint(config.brake_ratio, _U64),
    ]


def _read_config(item: Any) -> DurationConfig:
    propose, prevote, precommit, brake = _fields(item, 4)
    return DurationConfig(
        propose_ratio=_read_uint(propose, _U64),
        prevote_ratio=_read_uint(prevote, _U64),
        precommit_ratio=_read_uint(precommit, _U64),
        brake_ratio=_read_uint(brake, _U64),
    )


class VoteType(enum.IntEnum):
    """Kind of a vote."""

    PREVOTE = 1
    PRECOMMIT = 2


def _read_vote_type(item: Any) -> VoteType:
    value = _read_uint(item, _U8)
    try:
        return VoteType(value)
    except ValueError:
        raise RlpError("Invalid vote type") from None


@dataclass(frozen=True)
class AggregatedSignature:
    """An aggregated signature with the bitmap of the voters that signed."""

    signature: bytes
    address_bitmap: bytes

    def _rlp_item(self) -> list:
        return [bytes(self.signature), bytes(self.address_bitmap)]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "AggregatedSignature":
        signature, bitmap = _fields(item, 2)
        return cls(_read_bytes(signature), _read_bytes(bitmap))


@dataclass(frozen=True)
class Vote:
    """A vote for a block hash at a height and round."""

    height: int
    round: int
    vote_type: VoteType
    block_hash: bytes

    def _rlp_item(self) -> list:
        return [
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            _uint(int(self.vote_type), _U8),
            bytes(self.block_hash),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Vote":
        height, round_, vote_type, block_hash = _fields(item, 4)
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            vote_type=_read_vote_type(vote_type),
            block_hash=_read_bytes(block_hash),
        )


@dataclass(frozen=True)
class SignedVote:
    """A vote with the voter's signature."""

    signature: bytes
    vote: Vote
    voter: bytes

    def _rlp_item(self) -> list:
        return [bytes(self.signature), self.vote._rlp_item(), bytes(self.voter)]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "SignedVote":
        signature, vote, voter = _fields(item, 3)
        return cls(
            signature=_read_bytes(signature),
            vote=Vote._from_rlp_item(vote),
            voter=_read_bytes(voter),
        )


@dataclass(frozen=True)
class AggregatedVote:
    """A quorum certificate built by the leader from signed votes."""

    signature: AggregatedSignature
    vote_type: VoteType
    height: int
    round: int
    block_hash: bytes
    leader: bytes

    def _rlp_item(self) -> list:
        return [
            self.signature._rlp_item(),
            _uint(int(self.vote_type), _U8),
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            bytes(self.block_hash),
            bytes(self.leader),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "AggregatedVote":
        signature, vote_type, height, round_, block_hash, leader = _fields(item, 6)
        return cls(
            signature=AggregatedSignature._from_rlp_item(signature),
            vote_type=_read_vote_type(vote_type),
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            block_hash=_read_bytes(block_hash),
            leader=_read_bytes(leader),
        )


@dataclass(frozen=True)
class PoLC:
    """A proof of lock: the locked round and its prevote certificate."""

    lock_round: int
    lock_votes: AggregatedVote

    def _rlp_item(self) -> list:
        return [_uint(self.lock_round, _U64), self.lock_votes._rlp_item()]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "PoLC":
        lock_round, lock_votes = _fields(item, 2)
        return cls(
            lock_round=_read_uint(lock_round, _U64),
            lock_votes=AggregatedVote._from_rlp_item(lock_votes),
        )


@dataclass(frozen=True)
class Proposal:
    """A block proposed by the leader of a round."""

    height: int
    round: int
    content: Any
    block_hash: bytes
    lock: Optional[PoLC]
    proposer: bytes

    def _rlp_item(self) -> list:
        return [
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            bytes(self.block_hash),
            _optional_item(self.lock),
            bytes(self.proposer),
            _content_bytes(self.content),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Proposal":
        height, round_, block_hash, lock, proposer, content = _fields(item, 6)
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            content=_read_content(content, content_type),
            block_hash=_read_bytes(block_hash),
            lock=_read_optional(lock, PoLC),
            proposer=_read_bytes(proposer),
        )


@dataclass(frozen=True)
class SignedProposal:
    """A proposal with the proposer's signature."""

    signature: bytes
    proposal: Proposal

    def _rlp_item(self) -> list:
        return [bytes(self.signature), self.proposal._rlp_item()]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "SignedProposal":
        signature, proposal = _fields(item, 2)
        return cls(
            signature=_read_bytes(signature),
            proposal=Proposal._from_rlp_item(proposal, content_type),
        )


@dataclass(frozen=True)
class Proof:
    """The precommit certificate that proves a block was committed."""

    height: int
    round: int
    block_hash: bytes
    signature: AggregatedSignature

    def _rlp_item(self) -> list:
        return [
            _uint(self.height, _U64),
            _uint(self.round, _U64),
            bytes(self.block_hash),
            self.signature._rlp_item(),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Proof":
        height, round_, block_hash, signature = _fields(item, 4)
        return cls(
            height=_read_uint(height, _U64),
            round=_read_uint(round_, _U64),
            block_hash=_read_bytes(block_hash),
            signature=AggregatedSignature._from_rlp_item(signature),
        )


@dataclass(frozen=True)
class Commit:
    """A committed block with its proof."""

    height: int
    content: Any
    proof: Proof

    def _rlp_item(self) -> list:
        return [_uint(self.height, _U64), self.proof._rlp_item(), _content_bytes(self.content)]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Commit":
        height, proof, content = _fields(item, 3)
        return cls(
            height=_read_uint(height, _U64),
            content=_read_content(content, content_type),
            proof=Proof._from_rlp_item(proof),
        )


@dataclass(frozen=True)
class Node:
    """An authority with its proposing and voting weights."""

    address: bytes
    propose_weight: int = 1
    vote_weight: int = 1

    def _rlp_item(self) -> list:
        return [
            bytes(self.address),
            _uint(self.propose_weight, _U32),
            _uint(self.vote_weight, _U32),
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Node":
        address, propose_weight, vote_weight = _fields(item, 3)
        return cls(
            address=_read_bytes(address),
            propose_weight=_read_uint(propose_weight, _U32),
            vote_weight=_read_uint(vote_weight, _U32),
        )


@dataclass(frozen=True)
class Status:
    """The rich status that starts a height.

    On the wire a missing interval is 0 and a missing timer configuration is
    the all-zero one, so those values decode back to None.
    """

    height: int
    interval: Optional[int] = None
    timer_config: Optional[DurationConfig] = None
    authority_list: list = field(default_factory=list)

    def _rlp_item(self) -> list:
        interval = 0 if self.interval is None else self.interval
        config = DurationConfig() if self.timer_config is None else self.timer_config
        return [
            _uint(self.height, _U64),
            _uint(interval, _U64),
            _config_item(config),
            [node._rlp_item() for node in self.authority_list],
        ]

    @classmethod
    def _from_rlp_item(cls, item: Any, content_type: Any = None) -> "Status":
        height, interval, config, authorities = _fields(item, 4)
        interval_value = _read_uint(interval, _U64)
        config_value = _read_config(config)
        if not isinstance(authorities, list):
            raise RlpError("expected a list")
        return cls(
            height=_read_uint(height, _U64),
            interval=interval_value or None,
            timer_config=None if config_value.is_default() else config_value,
            authority_list=[Node._from_rlp_item(node) for node in authorities],
        )


def encode(message: Any) -> bytes:
    """Encode a message into its wire bytes."""
    to_item = getattr(message, "_rlp_item", None)
    if to_item is None:
        raise TypeError(f"cannot encode {type(message).__name__}")
    return rlp.encode(to_item())


def decode(kind: type, data: bytes, content_type: Any = None) -> Any:
    """Decode wire bytes into a message of the given kind.

    content_type is the Codec class of the block content, needed for
    messages that carry a block.
    """
    from_item = getattr(kind, "_from_rlp_item", None)
    if from_item is None:
        raise TypeError(f"cannot decode {getattr(kind, '__name__', kind)}")
    return from_item(rlp.decode(data), content_type)