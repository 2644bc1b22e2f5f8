import random
import struct
from dataclasses import dataclass

import pytest

from overlord import rlp
from overlord.config import Codec, DurationConfig
from overlord.messages import (
    AggregatedSignature,
    AggregatedVote,
    Commit,
    Node,
    PoLC,
    Proof,
    Proposal,
    SignedProposal,
    SignedVote,
    Status,
    Vote,
    VoteType,
    decode,
    encode,
)
from overlord.rlp import RlpError

_rng = random.Random(20240601)


@dataclass(frozen=True)
class Pill(Codec):
    height: int
    epoch: tuple

    def encode(self) -> bytes:
        return struct.pack(f"<QQ{len(self.epoch)}Q", self.height, len(self.epoch), *self.epoch)

    @classmethod
    def decode(cls, data: bytes) -> "Pill":
        height, count = struct.unpack_from("<QQ", data)
        epoch = struct.unpack_from(f"<{count}Q", data, 16)
        if len(data) != 16 + 8 * count:
            raise ValueError("trailing data")
        return cls(height, tuple(epoch))


class RejectingCodec(Codec):
    def encode(self) -> bytes:
        return b""

    @classmethod
    def decode(cls, data: bytes) -> "RejectingCodec":
        raise ValueError("rejected")


def u64():
    return _rng.getrandbits(64)


def rand_bytes(size):
    return bytes(_rng.getrandbits(8) for _ in range(size))


def gen_pill():
    return Pill(u64(), tuple(u64() for _ in range(128)))


def gen_hash():
    return rand_bytes(16)


def gen_address():
    return rand_bytes(32)


def gen_signature():
    return rand_bytes(64)


def gen_aggr_signature():
    return AggregatedSignature(gen_signature(), rand_bytes(8))


def gen_aggregated_vote(vote_type):
    return AggregatedVote(
        signature=gen_aggr_signature(),
        vote_type=VoteType(vote_type),
        height=u64(),
        round=u64(),
        block_hash=gen_hash(),
        leader=gen_address(),
    )


def gen_polc():
    return PoLC(lock_round=u64(), lock_votes=gen_aggregated_vote(1))


def gen_signed_proposal(content, lock):
    return SignedProposal(
        signature=gen_signature(),
        proposal=Proposal(
            height=u64(),
            round=u64(),
            content=content,
            block_hash=gen_hash(),
            lock=lock,
            proposer=gen_address(),
        ),
    )


def gen_signed_vote(vote_type):
    return SignedVote(
        signature=gen_signature(),
        vote=Vote(height=u64(), round=u64(), vote_type=VoteType(vote_type), block_hash=gen_hash()),
        voter=gen_address(),
    )


def gen_commit(content):
    proof = Proof(height=u64(), round=u64(), block_hash=gen_hash(), signature=gen_aggr_signature())
    return Commit(height=u64(), content=content, proof=proof)


def gen_status(interval, is_update_config):
    config = DurationConfig(u64(), u64(), u64(), u64()) if is_update_config else None
    return Status(
        height=u64(),
        interval=interval,
        timer_config=config,
        authority_list=[Node(gen_address())],
    )


@pytest.mark.parametrize("with_lock", [True, False])
def test_signed_proposal(with_lock):
    signed = gen_signed_proposal(gen_pill(), gen_polc() if with_lock else None)
    assert decode(SignedProposal, encode(signed), Pill) == signed


@pytest.mark.parametrize("vote_type", [1, 2])
def test_signed_vote(vote_type):
    signed = gen_signed_vote(vote_type)
    assert decode(SignedVote, encode(signed)) == signed


@pytest.mark.parametrize("vote_type", [1, 2])
def test_aggregated_vote(vote_type):
    vote = gen_aggregated_vote(vote_type)
    assert decode(AggregatedVote, encode(vote)) == vote


def test_commit():
    commit = gen_commit(gen_pill())
    assert decode(Commit, encode(commit), Pill) == commit


@pytest.mark.parametrize("interval, update_config", [(None, True), (3000, False)])
def test_status(interval, update_config):
    status = gen_status(interval, update_config)
    assert decode(Status, encode(status)) == status


def test_status_zero_interval_and_default_config_read_as_none():
    status = Status(height=5, interval=0, timer_config=DurationConfig(), authority_list=[])
    decoded = decode(Status, encode(status))
    assert decoded.interval is None
    assert decoded.timer_config is None
    assert decoded.height == 5


def test_node_round_trip_keeps_weights():
    node = Node(gen_address(), propose_weight=3, vote_weight=7)
    assert decode(Node, encode(node)) == node


def test_node_weight_too_big_is_rejected():
    wire = rlp.encode([gen_address(), rlp.encode_uint(2**32), rlp.encode_uint(1)])
    with pytest.raises(RlpError):
        decode(Node, wire)


def test_invalid_vote_type():
    wire = rlp.encode([rlp.encode_uint(1), rlp.encode_uint(2), rlp.encode_uint(3), gen_hash()])
    with pytest.raises(RlpError, match="Invalid vote type"):
        decode(Vote, wire)


def test_wrong_list_length_is_rejected():
    vote = gen_signed_vote(1).vote
    with pytest.raises(RlpError):
        decode(SignedVote, encode(vote))


def test_data_where_list_expected_is_rejected():
    with pytest.raises(RlpError):
        decode(Vote, rlp.encode(b"not a list"))


def test_optional_lock_with_two_items_is_rejected():
    proposal = gen_signed_proposal(gen_pill(), gen_polc()).proposal
    item = rlp.decode(encode(proposal))
    item[3] = [item[3][0], item[3][0]]
    with pytest.raises(RlpError):
        decode(Proposal, rlp.encode(item), Pill)


def test_codec_failure_is_reported():
    commit = gen_commit(gen_pill())
    with pytest.raises(RlpError, match="Codec decode error"):
        decode(Commit, encode(commit), RejectingCodec)


def test_content_type_is_required():
    commit = gen_commit(gen_pill())
    with pytest.raises(TypeError):
        decode(Commit, encode(commit))


def test_encode_rejects_unknown_object():
    with pytest.raises(TypeError):
        encode(object())


def test_height_too_big_is_rejected_on_encode():
    vote = Vote(height=2**64, round=0, vote_type=VoteType.PREVOTE, block_hash=b"h")
    with pytest.raises(RlpError):
        encode(vote)