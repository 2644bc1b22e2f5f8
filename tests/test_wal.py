import random
import struct

import pytest

from overlord import rlp
from overlord.config import Codec
from overlord.messages import AggregatedSignature, AggregatedVote, VoteType, decode, encode
from overlord.rlp import RlpError
from overlord.smr_types import Step
from overlord.wal import (
    AggregatedChoke,
    Choke,
    HashChoke,
    SignedChoke,
    UpdateFrom,
    UpdateKind,
    WalInfo,
    WalLock,
)

RNG = random.Random(20240607)


def u64():
    return RNG.getrandbits(64)


def rand_bytes(n):
    return bytes(RNG.getrandbits(8) for _ in range(n))


class Pill(Codec):
    def __init__(self, height, epoch):
        self.height = height
        self.epoch = list(epoch)

    def __eq__(self, other):
        return isinstance(other, Pill) and (self.height, self.epoch) == (other.height, other.epoch)

    def __hash__(self):
        return hash((self.height, tuple(self.epoch)))

    def encode(self):
        return struct.pack(f">Q{len(self.epoch)}Q", self.height, *self.epoch)

    @classmethod
    def decode(cls, data):
        values = struct.unpack(f">{len(data) // 8}Q", data)
        return cls(values[0], values[1:])

    @classmethod
    def new(cls):
        return cls(u64(), [u64() for _ in range(128)])


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


def gen_aggregated_choke():
    return AggregatedChoke(u64(), u64(), gen_signature(), [gen_address(), gen_address()])


def gen_signed_choke(from_):
    return SignedChoke(gen_signature(), Choke(u64(), u64(), from_), gen_address())


def gen_wal_info(content):
    lock = None
    if content is not None:
        lock = WalLock(u64(), gen_aggregated_vote(1), content)
    return WalInfo(
        height=u64(),
        round=u64(),
        step=Step.PRECOMMIT,
        lock=lock,
        from_=UpdateFrom(UpdateKind.CHOKE_QC, gen_aggregated_choke()),
    )


def test_aggregated_choke_round_trip():
    choke = gen_aggregated_choke()
    assert decode(AggregatedChoke, encode(choke)) == choke


def test_aggregated_choke_without_voters():
    choke = AggregatedChoke(3, 4, b"sig", [])
    assert decode(AggregatedChoke, encode(choke)) == choke


@pytest.mark.parametrize(
    "from_factory",
    [
        lambda: UpdateFrom(UpdateKind.PREVOTE_QC, gen_aggregated_vote(1)),
        lambda: UpdateFrom(UpdateKind.PRECOMMIT_QC, gen_aggregated_vote(2)),
        lambda: UpdateFrom(UpdateKind.CHOKE_QC, gen_aggregated_choke()),
    ],
)
def test_signed_choke_round_trip(from_factory):
    signed = gen_signed_choke(from_factory())
    assert decode(SignedChoke, encode(signed)) == signed


def test_wal_info_with_lock_round_trip():
    info = gen_wal_info(Pill.new())
    assert decode(WalInfo, encode(info), Pill) == info


def test_wal_info_without_lock_round_trip():
    info = gen_wal_info(None)
    assert decode(WalInfo, encode(info), Pill) == info
    assert decode(WalInfo, encode(info)).lock is None


def test_wal_info_with_lock_needs_content_type():
    info = gen_wal_info(Pill.new())
    with pytest.raises(TypeError):
        decode(WalInfo, encode(info))


def test_hash_choke_encoding():
    assert encode(HashChoke(1, 2)) == bytes([0xC2, 0x01, 0x02])


def test_hash_choke_cannot_be_decoded():
    with pytest.raises(TypeError):
        decode(HashChoke, bytes([0xC2, 0x01, 0x02]))


def test_update_from_tag_on_the_wire():
    update = UpdateFrom(UpdateKind.PREVOTE_QC, gen_aggregated_vote(1))
    items = rlp.decode(encode(update))
    assert items[0] == b""
    choke = UpdateFrom(UpdateKind.CHOKE_QC, gen_aggregated_choke())
    assert rlp.decode(encode(choke))[0] == b"\x02"


def test_update_from_rejects_mismatched_certificate():
    with pytest.raises(ValueError):
        UpdateFrom(UpdateKind.CHOKE_QC, gen_aggregated_vote(1))
    with pytest.raises(ValueError):
        UpdateFrom(UpdateKind.PREVOTE_QC, gen_aggregated_choke())


def test_update_from_invalid_tag():
    qc = gen_aggregated_choke()
    data = rlp.encode([b"\x07", qc._rlp_item()])
    with pytest.raises(RlpError):
        decode(UpdateFrom, data)


def test_wal_info_invalid_step():
    info = gen_wal_info(None)
    item = info._rlp_item()
    item[2] = b"\x09"
    with pytest.raises(RlpError):
        decode(WalInfo, rlp.encode(item))


def test_choke_wrong_length():
    with pytest.raises(RlpError):
        decode(Choke, rlp.encode([b"\x01", b"\x02"]))


def test_wal_info_step_encoded_as_byte():
    info = gen_wal_info(None)
    assert rlp.decode(encode(info))[2] == b"\x02"