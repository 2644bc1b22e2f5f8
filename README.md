# overlord

Building blocks of the Overlord Byzantine-fault-tolerant consensus protocol:
the per-height round state machine, the consensus message types, the
write-ahead-log record and an RLP codec for all of them.

## Modules

- `overlord.config`: `DurationConfig` (step timeouts as ratios of the height
  interval, in tenths) and the abstract interfaces an application implements:
  `Consensus`, `Crypto`, `Wal` and `Codec`. Also the constants `INIT_HEIGHT`
  and `INIT_ROUND`.
- `overlord.errors`: `ConsensusError` and its subclasses, such as
  `ProposalError`, `CorrectnessError`, `TriggerSMRError`, `ThrowEventError`,
  `RoundDiffError`, `SaveWalError` and `OtherError`.
- `overlord.smr_types`: `Step`, `TriggerType`, `TriggerSource`, `SMRTrigger`,
  `SMRStatus`, `SMRBase`, `Lock`, `FromWhere`, `QCKind`, `ViewChangeReason`
  and the events `NewRoundInfo`, `PrevoteVote`, `PrecommitVote`,
  `CommitEvent`, `BrakeEvent` and `StopEvent`. `TriggerType.to_byte()` and
  `trigger_type_from_byte()` convert the proposal and QC trigger kinds to and
  from their byte values.
- `overlord.state_machine`:
  - `StateMachine`: processes one `SMRTrigger` at a time with `handle()`,
    raising a `ConsensusError` when a trigger is rejected, and puts every
    event on `state_events` and `timer_events`.
  - `EventStream`: an unbounded asyncio channel with `put()`, `get()`,
    `close()`, `len()` and `async for`.
  - `SMRHandler`: sends triggers (`trigger()`, `new_height_status()`) and
    closes the trigger channel (`close()`).
  - `SMR`: owns a state machine; `take_handler()` returns its handler once,
    and the coroutine `run()` feeds it triggers until a stop trigger arrives
    or the channel is closed, logging rejected triggers.
- `overlord.messages`: `Vote`, `SignedVote`, `AggregatedVote`,
  `AggregatedSignature`, `PoLC`, `Proposal`, `SignedProposal`, `Proof`,
  `Commit`, `Node`, `Status` and `VoteType`, with `encode(message)` and
  `decode(kind, data, content_type)`.
- `overlord.wal`: the write-ahead-log record `WalInfo` with `WalLock` and
  `UpdateFrom` / `UpdateKind`, and the choke messages `Choke`, `SignedChoke`,
  `AggregatedChoke` and `HashChoke` (encode only). They are encoded and
  decoded with `overlord.messages.encode` / `decode`.
- `overlord.rlp`: `encode`, `decode`, `encode_uint`, `decode_uint` and
  `RlpError`.
- `overlord.hexcodec`: `encode_hex`, `decode_hex`, and `encode_hex_list` /
  `decode_hex_list` for the `{"inner": [{"inner": "<hex>"}, ...]}` form.

## Install

```
pip install .
```

## Block content

Block content is any type that implements `Codec`:

```python
from dataclasses import dataclass
from overlord.config import Codec

@dataclass
class Block(Codec):
    inner: bytes

    def encode(self) -> bytes:
        return self.inner

    @classmethod
    def decode(cls, data: bytes) -> "Block":
        return cls(data)
```

## Encoding messages

```python
from overlord import messages

status = messages.Status(height=1, interval=3000,
                         authority_list=[messages.Node(b"\x01" * 20)])
data = messages.encode(status)
assert messages.decode(messages.Status, data) == status
```

On the wire a `Status` without an interval carries 0, and one without a timer
configuration carries the all-zero `DurationConfig`; both decode back to `None`.

Messages that carry a block (`Proposal`, `SignedProposal`, `Commit`,
`WalLock`, `WalInfo` with a lock) need the content class when decoding:

```python
messages.decode(messages.Commit, data, Block)
```

Malformed input raises `overlord.rlp.RlpError`.

## Driving the state machine

```python
import asyncio
from overlord.smr_types import SMRStatus
from overlord.state_machine import SMR

async def main():
    smr = SMR()
    handler = smr.take_handler()
    task = asyncio.create_task(smr.run())
    handler.new_height_status(SMRStatus(height=1))
    event = await smr.state_events.get()
    print(event)          # New round 0 event, lock round None, lock proposal None
    handler.close()
    await task

asyncio.run(main())
```

`StateMachine.handle()` can also be called directly, without the asyncio loop
around it, and the events read from its two streams.

## What the package does not do

The package holds the state machine and the data types, not a running
consensus node. There is no process that collects proposals and votes,
builds aggregated votes, checks signatures, saves the write-ahead log or
talks to other replicas, and no timer that turns `timer_events` into timeout
triggers. An application that wants a full node drives `SMRHandler` itself
and implements `Consensus`, `Crypto` and `Wal` for its own use.

## Tests

```
pip install .[test]
pytest
```