"""The consensus state machine and the channels around it."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Generic, Optional, TypeVar

from .config import INIT_HEIGHT, INIT_ROUND
from .errors import (
    ChannelError,
    ConsensusError,
    CorrectnessError,
    OtherError,
    ProposalError,
    ThrowEventError,
    TriggerSMRError,
)
from .smr_types import (
    BrakeEvent,
    CommitEvent,
    FromWhere,
    Lock,
    NewRoundInfo,
    PrecommitVote,
    PrevoteVote,
    QCKind,
    SMRBase,
    SMREvent,
    SMRStatus,
    SMRTrigger,
    Step,
    StopEvent,
    TriggerSource,
    TriggerType,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

U64_MAX = 2**64 - 1
_EMPTY_HASH = b""
_END = object()


class EventStream(Generic[T]):
    """An unbounded channel: put without waiting, get asynchronously."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._drained = False

    @property
    def closed(self) -> bool:
        """Whether the stream no longer accepts items."""
        return self._closed

    def put(self, event: T) -> None:
        """Queue an item, raising ChannelError once the stream is closed."""
        if self._closed:
            raise ChannelError("stream closed")
        self._queue.put_nowait(event)

    async def get(self) -> Optional[T]:
        """Return the next item, or None once the stream is closed and empty."""
        if self._drained:
            return None
        item = await self._queue.get()
        if item is _END:
            self._drained = True
            return None
        return item

    def close(self) -> None:
        """Stop accepting items; pending items can still be read."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_END)

    def __len__(self) -> int:
        pending = self._queue.qsize()
        if self._closed and not self._drained:
            pending -= 1
        return pending

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


class StateMachine:
    """The smallest atomic state machine of the protocol.

    Every event is thrown to two streams: one for the state process and one
    for the timer.
    """

    def __init__(self) -> None:
        self.height = INIT_HEIGHT
        self.round = INIT_ROUND
        self.step = Step.COMMIT
        self.block_hash = _EMPTY_HASH
        self.lock: Optional[Lock] = None
        self.state_events: EventStream[SMREvent] = EventStream()
        self.timer_events: EventStream[SMREvent] = EventStream()

    def __str__(self) -> str:
        return f"State machine height {self.height}, round {self.round}, step {self.step!r}"

    def handle(self, trigger: SMRTrigger) -> None:
        """Process one trigger, raising ConsensusError when it is rejected."""
        kind = trigger.trigger_type
        if kind is TriggerType.NEW_HEIGHT:
            self._handle_new_height(trigger.status, trigger.source)
        elif kind is TriggerType.PROPOSAL:
            self._handle_proposal(
                trigger.hash, trigger.round, trigger.lock_round, trigger.source, trigger.height
            )
        elif kind is TriggerType.PREVOTE_QC:
            self._handle_prevote(trigger.hash, trigger.round, trigger.source, trigger.height)
        elif kind is TriggerType.PRECOMMIT_QC:
            self._handle_precommit(trigger.hash, trigger.round, trigger.source, trigger.height)
        elif kind is TriggerType.BRAKE_TIMEOUT:
            if trigger.source is not TriggerSource.TIMER:
                raise ValueError("a brake timeout must come from the timer")
            self._handle_brake_timeout(trigger.height, trigger.round)
        elif kind is TriggerType.CONTINUE_ROUND:
            if trigger.source is not TriggerSource.STATE:
                raise ValueError("a continue round trigger must come from the state")
            self._handle_continue_round(trigger.height, trigger.round)
        elif kind is TriggerType.WAL_INFO:
            self._handle_wal(trigger.wal_info)
        elif kind is TriggerType.STOP:
            try:
                self._throw_event(StopEvent())
            except ThrowEventError:
                pass

    def _lock_parts(self) -> tuple[Optional[int], Optional[bytes]]:
        if self.lock is None:
            return None, None
        return self.lock.round, self.lock.hash

    def _lock_round(self) -> Optional[int]:
        return None if self.lock is None else self.lock.round

    def _handle_brake_timeout(self, height: int, round: int) -> None:
        if height != self.height or round != self.round:
            return
        logger.debug("Overlord: SMR brake timeout height %s, round %s", self.height, round)
        self._throw_event(BrakeEvent(height=height, round=round, lock_round=self._lock_round()))

    def _handle_continue_round(self, height: int, round: int) -> None:
        if height != self.height or round <= self.round:
            return
        logger.debug("Overlord: SMR continue round %s", round)
        self.round = round - 1
        lock_round, lock_proposal = self._lock_parts()
        self._throw_event(
            NewRoundInfo(
                height=self.height,
                round=self.round + 1,
                lock_round=lock_round,
                lock_proposal=lock_proposal,
                from_where=FromWhere(QCKind.CHOKE, round - 1),
            )
        )
        self._goto_next_round()

    def _handle_wal(self, info: SMRBase) -> None:
        self.height = info.height
        self.round = info.round
        self.step = info.step
        if info.polc is not None:
            self.block_hash = info.polc.hash
        self.lock = info.polc
        self._set_timer_after_wal()

    def _handle_new_height(self, status: SMRStatus, source: TriggerSource) -> None:
        logger.debug("Overlord: SMR triggered by new height %s", status.height)
        if source is not TriggerSource.STATE:
            raise OtherError("Rich status source error")
        if status.height <= self.height:
            raise OtherError("Delayed status")

        self._goto_new_height(status.height)
        self._throw_event(
            NewRoundInfo(
                height=self.height,
                round=INIT_ROUND,
                lock_round=None,
                lock_proposal=None,
                from_where=FromWhere(QCKind.PRECOMMIT, U64_MAX),
                new_interval=status.new_interval,
                new_config=status.new_config,
            )
        )

    def _handle_proposal(
        self,
        proposal_hash: bytes,
        round: int,
        lock_round: Optional[int],
        source: TriggerSource,
        height: int,
    ) -> None:
        if self.height != height or self.round != round:
            return
        if self.step > Step.PROPOSE:
            return

        logger.debug(
            "Overlord: SMR triggered by a proposal hash %s, from %s, height %s, round %s",
            proposal_hash.hex(), source, self.height, self.round,
        )

        if source is TriggerSource.TIMER:
            if self.lock is not None:
                timer_round, timer_hash = self.lock.round, self.lock.hash
            else:
                timer_round, timer_hash = None, _EMPTY_HASH
            self._throw_event(
                PrevoteVote(
                    height=self.height,
                    round=self.round,
                    block_hash=timer_hash,
                    lock_round=timer_round,
                )
            )
            self._goto_step(Step.PREVOTE)
            return
        if not proposal_hash:
            raise ProposalError("Empty proposal")

        if lock_round is not None:
            if self.lock is not None:
                logger.debug("Overlord: SMR handle proposal with a lock")
                if lock_round > self.lock.round:
                    self.lock = None
                    self.block_hash = proposal_hash
                elif lock_round == self.lock.round and proposal_hash != self.block_hash:
                    raise CorrectnessError("Fork")
            else:
                self.block_hash = proposal_hash
        elif self.lock is None:
            self.block_hash = proposal_hash

        self._throw_event(
            PrevoteVote(
                height=self.height,
                round=self.round,
                block_hash=self.block_hash,
                lock_round=self._lock_round(),
            )
        )
        self._goto_step(Step.PREVOTE)

    def _handle_prevote(
        self, prevote_hash: bytes, prevote_round: int, source: TriggerSource, height: int
    ) -> None:
        if self.height != height:
            return
        if prevote_round == self.round and self.step > Step.PREVOTE:
            return

        logger.debug(
            "Overlord: SMR triggered by prevote QC hash %s qc round %s from %s, height %s, round %s",
            prevote_hash.hex(), prevote_round, source, self.height, self.round,
        )

        # A prevote timeout cannot unlock; only QCs from the state update the PoLC.
        if source is TriggerSource.TIMER:
            if prevote_round != self.round:
                return
            if self.lock is None:
                self.block_hash = _EMPTY_HASH
            self._throw_event(
                PrecommitVote(
                    height=self.height,
                    round=self.round,
                    block_hash=_EMPTY_HASH,
                    lock_round=self._lock_round(),
                )
            )
            self._goto_step(Step.PRECOMMIT)
            return

        if prevote_round < self.round:
            return

        self._update_polc(prevote_hash, prevote_round)

        if prevote_round > self.round:
            lock_round, lock_proposal = self._lock_parts()
            self.round = prevote_round
            self._throw_event(
                NewRoundInfo(
                    height=self.height,
                    round=self.round + 1,
                    lock_round=lock_round,
                    lock_proposal=lock_proposal,
                    from_where=FromWhere(QCKind.PREVOTE, prevote_round),
                )
            )
            self._goto_next_round()

        self._throw_event(
            PrecommitVote(
                height=self.height,
                round=self.round,
                block_hash=self.block_hash,
                lock_round=self._lock_round(),
            )
        )
        self._goto_step(Step.PRECOMMIT)

    def _handle_precommit(
        self, precommit_hash: bytes, precommit_round: int, source: TriggerSource, height: int
    ) -> None:
        if self.height != height:
            return
        if self.step is Step.COMMIT:
            return

        logger.debug(
            "Overlord: SMR triggered by precommit QC hash %s qc round %s from %s, height %s, round %s",
            precommit_hash.hex(), precommit_round, source, self.height, self.round,
        )

        lock_round, lock_proposal = self._lock_parts()

        if source is TriggerSource.TIMER:
            if precommit_round != self.round:
                return
            logger.debug(
                "Overlord: SMR goto brake step, height %s, round %s", self.height, self.round
            )
            self._goto_step(Step.BRAKE)
            self._throw_event(
                BrakeEvent(height=self.height, round=self.round, lock_round=lock_round)
            )
            return

        if not precommit_hash:
            if precommit_round < self.round:
                return
            self.round = precommit_round
            self._throw_event(
                NewRoundInfo(
                    height=self.height,
                    round=self.round + 1,
                    lock_round=lock_round,
                    lock_proposal=lock_proposal,
                    from_where=FromWhere(QCKind.PRECOMMIT, precommit_round),
                )
            )
            self._goto_next_round()
            return

        self._throw_event(CommitEvent(precommit_hash))
        self._goto_step(Step.COMMIT)

    def _throw_event(self, event: SMREvent) -> None:
        logger.debug("Overlord: SMR throw %s event", event)
        for stream in (self.state_events, self.timer_events):
            self._send(stream, event)

    def _throw_timer_event(self, event: SMREvent) -> None:
        self._send(self.timer_events, event)

    @staticmethod
    def _send(stream: EventStream, event: SMREvent) -> None:
        try:
            stream.put(event)
        except ChannelError as err:
            raise ThrowEventError(f"event: {event}, error: {err}") from err

    def _goto_new_height(self, height: int) -> None:
        logger.debug("Overlord: SMR goto new height: %s", height)
        self.height = height
        self.round = INIT_ROUND
        self._goto_step(Step.PROPOSE)
        self.block_hash = _EMPTY_HASH
        self.lock = None

    def _goto_next_round(self) -> None:
        logger.debug("Overlord: SMR goto next round %s", self.round + 1)
        self.round += 1
        self._goto_step(Step.PROPOSE)

    def _set_timer_after_wal(self) -> None:
        lock_round, lock_proposal = self._lock_parts()
        if self.step is Step.PROPOSE:
            event: SMREvent = NewRoundInfo(
                height=self.height,
                round=self.round,
                lock_round=lock_round,
                lock_proposal=lock_proposal,
                from_where=FromWhere(QCKind.PRECOMMIT, U64_MAX),
            )
        elif self.step is Step.PREVOTE:
            event = PrevoteVote(
                height=self.height, round=self.round, block_hash=_EMPTY_HASH, lock_round=lock_round
            )
        elif self.step is Step.PRECOMMIT:
            event = PrecommitVote(
                height=self.height, round=self.round, block_hash=_EMPTY_HASH, lock_round=lock_round
            )
        elif self.step is Step.BRAKE:
            event = BrakeEvent(height=self.height, round=self.round, lock_round=lock_round)
        else:
            raise ValueError(f"cannot restore the state machine at {self.step}")
        self._throw_timer_event(event)

    def _goto_step(self, step: Step) -> None:
        logger.debug("Overlord: SMR goto step %r", step)
        self.step = step

    def _update_polc(self, block_hash: bytes, round: int) -> None:
        logger.debug("Overlord: SMR update PoLC at round %s", round)
        self.block_hash = block_hash
        self.lock = Lock(round, block_hash) if block_hash else None


class SMRHandler:
    """Sends triggers to a running state machine."""

    def __init__(self, triggers: EventStream[SMRTrigger]) -> None:
        self._triggers = triggers

    def trigger(self, trigger: SMRTrigger) -> None:
        """Send a trigger, raising TriggerSMRError if the channel is closed."""
        try:
            self._triggers.put(trigger)
        except ChannelError as err:
            raise TriggerSMRError(str(trigger.trigger_type)) from err

    def new_height_status(self, status: SMRStatus) -> None:
        """Send the state machine to a new height."""
        self.trigger(
            SMRTrigger(
                trigger_type=TriggerType.NEW_HEIGHT,
                source=TriggerSource.STATE,
                hash=_EMPTY_HASH,
                round=INIT_ROUND,
                height=status.height,
                status=status,
            )
        )

    def close(self) -> None:
        """Close the trigger channel."""
        self._triggers.close()


class SMR:
    """Owns a state machine and feeds it triggers from its handler."""

    def __init__(self) -> None:
        self._triggers: EventStream[SMRTrigger] = EventStream()
        self._handler: Optional[SMRHandler] = SMRHandler(self._triggers)
        self.state_machine = StateMachine()
        self.state_events = self.state_machine.state_events
        self.timer_events = self.state_machine.timer_events

    def take_handler(self) -> SMRHandler:
        """Return the handler; it can be taken only once."""
        if self._handler is None:
            raise RuntimeError("the SMR handler has already been taken")
        handler, self._handler = self._handler, None
        return handler

    async def run(self) -> None:
        """Process triggers until a stop trigger or the channel closes."""
        while True:
            trigger = await self._triggers.get()
            if trigger is None:
                logger.error(
                    "Overlord: SMR error %s", TriggerSMRError("Channel dropped")
                )
                break
            try:
                self.state_machine.handle(trigger)
            except ConsensusError as err:
                logger.error("Overlord: SMR error %s", err)
            if trigger.trigger_type is TriggerType.STOP:
                break