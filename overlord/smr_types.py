"""Steps, events and triggers of the consensus state machine."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

from .config import DurationConfig


class Step(enum.IntEnum):
    """Steps of a round, ordered. COMMIT is the initial step of a replica."""

    PROPOSE = 0
    PREVOTE = 1
    PRECOMMIT = 2
    BRAKE = 3
    COMMIT = 4

    def __str__(self) -> str:
        return _STEP_NAMES[self]


_STEP_NAMES = {
    Step.PROPOSE: "Prepose step",
    Step.PREVOTE: "Prevote step",
    Step.PRECOMMIT: "Precommit step",
    Step.BRAKE: "Brake step",
    Step.COMMIT: "Commit step",
}


class QCKind(enum.Enum):
    """Kind of quorum certificate that moved a replica to a new round."""

    PREVOTE = "PrevoteQC"
    PRECOMMIT = "PrecommitQC"
    CHOKE = "ChokeQC"


@dataclass(frozen=True)
class ViewChangeReason:
    """A view change caused by a higher quorum certificate."""

    kind: QCKind
    old_round: int
    new_round: int

    def __str__(self) -> str:
        return (
            f"Update from higher {self.kind.value}, "
            f"from round {self.old_round} to {self.new_round}"
        )


@dataclass(frozen=True)
class FromWhere:
    """The quorum certificate and its round that started a new round."""

    kind: QCKind
    round: int

    def to_reason(self, old_round: int) -> ViewChangeReason:
        """Describe the view change from old_round that this certificate caused."""
        return ViewChangeReason(self.kind, old_round, self.round)


def _opt(value: object) -> str:
    return "None" if value is None else f"Some({value})"


def _opt_hash(value: Optional[bytes]) -> str:
    return "None" if value is None else f'Some("{value.hex()}")'


@dataclass(frozen=True)
class NewRoundInfo:
    """Start a new round; at round 0 the timer also sets the height timer."""

    height: int
    round: int
    lock_round: Optional[int]
    lock_proposal: Optional[bytes]
    from_where: FromWhere
    new_interval: Optional[int] = None
    new_config: Optional[DurationConfig] = None

    def __str__(self) -> str:
        return (
            f"New round {self.round} event, lock round {_opt(self.lock_round)}, "
            f"lock proposal {_opt_hash(self.lock_proposal)}"
        )


@dataclass(frozen=True)
class PrevoteVote:
    """Send a prevote and set the prevote timer."""

    height: int
    round: int
    block_hash: bytes
    lock_round: Optional[int]

    def __str__(self) -> str:
        return (
            f"Prevote event height {self.height}, round {self.round}, "
            f'block hash "{self.block_hash.hex()}", lock round {_opt(self.lock_round)}'
        )


@dataclass(frozen=True)
class PrecommitVote:
    """Send a precommit and set the precommit timer."""

    height: int
    round: int
    block_hash: bytes
    lock_round: Optional[int]

    def __str__(self) -> str:
        return (
            f"Precommit event height {self.height}, round {self.round}, "
            f'block hash "{self.block_hash.hex()}", lock round {_opt(self.lock_round)}'
        )


@dataclass(frozen=True)
class CommitEvent:
    """Commit the block with the given hash."""

    block_hash: bytes

    def __str__(self) -> str:
        return f'Commit event hash "{self.block_hash.hex()}"'


@dataclass(frozen=True)
class BrakeEvent:
    """Broadcast a choke and set the retry timer."""

    height: int
    round: int
    lock_round: Optional[int]

    def __str__(self) -> str:
        return (
            f"Brake event height {self.height}, round {self.round}, "
            f"lock round {_opt(self.lock_round)}"
        )


@dataclass(frozen=True)
class StopEvent:
    """Stop processing."""

    def __str__(self) -> str:
        return "Stop event"


SMREvent = Union[NewRoundInfo, PrevoteVote, PrecommitVote, CommitEvent, BrakeEvent, StopEvent]


class TriggerType(enum.Enum):
    """What touched off the state machine."""

    PROPOSAL = "Proposal"
    PREVOTE_QC = "PrevoteQC"
    PRECOMMIT_QC = "PrecommitQC"
    NEW_HEIGHT = "New height"
    WAL_INFO = "Wal Infomation"
    BRAKE_TIMEOUT = "Brake Timeout"
    CONTINUE_ROUND = "Continue Round"
    STOP = "Stop Process"

    def __str__(self) -> str:
        return self.value

    def to_byte(self) -> int:
        """Wire value of a proposal or QC trigger; other kinds have none."""
        try:
            return _TRIGGER_BYTES[self]
        except KeyError:
            raise ValueError(f"trigger type {self} has no byte form") from None


_TRIGGER_BYTES = {
    TriggerType.PROPOSAL: 0,
    TriggerType.PREVOTE_QC: 1,
    TriggerType.PRECOMMIT_QC: 2,
}
_BYTE_TRIGGERS = {value: kind for kind, value in _TRIGGER_BYTES.items()}


def trigger_type_from_byte(value: int) -> TriggerType:
    """Return the trigger type with the given wire value."""
    try:
        return _BYTE_TRIGGERS[value]
    except KeyError:
        raise ValueError(f"Invalid trigger type: {value}") from None


class TriggerSource(enum.IntEnum):
    """Who sent a trigger."""

    STATE = 0
    TIMER = 1

    def __str__(self) -> str:
        return "State" if self is TriggerSource.STATE else "Timer"


@dataclass(frozen=True)
class Lock:
    """A proof-of-lock: the locked round and block hash."""

    round: int
    hash: bytes


@dataclass(frozen=True)
class SMRStatus:
    """The status that starts a new height."""

    height: int
    new_interval: Optional[int] = None
    new_config: Optional[DurationConfig] = None


@dataclass(frozen=True)
class SMRBase:
    """State machine position restored from the write-ahead log."""

    height: int
    round: int
    step: Step
    polc: Optional[Lock] = None


@dataclass(frozen=True)
class SMRTrigger:
    """A trigger for the state machine.

    For proposals, hash is the proposal hash and lock_round an optional lock
    round; for QCs, hash is the QC block hash; for a new height, status holds
    the new status; for log recovery, wal_info holds the restored position.
    """

    trigger_type: TriggerType
    source: TriggerSource
    hash: bytes
    round: int
    height: int
    lock_round: Optional[int] = None
    wal_info: Optional[SMRBase] = None
    status: Optional[SMRStatus] = None

    def __post_init__(self) -> None:
        if self.trigger_type is TriggerType.NEW_HEIGHT and self.status is None:
            raise ValueError("a new height trigger needs a status")
        if self.trigger_type is TriggerType.WAL_INFO and self.wal_info is None:
            raise ValueError("a wal trigger needs wal information")

    def __str__(self) -> str:
        return f"{self.trigger_type} trigger from {self.source}, height {self.height}"