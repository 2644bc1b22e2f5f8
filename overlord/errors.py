"""Errors raised by the consensus engine."""

from __future__ import annotations


class ConsensusError(Exception):
    """Base class of every consensus error."""


class _DetailError(ConsensusError):
    """An error that carries a free-form detail string."""

    _template = "{}"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self._template.format(detail))


class InvalidAddressError(ConsensusError):
    """An address is not valid."""

    def __init__(self) -> None:
        super().__init__("Invalid address")


class ChannelError(_DetailError):
    """A message channel failed or is closed."""

    _template = 'Channel error "{}"'


class TriggerSMRError(_DetailError):
    """A trigger could not be delivered to the state machine."""

    _template = "Trigger {} SMR error"


class MonitorEventError(_DetailError):
    """An event stream could not be monitored."""

    _template = "Monitor {} event error"


class ThrowEventError(_DetailError):
    """An event could not be delivered to a listener."""

    _template = "Throw {} event error"


class ProposalError(_DetailError):
    """A proposal is invalid."""

    _template = "Proposal error {}"


class PrevoteError(_DetailError):
    """A prevote is invalid."""

    _template = "Prevote error {}"


class PrecommitError(_DetailError):
    """A precommit is invalid."""

    _template = "Precommit error {}"


class BrakeError(_DetailError):
    """The brake step failed."""

    _template = "Brake error {}"


class RoundDiffError(ConsensusError):
    """A vote belongs to a different round than the local one."""

    def __init__(self, local: int, vote: int) -> None:
        self.local = local
        self.vote = vote
        super().__init__(f"Self round is {local}, vote round is {vote}")


class SelfCheckError(_DetailError):
    """An internal consistency check failed."""

    _template = "Self check not pass {}"


class CorrectnessError(_DetailError):
    """A safety property of the protocol was violated."""

    _template = "Correctness error {}"


class TimerError(_DetailError):
    """The timer failed."""

    _template = "Timer error {}"


class StateError(_DetailError):
    """The state process failed."""

    _template = "State error {}"


class MultiProposalError(ConsensusError):
    """More than one proposal was seen for the same height and round."""

    def __init__(self, height: int, round: int) -> None:
        self.height = height
        self.round = round
        super().__init__(f"Multiple proposal in height {height}, round {round}")


class StorageError(_DetailError):
    """Storage failed."""

    _template = "Storage error {}"


class SaveWalError(ConsensusError):
    """The write-ahead log could not be saved."""

    def __init__(self, height: int, round: int, step: str) -> None:
        self.height = height
        self.round = round
        self.step = step
        super().__init__(f"Save Wal error {height}, {round}, {step} step")


class LoadWalError(_DetailError):
    """The write-ahead log could not be loaded."""

    _template = "Load Wal error {}"


class CryptoError(_DetailError):
    """A cryptographic operation failed."""

    _template = "Crypto error {}"


class AggregatedSignatureError(_DetailError):
    """An aggregated signature is invalid."""

    _template = "Aggregated signature error {}"


class OtherError(_DetailError):
    """Any other error."""

    _template = "Other error {}"