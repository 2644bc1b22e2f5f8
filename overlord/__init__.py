"""Overlord BFT consensus building blocks: round state machine, message types, WAL record and RLP codec."""

__version__ = "0.4.2"

__all__ = [
    "config",
    "errors",
    "hexcodec",
    "messages",
    "rlp",
    "smr_types",
    "state_machine",
    "wal",
]