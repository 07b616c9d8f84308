from __future__ import annotations

from enum import IntEnum

from src.core.exceptions import UnknownLedgerStatus


class DelegationStatus(IntEnum):
    """Status codes as stored by the DataSharing contract."""

    NONE = 0
    REJECTED = 1
    APPROVED = 2
    PENDING = 3


class DecisionOutcome(IntEnum):
    REJECTED = 0
    APPROVED = 1

    @classmethod
    def from_bool(cls, approve: bool) -> "DecisionOutcome":
        return cls.APPROVED if approve else cls.REJECTED

    @property
    def status(self) -> DelegationStatus:
        return DelegationStatus.APPROVED if self is DecisionOutcome.APPROVED else DelegationStatus.REJECTED


def _as_int(value) -> int:
    # uint8 comes back as int; bool is an int subclass but never a valid code
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnknownLedgerStatus(value)
    return value


def decode_status(value) -> DelegationStatus:
    code = _as_int(value)
    try:
        return DelegationStatus(code)
    except ValueError:
        raise UnknownLedgerStatus(value) from None


def decode_decision(value) -> DecisionOutcome:
    code = _as_int(value)
    try:
        return DecisionOutcome(code)
    except ValueError:
        raise UnknownLedgerStatus(value) from None
