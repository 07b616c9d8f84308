from typing import Any

from pydantic import BaseModel, Field

from src.ledger.schemas import AccessLogEntry


class RegistrationResult(BaseModel):
    wallet_address: str
    tx_hash: str
    onchain_url: str
    events: list[dict[str, Any]] = Field(default_factory=list)


class TxResult(BaseModel):
    tx_hash: str
    onchain_url: str
    events: list[dict[str, Any]] = Field(default_factory=list)


class DelegationRequestResult(TxResult):
    status: str = "PENDING"


class DelegationDecisionResult(TxResult):
    status: str


class DelegationStatusResult(BaseModel):
    status: str


class AccessLog(BaseModel):
    """
    has_activity=False is the normalized "no activity" answer: the ledger
    returned nothing or empty arrays for this subject.
    """

    has_activity: bool
    entries: list[AccessLogEntry] = Field(default_factory=list)

    @classmethod
    def no_activity(cls) -> "AccessLog":
        return cls(has_activity=False, entries=[])
