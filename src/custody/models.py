from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from src.core.types import IdentityClass


@dataclass(frozen=True)
class CustodyRecord:
    """
    Sealed private key of a generated identity, as held in the secret store.
    """

    address: str
    identity_class: IdentityClass
    sealed_private_key: str
    created_at: datetime | None

    def __repr__(self) -> str:
        return f"CustodyRecord(address={self.address!r}, identity_class={self.identity_class.value})"

    def to_secret(self) -> dict:
        return {
            "private_key": self.sealed_private_key,
            "address": self.address,
            "type": self.identity_class.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_secret(cls, data: dict) -> "CustodyRecord":
        return cls(
            address=data["address"],
            identity_class=IdentityClass.parse(data["type"]),
            sealed_private_key=data["private_key"],
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
        )
