from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from src.core.exceptions import ConfigurationError
from src.crypto.keys import is_address
from .encoding import load_abi


@dataclass(frozen=True)
class LedgerConfig:
    """
    Everything the gateway needs to reach the contract. Built once at
    startup and shared read-only.
    """

    rpc_url: str
    contract_address: str
    signer_key: str = field(repr=False)
    onchain_url: str = ""
    abi: tuple[dict[str, Any], ...] = field(default_factory=load_abi, repr=False, compare=False)
    rpc_timeout: float = 10.0
    tx_timeout: float = 120.0
    poll_latency: float = 1.0
    domain_name: str = "DataSharing"
    domain_version: str = "1"

    def __post_init__(self):
        if not is_address(self.contract_address):
            raise ConfigurationError(
                "LEDGER_CONTRACT_ADDRESS is not a valid address",
                extra={"contract_address": self.contract_address},
            )

    @classmethod
    def from_settings(cls) -> "LedgerConfig":
        required = ("LEDGER_RPC_URL", "LEDGER_CONTRACT_ADDRESS", "LEDGER_SIGNER_KEY")
        missing = [name for name in required if not getattr(settings, name, "")]
        if missing:
            raise ConfigurationError(
                f"Missing ledger settings: {', '.join(missing)}", extra={"missing": missing}
            )
        return cls(
            rpc_url=settings.LEDGER_RPC_URL,
            contract_address=settings.LEDGER_CONTRACT_ADDRESS,
            signer_key=settings.LEDGER_SIGNER_KEY,
            onchain_url=getattr(settings, "LEDGER_ONCHAIN_URL", ""),
            abi=load_abi(getattr(settings, "LEDGER_ABI_PATH", "") or None),
            rpc_timeout=float(getattr(settings, "LEDGER_RPC_TIMEOUT", 10.0)),
            tx_timeout=float(getattr(settings, "LEDGER_TX_TIMEOUT", 120.0)),
            poll_latency=float(getattr(settings, "LEDGER_POLL_LATENCY", 1.0)),
        )
