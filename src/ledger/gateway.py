from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable

import requests
import structlog
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted

from src.core.exceptions import (
    ApplicationError,
    LedgerInternalError,
    LedgerTxPending,
    LedgerUnavailable,
    PreconditionFailed,
)
from src.core.types import IdentityClass
from .client import ContractClient
from .config import LedgerConfig
from .encoding import ZERO_ADDRESS, encode_call, error_signatures, hash_identifier
from .schemas import (
    AccessLogEntry,
    CreditorMetadata,
    DelegationRequestMetadata,
    EntitlementPurchase,
    LedgerTx,
    SubjectHolderLink,
)
from .status import DecisionOutcome, DelegationStatus, decode_status

logger = structlog.get_logger(__name__)

UNAVAILABLE_ERRORS = (
    TimeExhausted,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)

_REGISTER = {
    IdentityClass.DEBTOR: "addDebtor(bytes32,address)",
    IdentityClass.CREDITOR: "addCreditor(bytes32,address)",
}
_REMOVE = {
    IdentityClass.DEBTOR: "removeDebtor(bytes32)",
    IdentityClass.CREDITOR: "removeCreditor(bytes32)",
}
_LOOKUP = {
    IdentityClass.DEBTOR: "getDebtor",
    IdentityClass.CREDITOR: "getCreditor",
}
ADD_CREDITOR_WITH_EVENT = "addCreditor(address,bytes32,string,string,string,string,string)"
REQUEST_DELEGATION = "requestDelegation(bytes32,bytes32,bytes32)"
REQUEST_DELEGATION_WITH_EVENT = "requestDelegation(bytes32,bytes32,bytes32,string,string,string,string)"
DECIDE_DELEGATION = "delegate(bytes32,bytes32,bytes32,uint8)"
PURCHASE_PACKAGE = "purchasePackage(string,string,string,uint256,uint256,string,string,uint256)"
ADD_DEBTOR_TO_CREDITOR = "addDebtorToCreditor(bytes32,bytes32,string,string,string,string,string,string)"


def revert_reason(exc: ContractLogicError, abi: Iterable[dict]) -> str:
    """
    Raw reason of a revert. Custom errors are rendered as their ABI
    signature (ex: "RequestNotPending()") when the selector is known.
    """
    data = getattr(exc, "data", None)
    if isinstance(data, str) and data.startswith("0x") and len(data) >= 10:
        known = error_signatures(abi)
        sig = known.get(bytes.fromhex(data[2:10]))
        if sig:
            return sig
    message = getattr(exc, "message", None) or str(exc)
    return message.removeprefix("execution reverted: ").strip()


class LedgerGateway:
    """
    Domain calls <-> DataSharing contract.

    Writes block until the receipt is mined and return a LedgerTx; reads are
    plain eth_call lookups. Every web3 failure leaves this class as
    PreconditionFailed, LedgerUnavailable or LedgerInternalError, except a
    submitted write whose receipt was not observed: LedgerTxPending.
    """

    def __init__(self, config: LedgerConfig, client: ContractClient | None = None):
        self.config = config
        self.client = client or ContractClient(config)

    @classmethod
    def from_settings(cls) -> "LedgerGateway":
        return cls(LedgerConfig.from_settings())

    def onchain_url(self, tx_hash: str) -> str:
        return f"{self.config.onchain_url}{tx_hash}"

    @contextmanager
    def _translate(self, operation: str, **ctx):
        extra = {"operation": operation, **ctx}
        try:
            yield
        except LedgerTxPending as e:
            e.extra = {**extra, **e.extra}
            raise
        except ApplicationError:
            raise
        except ContractLogicError as e:
            reason = revert_reason(e, self.config.abi)
            logger.warning("ledger.reverted", reason=reason, **extra)
            raise PreconditionFailed(
                f"Ledger rejected {operation}", reason=reason, extra=extra
            ) from e
        except UNAVAILABLE_ERRORS as e:
            logger.warning("ledger.unavailable", error=type(e).__name__, **extra)
            raise LedgerUnavailable(f"Ledger unavailable during {operation}", extra=extra) from e
        except Exception as e:
            logger.error("ledger.internal_error", error=type(e).__name__, **extra)
            raise LedgerInternalError(
                f"Unexpected ledger error during {operation}",
                extra={**extra, "error": type(e).__name__},
            ) from e

    def _submit(
        self,
        operation: str,
        function_call: bytes,
        *,
        account: LocalAccount | None = None,
        event: str | None = None,
        **ctx,
    ) -> LedgerTx:
        with self._translate(operation, **ctx):
            receipt = self.client.send_meta_transaction(function_call, account=account)
            tx_hash = Web3.to_hex(receipt["transactionHash"])
            if receipt.get("status", 1) == 0:
                logger.warning("ledger.tx_failed", tx_hash=tx_hash, operation=operation, **ctx)
                raise PreconditionFailed(
                    f"Ledger rejected {operation}",
                    reason="transaction reverted",
                    extra={"operation": operation, "tx_hash": tx_hash, **ctx},
                )
            events = self.client.decode_events(receipt, event) if event else []

        logger.info("ledger.tx_finalized", operation=operation, tx_hash=tx_hash, **ctx)
        return LedgerTx(
            tx_hash=tx_hash,
            onchain_url=self.onchain_url(tx_hash),
            block_number=receipt.get("blockNumber"),
            events=events,
        )

    # ------------------------------------------------------------------ writes

    def register_identity(
        self,
        external_id: str,
        address: str,
        identity_class: IdentityClass,
        metadata: CreditorMetadata | None = None,
    ) -> LedgerTx:
        id_hash = hash_identifier(external_id)
        if identity_class is IdentityClass.CREDITOR and metadata is not None:
            call = encode_call(
                ADD_CREDITOR_WITH_EVENT,
                [
                    address,
                    id_hash,
                    metadata.institution_code,
                    metadata.institution_name,
                    metadata.approval_date,
                    metadata.signer_name,
                    metadata.signer_position,
                ],
            )
            return self._submit(
                "register_identity", call, event="CreditorAdded", identity_class=identity_class.value
            )
        call = encode_call(_REGISTER[identity_class], [id_hash, address])
        return self._submit("register_identity", call, identity_class=identity_class.value)

    def remove_identity(self, external_id: str, identity_class: IdentityClass) -> LedgerTx:
        call = encode_call(_REMOVE[identity_class], [hash_identifier(external_id)])
        return self._submit("remove_identity", call, identity_class=identity_class.value)

    def request_delegation(
        self,
        subject_id: str,
        consumer_id: str,
        provider_id: str,
        metadata: DelegationRequestMetadata | None = None,
    ) -> LedgerTx:
        hashes = [hash_identifier(v) for v in (subject_id, consumer_id, provider_id)]
        if metadata is not None:
            call = encode_call(
                REQUEST_DELEGATION_WITH_EVENT,
                [
                    *hashes,
                    metadata.request_id,
                    metadata.transaction_id,
                    metadata.referenced_id,
                    metadata.request_date,
                ],
            )
            return self._submit("request_delegation", call, event="DelegationRequested")
        return self._submit("request_delegation", encode_call(REQUEST_DELEGATION, hashes))

    def decide_delegation(
        self,
        subject_id: str,
        consumer_id: str,
        provider_id: str,
        outcome: DecisionOutcome,
    ) -> LedgerTx:
        call = encode_call(
            DECIDE_DELEGATION,
            [
                hash_identifier(subject_id),
                hash_identifier(consumer_id),
                hash_identifier(provider_id),
                int(outcome),
            ],
        )
        return self._submit("decide_delegation", call, outcome=outcome.name)

    def purchase_entitlement(self, account: LocalAccount, purchase: EntitlementPurchase) -> LedgerTx:
        call = encode_call(
            PURCHASE_PACKAGE,
            [
                purchase.institution_code,
                purchase.purchase_date,
                purchase.invoice_number,
                purchase.package_id,
                purchase.quantity,
                purchase.start_date,
                purchase.end_date,
                purchase.quota,
            ],
        )
        return self._submit(
            "purchase_entitlement", call, account=account, identity_class=IdentityClass.CREDITOR.value
        )

    def link_subject_to_holder(self, subject_id: str, holder_code: str, link: SubjectHolderLink) -> LedgerTx:
        call = encode_call(
            ADD_DEBTOR_TO_CREDITOR,
            [
                hash_identifier(subject_id),
                hash_identifier(holder_code),
                link.debtor_name,
                link.creditor_name,
                link.application_date,
                link.approval_date,
                link.url_ktp,
                link.url_approval,
            ],
        )
        return self._submit("link_subject_to_holder", call, event="DebtorAddedToCreditor")

    # ------------------------------------------------------------------- reads

    def query_identity_address(self, external_id: str, identity_class: IdentityClass) -> str | None:
        with self._translate("query_identity_address", identity_class=identity_class.value):
            address = self.client.call(_LOOKUP[identity_class], hash_identifier(external_id))
        if not address or address == ZERO_ADDRESS:
            return None
        return address

    def query_delegation_status(self, subject_id: str, holder_id: str) -> DelegationStatus:
        with self._translate("query_delegation_status"):
            raw = self.client.call(
                "getStatusRequest", hash_identifier(subject_id), hash_identifier(holder_id)
            )
        return decode_status(raw)

    def query_access_log(self, subject_id: str) -> list[AccessLogEntry] | None:
        """
        None when the ledger returned no data at all, [] when either array
        is empty.
        """
        with self._translate("query_access_log"):
            raw = self.client.call("getDebtorDataActiveCreditors", hash_identifier(subject_id))
        if not raw:
            return None
        addresses, statuses = raw
        if not addresses or not statuses:
            return []
        if len(addresses) != len(statuses):
            raise LedgerInternalError(
                "Access log arrays have different lengths",
                extra={"operation": "query_access_log", "addresses": len(addresses), "statuses": len(statuses)},
            )
        return [
            AccessLogEntry(creditor_address=address, status=decode_status(code).name)
            for address, code in zip(addresses, statuses)
        ]

    def query_holders_by_status(self, subject_id: str, status: DelegationStatus) -> list[str]:
        with self._translate("query_holders_by_status", status=status.name):
            return list(
                self.client.call("getActiveCreditorsByStatus", hash_identifier(subject_id), int(status))
            )
