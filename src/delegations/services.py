from __future__ import annotations

from typing import Callable

import structlog
from django.conf import settings

from src.core.exceptions import LedgerTxPending, PreconditionFailed
from src.core.types import IdentityClass
from src.crypto import keys
from src.crypto.envelope import EnvelopeCipher
from src.custody.services import CustodyStore
from src.ledger.gateway import LedgerGateway
from src.ledger.schemas import (
    CreditorMetadata,
    DelegationRequestMetadata,
    EntitlementPurchase,
    SubjectHolderLink,
)
from src.ledger.status import DecisionOutcome, DelegationStatus
from . import selectors
from .schemas import (
    AccessLog,
    DelegationDecisionResult,
    DelegationRequestResult,
    RegistrationResult,
    TxResult,
)

logger = structlog.get_logger(__name__)


class DelegationOrchestrator:
    """
    Sequences key generation, ledger writes, sealing and custody for each
    operation. Holds no mutable state: the ledger is the system of record
    and every call reads it afresh.
    """

    def __init__(
        self,
        *,
        gateway: LedgerGateway,
        custody: CustodyStore,
        cipher: EnvelopeCipher,
        keygen: Callable[[], keys.KeyPair] = keys.generate,
    ):
        self.gateway = gateway
        self.custody = custody
        self.cipher = cipher
        self.keygen = keygen

    @classmethod
    def from_settings(cls) -> "DelegationOrchestrator":
        # cipher first: a bad CRYPTO_SECRET must fail before anything touches the network
        cipher = EnvelopeCipher(settings.CRYPTO_SECRET)
        return cls(
            gateway=LedgerGateway.from_settings(),
            custody=CustodyStore.from_settings(),
            cipher=cipher,
        )

    # ------------------------------------------------------------ identities

    def register_identity(
        self,
        external_id: str,
        identity_class: IdentityClass,
        metadata: CreditorMetadata | None = None,
    ) -> RegistrationResult:
        identity_class = IdentityClass.parse(identity_class)
        pair = self.keygen()

        try:
            tx = self.gateway.register_identity(external_id, pair.address, identity_class, metadata)
        except PreconditionFailed as e:
            raise PreconditionFailed(
                f"{identity_class.value.capitalize()} already registered.",
                reason=e.reason,
                extra=e.extra,
            ) from e
        except LedgerTxPending as e:
            # submitted and may still be mined: custody holds the key either way
            self.custody.store(pair.address, identity_class, self.cipher.seal(pair.private_key))
            e.extra = {**e.extra, "wallet_address": pair.address}
            logger.warning(
                "identity.pending",
                identity_class=identity_class.value,
                address=pair.address,
                tx_hash=e.tx_hash,
            )
            raise

        # ledger write is final: sealing and custody only happen after it
        sealed = self.cipher.seal(pair.private_key)
        self.custody.store(pair.address, identity_class, sealed)

        logger.info(
            "identity.registered",
            identity_class=identity_class.value,
            address=pair.address,
            tx_hash=tx.tx_hash,
        )
        return RegistrationResult(
            wallet_address=pair.address,
            tx_hash=tx.tx_hash,
            onchain_url=tx.onchain_url,
            events=tx.events,
        )

    def remove_identity(self, external_id: str, identity_class: IdentityClass) -> TxResult:
        identity_class = IdentityClass.parse(identity_class)
        tx = self.gateway.remove_identity(external_id, identity_class)
        logger.info("identity.removed", identity_class=identity_class.value, tx_hash=tx.tx_hash)
        return TxResult(tx_hash=tx.tx_hash, onchain_url=tx.onchain_url)

    def query_identity_address(self, external_id: str, identity_class: IdentityClass) -> str | None:
        return selectors.identity_address_get(
            gateway=self.gateway,
            external_id=external_id,
            identity_class=IdentityClass.parse(identity_class),
        )

    # ----------------------------------------------------------- delegations

    def request_delegation(
        self,
        subject_id: str,
        consumer_id: str,
        provider_id: str,
        metadata: DelegationRequestMetadata | None = None,
    ) -> DelegationRequestResult:
        # NONE -> PENDING, enforced by the contract
        tx = self.gateway.request_delegation(subject_id, consumer_id, provider_id, metadata)
        logger.info("delegation.requested", tx_hash=tx.tx_hash)
        return DelegationRequestResult(
            tx_hash=tx.tx_hash,
            onchain_url=tx.onchain_url,
            events=tx.events,
            status=DelegationStatus.PENDING.name,
        )

    def decide_delegation(
        self,
        subject_id: str,
        consumer_id: str,
        provider_id: str,
        approve: bool,
    ) -> DelegationDecisionResult:
        # PENDING -> APPROVED | REJECTED, a second decision reverts on-chain
        outcome = DecisionOutcome.from_bool(approve)
        tx = self.gateway.decide_delegation(subject_id, consumer_id, provider_id, outcome)
        logger.info("delegation.decided", outcome=outcome.name, tx_hash=tx.tx_hash)
        return DelegationDecisionResult(
            tx_hash=tx.tx_hash,
            onchain_url=tx.onchain_url,
            status=outcome.status.name,
        )

    def query_delegation_status(self, subject_id: str, provider_id: str) -> DelegationStatus:
        return selectors.delegation_status_get(
            gateway=self.gateway, subject_id=subject_id, provider_id=provider_id
        )

    def query_access_log(self, subject_id: str) -> AccessLog:
        return selectors.access_log_get(gateway=self.gateway, subject_id=subject_id)

    def query_holders_by_status(self, subject_id: str, status: DelegationStatus) -> list[str]:
        return selectors.holders_by_status_list(
            gateway=self.gateway, subject_id=subject_id, status=status
        )

    # ------------------------------------------------------------- creditors

    def purchase_entitlement(self, creditor_address: str, purchase: EntitlementPurchase) -> TxResult:
        """
        Signed by the creditor's own custodied key, relayed by the platform.
        """
        sealed = self.custody.retrieve(creditor_address, IdentityClass.CREDITOR)
        account = keys.account_from_key(self.cipher.open(sealed))
        tx = self.gateway.purchase_entitlement(account, purchase)
        logger.info("entitlement.purchased", address=creditor_address, tx_hash=tx.tx_hash)
        return TxResult(tx_hash=tx.tx_hash, onchain_url=tx.onchain_url)

    def link_subject_to_holder(self, subject_id: str, holder_code: str, link: SubjectHolderLink) -> TxResult:
        tx = self.gateway.link_subject_to_holder(subject_id, holder_code, link)
        logger.info("subject.linked", tx_hash=tx.tx_hash, events=len(tx.events))
        return TxResult(tx_hash=tx.tx_hash, onchain_url=tx.onchain_url, events=tx.events)
