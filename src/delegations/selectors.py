from __future__ import annotations

from src.core.types import IdentityClass
from src.ledger.gateway import LedgerGateway
from src.ledger.status import DelegationStatus
from .schemas import AccessLog


def delegation_status_get(*, gateway: LedgerGateway, subject_id: str, provider_id: str) -> DelegationStatus:
    """
    Current status for (subject, provider), NONE when never requested.
    """
    return gateway.query_delegation_status(subject_id, provider_id)


def access_log_get(*, gateway: LedgerGateway, subject_id: str) -> AccessLog:
    entries = gateway.query_access_log(subject_id)
    if not entries:
        return AccessLog.no_activity()
    return AccessLog(has_activity=True, entries=entries)


def identity_address_get(*, gateway: LedgerGateway, external_id: str, identity_class: IdentityClass) -> str | None:
    return gateway.query_identity_address(external_id, identity_class)


def holders_by_status_list(*, gateway: LedgerGateway, subject_id: str, status: DelegationStatus) -> list[str]:
    return gateway.query_holders_by_status(subject_id, status)
