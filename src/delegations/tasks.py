from typing import Any

from celery import shared_task

from src.ledger.schemas import CreditorMetadata, DelegationRequestMetadata
from .services import DelegationOrchestrator

# Ledger writes block until finality. No autoretry: a blind retry of a
# submitted write risks a duplicate, the caller decides on LedgerUnavailable.


@shared_task(name="delegations.register_identity")
def register_identity_task(external_id: str, identity_class: str, metadata: dict[str, Any] | None = None) -> dict:
    orchestrator = DelegationOrchestrator.from_settings()
    result = orchestrator.register_identity(
        external_id,
        identity_class,
        CreditorMetadata(**metadata) if metadata else None,
    )
    return result.model_dump()


@shared_task(name="delegations.request")
def request_delegation_task(
    subject_id: str, consumer_id: str, provider_id: str, metadata: dict[str, Any] | None = None
) -> dict:
    orchestrator = DelegationOrchestrator.from_settings()
    result = orchestrator.request_delegation(
        subject_id,
        consumer_id,
        provider_id,
        DelegationRequestMetadata(**metadata) if metadata else None,
    )
    return result.model_dump()


@shared_task(name="delegations.decide")
def decide_delegation_task(subject_id: str, consumer_id: str, provider_id: str, approve: bool) -> dict:
    orchestrator = DelegationOrchestrator.from_settings()
    return orchestrator.decide_delegation(subject_id, consumer_id, provider_id, approve).model_dump()
