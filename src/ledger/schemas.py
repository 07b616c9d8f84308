from typing import Any

from pydantic import BaseModel, Field


class LedgerTx(BaseModel):
    tx_hash: str
    onchain_url: str
    block_number: int | None = None
    events: list[dict[str, Any]] = Field(default_factory=list)


class AccessLogEntry(BaseModel):
    creditor_address: str
    status: str


class CreditorMetadata(BaseModel):
    institution_code: str
    institution_name: str
    approval_date: str
    signer_name: str
    signer_position: str


class DelegationRequestMetadata(BaseModel):
    request_id: str
    transaction_id: str
    referenced_id: str
    request_date: str


class EntitlementPurchase(BaseModel):
    institution_code: str
    purchase_date: str
    invoice_number: str
    package_id: int = Field(ge=0)
    quantity: int = Field(ge=0)
    start_date: str
    end_date: str
    quota: int = Field(ge=0)


class SubjectHolderLink(BaseModel):
    debtor_name: str
    creditor_name: str
    application_date: str
    approval_date: str
    url_ktp: str
    url_approval: str
