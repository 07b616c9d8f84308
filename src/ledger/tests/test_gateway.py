import pytest
import requests
from web3.exceptions import ContractLogicError, TimeExhausted

from src.core.exceptions import (
    LedgerInternalError,
    LedgerTxPending,
    LedgerUnavailable,
    PreconditionFailed,
    UnknownLedgerStatus,
)
from src.core.types import IdentityClass
from src.ledger.encoding import hash_identifier
from src.ledger.schemas import CreditorMetadata, SubjectHolderLink
from src.ledger.status import DecisionOutcome, DelegationStatus

DEBTOR_ADDR = "0x" + "aA" * 20
CREDITOR_ADDR = "0x" + "bB" * 20
CONSUMER_ADDR = "0x" + "cC" * 20


def seed(gateway):
    gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    gateway.register_identity("12345", CREDITOR_ADDR, IdentityClass.CREDITOR)
    gateway.register_identity("54321", CONSUMER_ADDR, IdentityClass.CREDITOR)


def test_register_returns_finalized_tx(gateway, fake_ledger, ledger_config):
    tx = gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)

    assert tx.tx_hash.startswith("0x") and len(tx.tx_hash) == 66
    assert tx.onchain_url == ledger_config.onchain_url + tx.tx_hash
    assert tx.block_number is not None
    assert fake_ledger.sent[0]["signature"] == "addDebtor(bytes32,address)"


def test_calldata_carries_hash_not_identifier(gateway, fake_ledger):
    gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    calldata = fake_ledger.sent[0]["calldata"]
    assert b"5101010" not in calldata
    assert hash_identifier("5101010") in calldata


def test_duplicate_registration_is_precondition_failed(gateway):
    gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    with pytest.raises(PreconditionFailed) as exc:
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert exc.value.reason == "DebtorAlreadyExist()"
    assert exc.value.extra["operation"] == "register_identity"


def test_creditor_with_metadata_returns_event(gateway, fake_ledger):
    metadata = CreditorMetadata(
        institution_code="BANK01",
        institution_name="Bank One",
        approval_date="2024-01-01",
        signer_name="Jane",
        signer_position="Director",
    )
    tx = gateway.register_identity("12345", CREDITOR_ADDR, IdentityClass.CREDITOR, metadata)
    assert fake_ledger.sent[0]["signature"].startswith("addCreditor(address,bytes32")
    assert tx.events[0]["event"] == "CreditorAdded"
    assert tx.events[0]["institutionCode"] == "BANK01"


def test_query_identity_address(gateway):
    assert gateway.query_identity_address("5101010", IdentityClass.DEBTOR) is None
    gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert gateway.query_identity_address("5101010", IdentityClass.DEBTOR).lower() == DEBTOR_ADDR.lower()
    assert gateway.query_identity_address("5101010", IdentityClass.CREDITOR) is None


def test_remove_identity(gateway):
    gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    gateway.remove_identity("5101010", IdentityClass.DEBTOR)
    assert gateway.query_identity_address("5101010", IdentityClass.DEBTOR) is None
    with pytest.raises(PreconditionFailed):
        gateway.remove_identity("5101010", IdentityClass.DEBTOR)


def test_delegation_lifecycle(gateway):
    seed(gateway)
    assert gateway.query_delegation_status("5101010", "12345") is DelegationStatus.NONE

    gateway.request_delegation("5101010", "54321", "12345")
    assert gateway.query_delegation_status("5101010", "12345") is DelegationStatus.PENDING

    gateway.decide_delegation("5101010", "54321", "12345", DecisionOutcome.APPROVED)
    assert gateway.query_delegation_status("5101010", "12345") is DelegationStatus.APPROVED

    with pytest.raises(PreconditionFailed) as exc:
        gateway.decide_delegation("5101010", "54321", "12345", DecisionOutcome.REJECTED)
    assert exc.value.reason == "RequestNotPending()"
    assert gateway.query_delegation_status("5101010", "12345") is DelegationStatus.APPROVED


def test_request_for_unregistered_subject(gateway):
    with pytest.raises(PreconditionFailed) as exc:
        gateway.request_delegation("999", "54321", "12345")
    assert exc.value.reason == "NikNeedRegistered()"


def test_unknown_status_code_is_explicit(gateway, fake_ledger):
    fake_ledger.requests[(hash_identifier("5101010"), hash_identifier("12345"))] = 7
    with pytest.raises(UnknownLedgerStatus):
        gateway.query_delegation_status("5101010", "12345")


def test_access_log(gateway):
    seed(gateway)
    assert gateway.query_access_log("5101010") == []

    gateway.request_delegation("5101010", "54321", "12345")
    entries = gateway.query_access_log("5101010")
    assert len(entries) == 1
    assert entries[0].creditor_address.lower() == CREDITOR_ADDR.lower()
    assert entries[0].status == "PENDING"


def test_access_log_without_data_is_none(gateway, fake_ledger):
    fake_ledger.access_log_override = ()
    assert gateway.query_access_log("5101010") is None


def test_access_log_length_mismatch(gateway, fake_ledger):
    fake_ledger.access_log_override = ([CREDITOR_ADDR], [3, 2])
    with pytest.raises(LedgerInternalError):
        gateway.query_access_log("5101010")


def test_holders_by_status(gateway):
    seed(gateway)
    gateway.request_delegation("5101010", "54321", "12345")
    holders = gateway.query_holders_by_status("5101010", DelegationStatus.PENDING)
    assert [h.lower() for h in holders] == [CREDITOR_ADDR.lower()]
    assert gateway.query_holders_by_status("5101010", DelegationStatus.APPROVED) == []


def test_link_subject_to_holder_returns_events(gateway):
    seed(gateway)
    link = SubjectHolderLink(
        debtor_name="Budi",
        creditor_name="Bank One",
        application_date="2024-01-01",
        approval_date="2024-01-02",
        url_ktp="https://files.test/ktp",
        url_approval="https://files.test/approval",
    )
    tx = gateway.link_subject_to_holder("5101010", "12345", link)
    assert [e["event"] for e in tx.events] == ["DebtorAddedToCreditor"]


@pytest.mark.parametrize(
    "error",
    [TimeExhausted(), requests.exceptions.ConnectionError("refused"), requests.exceptions.Timeout()],
)
def test_transport_failures_are_unavailable(gateway, fake_ledger, error):
    fake_ledger.error = error
    with pytest.raises(LedgerUnavailable):
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)


def test_unexpected_failure_is_internal(gateway, fake_ledger):
    fake_ledger.error = RuntimeError("decoder blew up")
    with pytest.raises(LedgerInternalError) as exc:
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert exc.value.extra["error"] == "RuntimeError"


def test_plain_revert_message(gateway, fake_ledger):
    fake_ledger.error = ContractLogicError("execution reverted: paused")
    with pytest.raises(PreconditionFailed) as exc:
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert exc.value.reason == "paused"


def test_failed_receipt_is_precondition_failed(gateway, fake_ledger):
    fake_ledger.receipt_status = 0
    with pytest.raises(PreconditionFailed) as exc:
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert exc.value.reason == "transaction reverted"
    assert exc.value.extra["tx_hash"].startswith("0x")


def test_read_failure_is_unavailable(gateway, fake_ledger):
    fake_ledger.call_error = requests.exceptions.ConnectionError("refused")
    with pytest.raises(LedgerUnavailable):
        gateway.query_delegation_status("5101010", "12345")


@pytest.mark.parametrize("override", [([CREDITOR_ADDR], []), ([], [3])])
def test_access_log_with_one_empty_array_is_empty(gateway, fake_ledger, override):
    fake_ledger.access_log_override = override
    assert gateway.query_access_log("5101010") == []


def test_submitted_but_unobserved_write_is_pending(gateway, fake_ledger):
    fake_ledger.pending = True
    with pytest.raises(LedgerTxPending) as exc:
        gateway.register_identity("5101010", DEBTOR_ADDR, IdentityClass.DEBTOR)
    assert exc.value.tx_hash.startswith("0x")
    assert exc.value.extra["operation"] == "register_identity"
    assert not isinstance(exc.value, LedgerUnavailable)
