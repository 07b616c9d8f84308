from __future__ import annotations

import itertools

import eth_abi
import pytest
from web3 import Web3
from web3.exceptions import ContractLogicError

from src.core.exceptions import AlreadyExists, LedgerTxPending
from src.crypto.envelope import EnvelopeCipher
from src.custody.services import CustodyStore
from src.delegations.services import DelegationOrchestrator
from src.ledger import gateway as gw
from src.ledger.config import LedgerConfig
from src.ledger.encoding import ZERO_ADDRESS, selector, signature_types
from src.ledger.gateway import LedgerGateway
from src.ledger.status import DelegationStatus

TEST_SECRET = "ab" * 32
CONTRACT_ADDRESS = "0x" + "22" * 20
SIGNER_KEY = "0x" + "11" * 32
ONCHAIN_URL = "https://explorer.test/tx/"


def reverted(error_signature: str) -> ContractLogicError:
    exc = ContractLogicError("execution reverted")
    exc.data = "0x" + selector(error_signature).hex()
    return exc


class MemorySecretStore:
    """KV v2 stand-in: dict storage, honours cas=0."""

    def __init__(self):
        self.data: dict[tuple[str, str], dict] = {}
        self.writes: list[tuple[str, str]] = []

    def read(self, mount, path):
        found = self.data.get((mount, path))
        return dict(found) if found else None

    def write(self, mount, path, data, *, cas=None):
        if cas == 0 and (mount, path) in self.data:
            raise AlreadyExists("Secret already exists at this path", extra={"mount": mount})
        self.data[(mount, path)] = dict(data)
        self.writes.append((mount, path))


class FakeLedgerClient:
    """
    In-memory DataSharing contract behind the ContractClient surface.

    Calldata is decoded by selector, so the gateway's real encoding is what
    drives the state below. Reverts carry the custom error selector like a
    node would.
    """

    def __init__(self):
        self.debtors: dict[bytes, str] = {}
        self.creditors: dict[bytes, str] = {}
        self.requests: dict[tuple[bytes, bytes], int] = {}
        self.sent: list[dict] = []
        self.error: Exception | None = None
        self.call_error: Exception | None = None
        self.receipt_status = 1
        # applied on-chain, but the receipt is never observed
        self.pending = False
        self.access_log_override = None
        self._tx_counter = itertools.count(1)
        self._handlers = {
            selector(sig): (sig, handler)
            for sig, handler in {
                "addDebtor(bytes32,address)": self._add_debtor,
                "addCreditor(bytes32,address)": self._add_creditor,
                gw.ADD_CREDITOR_WITH_EVENT: self._add_creditor_with_event,
                "removeDebtor(bytes32)": self._remove_debtor,
                "removeCreditor(bytes32)": self._remove_creditor,
                gw.REQUEST_DELEGATION: self._request,
                gw.REQUEST_DELEGATION_WITH_EVENT: self._request_with_event,
                gw.DECIDE_DELEGATION: self._decide,
                gw.PURCHASE_PACKAGE: self._purchase,
                gw.ADD_DEBTOR_TO_CREDITOR: self._add_debtor_to_creditor,
            }.items()
        }

    # ---------------------------------------------------------------- writes

    def send_meta_transaction(self, function_call, account=None):
        if self.error is not None:
            raise self.error
        sig, handler = self._handlers[bytes(function_call[:4])]
        args = eth_abi.decode(signature_types(sig), bytes(function_call[4:]))
        acting = account.address if account is not None else None
        events = handler(*args, acting=acting) or []
        n = next(self._tx_counter)
        self.sent.append({"signature": sig, "args": args, "acting": acting, "calldata": bytes(function_call)})
        if self.pending:
            tx_hash = Web3.to_hex(n.to_bytes(32, "big"))
            raise LedgerTxPending(f"Transaction {tx_hash} submitted but not final", tx_hash=tx_hash)
        return {
            "transactionHash": n.to_bytes(32, "big"),
            "status": self.receipt_status,
            "blockNumber": 100 + n,
            "logs": events,
        }

    def decode_events(self, receipt, event_name):
        return [log for log in receipt["logs"] if log["event"] == event_name]

    def _add_debtor(self, nik, address, acting=None):
        if nik in self.debtors:
            raise reverted("DebtorAlreadyExist()")
        self.debtors[nik] = Web3.to_checksum_address(address)

    def _add_creditor(self, code, address, acting=None):
        if code in self.creditors:
            raise reverted("CreditorAlreadyExist()")
        self.creditors[code] = Web3.to_checksum_address(address)

    def _add_creditor_with_event(self, address, code, inst_code, inst_name, approval, signer, position, acting=None):
        self._add_creditor(code, address)
        return [
            {
                "event": "CreditorAdded",
                "creditorAddress": Web3.to_checksum_address(address),
                "institutionCode": inst_code,
                "institutionName": inst_name,
            }
        ]

    def _remove_debtor(self, nik, acting=None):
        if nik not in self.debtors:
            raise reverted("NikNeedRegistered()")
        del self.debtors[nik]

    def _remove_creditor(self, code, acting=None):
        if code not in self.creditors:
            raise reverted("NotEligible()")
        del self.creditors[code]

    def _request(self, nik, consumer, provider, acting=None):
        if nik not in self.debtors:
            raise reverted("NikNeedRegistered()")
        if consumer not in self.creditors or provider not in self.creditors:
            raise reverted("NotEligible()")
        if self.requests.get((nik, provider), DelegationStatus.NONE) != DelegationStatus.NONE:
            raise reverted("RequestAlreadyExist()")
        self.requests[(nik, provider)] = int(DelegationStatus.PENDING)

    def _request_with_event(self, nik, consumer, provider, request_id, transaction_id, referenced_id, date, acting=None):
        self._request(nik, consumer, provider)
        return [{"event": "DelegationRequested", "requestId": request_id, "transactionId": transaction_id}]

    def _decide(self, nik, consumer, provider, outcome, acting=None):
        if self.requests.get((nik, provider)) != DelegationStatus.PENDING:
            raise reverted("RequestNotPending()")
        self.requests[(nik, provider)] = int(
            DelegationStatus.APPROVED if outcome == 1 else DelegationStatus.REJECTED
        )

    def _purchase(self, *args, acting=None):
        if acting not in self.creditors.values():
            raise reverted("NotEligible()")

    def _add_debtor_to_creditor(self, nik, code, name, creditor_name, *rest, acting=None):
        if nik not in self.debtors or code not in self.creditors:
            raise reverted("NotEligible()")
        return [{"event": "DebtorAddedToCreditor", "name": name, "creditorName": creditor_name}]

    # ----------------------------------------------------------------- reads

    def call(self, fn_name, *args):
        if self.call_error is not None:
            raise self.call_error
        return getattr(self, f"_view_{fn_name}")(*args)

    def _view_getDebtor(self, nik):
        return self.debtors.get(nik, ZERO_ADDRESS)

    def _view_getCreditor(self, code):
        return self.creditors.get(code, ZERO_ADDRESS)

    def _view_getStatusRequest(self, nik, provider):
        return self.requests.get((nik, provider), int(DelegationStatus.NONE))

    def _view_getDebtorDataActiveCreditors(self, nik):
        if self.access_log_override is not None:
            return self.access_log_override
        rows = [(self.creditors.get(p, ZERO_ADDRESS), s) for (n, p), s in self.requests.items() if n == nik]
        return [a for a, _ in rows], [s for _, s in rows]

    def _view_getActiveCreditorsByStatus(self, nik, status):
        return [
            self.creditors.get(p, ZERO_ADDRESS)
            for (n, p), s in self.requests.items()
            if n == nik and s == status
        ]


@pytest.fixture
def ledger_config():
    return LedgerConfig(
        rpc_url="http://127.0.0.1:8545",
        contract_address=CONTRACT_ADDRESS,
        signer_key=SIGNER_KEY,
        onchain_url=ONCHAIN_URL,
    )


@pytest.fixture
def fake_ledger():
    return FakeLedgerClient()


@pytest.fixture
def gateway(ledger_config, fake_ledger):
    return LedgerGateway(ledger_config, client=fake_ledger)


@pytest.fixture
def secret_store():
    return MemorySecretStore()


@pytest.fixture
def custody(secret_store):
    return CustodyStore(secret_store, mount="secret", prefix="data/pk")


@pytest.fixture
def cipher():
    return EnvelopeCipher(TEST_SECRET)


@pytest.fixture
def orchestrator(gateway, custody, cipher):
    return DelegationOrchestrator(gateway=gateway, custody=custody, cipher=cipher)
