from __future__ import annotations

from typing import Any

import requests
import structlog
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import TimeExhausted
from web3.logs import DISCARD

from src.core.exceptions import ConfigurationError, LedgerInternalError, LedgerTxPending
from src.crypto.keys import is_private_key
from .config import LedgerConfig
from .encoding import has_event, to_jsonable

logger = structlog.get_logger(__name__)

META_TRANSACTION_TYPES = {
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
    "MetaTransaction": [
        {"name": "from", "type": "address"},
        {"name": "nonce", "type": "uint256"},
        {"name": "functionCall", "type": "bytes"},
    ],
}


class ContractClient:
    """
    Thin web3 wrapper around the DataSharing contract.

    Writes are EIP-712 meta-transactions: the acting account signs
    MetaTransaction(from, nonce, functionCall) and the platform signer relays
    it through executeMetaTransaction, then blocks until the receipt is mined.
    Exceptions raised before submission are left untouched; the gateway
    classifies them. Once the raw transaction is accepted by the node, a
    failure to observe its receipt is LedgerTxPending carrying the tx hash:
    the write may still be mined, so it is never reported as retryable.

    The meta-transaction nonce and the relayer account nonce are read
    without coordination. Two workers relaying at the same moment can pick
    the same nonce; the loser reverts at gas estimation and surfaces as
    PreconditionFailed. The window is narrow and the contract nonce keeps
    the ledger consistent, so relays are not serialized here.
    """

    def __init__(self, config: LedgerConfig, w3: Web3 | None = None):
        self.config = config
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(config.rpc_url, request_kwargs={"timeout": config.rpc_timeout})
        )
        self.contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(config.contract_address), abi=list(config.abi)
        )
        if not is_private_key(config.signer_key):
            raise ConfigurationError("LEDGER_SIGNER_KEY is not a valid private key")
        self.signer: LocalAccount = Account.from_key(config.signer_key)

    def call(self, fn_name: str, *args) -> Any:
        return self.contract.functions[fn_name](*args).call()

    def eip712_domain(self) -> dict[str, Any]:
        return {
            "name": self.config.domain_name,
            "version": self.config.domain_version,
            "chainId": self.w3.eth.chain_id,
            "verifyingContract": self.contract.address,
        }

    def sign_meta_transaction(self, account: LocalAccount, function_call: bytes) -> tuple[dict[str, Any], bytes]:
        nonce = int(self.contract.functions.nonces(account.address).call())
        message = {"from": account.address, "nonce": nonce, "functionCall": function_call}
        signable = encode_typed_data(
            full_message={
                "types": META_TRANSACTION_TYPES,
                "primaryType": "MetaTransaction",
                "domain": self.eip712_domain(),
                "message": message,
            }
        )
        signature = bytes(account.sign_message(signable).signature)

        recovered = Account.recover_message(signable, signature=signature)
        if recovered != account.address:
            raise LedgerInternalError("Invalid EIP-712 signature: signer does not match")
        return message, signature

    def send_meta_transaction(self, function_call: bytes, account: LocalAccount | None = None):
        """
        Sign, relay and wait for finality. Returns the mined receipt.
        """
        account = account or self.signer
        message, signature = self.sign_meta_transaction(account, function_call)

        fn = self.contract.functions.executeMetaTransaction(
            message["from"], message["nonce"], function_call, signature
        )
        # build_transaction estimates gas: a revert surfaces here, before submission
        tx = fn.build_transaction(
            {
                "from": self.signer.address,
                "nonce": self.w3.eth.get_transaction_count(self.signer.address, "pending"),
                "chainId": self.w3.eth.chain_id,
            }
        )
        signed = self.signer.sign_transaction(tx)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info("ledger.tx_submitted", tx_hash=Web3.to_hex(tx_hash), acting=account.address)

        try:
            return self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.tx_timeout, poll_latency=self.config.poll_latency
            )
        except (TimeExhausted, requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            hex_hash = Web3.to_hex(tx_hash)
            logger.warning("ledger.tx_pending", tx_hash=hex_hash, error=type(e).__name__)
            raise LedgerTxPending(
                f"Transaction {hex_hash} submitted but not final after {self.config.tx_timeout}s",
                tx_hash=hex_hash,
                extra={"error": type(e).__name__},
            ) from e

    def decode_events(self, receipt, event_name: str) -> list[dict[str, Any]]:
        """
        Every matching event of the receipt, in log order. No uniqueness is
        assumed; logs that do not decode against the ABI are discarded.
        """
        if not has_event(self.config.abi, event_name):
            return []
        event = getattr(self.contract.events, event_name)()
        return [
            {"event": event_name, **to_jsonable(dict(ev["args"]))}
            for ev in event.process_receipt(receipt, errors=DISCARD)
        ]
