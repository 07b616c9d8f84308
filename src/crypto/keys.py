from __future__ import annotations

import re
from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
PRIVATE_KEY_PATTERN = re.compile(r"^(0x)?[a-fA-F0-9]{64}$")


@dataclass(frozen=True)
class KeyPair:
    address: str
    private_key: str

    def __repr__(self) -> str:
        # never render the private key
        return f"KeyPair(address={self.address!r})"


def generate() -> KeyPair:
    """
    Fresh secp256k1 key pair from the OS CSPRNG.
    The address is the EIP-55 checksum address derived from the key.
    """
    acct = Account.create()
    return KeyPair(address=acct.address, private_key="0x" + bytes(acct.key).hex())


def account_from_key(private_key: str) -> LocalAccount:
    return Account.from_key(private_key)


def is_address(value: str) -> bool:
    return bool(ADDRESS_PATTERN.match(value or ""))


def is_private_key(value: str) -> bool:
    return bool(PRIVATE_KEY_PATTERN.match(value or ""))
