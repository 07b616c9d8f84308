from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Sequence

import eth_abi
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
DEFAULT_ABI_PATH = Path(__file__).resolve().parent / "artifacts" / "DataSharing.json"


@lru_cache(maxsize=4)
def load_abi(path: str | None = None) -> tuple[dict[str, Any], ...]:
    """
    ABI of the DataSharing contract. Defaults to the packaged artifact;
    LEDGER_ABI_PATH points at the deployed build output instead.
    """
    if path:
        with open(path, "rb") as f:
            artifact = json.load(f)
    else:
        artifact = json.loads(DEFAULT_ABI_PATH.read_text(encoding="utf-8"))
    abi = artifact["abi"] if isinstance(artifact, dict) else artifact
    return tuple(abi)


def hash_identifier(value: str) -> bytes:
    """
    keccak256(abi.encode(string)): business identifiers never go on the
    ledger in clear, equality lookups still work.
    """
    return bytes(Web3.keccak(eth_abi.encode(["string"], [value])))


def signature_types(signature: str) -> list[str]:
    # flat signatures only, "name(t1,t2)"
    _, _, rest = signature.partition("(")
    return [t.strip() for t in rest.rstrip(")").split(",") if t.strip()]


def selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


def encode_call(signature: str, args: Sequence[Any]) -> bytes:
    """
    Calldata for an explicit (possibly overloaded) function signature,
    ex: encode_call("addCreditor(bytes32,address)", [code_hash, address]).
    """
    return selector(signature) + eth_abi.encode(signature_types(signature), list(args))


def _abi_signature(entry: dict[str, Any]) -> str:
    types = ",".join(i["type"] for i in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def error_signatures(abi: Iterable[dict[str, Any]]) -> dict[bytes, str]:
    return {
        selector(_abi_signature(e)): _abi_signature(e)
        for e in abi
        if e.get("type") == "error"
    }


def has_event(abi: Iterable[dict[str, Any]], name: str) -> bool:
    return any(e.get("type") == "event" and e.get("name") == name for e in abi)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value
