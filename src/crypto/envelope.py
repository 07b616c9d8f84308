"""
AES-256-GCM envelope for custody records.

Blob layout (base64, standard alphabet):

    nonce (12 bytes) || ciphertext || tag (16 bytes)

so the secret store only ever sees one opaque string.
"""
from __future__ import annotations

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from src.core.exceptions import ConfigurationError, IntegrityError

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16


def load_secret(secret_hex: str) -> bytes:
    """
    Decode the hex-encoded CRYPTO_SECRET. Must be exactly KEY_LENGTH bytes.
    """
    if not secret_hex:
        raise ConfigurationError("CRYPTO_SECRET is not set")
    try:
        key = bytes.fromhex(secret_hex.removeprefix("0x"))
    except ValueError:
        raise ConfigurationError("CRYPTO_SECRET must be hex-encoded") from None
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"CRYPTO_SECRET must be {KEY_LENGTH} bytes long, but got {len(key)} bytes"
        )
    return key


class EnvelopeCipher:
    def __init__(self, secret_hex: str):
        self._aead = AESGCM(load_secret(secret_hex))

    def __repr__(self) -> str:
        return "EnvelopeCipher(aes-256-gcm)"

    def seal(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + sealed).decode("ascii")

    def open(self, blob: str) -> str:
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise IntegrityError("Sealed blob is not valid base64") from None
        if len(raw) < NONCE_LENGTH + TAG_LENGTH:
            raise IntegrityError("Sealed blob is truncated")
        nonce, sealed = raw[:NONCE_LENGTH], raw[NONCE_LENGTH:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise IntegrityError("Authentication tag verification failed") from None
        return plaintext.decode("utf-8")
