from __future__ import annotations

from datetime import datetime, timezone

import structlog
from django.conf import settings

from src.core.exceptions import AlreadyExists, NotFound
from src.core.types import IdentityClass
from src.crypto.openbao_kv import OpenBaoKV, SecretStore
from .models import CustodyRecord
from .paths import build_custody_path

logger = structlog.get_logger(__name__)


class CustodyStore:
    """
    Write-once custody of sealed private keys, one record per (address, class).

    The read-before-write check is backed by a check-and-set (cas=0) write on
    KV v2 stores. On a backend without CAS two concurrent writers for the same
    address can both pass the read; the ledger's duplicate-registration revert
    remains the authoritative guard in that case.
    """

    def __init__(self, backend: SecretStore, *, mount: str = "secret", prefix: str = "data/pk"):
        self.backend = backend
        self.mount = mount
        self.prefix = prefix

    @classmethod
    def from_settings(cls) -> "CustodyStore":
        return cls(
            OpenBaoKV(),
            mount=settings.CUSTODY_KV_MOUNT,
            prefix=settings.CUSTODY_PATH_PREFIX,
        )

    def path_for(self, address: str, identity_class: IdentityClass) -> str:
        return build_custody_path(self.prefix, identity_class, address)

    def store(self, address: str, identity_class: IdentityClass, sealed_key: str) -> CustodyRecord:
        path = self.path_for(address, identity_class)
        ctx = {"operation": "custody.store", "identity_class": identity_class.value, "address": address}

        if self.backend.read(self.mount, path):
            logger.warning("custody.conflict", **ctx)
            raise AlreadyExists("Private key already exists for this address.", extra=ctx)

        record = CustodyRecord(
            address=address,
            identity_class=identity_class,
            sealed_private_key=sealed_key,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self.backend.write(self.mount, path, record.to_secret(), cas=0)
        except AlreadyExists as e:
            logger.warning("custody.conflict", cas=True, **ctx)
            raise AlreadyExists("Private key already exists for this address.", extra=ctx) from e

        logger.info("custody.stored", **ctx)
        return record

    def retrieve(self, address: str, identity_class: IdentityClass) -> str:
        return self.retrieve_record(address, identity_class).sealed_private_key

    def retrieve_record(self, address: str, identity_class: IdentityClass) -> CustodyRecord:
        path = self.path_for(address, identity_class)
        data = self.backend.read(self.mount, path)
        if not data or not data.get("private_key"):
            raise NotFound(
                f"Private key not found for address {address}",
                extra={"operation": "custody.retrieve", "identity_class": identity_class.value},
            )
        logger.debug("custody.retrieved", identity_class=identity_class.value, address=address)
        return CustodyRecord.from_secret({"address": address, "type": identity_class.value, **data})
