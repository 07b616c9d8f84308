from __future__ import annotations

from typing import Any, Protocol

import hvac
import requests
from django.conf import settings
from hvac import exceptions as hvac_exc

from src.core.exceptions import AlreadyExists, SecretStoreUnavailable

_TRANSPORT_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    hvac_exc.VaultDown,
    hvac_exc.InternalServerError,
    hvac_exc.Forbidden,
    hvac_exc.Unauthorized,
)


class SecretStore(Protocol):
    def read(self, mount: str, path: str) -> dict[str, Any] | None: ...

    def write(self, mount: str, path: str, data: dict[str, Any], *, cas: int | None = None) -> None: ...


def _client() -> hvac.Client:
    c = hvac.Client(
        url=settings.OPENBAO_ADDR,
        timeout=getattr(settings, "OPENBAO_TIMEOUT", 10),
    )
    # Priority: token (dev), else AppRole (prod)
    if settings.OPENBAO_TOKEN:
        c.token = settings.OPENBAO_TOKEN
    elif settings.OPENBAO_ROLE_ID and settings.OPENBAO_SECRET_ID:
        resp = c.auth.approle.login(
            role_id=settings.OPENBAO_ROLE_ID, secret_id=settings.OPENBAO_SECRET_ID
        )
        c.token = resp["auth"]["client_token"]
    return c


class OpenBaoKV:
    """
    KV v2 backend. A missing path reads as None, not as an error.
    """

    def __init__(self, client: hvac.Client | None = None):
        self._c = client

    @property
    def client(self) -> hvac.Client:
        if self._c is None:
            try:
                self._c = _client()
            except _TRANSPORT_ERRORS as e:
                raise SecretStoreUnavailable(
                    "OpenBao authentication failed", extra={"error": type(e).__name__}
                ) from e
        return self._c

    def read(self, mount: str, path: str) -> dict[str, Any] | None:
        try:
            resp = self.client.secrets.kv.v2.read_secret_version(
                path=path, mount_point=mount, raise_on_deleted_version=True
            )
        except hvac_exc.InvalidPath:
            return None
        except _TRANSPORT_ERRORS as e:
            raise SecretStoreUnavailable(
                "OpenBao read failed", extra={"mount": mount, "error": type(e).__name__}
            ) from e
        data = (resp or {}).get("data") or {}
        return data.get("data") or None

    def write(self, mount: str, path: str, data: dict[str, Any], *, cas: int | None = None) -> None:
        try:
            self.client.secrets.kv.v2.create_or_update_secret(
                path=path, secret=data, cas=cas, mount_point=mount
            )
        except hvac_exc.InvalidRequest as e:
            # cas=0 rejected: someone wrote the path between our read and write
            if cas is not None and "check-and-set" in str(e):
                raise AlreadyExists(
                    "Secret already exists at this path", extra={"mount": mount}
                ) from e
            raise SecretStoreUnavailable(
                "OpenBao rejected the write", extra={"mount": mount, "error": type(e).__name__}
            ) from e
        except _TRANSPORT_ERRORS as e:
            raise SecretStoreUnavailable(
                "OpenBao write failed", extra={"mount": mount, "error": type(e).__name__}
            ) from e
