import json
import os
import sys
import logging

import hvac
from django.core.management.base import BaseCommand, CommandError

from src.core.exceptions import ConfigurationError
from src.crypto.envelope import load_secret

LOG = logging.getLogger(__name__)

DEFAULT_REQUIRED = "LEDGER_SIGNER_KEY,LEDGER_RPC_URL,LEDGER_CONTRACT_ADDRESS,CRYPTO_SECRET"


def _mask(val: str | None) -> str:
    if val is None:
        return "None"
    if not isinstance(val, str):
        return "<non-string>"
    n = len(val)
    if n <= 4:
        return "*" * n
    return val[:2] + "*" * (n - 4) + val[-2:]


def _check_crypto_secret(value: str | None) -> str | None:
    try:
        load_secret(value or "")
    except ConfigurationError as e:
        return e.message
    return None


class Command(BaseCommand):
    help = (
        "Check OpenBao KV v2 secrets vs environment and the custody mount "
        "(exits non-zero if required keys are missing or CRYPTO_SECRET is malformed)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--addr",
            default=os.getenv("OPENBAO_ADDR", "http://127.0.0.1:8200"),
            help="OpenBao address (OPENBAO_ADDR).",
        )
        parser.add_argument(
            "--token",
            default=os.getenv("OPENBAO_TOKEN", ""),
            help="OpenBao token (dev/simple). Prefer AppRole in prod.",
        )
        parser.add_argument("--role-id", default=os.getenv("OPENBAO_ROLE_ID", ""), help="AppRole RoleID (prod).")
        parser.add_argument("--secret-id", default=os.getenv("OPENBAO_SECRET_ID", ""), help="AppRole SecretID (prod).")
        parser.add_argument(
            "--mount",
            default=os.getenv("OPENBAO_KV_MOUNT", "secret"),
            help="KV v2 mount holding service configuration (default: secret).",
        )
        parser.add_argument(
            "--path",
            default=os.getenv("OPENBAO_KV_PATH", "consent-ledger"),
            help="KV v2 path of service configuration (default: consent-ledger).",
        )
        parser.add_argument(
            "--custody-mount",
            default=os.getenv("CUSTODY_KV_MOUNT", "secret"),
            help="KV v2 mount holding custody records (default: secret).",
        )
        parser.add_argument(
            "--required",
            nargs="+",
            default=os.getenv("OPENBAO_REQUIRED", DEFAULT_REQUIRED).split(","),
            help="Required keys list. Example: --required CRYPTO_SECRET LEDGER_SIGNER_KEY",
        )
        parser.add_argument("--json", action="store_true", help="Print JSON report.")

    def handle(self, *args, **opts):
        addr: str = opts["addr"]
        mount: str = opts["mount"]
        path: str = opts["path"]
        custody_mount: str = opts["custody_mount"]
        required = [k.strip() for k in opts["required"] if k.strip()]
        as_json: bool = opts["json"]

        client = hvac.Client(url=addr, timeout=5)
        auth_method = None
        try:
            if opts["token"]:
                client.token = opts["token"]
                auth_method = "token"
            elif opts["role_id"] and opts["secret_id"]:
                resp = client.auth.approle.login(role_id=opts["role_id"], secret_id=opts["secret_id"])
                client.token = resp["auth"]["client_token"]
                auth_method = "approle"
            else:
                auth_method = "none"
        except Exception as e:
            if as_json:
                print(json.dumps({"ok": False, "error": f"auth_failed: {type(e).__name__}"}))
                sys.exit(1)
            raise CommandError(f"OpenBao auth failed: {type(e).__name__}")

        kv_data: dict[str, str] = {}
        kv_ok = False
        kv_err: str | None = None
        try:
            resp = client.secrets.kv.v2.read_secret_version(
                mount_point=mount, path=path, raise_on_deleted_version=True
            )
            kv_data = resp["data"]["data"] or {}
            kv_ok = True
        except Exception as e:
            kv_err = type(e).__name__

        custody_ok = False
        try:
            mounts = client.sys.list_mounted_secrets_engines()
            listed = mounts.get("data", mounts)
            custody_ok = f"{custody_mount.strip('/')}/" in listed
        except Exception as e:
            LOG.warning("custody mount check failed: %s", type(e).__name__)

        report = []
        missing = []
        for key in required:
            if key in kv_data:
                source, value = "KV", kv_data.get(key)
            elif key in os.environ:
                source, value = "ENV", os.environ.get(key)
            else:
                source, value = "MISSING", None
                missing.append(key)
            report.append({"key": key, "source": source, "value": value})

        secret_value = next((r["value"] for r in report if r["key"] == "CRYPTO_SECRET"), None)
        secret_err = _check_crypto_secret(secret_value) if secret_value is not None else None

        ok = not missing and secret_err is None and custody_ok

        if as_json:
            out = {
                "openbao": {
                    "addr": addr,
                    "auth": auth_method,
                    "kv_ok": kv_ok,
                    "mount": mount,
                    "path": path,
                    "error": kv_err,
                },
                "custody": {"mount": custody_mount, "mounted": custody_ok},
                "crypto_secret_error": secret_err,
                "required": required,
                "report": [
                    {"key": r["key"], "source": r["source"], "value_masked": _mask(r["value"])}
                    for r in report
                ],
                "missing": missing,
                "ok": ok,
            }
            print(json.dumps(out, ensure_ascii=False, indent=2))
        else:
            self.stdout.write(
                self.style.NOTICE(
                    f"OpenBao: addr={addr} auth={auth_method} mount={mount} path={path} kv_ok={kv_ok}"
                )
            )
            if kv_err:
                self.stderr.write(self.style.WARNING(f"OpenBao KV read error: {kv_err}"))
            self.stdout.write(
                self.style.NOTICE(f"Custody mount: {custody_mount} mounted={custody_ok}")
            )
            self.stdout.write(self.style.SUCCESS("Required keys status:"))
            for r in report:
                self.stdout.write(f"  {r['key']:>24}  {r['source']:<7}  {_mask(r['value'])}")
            if secret_err:
                self.stderr.write(self.style.ERROR(f"CRYPTO_SECRET invalid: {secret_err}"))
            if missing:
                self.stderr.write(self.style.ERROR(f"Missing required: {', '.join(missing)}"))

        sys.exit(0 if ok else 1)
