from config.env import (  # noqa: F401 - exposed through django.conf.settings
    env,
    env_get,
    OPENBAO_ADDR,
    OPENBAO_TOKEN,
    OPENBAO_ROLE_ID,
    OPENBAO_SECRET_ID,
)

OPENBAO_TIMEOUT = env.int("OPENBAO_TIMEOUT", default=10)

# Custody records live at {CUSTODY_KV_MOUNT}/{CUSTODY_PATH_PREFIX}/{class}/{address}
CUSTODY_KV_MOUNT = env("CUSTODY_KV_MOUNT", default="secret")
CUSTODY_PATH_PREFIX = env("CUSTODY_PATH_PREFIX", default="data/pk")

# AES-256-GCM key, 32 bytes hex-encoded (64 chars)
CRYPTO_SECRET = env_get("CRYPTO_SECRET", default="")
