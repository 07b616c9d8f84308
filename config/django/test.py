from .base import *  # noqa

SECRET_KEY = "test-only"

LEDGER_RPC_URL = "http://127.0.0.1:8545"
LEDGER_SIGNER_KEY = "0x" + "11" * 32
LEDGER_CONTRACT_ADDRESS = "0x" + "22" * 20
LEDGER_ONCHAIN_URL = "https://explorer.test/tx/"

OPENBAO_ADDR = "http://127.0.0.1:8200"
OPENBAO_TOKEN = "test-token"
CUSTODY_KV_MOUNT = "secret"
CUSTODY_PATH_PREFIX = "data/pk"
CRYPTO_SECRET = "00" * 32

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
