from config.env import env, env_get

# JSON-RPC endpoint of the ledger node
LEDGER_RPC_URL = env_get("LEDGER_RPC_URL", default="")
# Platform signer relaying meta-transactions (hex private key)
LEDGER_SIGNER_KEY = env_get("LEDGER_SIGNER_KEY", default="")
LEDGER_CONTRACT_ADDRESS = env_get("LEDGER_CONTRACT_ADDRESS", default="")
# Explorer base, the tx hash is appended as-is (ex: https://explorer.example/tx/)
LEDGER_ONCHAIN_URL = env("LEDGER_ONCHAIN_URL", default="")

LEDGER_RPC_TIMEOUT = env.float("LEDGER_RPC_TIMEOUT", default=10.0)  # seconds
LEDGER_TX_TIMEOUT = env.float("LEDGER_TX_TIMEOUT", default=120.0)  # seconds
LEDGER_POLL_LATENCY = env.float("LEDGER_POLL_LATENCY", default=1.0)  # seconds
# Build output of the deployed contract; empty = packaged ABI
LEDGER_ABI_PATH = env("LEDGER_ABI_PATH", default="")
