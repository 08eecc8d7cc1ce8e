DEFAULT_BASE_DIR = "~/.simple-wallet"
DEFAULT_TIMEOUT = 10.0

# Wallet types
WALLET_TYPE_ND = "non-deterministic"
WALLET_TYPE_HD = "hierarchical deterministic"

# Dynamically-derived account names start with a BIP-32 path marker.
DERIVATION_PATH_PREFIX = "m/"
# m/44'/60'/0'/0/<index>
DEFAULT_HD_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"

# Storage layout
WALLET_FILENAME = "wallet.json"
ACCOUNTS_DIRNAME = "accounts"
KEYFILE_KDF = "scrypt"

SYMBOL_CHECK = "✔"
SYMBOL_CROSS = "✗"
SYMBOL_WARNING = "⚠️"
