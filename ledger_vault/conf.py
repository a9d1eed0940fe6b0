"""Ledger Vault constants shared by the web adapter and the vault."""

# aiohttp application / request keys
VAULT_CONFIG = 'ledger_vault.config'
VAULT_TRANSPORT = 'ledger_vault.transport'
VAULT_DEK = 'ledger_vault.dek'

# Cookie defaults
SESSION_COOKIE_NAME = 'encryption_dek'
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 days

# Record kinds holding encryption material and financial fields
USERS = 'users'
WALLETS = 'wallets'
TRANSACTIONS = 'transactions'
ASSETS = 'assets'

SALT_FIELD = 'encryption_salt'
WRAPPED_DEK_FIELD = 'encrypted_dek'

SENSITIVE_FIELDS: dict[str, tuple[str, ...]] = {
    WALLETS: ('balance',),
    TRANSACTIONS: ('amount',),
    ASSETS: ('quantity', 'current_price', 'total_value'),
}
