"""Ledger Vault Meta information.
   Ledger Vault keeps per-user financial fields encrypted at rest.
"""
__title__ = 'ledger_vault'
__description__ = (
   'Ledger Vault keeps per-user financial fields encrypted at rest '
   'using password-wrapped envelope keys.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2026 Ledger Vault Authors'
__author__ = 'Ledger Vault Authors'
__author_email__ = 'dev@ledger-vault.invalid'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/ledger-vault/ledger-vault'
