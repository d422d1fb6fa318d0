"""
Lending Vault - asset custody escrow for vault accounts
Lending plugins hold deposited badges under a central lending rules engine
"""

from .accounts import VaultAccounts
from .config import LendingConfig
from .errors import LendingError
from .keys import ZERO_ADDRESS, AccountKey
from .ledger import Event, Ledger
from .plugin import PLUGIN_NAME, DepositRecord, LendingPlugin, TransferFeePolicy
from .rights import OWNERSHIP_RIGHT, RightsRegistry
from .rules import LendingRules, SpecialTerms
from .tokens import BadgeCollection, StableCoin

__version__ = "0.1.0"
__all__ = [
    "AccountKey",
    "BadgeCollection",
    "DepositRecord",
    "Event",
    "Ledger",
    "LendingConfig",
    "LendingError",
    "LendingPlugin",
    "LendingRules",
    "OWNERSHIP_RIGHT",
    "PLUGIN_NAME",
    "RightsRegistry",
    "SpecialTerms",
    "StableCoin",
    "TransferFeePolicy",
    "VaultAccounts",
    "ZERO_ADDRESS",
]
