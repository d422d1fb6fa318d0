"""
Vault accounts: each vault is a numbered account owned by an address, and
plugins such as the lending plugin are attached to a vault by name.
"""

import logging
from typing import Dict, Tuple

from .config import LendingConfig
from .errors import AccessDenied, InvalidAddress, PluginAlreadyPlugged, PluginNotFound, UnknownAccount
from .keys import ZERO_ADDRESS, is_zero_address
from .ledger import Contract, Ledger

log = logging.getLogger(__name__)


class VaultAccounts(Contract):
    """Registry of vault accounts and the plugins plugged into them"""

    _STATE = ("_owners", "_next_id", "_plugins")

    def __init__(self, ledger: Ledger, config: LendingConfig = None):
        super().__init__(ledger)
        self.config = config or LendingConfig()
        self._owners: Dict[int, str] = {}  # account id -> owner
        self._next_id = 1
        self._plugins: Dict[Tuple[int, str], str] = {}  # (account id, plugin name) -> address

    def mint(self, to: str) -> int:
        if is_zero_address(to):
            raise InvalidAddress("Cannot mint a vault to the zero address")

        account_id = self._next_id
        self._next_id += 1
        self._owners[account_id] = to
        self.emit("Transfer", ZERO_ADDRESS, to, account_id)
        return account_id

    def owner_of(self, account_id: int) -> str:
        owner = self._owners.get(account_id)
        if owner is None:
            raise UnknownAccount(f"Vault account {account_id} does not exist")
        return owner

    def exists(self, account_id: int) -> bool:
        return account_id in self._owners

    def transfer_account(self, caller: str, to: str, account_id: int) -> None:
        """Hand a vault to a new owner; plugged plugins follow the vault"""
        if self.owner_of(account_id) != caller:
            raise AccessDenied(f"{caller} does not own vault {account_id}")
        if is_zero_address(to):
            raise InvalidAddress("Cannot transfer a vault to the zero address")

        self._owners[account_id] = to
        self.emit("Transfer", caller, to, account_id)

    def plug(self, caller: str, account_id: int, plugin_name: str = "LendingPlugin"):
        """Create and attach a plugin instance to a vault"""
        from .plugin import PLUGIN_NAME, LendingPlugin

        if self.owner_of(account_id) != caller:
            raise AccessDenied(f"{caller} does not own vault {account_id}")
        if plugin_name != PLUGIN_NAME:
            raise PluginNotFound(f"Unknown plugin {plugin_name!r}")
        if (account_id, plugin_name) in self._plugins:
            raise PluginAlreadyPlugged(f"{plugin_name} already plugged into vault {account_id}")

        with self.ledger.atomic():
            plugin = LendingPlugin(self.ledger, self, account_id,
                                   transfer_fee_policy=self.config.transfer_fee_policy)
            self._plugins[(account_id, plugin_name)] = plugin.address
            self.emit("PluginStatusChange", account_id, plugin_name, plugin.address, True)

        log.info("Plugged %s %s into vault %s", plugin_name, plugin.address, account_id)
        return plugin

    def plugin_address_for(self, account_id: int, plugin_name: str) -> str:
        return self._plugins.get((account_id, plugin_name), ZERO_ADDRESS)
