import unittest
from lending_vault.accounts import VaultAccounts
from lending_vault.errors import (
    AccessDenied,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAddress,
    NotAuthorized,
    PluginAlreadyPlugged,
    PluginNotFound,
    UnknownAccount,
    UnknownAsset,
)
from lending_vault.keys import ZERO_ADDRESS, AccountKey
from lending_vault.ledger import Ledger
from lending_vault.plugin import PLUGIN_NAME, LendingPlugin
from lending_vault.tokens import BadgeCollection, StableCoin


class TestStableCoin(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger(start_time=0)
        self.minter, self.alice, self.bob, self.spender = [AccountKey().address for _ in range(4)]
        self.coin = StableCoin(self.ledger, self.minter)
        self.coin.mint(self.minter, self.alice, 1000)

    def test_mint_is_restricted(self):
        with self.assertRaises(AccessDenied):
            self.coin.mint(self.alice, self.alice, 1)
        self.assertEqual(self.coin.total_supply(), 1000)

    def test_transfer(self):
        self.coin.transfer(self.alice, self.bob, 250)
        self.assertEqual(self.coin.balance_of(self.alice), 750)
        self.assertEqual(self.coin.balance_of(self.bob), 250)

        with self.assertRaises(InsufficientBalance):
            self.coin.transfer(self.bob, self.alice, 251)

    def test_transfer_from_uses_allowance(self):
        self.coin.approve(self.alice, self.spender, 300)
        self.coin.transfer_from(self.spender, self.alice, self.bob, 200)

        self.assertEqual(self.coin.allowance(self.alice, self.spender), 100)
        self.assertEqual(self.coin.balance_of(self.bob), 200)

        with self.assertRaises(InsufficientAllowance):
            self.coin.transfer_from(self.spender, self.alice, self.bob, 101)

    def test_allowance_beyond_balance(self):
        self.coin.approve(self.alice, self.spender, 5000)
        with self.assertRaises(InsufficientBalance):
            self.coin.transfer_from(self.spender, self.alice, self.bob, 2000)
        self.assertEqual(self.coin.allowance(self.alice, self.spender), 5000)

    def test_transfer_to_malformed_address(self):
        with self.assertRaises(InvalidAddress):
            self.coin.transfer(self.alice, "garbage", 10)
        with self.assertRaises(InvalidAddress):
            self.coin.transfer(self.alice, ZERO_ADDRESS, 10)
        self.assertEqual(self.coin.balance_of(self.alice), 1000)


class TestBadgeCollection(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger(start_time=0)
        self.minter, self.alice, self.bob = [AccountKey().address for _ in range(3)]
        self.badge = BadgeCollection(self.ledger, self.minter, "MagicBadge")
        self.badge.mint(self.minter, self.alice, 1)

    def test_mint(self):
        self.assertEqual(self.badge.owner_of(1), self.alice)
        event = self.ledger.last_event("Transfer")
        self.assertEqual(event.args, (ZERO_ADDRESS, self.alice, 1))

        with self.assertRaises(ValueError):
            self.badge.mint(self.minter, self.bob, 1)
        with self.assertRaises(UnknownAsset):
            self.badge.owner_of(2)

    def test_approved_transfer(self):
        self.badge.approve(self.alice, self.bob, 1)
        self.assertEqual(self.badge.get_approved(1), self.bob)

        self.badge.transfer_custody(self.bob, self.alice, self.bob, 1)
        self.assertEqual(self.badge.owner_of(1), self.bob)
        self.assertIsNone(self.badge.get_approved(1))

    def test_unapproved_transfer(self):
        with self.assertRaises(NotAuthorized):
            self.badge.transfer_custody(self.bob, self.alice, self.bob, 1)
        with self.assertRaises(NotAuthorized):
            self.badge.approve(self.bob, self.bob, 1)

    def test_transfer_to_malformed_address(self):
        with self.assertRaises(InvalidAddress):
            self.badge.transfer_custody(self.alice, self.alice, "garbage", 1)
        self.assertEqual(self.badge.owner_of(1), self.alice)


class TestVaultAccounts(unittest.TestCase):

    def setUp(self):
        self.ledger = Ledger(start_time=0)
        self.alice, self.bob = AccountKey().address, AccountKey().address
        self.accounts = VaultAccounts(self.ledger)
        self.account_id = self.accounts.mint(self.alice)

    def test_plug(self):
        plugin = self.accounts.plug(self.alice, self.account_id)

        self.assertIsInstance(plugin, LendingPlugin)
        self.assertEqual(self.accounts.plugin_address_for(self.account_id, PLUGIN_NAME), plugin.address)
        self.assertEqual(plugin.owner, self.alice)
        event = self.ledger.last_event("PluginStatusChange")
        self.assertEqual(event.args, (self.account_id, PLUGIN_NAME, plugin.address, True))

        with self.assertRaises(PluginAlreadyPlugged):
            self.accounts.plug(self.alice, self.account_id)

    def test_plug_restrictions(self):
        with self.assertRaises(AccessDenied):
            self.accounts.plug(self.bob, self.account_id)
        with self.assertRaises(PluginNotFound):
            self.accounts.plug(self.alice, self.account_id, "SomethingElse")
        with self.assertRaises(UnknownAccount):
            self.accounts.plug(self.alice, 42)
        self.assertEqual(self.accounts.plugin_address_for(self.account_id, PLUGIN_NAME), ZERO_ADDRESS)

    def test_account_ids_are_sequential(self):
        self.assertEqual(self.accounts.mint(self.bob), self.account_id + 1)
        self.assertTrue(self.accounts.exists(self.account_id))
        self.assertFalse(self.accounts.exists(99))


if __name__ == '__main__':
    unittest.main()
