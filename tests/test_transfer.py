import unittest
from lending_vault.accounts import VaultAccounts
from lending_vault.config import DAY, LendingConfig
from lending_vault.errors import (
    AssetNotHeld,
    InsufficientAllowance,
    InvalidDestination,
    LendingRulesNotSet,
    NotDepositor,
    PluginNotFound,
    UnsupportedStableCoin,
    WithdrawalNotAllowedYet,
)
from lending_vault.keys import ZERO_ADDRESS, AccountKey
from lending_vault.ledger import Ledger
from lending_vault.plugin import LendingPlugin, TransferFeePolicy
from lending_vault.rights import OWNERSHIP_RIGHT, holders_of
from lending_vault.rules import LendingRules
from lending_vault.tokens import BadgeCollection, StableCoin

THREE_DAYS = 3 * DAY


class TestTransferToPlugin(unittest.TestCase):

    def setUp(self):
        """Two vaults, each with a lending plugin, sharing one rules engine"""
        self.ledger = Ledger(start_time=1_700_000_000)
        self.deployer, self.treasury, self.user1, self.user2, self.depositor = [
            AccountKey().address for _ in range(5)
        ]

        self.usdc = StableCoin(self.ledger, self.deployer)
        self.usdc.mint(self.deployer, self.depositor, 1000)

        self.rules = LendingRules(self.ledger, self.deployer, self.treasury, 100, THREE_DAYS)
        self.rules.set_stable_coin(self.deployer, self.usdc.address, True)

        self.badge = BadgeCollection(self.ledger, self.deployer, "MagicBadge")
        self.badge.mint(self.deployer, self.depositor, 1)

        self.accounts = VaultAccounts(self.ledger)
        self.account1 = self.accounts.mint(self.user1)
        self.account2 = self.accounts.mint(self.user2)
        self.plugin1 = self.accounts.plug(self.user1, self.account1)
        self.plugin2 = self.accounts.plug(self.user2, self.account2)
        self.plugin1.set_lending_rules_address(self.user1, self.rules.address)
        self.plugin2.set_lending_rules_address(self.user2, self.rules.address)

        self.badge.approve(self.depositor, self.plugin1.address, 1)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)
        self.plugin1.deposit_asset(self.depositor, self.badge.address, 1, self.usdc.address)

    def _holders(self):
        return holders_of(self.ledger.contracts(LendingPlugin), self.badge.address, 1, OWNERSHIP_RIGHT)

    def test_transfer_after_lock(self):
        """Rights move to the destination and a fresh lock starts there"""
        self.ledger.advance(THREE_DAYS + 1)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)
        treasury_before = self.usdc.balance_of(self.treasury)

        record = self.plugin1.transfer_asset_to_plugin(
            self.depositor, self.badge.address, 1, self.account2, self.usdc.address
        )

        self.assertEqual(self.plugin1.rights_holder_of(self.badge.address, 1), ZERO_ADDRESS)
        self.assertEqual(self.plugin2.rights_holder_of(self.badge.address, 1), self.plugin2.address)
        self.assertEqual(self._holders(), [self.plugin2.address])
        self.assertEqual(self.badge.owner_of(1), self.plugin2.address)
        self.assertEqual(self.usdc.balance_of(self.treasury) - treasury_before, 100)

        self.assertIsNone(self.plugin1.deposit_of(self.badge.address, 1))
        self.assertEqual(record, self.plugin2.deposit_of(self.badge.address, 1))
        self.assertEqual(record.depositor, self.depositor)
        self.assertEqual(record.deposit_timestamp, self.ledger.now)
        self.assertEqual(record.unlock_time, self.ledger.now + THREE_DAYS)

        moved = self.ledger.last_event("AssetTransferredToPlugin", self.plugin1.address)
        self.assertEqual(moved.args, (self.badge.address, 1, self.depositor, self.account2))
        received = self.ledger.last_event("AssetReceived", self.plugin2.address)
        self.assertEqual(received.args, (self.badge.address, 1, self.depositor, THREE_DAYS))

    def test_withdraw_at_destination(self):
        """Deposit, transfer, then withdraw from the destination"""
        self.ledger.advance(THREE_DAYS)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)
        self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                              self.account2, self.usdc.address)

        with self.assertRaises(WithdrawalNotAllowedYet):
            self.plugin2.withdraw_asset(self.depositor, self.badge.address, 1)
        with self.assertRaises(AssetNotHeld):
            self.plugin1.withdraw_asset(self.depositor, self.badge.address, 1)

        self.ledger.advance(THREE_DAYS)
        # The destination vault owner has no claim on the asset
        with self.assertRaises(NotDepositor):
            self.plugin2.withdraw_asset(self.user2, self.badge.address, 1)

        self.plugin2.withdraw_asset(self.depositor, self.badge.address, 1)
        self.assertEqual(self.badge.owner_of(1), self.depositor)
        self.assertEqual(self._holders(), [])

    def test_transfer_before_lock_fails(self):
        self.ledger.advance(THREE_DAYS - 1)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)

        with self.assertRaises(WithdrawalNotAllowedYet):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  self.account2, self.usdc.address)
        self.assertEqual(self._holders(), [self.plugin1.address])

    def test_transfer_by_non_depositor_fails(self):
        self.ledger.advance(THREE_DAYS)
        with self.assertRaises(NotDepositor):
            self.plugin1.transfer_asset_to_plugin(self.user1, self.badge.address, 1,
                                                  self.account2, self.usdc.address)

    def test_destination_without_plugin(self):
        self.ledger.advance(THREE_DAYS)
        bare_account = self.accounts.mint(self.user2)

        with self.assertRaises(PluginNotFound):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  bare_account, self.usdc.address)
        with self.assertRaises(PluginNotFound):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  999, self.usdc.address)

    def test_transfer_to_self_fails(self):
        self.ledger.advance(THREE_DAYS)
        with self.assertRaises(InvalidDestination):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  self.account1, self.usdc.address)

    def test_destination_without_rules(self):
        self.ledger.advance(THREE_DAYS)
        account3 = self.accounts.mint(self.user2)
        self.accounts.plug(self.user2, account3)

        with self.assertRaises(LendingRulesNotSet):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  account3, self.usdc.address)

    def test_failed_fee_leaves_both_plugins_untouched(self):
        """No window where both or neither plugin holds the asset"""
        self.ledger.advance(THREE_DAYS)
        # Allowance was consumed by the deposit
        with self.assertRaises(InsufficientAllowance):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  self.account2, self.usdc.address)

        self.assertEqual(self._holders(), [self.plugin1.address])
        self.assertTrue(self.plugin1.is_held(self.badge.address, 1))
        self.assertFalse(self.plugin2.is_held(self.badge.address, 1))
        self.assertEqual(self.badge.owner_of(1), self.plugin1.address)
        self.assertIsNone(self.ledger.last_event("AssetTransferredToPlugin"))
        self.assertIsNone(self.ledger.last_event("AssetReceived", self.plugin2.address))

    def test_destination_rules_govern_fee_and_lock(self):
        other_treasury = AccountKey().address
        other_rules = LendingRules(self.ledger, self.deployer, other_treasury, 40, DAY)
        other_rules.set_stable_coin(self.deployer, self.usdc.address, True)
        self.plugin2.set_lending_rules_address(self.user2, other_rules.address)

        self.ledger.advance(THREE_DAYS)
        self.usdc.approve(self.depositor, self.plugin1.address, 40)
        record = self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                       self.account2, self.usdc.address)

        self.assertEqual(record.lock_period, DAY)
        self.assertEqual(self.usdc.balance_of(other_treasury), 40)
        self.assertEqual(self.usdc.balance_of(self.treasury), 100)

    def test_destination_rules_must_approve_currency(self):
        other_rules = LendingRules(self.ledger, self.deployer, self.treasury, 40, DAY)
        self.plugin2.set_lending_rules_address(self.user2, other_rules.address)
        self.ledger.advance(THREE_DAYS)

        with self.assertRaises(UnsupportedStableCoin):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  self.account2, self.usdc.address)

    def test_source_fee_policy(self):
        other_treasury = AccountKey().address
        other_rules = LendingRules(self.ledger, self.deployer, other_treasury, 40, DAY)
        self.plugin2.set_lending_rules_address(self.user2, other_rules.address)
        self.plugin1.set_transfer_fee_policy(self.user1, "source")

        self.ledger.advance(THREE_DAYS)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)
        record = self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                       self.account2, self.usdc.address)

        # Source treasury is paid; the destination still sets the lock
        self.assertEqual(self.usdc.balance_of(self.treasury), 200)
        self.assertEqual(self.usdc.balance_of(other_treasury), 0)
        self.assertEqual(record.lock_period, DAY)

    def test_waived_fee_policy(self):
        self.plugin1.set_transfer_fee_policy(self.user1, TransferFeePolicy.WAIVED)
        self.ledger.advance(THREE_DAYS)

        self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                              self.account2, self.usdc.address)
        self.assertEqual(self.usdc.balance_of(self.treasury), 100)
        self.assertEqual(self._holders(), [self.plugin2.address])

    def test_policy_from_config(self):
        accounts = VaultAccounts(self.ledger, LendingConfig(transfer_fee_policy="waived"))
        account_id = accounts.mint(self.user1)
        plugin = accounts.plug(self.user1, account_id)
        self.assertIs(plugin.transfer_fee_policy, TransferFeePolicy.WAIVED)

    def test_second_transfer_fails(self):
        self.ledger.advance(THREE_DAYS)
        self.usdc.approve(self.depositor, self.plugin1.address, 100)
        self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                              self.account2, self.usdc.address)

        with self.assertRaises(AssetNotHeld):
            self.plugin1.transfer_asset_to_plugin(self.depositor, self.badge.address, 1,
                                                  self.account2, self.usdc.address)
        self.assertEqual(self._holders(), [self.plugin2.address])


if __name__ == '__main__':
    unittest.main()
