#!/usr/bin/env python3
"""
Complete demo of the Lending Vault system
"""

from lending_vault.accounts import VaultAccounts
from lending_vault.config import DAY, LendingConfig
from lending_vault.errors import LendingError
from lending_vault.keys import AccountKey
from lending_vault.ledger import Ledger
from lending_vault.rules import LendingRules
from lending_vault.tokens import BadgeCollection, StableCoin


def main():
    print("=" * 60)
    print("🏦 LENDING VAULT - COMPLETE DEMO")
    print("=" * 60)
    print()

    # Step 1: Setup
    print("🔧 STEP 1: Deploying rules, stable coin and badges")
    print("-" * 40)

    ledger = Ledger()
    names = ["Deployer", "Treasury", "Alice", "Bob", "MayG"]
    people = {name: AccountKey().address for name in names}
    for name, address in people.items():
        print(f"✅ {name}: {address}")

    config = LendingConfig.from_env()
    usdc = StableCoin(ledger, people["Deployer"])
    rules = LendingRules.from_config(ledger, people["Deployer"], people["Treasury"], config)
    rules.set_stable_coin(people["Deployer"], usdc.address, True)
    badge = BadgeCollection(ledger, people["Deployer"], "MagicBadge")

    usdc.mint(people["Deployer"], people["MayG"], 1000)
    badge.mint(people["Deployer"], people["MayG"], 1)

    fee, period = rules.get_special_terms(badge.address)
    print(f"✅ Default terms: fee {fee} {usdc.symbol}, lock {period // DAY} days")
    print()

    # Step 2: Vaults
    print("🏗️  STEP 2: Alice and Bob plug lending plugins into their vaults")
    print("-" * 40)

    accounts = VaultAccounts(ledger, config)
    plugins = {}
    for owner in ("Alice", "Bob"):
        account_id = accounts.mint(people[owner])
        plugin = accounts.plug(people[owner], account_id)
        plugin.set_lending_rules_address(people[owner], rules.address)
        plugins[owner] = (account_id, plugin)
        print(f"✅ {owner}'s vault #{account_id}: plugin {plugin.address}")
    print()

    alice_account, alice_plugin = plugins["Alice"]
    bob_account, bob_plugin = plugins["Bob"]

    # Step 3: Deposit
    print("📥 STEP 3: MayG deposits badge #1 with Alice's plugin")
    print("-" * 40)

    badge.approve(people["MayG"], alice_plugin.address, 1)
    usdc.approve(people["MayG"], alice_plugin.address, fee)
    record = alice_plugin.deposit_asset(people["MayG"], badge.address, 1, usdc.address)

    print(f"✅ Badge owner: {badge.owner_of(1)}")
    print(f"💰 Treasury balance: {usdc.balance_of(people['Treasury'])} {usdc.symbol}")
    print(f"🔒 Unlocks at {record.unlock_time} (now {ledger.now})")
    print()

    # Step 4: Early withdrawal
    print("⏳ STEP 4: Withdrawal attempts")
    print("-" * 40)

    ledger.advance(2 * DAY)
    try:
        alice_plugin.withdraw_asset(people["MayG"], badge.address, 1)
        print("   ❌ UNEXPECTED: Should have failed")
    except LendingError as e:
        print(f"   ✅ EXPECTED FAILURE after 2 days: {e.code}")
    print()

    # Step 5: Transfer
    print("🔁 STEP 5: MayG moves the badge to Bob's plugin after the lock")
    print("-" * 40)

    ledger.advance(DAY)
    transfer_fee = alice_plugin.quote_transfer_fee(badge.address, bob_account)
    usdc.approve(people["MayG"], alice_plugin.address, transfer_fee)
    record = alice_plugin.transfer_asset_to_plugin(people["MayG"], badge.address, 1,
                                                   bob_account, usdc.address)

    print(f"✅ Rights holder at Alice's plugin: {alice_plugin.rights_holder_of(badge.address, 1)}")
    print(f"✅ Rights holder at Bob's plugin:   {bob_plugin.rights_holder_of(badge.address, 1)}")
    print(f"🔒 Fresh lock until {record.unlock_time}, depositor still MayG: "
          f"{record.depositor == people['MayG']}")
    print()

    # Step 6: Final withdrawal
    print("📤 STEP 6: MayG reclaims the badge from Bob's plugin")
    print("-" * 40)

    ledger.advance(period)
    bob_plugin.withdraw_asset(people["MayG"], badge.address, 1)
    print(f"✅ Badge owner: {badge.owner_of(1)}")
    print()

    # Final stats
    print("📊 Final Statistics:")
    print(f"   Treasury balance: {usdc.balance_of(people['Treasury'])} {usdc.symbol}")
    print(f"   MayG balance: {usdc.balance_of(people['MayG'])} {usdc.symbol}")
    print(f"   Events recorded: {len(ledger.events())}")
    for event in ledger.events():
        if event.name.startswith("Asset"):
            print(f"   • {event.name}{event.args}")


if __name__ == "__main__":
    main()
