#!/usr/bin/env python3
"""
Example: Configuring lending rules with per-collection special terms
"""

from lending_vault.config import DAY
from lending_vault.keys import AccountKey
from lending_vault.ledger import Ledger
from lending_vault.rules import LendingRules
from lending_vault.tokens import BadgeCollection


def main():
    print("=== Lending Rules and Special Terms ===")
    print()

    ledger = Ledger()
    deployer, treasury = AccountKey().address, AccountKey().address
    rules = LendingRules(ledger, deployer, treasury, 100, 3 * DAY)

    collections = {
        name: BadgeCollection(ledger, deployer, name).address
        for name in ("MagicBadge", "CoolBadge", "SuperTransferableBadge")
    }

    print("📋 Defaults:")
    print(f"   Deposit fee: {rules.get_default_deposit_fee()}")
    print(f"   Lending period: {rules.get_default_lending_period() // DAY} days")
    print(f"   Treasury: {rules.get_treasury_wallet()}")
    print()

    print("🛠️  Applying special terms...")
    rules.set_special_deposit_fee(deployer, collections["CoolBadge"], 50)
    rules.set_special_terms(deployer, collections["SuperTransferableBadge"], 25, DAY)
    print()

    print("🔎 Resolved terms per collection:")
    for name, address in collections.items():
        fee, period = rules.get_special_terms(address)
        print(f"   {name}: fee {fee}, lock {period // DAY} days")
    print()

    print("🔁 Raising the default fee to 150...")
    rules.set_default_deposit_fee(deployer, 150)
    for name, address in collections.items():
        print(f"   {name}: fee {rules.get_deposit_fee(address)}")
    print()

    print("🧹 Clearing CoolBadge overrides...")
    rules.clear_special_terms(deployer, collections["CoolBadge"])
    print(f"   CoolBadge: {rules.get_special_terms(collections['CoolBadge'])}")
    print()

    print("📜 Policy events:")
    for event in ledger.events(emitter=rules.address):
        print(f"   {event.name}{event.args}")


if __name__ == "__main__":
    main()
