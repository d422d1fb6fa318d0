"""
Lending plugin: the per-vault escrow that takes custody of deposited assets.

Each asset ``(collection, asset_id)`` is either Empty (no record) or Held (a
DepositRecord exists and the plugin's rights registry names this plugin as
the ownership holder). Deposits resolve the fee and lock period from the
bound rules engine once and freeze the period into the record, so later
policy changes only affect new deposits.

Every mutating call validates first, then writes local records, then moves
the asset and the fee, all inside one ledger unit of work.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .errors import (
    AccessDenied,
    AssetAlreadyHeld,
    AssetNotHeld,
    InvalidAddress,
    InvalidDestination,
    LendingRulesNotSet,
    NotDepositor,
    PluginNotFound,
    UnsupportedStableCoin,
    WithdrawalNotAllowedYet,
)
from .keys import ZERO_ADDRESS, is_address, is_zero_address, normalize_address
from .ledger import Contract, Ledger
from .rights import OWNERSHIP_RIGHT, RightsRegistry
from .rules import LendingRules
from .tokens import BadgeCollection, StableCoin

log = logging.getLogger(__name__)

PLUGIN_NAME = "LendingPlugin"


class TransferFeePolicy(Enum):
    """Which rules engine charges the fee when custody moves between plugins"""
    DESTINATION = "destination"  # destination rules, paid to destination treasury
    SOURCE = "source"  # source rules, paid to source treasury
    WAIVED = "waived"  # no fee on transfer


@dataclass(frozen=True)
class DepositRecord:
    """An asset held in custody"""
    collection: str
    asset_id: int
    depositor: str
    deposit_timestamp: int
    lock_period: int  # seconds, frozen at deposit time

    @property
    def unlock_time(self) -> int:
        return self.deposit_timestamp + self.lock_period

    def can_release(self, now: int) -> bool:
        return now >= self.unlock_time

    def to_dict(self) -> dict:
        data = asdict(self)
        data['unlock_time'] = self.unlock_time
        return data


class LendingPlugin(Contract):
    """Escrow instance attached to one vault account"""

    _STATE = ("_rules_address", "_deposits", "_rights", "transfer_fee_policy")

    def __init__(self, ledger: Ledger, accounts, account_id: int,
                 transfer_fee_policy=TransferFeePolicy.DESTINATION):
        super().__init__(ledger)
        self.accounts = accounts
        self.account_id = account_id
        self.transfer_fee_policy = TransferFeePolicy(transfer_fee_policy)
        self._rules_address: Optional[str] = None
        self._deposits = {}  # (collection, asset id) -> DepositRecord
        self._rights = RightsRegistry()

    @property
    def owner(self) -> str:
        """Whoever currently owns the vault this plugin is plugged into"""
        return self.accounts.owner_of(self.account_id)

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise AccessDenied(
                f"{caller} does not control vault {self.account_id}",
                details={'caller': caller, 'account_id': self.account_id}
            )

    # ---- Configuration -----------------------------------------------------

    @property
    def lending_rules_address(self) -> Optional[str]:
        return self._rules_address

    def set_lending_rules_address(self, caller: str, rules_address: str) -> None:
        self._only_owner(caller)
        if not isinstance(self.ledger.contract_at(rules_address), LendingRules):
            raise InvalidAddress(f"{rules_address} is not a lending rules contract")

        self._rules_address = rules_address
        self.emit("LendingRulesSet", rules_address)
        log.info("Plugin %s now follows rules %s", self.address, rules_address)

    def set_transfer_fee_policy(self, caller: str, policy) -> None:
        self._only_owner(caller)
        self.transfer_fee_policy = TransferFeePolicy(policy)
        self.emit("TransferFeePolicySet", self.transfer_fee_policy.value)

    def requires_to_manage_transfer(self) -> bool:
        """Vault-level transfers are never intercepted; custody is per asset"""
        return False

    # ---- Reads -------------------------------------------------------------

    def rights_holder_of(self, collection: str, asset_id: int,
                         right_type: str = OWNERSHIP_RIGHT) -> str:
        return self._rights.holder_of(normalize_address(collection), asset_id, right_type)

    def deposit_of(self, collection: str, asset_id: int) -> Optional[DepositRecord]:
        return self._deposits.get((normalize_address(collection), asset_id))

    def is_held(self, collection: str, asset_id: int) -> bool:
        return (normalize_address(collection), asset_id) in self._deposits

    def unlock_time_of(self, collection: str, asset_id: int) -> int:
        return self._held(normalize_address(collection), asset_id).unlock_time

    def deposits(self) -> List[DepositRecord]:
        return list(self._deposits.values())

    def quote_transfer_fee(self, collection: str, destination_account_id: int) -> int:
        """Fee a transfer to the given vault would charge under current policy"""
        destination = self._destination(destination_account_id)
        rules = self._fee_rules(destination._rules())
        return 0 if rules is None else rules.get_deposit_fee(normalize_address(collection))

    # ---- Operations --------------------------------------------------------

    def deposit_asset(self, caller: str, collection: str, asset_id: int,
                      currency: str) -> DepositRecord:
        """Take custody of an asset and charge the deposit fee"""
        collection = normalize_address(collection)
        rules = self._rules()
        coin = self._stable_coin(rules, currency)
        badge = self._collection(collection)
        if self.is_held(collection, asset_id):
            raise AssetAlreadyHeld(f"{collection} #{asset_id} is already in custody")

        fee, lending_period = rules.get_special_terms(collection)

        with self.ledger.atomic():
            record = self._admit(caller, collection, asset_id, lending_period)
            badge.transfer_custody(self.address, caller, self.address, asset_id)
            if fee:
                coin.transfer_from(self.address, caller, rules.get_treasury_wallet(), fee)

        log.info("Plugin %s received %s #%s from %s (fee=%s, lock=%ss)",
                 self.address, collection, asset_id, caller, fee, lending_period)
        return record

    def withdraw_asset(self, caller: str, collection: str, asset_id: int,
                       recipient: Optional[str] = None) -> DepositRecord:
        """Return an asset after its lock period; recipient defaults to caller"""
        collection = normalize_address(collection)
        if not is_zero_address(recipient) and not is_address(recipient):
            raise InvalidAddress(f"Recipient {recipient!r} is not an address")
        record = self._releasable(caller, collection, asset_id)
        badge = self._collection(collection)
        to = caller if is_zero_address(recipient) else recipient

        with self.ledger.atomic():
            self._discharge(collection, asset_id)
            self.emit("AssetWithdrawn", collection, asset_id, record.depositor)
            badge.transfer_custody(self.address, self.address, to, asset_id)

        log.info("Plugin %s released %s #%s to %s", self.address, collection, asset_id, to)
        return record

    def transfer_asset_to_plugin(self, caller: str, collection: str, asset_id: int,
                                 destination_account_id: int, currency: str) -> DepositRecord:
        """Move custody to the lending plugin of another vault

        The depositor stays the controlling party at the destination, a fresh
        lock starts there, and the fee is charged according to
        ``transfer_fee_policy``. Returns the destination's new record.
        """
        collection = normalize_address(collection)
        self._releasable(caller, collection, asset_id)
        destination = self._destination(destination_account_id)
        destination_rules = destination._rules()
        badge = self._collection(collection)
        fee, treasury, coin = self._transfer_fee(destination_rules, collection, currency)
        lending_period = destination_rules.get_lending_period(collection)

        with self.ledger.atomic():
            self._discharge(collection, asset_id)
            self.emit("AssetTransferredToPlugin", collection, asset_id, caller, destination_account_id)
            record = destination._admit(caller, collection, asset_id, lending_period)
            badge.transfer_custody(self.address, self.address, destination.address, asset_id)
            if fee:
                coin.transfer_from(self.address, caller, treasury, fee)

        log.info("Plugin %s moved %s #%s to vault %s (%s, fee=%s)", self.address, collection,
                 asset_id, destination_account_id, destination.address, fee)
        return record

    # ---- Internals ---------------------------------------------------------

    def _rules(self) -> LendingRules:
        if self._rules_address is None:
            raise LendingRulesNotSet(f"Plugin {self.address} has no lending rules")
        return self.ledger.contract_at(self._rules_address)

    def _stable_coin(self, rules: LendingRules, currency: str) -> StableCoin:
        if not rules.is_stable_coin(currency):
            raise UnsupportedStableCoin(
                f"{currency} is not an approved fee currency",
                details={'currency': currency, 'rules': rules.address}
            )
        coin = self.ledger.contract_at(currency)
        if not isinstance(coin, StableCoin):
            raise InvalidAddress(f"{currency} is not a stable coin contract")
        return coin

    def _collection(self, collection: str) -> BadgeCollection:
        badge = self.ledger.contract_at(collection)
        if not isinstance(badge, BadgeCollection):
            raise InvalidAddress(f"{collection} is not an asset collection")
        return badge

    def _held(self, collection: str, asset_id: int) -> DepositRecord:
        record = self._deposits.get((collection, asset_id))
        if record is None:
            raise AssetNotHeld(f"{collection} #{asset_id} is not in custody of {self.address}")
        return record

    def _releasable(self, caller: str, collection: str, asset_id: int) -> DepositRecord:
        record = self._held(collection, asset_id)
        if caller != record.depositor:
            raise NotDepositor(f"{caller} did not deposit {collection} #{asset_id}")
        now = self.ledger.now
        if not record.can_release(now):
            raise WithdrawalNotAllowedYet(
                f"{collection} #{asset_id} unlocks in {record.unlock_time - now}s",
                details={'unlock_time': record.unlock_time, 'now': now}
            )
        return record

    def _destination(self, account_id: int) -> 'LendingPlugin':
        address = self.accounts.plugin_address_for(account_id, PLUGIN_NAME)
        plugin = None if address == ZERO_ADDRESS else self.ledger.contract_at(address)
        if not isinstance(plugin, LendingPlugin):
            raise PluginNotFound(f"Vault {account_id} has no {PLUGIN_NAME}")
        if plugin is self:
            raise InvalidDestination(f"Plugin {self.address} cannot transfer to itself")
        return plugin

    def _fee_rules(self, destination_rules: LendingRules) -> Optional[LendingRules]:
        if self.transfer_fee_policy is TransferFeePolicy.WAIVED:
            return None
        if self.transfer_fee_policy is TransferFeePolicy.SOURCE:
            return self._rules()
        return destination_rules

    def _transfer_fee(self, destination_rules: LendingRules, collection: str,
                      currency: str) -> Tuple[int, Optional[str], Optional[StableCoin]]:
        rules = self._fee_rules(destination_rules)
        if rules is None:
            return 0, None, None

        coin = self._stable_coin(rules, currency)
        return rules.get_deposit_fee(collection), rules.get_treasury_wallet(), coin

    def _admit(self, depositor: str, collection: str, asset_id: int,
               lock_period: int) -> DepositRecord:
        if self.is_held(collection, asset_id):
            raise AssetAlreadyHeld(f"{collection} #{asset_id} is already in custody")

        record = DepositRecord(
            collection=collection,
            asset_id=asset_id,
            depositor=depositor,
            deposit_timestamp=self.ledger.now,
            lock_period=lock_period
        )
        self._deposits[(collection, asset_id)] = record
        self._rights.grant(collection, asset_id, OWNERSHIP_RIGHT, self.address)
        self.emit("AssetReceived", collection, asset_id, depositor, lock_period)
        return record

    def _discharge(self, collection: str, asset_id: int) -> None:
        del self._deposits[(collection, asset_id)]
        self._rights.revoke_all(collection, asset_id)

    def to_dict(self) -> dict:
        return {
            'address': self.address,
            'account_id': self.account_id,
            'lending_rules': self._rules_address,
            'transfer_fee_policy': self.transfer_fee_policy.value,
            'deposits': [r.to_dict() for r in self._deposits.values()]
        }
