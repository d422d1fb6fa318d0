import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .config import LendingConfig
from .errors import AccessDenied, InvalidAddress, InvalidAmount, TreasuryWalletZeroAddress
from .keys import is_zero_address, normalize_address
from .ledger import Contract, Ledger

log = logging.getLogger(__name__)


@dataclass
class SpecialTerms:
    """Per-collection overrides; None falls back to the default"""
    deposit_fee: Optional[int] = None
    lending_period: Optional[int] = None  # seconds


class LendingRules(Contract):
    """Owner-controlled policy for deposit fees, lock periods and fee currencies"""

    _STATE = (
        "owner",
        "_treasury_wallet",
        "_default_deposit_fee",
        "_default_lending_period",
        "_special_terms",
        "_stable_coins",
    )

    def __init__(self, ledger: Ledger, owner: str, treasury_wallet: str,
                 default_deposit_fee: int, default_lending_period: Optional[int] = None):
        super().__init__(ledger)
        if is_zero_address(owner):
            raise InvalidAddress("Rules owner cannot be the zero address")
        if is_zero_address(treasury_wallet):
            raise TreasuryWalletZeroAddress("Treasury wallet cannot be the zero address")

        self.owner = owner
        self._treasury_wallet = treasury_wallet
        self._default_deposit_fee = _check_amount("deposit fee", default_deposit_fee)
        # None deploys the legacy lock-free shape: assets can leave immediately
        self._default_lending_period = _check_amount("lending period", default_lending_period or 0)
        self._special_terms: Dict[str, SpecialTerms] = {}
        self._stable_coins: Dict[str, bool] = {}  # insertion-ordered set

    @classmethod
    def from_config(cls, ledger: Ledger, owner: str, treasury_wallet: str,
                    config: LendingConfig = None) -> 'LendingRules':
        config = config or LendingConfig()
        return cls(ledger, owner, treasury_wallet,
                   config.default_deposit_fee, config.default_lending_period)

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise AccessDenied(
                f"{caller} is not the rules owner",
                details={'caller': caller, 'owner': self.owner}
            )

    # ---- Ownership and treasury -------------------------------------------

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._only_owner(caller)
        if is_zero_address(new_owner):
            raise InvalidAddress("New owner cannot be the zero address")

        previous, self.owner = self.owner, new_owner
        self.emit("OwnershipTransferred", previous, new_owner)
        log.info("Rules %s ownership moved to %s", self.address, new_owner)

    def set_treasury_wallet(self, caller: str, wallet: str) -> None:
        self._only_owner(caller)
        if is_zero_address(wallet):
            raise TreasuryWalletZeroAddress("Treasury wallet cannot be the zero address")

        self._treasury_wallet = wallet
        self.emit("TreasuryWalletSet", wallet)
        log.info("Rules %s treasury wallet set to %s", self.address, wallet)

    def get_treasury_wallet(self) -> str:
        return self._treasury_wallet

    # ---- Defaults ----------------------------------------------------------

    def set_default_deposit_fee(self, caller: str, fee: int) -> None:
        self._only_owner(caller)
        self._default_deposit_fee = _check_amount("deposit fee", fee)
        self.emit("DefaultDepositFeeSet", fee)

    def get_default_deposit_fee(self) -> int:
        return self._default_deposit_fee

    def set_default_lending_period(self, caller: str, period: int) -> None:
        self._only_owner(caller)
        self._default_lending_period = _check_amount("lending period", period)
        self.emit("DefaultLendingPeriodSet", period)

    def get_default_lending_period(self) -> int:
        return self._default_lending_period

    # ---- Per-collection overrides -----------------------------------------

    def set_special_deposit_fee(self, caller: str, collection: str, fee: int) -> None:
        self._only_owner(caller)
        collection = normalize_address(collection)
        _check_amount("deposit fee", fee)
        self._special_terms.setdefault(collection, SpecialTerms()).deposit_fee = fee
        self.emit("SpecialDepositFeeSet", collection, fee)

    def set_special_lending_period(self, caller: str, collection: str, period: int) -> None:
        self._only_owner(caller)
        collection = normalize_address(collection)
        _check_amount("lending period", period)
        self._special_terms.setdefault(collection, SpecialTerms()).lending_period = period
        self.emit("SpecialLendingPeriodSet", collection, period)

    def set_special_terms(self, caller: str, collection: str, fee: int, period: int) -> None:
        """Set both overrides for a collection at once"""
        self._only_owner(caller)
        collection = normalize_address(collection)
        _check_amount("deposit fee", fee)
        _check_amount("lending period", period)
        self._special_terms[collection] = SpecialTerms(deposit_fee=fee, lending_period=period)
        self.emit("SpecialTermsSet", collection, fee, period)
        log.info("Rules %s special terms for %s: fee=%s period=%ss",
                 self.address, collection, fee, period)

    def clear_special_terms(self, caller: str, collection: str) -> None:
        self._only_owner(caller)
        collection = normalize_address(collection)
        if self._special_terms.pop(collection, None) is not None:
            self.emit("SpecialTermsCleared", collection)

    def get_special_terms(self, collection: str) -> Tuple[int, int]:
        """Resolve (deposit_fee, lending_period): override if present, else default"""
        terms = self._special_terms.get(normalize_address(collection), SpecialTerms())
        fee = self._default_deposit_fee if terms.deposit_fee is None else terms.deposit_fee
        period = self._default_lending_period if terms.lending_period is None else terms.lending_period
        return fee, period

    def get_deposit_fee(self, collection: str) -> int:
        return self.get_special_terms(collection)[0]

    def get_lending_period(self, collection: str) -> int:
        return self.get_special_terms(collection)[1]

    def special_terms(self) -> Dict[str, SpecialTerms]:
        return {c: SpecialTerms(t.deposit_fee, t.lending_period) for c, t in self._special_terms.items()}

    # ---- Fee currencies ----------------------------------------------------

    def set_stable_coin(self, caller: str, currency: str, approved: bool) -> None:
        self._only_owner(caller)
        if is_zero_address(currency):
            raise InvalidAddress("Stable coin cannot be the zero address")

        if approved:
            self._stable_coins[currency] = True
        else:
            self._stable_coins.pop(currency, None)
        self.emit("StableCoinSet", currency, approved)

    def get_stable_coins(self) -> Tuple[str, ...]:
        return tuple(self._stable_coins)

    def is_stable_coin(self, currency: str) -> bool:
        return currency in self._stable_coins

    def to_dict(self) -> dict:
        return {
            'address': self.address,
            'owner': self.owner,
            'treasury_wallet': self._treasury_wallet,
            'default_deposit_fee': self._default_deposit_fee,
            'default_lending_period': self._default_lending_period,
            'stable_coins': list(self._stable_coins),
            'special_terms': {
                c: {'deposit_fee': t.deposit_fee, 'lending_period': t.lending_period}
                for c, t in self._special_terms.items()
            }
        }


def _check_amount(what: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidAmount(f"{what} must be a non-negative integer, got {value!r}",
                            details={'value': value})
    return value
