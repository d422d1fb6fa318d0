"""
Error types for the lending vault.

Every rule violation raised by the rules engine, the lending plugin or the
collaborator contracts derives from LendingError, which is a ValueError so
callers that only care about "the request was rejected" can keep catching
ValueError. The error name doubles as a stable code for the web API.
"""

from typing import Any, Dict, Mapping, Optional


class LendingError(ValueError):
    """Base class for lending vault domain errors."""

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None):
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# Access and configuration

class AccessDenied(LendingError):
    """Caller is not the owner of the rules engine or of the vault account."""


class InvalidAddress(LendingError):
    """A null or unknown address was given where a real one is required."""


class TreasuryWalletZeroAddress(InvalidAddress):
    pass


class InvalidAmount(LendingError):
    """Fees and periods must be non-negative integers."""


class LendingRulesNotSet(LendingError):
    """The plugin has not been bound to a rules engine yet."""


# Deposit lifecycle

class UnsupportedStableCoin(LendingError):
    pass


class WithdrawalNotAllowedYet(LendingError):
    pass


class NotDepositor(LendingError):
    pass


class AssetAlreadyHeld(LendingError):
    pass


class AssetNotHeld(LendingError):
    pass


class PluginNotFound(LendingError):
    """The destination account has no compatible lending plugin."""


class PluginAlreadyPlugged(LendingError):
    pass


class InvalidDestination(LendingError):
    pass


# Collaborator contracts

class NotAuthorized(LendingError):
    """Asset custody transfer without ownership or approval."""


class UnknownAsset(LendingError):
    pass


class InsufficientAllowance(LendingError):
    pass


class InsufficientBalance(LendingError):
    pass


class UnknownAccount(LendingError):
    pass
