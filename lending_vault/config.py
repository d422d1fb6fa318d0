"""
Lending vault configuration.

Defaults match the reference deployment: a deposit fee of 100 fee-currency
units and a three day minimum lending period.

Environment overrides (all optional):

  LENDING_DEFAULT_DEPOSIT_FEE=100
  LENDING_DEFAULT_LENDING_PERIOD=259200   # seconds; 0 deploys lock-free rules
  LENDING_TRANSFER_FEE_POLICY=destination  # destination | source | waived

A JSON file named by LENDING_CONFIG_FILE is read first; the environment
overrides the file.
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

DAY = 24 * 60 * 60
TRANSFER_FEE_POLICIES = ("destination", "source", "waived")

_ENV_FIELDS = {
    'LENDING_DEFAULT_DEPOSIT_FEE': ('default_deposit_fee', int),
    'LENDING_DEFAULT_LENDING_PERIOD': ('default_lending_period', int),
    'LENDING_TRANSFER_FEE_POLICY': ('transfer_fee_policy', str),
}


@dataclass
class LendingConfig:
    """Deployment defaults for rules engines and lending plugins"""
    default_deposit_fee: int = 100
    default_lending_period: int = 3 * DAY
    transfer_fee_policy: str = "destination"

    def validate(self) -> None:
        if self.default_deposit_fee < 0:
            raise ValueError(f"Deposit fee must be non-negative, got {self.default_deposit_fee}")
        if self.default_lending_period < 0:
            raise ValueError(f"Lending period must be non-negative, got {self.default_lending_period}")
        if self.transfer_fee_policy not in TRANSFER_FEE_POLICIES:
            raise ValueError(
                f"Unknown transfer fee policy {self.transfer_fee_policy!r}, "
                f"expected one of {', '.join(TRANSFER_FEE_POLICIES)}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'LendingConfig':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        config = cls(**known)
        config.validate()
        return config

    @classmethod
    def from_file(cls, path: Path) -> 'LendingConfig':
        with open(path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'LendingConfig':
        env = os.environ if env is None else env

        values: Dict[str, Any] = {}
        config_file = env.get('LENDING_CONFIG_FILE')
        if config_file:
            values.update(asdict(cls.from_file(Path(config_file))))

        for var, (field_name, cast) in _ENV_FIELDS.items():
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            try:
                values[field_name] = cast(raw)
            except ValueError:
                raise ValueError(f"{var} must be {cast.__name__}, got {raw!r}")

        return cls.from_dict(values)

    def to_dict(self) -> dict:
        return asdict(self)
