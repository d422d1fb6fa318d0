"""
In-process ledger: a single serialized execution environment for the
lending contracts.

The ledger owns the clock, the directory of deployed contracts and the event
log. State-mutating contract calls run inside ``Ledger.atomic()``; if the
call raises, every registered contract is restored to its snapshot and the
events emitted during the call are dropped, so a failed operation leaves no
partial effect. Nested ``atomic()`` blocks join the outermost unit.
"""

import copy
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .keys import contract_address, new_address, normalize_address

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Event recorded by a contract"""
    emitter: str
    name: str
    args: Tuple[Any, ...]
    timestamp: int

    def to_dict(self) -> dict:
        return {
            'emitter': self.emitter,
            'name': self.name,
            'args': list(self.args),
            'timestamp': self.timestamp
        }


class Ledger:
    """Clock, contract directory and event log shared by all contracts"""

    def __init__(self, start_time: Optional[int] = None):
        self._now = int(time.time()) if start_time is None else int(start_time)
        self._genesis = new_address()
        self._nonce = 0
        self._contracts: Dict[str, 'Contract'] = {}
        self._events: List[Event] = []
        self._in_unit = False

    # ---- Clock -------------------------------------------------------------

    @property
    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move the clock forward and return the new timestamp"""
        if seconds < 0:
            raise ValueError("Ledger time cannot go backwards")
        self._now += int(seconds)
        return self._now

    # ---- Contracts ---------------------------------------------------------

    def register(self, contract: 'Contract') -> str:
        self._nonce += 1
        address = contract_address(self._genesis, self._nonce)
        self._contracts[address] = contract
        return address

    def contract_at(self, address: Optional[str]) -> Optional['Contract']:
        if not address:
            return None
        return self._contracts.get(normalize_address(address))

    def contracts(self, kind: type = None) -> List['Contract']:
        if kind is None:
            return list(self._contracts.values())
        return [c for c in self._contracts.values() if isinstance(c, kind)]

    # ---- Events ------------------------------------------------------------

    def emit(self, emitter: str, name: str, args: Tuple[Any, ...]) -> Event:
        event = Event(emitter=emitter, name=name, args=tuple(args), timestamp=self._now)
        self._events.append(event)
        return event

    def events(self, name: str = None, emitter: str = None) -> List[Event]:
        return [
            e for e in self._events
            if (name is None or e.name == name) and (emitter is None or e.emitter == emitter)
        ]

    def last_event(self, name: str = None, emitter: str = None) -> Optional[Event]:
        matching = self.events(name, emitter)
        return matching[-1] if matching else None

    # ---- Units of work -----------------------------------------------------

    @contextmanager
    def atomic(self) -> Iterator['Ledger']:
        """All-or-nothing unit spanning every contract on this ledger"""
        if self._in_unit:
            yield self
            return

        snapshots = {address: c.snapshot() for address, c in self._contracts.items()}
        event_count = len(self._events)
        nonce = self._nonce
        self._in_unit = True
        try:
            yield self
        except Exception as exc:
            for address in list(self._contracts):
                if address not in snapshots:
                    del self._contracts[address]
            for address, state in snapshots.items():
                self._contracts[address].restore(state)
            del self._events[event_count:]
            self._nonce = nonce
            log.debug("Rolled back unit of work: %s", exc)
            raise
        finally:
            self._in_unit = False


class Contract:
    """Stateful object deployed on a ledger

    Subclasses list their mutable attributes in ``_STATE`` so the ledger can
    snapshot and restore them around a unit of work.
    """

    _STATE: Tuple[str, ...] = ()

    def __init__(self, ledger: Ledger):
        self.ledger = ledger
        self.address = ledger.register(self)

    def snapshot(self) -> Dict[str, Any]:
        return {name: copy.deepcopy(getattr(self, name)) for name in self._STATE}

    def restore(self, state: Dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    def emit(self, name: str, *args) -> Event:
        return self.ledger.emit(self.address, name, args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"
