"""
Rights registry embedded in each lending plugin.

An entry ``(collection, asset_id, right_type) -> holder`` names the plugin
that currently holds a right over an asset. Right types are opaque short
identifiers so new categories (usage, display, ...) need no schema change.
"""

from typing import Dict, Iterable, List, Tuple

from .errors import AssetAlreadyHeld
from .keys import ZERO_ADDRESS, identifier

OWNERSHIP_RIGHT = identifier("ownership")
USAGE_RIGHT = identifier("usage")

RightKey = Tuple[str, int, str]


class RightsRegistry:
    """Address-keyed rights entries for one plugin"""

    def __init__(self):
        self._entries: Dict[RightKey, str] = {}

    def holder_of(self, collection: str, asset_id: int, right_type: str = OWNERSHIP_RIGHT) -> str:
        return self._entries.get((collection, asset_id, right_type), ZERO_ADDRESS)

    def grant(self, collection: str, asset_id: int, right_type: str, holder: str) -> None:
        key = (collection, asset_id, right_type)
        current = self._entries.get(key)
        if current is not None and current != holder:
            raise AssetAlreadyHeld(f"Right {right_type} over {collection} #{asset_id} held by {current}")
        self._entries[key] = holder

    def revoke(self, collection: str, asset_id: int, right_type: str = OWNERSHIP_RIGHT) -> str:
        """Remove an entry and return the previous holder (zero if none)"""
        return self._entries.pop((collection, asset_id, right_type), ZERO_ADDRESS)

    def revoke_all(self, collection: str, asset_id: int) -> List[str]:
        """Remove every right type over an asset, returning the types removed"""
        removed = [k[2] for k in self._entries if k[0] == collection and k[1] == asset_id]
        for right_type in removed:
            del self._entries[(collection, asset_id, right_type)]
        return removed


def holders_of(plugins: Iterable, collection: str, asset_id: int,
               right_type: str = OWNERSHIP_RIGHT) -> List[str]:
    """Every plugin that reports itself as holder of a right"""
    return [
        p.address for p in plugins
        if p.rights_holder_of(collection, asset_id, right_type) == p.address
    ]
