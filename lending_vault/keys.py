"""
Account keys and address utilities
"""

import hashlib
from typing import Optional, Tuple

from cryptography.hazmat.primitives import hashes
from ecdsa import SECP256k1, SigningKey

ZERO_ADDRESS = "0x" + "00" * 20


class AccountKey:
    """Key pair backing an externally owned account"""

    def __init__(self, private_key: bytes = None):
        if private_key:
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    @property
    def address(self) -> str:
        """Last 20 bytes of the SHA3 digest of the uncompressed public key"""
        digest = hashlib.sha3_256(self.public_key.to_string()).digest()
        return "0x" + digest[-20:].hex()

    def get_private_key_hex(self) -> str:
        return self.private_key.to_string().hex()

    @staticmethod
    def generate_key_pair() -> Tuple[str, str]:
        """Generate new key pair and return (private_key_hex, address)"""
        key = AccountKey()
        return key.get_private_key_hex(), key.address


def new_address() -> str:
    """Fresh externally owned account address"""
    return AccountKey().address


def contract_address(deployer: str, nonce: int) -> str:
    """Deterministic contract address from deployer and nonce"""
    hasher = hashlib.sha3_256()
    hasher.update(b"LENDING_VAULT_CONTRACT_V1")
    hasher.update(bytes.fromhex(deployer[2:]))
    hasher.update(nonce.to_bytes(8, 'big'))
    return "0x" + hasher.digest()[-20:].hex()


def is_address(value) -> bool:
    if not isinstance(value, str) or len(value) != 42 or not value.startswith("0x"):
        return False
    try:
        int(value[2:], 16)
    except ValueError:
        return False
    return True


def normalize_address(value: Optional[str]) -> Optional[str]:
    """Lower-case hex form used as a lookup key"""
    return value.lower() if isinstance(value, str) else value


def is_zero_address(value: Optional[str]) -> bool:
    """None, empty and the all-zero address all count as the null address"""
    if not value:
        return True
    return is_address(value) and int(value[2:], 16) == 0


def identifier(label: str, size: int = 4) -> str:
    """Short opaque identifier derived from a label, e.g. a right type"""
    digest = hashes.Hash(hashes.SHA3_256())
    digest.update(label.encode("utf-8"))
    return "0x" + digest.finalize()[:size].hex()
