"""
BIP32 HD key derivation.
Provides the key material for BIP84 (native SegWit) and BIP49 (nested SegWit)
account chains.
"""

from __future__ import annotations

import hashlib
import hmac

from coincurve import PrivateKey, PublicKey

from spendsigner.wallet.models import AddressType

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)

HARDENED_OFFSET = 0x80000000

# BIP43 purpose per address type
PURPOSES: dict[AddressType, int] = {
    AddressType.PUB_KEY_HASH: 44,
    AddressType.NESTED_WITNESS_PUB_KEY: 49,
    AddressType.WITNESS_PUB_KEY_HASH: 84,
}


class HDKey:
    """
    Hierarchical Deterministic Key for Bitcoin.
    Implements BIP32 private derivation.
    """

    def __init__(
        self, private_key: PrivateKey, chain_code: bytes, depth: int = 0, path: str = "m"
    ):
        self._private_key = private_key
        self._public_key = private_key.public_key
        self.chain_code = chain_code
        self.depth = depth
        self.path = path

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @classmethod
    def from_seed(cls, seed: bytes) -> HDKey:
        """Create master HD key from seed"""
        hmac_result = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        key_bytes = hmac_result[:32]
        chain_code = hmac_result[32:]

        private_key = PrivateKey(key_bytes)

        return cls(private_key, chain_code, depth=0)

    def derive(self, path: str) -> HDKey:
        """
        Derive child key from path notation (e.g., "m/84'/0'/0'/0/0")
        ' or h indicates hardened derivation
        """
        if not path.startswith("m"):
            raise ValueError("Path must start with 'm'")

        parts = path.split("/")[1:]
        key = self

        for part in parts:
            if not part:
                continue

            hardened = part.endswith("'") or part.endswith("h")
            index = int(part.rstrip("'h"))

            if hardened:
                index += HARDENED_OFFSET

            key = key._derive_child(index)

        return key

    def _derive_child(self, index: int) -> HDKey:
        hardened = index >= HARDENED_OFFSET

        if hardened:
            data = b"\x00" + self._private_key.secret + index.to_bytes(4, "big")
        else:
            data = self._public_key.format(compressed=True) + index.to_bytes(4, "big")

        hmac_result = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        key_offset = hmac_result[:32]
        child_chain = hmac_result[32:]

        offset_int = int.from_bytes(key_offset, "big")
        if offset_int >= SECP256K1_N:
            raise ValueError("Invalid child key")

        parent_key_int = int.from_bytes(self._private_key.secret, "big")
        child_key_int = (parent_key_int + offset_int) % SECP256K1_N

        if child_key_int == 0:
            raise ValueError("Invalid child key")

        child_private_key = PrivateKey(child_key_int.to_bytes(32, "big"))
        label = f"{index - HARDENED_OFFSET}'" if hardened else str(index)

        return HDKey(
            child_private_key, child_chain, depth=self.depth + 1, path=f"{self.path}/{label}"
        )

    def get_public_key_bytes(self, compressed: bool = True) -> bytes:
        return self._public_key.format(compressed=compressed)


def account_path(address_type: AddressType, coin_type: int, account: int = 0) -> str:
    """BIP44-style account path for the given address type, e.g. m/84'/0'/0'"""
    return f"m/{PURPOSES[address_type]}'/{coin_type}'/{account}'"


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """
    Convert BIP39 mnemonic to seed.
    The mnemonic checksum is not validated.
    """
    from hashlib import pbkdf2_hmac

    mnemonic_bytes = mnemonic.encode("utf-8")
    salt = ("mnemonic" + passphrase).encode("utf-8")

    return pbkdf2_hmac("sha512", mnemonic_bytes, salt, 2048, dklen=64)
