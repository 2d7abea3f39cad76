"""
Bitcoin address generation utilities.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import base58
import bech32

from spendsigner.wallet.models import AddressType, NetworkType
from spendsigner.wallet.script import (
    is_p2pkh_script,
    is_p2sh_script,
    is_p2wpkh_script,
    p2pkh_script,
    p2sh_script,
    p2wpkh_script,
)


@dataclass(frozen=True)
class ChainParams:
    bech32_hrp: str
    p2pkh_version: int
    p2sh_version: int
    coin_type: int


MAINNET_PARAMS = ChainParams(bech32_hrp="bc", p2pkh_version=0x00, p2sh_version=0x05, coin_type=0)
TESTNET_PARAMS = ChainParams(bech32_hrp="tb", p2pkh_version=0x6F, p2sh_version=0xC4, coin_type=1)
REGTEST_PARAMS = ChainParams(
    bech32_hrp="bcrt", p2pkh_version=0x6F, p2sh_version=0xC4, coin_type=1
)


def get_chain_params(network: NetworkType | str) -> ChainParams:
    return {
        NetworkType.MAINNET: MAINNET_PARAMS,
        NetworkType.TESTNET: TESTNET_PARAMS,
        NetworkType.SIGNET: TESTNET_PARAMS,
        NetworkType.REGTEST: REGTEST_PARAMS,
    }[NetworkType(network)]


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def pubkey_to_script(pubkey_bytes: bytes, address_type: AddressType) -> bytes:
    """
    Create the scriptPubKey locking funds to a compressed public key.

    For nested P2WPKH this is the P2SH script committing to the P2WPKH
    witness program (BIP49), not the program itself.
    """
    if len(pubkey_bytes) != 33:
        raise ValueError(f"Invalid compressed pubkey length: {len(pubkey_bytes)}")

    pubkey_hash = hash160(pubkey_bytes)

    if address_type == AddressType.WITNESS_PUB_KEY_HASH:
        return p2wpkh_script(pubkey_hash)
    if address_type == AddressType.NESTED_WITNESS_PUB_KEY:
        return p2sh_script(hash160(p2wpkh_script(pubkey_hash)))
    if address_type == AddressType.PUB_KEY_HASH:
        return p2pkh_script(pubkey_hash)

    raise ValueError(f"Unsupported address type: {address_type}")


def script_to_address(script: bytes, network: NetworkType | str = NetworkType.MAINNET) -> str:
    """
    Encode a scriptPubKey as an address.

    Supports P2WPKH (BIP173 bech32), P2PKH and P2SH (base58check).
    """
    params = get_chain_params(network)

    if is_p2wpkh_script(script):
        result = bech32.encode(params.bech32_hrp, 0, script[2:])
        if result is None:
            raise ValueError(f"Failed to encode P2WPKH address: {script.hex()}")
        return result

    if is_p2sh_script(script):
        payload = bytes([params.p2sh_version]) + script[2:22]
        return base58.b58encode_check(payload).decode("ascii")

    if is_p2pkh_script(script):
        payload = bytes([params.p2pkh_version]) + script[3:23]
        return base58.b58encode_check(payload).decode("ascii")

    raise ValueError(f"Unsupported scriptPubKey: {script.hex()}")


def pubkey_to_address(
    pubkey_bytes: bytes,
    address_type: AddressType,
    network: NetworkType | str = NetworkType.MAINNET,
) -> str:
    return script_to_address(pubkey_to_script(pubkey_bytes, address_type), network)
