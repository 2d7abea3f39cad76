"""
Pytest configuration and fixtures for signer tests.
"""

from __future__ import annotations

import pytest
from coincurve import PrivateKey

from spendsigner.wallet.keystore import KeyStore
from spendsigner.wallet.models import AddressType, NetworkType
from spendsigner.wallet.signing import (
    Transaction,
    TxInput,
    TxOutput,
    deserialize_transaction,
)

# BIP143 native P2WPKH example: the second input spends a P2WPKH output
BIP143_P2WPKH_UNSIGNED_TX = (
    "0100000002fff7f7881a8099afa6940d42d1e7f6362bec38171ea3edf433541db4e4ad969f"
    "0000000000eeffffffef51e1b804cc89d182d279655c3aa89e815b1b309fe287d9b2b55d57"
    "b90ec68a0100000000ffffffff02202cb206000000001976a9148280b37df378db99f66f85"
    "c95a783a76ac7a6d5988ac9093510d000000001976a9143bde42dbee7e4dbe6a21b2d50ce2"
    "f0167faa815988ac11000000"
)
BIP143_P2WPKH_PRIVKEY = "619c335025c7f4012e556c2a58b2506e30b8511b53ade95ea316fd8c3286feb9"
BIP143_P2WPKH_SCRIPT = "00141d0f172a0ecb48aee1be1f2687d2963ae33f71a1"
BIP143_P2WPKH_VALUE = 600_000_000
BIP143_P2WPKH_SIGHASH = "c37af31116d1b27caf68aae9e3ac82f1477929014d5b917657d0eb49478cb670"

# BIP143 P2SH-P2WPKH example
BIP143_NESTED_UNSIGNED_TX = (
    "0100000001db6b1b20aa0fd7b23880be2ecbd4a98130974cf4748fb66092ac4d3ceb1a5477"
    "0100000000feffffff02b8b4eb0b000000001976a914a457b684d7f0d539a46a45bbc043f3"
    "5b59d0d96388ac0008af2f000000001976a914fd270b1ee6abcaea97fea7ad0402e8bd8ad6"
    "d77c88ac92040000"
)
BIP143_NESTED_PRIVKEY = "eb696a065ef48a2192da5b28b694f87544b30fae8327c4510137a922f32c6dcf"
BIP143_NESTED_SCRIPT = "a9144733f37cf4db86fbc2efed2500b4f4e49f31202387"
BIP143_NESTED_PROGRAM = "001479091972186c449eb1ded22b78e40d009bdf0089"
BIP143_NESTED_VALUE = 1_000_000_000
BIP143_NESTED_SIGHASH = "64f3b0f4dd2bb3aa1ce8566d220cc74dda9df97d8490cc81d89d735c92e59fb6"


@pytest.fixture
def test_mnemonic() -> str:
    """Test mnemonic (BIP39 test vector)"""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def p2wpkh_tx() -> Transaction:
    return deserialize_transaction(bytes.fromhex(BIP143_P2WPKH_UNSIGNED_TX))


@pytest.fixture
def nested_tx() -> Transaction:
    return deserialize_transaction(bytes.fromhex(BIP143_NESTED_UNSIGNED_TX))


@pytest.fixture
def p2wpkh_key() -> PrivateKey:
    return PrivateKey(bytes.fromhex(BIP143_P2WPKH_PRIVKEY))


@pytest.fixture
def nested_key() -> PrivateKey:
    return PrivateKey(bytes.fromhex(BIP143_NESTED_PRIVKEY))


@pytest.fixture
def p2wpkh_output() -> TxOutput:
    return TxOutput(value=BIP143_P2WPKH_VALUE, script=bytes.fromhex(BIP143_P2WPKH_SCRIPT))


@pytest.fixture
def nested_output() -> TxOutput:
    return TxOutput(value=BIP143_NESTED_VALUE, script=bytes.fromhex(BIP143_NESTED_SCRIPT))


@pytest.fixture
def key_store(p2wpkh_key: PrivateKey, nested_key: PrivateKey) -> KeyStore:
    """Key store holding the keys of both BIP143 examples."""
    store = KeyStore(NetworkType.MAINNET)
    store.import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)
    store.import_private_key(nested_key, AddressType.NESTED_WITNESS_PUB_KEY)
    return store


@pytest.fixture
def simple_tx() -> Transaction:
    """Single input, single output segwit transaction."""
    return Transaction(
        version=bytes.fromhex("02000000"),
        marker_flag=True,
        inputs=[
            TxInput(
                txid_le=bytes(32),
                vout=0,
                script=b"",
                sequence=b"\xff\xff\xff\xff",
            )
        ],
        outputs=[TxOutput(value=50000, script=bytes.fromhex("0014" + "00" * 20))],
        locktime=bytes(4),
    )
