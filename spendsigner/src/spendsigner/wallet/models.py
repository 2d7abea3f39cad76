"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"


class AddressType(str, Enum):
    """Output-locking conventions the key store can hold keys for."""

    PUB_KEY_HASH = "p2pkh"
    WITNESS_PUB_KEY_HASH = "p2wpkh"
    NESTED_WITNESS_PUB_KEY = "p2sh-p2wpkh"


@dataclass(frozen=True)
class InputScript:
    """Unlocking data for a single input"""

    witness: list[bytes] = field(default_factory=list)
    sig_script: bytes = b""
