"""
spendsigner - Input script resolution for wallet-owned segwit outputs

Computes witness stacks and signature scripts for P2WPKH and P2SH-P2WPKH
inputs from an in-memory key store.
"""

__version__ = "0.1.0"

from spendsigner.wallet.errors import (
    InputScriptError,
    KeyUnavailableError,
    SigningFailedError,
    TweakFailedError,
    UnknownOutputError,
    UnsupportedAddressTypeError,
)
from spendsigner.wallet.keystore import KeyStore, ManagedAddress
from spendsigner.wallet.models import AddressType, InputScript, NetworkType
from spendsigner.wallet.resolver import PrivKeyTweaker, compute_input_script
from spendsigner.wallet.signing import (
    SIGHASH_ALL,
    SIGHASH_ANYONECANPAY,
    SIGHASH_NONE,
    SIGHASH_SINGLE,
    Transaction,
    TxInput,
    TxOutput,
    TxSigHashes,
)

__all__ = [
    "AddressType",
    "InputScript",
    "InputScriptError",
    "KeyStore",
    "KeyUnavailableError",
    "ManagedAddress",
    "NetworkType",
    "PrivKeyTweaker",
    "SIGHASH_ALL",
    "SIGHASH_ANYONECANPAY",
    "SIGHASH_NONE",
    "SIGHASH_SINGLE",
    "SigningFailedError",
    "Transaction",
    "TweakFailedError",
    "TxInput",
    "TxOutput",
    "TxSigHashes",
    "UnknownOutputError",
    "UnsupportedAddressTypeError",
    "compute_input_script",
]
