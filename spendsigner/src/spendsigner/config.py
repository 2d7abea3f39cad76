"""
Configuration for the wallet signer.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from spendsigner.wallet.models import AddressType, NetworkType
from spendsigner.wallet.signing import SIGHASH_ALL, is_valid_hash_type

VALID_MNEMONIC_WORD_COUNTS = (12, 15, 18, 21, 24)


class SignerConfig(BaseModel):
    """Configuration for the wallet signer."""

    # Wallet settings
    mnemonic: str
    passphrase: str = ""
    network: NetworkType = NetworkType.MAINNET

    # Wallet structure
    account: int = Field(default=0, ge=0)
    gap_limit: int = Field(default=20, ge=1, le=1000)
    address_types: list[AddressType] = Field(
        default_factory=lambda: [
            AddressType.WITNESS_PUB_KEY_HASH,
            AddressType.NESTED_WITNESS_PUB_KEY,
        ],
        min_length=1,
    )

    # Signing
    hash_type: int = Field(default=SIGHASH_ALL, description="Default sighash type")

    log_level: str = "INFO"

    @field_validator("mnemonic")
    @classmethod
    def validate_mnemonic(cls, v: str) -> str:
        words = v.split()
        if len(words) not in VALID_MNEMONIC_WORD_COUNTS:
            raise ValueError(f"mnemonic must have 12, 15, 18, 21 or 24 words, got {len(words)}")
        return " ".join(words)

    @field_validator("hash_type")
    @classmethod
    def validate_hash_type(cls, v: int) -> int:
        if not is_valid_hash_type(v):
            raise ValueError(f"hash_type {v:#x} is not a valid sighash type")
        return v
