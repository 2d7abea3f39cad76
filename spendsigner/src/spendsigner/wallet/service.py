"""
Wallet signer service: HD key store plus input script resolution.
"""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from spendsigner.config import SignerConfig
from spendsigner.wallet.address import get_chain_params
from spendsigner.wallet.bip32 import HDKey, account_path, mnemonic_to_seed
from spendsigner.wallet.errors import SigningFailedError
from spendsigner.wallet.keystore import KeyStore
from spendsigner.wallet.models import AddressType, InputScript, NetworkType
from spendsigner.wallet.resolver import PrivKeyTweaker, compute_input_script
from spendsigner.wallet.signing import (
    SIGHASH_ALL,
    Transaction,
    TxOutput,
    TxSigHashes,
    verify_witness_input,
)

DEFAULT_ADDRESS_TYPES = (AddressType.WITNESS_PUB_KEY_HASH, AddressType.NESTED_WITNESS_PUB_KEY)


class WalletSigner:
    """
    Signs inputs spending outputs owned by the wallet's key store.

    Derivation paths: m/{purpose}'/{coin_type}'/{account}'/{change}/{index}
    - purpose: 84 (P2WPKH) or 49 (P2SH-P2WPKH)
    - change: 0 (external/receive), 1 (internal/change)
    """

    def __init__(self, key_store: KeyStore):
        self.key_store = key_store
        self.network = key_store.network

    @classmethod
    def from_mnemonic(
        cls,
        mnemonic: str,
        network: NetworkType | str = NetworkType.MAINNET,
        passphrase: str = "",
        account: int = 0,
        gap_limit: int = 20,
        address_types: tuple[AddressType, ...] | list[AddressType] = DEFAULT_ADDRESS_TYPES,
    ) -> WalletSigner:
        key_store = KeyStore(network)
        master_key = HDKey.from_seed(mnemonic_to_seed(mnemonic, passphrase))
        coin_type = get_chain_params(network).coin_type

        for address_type in address_types:
            account_key = master_key.derive(account_path(address_type, coin_type, account))
            for change in (0, 1):
                chain_key = account_key.derive(f"m/{change}")
                for index in range(gap_limit):
                    key = chain_key.derive(f"m/{index}")
                    key_store.import_private_key(
                        key.private_key, address_type, path=f"{account_key.path}/{change}/{index}"
                    )

        logger.info(
            f"Initialized signer with {len(key_store)} addresses "
            f"({', '.join(t.value for t in address_types)})"
        )
        return cls(key_store)

    @classmethod
    def from_config(cls, config: SignerConfig) -> WalletSigner:
        return cls.from_mnemonic(
            config.mnemonic,
            network=config.network,
            passphrase=config.passphrase,
            account=config.account,
            gap_limit=config.gap_limit,
            address_types=config.address_types,
        )

    def compute_input_script(
        self,
        tx: Transaction,
        output: TxOutput,
        input_index: int,
        sig_hashes: TxSigHashes | None = None,
        hash_type: int = SIGHASH_ALL,
        tweaker: PrivKeyTweaker | None = None,
    ) -> InputScript:
        return compute_input_script(
            self.key_store, tx, output, input_index, sig_hashes, hash_type, tweaker
        )

    def sign_transaction(
        self,
        tx: Transaction,
        prev_outputs: list[TxOutput],
        hash_type: int = SIGHASH_ALL,
        tweakers: dict[int, PrivKeyTweaker] | None = None,
        verify: bool = True,
    ) -> Transaction:
        """
        Sign every input of tx.

        prev_outputs[i] must be the output spent by tx.inputs[i]. The
        original transaction is left untouched; a signed copy is returned.
        """
        if len(prev_outputs) != len(tx.inputs):
            raise ValueError(
                f"Got {len(prev_outputs)} previous outputs for {len(tx.inputs)} inputs"
            )

        tweakers = tweakers or {}
        sig_hashes = TxSigHashes.from_transaction(tx)
        signed_inputs = []

        for index, output in enumerate(prev_outputs):
            result = self.compute_input_script(
                tx, output, index, sig_hashes, hash_type, tweakers.get(index)
            )
            signed_inputs.append(
                replace(tx.inputs[index], script=result.sig_script, witness=list(result.witness))
            )

        signed = replace(tx, marker_flag=True, inputs=signed_inputs, raw=b"")

        if verify:
            for index, output in enumerate(prev_outputs):
                inp = signed.inputs[index]
                # A tweaked key signs for a different pubkey than the output commits to
                if index in tweakers:
                    continue
                if not verify_witness_input(
                    signed, index, output, inp.script, inp.witness, sig_hashes
                ):
                    raise SigningFailedError(f"Signature for input {index} does not verify")

        logger.info(f"Signed {len(signed_inputs)} inputs")
        return signed
