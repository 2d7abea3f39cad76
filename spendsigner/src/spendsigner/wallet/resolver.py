"""
Computes the unlocking data (witness stack and signature script) for wallet
owned P2WPKH and P2SH-P2WPKH outputs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from coincurve import PrivateKey
from loguru import logger

from spendsigner.wallet.address import hash160
from spendsigner.wallet.errors import (
    SigningFailedError,
    TweakFailedError,
    UnsupportedAddressTypeError,
)
from spendsigner.wallet.keystore import KeyStore, ManagedAddress
from spendsigner.wallet.models import AddressType, InputScript
from spendsigner.wallet.script import ScriptBuilder, ScriptError, p2wpkh_script
from spendsigner.wallet.signing import (
    Transaction,
    TransactionSigningError,
    TxOutput,
    TxSigHashes,
    witness_signature,
)

# Transforms the private key before it is used to sign an input
PrivKeyTweaker = Callable[[PrivateKey], PrivateKey]


@contextmanager
def _scoped_private_key(managed: ManagedAddress) -> Iterator[list[PrivateKey]]:
    # The key is held in a one-slot list so a tweak can replace it and the
    # slot is cleared on every exit path. coincurve keeps its own immutable
    # copy of the secret, so dropping the references is all we can do.
    holder = [managed.private_key()]
    try:
        yield holder
    finally:
        holder.clear()


def _signing_program(
    managed: ManagedAddress, private_key: PrivateKey, output: TxOutput
) -> tuple[bytes, bytes]:
    """Return (witness program used for the digest, sig_script)."""
    address_type = managed.address_type

    if address_type == AddressType.NESTED_WITNESS_PUB_KEY:
        # The P2SH redeem script is the P2WPKH program itself, so the
        # sig_script is a single push of that program.
        pubkey_hash = hash160(private_key.public_key.format(compressed=True))
        witness_program = p2wpkh_script(pubkey_hash)
        try:
            sig_script = ScriptBuilder().add_data(witness_program).script()
        except ScriptError as e:
            raise SigningFailedError(f"Failed to build sig_script: {e}") from e
        return witness_program, sig_script

    if address_type == AddressType.WITNESS_PUB_KEY_HASH:
        # BIP143 expands the program into a P2PKH scriptCode inside the
        # sighash computation.
        return output.script, b""

    raise UnsupportedAddressTypeError(
        f"Cannot compute input script for {address_type.value} address {managed.address}"
    )


def _apply_tweak(tweaker: PrivKeyTweaker, private_key: PrivateKey) -> PrivateKey:
    try:
        tweaked = tweaker(private_key)
    except TweakFailedError:
        raise
    except Exception as e:
        raise TweakFailedError(f"Private key tweak failed: {e}") from e

    if not isinstance(tweaked, PrivateKey):
        raise TweakFailedError(f"Private key tweak returned {type(tweaked).__name__}")
    return tweaked


def compute_input_script(
    key_store: KeyStore,
    tx: Transaction,
    output: TxOutput,
    input_index: int,
    sig_hashes: TxSigHashes | None,
    hash_type: int,
    tweaker: PrivKeyTweaker | None = None,
) -> InputScript:
    """Generate the witness stack and sig_script spending a wallet output.

    Args:
        key_store: Wallet keys, looked up by output.script
        tx: The spending transaction
        output: The previous output spent by tx.inputs[input_index]
        input_index: Index of the input to sign
        sig_hashes: BIP143 midstate for tx, computed on demand when None
        hash_type: Sighash type
        tweaker: Optional transform applied to the private key before signing

    Returns:
        InputScript with a [signature, pubkey] witness and a sig_script that
        is empty for native P2WPKH and a single program push for P2SH-P2WPKH

    Raises:
        UnknownOutputError: output.script does not belong to the wallet
        KeyUnavailableError: the address is watch-only
        UnsupportedAddressTypeError: the address is not a pubkey-hash segwit type
        TweakFailedError: tweaker raised or returned something other than a key
        SigningFailedError: the signature could not be produced
    """
    managed = key_store.fetch_output_addr(output.script)

    with _scoped_private_key(managed) as key:
        witness_program, sig_script = _signing_program(managed, key[0], output)

        if tweaker is not None:
            key[0] = _apply_tweak(tweaker, key[0])

        logger.debug(
            f"Signing input {input_index} ({managed.address_type.value}, "
            f"hash type {hash_type:#x})"
        )

        try:
            witness = witness_signature(
                tx,
                sig_hashes,
                input_index,
                output.value,
                witness_program,
                hash_type,
                key[0],
                compress=True,
            )
        except TransactionSigningError as e:
            raise SigningFailedError(f"Failed to sign input {input_index}: {e}") from e

    return InputScript(witness=witness, sig_script=sig_script)
