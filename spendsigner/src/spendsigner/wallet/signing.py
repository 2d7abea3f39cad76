"""
Bitcoin transaction signing utilities for segwit v0 inputs (BIP143).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field

from coincurve import PrivateKey, PublicKey

from spendsigner.wallet.address import hash160
from spendsigner.wallet.script import is_p2sh_script, is_p2wpkh_script, p2wpkh_script_code

SIGHASH_ALL = 0x01
SIGHASH_NONE = 0x02
SIGHASH_SINGLE = 0x03
SIGHASH_ANYONECANPAY = 0x80

MAX_MONEY = 21_000_000 * 100_000_000

ZERO_HASH = bytes(32)


class TransactionSigningError(Exception):
    pass


@dataclass
class TxInput:
    txid_le: bytes
    vout: int
    script: bytes
    sequence: bytes
    witness: list[bytes] = field(default_factory=list)


@dataclass
class TxOutput:
    value: int
    script: bytes


@dataclass
class Transaction:
    version: bytes
    marker_flag: bool
    inputs: list[TxInput]
    outputs: list[TxOutput]
    locktime: bytes
    raw: bytes = b""


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def read_varint(data: bytes, offset: int) -> tuple[int, int]:
    first = data[offset]
    offset += 1

    if first < 0xFD:
        return first, offset
    if first == 0xFD:
        value = int.from_bytes(data[offset : offset + 2], "little")
        return value, offset + 2
    if first == 0xFE:
        value = int.from_bytes(data[offset : offset + 4], "little")
        return value, offset + 4
    value = int.from_bytes(data[offset : offset + 8], "little")
    return value, offset + 8


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def is_valid_hash_type(hash_type: int) -> bool:
    return (hash_type & ~SIGHASH_ANYONECANPAY) in (SIGHASH_ALL, SIGHASH_NONE, SIGHASH_SINGLE)


def _read_bytes(data: bytes, offset: int, length: int) -> tuple[bytes, int]:
    end = offset + length
    if end > len(data):
        raise ValueError("Unexpected end of data")
    return data[offset:end], end


def deserialize_transaction(tx_bytes: bytes) -> Transaction:
    try:
        offset = 0
        version, offset = _read_bytes(tx_bytes, offset, 4)

        marker_flag = False
        if tx_bytes[offset] == 0x00 and tx_bytes[offset + 1] == 0x01:
            marker_flag = True
            offset += 2

        input_count, offset = read_varint(tx_bytes, offset)
        inputs: list[TxInput] = []

        for _ in range(input_count):
            txid_le, offset = _read_bytes(tx_bytes, offset, 32)
            vout_bytes, offset = _read_bytes(tx_bytes, offset, 4)

            script_len, offset = read_varint(tx_bytes, offset)
            script, offset = _read_bytes(tx_bytes, offset, script_len)

            sequence, offset = _read_bytes(tx_bytes, offset, 4)

            inputs.append(TxInput(txid_le, int.from_bytes(vout_bytes, "little"), script, sequence))

        output_count, offset = read_varint(tx_bytes, offset)
        outputs: list[TxOutput] = []

        for _ in range(output_count):
            value_bytes, offset = _read_bytes(tx_bytes, offset, 8)

            script_len, offset = read_varint(tx_bytes, offset)
            script, offset = _read_bytes(tx_bytes, offset, script_len)

            outputs.append(TxOutput(int.from_bytes(value_bytes, "little"), script))

        if marker_flag:
            for inp in inputs:
                stack_count, offset = read_varint(tx_bytes, offset)
                for _ in range(stack_count):
                    item_len, offset = read_varint(tx_bytes, offset)
                    item, offset = _read_bytes(tx_bytes, offset, item_len)
                    inp.witness.append(item)

        locktime, offset = _read_bytes(tx_bytes, offset, 4)
        return Transaction(version, marker_flag, inputs, outputs, locktime, tx_bytes)

    except Exception as e:
        raise TransactionSigningError(f"Failed to parse transaction: {e}") from e


def serialize_output(out: TxOutput) -> bytes:
    return out.value.to_bytes(8, "little") + encode_varint(len(out.script)) + out.script


def serialize_transaction(tx: Transaction, include_witness: bool = True) -> bytes:
    """
    Serialize a transaction.

    The segwit marker and flag are only written when at least one input
    carries witness data, as required by BIP144.
    """
    with_witness = include_witness and any(inp.witness for inp in tx.inputs)

    result = tx.version
    if with_witness:
        result += b"\x00\x01"

    result += encode_varint(len(tx.inputs))
    for inp in tx.inputs:
        result += inp.txid_le + inp.vout.to_bytes(4, "little")
        result += encode_varint(len(inp.script)) + inp.script
        result += inp.sequence

    result += encode_varint(len(tx.outputs))
    for out in tx.outputs:
        result += serialize_output(out)

    if with_witness:
        for inp in tx.inputs:
            result += encode_varint(len(inp.witness))
            for item in inp.witness:
                result += encode_varint(len(item)) + item

    result += tx.locktime
    return result


def get_txid(tx: Transaction) -> str:
    """Calculate txid (double SHA256 of non-witness data, displayed big-endian)."""
    return hash256(serialize_transaction(tx, include_witness=False))[::-1].hex()


@dataclass(frozen=True)
class TxSigHashes:
    """
    BIP143 midstate shared by every input of a transaction.

    Compute it once with from_transaction() and reuse it when signing
    several inputs of the same transaction.
    """

    hash_prevouts: bytes
    hash_sequence: bytes
    hash_outputs: bytes

    @classmethod
    def from_transaction(cls, tx: Transaction) -> TxSigHashes:
        return cls(
            hash_prevouts=hash256(
                b"".join(inp.txid_le + inp.vout.to_bytes(4, "little") for inp in tx.inputs)
            ),
            hash_sequence=hash256(b"".join(inp.sequence for inp in tx.inputs)),
            hash_outputs=hash256(b"".join(serialize_output(out) for out in tx.outputs)),
        )


def calc_witness_sighash(
    tx: Transaction,
    sig_hashes: TxSigHashes | None,
    input_index: int,
    sub_script: bytes,
    value: int,
    hash_type: int = SIGHASH_ALL,
) -> bytes:
    """Compute the BIP143 signature hash for a segwit v0 input.

    Args:
        tx: The transaction being signed
        sig_hashes: Precomputed midstate, computed from tx when None
        input_index: Index of the input to sign
        sub_script: The witness program (P2WPKH) or witness script being spent.
            A P2WPKH program is expanded into its P2PKH scriptCode.
        value: The value of the output being spent (in satoshis)
        hash_type: Sighash type (SIGHASH_ALL, NONE, SINGLE, optionally | ANYONECANPAY)

    Returns:
        32-byte digest to be signed
    """
    if input_index < 0 or input_index >= len(tx.inputs):
        raise TransactionSigningError(
            f"Input index {input_index} out of range ({len(tx.inputs)} inputs)"
        )
    if not is_valid_hash_type(hash_type):
        raise TransactionSigningError(f"Invalid sighash type: {hash_type:#x}")
    if not sub_script:
        raise TransactionSigningError("Empty signing script")
    if not 0 <= value <= MAX_MONEY:
        raise TransactionSigningError(f"Invalid output value: {value}")

    if sig_hashes is None:
        sig_hashes = TxSigHashes.from_transaction(tx)

    base_type = hash_type & 0x1F
    anyone_can_pay = bool(hash_type & SIGHASH_ANYONECANPAY)

    hash_prevouts = ZERO_HASH if anyone_can_pay else sig_hashes.hash_prevouts

    if anyone_can_pay or base_type in (SIGHASH_NONE, SIGHASH_SINGLE):
        hash_sequence = ZERO_HASH
    else:
        hash_sequence = sig_hashes.hash_sequence

    if base_type not in (SIGHASH_NONE, SIGHASH_SINGLE):
        hash_outputs = sig_hashes.hash_outputs
    elif base_type == SIGHASH_SINGLE and input_index < len(tx.outputs):
        hash_outputs = hash256(serialize_output(tx.outputs[input_index]))
    else:
        hash_outputs = ZERO_HASH

    script_code = p2wpkh_script_code(sub_script) if is_p2wpkh_script(sub_script) else sub_script

    target_input = tx.inputs[input_index]

    preimage = (
        tx.version
        + hash_prevouts
        + hash_sequence
        + target_input.txid_le
        + target_input.vout.to_bytes(4, "little")
        + encode_varint(len(script_code))
        + script_code
        + value.to_bytes(8, "little")
        + target_input.sequence
        + hash_outputs
        + tx.locktime
        + hash_type.to_bytes(4, "little")
    )

    return hash256(preimage)


def raw_witness_signature(
    tx: Transaction,
    sig_hashes: TxSigHashes | None,
    input_index: int,
    value: int,
    sub_script: bytes,
    hash_type: int,
    private_key: PrivateKey,
) -> bytes:
    """
    Returns:
        DER-encoded signature with sighash type byte appended
    """
    sighash = calc_witness_sighash(tx, sig_hashes, input_index, sub_script, value, hash_type)

    # coincurve's sign() with hasher=None signs the digest as-is (RFC 6979, low-S)
    signature = private_key.sign(sighash, hasher=None)

    return signature + bytes([hash_type])


def witness_signature(
    tx: Transaction,
    sig_hashes: TxSigHashes | None,
    input_index: int,
    value: int,
    sub_script: bytes,
    hash_type: int,
    private_key: PrivateKey,
    compress: bool = True,
) -> list[bytes]:
    """Sign a segwit v0 input and return its witness stack [signature, pubkey]."""
    signature = raw_witness_signature(
        tx, sig_hashes, input_index, value, sub_script, hash_type, private_key
    )
    pubkey_bytes = private_key.public_key.format(compressed=compress)
    return [signature, pubkey_bytes]


def verify_witness_input(
    tx: Transaction,
    input_index: int,
    prev_output: TxOutput,
    sig_script: bytes,
    witness: list[bytes],
    sig_hashes: TxSigHashes | None = None,
) -> bool:
    """
    Check that sig_script and witness unlock a P2WPKH or P2SH-P2WPKH output.

    Only the pubkey-hash templates are understood; anything else is reported
    as not verifying.
    """
    if is_p2wpkh_script(prev_output.script):
        if sig_script:
            return False
        program = prev_output.script
    elif is_p2sh_script(prev_output.script):
        # Redeem script must be a single direct push of a 22-byte P2WPKH program
        if len(sig_script) != 23 or sig_script[0] != 22:
            return False
        program = sig_script[1:]
        if not is_p2wpkh_script(program) or hash160(program) != prev_output.script[2:22]:
            return False
    else:
        return False

    if len(witness) != 2:
        return False

    signature, pubkey_bytes = witness
    if not signature or hash160(pubkey_bytes) != program[2:]:
        return False

    try:
        sighash = calc_witness_sighash(
            tx, sig_hashes, input_index, program, prev_output.value, signature[-1]
        )
        return PublicKey(pubkey_bytes).verify(signature[:-1], sighash, hasher=None)
    except (TransactionSigningError, ValueError):
        return False
