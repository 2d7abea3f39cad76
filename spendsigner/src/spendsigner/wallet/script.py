"""
Bitcoin script templates and a minimal script builder.
"""

from __future__ import annotations

import struct

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_16 = 0x60
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC

MAX_SCRIPT_ELEMENT_SIZE = 520
MAX_SCRIPT_SIZE = 10_000


class ScriptError(Exception):
    pass


class ScriptBuilder:
    """
    Builds scripts using canonical (minimal) data pushes.

    Errors are deferred: the first error is recorded and raised by script(),
    so calls can be chained freely.
    """

    def __init__(self) -> None:
        self._script = bytearray()
        self._error: str | None = None

    def add_op(self, opcode: int) -> ScriptBuilder:
        if self._error is not None:
            return self
        if not 0 <= opcode <= 0xFF:
            self._error = f"Invalid opcode: {opcode}"
            return self
        self._script.append(opcode)
        return self

    def add_data(self, data: bytes) -> ScriptBuilder:
        """Push data using the smallest encoding consensus accepts as canonical."""
        if self._error is not None:
            return self
        if len(data) > MAX_SCRIPT_ELEMENT_SIZE:
            self._error = (
                f"Data push of {len(data)} bytes exceeds maximum of {MAX_SCRIPT_ELEMENT_SIZE}"
            )
            return self

        self._script += encode_push(data)
        return self

    def script(self) -> bytes:
        if self._error is not None:
            raise ScriptError(self._error)
        if len(self._script) > MAX_SCRIPT_SIZE:
            raise ScriptError(
                f"Script size {len(self._script)} exceeds maximum of {MAX_SCRIPT_SIZE}"
            )
        return bytes(self._script)


def encode_push(data: bytes) -> bytes:
    length = len(data)

    if length == 0 or (length == 1 and data[0] == 0):
        return bytes([OP_0])
    if length == 1 and 1 <= data[0] <= 16:
        return bytes([OP_1 - 1 + data[0]])
    if length == 1 and data[0] == 0x81:
        return bytes([OP_1NEGATE])

    if length < OP_PUSHDATA1:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", length) + data
    return bytes([OP_PUSHDATA4]) + struct.pack("<I", length) + data


def p2wpkh_script(pubkey_hash: bytes) -> bytes:
    """OP_0 <20-byte-pubkeyhash>"""
    if len(pubkey_hash) != 20:
        raise ValueError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return bytes([OP_0, 0x14]) + pubkey_hash


def p2pkh_script(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG"""
    if len(pubkey_hash) != 20:
        raise ValueError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return bytes([OP_DUP, OP_HASH160, 0x14]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_script(script_hash: bytes) -> bytes:
    """OP_HASH160 <20-byte-scripthash> OP_EQUAL"""
    if len(script_hash) != 20:
        raise ValueError(f"Invalid script hash length: {len(script_hash)}")
    return bytes([OP_HASH160, 0x14]) + script_hash + bytes([OP_EQUAL])


def is_p2wpkh_script(script: bytes) -> bool:
    return len(script) == 22 and script[0] == OP_0 and script[1] == 0x14


def is_p2pkh_script(script: bytes) -> bool:
    return (
        len(script) == 25
        and script[0] == OP_DUP
        and script[1] == OP_HASH160
        and script[2] == 0x14
        and script[23] == OP_EQUALVERIFY
        and script[24] == OP_CHECKSIG
    )


def is_p2sh_script(script: bytes) -> bool:
    return (
        len(script) == 23
        and script[0] == OP_HASH160
        and script[1] == 0x14
        and script[22] == OP_EQUAL
    )


def p2wpkh_script_code(program: bytes) -> bytes:
    """Expand a P2WPKH program into the P2PKH scriptCode used by BIP143."""
    if not is_p2wpkh_script(program):
        raise ValueError(f"Not a P2WPKH program: {program.hex()}")
    return p2pkh_script(program[2:])
