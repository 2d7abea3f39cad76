"""
Tests for CLI commands.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from loguru import logger
from typer.testing import CliRunner

from conftest import BIP143_NESTED_UNSIGNED_TX
from spendsigner.cli import app
from spendsigner.wallet.signing import deserialize_transaction

# m/84'/0'/0'/0/0 of the test mnemonic
WALLET_P2WPKH_SCRIPT = "0014c0cebcd6c3d3ca8c75dc5ec62ebe55330ef910e2"

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_logging():
    """setup_logging() binds loguru to the runner's captured stderr"""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def mnemonic_file(tmp_path: Path, test_mnemonic: str) -> Path:
    path = tmp_path / "wallet.mnemonic"
    path.write_text(test_mnemonic + "\n")
    return path


def test_addresses(test_mnemonic):
    result = runner.invoke(app, ["addresses", "--mnemonic", test_mnemonic, "--count", "2"])

    assert result.exit_code == 0
    assert "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu" in result.output
    assert "m/84'/0'/0'/0/1" in result.output
    assert "m/84'/0'/0'/1/0" not in result.output


def test_addresses_from_file(mnemonic_file):
    result = runner.invoke(
        app, ["addresses", "--mnemonic-file", str(mnemonic_file), "--network", "testnet"]
    )

    assert result.exit_code == 0
    assert "2Mww8dCYPUpKHofjgcXcBCEGmniw9CoaiD2" in result.output


def test_missing_mnemonic_file(tmp_path):
    result = runner.invoke(app, ["addresses", "--mnemonic-file", str(tmp_path / "nope")])
    assert result.exit_code == 1


def test_invalid_mnemonic():
    result = runner.invoke(app, ["addresses", "--mnemonic", "abandon about"])
    assert result.exit_code == 1


def test_sign_input(test_mnemonic):
    result = runner.invoke(
        app,
        [
            "sign-input",
            BIP143_NESTED_UNSIGNED_TX,
            "--mnemonic",
            test_mnemonic,
            "--prev-output",
            f"{WALLET_P2WPKH_SCRIPT}:100000",
            "--gap-limit",
            "1",
        ],
    )

    assert result.exit_code == 0
    assert "sig_script: \n" in result.output
    assert "witness[0]: 30" in result.output
    assert "witness[1]: 0330d54fd0dd420a6e5f8d3624f5f3482cae350f79d5f0753bf5beef9c2d91af3c" in (
        result.output
    )


def test_sign_input_unknown_output(test_mnemonic):
    result = runner.invoke(
        app,
        [
            "sign-input",
            BIP143_NESTED_UNSIGNED_TX,
            "--mnemonic",
            test_mnemonic,
            "--prev-output",
            "0014" + "ee" * 20 + ":100000",
            "--gap-limit",
            "1",
        ],
    )
    assert result.exit_code == 1


def test_sign_input_bad_prev_output(test_mnemonic):
    result = runner.invoke(
        app,
        [
            "sign-input",
            BIP143_NESTED_UNSIGNED_TX,
            "--mnemonic",
            test_mnemonic,
            "--prev-output",
            "not-a-script",
        ],
    )
    assert result.exit_code != 0


def test_sign(test_mnemonic):
    result = runner.invoke(
        app,
        [
            "sign",
            BIP143_NESTED_UNSIGNED_TX,
            "--mnemonic",
            test_mnemonic,
            "--prev-output",
            f"{WALLET_P2WPKH_SCRIPT}:100000",
            "--gap-limit",
            "1",
            "--log-level",
            "ERROR",
        ],
    )

    assert result.exit_code == 0
    signed_hex = result.output.strip().splitlines()[-1]
    tx = deserialize_transaction(bytes.fromhex(signed_hex))
    assert tx.marker_flag is True
    assert len(tx.inputs[0].witness) == 2
