"""
Wallet signer CLI - list wallet addresses and sign transaction inputs.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError

from spendsigner.config import SignerConfig
from spendsigner.wallet.errors import InputScriptError
from spendsigner.wallet.models import NetworkType
from spendsigner.wallet.service import WalletSigner
from spendsigner.wallet.signing import (
    TransactionSigningError,
    TxOutput,
    deserialize_transaction,
    get_txid,
    serialize_transaction,
)

app = typer.Typer(
    name="spendsigner",
    help="Sign wallet-owned segwit inputs",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _load_config(
    mnemonic: str | None,
    mnemonic_file: Path | None,
    network: NetworkType,
    gap_limit: int,
    hash_type: int,
    log_level: str,
) -> SignerConfig:
    if mnemonic_file:
        if not mnemonic_file.exists():
            logger.error(f"Mnemonic file not found: {mnemonic_file}")
            raise typer.Exit(1)
        mnemonic = mnemonic_file.read_text().strip()

    if not mnemonic:
        logger.error("Mnemonic required. Use --mnemonic, --mnemonic-file, or MNEMONIC env var")
        raise typer.Exit(1)

    try:
        return SignerConfig(
            mnemonic=mnemonic,
            network=network,
            gap_limit=gap_limit,
            hash_type=hash_type,
            log_level=log_level,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def _parse_prev_output(spec: str) -> TxOutput:
    """Parse a previous output given as <scriptpubkey_hex>:<value_sats>."""
    try:
        script_hex, value = spec.rsplit(":", 1)
        return TxOutput(value=int(value), script=bytes.fromhex(script_hex))
    except ValueError as e:
        raise typer.BadParameter(f"Expected <scriptpubkey_hex>:<sats>, got {spec!r}") from e


@app.command()
def addresses(
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(
        None, "--mnemonic-file", "-f", help="Path to mnemonic file"
    ),
    network: NetworkType = typer.Option(NetworkType.MAINNET, "--network", "-n"),
    count: int = typer.Option(5, "--count", "-c", help="Addresses per chain to show"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """List the first receive addresses of each supported address type."""
    setup_logging(log_level)
    config = _load_config(mnemonic, mnemonic_file, network, count, 0x01, log_level)
    signer = WalletSigner.from_config(config)

    for address_type in config.address_types:
        typer.echo(f"\n{address_type.value}:")
        for managed in signer.key_store.addresses():
            if managed.address_type != address_type or managed.path is None:
                continue
            if managed.path.split("/")[-2] != "0":
                continue
            typer.echo(f"  {managed.path:<22} {managed.address}")


@app.command("sign-input")
def sign_input(
    tx_hex: str = typer.Argument(..., help="Raw transaction hex"),
    input_index: int = typer.Option(0, "--input", "-i", help="Index of the input to sign"),
    prev_output: str = typer.Option(
        ..., "--prev-output", "-p", help="Spent output as <scriptpubkey_hex>:<sats>"
    ),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(None, "--mnemonic-file", "-f"),
    network: NetworkType = typer.Option(NetworkType.MAINNET, "--network", "-n"),
    gap_limit: int = typer.Option(20, "--gap-limit", "-g"),
    hash_type: int = typer.Option(0x01, "--hash-type", help="Sighash type"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Print the witness stack and sig_script for one input."""
    setup_logging(log_level)
    config = _load_config(mnemonic, mnemonic_file, network, gap_limit, hash_type, log_level)
    output = _parse_prev_output(prev_output)

    try:
        tx = deserialize_transaction(bytes.fromhex(tx_hex))
        signer = WalletSigner.from_config(config)
        result = signer.compute_input_script(
            tx, output, input_index, hash_type=config.hash_type
        )
    except (InputScriptError, TransactionSigningError, ValueError) as e:
        logger.error(f"Failed to sign input {input_index}: {e}")
        raise typer.Exit(1)

    typer.echo(f"sig_script: {result.sig_script.hex()}")
    for i, item in enumerate(result.witness):
        typer.echo(f"witness[{i}]: {item.hex()}")


@app.command()
def sign(
    tx_hex: str = typer.Argument(..., help="Raw transaction hex"),
    prev_outputs: list[str] = typer.Option(
        ..., "--prev-output", "-p", help="Spent output per input, in input order"
    ),
    mnemonic: str = typer.Option(None, "--mnemonic", envvar="MNEMONIC", help="BIP39 mnemonic"),
    mnemonic_file: Path | None = typer.Option(None, "--mnemonic-file", "-f"),
    network: NetworkType = typer.Option(NetworkType.MAINNET, "--network", "-n"),
    gap_limit: int = typer.Option(20, "--gap-limit", "-g"),
    hash_type: int = typer.Option(0x01, "--hash-type", help="Sighash type"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Sign every input and print the signed transaction hex."""
    setup_logging(log_level)
    config = _load_config(mnemonic, mnemonic_file, network, gap_limit, hash_type, log_level)
    outputs = [_parse_prev_output(p) for p in prev_outputs]

    try:
        tx = deserialize_transaction(bytes.fromhex(tx_hex))
        signer = WalletSigner.from_config(config)
        signed = signer.sign_transaction(tx, outputs, hash_type=config.hash_type)
    except (InputScriptError, TransactionSigningError, ValueError) as e:
        logger.error(f"Failed to sign transaction: {e}")
        raise typer.Exit(1)

    logger.info(f"Signed transaction {get_txid(signed)}")
    typer.echo(serialize_transaction(signed).hex())


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
