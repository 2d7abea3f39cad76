"""
Tests for the in-memory key store.
"""

from __future__ import annotations

import threading

import pytest
from coincurve import PrivateKey

from conftest import BIP143_NESTED_SCRIPT, BIP143_P2WPKH_SCRIPT
from spendsigner.wallet.errors import KeyUnavailableError, UnknownOutputError
from spendsigner.wallet.keystore import KeyStore
from spendsigner.wallet.models import AddressType, NetworkType


class TestImport:
    def test_import_p2wpkh(self, p2wpkh_key):
        store = KeyStore(NetworkType.MAINNET)
        managed = store.import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)

        assert managed.script_pubkey.hex() == BIP143_P2WPKH_SCRIPT
        assert managed.address.startswith("bc1q")
        assert managed.address_type == AddressType.WITNESS_PUB_KEY_HASH
        assert not managed.watch_only
        assert len(store) == 1

    def test_import_nested(self, nested_key):
        store = KeyStore("testnet")
        managed = store.import_private_key(nested_key, AddressType.NESTED_WITNESS_PUB_KEY)

        assert managed.script_pubkey.hex() == BIP143_NESTED_SCRIPT
        assert managed.address.startswith("2")

    def test_same_key_different_types(self, p2wpkh_key):
        store = KeyStore()
        store.import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)
        store.import_private_key(p2wpkh_key, AddressType.NESTED_WITNESS_PUB_KEY)
        store.import_private_key(p2wpkh_key, AddressType.PUB_KEY_HASH)

        assert len(store) == 3

    def test_secret_not_in_repr(self, p2wpkh_key):
        managed = KeyStore().import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)
        assert p2wpkh_key.secret.hex() not in repr(managed)

    def test_watch_only_does_not_downgrade(self, p2wpkh_key):
        store = KeyStore()
        store.import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)
        managed = store.import_public_key(
            p2wpkh_key.public_key.format(compressed=True), AddressType.WITNESS_PUB_KEY_HASH
        )

        assert not managed.watch_only
        assert not store.fetch_output_addr(bytes.fromhex(BIP143_P2WPKH_SCRIPT)).watch_only

    def test_private_key_upgrades_watch_only(self, p2wpkh_key):
        store = KeyStore()
        store.import_public_key(
            p2wpkh_key.public_key.format(compressed=True), AddressType.WITNESS_PUB_KEY_HASH
        )
        store.import_private_key(p2wpkh_key, AddressType.WITNESS_PUB_KEY_HASH)

        assert not store.fetch_output_addr(bytes.fromhex(BIP143_P2WPKH_SCRIPT)).watch_only


class TestLookup:
    def test_fetch_known_script(self, key_store):
        managed = key_store.fetch_output_addr(bytes.fromhex(BIP143_NESTED_SCRIPT))
        assert managed.address_type == AddressType.NESTED_WITNESS_PUB_KEY

    def test_contains(self, key_store):
        assert bytes.fromhex(BIP143_P2WPKH_SCRIPT) in key_store
        assert b"\x00" not in key_store

    def test_unknown_script(self, key_store):
        with pytest.raises(UnknownOutputError):
            key_store.fetch_output_addr(bytes.fromhex("0014" + "11" * 20))

    def test_private_key_fresh_instance(self, key_store, p2wpkh_key):
        managed = key_store.fetch_output_addr(bytes.fromhex(BIP143_P2WPKH_SCRIPT))
        first = managed.private_key()
        second = managed.private_key()

        assert first is not second
        assert first.secret == second.secret == p2wpkh_key.secret

    def test_watch_only_key_unavailable(self, p2wpkh_key):
        store = KeyStore()
        managed = store.import_public_key(
            p2wpkh_key.public_key.format(compressed=True), AddressType.WITNESS_PUB_KEY_HASH
        )
        with pytest.raises(KeyUnavailableError, match="watch-only"):
            managed.private_key()


class TestConcurrency:
    def test_lookup_during_imports(self, key_store):
        script = bytes.fromhex(BIP143_P2WPKH_SCRIPT)
        errors: list[Exception] = []

        def importer() -> None:
            for _ in range(50):
                key_store.import_private_key(PrivateKey(), AddressType.WITNESS_PUB_KEY_HASH)

        def reader() -> None:
            try:
                for _ in range(200):
                    key_store.fetch_output_addr(script)
                    key_store.addresses()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=importer)] + [
            threading.Thread(target=reader) for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(key_store) == 52
