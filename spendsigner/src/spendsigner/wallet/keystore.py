"""
In-memory key store mapping output scripts to managed addresses.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from coincurve import PrivateKey
from loguru import logger

from spendsigner.wallet.address import pubkey_to_script, script_to_address
from spendsigner.wallet.errors import KeyUnavailableError, UnknownOutputError
from spendsigner.wallet.models import AddressType, NetworkType


@dataclass(frozen=True)
class ManagedAddress:
    """A wallet address bound to the public key (and maybe private key) controlling it"""

    address: str
    address_type: AddressType
    pubkey: bytes
    script_pubkey: bytes
    path: str | None = None
    _secret: bytes | None = field(default=None, repr=False, compare=False)

    @property
    def watch_only(self) -> bool:
        return self._secret is None

    def private_key(self) -> PrivateKey:
        """
        Return a new PrivateKey instance for this address.

        Each call hands out its own instance so concurrent signers never share one.
        """
        if self._secret is None:
            raise KeyUnavailableError(f"No private key for watch-only address {self.address}")
        return PrivateKey(self._secret)


class KeyStore:
    """
    Thread-safe store of managed addresses, keyed by scriptPubKey.

    Lookups and imports are serialized by a lock, so a lookup always sees
    either the state before or after a concurrent import.
    """

    def __init__(self, network: NetworkType | str = NetworkType.MAINNET):
        self.network = NetworkType(network)
        self._lock = threading.RLock()
        self._by_script: dict[bytes, ManagedAddress] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_script)

    def __contains__(self, script: object) -> bool:
        with self._lock:
            return script in self._by_script

    def _add(self, managed: ManagedAddress) -> ManagedAddress:
        with self._lock:
            existing = self._by_script.get(managed.script_pubkey)
            # A watch-only import never replaces an entry that can sign
            if existing is not None and managed.watch_only and not existing.watch_only:
                return existing
            self._by_script[managed.script_pubkey] = managed
            return managed

    def _build(
        self,
        pubkey: bytes,
        address_type: AddressType,
        secret: bytes | None,
        path: str | None,
    ) -> ManagedAddress:
        script_pubkey = pubkey_to_script(pubkey, address_type)
        return ManagedAddress(
            address=script_to_address(script_pubkey, self.network),
            address_type=address_type,
            pubkey=pubkey,
            script_pubkey=script_pubkey,
            path=path,
            _secret=secret,
        )

    def import_private_key(
        self,
        private_key: PrivateKey,
        address_type: AddressType,
        path: str | None = None,
    ) -> ManagedAddress:
        pubkey = private_key.public_key.format(compressed=True)
        managed = self._add(self._build(pubkey, address_type, private_key.secret, path))
        logger.debug(f"Imported {address_type.value} address {managed.address}")
        return managed

    def import_public_key(
        self, pubkey: bytes, address_type: AddressType, path: str | None = None
    ) -> ManagedAddress:
        """Import a watch-only address"""
        managed = self._add(self._build(pubkey, address_type, None, path))
        logger.debug(f"Imported watch-only {address_type.value} address {managed.address}")
        return managed

    def fetch_output_addr(self, script: bytes) -> ManagedAddress:
        """Find the managed address whose scriptPubKey is exactly script."""
        with self._lock:
            managed = self._by_script.get(script)

        if managed is None:
            raise UnknownOutputError(f"Script {script.hex()} does not belong to this wallet")
        return managed

    def addresses(self) -> list[ManagedAddress]:
        with self._lock:
            return list(self._by_script.values())
