"""Filesystem wallet store.

Layout::

    <base_dir>/<wallet>/wallet.json            name, type, encrypted seed (HD)
    <base_dir>/<wallet>/accounts/<name>.json   Ethereum keyfile + name/path

Keys are encrypted as Ethereum keyfiles. Unlocking only ever changes the
in-memory state of a handle; nothing decrypted is written back to disk.
"""

import json
import logging
import secrets
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Union

from hexbytes import HexBytes

from .capabilities import NotFound
from .constants import (
    ACCOUNTS_DIRNAME,
    DEFAULT_HD_PATH_TEMPLATE,
    KEYFILE_KDF,
    WALLET_FILENAME,
)
from .models import AccountInfo, PrivateKey, WalletInfo, WalletType
from .util import is_derivation_path

if TYPE_CHECKING:
    from eth_typing import ChecksumAddress

    from .deadline import CallContext

logger = logging.getLogger(__name__)


class WalletLocked(Exception):
    pass


class StoreError(Exception):
    pass


def validate_name(kind: str, name: str) -> str:
    if not name or "/" in name or name in (".", ".."):
        raise StoreError(f"Invalid {kind} name '{name}'")
    return name


def to_checksum_address(address: str) -> "ChecksumAddress":
    from eth_utils.address import to_checksum_address

    return to_checksum_address(address)


def derive_key(seed: bytes, path: str) -> HexBytes:
    from eth_account.hdaccount import key_from_seed

    return HexBytes(key_from_seed(seed, path))


class Keyfiles:
    """Encrypt and decrypt key material with a fixed KDF configuration."""

    def __init__(self, kdf: str = KEYFILE_KDF, iterations: Optional[int] = None):
        self.kdf = kdf
        self.iterations = iterations

    def encrypt(self, key: bytes, passphrase: bytes) -> dict[str, Any]:
        from eth_account import Account

        return dict(
            Account.encrypt(
                key, passphrase, kdf=self.kdf, iterations=self.iterations
            )
        )

    def decrypt(self, keydata: dict[str, Any], passphrase: bytes) -> HexBytes:
        from eth_account import Account

        return HexBytes(Account.decrypt(keydata, passphrase))


class StoredAccount:
    """Account backed by a keyfile; locked until a passphrase is supplied."""

    def __init__(self, keyfiles: Keyfiles, keydata: dict[str, Any]):
        self._keyfiles = keyfiles
        self._keydata = keydata
        self._key: Optional[HexBytes] = None

    @property
    def name(self) -> str:
        return self._keydata["name"]

    @property
    def info(self) -> AccountInfo:
        return AccountInfo(
            name=self.name,
            address=to_checksum_address(self._keydata["address"]),
            path=self._keydata.get("path"),
        )

    def is_unlocked(self, ctx: "CallContext") -> bool:
        return self._key is not None

    def unlock(self, ctx: "CallContext", secret: bytes) -> None:
        key = self._keyfiles.decrypt(self._keydata, secret)
        if ctx.cancelled:
            logger.debug(f"Discarding late unlock of account '{self.name}'")
            return
        self._key = key

    def lock(self, ctx: "CallContext") -> None:
        self._key = None

    def private_key(self, ctx: "CallContext") -> PrivateKey:
        if self._key is None:
            raise WalletLocked(f"Account '{self.name}' is locked")
        return PrivateKey(self._key)


class DerivedAccount:
    """Account materialized from an unlocked HD wallet seed."""

    def __init__(self, path: str, key: HexBytes):
        self.name = path
        self._address = to_checksum_address(_address_of(key))
        self._key: Optional[HexBytes] = key

    @property
    def info(self) -> AccountInfo:
        return AccountInfo(name=self.name, address=self._address, path=self.name)

    def is_unlocked(self, ctx: "CallContext") -> bool:
        return self._key is not None

    def unlock(self, ctx: "CallContext", secret: bytes) -> None:
        raise WalletLocked("Derived accounts are unlocked through their wallet")

    def lock(self, ctx: "CallContext") -> None:
        self._key = None

    def private_key(self, ctx: "CallContext") -> PrivateKey:
        if self._key is None:
            raise WalletLocked(f"Account '{self.name}' is locked")
        return PrivateKey(self._key)


def _address_of(key: bytes) -> str:
    from eth_account import Account

    return Account.from_key(key).address


class StoredWallet:
    wallet_type: WalletType

    def __init__(self, path: Path, keyfiles: Keyfiles, walletdata: dict[str, Any]):
        self.path = path
        self._keyfiles = keyfiles
        self._walletdata = walletdata

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name()!r})"

    def name(self) -> str:
        return self._walletdata["name"]

    def type(self) -> str:
        return self.wallet_type.value

    @property
    def accounts_dir(self) -> Path:
        return self.path / ACCOUNTS_DIRNAME

    def _keyfile_path(self, name: str) -> Path:
        return self.accounts_dir / f"{validate_name('account', name)}.json"

    def _stored_accounts(self) -> list[StoredAccount]:
        if not self.accounts_dir.is_dir():
            return []
        accounts: list[StoredAccount] = []
        for keyfile in sorted(self.accounts_dir.glob("*.json")):
            with keyfile.open() as kf:
                accounts.append(StoredAccount(self._keyfiles, json.load(kf)))
        return accounts

    def accounts(self) -> list[AccountInfo]:
        return [account.info for account in self._stored_accounts()]

    def account_by_name(self, ctx: "CallContext", name: str) -> Any:
        try:
            keyfile = self._keyfile_path(name)
        except StoreError as exc:
            raise NotFound(f"No account '{name}' in wallet '{self.name()}'") from exc
        if not keyfile.is_file():
            raise NotFound(f"No account '{name}' in wallet '{self.name()}'")
        with keyfile.open() as kf:
            return StoredAccount(self._keyfiles, json.load(kf))

    def import_account(self, name: str, key: bytes, passphrase: bytes) -> AccountInfo:
        try:
            _address_of(key)
        except ValueError as exc:
            raise StoreError(f"Invalid private key: {exc}") from exc
        return self._write_account(name, HexBytes(key), passphrase)

    def _write_account(
        self, name: str, key: HexBytes, passphrase: bytes, path: Optional[str] = None
    ) -> AccountInfo:
        keyfile = self._keyfile_path(name)
        if keyfile.exists():
            raise StoreError(f"Account '{name}' already exists in '{self.name()}'")
        keydata = self._keyfiles.encrypt(key, passphrase)
        keydata["name"] = name
        if path is not None:
            keydata["path"] = path
        self.accounts_dir.mkdir(parents=True, exist_ok=True)
        with keyfile.open("w") as kf:
            json.dump(keydata, kf, indent=2)
        logger.info(f"Wrote keyfile {keyfile}")
        return StoredAccount(self._keyfiles, keydata).info


class NonDeterministicWallet(StoredWallet):
    wallet_type = WalletType.ND

    def create_account(
        self,
        name: str,
        passphrase: bytes,
        wallet_passphrase: Optional[bytes] = None,
        path: Optional[str] = None,
    ) -> AccountInfo:
        if path is not None:
            raise StoreError(
                f"Wallet '{self.name()}' does not derive accounts from a path"
            )
        from eth_account import Account

        return self._write_account(name, HexBytes(Account.create().key), passphrase)


class HierarchicalDeterministicWallet(StoredWallet):
    wallet_type = WalletType.HD

    def __init__(self, path: Path, keyfiles: Keyfiles, walletdata: dict[str, Any]):
        super().__init__(path, keyfiles, walletdata)
        self._seed: Optional[HexBytes] = None

    def is_unlocked(self, ctx: "CallContext") -> bool:
        return self._seed is not None

    def unlock(self, ctx: "CallContext", secret: bytes) -> None:
        seed = self._keyfiles.decrypt(self._walletdata["seed"], secret)
        if not ctx.cancelled:
            self._seed = seed

    def lock(self, ctx: "CallContext") -> None:
        self._seed = None

    def derive(self, path: str) -> HexBytes:
        if self._seed is None:
            raise WalletLocked(f"Wallet '{self.name()}' is locked")
        try:
            return derive_key(self._seed, path)
        except ValueError as exc:
            raise NotFound(f"Invalid derivation path '{path}': {exc}") from exc

    def account_by_name(self, ctx: "CallContext", name: str) -> Any:
        if is_derivation_path(name):
            return DerivedAccount(name, self.derive(name))
        return super().account_by_name(ctx, name)

    def create_account(
        self,
        name: str,
        passphrase: bytes,
        wallet_passphrase: Optional[bytes] = None,
        path: Optional[str] = None,
    ) -> AccountInfo:
        if not wallet_passphrase:
            raise StoreError("Wallet passphrase is required to create HD accounts")
        seed = self._keyfiles.decrypt(self._walletdata["seed"], wallet_passphrase)
        if path is None:
            path = DEFAULT_HD_PATH_TEMPLATE.format(index=len(self._stored_accounts()))
        try:
            key = derive_key(seed, path)
        except ValueError as exc:
            raise StoreError(f"Invalid derivation path '{path}': {exc}") from exc
        return self._write_account(name, key, passphrase, path=path)


WALLET_CLASSES: dict[WalletType, type[StoredWallet]] = {
    WalletType.ND: NonDeterministicWallet,
    WalletType.HD: HierarchicalDeterministicWallet,
}


class Store:
    def __init__(
        self,
        base_dir: Union[str, Path],
        kdf: str = KEYFILE_KDF,
        iterations: Optional[int] = None,
    ):
        self.base_dir = Path(base_dir).expanduser()
        self.keyfiles = Keyfiles(kdf=kdf, iterations=iterations)

    def _wallet_file(self, name: str) -> Path:
        return self.base_dir / validate_name("wallet", name) / WALLET_FILENAME

    def create_wallet(
        self,
        name: str,
        wallet_type: WalletType,
        passphrase: Optional[bytes] = None,
    ) -> StoredWallet:
        wallet_file = self._wallet_file(name)
        if wallet_file.exists():
            raise StoreError(f"Wallet '{name}' already exists")
        walletdata: dict[str, Any] = {"name": name, "type": wallet_type.value}
        if wallet_type is WalletType.HD:
            if not passphrase:
                raise StoreError("Wallet passphrase is required for HD wallets")
            walletdata["seed"] = self.keyfiles.encrypt(
                secrets.token_bytes(32), passphrase
            )
        wallet_file.parent.mkdir(parents=True, exist_ok=False)
        with wallet_file.open("w") as wf:
            json.dump(walletdata, wf, indent=2)
        logger.info(f"Created {wallet_type.value} wallet '{name}'")
        return WALLET_CLASSES[wallet_type](wallet_file.parent, self.keyfiles, walletdata)

    def open_wallet(self, name: str) -> StoredWallet:
        try:
            wallet_file = self._wallet_file(name)
        except StoreError as exc:
            raise NotFound(str(exc)) from exc
        if not wallet_file.is_file():
            raise NotFound(f"No wallet '{name}' in {self.base_dir}")
        with wallet_file.open() as wf:
            walletdata = json.load(wf)
        try:
            wallet_type = WalletType(walletdata["type"])
        except (KeyError, ValueError) as exc:
            raise StoreError(f"Unknown type for wallet '{name}'") from exc
        return WALLET_CLASSES[wallet_type](wallet_file.parent, self.keyfiles, walletdata)

    def wallets(self) -> list[WalletInfo]:
        if not self.base_dir.is_dir():
            return []
        infos: list[WalletInfo] = []
        for wallet_file in sorted(self.base_dir.glob(f"*/{WALLET_FILENAME}")):
            wallet = self.open_wallet(wallet_file.parent.name)
            infos.append(
                WalletInfo(wallet.name(), wallet.wallet_type, len(wallet.accounts()))
            )
        return infos
