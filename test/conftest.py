import time

import pytest

from simple_wallet.capabilities import NotFound
from simple_wallet.constants import WALLET_TYPE_HD, WALLET_TYPE_ND
from simple_wallet.keystore import Store

KEY = bytes.fromhex("4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318")


class FakeKey:
    def __init__(self, key: bytes = KEY):
        self.key = key

    def marshal(self) -> bytes:
        return self.key


class Recorder:
    """Shared log of the calls made against fake handles."""

    def __init__(self):
        self.calls: list[tuple[str, ...]] = []

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class ExportOnlyAccount:
    def __init__(
        self, recorder: Recorder, fail: bool = False, slow_export: float = 0.0
    ):
        self.recorder = recorder
        self.fail = fail
        self.slow_export = slow_export

    def private_key(self, ctx) -> FakeKey:
        self.recorder.calls.append(("export",))
        if self.slow_export:
            time.sleep(self.slow_export)
        if self.fail:
            raise RuntimeError("export exploded")
        return FakeKey()


class LockableAccount(ExportOnlyAccount):
    def __init__(
        self,
        recorder: Recorder,
        passphrase: bytes = b"right",
        unlocked: bool = False,
        fail: bool = False,
        fail_lock: bool = False,
        slow_unlock: float = 0.0,
        slow_export: float = 0.0,
    ):
        super().__init__(recorder, fail=fail, slow_export=slow_export)
        self.passphrase = passphrase
        self.unlocked = unlocked
        self.fail_lock = fail_lock
        self.slow_unlock = slow_unlock

    def is_unlocked(self, ctx) -> bool:
        self.recorder.calls.append(("is_unlocked",))
        return self.unlocked

    def unlock(self, ctx, secret: bytes) -> None:
        self.recorder.calls.append(("unlock", secret.decode()))
        if self.slow_unlock:
            time.sleep(self.slow_unlock)
        if secret != self.passphrase:
            raise ValueError("MAC mismatch")
        self.unlocked = True

    def lock(self, ctx) -> None:
        self.recorder.calls.append(("lock",))
        if self.fail_lock:
            raise RuntimeError("lock jammed")
        self.unlocked = False

    def private_key(self, ctx) -> FakeKey:
        if not self.unlocked:
            raise RuntimeError("account is locked")
        return super().private_key(ctx)


class NoExportAccount:
    def __init__(self, recorder: Recorder):
        self.recorder = recorder

    def is_unlocked(self, ctx) -> bool:
        self.recorder.calls.append(("is_unlocked",))
        return False

    def unlock(self, ctx, secret: bytes) -> None:
        self.recorder.calls.append(("unlock", secret.decode()))

    def lock(self, ctx) -> None:
        self.recorder.calls.append(("lock",))


class FakeWallet:
    def __init__(
        self,
        recorder: Recorder,
        accounts: dict[str, object],
        wallet_type: str = WALLET_TYPE_ND,
        slow_lookup: float = 0.0,
    ):
        self.recorder = recorder
        self.accounts = accounts
        self.wallet_type = wallet_type
        self.slow_lookup = slow_lookup

    def name(self) -> str:
        return "Test wallet"

    def type(self) -> str:
        return self.wallet_type

    def account_by_name(self, ctx, name: str):
        self.recorder.calls.append(("lookup", name))
        if self.slow_lookup:
            time.sleep(self.slow_lookup)
        try:
            return self.accounts[name]
        except KeyError:
            raise NotFound(name)


class LockableWallet(FakeWallet):
    def __init__(
        self,
        recorder: Recorder,
        accounts: dict[str, object],
        passphrase: bytes = b"wallet",
        wallet_type: str = WALLET_TYPE_HD,
        slow_unlock: float = 0.0,
    ):
        super().__init__(recorder, accounts, wallet_type=wallet_type)
        self.passphrase = passphrase
        self.unlocked = False
        self.slow_unlock = slow_unlock

    def is_unlocked(self, ctx) -> bool:
        return self.unlocked

    def unlock(self, ctx, secret: bytes) -> None:
        self.recorder.calls.append(("wallet_unlock", secret.decode()))
        if self.slow_unlock:
            time.sleep(self.slow_unlock)
        if secret != self.passphrase:
            raise ValueError("MAC mismatch")
        self.unlocked = True

    def lock(self, ctx) -> None:
        self.recorder.calls.append(("wallet_lock",))
        self.unlocked = False


class LookuplessWallet:
    def name(self) -> str:
        return "Opaque"

    def type(self) -> str:
        return WALLET_TYPE_ND


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def store(tmp_path) -> Store:
    # Cheap KDF settings keep keyfile tests fast.
    return Store(tmp_path / "wallets", kdf="pbkdf2", iterations=2)

