import time

import pytest
from conftest import (
    KEY,
    ExportOnlyAccount,
    FakeWallet,
    LockableAccount,
    LockableWallet,
    LookuplessWallet,
    NoExportAccount,
)

from simple_wallet.constants import WALLET_TYPE_HD, WALLET_TYPE_ND
from simple_wallet.errors import (
    AccountNotFound,
    ErrorKind,
    ExportFailed,
    InvalidReference,
    MissingCredential,
    OperationTimeout,
    UnlockFailed,
    UnsupportedOperation,
)
from simple_wallet.retrieval import retrieve_private_key

TIMEOUT = 5.0


def retrieve(wallet, qualifier, candidates=(), wallet_secret=None, timeout=TIMEOUT):
    return retrieve_private_key(
        wallet,
        qualifier,
        wallet_secret.encode() if wallet_secret is not None else None,
        [c.encode() for c in candidates],
        timeout,
    )


def test_already_unlocked_account(recorder):
    account = LockableAccount(recorder, unlocked=True)
    wallet = FakeWallet(recorder, {"Operations": account})

    result = retrieve(wallet, "Test wallet/Operations", ["ignored"])

    assert result.key == KEY
    assert result.relock_error is None
    assert recorder.count("unlock") == 0
    assert recorder.count("lock") == 0
    assert account.unlocked


def test_wrong_then_right_passphrase(recorder):
    account = LockableAccount(recorder)
    wallet = FakeWallet(recorder, {"Operations": account})

    result = retrieve(wallet, "Test wallet/Operations", ["wrong", "right"])

    assert result.key == KEY
    assert recorder.calls == [
        ("lookup", "Operations"),
        ("is_unlocked",),
        ("unlock", "wrong"),
        ("unlock", "right"),
        ("export",),
        ("lock",),
    ]
    assert not account.unlocked


@pytest.mark.parametrize("position", [1, 2, 4])
def test_first_matching_candidate_wins(recorder, position):
    candidates = [f"guess{i}" for i in range(1, 6)]
    account = LockableAccount(recorder, passphrase=candidates[position - 1].encode())
    wallet = FakeWallet(recorder, {"Operations": account})

    retrieve(wallet, "Test wallet/Operations", candidates)

    attempts = [call[1] for call in recorder.calls if call[0] == "unlock"]
    assert attempts == candidates[:position]


def test_no_matching_candidate(recorder):
    account = LockableAccount(recorder)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(UnlockFailed) as excinfo:
        retrieve(wallet, "Test wallet/Operations", ["one", "two", "three"])

    assert recorder.count("unlock") == 3
    assert recorder.count("export") == 0
    assert recorder.count("lock") == 0
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_empty_candidates(recorder):
    account = LockableAccount(recorder)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(UnlockFailed) as excinfo:
        retrieve(wallet, "Test wallet/Operations", [])

    assert excinfo.value.kind is ErrorKind.UNLOCK_FAILED
    assert recorder.count("export") == 0
    assert recorder.count("lock") == 0


def test_export_capability_absent(recorder):
    wallet = FakeWallet(recorder, {"Operations": NoExportAccount(recorder)})

    with pytest.raises(UnsupportedOperation):
        retrieve(wallet, "Test wallet/Operations", ["right"])

    assert recorder.count("is_unlocked") == 0
    assert recorder.count("unlock") == 0


def test_export_fails_after_unlock(recorder):
    account = LockableAccount(recorder, fail=True)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(ExportFailed) as excinfo:
        retrieve(wallet, "Test wallet/Operations", ["right"])

    assert recorder.count("lock") == 1
    assert excinfo.value.relock_error is None
    assert not account.unlocked


def test_relock_failure_is_advisory(recorder):
    account = LockableAccount(recorder, fail_lock=True)
    wallet = FakeWallet(recorder, {"Operations": account})

    result = retrieve(wallet, "Test wallet/Operations", ["right"])

    assert result.key == KEY
    assert result.relock_error is not None
    assert result.relock_error.kind is ErrorKind.RELOCK_FAILED
    assert "lock jammed" in result.relock_error.message


def test_relock_failure_does_not_mask_export_failure(recorder):
    account = LockableAccount(recorder, fail=True, fail_lock=True)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(ExportFailed) as excinfo:
        retrieve(wallet, "Test wallet/Operations", ["right"])

    assert excinfo.value.relock_error is not None
    assert recorder.count("lock") == 1


def test_repeated_runs_repeat_the_same_sequence(recorder):
    account = LockableAccount(recorder)
    wallet = FakeWallet(recorder, {"Operations": account})

    retrieve(wallet, "Test wallet/Operations", ["wrong", "right"])
    first = list(recorder.calls)
    recorder.calls.clear()
    retrieve(wallet, "Test wallet/Operations", ["wrong", "right"])

    assert recorder.calls == first


def test_account_without_locker(recorder):
    wallet = FakeWallet(recorder, {"Operations": ExportOnlyAccount(recorder)})

    result = retrieve(wallet, "Test wallet/Operations")

    assert result.key == KEY
    assert recorder.calls == [("lookup", "Operations"), ("export",)]


@pytest.mark.parametrize("qualifier", ["", "/Operations", "Test wallet", "Test wallet/"])
def test_invalid_reference(recorder, qualifier):
    wallet = FakeWallet(recorder, {})

    with pytest.raises(InvalidReference):
        retrieve(wallet, qualifier, ["right"])

    assert recorder.calls == []


def test_account_not_found(recorder):
    wallet = FakeWallet(recorder, {})

    with pytest.raises(AccountNotFound):
        retrieve(wallet, "Test wallet/Missing", ["right"])


def test_wallet_without_account_lookup():
    with pytest.raises(UnsupportedOperation):
        retrieve(LookuplessWallet(), "Opaque/Operations", ["right"])


def test_derived_account_unlocks_hd_wallet(recorder):
    path = "m/12381/3600/0/0"
    account = ExportOnlyAccount(recorder)
    wallet = LockableWallet(recorder, {path: account})

    result = retrieve(wallet, f"Test wallet/{path}", wallet_secret="wallet")

    assert result.key == KEY
    assert recorder.calls[0] == ("wallet_unlock", "wallet")
    assert wallet.unlocked
    assert recorder.count("wallet_lock") == 0


def test_derived_account_requires_wallet_passphrase(recorder):
    wallet = LockableWallet(recorder, {})

    with pytest.raises(MissingCredential):
        retrieve(wallet, "Test wallet/m/0/1")

    assert recorder.calls == []


def test_derived_account_wrong_wallet_passphrase(recorder):
    wallet = LockableWallet(recorder, {"m/0/1": ExportOnlyAccount(recorder)})

    with pytest.raises(UnlockFailed):
        retrieve(wallet, "Test wallet/m/0/1", wallet_secret="nope")

    assert recorder.count("lookup") == 0


def test_derived_account_under_hd_wallet_without_locker(recorder):
    wallet = FakeWallet(recorder, {}, wallet_type=WALLET_TYPE_HD)

    with pytest.raises(UnsupportedOperation):
        retrieve(wallet, "Test wallet/m/0/1", wallet_secret="wallet")


def test_derivation_path_under_non_hd_wallet(recorder):
    wallet = LockableWallet(
        recorder, {"m/0/1": ExportOnlyAccount(recorder)}, wallet_type=WALLET_TYPE_ND
    )

    result = retrieve(wallet, "Test wallet/m/0/1", wallet_secret="wallet")

    assert result.key == KEY
    assert recorder.count("wallet_unlock") == 0


def test_unlock_timeout_stops_candidates(recorder):
    account = LockableAccount(recorder, slow_unlock=1.0)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(OperationTimeout) as excinfo:
        retrieve(wallet, "Test wallet/Operations", ["wrong", "right"], timeout=0.2)

    assert excinfo.value.kind is ErrorKind.TIMEOUT
    assert recorder.count("unlock") == 1
    assert recorder.count("export") == 0


def wait_for(condition, limit=3.0):
    deadline = time.monotonic() + limit
    while not condition():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True


def test_export_timeout_still_relocks(recorder):
    account = LockableAccount(recorder, slow_export=1.0)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(OperationTimeout):
        retrieve(wallet, "Test wallet/Operations", ["right"], timeout=0.2)

    assert recorder.count("export") == 1
    assert recorder.count("lock") == 1
    assert not account.unlocked


def test_wallet_unlock_timeout(recorder):
    wallet = LockableWallet(
        recorder, {"m/0/1": ExportOnlyAccount(recorder)}, slow_unlock=1.0
    )

    with pytest.raises(OperationTimeout):
        retrieve(wallet, "Test wallet/m/0/1", wallet_secret="wallet", timeout=0.2)

    assert recorder.count("lookup") == 0


def test_lookup_timeout(recorder):
    account = LockableAccount(recorder)
    wallet = FakeWallet(recorder, {"Operations": account}, slow_lookup=1.0)

    with pytest.raises(OperationTimeout):
        retrieve(wallet, "Test wallet/Operations", ["right"], timeout=0.2)

    assert recorder.count("is_unlocked") == 0
    assert recorder.count("unlock") == 0


def test_late_unlock_is_relocked(recorder):
    account = LockableAccount(recorder, slow_unlock=0.5)
    wallet = FakeWallet(recorder, {"Operations": account})

    with pytest.raises(OperationTimeout):
        retrieve(wallet, "Test wallet/Operations", ["right"], timeout=0.1)

    assert wait_for(lambda: recorder.count("lock") == 1 and not account.unlocked)
    assert recorder.count("export") == 0
