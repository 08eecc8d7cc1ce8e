"""Retrieve the raw private key of a wallet account.

The wallet is unlocked first when the account has to be derived from it,
then the account is looked up, unlocked with the first passphrase candidate
that works, and exported. An account unlocked here is locked again on every
exit path of the export; an account found already unlocked is left alone.
"""

import logging
from types import TracebackType
from typing import Any, NamedTuple, Optional, Sequence

from .capabilities import (
    Capabilities,
    Locker,
    NameResolver,
    PrivateKeyExporter,
    Wallet,
)
from .constants import WALLET_TYPE_HD
from .deadline import CallContext, call_with_timeout
from .errors import (
    AccountNotFound,
    ExportFailed,
    InvalidReference,
    KeyRetrievalError,
    MissingCredential,
    OperationTimeout,
    RelockFailed,
    UnlockFailed,
    UnsupportedOperation,
)
from .util import QualifiedNameResolver, is_derivation_path

logger = logging.getLogger(__name__)

default_resolver = QualifiedNameResolver()


class KeyResult(NamedTuple):
    key: bytes
    relock_error: Optional[RelockFailed] = None


class AccountUnlock:
    """Scope during which an account stays unlocked.

    Only an unlock performed by `acquire()` is reversed on exit. Failing to
    lock again is recorded in `relock_error` and never replaces whatever
    happened inside the scope.
    """

    def __init__(self, locker: Optional[Locker], timeout: float):
        self.locker = locker
        self.timeout = timeout
        self.acquired = False
        self.relock_error: Optional[RelockFailed] = None

    def acquire(self, candidates: Sequence[bytes]) -> "AccountUnlock":
        if self.locker is None:
            return self
        locker = self.locker
        try:
            unlocked = call_with_timeout(
                "check whether account is unlocked", locker.is_unlocked, self.timeout
            )
        except KeyRetrievalError:
            raise
        except Exception as exc:
            raise UnlockFailed(
                f"Failed to find out if account is locked: {exc}"
            ) from exc
        if unlocked:
            logger.info("Account is already unlocked")
            return self

        last_error: Optional[Exception] = None
        for idx, candidate in enumerate(candidates):
            try:
                call_with_timeout(
                    "unlock account",
                    lambda ctx, secret=candidate: locker.unlock(ctx, secret),
                    self.timeout,
                    on_abandoned=self._relock_late_unlock,
                )
            except OperationTimeout:
                raise
            except Exception as exc:
                logger.debug(f"Passphrase candidate {idx + 1} rejected: {exc}")
                last_error = exc
                continue
            logger.info(f"Unlocked account with passphrase candidate {idx + 1}")
            self.acquired = True
            return self

        raise UnlockFailed(
            "Failed to unlock account to obtain private key"
            + (f" ({len(candidates)} passphrase(s) tried)" if candidates else "")
        ) from last_error

    def _relock_late_unlock(self, _: None) -> None:
        # An unlock that succeeds after its timeout was never recorded.
        assert self.locker is not None
        self.locker.lock(CallContext(self.timeout))
        logger.info("Relocked account unlocked after timeout")

    def __enter__(self) -> "AccountUnlock":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_value: Optional[BaseException],
        exc_traceback: Optional[TracebackType],
    ) -> None:
        if not self.acquired or self.locker is None:
            return
        try:
            call_with_timeout("relock account", self.locker.lock, self.timeout)
        except Exception as exc:
            logger.warning(f"Failed to relock account: {exc}")
            relock_error = RelockFailed(f"Failed to relock account: {exc}")
            relock_error.__cause__ = exc
            self.relock_error = relock_error
        else:
            logger.info("Relocked account")
        finally:
            self.acquired = False


def unlock_wallet(wallet: Any, secret: Optional[bytes], timeout: float) -> None:
    if not secret:
        raise MissingCredential(
            "Wallet passphrase is required for dynamically generated"
            " hierarchical deterministic accounts"
        )
    if not Capabilities.of(wallet).locker:
        raise UnsupportedOperation(f"Wallet '{wallet.name()}' cannot be unlocked")
    try:
        call_with_timeout("unlock wallet", lambda ctx: wallet.unlock(ctx, secret), timeout)
    except OperationTimeout:
        raise
    except Exception as exc:
        raise UnlockFailed(f"Failed to unlock wallet: {exc}") from exc
    logger.info(f"Unlocked wallet '{wallet.name()}'")


def lookup_account(wallet: Any, account_name: str, timeout: float) -> Any:
    if not Capabilities.of(wallet).account_lookup:
        raise UnsupportedOperation("Wallet cannot obtain accounts by name")
    try:
        return call_with_timeout(
            "obtain account",
            lambda ctx: wallet.account_by_name(ctx, account_name),
            timeout,
        )
    except OperationTimeout:
        raise
    except Exception as exc:
        raise AccountNotFound(f"Failed to obtain account: {exc}") from exc


def export_key(exporter: PrivateKeyExporter, timeout: float) -> bytes:
    try:
        material = call_with_timeout("obtain private key", exporter.private_key, timeout)
        return bytes(material.marshal())
    except OperationTimeout:
        raise
    except Exception as exc:
        raise ExportFailed(f"Failed to obtain private key: {exc}") from exc


def retrieve_private_key(
    wallet: Wallet,
    qualifier: str,
    wallet_secret: Optional[bytes],
    candidates: Sequence[bytes],
    timeout: float,
    resolver: NameResolver = default_resolver,
) -> KeyResult:
    """Return the raw private key of the account named by ``qualifier``.

    Raises a `KeyRetrievalError` subclass on the first fatal condition. A
    failure to relock the account afterwards is reported in
    ``relock_error``, on the result or on the raised error.
    """
    try:
        _, account_name = resolver.resolve(qualifier)
    except ValueError as exc:
        raise InvalidReference(f"Failed to obtain account name: {exc}") from exc
    if not account_name:
        raise InvalidReference(f"No account name in '{qualifier}'")

    if wallet.type() == WALLET_TYPE_HD and is_derivation_path(account_name):
        unlock_wallet(wallet, wallet_secret, timeout)

    account = lookup_account(wallet, account_name, timeout)
    capabilities = Capabilities.of(account)
    logger.debug(f"Account '{account_name}' capabilities: {capabilities}")
    if not capabilities.private_key_exporter:
        raise UnsupportedOperation(
            f"Account '{qualifier}' does not provide its private key"
        )

    guard = AccountUnlock(account if capabilities.locker else None, timeout)
    guard.acquire(candidates)
    try:
        with guard:
            key = export_key(account, timeout)
    except KeyRetrievalError as exc:
        exc.relock_error = guard.relock_error
        raise
    return KeyResult(key, guard.relock_error)
