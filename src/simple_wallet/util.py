from typing import NamedTuple

from hexbytes import HexBytes

from .constants import DERIVATION_PATH_PREFIX


class AccountReference(NamedTuple):
    wallet: str
    account: str


def wallet_and_account_names(qualifier: str) -> AccountReference:
    """Split ``wallet/account`` at the first slash.

    The account part may itself contain slashes (derivation paths). A bare
    wallet name is valid and yields an empty account name.
    """
    if not qualifier:
        raise ValueError("invalid account format")
    wallet, sep, account = qualifier.partition("/")
    if not wallet:
        raise ValueError("invalid account format")
    if not sep:
        return AccountReference(qualifier, "")
    return AccountReference(wallet, account)


class QualifiedNameResolver:
    def resolve(self, qualifier: str) -> tuple[str, str]:
        return wallet_and_account_names(qualifier)


def is_derivation_path(name: str) -> bool:
    return name.startswith(DERIVATION_PATH_PREFIX)


def format_key(key: bytes) -> str:
    return HexBytes(key).to_0x_hex()
