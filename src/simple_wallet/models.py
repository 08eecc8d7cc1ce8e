from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Optional

from hexbytes import HexBytes

from .constants import WALLET_TYPE_HD, WALLET_TYPE_ND

if TYPE_CHECKING:
    from eth_typing import ChecksumAddress


class WalletType(Enum):
    ND = WALLET_TYPE_ND
    HD = WALLET_TYPE_HD

    @classmethod
    def from_option(cls, value: str) -> "WalletType":
        return cls[value.upper()]


class WalletInfo(NamedTuple):
    name: str
    type: WalletType
    accounts: int


class AccountInfo(NamedTuple):
    name: str
    address: "ChecksumAddress"
    path: Optional[str] = None


class PrivateKey(NamedTuple):
    key: HexBytes

    def marshal(self) -> bytes:
        return bytes(self.key)

    def __repr__(self) -> str:
        return "PrivateKey(<redacted>)"
