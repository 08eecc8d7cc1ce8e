"""Optional capabilities of opened wallet and account handles.

Handles are opaque: any of them may implement any subset of the protocols
below. `Capabilities.of()` inspects a handle once and the caller branches on
the resulting descriptor instead of on concrete handle types.
"""

import dataclasses
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .deadline import CallContext


class NotFound(LookupError):
    pass


@runtime_checkable
class KeyMaterial(Protocol):
    def marshal(self) -> bytes: ...


class Wallet(Protocol):
    def name(self) -> str: ...

    def type(self) -> str: ...


@runtime_checkable
class NameResolver(Protocol):
    def resolve(self, qualifier: str) -> tuple[str, str]: ...


@runtime_checkable
class AccountLookup(Protocol):
    def account_by_name(self, ctx: "CallContext", name: str) -> Any: ...


@runtime_checkable
class Locker(Protocol):
    """Lock state of a wallet or account.

    ``unlock`` may still complete after its context was cancelled; callers
    that abandon it are expected to call ``lock`` afterwards, so ``lock``
    must be safe to call at any time from any thread.
    """

    def unlock(self, ctx: "CallContext", secret: bytes) -> None: ...

    def lock(self, ctx: "CallContext") -> None: ...

    def is_unlocked(self, ctx: "CallContext") -> bool: ...


@runtime_checkable
class PrivateKeyExporter(Protocol):
    def private_key(self, ctx: "CallContext") -> KeyMaterial: ...


@dataclasses.dataclass(frozen=True, kw_only=True)
class Capabilities:
    name_resolver: bool = False
    account_lookup: bool = False
    locker: bool = False
    private_key_exporter: bool = False

    @classmethod
    def of(cls, handle: object) -> "Capabilities":
        return cls(
            name_resolver=isinstance(handle, NameResolver),
            account_lookup=isinstance(handle, AccountLookup),
            locker=isinstance(handle, Locker),
            private_key_exporter=isinstance(handle, PrivateKeyExporter),
        )

    def __str__(self) -> str:
        present = [
            field.name
            for field in dataclasses.fields(self)
            if getattr(self, field.name)
        ]
        return ", ".join(present) if present else "<none>"
