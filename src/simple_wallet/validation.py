from typing import Any, Optional

import click

from .console import WALLET_DEBUG, activate_logging
from .util import wallet_and_account_names


def verbose_callback(
    ctx: click.Context, opt: click.Option, value: Optional[bool]
) -> Optional[Any]:
    if value and not WALLET_DEBUG:
        activate_logging()
    return None


def account_callback(
    ctx: click.Context, opt: click.Parameter, value: Optional[str]
) -> Optional[str]:
    if value is None:
        return None
    try:
        _, account = wallet_and_account_names(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    if not account:
        raise click.BadParameter(f"expected WALLET/ACCOUNT, got '{value}'")
    return value
