import dataclasses
from typing import Any, Callable, Iterable, Optional, TypeVar, Union

import click
from click import Command
from click_option_group import optgroup

from .constants import DEFAULT_BASE_DIR, DEFAULT_TIMEOUT
from .validation import account_callback, verbose_callback

FC = TypeVar("FC", bound=Callable[..., Any] | Command)

Decorator = Callable[[FC], FC]

# ┌─────────────┐
# │ Option Info │
# └─────────────┘


@dataclasses.dataclass(kw_only=True)
class OptionInfo:
    args: Iterable[str]
    help: str
    # defaults should match click.Option
    metavar: Optional[str] = None
    type: Optional[Union[click.types.ParamType, Any]] = None


def make_option(
    option: OptionInfo, cls: Decorator[Any] = click.option, **overrides: Any
) -> Decorator[FC]:
    info = dataclasses.asdict(option)
    info.update(**overrides)
    args = info.pop("args")
    return cls(*args, **info)


account_option_info = OptionInfo(
    args=["--account", "-a"],
    help="account reference",
    metavar="WALLET/ACCOUNT",
)

wallet_passphrase_option_info = OptionInfo(
    args=["--wallet-passphrase"],
    help="wallet passphrase",
    metavar="PASSPHRASE",
)


# ┌─────────┐
# │ Options │
# └─────────┘


base_dir = click.option(
    "--base-dir",
    "-d",
    envvar="WALLET_BASE_DIR",
    show_envvar=True,
    default=DEFAULT_BASE_DIR,
    metavar="DIR",
    help="directory holding the wallets",
)


def common(f: FC) -> FC:
    for option in reversed(
        [
            base_dir,
            click.option(
                "--verbose",
                "-v",
                is_flag=True,
                expose_value=False,
                is_eager=True,
                help="print informational messages",
                callback=verbose_callback,
            ),
        ]
    ):
        f = option(f)
    return f


def account(callback: bool = True) -> Decorator[FC]:
    return make_option(
        account_option_info,
        required=True,
        callback=account_callback if callback else None,
    )


# Account passphrases for `account key`, tried in the order given.
def passphrases(f: FC) -> FC:
    for option in reversed(
        [
            optgroup.group("Passphrases"),
            optgroup.option(
                "--passphrase",
                "-p",
                "passphrases",
                multiple=True,
                metavar="PASSPHRASE",
                help="account passphrase (repeat option to try more)",
            ),
            optgroup.option(
                "--ask-passphrase",
                is_flag=True,
                default=False,
                help="prompt for an account passphrase after trying the others",
            ),
            make_option(wallet_passphrase_option_info, cls=optgroup.option),
        ]
    ):
        f = option(f)
    return f


new_passphrase = click.option(
    "--passphrase",
    "-p",
    metavar="PASSPHRASE",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="passphrase to encrypt the key with",
)

wallet_passphrase = make_option(wallet_passphrase_option_info)

quiet = click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="print nothing, exit with 0 if the key can be obtained and 1 otherwise",
)

timeout = click.option(
    "--timeout",
    "-t",
    type=click.FloatRange(min=0, min_open=True),
    envvar="WALLET_TIMEOUT",
    show_envvar=True,
    default=DEFAULT_TIMEOUT,
    metavar="SECONDS",
    help="time limit for each wallet operation",
)
