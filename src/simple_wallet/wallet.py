import logging
import shutil
import sys
from types import TracebackType
from typing import Optional

import click
from hexbytes import HexBytes
from rich.traceback import Traceback

from . import params
from .capabilities import NotFound
from .click import Group
from .console import (
    WALLET_DEBUG,
    activate_logging,
    console,
    make_status_logger,
    print_accounts,
    print_version,
    print_wallets,
)
from .constants import SYMBOL_CHECK
from .keystore import Store, StoreError
from .models import WalletType
from .passphrases import encode_passphrase, prompt_passphrase
from .util import wallet_and_account_names
from .workflows import open_wallet, process_account_key

# ┌───────┐
# │ Setup │
# └───────┘

logger = logging.getLogger(__name__)
status = make_status_logger(logger)


def handle_crash(
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_traceback: TracebackType | None,
) -> None:
    if not WALLET_DEBUG:
        console.print(f"[bold]{exc_type.__name__}[/bold]: {exc_value}")
    else:
        rich_traceback = Traceback.from_exception(
            exc_type,
            exc_value,
            exc_traceback,
            suppress=[click],
            show_locals=False,
        )
        console.print(rich_traceback)


sys.excepthook = handle_crash

# ┌──────┐
# │ Main │
# └──────┘


@click.group(
    cls=Group,
    context_settings=dict(
        show_default=True,
        max_content_width=shutil.get_terminal_size().columns,
        help_option_names=["-h", "--help"],
    ),
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="print version info and exit",
)
def main():
    """A simple CLI for local keystore wallets."""
    if WALLET_DEBUG:
        activate_logging()


# ┌─────────┐
# │ Wallets │
# └─────────┘


@main.group()
def wallet():
    """Manage wallets."""
    pass


@wallet.command(name="create")
@click.argument("name")
@click.option(
    "--type",
    "wallet_type",
    type=click.Choice(["nd", "hd"], case_sensitive=False),
    default="nd",
    help="non-deterministic or hierarchical deterministic",
)
@params.wallet_passphrase
@params.common
def wallet_create(
    name: str, wallet_type: str, wallet_passphrase: Optional[str], base_dir: str
) -> None:
    """Create a wallet."""
    type_ = WalletType.from_option(wallet_type)
    if type_ is WalletType.HD and not wallet_passphrase:
        wallet_passphrase = click.prompt(
            "Wallet passphrase",
            hide_input=True,
            confirmation_prompt=True,
            err=True,
        )
    store = Store(base_dir)
    try:
        with status("Creating wallet..."):
            store.create_wallet(
                name,
                type_,
                encode_passphrase(wallet_passphrase) if wallet_passphrase else None,
            )
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[ok]{SYMBOL_CHECK} Created {type_.value} wallet '{name}'[/ok]")


@wallet.command(name="list")
@params.common
def wallet_list(base_dir: str) -> None:
    """List wallets."""
    store = Store(base_dir)
    print_wallets(str(store.base_dir), store.wallets())


# ┌──────────┐
# │ Accounts │
# └──────────┘


@main.group()
def account():
    """Manage wallet accounts."""
    pass


@account.command(name="create")
@params.account()
@params.new_passphrase
@params.wallet_passphrase
@click.option(
    "--path",
    metavar="PATH",
    help="derivation path (HD wallets only)",
)
@params.common
def account_create(
    account: str,
    passphrase: str,
    wallet_passphrase: Optional[str],
    path: Optional[str],
    base_dir: str,
) -> None:
    """Create an account."""
    store = Store(base_dir)
    wallet = open_wallet(store, account)
    _, account_name = wallet_and_account_names(account)
    try:
        with status("Creating account..."):
            info = wallet.create_account(
                account_name,
                encode_passphrase(passphrase),
                wallet_passphrase=(
                    encode_passphrase(wallet_passphrase) if wallet_passphrase else None
                ),
                path=path,
            )
    except (StoreError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[ok]{SYMBOL_CHECK} Created account '{account}'[/ok]")
    print_accounts(wallet.name(), [info])


@account.command(name="import")
@params.account()
@params.new_passphrase
@params.common
def account_import(account: str, passphrase: str, base_dir: str) -> None:
    """Import an account from a private key."""
    store = Store(base_dir)
    wallet = open_wallet(store, account)
    _, account_name = wallet_and_account_names(account)
    try:
        privkey = HexBytes(prompt_passphrase("Private Key: "))
    except ValueError as exc:
        raise click.ClickException(f"Invalid private key: {exc}") from exc
    try:
        with status("Importing account..."):
            info = wallet.import_account(
                account_name, privkey, encode_passphrase(passphrase)
            )
    except (StoreError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[ok]{SYMBOL_CHECK} Imported account '{account}'[/ok]")
    print_accounts(wallet.name(), [info])


@account.command(name="list")
@click.argument("wallet_name", metavar="WALLET")
@params.common
def account_list(wallet_name: str, base_dir: str) -> None:
    """List the accounts of a wallet."""
    store = Store(base_dir)
    try:
        wallet = store.open_wallet(wallet_name)
    except (NotFound, StoreError) as exc:
        raise click.ClickException(f"Failed to access wallet: {exc}") from exc
    print_accounts(wallet.name(), wallet.accounts())


@account.command(name="key")
@params.account(callback=False)
@params.passphrases
@params.timeout
@params.quiet
@params.common
def account_key(
    account: str,
    passphrases: tuple[str, ...],
    ask_passphrase: bool,
    wallet_passphrase: Optional[str],
    timeout: float,
    quiet: bool,
    base_dir: str,
) -> None:
    """Obtain the private key of an account.

    For example:

    \b
        simple-wallet account key --account="Personal wallet/Operations" \\
            --passphrase="my account passphrase"

    Passphrases are tried in the order given. In quiet mode this will
    return 0 if the key can be obtained, otherwise 1.
    """
    process_account_key(
        store=Store(base_dir),
        qualifier=account,
        passphrases=passphrases,
        wallet_passphrase=wallet_passphrase,
        ask_passphrase=ask_passphrase,
        timeout=timeout,
        quiet=quiet,
    )
