"""Common logic for command implementations."""

import logging
from typing import Optional, Sequence

import click

from .capabilities import NotFound
from .console import (
    get_output_console,
    make_status_logger,
    print_relock_warning,
)
from .errors import InvalidReference, KeyRetrievalError
from .keystore import Store, StoredWallet, StoreError
from .passphrases import collect_secrets
from .retrieval import default_resolver, retrieve_private_key
from .util import format_key, wallet_and_account_names

logger = logging.getLogger(__name__)
status = make_status_logger(logger)


def open_wallet(store: Store, qualifier: str) -> StoredWallet:
    try:
        wallet_name, _ = wallet_and_account_names(qualifier)
        wallet = store.open_wallet(wallet_name)
    except (ValueError, NotFound, StoreError) as exc:
        raise click.ClickException(f"Failed to access wallet: {exc}") from exc
    logger.debug(f"Opened wallet '{wallet.name()}' of type {wallet.type()}")
    return wallet


def resolve_wallet_name(qualifier: str) -> str:
    try:
        wallet_name, _ = default_resolver.resolve(qualifier)
    except ValueError as exc:
        raise InvalidReference(f"Failed to obtain account name: {exc}") from exc
    return wallet_name


def process_account_key(
    *,
    store: Store,
    qualifier: str,
    passphrases: Sequence[str],
    wallet_passphrase: Optional[str],
    ask_passphrase: bool,
    timeout: float,
    quiet: bool,
) -> None:
    ctx = click.get_current_context()
    try:
        wallet_name = resolve_wallet_name(qualifier)
        try:
            wallet = open_wallet(store, wallet_name)
        except click.ClickException:
            if quiet:
                ctx.exit(1)
            raise
        source = collect_secrets(
            passphrases=passphrases,
            wallet_passphrase=wallet_passphrase,
            ask_passphrase=ask_passphrase,
            account=qualifier,
        )
        with status("Retrieving private key..."):
            result = retrieve_private_key(
                wallet,
                qualifier,
                source.wallet_secret,
                source.account_candidates,
                timeout,
            )
    except KeyRetrievalError as exc:
        logger.info(f"Key retrieval failed ({exc.kind.value})")
        if exc.relock_error is not None and not quiet:
            print_relock_warning(exc.relock_error.message)
        if quiet:
            ctx.exit(1)
        raise click.ClickException(exc.message) from exc

    if result.relock_error is not None and not quiet:
        print_relock_warning(result.relock_error.message)
    if not quiet:
        get_output_console().print(format_key(result.key), highlight=False)
