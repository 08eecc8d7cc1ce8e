import logging
from typing import NamedTuple, Optional, Sequence

import click

logger = logging.getLogger(__name__)


class SecretSource(NamedTuple):
    wallet_secret: Optional[bytes]
    account_candidates: tuple[bytes, ...]


def encode_passphrase(passphrase: str) -> bytes:
    return passphrase.encode("utf-8")


def prompt_passphrase(prompt: str) -> str:
    return click.prompt(prompt, hide_input=True, prompt_suffix="", err=True)


def collect_secrets(
    *,
    passphrases: Sequence[str],
    wallet_passphrase: Optional[str],
    ask_passphrase: bool = False,
    account: str = "",
) -> SecretSource:
    """Gather the wallet secret and the ordered account passphrase candidates.

    Candidates keep the order they were given in; a prompted passphrase is
    tried last.
    """
    candidates = [encode_passphrase(p) for p in passphrases]
    if ask_passphrase:
        candidates.append(
            encode_passphrase(prompt_passphrase(f"[{account}] passphrase: "))
        )
    logger.info(f"Collected {len(candidates)} account passphrase candidate(s)")
    return SecretSource(
        wallet_secret=(
            encode_passphrase(wallet_passphrase) if wallet_passphrase else None
        ),
        account_candidates=tuple(candidates),
    )
