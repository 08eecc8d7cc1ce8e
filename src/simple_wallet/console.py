import logging
import os
import sys
import typing
from importlib.metadata import version
from typing import TYPE_CHECKING, Any, Optional, Sequence

from click import Context, Parameter
from rich.console import Console
from rich.theme import Theme

from .constants import SYMBOL_WARNING

if TYPE_CHECKING:
    from rich.console import RenderableType
    from rich.panel import Panel
    from rich.table import Table

    from .models import AccountInfo, WalletInfo


logger = logging.getLogger(__name__)

# Constants
WALLET_DEBUG = True if "WALLET_DEBUG" in os.environ else False

theme = Theme(
    {
        "ok": "green",
        "danger": "red",
        "caution": "yellow",
        "secondary": "dim",
    }
)

# Status and diagnostics go to <stderr> so that <stdout> carries results only.
console = Console(stderr=True, theme=theme)


def activate_logging():
    from rich.logging import RichHandler

    if WALLET_DEBUG:
        level = logging.NOTSET
    else:
        level = logging.INFO
    format = "<%(name)s.%(funcName)s> %(message)s"
    logging.basicConfig(
        level=level,
        format=format,
        datefmt="[%X]",
        handlers=[RichHandler(console=console)],
    )


def get_kvtable(
    *args: dict[str, "RenderableType"], draw_divider: bool = True
) -> "Table":
    from rich.box import Box
    from rich.table import Table
    from rich.text import Text

    custom_box: Box = Box(
        "    \n"  # top
        "    \n"  # head
        "    \n"  # head_row
        "    \n"  # mid
        " ── \n"  # row
        "    \n"  # foot_row
        "    \n"  # foot
        "    \n"  # bottom
    )
    table = Table(
        show_edge=False,
        show_header=False,
        box=custom_box,
    )
    table.add_column("Field", justify="right", style="bold", no_wrap=True)
    table.add_column("Value", no_wrap=False)
    for idx, arg in enumerate(args):
        for key, val in arg.items():
            # Wrap all strings in a Text with overflow.
            if isinstance(val, str):
                table.add_row(key, Text.from_markup(val, overflow="fold"))
            else:
                table.add_row(key, val)
        if len(args) > 1 and idx < len(args) - 1:
            if draw_divider:
                table.add_section()
            else:
                table.add_row("", "")
    return table


def get_output_console(output: Optional[typing.TextIO] = None) -> Console:
    """Return a Console suitable for printing results.

    The Console must not insert hard wraps, which Rich normally inserts by
    default. This is important when piping a hexadecimal key to a file or
    another program.
    """
    return Console(file=output if output else sys.stdout, soft_wrap=True)


def get_panel(
    title: str, subtitle: str, renderable: "RenderableType", **kwargs: Any
) -> "Panel":
    from rich.box import ROUNDED
    from rich.panel import Panel

    base_config = dict(
        title=title,
        title_align="left",
        subtitle=subtitle,
        subtitle_align="right",
        border_style="bold italic",
        padding=(1, 1),
    )
    base_config.update(**kwargs)
    return Panel(renderable, box=ROUNDED, **base_config)  # pyright: ignore[reportArgumentType]


def make_status_logger(logger: logging.Logger):
    def status_logger(message: str):
        logger.info(message, stacklevel=2)
        return console.status(message)

    return status_logger


def print_kvtable(
    title: str,
    subtitle: str,
    *args: dict[str, "RenderableType"],
    draw_divider: bool = True,
) -> None:
    table = get_kvtable(*args, draw_divider=draw_divider)
    get_output_console().print(get_panel(title, subtitle, table))


def print_accounts(wallet_name: str, accounts: Sequence["AccountInfo"]) -> None:
    rows: list[dict[str, "RenderableType"]] = []
    for account in accounts:
        row: dict[str, "RenderableType"] = {
            "Account": account.name,
            "Address": account.address,
        }
        if account.path:
            row["Path"] = account.path
        rows.append(row)
    if not rows:
        rows.append({"Account": "[secondary]<none>[/secondary]"})
    print_kvtable(f"Wallet '{wallet_name}'", f"[ accounts={len(accounts)} ]", *rows)


def print_wallets(base_dir: str, wallets: Sequence["WalletInfo"]) -> None:
    from rich.box import HORIZONTALS
    from rich.table import Table

    table = Table(
        show_edge=False,
        show_header=True,
        header_style="default",
        box=HORIZONTALS,
    )
    table.add_column("Wallet", no_wrap=True)
    table.add_column("Type")
    table.add_column("Accounts", justify="right")
    for wallet in wallets:
        table.add_row(wallet.name, wallet.type.value, str(wallet.accounts))
    get_output_console().print(
        get_panel("Wallets", f"[ {base_dir} ]", table)
    )


def print_relock_warning(message: str) -> None:
    console.print(f"[caution]{SYMBOL_WARNING} {message}[/caution]")


def print_version(ctx: Context, param: Parameter, value: Optional[bool]) -> None:
    if not value or ctx.resilient_parsing:
        return

    get_output_console().print(
        f"Simple Wallet v{version('simple_wallet')}", highlight=False
    )
    ctx.exit()
