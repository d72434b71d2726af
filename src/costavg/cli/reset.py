"""Reset and undo subcommands - clear a portfolio's transactions and bring them back."""

from ..store import UnknownPortfolioError
from .common import console, open_store, save_store


def register_subcommand(subparsers):
    """Register the reset and undo subcommands.

    Args:
        subparsers: The argparse subparsers action to add the commands to.
    """
    reset_parser = subparsers.add_parser(
        "reset",
        help="Remove every transaction of a portfolio",
        description="Remove every transaction of a portfolio. The removal can be undone for a few seconds.",
    )
    reset_parser.add_argument("symbol", nargs="?", help="Portfolio symbol (default: the default portfolio)")
    reset_parser.set_defaults(func=run_reset)

    undo_parser = subparsers.add_parser(
        "undo",
        help="Undo the most recent reset",
        description="Restore the transactions removed by the most recent reset, if it has not expired.",
    )
    undo_parser.set_defaults(func=run_undo)


def run_reset(args):
    store = open_store(args)
    try:
        removed = store.reset_transactions(args.symbol)
    except UnknownPortfolioError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    if not removed:
        console.print("Nothing to reset")
        return 0

    save_store(store, args)
    console.print(
        f"Removed {len(removed)} transactions from [cyan]{removed[0].symbol}[/cyan]. "
        f"Run 'costavg undo' within {store.undo_window:g} seconds to restore them."
    )
    return 0


def run_undo(args):
    store = open_store(args)
    restored = store.undo_reset()
    if not restored:
        console.print("[yellow]Nothing to undo[/yellow]")
        return 1

    save_store(store, args)
    console.print(f"Restored {len(restored)} transactions to [cyan]{restored[0].symbol}[/cyan]")
    return 0
