"""Portfolio subcommand - list, create, rename, delete and select portfolios."""

from rich.prompt import Confirm
from rich.table import Table

from ..portfolio import aggregate
from .common import console, format_currency, format_number, open_store, save_store


def register_subcommand(subparsers):
    """Register the portfolio subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "portfolio",
        help="Manage portfolios (one per ticker symbol)",
        description="List, create, rename, delete or select portfolios.",
    )
    actions = parser.add_subparsers(title="actions", dest="action")

    list_parser = actions.add_parser("list", help="List portfolios with their positions")
    list_parser.set_defaults(func=run_list)

    add_parser = actions.add_parser("add", help="Create a portfolio and make it the default")
    add_parser.add_argument("name", help="Ticker symbol, e.g. THYAO")
    add_parser.set_defaults(func=run_add)

    rename_parser = actions.add_parser("rename", help="Rename a portfolio and its transactions")
    rename_parser.add_argument("old_name", help="Current symbol")
    rename_parser.add_argument("new_name", help="New symbol")
    rename_parser.set_defaults(func=run_rename)

    delete_parser = actions.add_parser("delete", help="Delete a portfolio and all its transactions")
    delete_parser.add_argument("name", help="Symbol to delete")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    delete_parser.set_defaults(func=run_delete)

    select_parser = actions.add_parser("select", help="Make a portfolio the default one")
    select_parser.add_argument("name", help="Symbol to select")
    select_parser.set_defaults(func=run_select)

    parser.set_defaults(func=run_list)


def run_list(args):
    """Print every portfolio with its current weighted-average position."""
    store = open_store(args)

    table = Table(title="Portfolios")
    table.add_column("Symbol", style="cyan", justify="left")
    table.add_column("Quantity", style="magenta", justify="right")
    table.add_column("Average Cost", style="yellow", justify="right")
    table.add_column("Total Cost", style="green", justify="right")
    table.add_column("Transactions", justify="right")

    for symbol in store.stocks:
        transactions = store.transactions_for(symbol)
        position = aggregate(transactions)
        marker = " *" if symbol == store.active_symbol else ""
        table.add_row(
            f"{symbol}{marker}",
            format_number(position.total_quantity),
            format_currency(position.average_cost),
            format_currency(position.total_cost),
            str(len(transactions)),
        )

    console.print(table)
    return 0


def run_add(args):
    store = open_store(args)
    try:
        symbol = store.add_portfolio(args.name)
        store.set_default_portfolio(symbol)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    console.print(f"Created portfolio [cyan]{symbol}[/cyan]")
    return 0


def run_rename(args):
    store = open_store(args)
    try:
        symbol = store.rename_portfolio(args.old_name, args.new_name)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    console.print(f"Portfolio is now named [cyan]{symbol}[/cyan]")
    return 0


def run_delete(args):
    store = open_store(args)
    name = args.name.strip().upper()

    if not args.yes and not Confirm.ask(
        f"Delete {name} and all of its transactions?", console=console, default=False
    ):
        console.print("Cancelled")
        return 0

    try:
        removed = store.delete_portfolio(name)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    console.print(f"Deleted [cyan]{name}[/cyan] and {len(removed)} transactions")
    return 0


def run_select(args):
    store = open_store(args)
    try:
        symbol = store.set_default_portfolio(args.name)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    console.print(f"Default portfolio is now [cyan]{symbol}[/cyan]")
    return 0
