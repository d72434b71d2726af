"""Trade subcommands - record, preview, toggle and remove transactions."""

from rich.panel import Panel

from ..portfolio import TransactionType, aggregate, preview
from ..store import UnknownPortfolioError
from .common import (
    colorize,
    console,
    find_transaction_id,
    format_currency,
    format_number,
    open_store,
    save_store,
)


def register_subcommand(subparsers):
    """Register the buy, sell, toggle and remove subcommands.

    Args:
        subparsers: The argparse subparsers action to add the commands to.
    """
    for transaction_type in TransactionType:
        name = transaction_type.value.lower()
        parser = subparsers.add_parser(
            name,
            help=f"Record a {name} transaction",
            description=f"Record a {name} transaction, or preview its effect on the average cost with --preview.",
        )
        parser.add_argument("symbol", help="Portfolio symbol")
        parser.add_argument("price", help="Price per share")
        parser.add_argument("quantity", help="Number of shares (fractions allowed)")
        parser.add_argument(
            "--preview",
            action="store_true",
            help="Show the resulting average cost without recording the transaction",
        )
        parser.set_defaults(func=run_trade, transaction_type=transaction_type)

    toggle_parser = subparsers.add_parser(
        "toggle",
        help="Include or exclude a transaction from the calculations",
        description="Flip a transaction's active flag. Inactive transactions are kept but ignored.",
    )
    toggle_parser.add_argument("id", help="Transaction id or a unique prefix of it")
    toggle_parser.set_defaults(func=run_toggle)

    remove_parser = subparsers.add_parser(
        "remove",
        help="Permanently delete a transaction",
        description="Permanently delete a single transaction.",
    )
    remove_parser.add_argument("id", help="Transaction id or a unique prefix of it")
    remove_parser.set_defaults(func=run_remove)


def run_trade(args):
    """Record or preview a BUY/SELL.

    Args:
        args: Parsed argparse namespace with symbol, price, quantity,
            preview and transaction_type attributes.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    store = open_store(args)
    try:
        symbol = store.select_portfolio(args.symbol)
    except UnknownPortfolioError as e:
        console.print(f"[red]Error: {e}. Create it with 'costavg portfolio add {args.symbol.upper()}'.[/red]")
        return 1

    position = aggregate(store.transactions_for(symbol))
    result = preview(position, args.transaction_type, args.price, args.quantity)
    if result is None:
        console.print("[red]Error: price and quantity must be positive numbers[/red]")
        return 1

    lines = [
        f"Current average: {format_currency(position.average_cost)}",
        f"New average: [bold]{format_currency(result.new_average)}[/bold]",
        f"Change: {colorize(format_currency(result.delta), result.delta)}",
    ]
    if result.is_first_transaction:
        lines.append("[dim]First transaction of this position[/dim]")
    if result.estimated_realized_pl is not None:
        lines.append(
            f"Estimated realized P/L: {colorize(format_currency(result.estimated_realized_pl), result.estimated_realized_pl)}"
        )

    if args.preview:
        console.print(Panel("\n".join(lines), title=f"Preview {args.transaction_type.value} {symbol}"))
        return 0

    txn = store.add_transaction(args.transaction_type, args.price, args.quantity, symbol=symbol)
    save_store(store, args)

    console.print(
        Panel(
            "\n".join(lines),
            title=f"{txn.transaction_type.value} {format_number(txn.quantity)} {symbol} @ {format_currency(txn.price)}",
            subtitle=f"id {txn.id[:8]}",
        )
    )
    return 0


def run_toggle(args):
    store = open_store(args)
    try:
        txn = store.toggle_transaction(find_transaction_id(store, args.id))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    state = "included in" if txn.is_active else "excluded from"
    console.print(f"Transaction {txn.id[:8]} is now {state} the {txn.symbol} position")
    return 0


def run_remove(args):
    store = open_store(args)
    try:
        txn = store.remove_transaction(find_transaction_id(store, args.id))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    save_store(store, args)
    console.print(f"Removed {txn.transaction_type.value} {format_number(txn.quantity)} {txn.symbol} @ {format_currency(txn.price)}")
    return 0
