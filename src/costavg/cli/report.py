#!/usr/bin/env python3
"""Report subcommand - Display a portfolio's position, history and simulations."""

from rich.panel import Panel
from rich.table import Table

from ..portfolio import (
    CostAveragingInfeasible,
    SimulationStatus,
    TransactionType,
    aggregate,
    annotate,
    simulate,
    solve_cost_averaging,
)
from ..store import UnknownPortfolioError
from .common import colorize, console, format_currency, format_number, open_store

STATUS_STYLES = {
    SimulationStatus.PROFIT: "green",
    SimulationStatus.LOSS: "red",
    SimulationStatus.NEUTRAL: "white",
}


def register_subcommand(subparsers):
    """Register the report subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers action to add the command to.
    """
    parser = subparsers.add_parser(
        "report",
        help="Display a portfolio report",
        description=(
            "Display the weighted-average position and transaction history of a portfolio, "
            "optionally valued at a hypothetical price with a cost-averaging target."
        ),
    )
    parser.add_argument("symbol", nargs="?", help="Portfolio symbol (default: the default portfolio)")
    parser.add_argument("--price", "-p", help="Hypothetical current price to simulate the position at")
    parser.add_argument("--target", "-t", help="Target average cost for the cost-averaging calculator")
    parser.set_defaults(func=run)


def run(args):
    """Display position, annotated history, simulation and cost-averaging results.

    Args:
        args: Parsed argparse namespace with symbol, price and target attributes.

    Returns:
        int: Exit code (0 for success, 1 for errors).
    """
    store = open_store(args)
    try:
        symbol = store.select_portfolio(args.symbol) if args.symbol else store.active_symbol
    except UnknownPortfolioError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    transactions = store.transactions_for(symbol)
    position = aggregate(transactions)

    console.print(
        Panel(
            f"Average cost: [bold yellow]{format_currency(position.average_cost)}[/bold yellow]\n"
            f"Quantity: [magenta]{format_number(position.total_quantity)}[/magenta]\n"
            f"Total cost: [green]{format_currency(position.total_cost)}[/green]",
            title=f"{symbol} Position",
        )
    )

    history = Table(title=f"{symbol} Transactions")
    history.add_column("Id", style="dim", justify="left")
    history.add_column("Date", justify="left")
    history.add_column("Type", justify="left")
    history.add_column("Quantity", style="magenta", justify="right")
    history.add_column("Price", style="yellow", justify="right")
    history.add_column("Total", justify="right")
    history.add_column("Realized P/L", justify="right")

    for row in annotate(transactions):
        txn = row.transaction
        if row.realized_pl is not None:
            realized = colorize(
                f"{format_currency(row.realized_pl)} ({format_number(row.realized_pl_percent)}%)",
                row.realized_pl,
            )
        else:
            realized = ""
        type_style = "green" if txn.transaction_type == TransactionType.BUY else "red"
        history.add_row(
            txn.id[:8],
            txn.timestamp.astimezone().strftime("%Y-%m-%d %H:%M"),
            f"[{type_style}]{txn.transaction_type.value}[/{type_style}]",
            format_number(txn.quantity),
            format_currency(txn.price),
            format_currency(txn.total_value),
            realized,
            style=None if txn.is_active else "dim strike",
        )

    if transactions:
        console.print(history)
    else:
        console.print("[dim]No transactions yet[/dim]")

    if args.price is None:
        return 0

    simulation = simulate(position, args.price)
    if simulation is None:
        console.print("[dim]Simulation needs an open position and a positive price[/dim]")
        return 0

    style = STATUS_STYLES[simulation.status]
    console.print(
        Panel(
            f"Market value: {format_currency(simulation.current_value)}\n"
            f"P/L: [{style}]{format_currency(simulation.profit_or_loss_total)}[/{style}]\n"
            f"P/L per share: {colorize(format_number(simulation.profit_or_loss_per_share), simulation.profit_or_loss_per_share)}\n"
            f"Change: {colorize(format_number(simulation.percentage_change) + '%', simulation.percentage_change)}",
            title=f"Simulation @ {format_currency(simulation.price)} ({simulation.status.value})",
        )
    )

    if args.target is None:
        return 0

    solution = solve_cost_averaging(simulation, position, args.target)
    if solution is None:
        console.print("[dim]Cost averaging only applies to a position at a loss with a positive target[/dim]")
    elif isinstance(solution, CostAveragingInfeasible):
        console.print(f"[red]Cost averaging: {solution.message}[/red]")
    else:
        console.print(
            Panel(
                f"Buy [bold]{format_number(solution.required_quantity)}[/bold] shares "
                f"at {format_currency(simulation.price)}\n"
                f"Required capital: [bold]{format_currency(solution.required_capital)}[/bold]",
                title=f"Cost Averaging to {format_currency(solution.target_average)}",
            )
        )

    return 0
