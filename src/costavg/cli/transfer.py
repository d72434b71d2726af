"""Export and import subcommands - move transactions to and from Excel files."""

import warnings

from ..persistence import load_transactions_from_excel, save_transactions_to_excel
from ..store import UnknownPortfolioError
from .common import console, open_store, save_store


def register_subcommand(subparsers):
    """Register the export and import subcommands.

    Args:
        subparsers: The argparse subparsers action to add the commands to.
    """
    export_parser = subparsers.add_parser(
        "export",
        help="Write transactions to an Excel file",
        description="Write all transactions, or those of one portfolio, to an Excel file.",
    )
    export_parser.add_argument("filename", help="Path to the Excel file to write")
    export_parser.add_argument("--symbol", "-s", help="Only export this portfolio")
    export_parser.set_defaults(func=run_export)

    import_parser = subparsers.add_parser(
        "import",
        help="Read transactions from an Excel file",
        description="Add the transactions of an Excel file. Rows whose id is already known are skipped.",
    )
    import_parser.add_argument("filename", help="Path to the Excel file to read")
    import_parser.add_argument(
        "--ignore-warnings",
        action="store_true",
        help="Do not report rows that were missing an id, type or active flag",
    )
    import_parser.set_defaults(func=run_import)


def run_export(args):
    store = open_store(args)
    if args.symbol:
        try:
            transactions = store.transactions_for(store.select_portfolio(args.symbol))
        except UnknownPortfolioError as e:
            console.print(f"[red]Error: {e}[/red]")
            return 1
    else:
        transactions = store.transactions

    save_transactions_to_excel(transactions, args.filename)
    console.print(f"Wrote {len(transactions)} transactions to {args.filename}")
    return 0


def run_import(args):
    if args.ignore_warnings:
        warnings.filterwarnings("ignore", category=UserWarning)

    try:
        transactions = load_transactions_from_excel(args.filename)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    store = open_store(args)
    added = store.merge_transactions(transactions)
    save_store(store, args)
    console.print(f"Imported {len(added)} of {len(transactions)} transactions")
    return 0
