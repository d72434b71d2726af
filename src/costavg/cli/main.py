#!/usr/bin/env python3
"""Main entry point for the costavg CLI."""

import argparse
import logging
import sys

from rich.logging import RichHandler

DISCLAIMER = (
    " \033[33m⚠  Figures are computed from the transactions you entered and a price you\n"
    "    typed in. Nothing here should be construed as investment advice.\033[0m"
)


def main(argv: list[str] | None = None):
    """Parse CLI arguments and dispatch to the appropriate subcommand.

    Args:
        argv: Arguments to parse. Defaults to sys.argv[1:].

    Returns:
        int: Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="costavg",
        description="costavg - weighted-average cost tracker and cost-averaging calculator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  costavg portfolio add THYAO                 Create a portfolio
  costavg buy THYAO 100 10                    Record a purchase of 10 shares at 100
  costavg sell THYAO 150 4 --preview          Preview a sale without recording it
  costavg report THYAO --price 50 --target 90 Simulate at 50 and average down to 90
  costavg reset THYAO && costavg undo         Clear a portfolio, then restore it
        """,
    )
    parser.add_argument(
        "--data-file",
        "-f",
        help="Path to the JSON data file (default: $COSTAVG_DATA_FILE or ~/.costavg/portfolio.json)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log store operations")

    subparsers = parser.add_subparsers(
        title="commands",
        dest="command",
        help="Available commands",
    )

    # Import subcommand modules and register them
    from .portfolio import register_subcommand as register_portfolio
    from .trade import register_subcommand as register_trade
    from .report import register_subcommand as register_report
    from .reset import register_subcommand as register_reset
    from .transfer import register_subcommand as register_transfer
    from .version import register_subcommand as register_version

    register_portfolio(subparsers)
    register_trade(subparsers)
    register_report(subparsers)
    register_reset(subparsers)
    register_transfer(subparsers)
    register_version(subparsers)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(show_path=False)],
        )

    # If no command specified, show help
    if args.command is None:
        print(DISCLAIMER)
        print()
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
