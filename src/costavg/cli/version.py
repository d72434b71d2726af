"""Version subcommand - installed version and the configuration in effect."""

from importlib.metadata import PackageNotFoundError, version

from ..config import get_currency_symbol, get_data_file


def register_subcommand(subparsers):
    """Register the version subcommand with the argument parser.

    Args:
        subparsers: The argparse subparsers object to register with.
    """
    parser = subparsers.add_parser(
        "version",
        help="Display costavg version and data file",
        description="Display the installed costavg version, the data file in use and the currency symbol.",
    )
    parser.set_defaults(func=run)


def run(args):
    try:
        ver = version("costavg")
    except PackageNotFoundError:
        ver = "unknown"

    data_file = get_data_file(getattr(args, "data_file", None))
    state = "" if data_file.exists() else " (not created yet)"

    print(f"costavg {ver}")
    print(f" Data file: {data_file}{state}")
    print(f" Currency: {get_currency_symbol()}")
    return 0
