import argparse
import os
from functools import lru_cache
from pathlib import Path


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return number


def add_collection_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-C", "--collection",
        type=str,
        default=None,
        help="Collection to work on. Defaults to repository.prefix from the configuration."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vmstore",
        description=(
            "Inspect and maintain a vmstore projection store.\n\n"
            "vmstore keeps read-optimized view models in a key-value store "
            "and protects them against lost updates with optimistic locking."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a vmstore configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every store round-trip and commit decision.\n"
            "INFO     → connections, conflicts and bulk deletions.\n"
            "WARNING  → only warnings and errors (default).\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )

    commands = parser.add_subparsers(dest="command", required=True)

    get = commands.add_parser("get", help="Print one record as JSON")
    add_collection_option(get)
    get.add_argument("id")

    find = commands.add_parser("find", help="Print the records of a collection, one JSON per line")
    add_collection_option(find)
    find.add_argument("--skip", type=non_negative_int, default=None)
    find.add_argument("--limit", type=non_negative_int, default=None)

    next_id = commands.add_parser("next-id", help="Allocate and print a new id")
    add_collection_option(next_id)

    clear = commands.add_parser("clear", help="Delete every record of a collection")
    add_collection_option(clear)

    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_parser().parse_args()


def get_configfile(path: str | None = None) -> Path:
    # Priority: explicit path > ENV > default file in current working directory
    raw = path or os.getenv("VMSTORECONFIG")

    if raw is None:
        file = Path.cwd() / "vmstore.yaml"
    else:
        file = Path(raw)

    if not file.is_file():
        raise FileNotFoundError(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the VMSTORECONFIG environment variable\n"
            "  - Or place a 'vmstore.yaml' file in the current working directory."
        )

    return file
