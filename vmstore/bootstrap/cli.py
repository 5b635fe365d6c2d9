import argparse
import asyncio
import json
import sys
from datetime import date, datetime
from typing import Any, TextIO

from vmstore.bootstrap.config.loader import get_cli_args
from vmstore.bootstrap.deps import build_repository, get_config
from vmstore.core.facade import ViewRepository
from vmstore.core.helpers.utils import setup_logging
from vmstore.core.models.record import Action, Record


def dump_record(record: Record, out: TextIO) -> None:
    def default(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    out.write(json.dumps(record.to_payload(), default=default, sort_keys=True))
    out.write("\n")


async def run(
    repository: ViewRepository,
    args: argparse.Namespace,
    collection_name: str,
    out: TextIO,
) -> int:
    async with repository:
        collection = repository.collection(collection_name)

        match args.command:
            case "get":
                record = await collection.get(args.id)
                if record.action == Action.none:
                    print(f"Record {collection_name}:{args.id} not found", file=sys.stderr)
                    return 1
                dump_record(record, out)
            case "find":
                for record in await collection.find(skip=args.skip, limit=args.limit):
                    dump_record(record, out)
            case "next-id":
                out.write(await collection.next_id() + "\n")
            case "clear":
                deleted = await collection.clear()
                out.write(f"Deleted {deleted} record(s) from {collection_name}\n")

    return 0


def main():
    args = get_cli_args()
    setup_logging(args.log_level)

    config = get_config(args.config)
    collection_name = args.collection or config.repository.prefix
    if not collection_name:
        raise SystemExit("No collection given: use --collection or set repository.prefix")

    repository = build_repository(config)

    try:
        code = asyncio.run(run(repository, args, collection_name, sys.stdout))
    except KeyboardInterrupt:
        code = 130

    raise SystemExit(code)


if __name__ == "__main__":
    main()
