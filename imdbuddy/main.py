import argparse
import asyncio
import json
import logging
import sys

from .config import settings
from .engine import Engine
from .models import RatingRecord, TitleQuery
from .storage import SqliteStorage

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.log_level) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def format_result(title: str, record: RatingRecord | None) -> str:
    """Render one resolved title as a single output line."""
    if record is None:
        return f"{title}: no rating found"
    year = f" ({record.year})" if record.year else ""
    return (
        f"{title}: {record.title}{year} - {record.score}/10 "
        f"from {record.votes} votes - {record.url}"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resolve titles to IMDb ratings")
    parser.add_argument("titles", nargs="*", help="Titles to resolve")
    parser.add_argument(
        "--category",
        default=None,
        help="Expected category for all titles (e.g. movie, tvSeries)",
    )
    parser.add_argument(
        "--db-path",
        default=settings.db_path,
        help=f"SQLite cache file (default: {settings.db_path})",
    )
    parser.add_argument(
        "--clear-cache", action="store_true", help="Wipe the rating cache first"
    )
    parser.add_argument(
        "--stats", action="store_true", help="Print engine statistics when done"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON instead of text"
    )
    return parser


async def run(args: argparse.Namespace) -> int:
    storage = SqliteStorage(args.db_path)
    try:
        async with Engine(storage) as engine:
            if args.clear_cache:
                engine.clear_cache()

            queries = [TitleQuery(title=t, category=args.category) for t in args.titles]
            results = await engine.resolve_many(queries)

            if args.json:
                print(
                    json.dumps(
                        {
                            query.title: record.model_dump() if record else None
                            for query, record in zip(queries, results)
                        },
                        indent=2,
                    )
                )
            else:
                for query, record in zip(queries, results):
                    print(format_result(query.title, record))

            if args.stats:
                print(json.dumps(engine.stats(), indent=2))
    finally:
        storage.close()
    return 0


def main() -> None:
    """Main entry point."""
    configure_logging()
    args = build_parser().parse_args()
    if not args.titles and not (args.clear_cache or args.stats):
        build_parser().print_usage()
        sys.exit(2)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
