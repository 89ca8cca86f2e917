"""
Run catalog scraping from CLI.
"""

from __future__ import annotations

import argparse
import sys

from app.schemas.catalog_scraping import (
    RunSummaryResponse,
    ShopStatisticsResponse,
    StatisticsReportResponse,
)
from app.scraping.logging_utils import configure_logging
from app.services.catalog_scraping_service import CatalogScrapingService
from db.session import init_db, session_scope


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape shop catalogs into the product store.")
    parser.add_argument("--log-level", dest="log_level", default=None, help="Override log level.")
    subcommands = parser.add_subparsers(dest="command")

    run = subcommands.add_parser("run", help="Scrape enabled shops (default).")
    run.add_argument(
        "--shop",
        dest="shops",
        action="append",
        default=None,
        help="Shop name from the config file; repeat to select several.",
    )
    subcommands.add_parser("check-db", help="Verify the database connection.")
    subcommands.add_parser("stats", help="Print product counts per shop.")
    return parser


def _print_error(exc: BaseException) -> None:
    print(f"Error: {exc}", file=sys.stderr)
    cause = exc.__cause__ or exc.__context__
    if cause is not None:
        print(f"Caused by: {cause}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level)
    command = args.command or "run"

    try:
        service = CatalogScrapingService()
        with session_scope() as db:
            if command == "check-db":
                if not service.check_database(db=db):
                    print("Database connection failed.", file=sys.stderr)
                    return 1
                print("Database connection OK.")
                return 0

            init_db()
            if command == "stats":
                report = StatisticsReportResponse(
                    total_products=service.count_products(db=db),
                    shops=[
                        ShopStatisticsResponse.from_domain(item)
                        for item in service.get_statistics(db=db)
                    ],
                )
                print(report.model_dump_json(indent=2))
                return 0

            summary = service.run_parsing(db=db, shops=getattr(args, "shops", None))
            print(RunSummaryResponse.from_domain(summary).model_dump_json(indent=2))
            return 0 if summary.success else 1
    except Exception as exc:
        _print_error(exc)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
