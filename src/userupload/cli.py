"""Command-line entry point.

Usage:
    user-upload -u USER -p PASSWORD -h HOST --create_table
    user-upload -u USER -p PASSWORD -h HOST --file users.csv [--dry_run]
    user-upload --file users.csv            (credentials read from .env)
"""

import argparse
import logging
import sys

from userupload import create_service
from userupload.config import DEFAULT_ENV_FILE, ConfigResolver
from userupload.csv_ingest import ingest_users
from userupload.errors import UserUploadError
from userupload.schema import recreate_users_table

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    # -h is the database host, so argparse's automatic help flag is disabled.
    parser = argparse.ArgumentParser(
        prog="user-upload",
        description="Load users from a CSV file into the users table",
        add_help=False,
    )
    parser.add_argument("--file", metavar="CSV", help="Name of the CSV to be parsed")
    parser.add_argument(
        "--create_table",
        action="store_true",
        help="Build the users table and take no further action",
    )
    parser.add_argument(
        "--dry_run",
        action="store_true",
        help="Used with --file: run the whole import but do not write to the database",
    )
    parser.add_argument("-u", dest="user", metavar="USER", help="Database username")
    parser.add_argument("-p", dest="password", metavar="PASSWORD", help="Database password")
    parser.add_argument("-h", dest="host", metavar="HOST", help="Database host")
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Fallback file with DB_HOST, DB_USER, DB_PASSWORD, DB_NAME (default: %(default)s)",
    )
    parser.add_argument("--help", action="help", help="Output this help and exit")
    return parser


def run(args: argparse.Namespace) -> None:
    """Resolve credentials, connect and perform the requested action."""
    config = ConfigResolver(args.env_file).resolve(vars(args))
    logger.info("Connecting to %s", config.describe())

    with create_service(config) as service:
        logger.info("Database connected successfully")
        if args.create_table:
            recreate_users_table(service)
            return

        result = ingest_users(service, args.file, dry_run=args.dry_run)
        if result.dry_run:
            logger.info(
                "Dry run complete: %d rows would have been inserted", result.rows_inserted
            )
        else:
            logger.info("Success: %d rows inserted", result.rows_inserted)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if args.dry_run and not args.file:
        parser.error("--dry_run can only be used together with --file")
    if not args.create_table and not args.file:
        print("Please provide the --file option or --create_table option to perform further actions.")
        return 0

    try:
        run(args)
    except UserUploadError as e:
        logger.error("Failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
