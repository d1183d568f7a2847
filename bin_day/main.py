import argparse
import logging
import sys

from collection_schedule.exceptions import ConfigError, ScheduleError

from .app_factory import create_facade, initialize_app

logger = logging.getLogger(__name__)


def write_calendar(facade, output: str) -> None:
    """Scrapes once and writes the feed to output ('-' for stdout)."""
    payload = facade.calendar()
    if output == "-":
        sys.stdout.buffer.write(payload)
        sys.stdout.flush()
    else:
        with open(output, "wb") as f:
            f.write(payload)
        logger.info(f"Wrote calendar to {output}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Redbridge bin day scraper.")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("serve", help="Serve the calendar feed and JSON lookups.")
    ics_parser = subparsers.add_parser("ics", help="Scrape once and write the calendar feed.")
    ics_parser.add_argument("--output", "-o", default="-", help="File to write, '-' for stdout.")
    args = parser.parse_args(argv)

    try:
        settings = initialize_app()
    except ConfigError as e:
        print(f"config: {e}", file=sys.stderr)
        return 2

    facade = create_facade(settings)

    if args.command == "serve":
        # Imported here so the ics command does not need Flask loaded.
        from web.app import run_server
        host, port = settings.listen_host_port
        logger.info("Starting server...")
        run_server(facade, host=host, port=port)
    elif args.command == "ics":
        try:
            write_calendar(facade, args.output)
        except ScheduleError as e:
            logger.error(f"Scrape failed: {e}")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
