"""Fetches a URL on an interval.

Prints the resolved configuration, then one FETCH line per tick until
SIGINT/SIGTERM arrives.

Usage:
    interval-fetch https://example.com/health -i 30s -t 5s -H "Authorization: Bearer x"
    python -m interval_fetch.main https://example.com/health
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import httpx

from .config import ConfigError, Settings, load_settings
from .client import new_client
from .fetcher import fetch
from .log import get_logger, setup_logging
from .output import OutputWriter
from .scheduler import Scheduler
from .shutdown import ShutdownSignal

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="interval-fetch",
        description="Fetches a URL on an interval.",
    )
    parser.add_argument("url", nargs="?", help="URL to fetch ($FETCH_URL)")
    parser.add_argument("-i", "--interval", help="time between fetches, e.g. 30s or 1m ($FETCH_INTERVAL, default 1m)")
    parser.add_argument("-t", "--timeout", help="request timeout, capped to the interval ($FETCH_TIMEOUT, default 5s)")
    parser.add_argument(
        "-H", "--header", "--headers",
        dest="headers",
        action="append",
        metavar="KEY:VALUE",
        help="request header, repeatable; several may be joined with ';' ($FETCH_HEADERS)",
    )
    parser.add_argument("-p", "--proxy", help="HTTP proxy URL ($PROXY_URL)")
    parser.add_argument("-v", "--verbose", action="store_true", default=None, help="print response bodies ($VERBOSE)")
    parser.add_argument("--log-level", help="diagnostic log level on stderr ($LOG_LEVEL, default INFO)")
    return parser


async def serve(
    settings: Settings,
    output: Optional[OutputWriter] = None,
    shutdown: Optional[ShutdownSignal] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    client: Optional[httpx.AsyncClient] = None,
):
    """Runs the fetch loop until shutdown. Closes `client` on the way out."""
    output = output or OutputWriter()
    shutdown = shutdown or ShutdownSignal()

    with shutdown.capture():
        if client is None:
            client = new_client(settings.FETCH_TIMEOUT, settings.PROXY_URL, transport=transport)
        try:
            output.startup(settings.summary())

            async def tick():
                await fetch(
                    shutdown,
                    client,
                    settings.FETCH_URL,
                    settings.FETCH_HEADERS,
                    settings.VERBOSE,
                    output,
                    settings.FETCH_TIMEOUT,
                )

            scheduler = Scheduler(settings.FETCH_INTERVAL, tick, shutdown, output)
            await scheduler.run()
        finally:
            shutdown.trigger("on exit")
            await client.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(
            FETCH_URL=args.url,
            FETCH_INTERVAL=args.interval,
            FETCH_TIMEOUT=args.timeout,
            FETCH_HEADERS=args.headers,
            PROXY_URL=args.proxy,
            VERBOSE=args.verbose,
            LOG_LEVEL=args.log_level,
        )
    except ConfigError as e:
        parser.error(str(e))

    # Proxy support is only fully known once httpx builds the transport
    try:
        client = new_client(settings.FETCH_TIMEOUT, settings.PROXY_URL)
    except (ValueError, ImportError) as e:
        parser.error(f"PROXY_URL: {e}")

    setup_logging(settings.LOG_LEVEL)
    logger.debug(f"Starting with {len(settings.FETCH_HEADERS)} extra header(s)")

    asyncio.run(serve(settings, client=client))
    return 0


if __name__ == "__main__":
    sys.exit(main())
