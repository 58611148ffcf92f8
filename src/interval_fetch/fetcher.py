"""A single fetch: one GET, one reported outcome.

fetch() never raises for network problems. Every attempt ends in exactly one
FETCH line on stdout, optionally followed by the body between delimiter lines
in verbose mode. The request is abandoned as soon as the shutdown token fires.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from .duration import format_duration
from .log import get_logger
from .output import OutputWriter
from .shutdown import ShutdownSignal

logger = get_logger("fetch")


@dataclass
class FetchResult:
    url: str
    status_code: Optional[int] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    # True once the FETCH line has been written
    reported: bool = False

    @property
    def ok(self) -> bool:
        return self.reported and self.error is None


def _describe(url: str, exc: BaseException) -> str:
    detail = str(exc)
    name = type(exc).__name__
    return f'Get "{url}": {name}: {detail}' if detail else f'Get "{url}": {name}'


async def _exchange(
    client: httpx.AsyncClient,
    url: str,
    headers: Dict[str, str],
    verbose: bool,
    output: OutputWriter,
    result: FetchResult,
):
    async with client.stream("GET", url, headers=headers) as response:
        result.status_code = response.status_code
        result.reason = response.reason_phrase
        output.fetch(url, f"{result.status_code} {result.reason}".rstrip())
        result.reported = True

        if not verbose:
            # Drain so the connection can be reused
            async for _ in response.aiter_bytes():
                pass
            return

        output.delimiter()
        try:
            async for chunk in response.aiter_bytes():
                output.raw(chunk)
        finally:
            output.delimiter()


def _fail(result: FetchResult, output: OutputWriter, message: str):
    result.error = message
    if result.reported:
        # Status already printed; the body was cut short
        logger.warning(f"Body of {result.url} incomplete: {message}")
        return
    output.fetch(result.url, message)
    result.reported = True


async def fetch(
    shutdown: ShutdownSignal,
    client: httpx.AsyncClient,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    verbose: bool = False,
    output: Optional[OutputWriter] = None,
    timeout: Optional[float] = None,
) -> FetchResult:
    """
    Performs one GET against `url` and reports it on `output`.

    `headers` replace client defaults of the same name. `timeout` bounds the
    whole exchange, body included. If `shutdown` fires first the request is
    cancelled and reported as such.
    """
    output = output or OutputWriter()
    result = FetchResult(url=url)

    if shutdown.is_set:
        _fail(result, output, f'Get "{url}": request cancelled')
        return result

    exchange_coro = _exchange(client, url, headers or {}, verbose, output, result)
    if timeout is not None:
        exchange_coro = asyncio.wait_for(exchange_coro, timeout)

    started = time.monotonic()
    exchange = asyncio.ensure_future(exchange_coro)
    stop = asyncio.ensure_future(shutdown.wait())
    try:
        await asyncio.wait({exchange, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
        if not exchange.done():
            exchange.cancel()
            await asyncio.gather(exchange, return_exceptions=True)
            _fail(result, output, f'Get "{url}": request cancelled')

    if result.error is not None:
        return result

    try:
        exchange.result()
    except asyncio.TimeoutError:
        _fail(result, output, f'Get "{url}": request timed out after {format_duration(timeout)}')
    except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
        logger.debug(f"Fetch of {url} failed with {type(e).__name__}")
        _fail(result, output, _describe(url, e))
    except Exception as e:
        logger.exception(f"Unexpected error fetching {url}")
        _fail(result, output, _describe(url, e))

    logger.debug(f"Fetch of {url} finished in {time.monotonic() - started:.3f}s")
    return result
