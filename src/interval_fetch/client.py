"""Shared HTTP client for the fetch loop."""

from typing import Optional

import httpx

USER_AGENT = "IntervalFetch/1.0"


def new_client(
    timeout: float,
    proxy: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Builds the client reused across ticks.

    Connect (including the TLS handshake), read, write and pool waits are all
    bounded by `timeout`. When `proxy` is given every request is routed through
    it; proxy settings from the environment are never picked up.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        proxy=proxy,
        transport=transport,
        trust_env=False,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )
