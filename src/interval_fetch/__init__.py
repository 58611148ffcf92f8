"""Interval Fetch - fetches a URL on an interval until told to stop.

A small long-running fetcher: it issues one HTTP GET per tick against a
configured URL and reports the outcome on stdout, until SIGINT/SIGTERM.

Components:
- main: CLI entry point and process wiring
- config: environment / CLI settings and validation
- scheduler: tick loop with shutdown handling
- fetcher: single GET with timeout and cancellation
- client: shared httpx client factory
- shutdown: fire-once shutdown token and signal capture
- output: stdout reporting protocol
"""
