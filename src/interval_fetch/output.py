"""Stdout reporting protocol.

Everything an operator reads on stdout goes through OutputWriter: the start-up
summary, one FETCH line per attempt, the optional body dump between delimiter
lines, and the final shutdown notice. Text is written as UTF-8 to a binary
stream so that response bodies pass through byte-for-byte.
"""

import sys
from typing import BinaryIO, Iterable, Optional

DELIMITER = "------------"
STARTED = "The process has started with this configuration:"
STOPPED = "The process has stopped."


class OutputWriter:
    def __init__(self, stream: Optional[BinaryIO] = None):
        self.stream = stream if stream is not None else sys.stdout.buffer

    def line(self, text: str):
        self.stream.write(text.encode("utf-8") + b"\n")
        self.stream.flush()

    def raw(self, data: bytes):
        self.stream.write(data)
        self.stream.flush()

    def startup(self, summary: Iterable[str]):
        self.line(STARTED)
        for entry in summary:
            self.line(f"  {entry}")

    def fetch(self, url: str, outcome: str):
        self.line(f"FETCH {url} {outcome}")

    def delimiter(self):
        self.line(DELIMITER)

    def stopped(self):
        self.line(STOPPED)
