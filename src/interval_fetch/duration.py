"""Duration parsing and formatting.

Accepts either a bare number of seconds ("30", "2.5") or unit-suffixed
components ("1m", "1m30s", "250ms"). Formatting mirrors the compact
"1h2m3s" notation operators are used to seeing in service logs.
"""

import math
import re
from typing import Union

_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ns": 1e-9,
}

# "ms" must be tried before "m"
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|h|m|s)")


def parse_duration(value: Union[str, int, float]) -> float:
    """Returns the duration in seconds. Raises ValueError when unparseable."""
    if isinstance(value, bool):
        raise ValueError(f'invalid duration "{value}"')
    if isinstance(value, (int, float)):
        seconds = float(value)
        if not math.isfinite(seconds):
            raise ValueError(f'invalid duration "{value}"')
        return seconds

    text = str(value).strip()
    if not text:
        raise ValueError("invalid duration: empty value")

    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f'invalid duration "{value}"')
        return seconds

    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if not text:
        raise ValueError(f'invalid duration "{value}"')

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f'invalid duration "{value}"')
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()

    return sign * total


def _trim(number: float) -> str:
    return f"{number:.9f}".rstrip("0").rstrip(".")


def format_duration(seconds: float) -> str:
    """Formats seconds as e.g. "5s", "1m0s", "1h30m0s" or "250ms"."""
    if seconds == 0:
        return "0s"

    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)

    if seconds < 1:
        for unit, scale in (("ms", 1e3), ("µs", 1e6), ("ns", 1e9)):
            scaled = seconds * scale
            if scaled >= 1 or unit == "ns":
                return f"{sign}{_trim(scaled)}{unit}"

    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    out = sign
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    return out + f"{_trim(secs)}s"
