"""Settings for the fetch loop.

Values come from the command line (passed in as overrides), then the process
environment, then a local .env file, then defaults. Everything is validated
once at start-up; the resulting Settings object is frozen.
"""

from typing import Annotated, Any, Dict, Iterable, List, Optional, Union
from urllib.parse import urlsplit

import httpx
from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .duration import format_duration, parse_duration

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")


class ConfigError(Exception):
    """Raised when the resolved configuration cannot be used."""


def check_url(value: str, kind: str = "URL", schemes: Optional[Iterable[str]] = None) -> str:
    """
    Requires an absolute, well-formed URL with a hostname.
    `kind` only changes the wording of the error ("URL", "proxy URL");
    `schemes`, when given, restricts the accepted schemes.
    """
    try:
        parts = urlsplit(value)
    except ValueError as e:
        raise ValueError(f'the "{value}" {kind} is malformed: {e}') from e
    if not parts.scheme:
        raise ValueError(f'the "{value}" {kind} is not absolute')
    if not parts.hostname:
        raise ValueError(f'failed to identify a hostname within "{value}"')
    if schemes is not None and parts.scheme.lower() not in schemes:
        raise ValueError(
            f'the "{value}" {kind} has an unsupported scheme, expected one of {", ".join(schemes)}'
        )
    try:
        parts.port
        httpx.URL(value)
    except (ValueError, httpx.InvalidURL) as e:
        raise ValueError(f'the "{value}" {kind} is malformed: {e}') from e
    return value


def parse_headers(entries: Union[None, str, Dict[str, Any], Iterable[str]]) -> Dict[str, str]:
    """
    Turns header entries into a mapping.

    Accepts a dict, or "Key:Value" / "Key=Value" entries given as a list,
    a single string, or both; several entries may share one string
    separated by ";" (the FETCH_HEADERS form).
    Names are unique case-insensitively; the last entry wins.
    """
    if entries is None:
        return {}
    if isinstance(entries, dict):
        items = [(str(k).strip(), str(v).strip()) for k, v in entries.items()]
    else:
        if isinstance(entries, str):
            entries = [entries]
        items = []
        for entry in [e for group in entries for e in group.split(";") if e.strip()]:
            cuts = [i for i in (entry.find(":"), entry.find("=")) if i >= 0]
            if not cuts:
                raise ValueError(f'the "{entry}" header is not in KEY:VALUE form')
            cut = min(cuts)
            items.append((entry[:cut].strip(), entry[cut + 1:].strip()))

    headers: Dict[str, str] = {}
    for key, value in items:
        if not key:
            raise ValueError(f'the header "{key}: {value}" has an empty name')
        for existing in [k for k in headers if k.lower() == key.lower()]:
            del headers[existing]
        headers[key] = value
    return headers


class Settings(BaseSettings):
    FETCH_URL: str = Field(..., description="URL to fetch on every tick")
    FETCH_INTERVAL: float = Field(60.0, description="Seconds between fetches (>= 1)")
    FETCH_TIMEOUT: float = Field(5.0, description="Per-fetch timeout in seconds, capped to the interval")
    FETCH_HEADERS: Annotated[Dict[str, str], NoDecode] = Field(
        default_factory=dict, description="Extra request headers"
    )
    PROXY_URL: Optional[str] = Field(None, description="HTTP proxy to route requests through")
    VERBOSE: bool = Field(False, description="Print response bodies")
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @field_validator("FETCH_URL")
    @classmethod
    def _check_fetch_url(cls, value: str) -> str:
        return check_url(value)

    @field_validator("FETCH_INTERVAL", "FETCH_TIMEOUT", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> float:
        return parse_duration(value)

    @field_validator("FETCH_INTERVAL")
    @classmethod
    def _check_interval(cls, value: float) -> float:
        if value < 1:
            raise ValueError("the provided fetch interval is less than one second")
        return value

    @field_validator("FETCH_TIMEOUT")
    @classmethod
    def _clamp_timeout(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError("the provided fetch timeout must be positive")
        # Don't let requests last longer than the desired interval
        interval = info.data.get("FETCH_INTERVAL")
        if interval is not None and value > interval:
            return interval
        return value

    @field_validator("FETCH_HEADERS", mode="before")
    @classmethod
    def _parse_headers(cls, value: Any) -> Dict[str, str]:
        return parse_headers(value)

    @field_validator("PROXY_URL", mode="before")
    @classmethod
    def _blank_proxy(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("PROXY_URL")
    @classmethod
    def _check_proxy_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return check_url(value, kind="proxy URL", schemes=PROXY_SCHEMES)

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f'unknown log level "{value}"')
        return level

    def summary(self) -> List[str]:
        """Human-readable lines describing the resolved configuration."""
        lines = [
            f"URL: {self.FETCH_URL}",
            f"INTERVAL: {format_duration(self.FETCH_INTERVAL)}",
            f"TIMEOUT: {format_duration(self.FETCH_TIMEOUT)}",
        ]
        if self.PROXY_URL is not None:
            lines.append(f"PROXY: {self.PROXY_URL}")
        if self.VERBOSE:
            lines.append("VERBOSE")
        for key, value in self.FETCH_HEADERS.items():
            lines.append(f"{key}: {value}")
        return lines


def _describe(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "settings"
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        lines.append(f"{field}: {message}")
    return "\n".join(lines)


def load_settings(**overrides: Any) -> Settings:
    """
    Builds validated Settings. Overrides set to None are ignored so that
    unset CLI flags fall through to the environment.
    Raises ConfigError describing every invalid value.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e
