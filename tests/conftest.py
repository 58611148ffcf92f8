import io
import pytest
import httpx

from interval_fetch.client import new_client
from interval_fetch.output import OutputWriter

ENV_VARS = (
    "FETCH_URL",
    "FETCH_INTERVAL",
    "FETCH_TIMEOUT",
    "FETCH_HEADERS",
    "PROXY_URL",
    "VERBOSE",
    "LOG_LEVEL",
)

@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    # Keep a developer's shell or .env file from leaking into settings
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

@pytest.fixture
def stdout_buffer() -> io.BytesIO:
    return io.BytesIO()

@pytest.fixture
def output(stdout_buffer) -> OutputWriter:
    return OutputWriter(stdout_buffer)

@pytest.fixture
def make_client():
    """
    Builds an AsyncClient backed by httpx.MockTransport.
    Usage: client = make_client(handler, timeout=1.0)
    """
    def _make(handler, timeout: float = 5.0, proxy=None):
        return new_client(timeout, proxy, transport=httpx.MockTransport(handler))

    return _make
