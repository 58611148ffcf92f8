import asyncio
import httpx
import pytest

from interval_fetch import main as cli
from interval_fetch.config import load_settings
from interval_fetch.output import OutputWriter
from interval_fetch.shutdown import ShutdownSignal

def test_relative_url_exits_with_usage(capsys):
    """
    WHY: Startup errors are fatal and must be explained before the loop starts.
    HOW: Run main() with a relative URL.
    EXPECTED: Exit code 2, usage and the offending URL on stderr, nothing on stdout.
    """
    with pytest.raises(SystemExit) as exc:
        cli.main(["/path"])
    assert exc.value.code == 2
    captured = capsys.readouterr()
    assert "usage: interval-fetch" in captured.err
    assert 'the "/path" URL is not absolute' in captured.err
    assert captured.out == ""

def test_short_interval_exits_with_usage(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["http://a.test", "-i", "500ms"])
    assert exc.value.code == 2
    assert "less than one second" in capsys.readouterr().err

def test_missing_url_exits_with_usage(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2
    assert "FETCH_URL" in capsys.readouterr().err

def test_unsupported_proxy_scheme_exits_with_usage(capsys):
    """
    WHY: A proxy httpx cannot route through must fail at start-up, not crash inside the loop.
    HOW: Run main() with an ftp:// proxy.
    EXPECTED: Exit code 2 with the proxy value on stderr.
    """
    with pytest.raises(SystemExit) as exc:
        cli.main(["http://a.test/", "-p", "ftp://proxy.test:21", "-i", "1s"])
    assert exc.value.code == 2
    assert '"ftp://proxy.test:21" proxy URL has an unsupported scheme' in capsys.readouterr().err

def test_client_construction_failure_exits_with_usage(monkeypatch, capsys):
    """
    WHY: Some proxy problems only surface when httpx builds the transport
         (e.g. socks5 without the socksio extra).
    HOW: Make new_client raise ImportError.
    EXPECTED: Exit code 2 with the error on stderr; the loop never starts.
    """
    def broken_client(timeout, proxy=None, transport=None):
        raise ImportError("socksio is not installed")

    async def fake_serve(settings, *args, **kwargs):
        raise AssertionError("loop must not start")

    monkeypatch.setattr(cli, "new_client", broken_client)
    monkeypatch.setattr(cli, "serve", fake_serve)

    with pytest.raises(SystemExit) as exc:
        cli.main(["http://a.test/", "-p", "socks5://proxy.test:1080"])
    assert exc.value.code == 2
    assert "PROXY_URL: socksio is not installed" in capsys.readouterr().err

def test_malformed_port_exits_with_usage(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["http://host.test:abc/"])
    assert exc.value.code == 2
    assert '"http://host.test:abc/" URL is malformed' in capsys.readouterr().err

def test_flags_reach_settings(monkeypatch):
    """
    WHY: Every flag must land in the corresponding setting.
    HOW: Replace serve() with a recorder and run main() with all flags.
    EXPECTED: Settings reflect the flags; main returns 0.
    """
    seen = {}

    async def fake_serve(settings, *args, **kwargs):
        seen["settings"] = settings

    monkeypatch.setattr(cli, "serve", fake_serve)
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)

    code = cli.main([
        "https://example.com/",
        "-i", "2m",
        "-t", "10s",
        "-H", "X-A: 1",
        "--header", "X-B=2;X-C:3",
        "-p", "http://proxy.test:3128",
        "-v",
        "--log-level", "warning",
    ])

    settings = seen["settings"]
    assert code == 0
    assert settings.FETCH_URL == "https://example.com/"
    assert settings.FETCH_INTERVAL == 120.0
    assert settings.FETCH_TIMEOUT == 10.0
    assert settings.FETCH_HEADERS == {"X-A": "1", "X-B": "2", "X-C": "3"}
    assert settings.PROXY_URL == "http://proxy.test:3128"
    assert settings.VERBOSE is True
    assert settings.LOG_LEVEL == "WARNING"

def test_env_used_when_flags_absent(monkeypatch):
    seen = {}

    async def fake_serve(settings, *args, **kwargs):
        seen["settings"] = settings

    monkeypatch.setattr(cli, "serve", fake_serve)
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)
    monkeypatch.setenv("FETCH_URL", "https://env.test/")
    monkeypatch.setenv("VERBOSE", "1")

    assert cli.main([]) == 0
    assert seen["settings"].FETCH_URL == "https://env.test/"
    assert seen["settings"].VERBOSE is True

@pytest.mark.asyncio
async def test_serve_prints_banner_fetches_and_stops(stdout_buffer):
    """
    WHY: End-to-end check of the wiring: banner, one fetch per tick, shutdown notice.
    HOW: Run serve() against a mock transport; shutdown is requested once the second body is printed.
    EXPECTED: Banner, two FETCH lines with the verbose body, then the stop notice.
    """
    shutdown = ShutdownSignal()
    requests = []

    class StopAfterTwoBodies(OutputWriter):
        delimiters = 0

        def delimiter(self):
            super().delimiter()
            self.delimiters += 1
            if self.delimiters == 4:
                shutdown.trigger()

    output = StopAfterTwoBodies(stdout_buffer)

    def handler(request):
        requests.append(request)
        return httpx.Response(200, content=b"ok\n")

    settings = load_settings(
        FETCH_URL="http://svc.test/ping",
        FETCH_INTERVAL="1s",
        FETCH_TIMEOUT="2s",
        FETCH_HEADERS=["X-Check: yes"],
        VERBOSE=True,
    )

    await asyncio.wait_for(
        cli.serve(settings, output, shutdown, transport=httpx.MockTransport(handler)),
        timeout=10,
    )

    assert stdout_buffer.getvalue().decode() == (
        "The process has started with this configuration:\n"
        "  URL: http://svc.test/ping\n"
        "  INTERVAL: 1s\n"
        "  TIMEOUT: 1s\n"
        "  VERBOSE\n"
        "  X-Check: yes\n"
        "FETCH http://svc.test/ping 200 OK\n"
        "------------\n"
        "ok\n"
        "------------\n"
        "FETCH http://svc.test/ping 200 OK\n"
        "------------\n"
        "ok\n"
        "------------\n"
        "The process has stopped.\n"
    )
    assert all(r.headers["X-Check"] == "yes" for r in requests)
    assert shutdown.is_set
