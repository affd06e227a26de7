import json
import socket
from unittest.mock import MagicMock

import pytest

from demo_service.healthcheck import ProbeError, check_health, default_url, main, probe

_OK = (200, '{"status": "ok"}')


def _health_url(server):
    return f"http://127.0.0.1:{server.server_address[1]}/health"


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def test_check_health_accepts_ok_payload():
    http_get = MagicMock(return_value=_OK)

    result = check_health("http://svc/health", timeout=1.5, http_get=http_get)

    assert result.healthy
    assert result.payload == {"status": "ok"}
    http_get.assert_called_once_with("http://svc/health", 1.5)


@pytest.mark.parametrize(
    "response",
    [
        (503, '{"status": "ok"}'),
        (200, "<html>ok</html>"),
        (200, '["ok"]'),
        (200, '{"status": "degraded"}'),
    ],
)
def test_check_health_rejects_unhealthy_responses(response):
    with pytest.raises(ProbeError):
        check_health("http://svc/health", http_get=MagicMock(return_value=response))


def test_probe_retries_until_healthy():
    http_get = MagicMock(side_effect=[ProbeError("connection refused"), (500, ""), _OK])
    sleep = MagicMock()

    result = probe("http://svc/health", retries=3, interval=10.0, http_get=http_get, sleep=sleep)

    assert result.attempts == 3
    assert http_get.call_count == 3
    assert sleep.call_count == 2
    sleep.assert_called_with(10.0)


def test_probe_raises_after_last_attempt():
    http_get = MagicMock(side_effect=ProbeError("connection refused"))
    sleep = MagicMock()

    with pytest.raises(ProbeError, match="connection refused"):
        probe("http://svc/health", retries=3, interval=1.0, http_get=http_get, sleep=sleep)

    assert http_get.call_count == 3
    assert sleep.call_count == 2


@pytest.mark.parametrize("kwargs", [{"retries": 0}, {"timeout": 0}])
def test_probe_validates_arguments(kwargs):
    with pytest.raises(ValueError):
        probe("http://svc/health", http_get=MagicMock(return_value=_OK), **kwargs)


def test_probe_against_live_server(live_server):
    result = probe(_health_url(live_server))

    assert result.status == 200
    assert result.attempts == 1
    assert result.healthy


def test_probe_reports_non_200_from_live_server(live_server):
    url = f"http://127.0.0.1:{live_server.server_address[1]}/nonexistent"

    with pytest.raises(ProbeError, match="HTTP 404"):
        probe(url)


def test_probe_unreachable_service(closed_port):
    with pytest.raises(ProbeError, match="unreachable"):
        probe(f"http://127.0.0.1:{closed_port}/health", timeout=1.0)


def test_default_url_uses_port(monkeypatch):
    monkeypatch.setenv("PORT", "9123")

    assert default_url() == "http://127.0.0.1:9123/health"
    assert default_url(8080) == "http://127.0.0.1:8080/health"


def test_main_prints_payload(live_server, capsys):
    exit_code = main(["--url", _health_url(live_server)])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert '"status": "ok"' in out
    assert json.loads(out) == {"status": "ok"}


def test_main_reports_failure(closed_port, capsys):
    exit_code = main(["--url", f"http://127.0.0.1:{closed_port}/health", "--timeout", "1"])

    assert exit_code == 1
    assert capsys.readouterr().out == ""


def test_main_rejects_invalid_retries(live_server):
    assert main(["--url", _health_url(live_server), "--retries", "0"]) == 1
