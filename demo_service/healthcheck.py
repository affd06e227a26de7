"""Liveness probe used by the container healthcheck and the ``test`` make target."""
from __future__ import annotations

import argparse
import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .config import ServiceConfig, configure_logging

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 3.0
_DEFAULT_RETRIES = 1
_DEFAULT_INTERVAL = 0.0

HttpGet = Callable[[str, float], Tuple[int, str]]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single successful request to the health route."""

    url: str
    status: int
    payload: Dict[str, Any]
    attempts: int = 1

    @property
    def healthy(self) -> bool:
        return self.status == 200 and self.payload.get("status") == "ok"


def default_url(port: Optional[int] = None) -> str:
    if port is None:
        port = ServiceConfig.from_env().port
    return f"http://127.0.0.1:{port}/health"


def check_health(
    url: str,
    *,
    timeout: float = _DEFAULT_TIMEOUT,
    http_get: Optional[HttpGet] = None,
) -> ProbeResult:
    """Perform one GET against ``url`` and require a 200 ``{"status": "ok"}`` reply."""

    status, text = (http_get or _default_http_get)(url, timeout)
    if status != 200:
        raise ProbeError(f"{url} answered with HTTP {status}")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProbeError(f"{url} returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise ProbeError(f"{url} returned {payload!r}, expected an object")

    result = ProbeResult(url=url, status=status, payload=payload)
    if not result.healthy:
        raise ProbeError(f"{url} reported {payload!r}")
    return result


def probe(
    url: str,
    *,
    timeout: float = _DEFAULT_TIMEOUT,
    retries: int = _DEFAULT_RETRIES,
    interval: float = _DEFAULT_INTERVAL,
    http_get: Optional[HttpGet] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ProbeResult:
    """Try ``check_health`` up to ``retries`` times and return the first healthy result.

    The last :class:`ProbeError` is re-raised when every attempt fails.
    """

    if retries <= 0:
        raise ValueError("retries must be a positive integer")
    if timeout <= 0:
        raise ValueError("timeout must be positive")

    last_error: Optional[ProbeError] = None
    for attempt in range(1, retries + 1):
        try:
            result = check_health(url, timeout=timeout, http_get=http_get)
        except ProbeError as exc:
            last_error = exc
            logger.warning("Health probe attempt %d/%d failed: %s", attempt, retries, exc)
            if attempt < retries and interval > 0:
                sleep(interval)
            continue
        return replace(result, attempts=attempt)

    assert last_error is not None
    raise last_error


def _default_http_get(url: str, timeout: float) -> Tuple[int, str]:
    request = Request(url, headers={"Accept": "application/json"})
    try:
        with urlopen(request, timeout=timeout) as response:
            charset = response.headers.get_content_charset() or "utf-8"
            return response.status, response.read().decode(charset, errors="replace")
    except HTTPError as exc:
        return exc.code, exc.read().decode("utf-8", errors="replace")
    except (URLError, OSError) as exc:
        reason = getattr(exc, "reason", exc)
        raise ProbeError(f"{url} is unreachable: {reason}") from exc


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check that the demo service answers its health route")
    parser.add_argument("--url", help="Health endpoint to query. Defaults to http://127.0.0.1:$PORT/health.")
    parser.add_argument(
        "--timeout",
        type=float,
        default=_DEFAULT_TIMEOUT,
        help="Timeout (in seconds) for each request.",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=_DEFAULT_RETRIES,
        help="Number of attempts before reporting the service unhealthy.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=_DEFAULT_INTERVAL,
        help="Seconds to wait between attempts.",
    )
    return parser.parse_args(argv)


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging("WARNING")

    try:
        url = args.url or default_url()
        result = probe(url, timeout=args.timeout, retries=args.retries, interval=args.interval)
    except ValueError as exc:
        logger.error("Invalid probe settings: %s", exc)
        return 1
    except ProbeError as exc:
        logger.error("Service is unhealthy: %s", exc)
        return 1

    print(json.dumps(result.payload))
    return 0


class ProbeError(RuntimeError):
    """Raised when the health route is unreachable or reports a failure."""


__all__ = [
    "ProbeError",
    "ProbeResult",
    "check_health",
    "default_url",
    "main",
    "probe",
]


if __name__ == "__main__":  # pragma: no cover - manual execution entrypoint
    raise SystemExit(main())
