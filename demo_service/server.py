"""Standalone HTTP server for the demo service, used as the container entry point."""
from __future__ import annotations

import argparse
import json
import logging
import signal
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Iterable, Optional
from urllib.parse import unquote, urlsplit

from .config import ConfigError, ServiceConfig, coerce_port, configure_logging
from .routes import resolve

logger = logging.getLogger(__name__)


class DemoRequestHandler(BaseHTTPRequestHandler):
    """Dispatches every request through the shared route table."""

    server_version = "demo-service"
    protocol_version = "HTTP/1.1"

    def do_GET(self) -> None:  # noqa: N802
        self._dispatch()

    def __getattr__(self, name: str) -> Any:
        # Every other method (HEAD, POST, TRACE, ...) resolves to 404 or 405.
        if name.startswith("do_"):
            return self._dispatch
        raise AttributeError(name)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A003
        """Send access log lines to the module logger at debug level."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def _dispatch(self) -> None:
        # Query strings and headers do not influence routing.
        target = self.path
        if not target.startswith("/"):
            # absolute-form request target
            target = urlsplit(target).path
        path = unquote(target.partition("?")[0]) or "/"
        result = resolve(self.command, path)

        body = json.dumps(result.payload).encode("utf-8")
        self.send_response(result.status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        if result.allow:
            self.send_header("Allow", ", ".join(result.allow))
        self.send_header("Connection", "close")
        self.end_headers()
        self.close_connection = True
        if self.command != "HEAD":
            self.wfile.write(body)


class DemoHTTPServer(ThreadingHTTPServer):
    """Thread-per-request server that drains in-flight requests on close."""

    daemon_threads = False
    block_on_close = True
    allow_reuse_port = False


def create_server(config: ServiceConfig) -> DemoHTTPServer:
    """Bind the listening socket, raising :class:`ServiceStartupError` on failure."""

    try:
        return DemoHTTPServer((config.host, config.port), DemoRequestHandler)
    except OSError as exc:
        raise ServiceStartupError(
            f"Unable to bind {config.host}:{config.port}: {exc.strerror or exc}"
        ) from exc


def run(
    *,
    config: Optional[ServiceConfig] = None,
    install_signal_handlers: bool = True,
) -> None:
    """Serve until SIGTERM/SIGINT, then finish in-flight requests and close."""

    active_config = config or ServiceConfig.from_env()
    httpd = create_server(active_config)
    with httpd:
        if install_signal_handlers:
            _install_signal_handlers(httpd)
        host, port = httpd.server_address[:2]
        logger.info(
            "Serving demo service on http://%s:%s (APP_ENV=%s)",
            host,
            port,
            active_config.app_env,
        )
        httpd.serve_forever()
        logger.info("Draining in-flight requests")
    logger.info("Demo service stopped")


def _install_signal_handlers(httpd: DemoHTTPServer) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def _stop(signum: int, frame: object) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        # shutdown() blocks until serve_forever returns, which runs on this thread.
        threading.Thread(target=httpd.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def _port_arg(value: str) -> int:
    try:
        return coerce_port(value)
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def parse_args(
    argv: Optional[Iterable[str]] = None,
    defaults: Optional[ServiceConfig] = None,
) -> argparse.Namespace:
    base = defaults or ServiceConfig.from_env()
    parser = argparse.ArgumentParser(description="Run the demo HTTP service")
    parser.add_argument("--host", default=base.host, help="Interface to bind to (HOST).")
    parser.add_argument("--port", type=_port_arg, default=base.port, help="Port to listen on (PORT).")
    parser.add_argument(
        "--log-level",
        default=base.log_level,
        help="Logging level name such as DEBUG or INFO (LOG_LEVEL).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Iterable[str]] = None) -> int:
    try:
        env_config = ServiceConfig.from_env()
    except ConfigError as exc:
        configure_logging()
        logger.error("Invalid configuration: %s", exc)
        return 1

    args = parse_args(argv, env_config)
    try:
        configure_logging(args.log_level)
    except ConfigError as exc:
        configure_logging()
        logger.error("Invalid configuration: %s", exc)
        return 1

    config = ServiceConfig(
        host=args.host,
        port=args.port,
        app_env=env_config.app_env,
        log_level=args.log_level,
    )
    try:
        run(config=config)
    except ServiceStartupError as exc:
        logger.error("%s", exc)
        return 1
    return 0


class ServiceStartupError(RuntimeError):
    """Raised when the service cannot bind its listening socket."""


__all__ = [
    "DemoHTTPServer",
    "DemoRequestHandler",
    "ServiceStartupError",
    "create_server",
    "main",
    "run",
]


if __name__ == "__main__":  # pragma: no cover - manual execution entrypoint
    raise SystemExit(main())
