"""Route table shared by the standalone server and the ASGI app."""
from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Callable, Dict, Tuple

ROOT_MESSAGE = "Hello from Flask + Docker + Makefile!"

Payload = Dict[str, str]
Endpoint = Callable[[], Payload]


def root() -> Payload:
    """Greeting served on ``/``."""
    return {"message": ROOT_MESSAGE, "path": "/"}


def health() -> Payload:
    """Liveness payload polled by the orchestrator.

    It only proves that the process accepts connections and can run handler
    code; no dependent services are checked.
    """
    return {"status": "ok"}


ROUTES: Dict[Tuple[str, str], Endpoint] = {
    ("GET", "/"): root,
    ("GET", "/health"): health,
}


@dataclass(frozen=True)
class RouteResult:
    status: HTTPStatus
    payload: Payload
    allow: Tuple[str, ...] = ()


def allowed_methods(path: str) -> Tuple[str, ...]:
    return tuple(sorted(method for method, route_path in ROUTES if route_path == path))


def resolve(method: str, path: str) -> RouteResult:
    """Run the endpoint registered for ``method`` and ``path``.

    Unknown paths give 404 and known paths with another method give 405,
    using the same bodies FastAPI produces for those cases.
    """
    endpoint = ROUTES.get((method.upper(), path))
    if endpoint is not None:
        return RouteResult(HTTPStatus.OK, endpoint())

    allow = allowed_methods(path)
    if allow:
        return RouteResult(
            HTTPStatus.METHOD_NOT_ALLOWED,
            {"detail": "Method Not Allowed"},
            allow,
        )
    return RouteResult(HTTPStatus.NOT_FOUND, {"detail": "Not Found"})


__all__ = [
    "ROOT_MESSAGE",
    "ROUTES",
    "RouteResult",
    "allowed_methods",
    "health",
    "resolve",
    "root",
]
