"""FastAPI application exposing the demo routes over ASGI."""
from __future__ import annotations

from fastapi import FastAPI

from .routes import ROUTES


def create_app() -> FastAPI:
    application = FastAPI(title="Demo Service", version="1.0")
    for (method, path), endpoint in ROUTES.items():
        application.add_api_route(path, endpoint, methods=[method], name=endpoint.__name__)
    return application


app = create_app()
