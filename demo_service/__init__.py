"""Demo HTTP service with a liveness route."""

# Keep package import light-weight; avoid importing FastAPI app at package import time.
from .config import ConfigError, ServiceConfig
from .routes import ROOT_MESSAGE, resolve

__all__ = [
    "ConfigError",
    "ROOT_MESSAGE",
    "ServiceConfig",
    "resolve",
]
