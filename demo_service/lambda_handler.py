"""AWS Lambda handler that serves the demo routes through Mangum."""
from __future__ import annotations

from mangum import Mangum

from .app import app

handler = Mangum(app, lifespan="off")

__all__ = ["handler"]
