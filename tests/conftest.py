import threading

import pytest

from demo_service.config import ServiceConfig
from demo_service.server import create_server


@pytest.fixture
def live_server():
    server = create_server(ServiceConfig(host="127.0.0.1", port=0))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        thread.join()
        server.server_close()
