import socket

import pytest

from calauth.auth.google.models import ClientConfig


@pytest.fixture
def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def redirect_uri(free_port: int) -> str:
    return f"http://127.0.0.1:{free_port}/callback"


@pytest.fixture
def config(redirect_uri: str) -> ClientConfig:
    return ClientConfig(client_id="client-123", client_secret="secret-456", redirect_uri=redirect_uri)
