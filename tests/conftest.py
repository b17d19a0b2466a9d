"""Pytest fixtures.

Integration tests run the gateway emulator in a uvicorn background thread and
drive the real clients against it over HTTP.
"""

import os
import socket
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import pytest
import requests
import uvicorn

from dstore.core.lighthouse import LighthouseClient
from dstore.core.pods import PodClient
from dstore.server.main import create_app
from dstore.server.store import GatewayStore

USERS = {"alice": "secret", "bob": "hunter2"}
API_KEY = "test-key"
CHUNK_SIZE = 4096


class UvicornTestServer:
    """Uvicorn server running in a background thread for testing."""

    def __init__(self, app: Any, host: str = "127.0.0.1", port: int = 0) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.server: Optional[uvicorn.Server] = None
        self.thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def start(self) -> int:
        """Start the server and return the port."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((self.host, 0))
            self.port = s.getsockname()[1]

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self.server = uvicorn.Server(config)

        self.thread = threading.Thread(target=self.server.run, daemon=True)
        self.thread.start()

        self._wait_for_ready()
        return self.port

    def _wait_for_ready(self, timeout: float = 5.0) -> None:
        """Wait for the server to be ready to accept connections."""
        start = time.time()
        while time.time() - start < timeout:
            try:
                response = requests.get(f"{self.url}/health", timeout=1)
                if response.status_code == 200:
                    return
            except requests.RequestException:
                pass
            time.sleep(0.1)
        raise RuntimeError("Server failed to start in time")

    def stop(self) -> None:
        """Stop the server."""
        if self.server:
            self.server.should_exit = True
        if self.thread:
            self.thread.join(timeout=5)


@dataclass
class GatewayServer:
    """A running emulator and the store behind it."""

    url: str
    store: GatewayStore


def _run_gateway(store: GatewayStore) -> Iterator[GatewayServer]:
    server = UvicornTestServer(create_app(store))
    server.start()
    try:
        yield GatewayServer(url=server.url, store=store)
    finally:
        server.stop()


@pytest.fixture
def gateway() -> Iterator[GatewayServer]:
    """Emulator advertising Content-Length on downloads."""
    yield from _run_gateway(GatewayStore(users=USERS, api_keys=[API_KEY]))


@pytest.fixture
def unsized_gateway() -> Iterator[GatewayServer]:
    """Emulator streaming downloads without a Content-Length."""
    yield from _run_gateway(
        GatewayStore(users=USERS, api_keys=[API_KEY], advertise_length=False)
    )


@pytest.fixture
def pod_client(gateway: GatewayServer) -> Iterator[PodClient]:
    """Logged-in pod client for alice."""
    client = PodClient(gateway.url, "alice", USERS["alice"], chunk_size=CHUNK_SIZE)
    client.login()
    with client:
        yield client


@pytest.fixture
def lighthouse_client(gateway: GatewayServer) -> Iterator[LighthouseClient]:
    """Lighthouse client pointed at the emulator."""
    client = LighthouseClient(
        API_KEY,
        upload_url=f"{gateway.url}/api/v0/add",
        info_url=f"{gateway.url}/api/lighthouse/file_info",
        gateway_url=f"{gateway.url}/ipfs",
        chunk_size=CHUNK_SIZE,
    )
    with client:
        yield client


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Create a file of random bytes under tmp_path."""

    def _make(name: str = "data.bin", size: int = 10 * CHUNK_SIZE) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(os.urandom(size))
        return path

    return _make


@pytest.fixture
def unused_url() -> str:
    """URL of a local port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"
