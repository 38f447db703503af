"""
Global test fixtures for lanclip tests
"""
import io
import socket
import time
from collections import deque

import pytest
from PIL import Image

from lanclip.common.user_config import ConfigManager, TransportConfig
from fixtures.mock_clipboard import MockClipboard


class FakeTarget:
    """Stands in for a MulticastTarget; records what was sent"""

    def __init__(self, name: str = "eth0", address: str = "192.168.1.10", fail: bool = False, delay: float = 0.0):
        self.name = name
        self.address = address
        self.fail = fail
        self.delay = delay
        self.sent = []
        self.closed = False

    def send(self, data: bytes) -> int:
        if self.delay:
            time.sleep(self.delay)
        if self.fail:
            raise OSError("Network is unreachable")
        self.sent.append(data)
        return len(data)

    def close(self):
        self.closed = True


class FakeDatagramSocket:
    """Stands in for the receiver's UDP socket"""

    def __init__(self, datagrams=None, poll: float = 0.01):
        self.datagrams = deque(datagrams or [])
        self.poll = poll
        self.closed = False
        self.reads = []

    def recvfrom(self, bufsize: int):
        if not self.datagrams:
            time.sleep(self.poll)
            raise socket.timeout("timed out")
        data, source = self.datagrams.popleft()
        self.reads.append(bufsize)
        # Datagrams longer than the buffer are truncated
        return data[:bufsize], source

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep config.json out of the real data directory"""
    monkeypatch.setattr("lanclip.config.get_data_dir", lambda: tmp_path)
    ConfigManager._instance = None
    ConfigManager._config = None
    ConfigManager._path = None
    yield tmp_path
    ConfigManager._instance = None
    ConfigManager._config = None
    ConfigManager._path = None


@pytest.fixture
def temp_dir(tmp_path):
    """Create a temporary directory for tests"""
    return tmp_path


@pytest.fixture
def transport() -> TransportConfig:
    """Transport settings with short timings for tests"""
    return TransportConfig(
        announce_interval=0.05,
        send_join_timeout=0.2,
        poll_interval=0.05,
        fallback_timeout=2.0,
    )


@pytest.fixture
def clipboard() -> MockClipboard:
    return MockClipboard()


@pytest.fixture
def fake_target():
    return FakeTarget


@pytest.fixture
def fake_datagram_socket():
    return FakeDatagramSocket


@pytest.fixture
def sample_text() -> str:
    """Sample text for clipboard testing"""
    return "Hello, this is a clipboard sync test message!"


@pytest.fixture
def sample_png_bytes() -> bytes:
    """Small valid PNG image"""
    output = io.BytesIO()
    Image.new('RGBA', (4, 3), (255, 0, 0, 128)).save(output, 'PNG')
    return output.getvalue()


@pytest.fixture
def sample_bmp_bytes() -> bytes:
    """Small valid BMP image"""
    output = io.BytesIO()
    Image.new('RGB', (5, 2), (0, 128, 255)).save(output, 'BMP')
    return output.getvalue()
