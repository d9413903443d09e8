"""Shared fixtures for the HTTP tests."""

from __future__ import annotations

from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from lanshare.main import create_app
from lanshare.models import Config, ShareConfig


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture()
def share_dir(tmp_path):
    """A shared directory holding a.txt and sub/b.png."""

    root = tmp_path / "share"
    (root / "sub").mkdir(parents=True)
    (root / "a.txt").write_bytes(b"hello from a\n")
    (root / "sub" / "b.png").write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 4)
    return root


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def make_client(share_dir, clock):
    """Build TestClients for a share; extra Config fields may be overridden."""

    with ExitStack() as stack:

        def _make(root=None, config=None):
            config = config or Config()
            config.share = ShareConfig(path=str(root or share_dir))
            app = create_app(config, clock=clock)
            return stack.enter_context(TestClient(app))

        yield _make


@pytest.fixture()
def client(make_client):
    return make_client()
