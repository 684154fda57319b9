"""Shared fixtures for webtoolkit tests."""

from pathlib import Path

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from webtoolkit import (
    JSONEnvelope,
    ToolkitConfig,
    read_json,
    upload_files,
    upload_one_file,
    write_json,
)

# 1x1 transparent PNG.
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c63f8ffff3f0005fe02fea7d6a4ec00"
    "00000049454e44ae426082",
)


class FooPayload(BaseModel):
    foo: str = ""


def build_app(config: ToolkitConfig, upload_dir: Path) -> FastAPI:
    """Build an app exposing the helpers without any error handler.

    Toolkit errors propagate out of TestClient calls into the test.
    """
    app = FastAPI()

    @app.post("/upload")
    async def upload(request: Request, rename: bool = True):
        files = await upload_files(request, upload_dir, rename=rename, config=config)
        return write_json(200, JSONEnvelope(data=files))

    @app.post("/upload-one")
    async def upload_one(request: Request, rename: bool = True):
        uploaded = await upload_one_file(request, upload_dir, rename=rename, config=config)
        return write_json(200, JSONEnvelope(data=uploaded))

    @app.post("/json")
    async def decode(request: Request, max_size: int = 0):
        payload = await read_json(request, FooPayload, config=config, max_size=max_size or None)
        return write_json(200, JSONEnvelope(message="ok", data=payload))

    return app


@pytest.fixture
def png_bytes():
    """PNG content larger than the 512 byte sniffing probe.

    Returns:
        PNG signature and data padded with trailing bytes.
    """
    return PNG_BYTES + bytes(range(256)) * 8


@pytest.fixture
def upload_dir(tmp_path):
    """Destination directory for uploads (not created yet).

    Returns:
        Path inside the test's temporary directory.
    """
    return tmp_path / "uploads" / "nested"


@pytest.fixture
def make_client(upload_dir):
    """Factory for TestClients bound to a given ToolkitConfig.

    Returns:
        Callable taking an optional ToolkitConfig.
    """

    def _make(config=None):
        return TestClient(build_app(config or ToolkitConfig(), upload_dir))

    return _make
