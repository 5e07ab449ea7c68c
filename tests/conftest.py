from __future__ import annotations

import uuid
from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from convert_api.config import Settings
from convert_api.conversion.adapters import AliasFormatNormalizer
from convert_api.webapi import create_app

CONVERTED = b"converted-bytes"


class FakeConverter:
    """Records calls and writes ``CONVERTED`` to the output path."""

    def __init__(self, status: str = "Done", *, error: Exception | None = None, write: bool = True) -> None:
        self.status = status
        self.error = error
        self.write = write
        self.calls: list[tuple[str, str, str, str]] = []

    async def convert(self, input_path: str, input_type: str, target_type: str, output_path: str) -> str:
        self.calls.append((input_path, input_type, target_type, output_path))
        if self.error is not None:
            raise self.error
        if self.write:
            Path(output_path).write_bytes(CONVERTED)
        return self.status


def multipart(
    fields: dict[str, str] | None = None,
    files: dict[str, tuple[str, bytes]] | None = None,
) -> tuple[bytes, str]:
    """Encode a multipart/form-data body; returns (body, content-type)."""
    boundary = uuid.uuid4().hex
    chunks: list[bytes] = []
    for name, value in (fields or {}).items():
        chunks.append(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
            + value.encode()
            + b"\r\n"
        )
    for name, (filename, data) in (files or {}).items():
        chunks.append(
            (
                f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode()
            + data
            + b"\r\n"
        )
    chunks.append(f"--{boundary}--\r\n".encode())
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


@pytest.fixture(name="settings_factory")
def _settings_factory_fixture(tmp_path: Path) -> Callable[..., Settings]:
    def build(**overrides) -> Settings:
        values = dict(
            api_key=None,
            uploads_dir=tmp_path / "uploads",
            output_dir=tmp_path / "output",
            reload=False,
            enable_docling=False,
        )
        values.update(overrides)
        return Settings(**values)

    return build


@pytest.fixture(name="converter")
def _converter_fixture() -> FakeConverter:
    return FakeConverter()


@pytest.fixture(name="client_factory")
def _client_factory_fixture(settings_factory, converter) -> Callable[..., TestClient]:
    def build(*, converter_override: FakeConverter | None = None, **settings_overrides) -> TestClient:
        app = create_app(
            settings_factory(**settings_overrides),
            converter=converter_override or converter,
            normalizer=AliasFormatNormalizer({"webp", "pdf", "png", "jpeg", "markdown"}),
        )
        return TestClient(app)

    return build


@pytest.fixture(name="client")
def _client_fixture(client_factory) -> TestClient:
    return client_factory()


def post_convert(
    client: TestClient,
    *,
    fields: dict[str, str] | None = None,
    files: dict[str, tuple[str, bytes]] | None = None,
    headers: dict[str, str] | None = None,
):
    body, content_type = multipart(fields, files)
    return client.post(
        "/api/convert",
        content=body,
        headers={"content-type": content_type, **(headers or {})},
    )
