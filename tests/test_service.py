from __future__ import annotations

import asyncio

import pytest

from conftest import FakeConverter

from convert_api.conversion import (
    ConversionFailed,
    ConversionInvoker,
    ConversionService,
    Done,
    Failed,
    FileStager,
    PathNamer,
    UploadRequest,
)


class SlowConverter:
    async def convert(self, input_path, input_type, target_type, output_path):
        await asyncio.sleep(5)
        return "Done"


@pytest.fixture(name="namer")
def _namer_fixture(tmp_path):
    return PathNamer(tmp_path / "in", tmp_path / "out")


def _service(tmp_path, converter, timeout=None) -> ConversionService:
    return ConversionService(
        namer=PathNamer(tmp_path / "in", tmp_path / "out"),
        stager=FileStager(tmp_path / "in", tmp_path / "out"),
        invoker=ConversionInvoker(converter, timeout=timeout),
    )


def test_failed_reason_strings():
    assert Failed().reason == "conversion_failed"
    assert Failed("Queued").reason == "conversion_failed_status_Queued"


def test_invoker_done(namer):
    converter = FakeConverter(write=False)
    job = namer.name("a.png", "webp")
    assert asyncio.run(ConversionInvoker(converter).invoke(job)) == Done()
    assert converter.calls == [(str(job.input_path), "png", "webp", str(job.output_path))]


def test_invoker_status_failure(namer):
    outcome = asyncio.run(ConversionInvoker(FakeConverter("File type not supported", write=False)).invoke(namer.name("a.x", "pdf")))
    assert outcome == Failed("File type not supported")
    assert outcome.reason == "conversion_failed_status_File type not supported"


def test_invoker_exception_is_not_leaked(namer):
    converter = FakeConverter(error=ValueError("internal detail"))
    outcome = asyncio.run(ConversionInvoker(converter).invoke(namer.name("a.png", "webp")))
    assert outcome == Failed()
    assert "internal detail" not in outcome.reason


def test_invoker_timeout(namer):
    outcome = asyncio.run(ConversionInvoker(SlowConverter(), timeout=0.05).invoke(namer.name("a.png", "webp")))
    assert outcome == Failed()


def test_service_runs_pipeline(tmp_path):
    job = asyncio.run(
        _service(tmp_path, FakeConverter()).convert_upload(
            UploadRequest(file_bytes=b"payload", file_name="x.docx", target_format="pdf")
        )
    )
    assert job.input_path.read_bytes() == b"payload"
    assert job.output_path.exists()
    assert job.output_path.name == f"{job.id}.pdf"


def test_service_raises_conversion_failed(tmp_path):
    service = _service(tmp_path, FakeConverter("Queued"))
    with pytest.raises(ConversionFailed) as info:
        asyncio.run(service.convert_upload(UploadRequest(b"x", "x.docx", "pdf")))
    assert info.value.status_code == 500
    assert info.value.message == "conversion_failed_status_Queued"
    # staged input is left in place
    assert len(list((tmp_path / "in").iterdir())) == 1
