import asyncio
import logging
import time

from .errors import ConversionFailed
from .interfaces import (
    DONE_STATUS,
    ConversionOutcome,
    ConverterGateway,
    Done,
    Failed,
    StagedJob,
    UploadRequest,
)
from .staging import FileStager, PathNamer

logger = logging.getLogger(__name__)


class ConversionInvoker:
    """Run the converter for one staged job and interpret its status."""

    def __init__(self, converter: ConverterGateway, *, timeout: float | None = None) -> None:
        self._converter = converter
        self._timeout = timeout

    async def invoke(self, job: StagedJob) -> ConversionOutcome:
        try:
            call = self._converter.convert(
                str(job.input_path),
                job.input_type,
                job.output_type,
                str(job.output_path),
            )
            if self._timeout is None:
                status = await call
            else:
                status = await asyncio.wait_for(call, self._timeout)
        except asyncio.TimeoutError:
            logger.error(
                "conversion timed out",
                extra={"job_id": job.id, "timeout_sec": self._timeout},
            )
            return Failed()
        except Exception:
            logger.exception(
                "conversion error",
                extra={
                    "job_id": job.id,
                    "input_type": job.input_type,
                    "output_type": job.output_type,
                },
            )
            return Failed()

        if status != DONE_STATUS:
            logger.warning(
                "converter reported failure",
                extra={"job_id": job.id, "status": status},
            )
            return Failed(status=str(status))
        return Done()


class ConversionService:
    """Core domain service for the synchronous convert operation.

    Framework-agnostic: given a validated upload it names, stages and converts
    it, returning the staged job whose ``output_path`` is ready to be sent.
    """

    def __init__(
        self,
        namer: PathNamer,
        stager: FileStager,
        invoker: ConversionInvoker,
    ) -> None:
        self._namer = namer
        self._stager = stager
        self._invoker = invoker

    async def convert_upload(self, upload: UploadRequest) -> StagedJob:
        job = self._namer.name(upload.file_name, upload.target_format)
        await self._stager.stage(job, upload.file_bytes)

        started = time.perf_counter()
        outcome = await self._invoker.invoke(job)
        if isinstance(outcome, Failed):
            raise ConversionFailed(outcome.reason)

        logger.info(
            "conversion done",
            extra={
                "job_id": job.id,
                "input_type": job.input_type,
                "output_type": job.output_type,
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return job
