import mimetypes

from fastapi import Request
from fastapi.responses import FileResponse, JSONResponse

from .errors import ConvertApiError, OutputMissing
from .interfaces import StagedJob

FALLBACK_MEDIA_TYPE = "application/octet-stream"


def file_response(job: StagedJob) -> FileResponse:
    """Stream the converted file back as an attachment named ``{id}.{format}``."""
    if not job.output_path.is_file():
        raise OutputMissing()
    media_type, _ = mimetypes.guess_type(job.output_path.name)
    return FileResponse(
        job.output_path,
        media_type=media_type or FALLBACK_MEDIA_TYPE,
        filename=job.output_path.name,
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def convert_api_error_handler(request: Request, exc: ConvertApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)
