import logging

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import FileResponse

from convert_api.config import Settings
from convert_api.conversion import (
    ConversionInvoker,
    ConversionService,
    ConvertApiError,
    ConverterGateway,
    FileStager,
    FormatNormalizer,
    PathNamer,
    RequestValidator,
)
from convert_api.conversion.adapters import AliasFormatNormalizer, ApiKeySecurity, default_converter
from convert_api.conversion.responses import convert_api_error_handler, file_response
from convert_api.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    converter: ConverterGateway | None = None,
    normalizer: FormatNormalizer | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Converter and normalizer default to the bundled back ends; tests and
    embedders can pass their own.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if converter is None:
        converter = default_converter(settings.soffice_bin, docling=settings.enable_docling)
    if normalizer is None:
        normalizer = AliasFormatNormalizer(getattr(converter, "targets", ()))

    security = ApiKeySecurity(settings.api_key) if settings.api_key else None
    validator = RequestValidator(normalizer, security)
    stager = FileStager(settings.staging_root, settings.output_root)
    service = ConversionService(
        namer=PathNamer(settings.staging_root, settings.output_root),
        stager=stager,
        invoker=ConversionInvoker(converter, timeout=settings.convert_timeout_sec),
    )

    app = FastAPI(
        title="File Conversion API",
        version=settings.version,
        description=(
            "Synchronous endpoint that converts an uploaded file into the "
            "requested format and returns it."
        ),
    )
    app.state.settings = settings
    app.add_exception_handler(ConvertApiError, convert_api_error_handler)

    router = APIRouter(prefix="/api")

    @router.get("/health")
    def health() -> dict[str, bool]:
        """Basic health check endpoint."""
        return {"ok": True}

    @router.post("/convert", response_class=FileResponse)
    async def convert(request: Request) -> FileResponse:
        """Convert an uploaded file and stream the result back.

        Accepts multipart/form-data with a binary part named "file" and a
        "target_format" field. Returns the converted file as an attachment
        named ``{id}.{format}``; failures return ``{"error": ...}``.
        """
        upload = await validator.validate(request.headers, request.form)
        job = await service.convert_upload(upload)
        return file_response(job)

    app.include_router(router)

    if security is None:
        logger.warning("API_KEY not set; /api/convert is unauthenticated")
    logger.info(
        "convert api ready",
        extra={"staging_root": settings.staging_root, "output_root": settings.output_root},
    )
    return app


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(
        "convert_api.webapi:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )


if __name__ == "__main__":
    run()
