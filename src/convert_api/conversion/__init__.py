"""
Domain layer for the convert endpoint.
Provides the validation, staging, invocation and response steps plus the
gateways (converter, format normalizer, API key check) they depend on, so the
HTTP layer stays a thin wiring of these pieces.
"""

from .errors import (
    BadRequest,
    ConversionFailed,
    ConvertApiError,
    OutputMissing,
    StagingFailed,
    Unauthorized,
)
from .interfaces import (
    ConversionOutcome,
    ConverterGateway,
    Done,
    Failed,
    FormatNormalizer,
    SecurityGateway,
    StagedJob,
    UploadRequest,
)
from .service import ConversionInvoker, ConversionService
from .staging import FileStager, PathNamer
from .validation import RequestValidator
