"""Failures raised along the convert pipeline.

Each carries the HTTP status and the public message that ends up in the
``{"error": ...}`` body. Internal details stay in the logs.
"""


class ConvertApiError(Exception):
    """Base exception for the convert pipeline."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class Unauthorized(ConvertApiError):
    """Missing or mismatched x-api-key."""

    status_code = 401

    def __init__(self, message: str = "unauthorized") -> None:
        super().__init__(message)


class BadRequest(ConvertApiError):
    """Request failed validation."""

    status_code = 400


class StagingFailed(ConvertApiError):
    """Upload could not be written to the staging root."""

    def __init__(self, message: str = "staging_failed") -> None:
        super().__init__(message)


class ConversionFailed(ConvertApiError):
    """Converter raised or reported a non-success status."""


class OutputMissing(ConvertApiError):
    """Converter reported success but left no readable output."""

    def __init__(self, message: str = "output_missing") -> None:
        super().__init__(message)
