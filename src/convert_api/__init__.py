"""
File Conversion API package.

This module provides a FastAPI application exposing a synchronous
upload-and-convert endpoint at `/api/convert` and a health check at
`/api/health`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
