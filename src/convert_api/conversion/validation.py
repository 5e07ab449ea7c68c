from typing import Awaitable, Callable, Mapping

from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from .errors import BadRequest, Unauthorized
from .interfaces import FormatNormalizer, SecurityGateway, UploadRequest

API_KEY_HEADER = "x-api-key"
MULTIPART = "multipart/form-data"


class RequestValidator:
    """Gate a convert request before anything touches the disk.

    Checks run in order and the first failure is raised:

    1. shared secret (only when a ``security`` gateway is configured),
    2. multipart content type,
    3. ``file`` field holding an uploaded file,
    4. non-empty ``target_format`` field,
    5. ``target_format`` recognized by the normalizer.
    """

    def __init__(
        self,
        normalizer: FormatNormalizer,
        security: SecurityGateway | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._security = security

    def check_auth(self, headers: Mapping[str, str]) -> None:
        if self._security is None:
            return
        if not self._security.verify(headers.get(API_KEY_HEADER)):
            raise Unauthorized()

    async def validate(
        self,
        headers: Mapping[str, str],
        load_form: Callable[[], Awaitable[FormData]],
    ) -> UploadRequest:
        self.check_auth(headers)

        content_type = headers.get("content-type") or ""
        if MULTIPART not in content_type:
            raise BadRequest("expected multipart/form-data")

        try:
            form = await load_form()
        except (MultiPartException, HTTPException) as e:
            raise BadRequest("expected multipart/form-data") from e

        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise BadRequest("missing file field")

        target_raw = form.get("target_format")
        # A file part under target_format counts as missing, not as an unknown format
        if not isinstance(target_raw, str) or not target_raw:
            raise BadRequest("missing target_format field")

        target = self._normalizer.normalize(target_raw)
        if not target:
            raise BadRequest("invalid target_format")

        try:
            data = await file.read()
        finally:
            await file.close()
        return UploadRequest(
            file_bytes=data,
            file_name=file.filename or "",
            target_format=target,
        )
