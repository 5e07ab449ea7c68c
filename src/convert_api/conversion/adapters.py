import asyncio
import hmac
import json
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from PIL import Image

from .interfaces import DONE_STATUS, ConverterGateway, FormatNormalizer, SecurityGateway

logger = logging.getLogger(__name__)

ALIASES = {
    "jpg": "jpeg",
    "jfif": "jpeg",
    "htm": "html",
    "tex": "latex",
    "md": "markdown",
    "yml": "yaml",
}


def normalize_filetype(raw: str) -> str:
    token = raw.strip().lower().removeprefix(".")
    return ALIASES.get(token, token)


class ApiKeySecurity(SecurityGateway):
    """Check the x-api-key header against the configured shared secret.

    The secret may be stored as plaintext or as an Argon2 PHC string
    (``$argon2id$...``) so the key itself never sits in the environment.
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret
        self._hasher = PasswordHasher() if secret.startswith("$argon2") else None

    def verify(self, provided: str | None) -> bool:
        if not provided:
            return False
        if self._hasher is None:
            return hmac.compare_digest(provided.encode("utf-8"), self._secret.encode("utf-8"))
        try:
            return self._hasher.verify(self._secret, provided)
        except (VerificationError, InvalidHashError):
            return False


class AliasFormatNormalizer(FormatNormalizer):
    def __init__(self, known: Iterable[str]) -> None:
        self._known = frozenset(normalize_filetype(k) for k in known)

    @property
    def known(self) -> frozenset[str]:
        return self._known

    def normalize(self, raw: str) -> str | None:
        token = normalize_filetype(raw)
        return token if token in self._known else None


class ConverterBackend(ConverterGateway, Protocol):
    name: str

    def supports(self, input_type: str, target_type: str) -> bool:
        ...

    @property
    def targets(self) -> frozenset[str]:
        ...


class LibreOfficeConverter:
    """Office documents through headless LibreOffice."""

    name = "libreoffice"

    # family: (inputs, targets)
    FAMILIES: dict[str, tuple[frozenset[str], frozenset[str]]] = {
        "writer": (
            frozenset({"doc", "docx", "odt", "rtf", "txt", "html", "wpd"}),
            frozenset({"pdf", "doc", "docx", "odt", "rtf", "txt", "html", "epub"}),
        ),
        "calc": (
            frozenset({"xls", "xlsx", "ods", "csv"}),
            frozenset({"pdf", "xls", "xlsx", "ods", "csv", "html"}),
        ),
        "impress": (
            frozenset({"ppt", "pptx", "odp"}),
            frozenset({"pdf", "ppt", "pptx", "odp"}),
        ),
    }

    def __init__(self, soffice_bin: str = "soffice") -> None:
        self._bin = soffice_bin

    @property
    def targets(self) -> frozenset[str]:
        return frozenset().union(*(t for _, t in self.FAMILIES.values()))

    def supports(self, input_type: str, target_type: str) -> bool:
        return any(
            input_type in inputs and target_type in targets
            for inputs, targets in self.FAMILIES.values()
        )

    async def convert(self, input_path: str, input_type: str, target_type: str, output_path: str) -> str:
        with tempfile.TemporaryDirectory(prefix="convert-api-lo-") as tmp:
            # A private profile per call lets concurrent soffice processes coexist
            profile = Path(tmp, "profile").as_uri()
            outdir = Path(tmp, "out")
            command = [
                self._bin,
                f"-env:UserInstallation={profile}",
                "--headless",
                "--convert-to", target_type,
                "--outdir", str(outdir),
                input_path,
            ]
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await proc.communicate()
            except asyncio.CancelledError:
                # Timed out or request dropped; don't leave soffice writing into a deleted tmp dir
                if proc.returncode is None:
                    proc.kill()
                    await proc.wait()
                logger.warning("soffice cancelled", extra={"pid": proc.pid, "input_path": input_path})
                raise
            if proc.returncode != 0:
                raise RuntimeError(
                    f"soffice exited with {proc.returncode}: {stderr.decode(errors='replace').strip()}"
                )
            produced = outdir / f"{Path(input_path).stem}.{target_type}"
            if not produced.exists():
                raise RuntimeError(f"soffice produced no {target_type} output")
            shutil.move(str(produced), output_path)
        return DONE_STATUS


class PillowConverter:
    """Raster images through Pillow."""

    name = "pillow"

    # normalized token -> Pillow format name
    FORMATS = {
        "png": "PNG",
        "jpeg": "JPEG",
        "webp": "WEBP",
        "gif": "GIF",
        "bmp": "BMP",
        "tiff": "TIFF",
        "ico": "ICO",
    }
    # targets that cannot carry an alpha channel
    _NO_ALPHA = {"jpeg", "bmp"}

    @property
    def targets(self) -> frozenset[str]:
        return frozenset(self.FORMATS)

    def supports(self, input_type: str, target_type: str) -> bool:
        return input_type in self.FORMATS and target_type in self.FORMATS

    async def convert(self, input_path: str, input_type: str, target_type: str, output_path: str) -> str:
        def _run() -> None:
            with Image.open(input_path) as img:
                if target_type in self._NO_ALPHA and img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                img.save(output_path, format=self.FORMATS[target_type])

        await asyncio.to_thread(_run)
        return DONE_STATUS


def _docling_document_converter() -> Any:
    from docling.document_converter import DocumentConverter

    return DocumentConverter()


class DoclingConverter:
    """Documents to markdown/html/json through docling (optional extra)."""

    name = "docling"

    INPUTS = frozenset({"pdf", "docx", "pptx", "xlsx", "html", "markdown", "png", "jpeg", "tiff", "bmp"})
    TARGETS = frozenset({"markdown", "html", "json"})

    # export method names vary across docling versions
    _EXPORTS = {
        "markdown": ("export_to_markdown", "to_markdown", "as_markdown"),
        "html": ("export_to_html", "to_html"),
        "json": ("export_to_dict", "to_dict"),
    }

    def __init__(self, document_converter: Callable[[], Any] | None = None) -> None:
        self._document_converter = document_converter or _docling_document_converter

    @property
    def targets(self) -> frozenset[str]:
        return self.TARGETS

    def supports(self, input_type: str, target_type: str) -> bool:
        return input_type in self.INPUTS and target_type in self.TARGETS

    async def convert(self, input_path: str, input_type: str, target_type: str, output_path: str) -> str:
        def _run() -> None:
            result = self._document_converter().convert(input_path)
            doc = result.document
            for m in self._EXPORTS[target_type]:
                fn = getattr(doc, m, None)
                if callable(fn):
                    exported = fn()
                    break
            else:
                raise RuntimeError(f"docling document lacks a {target_type} export method")
            if not isinstance(exported, str):
                exported = json.dumps(exported, ensure_ascii=False, indent=2)
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(exported)

        await asyncio.to_thread(_run)
        return DONE_STATUS


class MainConverter:
    """Dispatch to the first back end able to handle the conversion.

    Reports problems as status strings rather than raising, so callers see
    ``"File type not supported"`` or ``"Failed, check logs"``.
    """

    def __init__(self, backends: Iterable[ConverterBackend]) -> None:
        self._backends = list(backends)

    @property
    def targets(self) -> frozenset[str]:
        return frozenset().union(*(b.targets for b in self._backends))

    def find_backend(self, input_type: str, target_type: str) -> ConverterBackend | None:
        for backend in self._backends:
            if backend.supports(input_type, target_type):
                return backend
        return None

    async def convert(self, input_path: str, input_type: str, target_type: str, output_path: str) -> str:
        source = normalize_filetype(input_type)
        backend = self.find_backend(source, target_type)
        if backend is None:
            logger.info(
                "no converter available",
                extra={"input_type": source, "target_type": target_type},
            )
            return "File type not supported"
        try:
            return await backend.convert(input_path, source, target_type, output_path)
        except Exception:
            logger.exception(
                "converter back end failed",
                extra={"backend": backend.name, "input_type": source, "target_type": target_type},
            )
            return "Failed, check logs"


def default_converter(soffice_bin: str = "soffice", *, docling: bool = True) -> MainConverter:
    backends: list[ConverterBackend] = [PillowConverter(), LibreOfficeConverter(soffice_bin)]
    if docling:
        backends.append(DoclingConverter())
    return MainConverter(backends)
