import os
from dataclasses import dataclass
from pathlib import Path

from . import __version__

_TRUTHY = {"1", "true", "yes", "on"}


def _optional_float(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once from the environment and injected."""

    api_key: str | None
    uploads_dir: Path
    output_dir: Path
    convert_timeout_sec: float | None = None
    soffice_bin: str = "soffice"
    enable_docling: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = True
    version: str = __version__

    @property
    def staging_root(self) -> Path:
        return self.uploads_dir / "api"

    @property
    def output_root(self) -> Path:
        return self.output_dir / "api"

    @classmethod
    def from_env(cls) -> "Settings":
        data_dir = Path(os.getenv("DATA_DIR", "./data")).resolve()
        uploads_dir = Path(os.getenv("UPLOADS_DIR", str(data_dir / "uploads"))).resolve()
        output_dir = Path(os.getenv("OUTPUT_DIR", str(data_dir / "output"))).resolve()
        # An empty API_KEY counts as unset
        api_key = os.getenv("API_KEY") or None
        return cls(
            api_key=api_key,
            uploads_dir=uploads_dir,
            output_dir=output_dir,
            convert_timeout_sec=_optional_float(os.getenv("CONVERT_TIMEOUT_SEC")),
            soffice_bin=os.getenv("SOFFICE_BIN", "soffice"),
            enable_docling=os.getenv("DISABLE_DOCLING", "").lower() not in _TRUTHY,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            reload=os.getenv("RELOAD", "true").lower() in _TRUTHY,
            version=os.getenv("CONVERT_API_VERSION", __version__),
        )
