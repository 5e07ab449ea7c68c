import asyncio
import logging
import uuid
from pathlib import Path, PurePosixPath, PureWindowsPath

from .errors import StagingFailed
from .interfaces import StagedJob

logger = logging.getLogger(__name__)


def _extension(file_name: str) -> str:
    # Clients may send "C:\dir\a.png" or "dir/a.png"; only the last component counts
    base = PureWindowsPath(PurePosixPath(file_name).name).name
    return PurePosixPath(base).suffix


class PathNamer:
    """Derive collision-free input/output paths for one upload.

    The original base name is discarded; only its extension is kept for the
    input file, and the target format becomes the output extension.
    """

    def __init__(self, staging_root: Path, output_root: Path) -> None:
        self._staging_root = Path(staging_root)
        self._output_root = Path(output_root)

    def name(self, file_name: str, target_format: str) -> StagedJob:
        job_id = uuid.uuid4().hex
        input_ext = _extension(file_name)
        return StagedJob(
            id=job_id,
            input_path=self._staging_root / f"{job_id}{input_ext}",
            output_path=self._output_root / f"{job_id}.{target_format}",
            input_type=input_ext.removeprefix("."),
            output_type=target_format,
            input_ext=input_ext,
        )


class FileStager:
    def __init__(self, staging_root: Path, output_root: Path) -> None:
        self._roots = (Path(staging_root), Path(output_root))

    def ensure_dirs(self) -> None:
        for d in self._roots:
            d.mkdir(parents=True, exist_ok=True)

    async def stage(self, job: StagedJob, data: bytes) -> None:
        """Persist the upload bytes at ``job.input_path``."""

        def write_input() -> None:
            self.ensure_dirs()
            with job.input_path.open("wb") as f:
                f.write(data)

        try:
            await asyncio.to_thread(write_input)
        except OSError as e:
            logger.error(
                "failed to stage upload",
                extra={"job_id": job.id, "path": job.input_path, "error": str(e)},
            )
            raise StagingFailed() from e
