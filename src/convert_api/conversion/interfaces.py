from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union

DONE_STATUS = "Done"


class ConverterGateway(Protocol):
    async def convert(
        self,
        input_path: str,
        input_type: str,
        target_type: str,
        output_path: str,
    ) -> str:
        """Convert ``input_path`` into ``output_path``.

        Returns ``"Done"`` on success; any other string is a failure status.
        May also raise.
        """


class FormatNormalizer(Protocol):
    def normalize(self, raw: str) -> str | None:
        """Return the canonical lowercase format token, or None if unknown."""


class SecurityGateway(Protocol):
    def verify(self, provided: str | None) -> bool:
        ...


@dataclass(frozen=True)
class UploadRequest:
    file_bytes: bytes
    file_name: str
    target_format: str


@dataclass(frozen=True)
class StagedJob:
    id: str
    input_path: Path
    output_path: Path
    input_type: str
    output_type: str
    input_ext: str


@dataclass(frozen=True)
class Done:
    pass


@dataclass(frozen=True)
class Failed:
    # None when the converter raised instead of returning a status
    status: str | None = None

    @property
    def reason(self) -> str:
        if self.status is None:
            return "conversion_failed"
        return f"conversion_failed_status_{self.status}"


ConversionOutcome = Union[Done, Failed]
