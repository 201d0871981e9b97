from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePath


class ConversionDirection(str, Enum):
    BTX_TO_PNG = "btx2png"
    PNG_TO_BTX = "png2btx"

    @classmethod
    def parse(cls, value: str) -> "ConversionDirection":
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = ", ".join(d.value for d in cls)
            raise ValueError(f"unknown conversion type {value!r}; expected one of {allowed}") from None


@dataclass(frozen=True)
class UploadedFile:
    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def safe_name(self) -> str:
        # Client-supplied names may carry directory parts (either separator)
        name = PurePath(self.name.replace("\\", "/")).name
        if name in ("", ".", ".."):
            return "upload"
        return name

    @property
    def base_name(self) -> str:
        return PurePath(self.safe_name).stem or "upload"


@dataclass(frozen=True)
class ConversionResult:
    output_name: str
    output_path: Path
    download_name: str


@dataclass(frozen=True)
class ConversionError:
    source_file_name: str
    message: str


JobOutcome = ConversionResult | ConversionError


@dataclass
class BatchReport:
    total: int = 0
    results: list[ConversionResult] = field(default_factory=list)
    errors: list[ConversionError] = field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[JobOutcome]) -> "BatchReport":
        report = cls(total=len(outcomes))
        for outcome in outcomes:
            report.add(outcome)
        return report

    def add(self, outcome: JobOutcome) -> None:
        if isinstance(outcome, ConversionResult):
            self.results.append(outcome)
        else:
            self.errors.append(outcome)

    @property
    def succeeded(self) -> bool:
        return len(self.results) > 0

    @property
    def summary(self) -> str:
        if not self.results:
            return "All conversions failed"
        return f"Converted {len(self.results)}/{self.total} files"
