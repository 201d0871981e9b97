from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one external converter invocation."""

    returncode: int | None
    stderr: str
    timed_out: bool
    output_exists: bool
    execution_time: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.output_exists

    @property
    def message(self) -> str:
        if self.timed_out:
            return f"Conversion timed out after {self.execution_time:.1f}s"
        return self.stderr.strip() or "Conversion failed"


class ConverterGateway(Protocol):
    async def run(self, args: list[str], expected_output: Path) -> ExecutionResult:
        """Invoke the external texture tool once with the given arguments.

        Success requires a clean exit and ``expected_output`` existing
        afterwards. Implementations report failures in the result and do
        not raise.
        """


class OutputStorage(Protocol):
    def target_path(self, job_id: str, filename: str) -> Path:
        ...

    def download_name(self, path: Path) -> str:
        ...

    def abandon(self, job_id: str) -> None:
        ...

    def claim(self, name: str) -> Path:
        ...

    def release(self, claimed: Path) -> None:
        ...

    def fetch(self, name: str) -> bytes:
        ...


def build_args(input_path: Path, output_path: Path, file_type: str) -> list[str]:
    return ["-i", str(input_path), "-d", str(output_path), "-ft", file_type]
