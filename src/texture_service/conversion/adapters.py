import asyncio
import contextlib
import time
import uuid
from pathlib import Path

import structlog

from .errors import NotFound
from .interfaces import ConverterGateway, ExecutionResult, OutputStorage

logger = structlog.get_logger(__name__)


class PVRTexToolConverter(ConverterGateway):
    """Runs the PVRTexTool command line converter as a child process."""

    DEFAULT_TIMEOUT = 30.0

    def __init__(self, executable: str, *, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._executable = executable
        self._timeout = timeout

    async def run(self, args: list[str], expected_output: Path) -> ExecutionResult:
        cmd = [self._executable, *args]
        logger.debug("Executing converter", executable=self._executable, arg_count=len(args), timeout=self._timeout)
        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Converter could not be started", executable=self._executable, error=str(e))
            return ExecutionResult(
                returncode=None,
                stderr=f"cannot start {self._executable}: {e.strerror or e}",
                timed_out=False,
                output_exists=expected_output.exists(),
            )

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                # child may exit between the timeout and the kill
                process.kill()
            await process.wait()
            elapsed = time.monotonic() - start
            logger.warning("Converter timed out", executable=self._executable, elapsed=round(elapsed, 3))
            return ExecutionResult(
                returncode=process.returncode,
                stderr="",
                timed_out=True,
                output_exists=expected_output.exists(),
                execution_time=elapsed,
            )

        elapsed = time.monotonic() - start
        result = ExecutionResult(
            returncode=process.returncode,
            stderr=stderr.decode("utf-8", errors="replace"),
            timed_out=False,
            output_exists=expected_output.exists(),
            execution_time=elapsed,
        )
        logger.info(
            "Converter finished",
            returncode=result.returncode,
            output_exists=result.output_exists,
            elapsed=round(elapsed, 3),
        )
        return result


class LocalOutputArea(OutputStorage):
    """Shared directory of finished artifacts, each downloadable once."""

    _CLAIM_PREFIX = ".claimed-"

    def __init__(self, output_dir: str | Path, *, namespaced: bool = False) -> None:
        self._base = Path(output_dir).resolve()
        self._namespaced = namespaced

    @property
    def base_dir(self) -> Path:
        return self._base

    def ensure(self) -> None:
        self._base.mkdir(parents=True, exist_ok=True)

    def target_path(self, job_id: str, filename: str) -> Path:
        if self._namespaced:
            job_dir = self._base / job_id
            job_dir.mkdir(parents=True, exist_ok=True)
            return job_dir / filename
        self.ensure()
        return self._base / filename

    def download_name(self, path: Path) -> str:
        return path.resolve().relative_to(self._base).as_posix()

    def abandon(self, job_id: str) -> None:
        """Drop a failed job's empty namespace directory."""
        if not self._namespaced:
            return
        try:
            (self._base / job_id).rmdir()
        except OSError:
            pass

    def _resolve(self, name: str) -> Path:
        candidate = (self._base / name).resolve()
        if candidate == self._base or not candidate.is_relative_to(self._base):
            raise NotFound(f"{name} not found")
        if candidate.name.startswith(self._CLAIM_PREFIX):
            raise NotFound(f"{name} not found")
        return candidate

    def claim(self, name: str) -> Path:
        """Take exclusive ownership of an artifact before streaming it.

        The rename is atomic, so of two concurrent callers only one gets the
        file; the other sees ``NotFound``.
        """
        path = self._resolve(name)
        if not path.is_file():
            raise NotFound(f"{name} not found")
        claimed = path.with_name(f"{self._CLAIM_PREFIX}{uuid.uuid4().hex}-{path.name}")
        try:
            path.rename(claimed)
        except FileNotFoundError:
            raise NotFound(f"{name} not found") from None
        return claimed

    def release(self, claimed: Path) -> None:
        claimed.unlink(missing_ok=True)
        parent = claimed.parent
        if parent != self._base:
            try:
                parent.rmdir()
            except OSError:
                # still holds other artifacts
                pass
        logger.info("Artifact released", name=claimed.name.split("-", 2)[-1])

    def fetch(self, name: str) -> bytes:
        claimed = self.claim(name)
        try:
            return claimed.read_bytes()
        finally:
            self.release(claimed)
