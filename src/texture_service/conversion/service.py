import asyncio
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from . import framing
from .errors import ConversionFailed, StagingFailure, TextureServiceError
from .interfaces import ConverterGateway, OutputStorage, build_args
from .models import (
    BatchReport,
    ConversionDirection,
    ConversionError,
    ConversionResult,
    JobOutcome,
    UploadedFile,
)

logger = structlog.get_logger(__name__)


async def _read_bytes(path: Path) -> bytes:
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise StagingFailure(f"cannot read {path.name}: {e.strerror or e}") from e


async def _write_bytes(path: Path, data: bytes) -> None:
    try:
        await asyncio.to_thread(path.write_bytes, data)
    except OSError as e:
        raise StagingFailure(f"cannot write {path.name}: {e.strerror or e}") from e


class ConversionService:
    """Core domain service converting uploaded textures.

    Framework-agnostic: the HTTP layer hands it uploaded files and gets a
    BatchReport back. The external tool and the output area are injected as
    gateways so tests can run without the real binary.
    """

    def __init__(
        self,
        converter: ConverterGateway,
        outputs: OutputStorage,
        *,
        upload_dir: str | Path,
        concurrency: int = 1,
    ) -> None:
        self._converter = converter
        self._outputs = outputs
        self._upload_dir = Path(upload_dir).resolve()
        self._concurrency = max(1, concurrency)

    @property
    def outputs(self) -> OutputStorage:
        return self._outputs

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @contextmanager
    def _workspace(self, job_id: str) -> Iterator[Path]:
        path = self._upload_dir / job_id
        try:
            path.mkdir(parents=True)
        except OSError as e:
            raise StagingFailure(f"cannot create workspace: {e.strerror or e}") from e
        try:
            yield path
        finally:
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Workspace removed", job_id=job_id)

    async def _run_converter(self, input_path: Path, output_path: Path, file_type: str) -> None:
        result = await self._converter.run(build_args(input_path, output_path, file_type), output_path)
        if not result.succeeded:
            raise ConversionFailed(result.message)

    async def _btx_to_png(self, job_id: str, upload: UploadedFile) -> ConversionResult:
        with self._workspace(job_id) as ws:
            staged = ws / upload.safe_name
            ktx_path = ws / f"{upload.base_name}.{job_id}.ktx"
            output_name = f"{upload.base_name}.png"
            output_path = self._outputs.target_path(job_id, output_name)

            await _write_bytes(staged, upload.data)
            payload = framing.strip(await _read_bytes(staged))
            await _write_bytes(ktx_path, payload)

            await self._run_converter(ktx_path, output_path, "png")
            return ConversionResult(output_name, output_path, self._outputs.download_name(output_path))

    async def _png_to_btx(self, job_id: str, upload: UploadedFile) -> ConversionResult:
        with self._workspace(job_id) as ws:
            staged = ws / upload.safe_name
            ktx_path = ws / f"{upload.base_name}.{job_id}.ktx"
            output_name = f"{upload.base_name}.btx"

            await _write_bytes(staged, upload.data)
            await self._run_converter(staged, ktx_path, "ktx")

            output_path = self._outputs.target_path(job_id, output_name)
            await _write_bytes(output_path, framing.wrap(await _read_bytes(ktx_path)))
            return ConversionResult(output_name, output_path, self._outputs.download_name(output_path))

    async def convert(self, upload: UploadedFile, direction: ConversionDirection) -> JobOutcome:
        """Run one job; per-file failures come back as ConversionError values."""
        job_id = uuid.uuid4().hex
        log = logger.bind(job_id=job_id, direction=direction.value, size=upload.size)
        log.info("Conversion started")
        try:
            if direction is ConversionDirection.BTX_TO_PNG:
                result = await self._btx_to_png(job_id, upload)
            else:
                result = await self._png_to_btx(job_id, upload)
        except TextureServiceError as e:
            log.warning("Conversion failed", error_type=type(e).__name__, error=str(e))
            self._outputs.abandon(job_id)
            return ConversionError(upload.name, str(e))
        except Exception as e:
            log.exception("Unexpected conversion error")
            self._outputs.abandon(job_id)
            return ConversionError(upload.name, str(e) or type(e).__name__)
        log.info("Conversion succeeded", output=result.download_name)
        return result

    async def convert_btx_to_png(self, upload: UploadedFile) -> JobOutcome:
        return await self.convert(upload, ConversionDirection.BTX_TO_PNG)

    async def convert_png_to_btx(self, upload: UploadedFile) -> JobOutcome:
        return await self.convert(upload, ConversionDirection.PNG_TO_BTX)

    async def process(self, files: list[UploadedFile], direction: ConversionDirection) -> BatchReport:
        """Convert every file independently and aggregate in input order."""
        if self._concurrency == 1:
            outcomes = [await self.convert(f, direction) for f in files]
        else:
            semaphore = asyncio.Semaphore(self._concurrency)

            async def bounded(upload: UploadedFile) -> JobOutcome:
                async with semaphore:
                    return await self.convert(upload, direction)

            outcomes = list(await asyncio.gather(*(bounded(f) for f in files)))

        report = BatchReport.from_outcomes(outcomes)
        logger.info(
            "Batch finished",
            direction=direction.value,
            total=report.total,
            converted=len(report.results),
            failed=len(report.errors),
        )
        return report
