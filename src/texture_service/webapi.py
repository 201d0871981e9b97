import os
from urllib.parse import quote

import structlog
from fastapi import FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse
from starlette.background import BackgroundTask

from texture_service import __version__
from texture_service.config import Settings
from texture_service.conversion import ConversionDirection, ConversionService, NotFound, UploadedFile
from texture_service.conversion.adapters import LocalOutputArea, PVRTexToolConverter
from texture_service.logs import configure_logging

app = FastAPI(
    title="Texture Conversion Service",
    version=os.getenv("TEXTURE_SERVICE_VERSION", __version__),
    description=(
        "Converts textures between the BTX container and PNG using "
        "PVRTexToolCLI; converted files are downloadable once."
    ),
)

SETTINGS = Settings.from_env()
SERVICE: ConversionService | None = None

logger = structlog.get_logger(__name__)

MEDIA_TYPES = {".png": "image/png", ".btx": "application/octet-stream"}


def build_service(settings: Settings) -> ConversionService:
    converter = PVRTexToolConverter(settings.converter_path, timeout=settings.converter_timeout_sec)
    outputs = LocalOutputArea(settings.output_dir, namespaced=settings.namespace_outputs)
    outputs.ensure()
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    return ConversionService(
        converter,
        outputs,
        upload_dir=settings.upload_dir,
        concurrency=settings.batch_concurrency,
    )


@app.on_event("startup")
async def _startup() -> None:
    configure_logging(SETTINGS.log_level, SETTINGS.json_logs)
    _service()
    logger.info(
        "Service started",
        converter=SETTINGS.converter_path,
        upload_dir=str(SETTINGS.upload_dir),
        output_dir=str(SETTINGS.output_dir),
    )


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


def _service() -> ConversionService:
    global SERVICE
    if SERVICE is None:
        SERVICE = build_service(SETTINGS)
    return SERVICE


@app.post("/convert")
async def convert(
    files: list[UploadFile] | None = File(None),
    conversionType: str = Form(ConversionDirection.BTX_TO_PNG.value),
) -> JSONResponse:
    """Convert one or more uploaded textures.

    Accepts multipart/form-data with one or more parts named "files" and a
    "conversionType" of btx2png or png2btx. Every file is converted
    independently; failures are itemized without failing the request.
    """
    if not files:
        raise HTTPException(status_code=400, detail={"code": "no_files", "message": "No files uploaded"})
    try:
        direction = ConversionDirection.parse(conversionType)
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"code": "invalid_conversion_type", "message": str(e)})

    uploads: list[UploadedFile] = []
    for file in files:
        data = await file.read(SETTINGS.max_upload_bytes + 1)
        if len(data) > SETTINGS.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail={"code": "payload_too_large", "message": f"upload exceeds {SETTINGS.max_upload_mb} MB"},
            )
        uploads.append(UploadedFile(name=file.filename or "upload", data=data))

    report = await _service().process(uploads, direction)
    body = {
        "message": report.summary,
        "success": report.succeeded,
        "conversionType": direction.value,
        "downloadLinks": [{"name": r.output_name, "path": f"/download/{quote(r.download_name)}"} for r in report.results],
        "errors": [{"file": e.source_file_name, "error": e.message} for e in report.errors],
    }
    return JSONResponse(status_code=status.HTTP_200_OK, content=body)


@app.get("/download/{filename:path}")
async def download(filename: str) -> FileResponse:
    """Stream a converted file once; it is deleted after the response."""
    outputs = _service().outputs
    try:
        claimed = outputs.claim(filename)
    except NotFound:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": "File not found"})
    name = filename.rsplit("/", 1)[-1]
    media_type = MEDIA_TYPES.get(os.path.splitext(name)[1].lower(), "application/octet-stream")
    return FileResponse(
        claimed,
        media_type=media_type,
        filename=name,
        background=BackgroundTask(outputs.release, claimed),
    )


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:3022). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "3022"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("texture_service.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
