import logging
import os
from pathlib import Path

from fastapi import FastAPI, File, HTTPException, Query, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.responses import Response

from docx2pdf_service import __version__
from docx2pdf_service.config import Settings, get_settings
from docx2pdf_service.conversion import (
    BackendTimeoutError,
    ConversionError,
    ConversionService,
    ConversionServiceError,
    InvalidInputError,
    LaunchError,
    PayloadTooLargeError,
    ResourceError,
    UnsupportedPlatformError,
)

logger = logging.getLogger("docx2pdf.api")

app = FastAPI(
    title="DOCX to PDF Conversion Service",
    version=os.getenv("DOCX2PDF_SERVICE_VERSION", __version__),
    description=(
        "Converts uploaded Word documents (DOCX) to PDF through an external "
        "conversion backend, with bounded concurrency and per-job timeouts."
    ),
)

SETTINGS: Settings | None = None
SERVICE: ConversionService | None = None

# Most specific first: subclasses must win over their bases
_STATUS_BY_ERROR: list[tuple[type[ConversionServiceError], int]] = [
    (PayloadTooLargeError, 413),
    (InvalidInputError, 400),
    (UnsupportedPlatformError, 501),
    (LaunchError, 503),
    (ConversionError, 422),
    (BackendTimeoutError, 504),
    (ResourceError, 500),
]

CHUNK = 1024 * 1024


def status_for(error: ConversionServiceError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return code
    return 500


def _pdf_filename(upload_name: str | None) -> str:
    stem = Path(upload_name or "document").stem or "document"
    safe = "".join(c for c in stem if c.isalnum() or c in "-_ .").strip() or "document"
    return f"{safe}.pdf"


def _service() -> ConversionService:
    if SERVICE is None:
        raise HTTPException(status_code=503, detail={"code": "not_ready", "message": "service not started"})
    return SERVICE


@app.on_event("startup")
async def _startup() -> None:
    global SETTINGS, SERVICE
    SETTINGS = get_settings()
    logging.basicConfig(
        level=SETTINGS.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    SERVICE = ConversionService.from_settings(SETTINGS)
    logger.info(
        "conversion service ready: backend=%s concurrency=%s max_bytes=%s timeout_ms=%s",
        SERVICE.describe()["backend"],
        SETTINGS.CONCURRENCY,
        SETTINGS.MAX_BYTES,
        SETTINGS.TIMEOUT_MS,
    )


@app.on_event("shutdown")
async def _shutdown() -> None:
    global SERVICE
    if SERVICE is not None:
        await SERVICE.stop()
        SERVICE = None


@app.get("/health")
def health() -> dict[str, object]:
    """Basic health check endpoint with queue gauges."""
    body: dict[str, object] = {"status": "ok"}
    if SERVICE is not None:
        body.update(SERVICE.describe())
    return body


@app.get("/version")
def version() -> dict[str, str]:
    return {"version": __version__}


@app.post("/convert")
async def convert(
    file: UploadFile = File(...),
    timeout_ms: int | None = Query(None, gt=0),
    keep_active: bool = Query(False),
) -> Response:
    """Convert an uploaded DOCX (multipart part "file") and return the PDF.

    The upload is read in chunks and refused with 413 as soon as it grows
    past the configured limit, before the conversion service sees it.
    """
    service = _service()
    max_bytes = service.max_bytes

    chunks: list[bytes] = []
    size_bytes = 0
    while True:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        size_bytes += len(chunk)
        if size_bytes > max_bytes:
            logger.info("upload %r rejected: exceeds %s bytes", file.filename, max_bytes)
            raise HTTPException(
                status_code=413,
                detail={"code": "payload_too_large", "message": f"upload exceeds {max_bytes} bytes"},
            )
        chunks.append(chunk)
    payload = b"".join(chunks)

    try:
        pdf = await service.convert(
            payload,
            timeout=timeout_ms / 1000 if timeout_ms else None,
            keep_active=keep_active,
        )
    except ConversionServiceError as e:
        logger.warning("conversion of %r failed: %s", file.filename, e)
        raise HTTPException(status_code=status_for(e), detail=e.to_dict())

    headers = {"Content-Disposition": f'attachment; filename="{_pdf_filename(file.filename)}"'}
    return Response(content=pdf, media_type="application/pdf", headers=headers)


@app.websocket("/ws")
async def convert_socket(websocket: WebSocket) -> None:
    """Binary frame in, binary PDF frame out; failures come back as JSON text frames."""
    await websocket.accept()
    logger.info("websocket client connected")
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            payload = message.get("bytes")
            try:
                if payload is None:
                    raise InvalidInputError("Expected a binary frame with the DOCX contents")
                pdf = await _service().convert(payload)
            except ConversionServiceError as e:
                logger.warning("websocket conversion failed: %s", e)
                await websocket.send_json({"event": "error", **e.to_dict()})
                continue
            except HTTPException as e:
                await websocket.send_json({"event": "error", **e.detail})
                continue
            await websocket.send_bytes(pdf)
    except WebSocketDisconnect:
        pass
    except (RuntimeError, OSError) as e:
        # client went away mid-conversion; the send error varies by server
        logger.info("websocket send failed, closing: %s", e)
    logger.info("websocket client disconnected")


def run() -> None:
    """Run the ASGI server using uvicorn.

    Exposes the app at HOST:PORT (default 0.0.0.0:3000). Set RELOAD=true for
    auto-reload during development.
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "docx2pdf_service.webapi:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
