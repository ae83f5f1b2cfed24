import logging
import os

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from ddan_mock import state_machine
from ddan_mock.logging_config import setup_logging
from ddan_mock.models import ScanRecord
from ddan_mock.registry import ScanRegistry

logger = logging.getLogger("ddan_mock")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value)
        return parsed if parsed > 0 else default
    except ValueError:
        return default


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


MAX_FILE_SIZE_BYTES = _env_int("MAX_FILE_SIZE_BYTES", 100_000_000)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3000)
CORS_ALLOW_ORIGINS = _env_list("CORS_ALLOW_ORIGINS", "*")


class ScanValidationError(ValueError):
    """A submission that is rejected before any record is created."""


def validate_upload(content: bytes | None, size: int | None, filename: str | None) -> str:
    """Check a submitted payload and return the file id to store it under."""
    if content is None or not filename:
        raise ScanValidationError("No file were uploaded.")

    size = len(content) if size is None else size
    if size == 0:
        raise ScanValidationError("Empty file.")

    if size > MAX_FILE_SIZE_BYTES:
        raise ScanValidationError(
            f"File too big: {size} bytes. Max size: {MAX_FILE_SIZE_BYTES} bytes."
        )

    return filename


def submit_scan(registry: ScanRegistry, file_id: str) -> ScanRecord:
    # Same name overwrites the previous record, whatever state it was in.
    record = ScanRecord(file_id=file_id)
    registry.put(file_id, record)
    return record


def poll_scan(registry: ScanRegistry, file_id: str, draw: state_machine.Draw) -> ScanRecord | None:
    previous = registry.get(file_id)
    if previous is None:
        logger.info("'%s': not found", file_id)
        return None

    if previous.is_terminal:
        logger.info(
            "'%s': was previously completed (status=%s result=%s)",
            file_id, previous.status.value, previous.result.value,
        )
        return previous

    # Another poll or a resubmit may land before advance() takes the key lock.
    # advance() re-checks under that lock, so at most a spare draw is spent.
    value = draw()
    logger.debug("'%s': draw=%s", file_id, value)
    record = registry.advance(file_id, value)
    if record is None:
        return None

    if record.is_terminal:
        logger.info(
            "'%s': now completed (status=%s result=%s)",
            file_id, record.status.value, record.result.value,
        )
    else:
        logger.info("'%s': still scanning", file_id)
    return record


def create_app(
    registry: ScanRegistry | None = None,
    draw: state_machine.Draw | None = None,
) -> FastAPI:
    app = FastAPI(title="DDAN Mock Scan Server")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.registry = registry if registry is not None else ScanRegistry()
    app.state.draw = draw if draw is not None else state_machine.draw

    @app.exception_handler(ScanValidationError)
    async def _validation_error(_request: Request, exc: ScanValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/scan")
    async def scan(request: Request):
        content = None
        size = None
        filename = None
        # A plain-text or nameless "file" part counts as no upload at all.
        async with request.form() as form:
            part = form.get("file")
            if isinstance(part, UploadFile) and part.filename:
                # Read one byte past the limit so oversize is detectable without
                # buffering arbitrarily large bodies.
                content = await part.read(MAX_FILE_SIZE_BYTES + 1)
                size = part.size if part.size is not None else len(content)
                filename = part.filename

        try:
            file_id = validate_upload(content, size, filename)
        except ScanValidationError as exc:
            logger.warning("Scan submission rejected: file=%s reason=%s", filename, exc)
            raise

        record = submit_scan(request.app.state.registry, file_id)
        logger.info(
            "Received file '%s' with size %s bytes. Starting scan...",
            file_id, size,
            extra={"scan": record.to_response()},
        )
        return record.to_response()

    @app.get("/result/{file_id}")
    def result(file_id: str, request: Request):
        logger.info("Request for scan results of '%s'", file_id)
        record = poll_scan(request.app.state.registry, file_id, request.app.state.draw)
        if record is None:
            raise HTTPException(status_code=404, detail="Not found")

        logger.info(
            "Returning scan results for '%s'",
            file_id,
            extra={"scan": record.to_response()},
        )
        return record.to_response()

    @app.get("/result")
    def results(request: Request):
        # Diagnostic view, not for real use.
        return [record.to_response() for record in request.app.state.registry.list()]

    return app


app = create_app()


def run() -> None:
    setup_logging()
    logger.info("Mock DDAN server listening on port %s", PORT)
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    run()
