"""API routes for upload, conversion, download and deletion."""
import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, File, Form, Query, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from convertors.config import MAX_FILE_SIZE_BYTES, MAX_FILE_SIZE_MB, UPLOAD_DIR
from convertors.conversion.adapters.toolcheck import check_tools
from convertors.conversion.errors import BatchValidationError, ConversionError
from convertors.conversion.formats import ALL_EXTENSIONS, OUTPUT_FORMATS, is_supported, normalize_extension
from convertors.conversion.models import BatchResult, StagedUpload
from convertors.conversion.scratch import cleanup_files, sanitize_filename
from convertors.conversion.service import get_conversion_service, parse_formats

logger = logging.getLogger("converter.api")
router = APIRouter(prefix="/api", tags=["converter"])
public_router = APIRouter(tags=["converter"])

SAFE_FILENAME = re.compile(r"^[A-Za-z0-9._-]+$")


class UploadRejected(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _safe_filename(filename: str) -> bool:
    return bool(SAFE_FILENAME.match(filename)) and filename not in (".", "..")


async def _stage_upload(file: UploadFile) -> StagedUpload:
    """Stream one upload to the uploads directory in 1 MiB chunks."""
    original = file.filename or ""
    ext = normalize_extension(Path(original).suffix)
    if not is_supported(ext):
        raise UploadRejected(f"Unsupported file format: {ext or 'unknown'}")
    dest = UPLOAD_DIR / f"{uuid.uuid4().hex}_{sanitize_filename(original)}"
    total = 0
    try:
        with open(dest, "wb") as f:
            while chunk := await file.read(1024 * 1024):
                total += len(chunk)
                if total > MAX_FILE_SIZE_BYTES:
                    raise UploadRejected(f"File too large: {original} (max {MAX_FILE_SIZE_MB} MB)")
                f.write(chunk)
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    logger.info("Staged upload %s (%s bytes) as %s", original, total, dest.name)
    return StagedUpload(path=dest, original_name=original)


def _file_entry(name: str, client_id: Optional[str]) -> dict:
    return {"name": name, "path": f"/converted/{quote(name, safe='')}", "id": client_id}


def _batch_response(result: BatchResult, partial: bool) -> dict:
    body = {"files": [_file_entry(o.output_name, o.client_id) for o in result.succeeded]}
    if partial:
        body["errors"] = [
            {"id": o.client_id, "kind": o.kind, "message": o.message}
            for o in result.failed
        ]
    return body


@router.post("/convert")
async def convert(
    request: Request,
    files: list[UploadFile] = File(default=[]),
    formats: Optional[str] = Form(None),
    partial: bool = Query(False, description="Report per-item outcomes instead of aborting on the first error"),
):
    """Convert a batch of uploads, one format descriptor per file."""
    logger.info(
        "Received /api/convert request from %s: %s file(s)",
        request.headers.get("origin"), len(files),
    )
    try:
        descriptors = parse_formats(formats)
    except BatchValidationError as e:
        return _error(400, e.message)

    uploads: list[StagedUpload] = []
    try:
        for file in files:
            uploads.append(await _stage_upload(file))
    except UploadRejected as e:
        cleanup_files([u.path for u in uploads])
        return _error(400, e.message)
    except Exception as e:
        cleanup_files([u.path for u in uploads])
        logger.exception("Upload failed: %s", e)
        return _error(500, "Upload failed")

    svc = get_conversion_service()
    try:
        result = await asyncio.to_thread(svc.convert_batch, uploads, descriptors, partial)
    except BatchValidationError as e:
        return _error(400, e.message)
    except ConversionError as e:
        return _error(500, e.message)
    except Exception as e:
        logger.exception("Conversion failed: %s", e)
        return _error(500, "Conversion failed. Please try a different file or check server logs.")
    return _batch_response(result, partial)


@router.delete("/delete/{filename}")
def delete_file(filename: str):
    if not _safe_filename(filename):
        return _error(400, "Invalid filename.")
    logger.info("Delete request for %s", filename)
    if not get_conversion_service().delete_output(filename):
        return _error(500, f"Failed to delete file {filename}.")
    return {"message": f"File {filename} deleted successfully."}


@router.get("/formats")
def get_formats():
    return {
        "input": list(ALL_EXTENSIONS),
        "output": {category.value: sorted(exts) for category, exts in OUTPUT_FORMATS.items()},
        "max_files": get_conversion_service().max_files,
        "max_file_size_mb": MAX_FILE_SIZE_MB,
    }


@public_router.get("/converted/{filename}")
def download(filename: str):
    if not _safe_filename(filename):
        return _error(400, "Invalid filename.")
    path = get_conversion_service().output_file(filename)
    if not path.is_file():
        logger.warning("Converted file not found: %s", path)
        return _error(404, "Converted file not found.")
    return FileResponse(path, filename=filename)


@public_router.get("/health")
def health():
    return {"status": "OK"}


@public_router.get("/status")
async def status():
    """External tool availability."""
    results = await asyncio.to_thread(check_tools, get_conversion_service().config)
    return {"status": "OK", "dependencies": results}
