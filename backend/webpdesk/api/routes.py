"""Bridge routes the desktop shell calls: convert, list, delete, open folder."""
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile

from webpdesk.config import MAX_UPLOAD_SIZE_BYTES, MAX_UPLOAD_SIZE_MB, OUTPUT_EXTENSION
from webpdesk.conversion.models import ConversionInput, ConversionResult
from webpdesk.conversion.profile import ConverterSettings, resolve
from webpdesk.conversion.service import ConversionService, get_conversion_service, summarize

logger = logging.getLogger("converter.api")
router = APIRouter(prefix="/api", tags=["converter"])


def _parse_config(raw: Optional[str]) -> dict:
    """Config arrives as a JSON string in multipart forms. Unusable config means defaults."""
    if not raw:
        return {}
    try:
        cfg = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unparseable config: %r", raw[:200])
        return {}
    return cfg if isinstance(cfg, dict) else {}


def _batch_response(results: list[ConversionResult]) -> dict:
    return {
        "results": [r.to_dict() for r in results],
        "summary": summarize(results).to_dict(),
    }


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/defaults")
def get_defaults():
    """Initial settings panel state and the profile it resolves to."""
    settings = ConverterSettings()
    return {"settings": settings.as_raw(), "profile": resolve(settings).to_dict()}


@router.post("/convert")
async def convert_paths(
    paths: list[Any] = Body(..., embed=True),
    config: Optional[dict] = Body(None, embed=True),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert files already on disk (drag-and-drop or file chooser paths)."""
    profile = resolve(config)
    # Keep one slot per submitted entry so results line up with the request
    slots: list[Optional[ConversionInput]] = []
    for p in paths:
        if not p or not isinstance(p, str):
            logger.error("Invalid file path: %r", p)
            slots.append(None)
        else:
            slots.append(ConversionInput.from_path(p))
    valid = [s for s in slots if s is not None]
    converted = iter(await asyncio.to_thread(svc.run_batch, valid, profile))
    results = [
        next(converted) if s is not None else ConversionResult.failed(str(p or "undefined"), "Invalid file path")
        for s, p in zip(slots, paths)
    ]
    return _batch_response(results)


@router.post("/convert-upload")
async def convert_uploads(
    files: list[UploadFile] = File(...),
    config: str = Form("{}"),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert in-memory buffers sent by the renderer."""
    profile = resolve(_parse_config(config))
    slots: list[tuple[str, Optional[ConversionInput]]] = []
    for file in files:
        name = file.filename or "upload"
        buf = bytearray()
        too_large = False
        while chunk := await file.read(1024 * 1024):
            buf.extend(chunk)
            if len(buf) > MAX_UPLOAD_SIZE_BYTES:
                too_large = True
                break
        if too_large:
            logger.warning("Upload %s exceeds %s MB", name, MAX_UPLOAD_SIZE_MB)
            slots.append((name, None))
            continue
        slots.append((name, ConversionInput.from_buffer(name, bytes(buf))))
    valid = [item for _, item in slots if item is not None]
    converted = iter(await asyncio.to_thread(svc.run_batch, valid, profile))
    results = [
        next(converted) if item is not None
        else ConversionResult.failed(name, f"Input error: file too large (max {MAX_UPLOAD_SIZE_MB} MB)")
        for name, item in slots
    ]
    return _batch_response(results)


@router.post("/convert-folder")
async def convert_folder(
    config: Optional[dict] = Body(None, embed=True),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Sweep the input drop folder. Converted sources are removed when autoCleanup is on."""
    profile = resolve(config)
    cleanup = bool((config or {}).get("autoCleanup", False))
    results = await asyncio.to_thread(svc.convert_directory, None, profile, cleanup)
    return _batch_response(results)


@router.get("/images")
def list_images(svc: ConversionService = Depends(get_conversion_service)):
    """Converted images, newest first."""
    return {"images": [e.to_dict() for e in svc.list_images()]}


@router.delete("/images/{name}")
def delete_image(name: str, svc: ConversionService = Depends(get_conversion_service)):
    """Delete a converted image and its metadata."""
    filename = Path(name).name
    if filename != name or not filename.lower().endswith(OUTPUT_EXTENSION):
        raise HTTPException(400, f"Not a converted image name: {name}")
    ok, error = svc.delete_output(svc.output_dir / filename)
    if not ok:
        return {"success": False, "error": error}
    return {"success": True}


@router.get("/output-folder")
def output_folder(svc: ConversionService = Depends(get_conversion_service)):
    """Path of the output folder for the shell to reveal. Created if missing."""
    svc.ensure_dirs()
    return {"path": str(svc.output_dir.resolve())}
