"""
FastAPI Server for Scan Auto-Rotation

Provides REST endpoints for recommending the rotation of scanned pages
and for choosing the recognizer language.
"""

import asyncio
import base64
import binascii
import logging
import os
import threading
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, UploadFile, File
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from autorotate.config.autorotate_config import AutoRotateConfig
from autorotate.imaging.codec import OutputFormat
from autorotate.service import AutoRotatorService

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Scan Auto-Rotation API",
    description="Recommends the rotation that makes a scanned page upright",
    version="1.0.0",
)

# Add CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_service: Optional[AutoRotatorService] = None
_service_lock = threading.Lock()


def get_service() -> AutoRotatorService:
    """Get the shared service, creating (and provisioning) it on first use. Blocking."""
    global _service
    with _service_lock:
        if _service is None:
            config_path = os.environ.get("AUTOROTATE_CONFIG")
            config = AutoRotateConfig.from_yaml(config_path) if config_path else AutoRotateConfig()
            config.settings_path = os.environ.get("AUTOROTATE_SETTINGS", config.settings_path)
            _service = AutoRotatorService.from_config(config)
        return _service


def set_service(service: Optional[AutoRotatorService]) -> None:
    """Replace the shared service (closing the previous one)."""
    global _service
    with _service_lock:
        if _service is not None and _service is not service:
            _service.close()
        _service = service


def image_bytes_from_base64(base64_string: str) -> bytes:
    """Decode a base64 image string, with or without a data URL prefix"""
    if "," in base64_string:
        base64_string = base64_string.split(",")[1]
    return base64.b64decode(base64_string, validate=True)


def language_summary(service: AutoRotatorService) -> dict:
    """Installed, default and current languages (queries tesseract; blocking)"""
    default = service.default_language
    current = service.current_language
    return {
        "available": [language.to_dict() for language in service.available_languages],
        "default": default.to_dict() if default else None,
        "current": current.to_dict() if current else None,
    }


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    auto_rotation_available: bool


class Base64ImageRequest(BaseModel):
    """Request body for base64-encoded image rotation"""
    image: str  # Base64-encoded image (with or without data URL prefix)
    output_format: str = "png"


class LanguageRequest(BaseModel):
    """Request body for choosing the recognizer language"""
    language: Union[int, str]  # catalog index or language tag


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    service = await asyncio.to_thread(get_service)
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        auto_rotation_available=service.is_available,
    )


@app.get("/languages")
async def list_languages():
    """List installed recognizer languages with the default and current one"""
    service = await asyncio.to_thread(get_service)
    return await asyncio.to_thread(language_summary, service)


@app.put("/settings/language")
async def set_language(request: LanguageRequest):
    """
    Choose the recognizer language.

    The engine is re-provisioned immediately; if the language cannot be
    loaded the service falls back and reports what it is using instead.
    """
    service = await asyncio.to_thread(get_service)
    changed = await asyncio.to_thread(service.select_language, request.language)
    outcome = service.provisioner.last_outcome
    logger.info(f"Language preference set to {request.language!r} (changed: {changed})")
    return {
        "changed": changed,
        "outcome": outcome.to_dict() if outcome else None,
    }


@app.post("/rotation")
async def recommend_rotation(request: Base64ImageRequest):
    """
    Recommend a rotation for a base64-encoded scan.

    Returns the chosen rotation plus the score of every candidate.
    """
    try:
        output_format = OutputFormat.from_name(request.output_format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        data = image_bytes_from_base64(request.image)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid base64 image data")

    logger.info(f"Received rotation request ({len(data)} bytes)")
    service = await asyncio.to_thread(get_service)
    result = await service.evaluate(data, output_format)
    return result.to_dict()


@app.post("/rotation/upload")
async def recommend_rotation_upload(
    file: UploadFile = File(...),
    output_format: str = "png",
):
    """
    Recommend a rotation for an uploaded scan.

    Accepts PNG, JPEG, TIFF and BMP files.
    """
    try:
        target_format = OutputFormat.from_name(output_format)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Received file upload: {file.filename}")
    data = await file.read()
    service = await asyncio.to_thread(get_service)
    result = await service.evaluate(data, target_format)
    return {"filename": file.filename, **result.to_dict()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
