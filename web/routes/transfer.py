"""Signed transfer routes for the local storage backend.

Each request is checked on its own: parameters present, signature valid for
(filename, expiry, contentType), expiry not passed. Only then is the
filesystem touched. Nothing is retried.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import PlainTextResponse, Response

from blobkeep.errors import (
    AuthorizationError,
    ObjectNotFoundError,
    StorageIOError,
    StorageTimeoutError,
    ValidationError,
)
from blobkeep.storage.base import DEFAULT_CONTENT_TYPE
from web.deps import get_settings, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter()
status_router = APIRouter()

MISSING_PARAMETERS = "Missing required parameters"
INVALID_SIGNATURE = "Invalid or expired signature"


class PayloadTooLarge(Exception):
    pass


def _authorize(request: Request, content_type: str) -> str:
    """Validate the signed query string and return the filename.

    Raises ValidationError (400) or AuthorizationError (403); the app maps both.
    """
    params = request.query_params
    filename = params.get("filename")
    expiry = params.get("expiry")
    signature = params.get("signature")

    if not filename or not expiry or not signature:
        logger.info("%s %s rejected — missing parameters", request.method, request.url.path)
        raise ValidationError(MISSING_PARAMETERS)

    backend = get_storage_service(request).backend
    if not backend.verify_transfer(filename, expiry, content_type, signature):
        logger.warning("%s %s rejected — invalid or expired signature", request.method, request.url.path)
        raise AuthorizationError(INVALID_SIGNATURE)

    return filename


async def _read_body(request: Request, limit: int) -> bytes:
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge()

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLarge()
    return bytes(body)


@router.options("/upload")
async def upload_options() -> Response:
    return Response(status_code=204, headers={"Allow": "OPTIONS, PUT"})


@router.put("/upload")
async def upload(request: Request):
    content_type = (
        request.query_params.get("contentType")
        or request.headers.get("content-type")
        or DEFAULT_CONTENT_TYPE
    )
    filename = _authorize(request, content_type)

    settings = get_settings(request)
    try:
        data = await _read_body(request, settings.max_upload_bytes)
    except PayloadTooLarge:
        logger.warning("PUT /upload rejected — body exceeds %d bytes for %s", settings.max_upload_bytes, filename)
        return PlainTextResponse("Payload too large", status_code=413)

    storage = get_storage_service(request)
    try:
        await run_in_threadpool(
            storage.save,
            filename,
            data,
            content_type=content_type,
            timeout=settings.write_timeout,
        )
    except ValidationError as e:
        return PlainTextResponse(e.message, status_code=400)
    except StorageTimeoutError:
        logger.error("PUT /upload timed out for %s", filename)
        return PlainTextResponse("Upload timed out", status_code=504)
    except StorageIOError as e:
        logger.error("PUT /upload failed for %s: %s", filename, e)
        return PlainTextResponse("Failed to upload file", status_code=500)

    logger.info("PUT /upload — stored %s (%d bytes)", filename, len(data))
    return PlainTextResponse("File uploaded successfully")


@router.options("/download")
async def download_options() -> Response:
    return Response(status_code=204, headers={"Allow": "OPTIONS, GET"})


@router.get("/download")
async def download(request: Request):
    content_type = request.query_params.get("contentType") or DEFAULT_CONTENT_TYPE
    filename = _authorize(request, content_type)

    storage = get_storage_service(request)
    try:
        data = await run_in_threadpool(storage.download, filename)
    except ObjectNotFoundError:
        logger.info("GET /download — %s not found", filename)
        return PlainTextResponse("File not found", status_code=404)
    except ValidationError as e:
        return PlainTextResponse(e.message, status_code=400)
    except StorageTimeoutError:
        logger.error("GET /download timed out for %s", filename)
        return PlainTextResponse("Download timed out", status_code=504)
    except StorageIOError as e:
        logger.error("GET /download failed for %s: %s", filename, e)
        return PlainTextResponse("Failed to download file", status_code=500)

    logger.info("GET /download — served %s (%d bytes)", filename, len(data))
    # Served exactly as signed; media_type would append a charset to text/* types.
    return Response(content=data, headers={"Content-Type": content_type})


@status_router.get("/status")
async def status() -> PlainTextResponse:
    return PlainTextResponse("Service is running")
