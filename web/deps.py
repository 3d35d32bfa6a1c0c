from __future__ import annotations

from fastapi import Request

from blobkeep.settings import Settings
from blobkeep.storage.service import StorageService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage_service(request: Request) -> StorageService:
    return request.app.state.storage
