"""Web test fixtures — TestClient around an app backed by local storage in tmp_path."""

from __future__ import annotations

from urllib.parse import urlsplit

import pytest
from fastapi.testclient import TestClient

from blobkeep.storage.factory import get_storage
from web.app import create_app


def relative(url: str) -> str:
    """Strip scheme and host so a signed URL can be passed to the TestClient."""
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}"


@pytest.fixture
def storage(local_settings):
    return get_storage(local_settings)


@pytest.fixture
def app(local_settings, storage):
    return create_app(local_settings, storage)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
