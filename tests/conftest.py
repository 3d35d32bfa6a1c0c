"""Root conftest — settings and storage fixtures shared by every test module."""

from __future__ import annotations

import pytest

from blobkeep.settings import Settings
from blobkeep.storage.local import LocalStorage

TEST_SECRET = "test-signing-secret"


@pytest.fixture
def local_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="local",
        storage_local_path=str(tmp_path / "objects"),
        storage_signing_secret=TEST_SECRET,
        public_base_url="http://testserver",
    )


@pytest.fixture
def local_storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "objects"), TEST_SECRET, public_base_url="http://testserver")
