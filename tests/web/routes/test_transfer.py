import time
from unittest.mock import patch
from urllib.parse import urlencode

import pytest

from blobkeep.errors import StorageIOError, StorageTimeoutError
from blobkeep.signing import issue_token
from tests.conftest import TEST_SECRET
from tests.web.conftest import relative

EPUB = "application/epub+zip"


def _query(path, content_type, expires_at, secret=TEST_SECRET, **overrides):
    token = issue_token(path, content_type, secret, expires_at=expires_at)
    params = token.as_query()
    params.update(overrides)
    return urlencode({k: v for k, v in params.items() if v is not None})


class TestStatus:
    def test_status_always_ok(self, client):
        response = client.get("/status")
        assert response.status_code == 200
        assert response.text == "Service is running"


class TestUploadDownloadScenario:
    def test_upload_then_download_same_bytes(self, client, storage):
        body = bytes(range(256)) * 40
        upload_url = storage.get_upload_signed_url(
            "u/42/book.epub", content_type=EPUB, expires_at=int(time.time()) + 3600
        )

        response = client.put(relative(upload_url), content=body, headers={"Content-Type": EPUB})
        assert response.status_code == 200
        assert response.text == "File uploaded successfully"

        download_url = storage.get_download_signed_url("u/42/book.epub", content_type=EPUB)
        response = client.get(relative(download_url))
        assert response.status_code == 200
        assert response.content == body
        assert response.headers["content-type"] == EPUB

    def test_upload_with_empty_content_type(self, client, storage):
        upload_url = storage.get_upload_signed_url("u/1/x", content_type="")

        response = client.put(relative(upload_url), content=b"payload")

        assert response.status_code == 200
        assert storage.download("u/1/x") == b"payload"

    def test_text_download_keeps_signed_content_type(self, client, storage):
        storage.save("notes.txt", b"hello", content_type="text/plain")
        download_url = storage.get_download_signed_url("notes.txt", content_type="text/plain")

        response = client.get(relative(download_url))

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/plain"

    def test_token_rejected_after_expiry(self, client, storage):
        now = time.time()
        upload_url = storage.get_upload_signed_url("u/42/book.epub", content_type=EPUB, expires_at=int(now) + 3600)

        with patch("blobkeep.signing.time") as mock_time:
            mock_time.time.return_value = now + 3601
            response = client.put(relative(upload_url), content=b"late")

        assert response.status_code == 403
        assert not storage.exists("u/42/book.epub")


class TestUpload:
    def test_missing_parameters(self, client, storage):
        for missing in ("filename", "expiry", "signature"):
            query = _query("a.txt", "text/plain", int(time.time()) + 60, **{missing: None})
            with patch.object(storage.backend, "save") as mock_save:
                response = client.put(f"/upload?{query}", content=b"x")
            assert response.status_code == 400, missing
            assert response.text == "Missing required parameters"
            mock_save.assert_not_called()

    def test_expired_signature(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) - 10)
        response = client.put(f"/upload?{query}", content=b"x")
        assert response.status_code == 403
        assert response.text == "Invalid or expired signature"
        assert not storage.exists("a.txt")

    def test_tampered_signature(self, client, storage):
        token = issue_token("a.txt", "text/plain", TEST_SECRET, expires_at=int(time.time()) + 60)
        flipped = ("0" if token.signature[0] != "0" else "1") + token.signature[1:]
        query = urlencode({**token.as_query(), "signature": flipped})

        response = client.put(f"/upload?{query}", content=b"x")

        assert response.status_code == 403
        assert not storage.exists("a.txt")

    def test_wrong_secret(self, client):
        query = _query("a.txt", "text/plain", int(time.time()) + 60, secret="other-secret")
        assert client.put(f"/upload?{query}", content=b"x").status_code == 403

    def test_other_path_with_valid_signature(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60, filename="b.txt")
        assert client.put(f"/upload?{query}", content=b"x").status_code == 403
        assert not storage.exists("b.txt")

    def test_content_type_binding(self, client):
        query = _query("a.txt", "text/plain", int(time.time()) + 60, contentType="text/html")
        assert client.put(f"/upload?{query}", content=b"x").status_code == 403

    def test_content_type_falls_back_to_header(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60, contentType=None)
        response = client.put(f"/upload?{query}", content=b"x", headers={"Content-Type": "text/plain"})
        assert response.status_code == 200
        assert storage.download("a.txt") == b"x"

    def test_content_type_falls_back_to_octet_stream(self, client, storage):
        query = _query("a.bin", "application/octet-stream", int(time.time()) + 60, contentType=None)
        response = client.put(f"/upload?{query}", content=b"x")
        assert response.status_code == 200

    def test_payload_too_large(self, client, local_settings, storage):
        local_settings.max_upload_bytes = 10
        query = _query("big.bin", "application/octet-stream", int(time.time()) + 60)
        response = client.put(f"/upload?{query}", content=b"x" * 11)
        assert response.status_code == 413
        assert not storage.exists("big.bin")

    def test_write_failure_is_server_error(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60)
        with patch.object(storage.backend, "save", side_effect=StorageIOError(key="a.txt")):
            response = client.put(f"/upload?{query}", content=b"x")
        assert response.status_code == 500

    def test_write_timeout(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60)
        with patch.object(storage.backend, "save", side_effect=StorageTimeoutError(key="a.txt")):
            response = client.put(f"/upload?{query}", content=b"x")
        assert response.status_code == 504

    def test_save_receives_write_timeout(self, client, storage, local_settings):
        query = _query("a.txt", "text/plain", int(time.time()) + 60)
        with patch.object(storage.backend, "save") as mock_save:
            client.put(f"/upload?{query}", content=b"x")
        assert mock_save.call_args[1]["timeout"] == local_settings.write_timeout
        assert mock_save.call_args[1]["content_type"] == "text/plain"

    def test_options(self, client):
        response = client.options("/upload")
        assert response.status_code == 204
        assert "PUT" in response.headers["allow"]

    def test_cors_preflight(self, client):
        response = client.options(
            "/upload",
            headers={"Origin": "https://app.example.com", "Access-Control-Request-Method": "PUT"},
        )
        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers


class TestDownload:
    def test_missing_parameters(self, client):
        for missing in ("filename", "expiry", "signature"):
            query = _query("a.txt", "text/plain", int(time.time()) + 60, **{missing: None})
            assert client.get(f"/download?{query}").status_code == 400

    def test_expired(self, client, storage):
        storage.save("a.txt", b"secret data")
        query = _query("a.txt", "text/plain", int(time.time()) - 1)
        response = client.get(f"/download?{query}")
        assert response.status_code == 403
        assert b"secret data" not in response.content

    def test_forbidden_does_not_reveal_existence(self, client, storage):
        storage.save("exists.txt", b"x")
        expired = int(time.time()) - 1
        present = client.get(f"/download?{_query('exists.txt', 'text/plain', expired)}")
        absent = client.get(f"/download?{_query('absent.txt', 'text/plain', expired)}")
        assert present.status_code == absent.status_code == 403
        assert present.text == absent.text

    def test_not_found_after_authorization(self, client):
        query = _query("absent.txt", "text/plain", int(time.time()) + 60)
        assert client.get(f"/download?{query}").status_code == 404

    def test_content_type_defaults_to_octet_stream(self, client, storage):
        storage.save("a.bin", b"\x00\x01")
        query = _query("a.bin", "application/octet-stream", int(time.time()) + 60, contentType=None)
        response = client.get(f"/download?{query}")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"

    def test_read_failure_is_server_error(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60)
        with patch.object(storage.backend, "download", side_effect=StorageIOError("Failed to read object: /srv/x")):
            response = client.get(f"/download?{query}")
        assert response.status_code == 500
        assert "/srv/x" not in response.text

    def test_read_timeout(self, client, storage):
        query = _query("a.txt", "text/plain", int(time.time()) + 60)
        with patch.object(storage.backend, "download", side_effect=StorageTimeoutError(key="a.txt")):
            response = client.get(f"/download?{query}")
        assert response.status_code == 504

    def test_invalid_signature_handled_by_app(self, client, storage, caplog):
        query = _query("a.txt", "text/plain", int(time.time()) - 1)
        with patch.object(storage.backend, "download") as mock_download:
            with caplog.at_level("INFO", logger="web.app"):
                response = client.get(f"/download?{query}")
        assert response.status_code == 403
        assert response.text == "Invalid or expired signature"
        assert "Storage error on GET /download" in caplog.text
        mock_download.assert_not_called()

    @pytest.mark.parametrize("route", ["/download", "/upload"])
    def test_options(self, client, route):
        assert client.options(route).status_code == 204
