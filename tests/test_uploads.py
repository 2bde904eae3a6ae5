"""Tests for /api/v1/uploads and the Cloudinary client."""

import asyncio
import io

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import httpx
import pytest
from docx import Document

from app.main import app
from app.services.shares import upload as upload_module
from app.services.shares.cloudinary import CloudinaryService, get_cloudinary_service, resource_type_for
from app.services.shares.upload import render_slideshow, split_slides

API = "/api/v1/uploads"


class FakeCloudinary:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads: list[tuple[str, bytes, str]] = []

    async def upload_file(self, file_name, content, mime_type=None):
        if self.fail:
            raise RuntimeError("quota exceeded")
        self.uploads.append((file_name, content, mime_type))
        return {
            "public_id": f"health_elearn_uploads/{file_name}",
            "secure_url": f"https://res.cloudinary.com/demo/raw/upload/{file_name}",
        }


@pytest.fixture(name="cloudinary")
def fake_cloudinary_fixture(client):
    fake = FakeCloudinary()
    app.dependency_overrides[get_cloudinary_service] = lambda: fake
    return fake


def docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def fake_download(monkeypatch, content: bytes, status_code: int = 200):
    real_client = httpx.AsyncClient

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=content)

    def make_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(upload_module.httpx, "AsyncClient", make_client)


class TestUploadFile:
    def test_upload(self, client, auth_headers, learner, cloudinary):
        response = client.post(
            API,
            files={"file": ("photo.png", b"\x89PNG-data", "image/png")},
            headers=auth_headers(learner),
        )
        assert response.status_code == 200
        assert response.json() == {
            "filename": "health_elearn_uploads/photo.png",
            "mimetype": "image/png",
            "size": 9,
            "url": "https://res.cloudinary.com/demo/raw/upload/photo.png",
        }
        assert cloudinary.uploads[0][2] == "image/png"

    def test_no_file(self, client, auth_headers, learner, cloudinary):
        response = client.post(API, headers=auth_headers(learner))
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No file uploaded"

    def test_upload_failure(self, client, auth_headers, learner):
        app.dependency_overrides[get_cloudinary_service] = lambda: FakeCloudinary(fail=True)
        response = client.post(
            API, files={"file": ("a.pdf", b"%PDF", "application/pdf")}, headers=auth_headers(learner)
        )
        assert response.status_code == 400
        assert "quota exceeded" in response.json()["error"]["message"]

    def test_requires_login(self, client, cloudinary):
        response = client.post(API, files={"file": ("a.txt", b"hi", "text/plain")})
        assert response.status_code == 401


class TestWordToSlides:
    def test_convert(self, client, auth_headers, manager, cloudinary, monkeypatch):
        fake_download(monkeypatch, docx_bytes("Welcome   to the course", "", "Wash your hands"))

        response = client.post(
            f"{API}/word-to-slides",
            json={"fileUrl": "https://cdn.example.com/files/Hand%20Hygiene.docx"},
            headers=auth_headers(manager),
        )
        assert response.status_code == 200
        assert response.json() == {
            "slidesUrl": "https://res.cloudinary.com/demo/raw/upload/Hand Hygiene-slides.html",
            "slideCount": 2,
        }

        name, html, mime = cloudinary.uploads[0]
        assert mime == "text/html"
        assert b"Welcome to the course" in html
        assert b"<title>Hand Hygiene - Slides</title>" in html

    def test_download_failure(self, client, auth_headers, manager, cloudinary, monkeypatch):
        fake_download(monkeypatch, b"", status_code=404)
        response = client.post(
            f"{API}/word-to-slides",
            json={"fileUrl": "https://cdn.example.com/missing.docx"},
            headers=auth_headers(manager),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Failed to convert file"

    def test_corrupt_document(self, client, auth_headers, manager, cloudinary, monkeypatch):
        fake_download(monkeypatch, b"not a zip")
        response = client.post(
            f"{API}/word-to-slides",
            json={"fileUrl": "https://cdn.example.com/broken.docx"},
            headers=auth_headers(manager),
        )
        assert response.status_code == 400

    def test_missing_url(self, client, auth_headers, manager, cloudinary):
        response = client.post(f"{API}/word-to-slides", json={}, headers=auth_headers(manager))
        assert response.status_code == 400


class TestSlides:
    def test_split_limits_and_placeholder(self):
        assert split_slides("") == ["Slides generated."]
        assert len(split_slides("\n\n".join(f"part {i}" for i in range(30)))) == 20
        assert split_slides("a\n  b\n\n\n c ") == ["a b", "c"]

    def test_render_escapes_text(self):
        html = render_slideshow("Deck", ["<script>alert(1)</script>", "second"])
        assert "&lt;script&gt;" in html
        assert "Slide 2" in html


class TestCloudinaryClient:
    def test_resource_types(self):
        assert resource_type_for("image/jpeg") == "image"
        assert resource_type_for("video/mp4") == "video"
        assert resource_type_for("application/pdf") == "raw"
        assert resource_type_for(None) == "raw"

    def test_not_configured(self):
        service = CloudinaryService("", "", "", "folder")
        with pytest.raises(RuntimeError):
            asyncio.run(service.upload_file("a.txt", b"hi", "text/plain"))

    def test_upload_goes_through_sdk(self, monkeypatch):
        calls = []

        def fake_upload(file, **options):
            calls.append((file, options))
            return {"public_id": "f/a", "secure_url": "https://cdn/f/a.png"}

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)

        service = CloudinaryService("demo", "key", "secret", "f")
        result = asyncio.run(service.upload_file("a.png", b"data", "image/png"))

        assert result["secure_url"] == "https://cdn/f/a.png"
        file, options = calls[0]
        assert file == b"data"
        assert options["folder"] == "f"
        assert options["resource_type"] == "image"
        assert options["filename"] == "a.png"
        assert cloudinary.config().cloud_name == "demo"

    def test_sdk_errors_propagate(self, monkeypatch):
        def fake_upload(file, **options):
            raise cloudinary.exceptions.Error("Invalid Signature")

        monkeypatch.setattr(cloudinary.uploader, "upload", fake_upload)

        service = CloudinaryService("demo", "key", "secret", "f")
        with pytest.raises(cloudinary.exceptions.Error):
            asyncio.run(service.upload_file("a.txt", b"hi", "text/plain"))
