import io
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from docx import Document
from fastapi import Depends, HTTPException, UploadFile, status
from jinja2 import Environment, FileSystemLoader, select_autoescape
from loguru import logger

from app.libs.formats.text import collapse_whitespace, url_file_parts
from app.services.shares.cloudinary import CloudinaryService, get_cloudinary_service

MAX_UPLOAD_SIZE = 500 * 1024 * 1024
MAX_SLIDES = 20
EMPTY_SLIDES_TEXT = "Slides generated."
UNSUPPORTED_TEXT = "Could not extract text from this file type."

_templates = Environment(
    loader=FileSystemLoader(Path(__file__).resolve().parents[2] / "templates" / "slides"),
    autoescape=select_autoescape(["html"]),
)


def extract_word_text(content: bytes) -> str:
    """Raw text of a .docx file, one paragraph per blank-line separated block."""
    document = Document(io.BytesIO(content))
    return "\n\n".join(p.text for p in document.paragraphs)


def split_slides(raw_text: str) -> List[str]:
    parts = [collapse_whitespace(chunk) for chunk in re.split(r"\n\s*\n", raw_text)]
    parts = [p for p in parts if p]
    return (parts or [EMPTY_SLIDES_TEXT])[:MAX_SLIDES]


def render_slideshow(title: str, slides: List[str]) -> str:
    return _templates.get_template("slideshow.html").render(title=title, slides=slides)


class UploadService:
    def __init__(self, cloudinary: CloudinaryService = Depends(get_cloudinary_service)):
        self.cloudinary = cloudinary

    async def upload_async(self, file: Optional[UploadFile]) -> Dict[str, Any]:
        if file is None or not file.filename:
            logger.warning("No file received in upload request")
            raise HTTPException(status_code=400, detail="No file uploaded")

        content = await file.read()
        if len(content) > MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="File exceeds the 500 MB limit",
            )

        logger.info(f"Received file {file.filename} ({len(content)} bytes, {file.content_type})")
        try:
            result = await self.cloudinary.upload_file(file.filename, content, file.content_type)
        except Exception as e:
            logger.error(f"Upload of {file.filename} failed: {e}")
            raise HTTPException(status_code=400, detail=f"File upload failed: {e}")

        return {
            "filename": result.get("public_id"),
            "mimetype": file.content_type,
            "size": len(content),
            "url": result.get("secure_url"),
        }

    async def word_to_slides_async(self, file_url: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=60, follow_redirects=True) as client:
                r = await client.get(file_url)
                r.raise_for_status()

            title, ext = url_file_parts(file_url)
            ext = ext or ".docx"
            raw_text = extract_word_text(r.content) if "doc" in ext else UNSUPPORTED_TEXT

            slides = split_slides(raw_text)
            html = render_slideshow(title, slides)
            result = await self.cloudinary.upload_file(
                f"{title}-slides.html", html.encode("utf-8"), "text/html"
            )
        except Exception as e:
            logger.error(f"Word to slides conversion failed for {file_url}: {e}")
            raise HTTPException(status_code=400, detail="Failed to convert file")

        return {"slidesUrl": result.get("secure_url"), "slideCount": len(slides)}
