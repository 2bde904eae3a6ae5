import asyncio
from typing import Any, Dict, Optional

import cloudinary
import cloudinary.uploader
from loguru import logger

from app.core.settings import settings


def resource_type_for(mime_type: Optional[str]) -> str:
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    return "raw"


class CloudinaryService:
    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        timeout: float = 300,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        if self.configured:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True,
            )

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def upload_file(
        self,
        file_name: str,
        content: bytes,
        mime_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.configured:
            raise RuntimeError("Cloudinary is not configured")

        resource_type = resource_type_for(mime_type)
        logger.info(f"Uploading {file_name} ({mime_type}) as {resource_type}")
        try:
            # the SDK is blocking
            result = await asyncio.to_thread(
                cloudinary.uploader.upload,
                content,
                filename=file_name,
                folder=self.folder,
                resource_type=resource_type,
                timeout=self.timeout,
            )
        except Exception as e:
            logger.error(f"Cloudinary upload failed: {e}")
            raise

        logger.info(f"Cloudinary upload success: {result.get('secure_url')}")
        return result


_cloudinary_service: Optional[CloudinaryService] = None


def get_cloudinary_service() -> CloudinaryService:
    global _cloudinary_service
    if _cloudinary_service is None:
        _cloudinary_service = CloudinaryService(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            api_key=settings.CLOUDINARY_API_KEY,
            api_secret=settings.CLOUDINARY_API_SECRET,
            folder=settings.CLOUDINARY_FOLDER,
        )
    return _cloudinary_service
