from typing import Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile

from app.core.deps import AuthorizationService
from app.schemas.shares.upload import WordToSlides
from app.services.shares.upload import UploadService

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    upload_service: UploadService = Depends(UploadService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.get_current_user()
    return await upload_service.upload_async(file)


@router.post("/word-to-slides")
async def word_to_slides(
    schema: WordToSlides = Body(),
    upload_service: UploadService = Depends(UploadService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.get_current_user()
    return await upload_service.word_to_slides_async(schema.file_url)
