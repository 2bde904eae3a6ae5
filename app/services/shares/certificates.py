from typing import Any

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.database import Certificate
from app.db.session import get_session
from app.libs.formats.mappers import to_certificate


class CertificateService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_certificate_async(self, certificate_id: str) -> dict[str, Any]:
        certificate = await self.db.get(Certificate, certificate_id)
        if not certificate:
            raise HTTPException(status_code=404, detail="Certificate not found")
        return to_certificate(certificate)
