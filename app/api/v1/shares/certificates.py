from fastapi import APIRouter, Depends

from app.core.deps import AuthorizationService
from app.services.shares.certificates import CertificateService

router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.get("/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    certificate_service: CertificateService = Depends(CertificateService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    await authorization.get_current_user()
    return await certificate_service.get_certificate_async(certificate_id)
