"""Public certificate verification (no bearer token needed)."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learnhub.api.dependencies import get_certificate_registry
from learnhub.api.schemas import CertificateOut
from learnhub.services.certificates import CertificateRegistry

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class VerificationOut(BaseModel):
    valid: bool
    certificate: CertificateOut | None = None


@router.get("/{certificate_id}/verify", response_model=VerificationOut)
async def verify_certificate(
    certificate_id: UUID,
    registry: Annotated[CertificateRegistry, Depends(get_certificate_registry)],
) -> VerificationOut:
    result = await registry.verify(certificate_id)
    if result.certificate is None:
        return VerificationOut(valid=False)
    return VerificationOut(
        valid=result.valid,
        certificate=CertificateOut.from_certificate(result.certificate),
    )
