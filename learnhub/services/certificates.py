"""Certificate issuance and public verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from learnhub.core.errors import CertificateNotEarned
from learnhub.core.metrics import CERTIFICATES_ISSUED
from learnhub.models.certificate import Certificate, verification_hash
from learnhub.repos.bundle import Repos

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Verification:
    valid: bool
    certificate: Certificate | None = None


class CertificateRegistry:
    def __init__(self, repos: Repos) -> None:
        self._repos = repos

    async def issue(
        self, user_id: str, course_id: str, *, issued_at: int, score: int
    ) -> Certificate:
        """Only the caller that flipped certificate_earned may issue."""
        certificate = Certificate.new(
            user_id=user_id, course_id=course_id, issued_at=issued_at, score=score
        )
        await self._repos.certificates.add(certificate)
        CERTIFICATES_ISSUED.inc()
        logger.info(
            "Certificate issued id=%s user=%s course=%s",
            certificate.id,
            user_id,
            course_id,
        )
        return certificate

    async def get_for(self, user_id: str, course_id: str) -> Certificate | None:
        return await self._repos.certificates.get_for(user_id, course_id)

    async def get_earned(self, user_id: str, course_id: str) -> Certificate:
        enrollment = await self._repos.enrollments.get(user_id, course_id)
        if enrollment is None or not enrollment.certificate_earned:
            raise CertificateNotEarned()
        certificate = await self.get_for(user_id, course_id)
        if certificate is None:
            # earned flag set but the issuing request died before the insert
            raise CertificateNotEarned("certificate is still being issued")
        return certificate

    async def verify(self, certificate_id: UUID) -> Verification:
        certificate = await self._repos.certificates.get(certificate_id)
        if certificate is None:
            return Verification(valid=False)
        expected = verification_hash(
            certificate.id,
            certificate.user_id,
            certificate.course_id,
            certificate.issued_at,
        )
        valid = certificate.status == "issued" and expected == certificate.verification_hash
        return Verification(valid=valid, certificate=certificate)
