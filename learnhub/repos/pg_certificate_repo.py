"""PostgreSQL implementation of CertificateRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import CertificateRow
from learnhub.models.certificate import Certificate


class PgCertificateRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, certificate: Certificate) -> None:
        row = CertificateRow(
            id=certificate.id,
            user_id=certificate.user_id,
            course_id=certificate.course_id,
            issued_at=certificate.issued_at,
            score=certificate.score,
            verification_hash=certificate.verification_hash,
            status=certificate.status,
        )
        self._session.add(row)
        await self._session.flush()

    async def get(self, certificate_id: UUID) -> Certificate | None:
        stmt = select(CertificateRow).where(CertificateRow.id == certificate_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row is not None else None

    async def get_for(self, user_id: str, course_id: str) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.user_id == user_id,
            CertificateRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row is not None else None


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        issued_at=row.issued_at,
        score=row.score,
        verification_hash=row.verification_hash,
        status=row.status,
    )
