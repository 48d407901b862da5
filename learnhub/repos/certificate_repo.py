from __future__ import annotations

from typing import Protocol
from uuid import UUID

from learnhub.models.certificate import Certificate


class CertificateRepo(Protocol):
    async def add(self, certificate: Certificate) -> None: ...
    async def get(self, certificate_id: UUID) -> Certificate | None: ...
    async def get_for(self, user_id: str, course_id: str) -> Certificate | None: ...


class InMemoryCertificateRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Certificate] = {}
        self._by_pair: dict[tuple[str, str], UUID] = {}

    async def add(self, certificate: Certificate) -> None:
        key = (certificate.user_id, certificate.course_id)
        if key in self._by_pair:
            raise ValueError("certificate already issued for this course")
        self._by_id[certificate.id] = certificate
        self._by_pair[key] = certificate.id

    async def get(self, certificate_id: UUID) -> Certificate | None:
        return self._by_id.get(certificate_id)

    async def get_for(self, user_id: str, course_id: str) -> Certificate | None:
        cert_id = self._by_pair.get((user_id, course_id))
        return self._by_id.get(cert_id) if cert_id is not None else None
