from __future__ import annotations

import hashlib
from dataclasses import dataclass
from uuid import UUID, uuid4


def verification_hash(
    certificate_id: UUID, user_id: str, course_id: str, issued_at: int
) -> str:
    data = f"{certificate_id}-{user_id}-{course_id}-{issued_at}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class Certificate:
    id: UUID
    user_id: str
    course_id: str
    issued_at: int
    score: int
    verification_hash: str
    status: str = "issued"  # issued|revoked

    @staticmethod
    def new(*, user_id: str, course_id: str, issued_at: int, score: int) -> Certificate:
        cert_id = uuid4()
        return Certificate(
            id=cert_id,
            user_id=user_id,
            course_id=course_id,
            issued_at=issued_at,
            score=score,
            verification_hash=verification_hash(cert_id, user_id, course_id, issued_at),
        )
