from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated bearer JWT.

    Route handlers receive this from ``require_user`` and pass
    ``principal.user_id`` explicitly into every service call; services
    never look up "the current user" on their own.
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_admin(self) -> bool:
        return "admin" in self.roles
