from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity taken from a validated bearer token.

    user_id is the token subject.  The only authorization distinction the
    service makes is owner vs admin: a learner acts on their own records,
    an admin (or a caregiver account granted the admin role) on anyone's.
    """

    user_id: str
    roles: frozenset[str]

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def is_admin(self) -> bool:
        return self.has_role("admin")

    def can_act_for(self, user_id: str) -> bool:
        return self.user_id == user_id or self.is_admin()
