# Overview: Explicit identity value passed into every workflow call.

from __future__ import annotations

from dataclasses import dataclass

from reportflow.permissions.roles import (
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_SUPER_ADMIN,
)


@dataclass(frozen=True)
class Actor:
    """
    Who is acting, and where they are assigned.

    Built once per request from the authenticated user (see
    session_service.actor_for_user). Location names are resolved through the
    hierarchy so scope can be matched by name or by id. A branch user carries
    the whole chain; a subdistrict admin carries subdistrict and city; a city
    admin carries only the city; a super admin carries nothing.
    """
    id: int
    role: str
    name: str = ""
    branch_id: int | None = None
    branch_name: str | None = None
    subdistrict_id: int | None = None
    subdistrict_name: str | None = None
    city_id: int | None = None
    city_name: str | None = None

    @property
    def is_branch_user(self) -> bool:
        return self.role == ROLE_BRANCH_USER

    @property
    def is_subdistrict_admin(self) -> bool:
        return self.role == ROLE_SUBDISTRICT_ADMIN

    @property
    def is_city_admin(self) -> bool:
        return self.role == ROLE_CITY_ADMIN

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "name": self.name,
            "branch_id": self.branch_id,
            "branch_name": self.branch_name,
            "subdistrict_id": self.subdistrict_id,
            "subdistrict_name": self.subdistrict_name,
            "city_id": self.city_id,
            "city_name": self.city_name,
        }
