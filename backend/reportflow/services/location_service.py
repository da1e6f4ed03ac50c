# Overview: Location hierarchy lookups (branch -> subdistrict -> city) and seeding helpers.

"""
Location Hierarchy Service

WHY: A report carries three location references that must form one chain,
and admins are matched to reports through their assigned area.

The workflow treats the hierarchy as read-only. The create_* helpers exist
for CLI seeding and tests; master-data management lives elsewhere.
"""

from __future__ import annotations

from dataclasses import dataclass

from reportflow.extensions import db
from reportflow.errors import NotFound, ValidationError
from reportflow.models import Branch, City, Subdistrict
from reportflow.permissions.roles import (
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
)
from reportflow.services.concurrency import run_with_retry


@dataclass(frozen=True)
class LocationChain:
    """A branch together with the subdistrict and city it belongs to."""
    branch_id: int
    branch_name: str
    subdistrict_id: int
    subdistrict_name: str
    city_id: int
    city_name: str
    branch_manager: str | None = None

    def to_report_fields(self) -> dict:
        return {
            "branch_id": self.branch_id,
            "branch_name": self.branch_name,
            "subdistrict_id": self.subdistrict_id,
            "subdistrict_name": self.subdistrict_name,
            "city_id": self.city_id,
            "city_name": self.city_name,
        }


@dataclass(frozen=True)
class LocationAssignment:
    """The ids and display names an actor's scope is matched against."""
    branch_id: int | None = None
    branch_name: str | None = None
    subdistrict_id: int | None = None
    subdistrict_name: str | None = None
    city_id: int | None = None
    city_name: str | None = None


def load_location_chain(branch_id: int) -> LocationChain:
    """
    Resolve a branch to its full chain.

    Raises:
        NotFound: If the branch (or a parent) does not exist
    """
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFound(f"Branch {branch_id} not found", branch_id=branch_id)

    subdistrict = branch.subdistrict
    if subdistrict is None:
        raise NotFound(f"Subdistrict for branch {branch_id} not found", branch_id=branch_id)

    city = subdistrict.city
    if city is None:
        raise NotFound(f"City for subdistrict {subdistrict.id} not found", subdistrict_id=subdistrict.id)

    return LocationChain(
        branch_id=branch.id,
        branch_name=branch.name,
        subdistrict_id=subdistrict.id,
        subdistrict_name=subdistrict.name,
        city_id=city.id,
        city_name=city.name,
        branch_manager=branch.manager_name,
    )


def validate_location_triple(
    branch_id: int | None,
    subdistrict_id: int | None,
    city_id: int | None,
) -> LocationChain:
    """
    Check that branch belongs to subdistrict belongs to city.

    Raises:
        ValidationError: If an id is missing, the branch is unknown, or the
            supplied ids do not form one chain
    """
    missing = [
        name
        for name, value in (
            ("branch_id", branch_id),
            ("subdistrict_id", subdistrict_id),
            ("city_id", city_id),
        )
        if value is None
    ]
    if missing:
        raise ValidationError(
            f"Incomplete location, missing: {', '.join(missing)}",
            missing=missing,
        )

    try:
        chain = load_location_chain(branch_id)
    except NotFound as exc:
        raise ValidationError(exc.message, branch_id=branch_id) from exc

    if chain.subdistrict_id != subdistrict_id:
        raise ValidationError(
            f"Branch {branch_id} does not belong to subdistrict {subdistrict_id}",
            branch_id=branch_id,
            subdistrict_id=subdistrict_id,
        )

    if chain.city_id != city_id:
        raise ValidationError(
            f"Subdistrict {subdistrict_id} does not belong to city {city_id}",
            subdistrict_id=subdistrict_id,
            city_id=city_id,
        )

    return chain


def resolve_assignment(user) -> LocationAssignment:
    """
    Resolve a user's assigned area, including the levels above it.

    A user whose assignment is missing gets an empty assignment, which no
    scope check ever matches.
    """
    if user.role == ROLE_BRANCH_USER and user.branch_id is not None:
        try:
            chain = load_location_chain(user.branch_id)
        except NotFound:
            return LocationAssignment()
        return LocationAssignment(
            branch_id=chain.branch_id,
            branch_name=chain.branch_name,
            subdistrict_id=chain.subdistrict_id,
            subdistrict_name=chain.subdistrict_name,
            city_id=chain.city_id,
            city_name=chain.city_name,
        )

    if user.role == ROLE_SUBDISTRICT_ADMIN and user.subdistrict_id is not None:
        subdistrict = db.session.get(Subdistrict, user.subdistrict_id)
        if subdistrict is None:
            return LocationAssignment()
        return LocationAssignment(
            subdistrict_id=subdistrict.id,
            subdistrict_name=subdistrict.name,
            city_id=subdistrict.city_id,
            city_name=subdistrict.city.name if subdistrict.city else None,
        )

    if user.role == ROLE_CITY_ADMIN and user.city_id is not None:
        city = db.session.get(City, user.city_id)
        if city is None:
            return LocationAssignment()
        return LocationAssignment(city_id=city.id, city_name=city.name)

    return LocationAssignment()



def list_cities() -> list[City]:
    return db.session.query(City).order_by(City.name.asc()).all()


def list_subdistricts(city_id: int | None = None) -> list[Subdistrict]:
    query = db.session.query(Subdistrict)
    if city_id is not None:
        query = query.filter_by(city_id=city_id)
    return query.order_by(Subdistrict.name.asc()).all()


def list_branches(subdistrict_id: int | None = None) -> list[Branch]:
    query = db.session.query(Branch)
    if subdistrict_id is not None:
        query = query.filter_by(subdistrict_id=subdistrict_id)
    return query.order_by(Branch.name.asc()).all()


def create_city(name: str) -> City:
    def _op():
        if not name or not name.strip():
            raise ValidationError("City name is required")

        existing = db.session.query(City).filter_by(name=name.strip()).first()
        if existing:
            raise ValidationError(f"City '{name.strip()}' already exists")

        city = City(name=name.strip())
        db.session.add(city)
        db.session.commit()
        return city

    return run_with_retry(_op)


def create_subdistrict(name: str, city_id: int) -> Subdistrict:
    def _op():
        if not name or not name.strip():
            raise ValidationError("Subdistrict name is required")

        if db.session.get(City, city_id) is None:
            raise NotFound(f"City {city_id} not found", city_id=city_id)

        subdistrict = Subdistrict(name=name.strip(), city_id=city_id)
        db.session.add(subdistrict)
        db.session.commit()
        return subdistrict

    return run_with_retry(_op)


def create_branch(name: str, subdistrict_id: int, manager_name: str | None = None) -> Branch:
    def _op():
        if not name or not name.strip():
            raise ValidationError("Branch name is required")

        if db.session.get(Subdistrict, subdistrict_id) is None:
            raise NotFound(f"Subdistrict {subdistrict_id} not found", subdistrict_id=subdistrict_id)

        branch = Branch(name=name.strip(), subdistrict_id=subdistrict_id, manager_name=manager_name)
        db.session.add(branch)
        db.session.commit()
        return branch

    return run_with_retry(_op)
