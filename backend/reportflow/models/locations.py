from __future__ import annotations

from ..extensions import db
from reportflow.time_utils import to_utc_z


class City(db.Model):
    """
    Top of the location hierarchy.

    City admins are scoped to exactly one city. Every subdistrict (and so
    every branch and report) belongs to exactly one city.
    """
    __tablename__ = "cities"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<City id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Subdistrict(db.Model):
    """
    Subdistrict within a city.

    Subdistrict names are unique within a city, not globally.
    """
    __tablename__ = "subdistricts"
    __table_args__ = (
        db.UniqueConstraint("city_id", "name", name="uq_subdistricts_city_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    city = db.relationship("City", backref=db.backref("subdistricts", lazy=True))

    def __repr__(self) -> str:
        return f"<Subdistrict id={self.id} name={self.name!r} city_id={self.city_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "city_id": self.city_id,
            "city_name": self.city.name if self.city else None,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }


class Branch(db.Model):
    """Branch (sales outlet) within a subdistrict. Reports are filed per branch."""
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("subdistrict_id", "name", name="uq_branches_subdistrict_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    subdistrict_id = db.Column(db.Integer, db.ForeignKey("subdistricts.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    manager_name = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    subdistrict = db.relationship("Subdistrict", backref=db.backref("branches", lazy=True))

    def __repr__(self) -> str:
        return f"<Branch id={self.id} name={self.name!r} subdistrict_id={self.subdistrict_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "subdistrict_id": self.subdistrict_id,
            "subdistrict_name": self.subdistrict.name if self.subdistrict else None,
            "name": self.name,
            "manager_name": self.manager_name,
            "created_at": to_utc_z(self.created_at),
        }
