from __future__ import annotations

from ..extensions import db
from reportflow.time_utils import to_utc_z


REPORT_STATUS_DRAFT = "draft"
REPORT_STATUS_PENDING_SUBDISTRICT = "pending_subdistrict"
REPORT_STATUS_PENDING_CITY = "pending_city"
REPORT_STATUS_APPROVED = "approved"
REPORT_STATUS_REJECTED = "rejected"

REPORT_STATUSES = frozenset({
    REPORT_STATUS_DRAFT,
    REPORT_STATUS_PENDING_SUBDISTRICT,
    REPORT_STATUS_PENDING_CITY,
    REPORT_STATUS_APPROVED,
    REPORT_STATUS_REJECTED,
})

# At most one report per creator may be awaiting review at any level.
# Partial indexes exist only on SQLite and PostgreSQL; create_app refuses other backends.
_IN_FLIGHT_PREDICATE = "status IN ('pending_subdistrict', 'pending_city')"


class Report(db.Model):
    """
    Periodic sales report filed by a branch user.

    LIFECYCLE:
        draft / rejected --submit--> pending_subdistrict --advance--> pending_city
        pending_city --finalize--> approved
        pending_city --reject--> rejected

    DESIGN:
    - Location ids plus denormalized display names, copied from the hierarchy
    - rejection_reason is non-null iff status == "rejected"
    - product_info / expense_info / income_info are opaque to the workflow;
      they only have to be present before submission
    - Status writes are compare-and-swap on the observed status
    """
    __tablename__ = "reports"
    __table_args__ = (
        db.Index("ix_reports_subdistrict_status", "subdistrict_id", "status"),
        db.Index("ix_reports_city_status", "city_id", "status"),
        db.Index("ix_reports_creator_status", "created_by_user_id", "status"),
        db.Index(
            "uq_reports_one_in_flight_per_creator",
            "created_by_user_id",
            unique=True,
            sqlite_where=db.text(_IN_FLIGHT_PREDICATE),
            postgresql_where=db.text(_IN_FLIGHT_PREDICATE),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    title = db.Column(db.String(255), nullable=True)
    content = db.Column(db.Text, nullable=True)
    report_date = db.Column(db.Date, nullable=True, index=True)

    status = db.Column(db.String(32), nullable=False, default=REPORT_STATUS_DRAFT, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    branch_name = db.Column(db.String(120), nullable=False)
    subdistrict_id = db.Column(db.Integer, db.ForeignKey("subdistricts.id"), nullable=False)
    subdistrict_name = db.Column(db.String(120), nullable=False)
    city_id = db.Column(db.Integer, db.ForeignKey("cities.id"), nullable=False)
    city_name = db.Column(db.String(120), nullable=False)
    branch_manager = db.Column(db.String(120), nullable=True)

    # Opaque financial sections
    total_sales = db.Column(db.Numeric(14, 2), nullable=True)
    product_info = db.Column(db.JSON, nullable=True)
    expense_info = db.Column(db.JSON, nullable=True)
    income_info = db.Column(db.JSON, nullable=True)

    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    advanced_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Reviewer attribution
    advanced_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejected_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Bumped on every guarded write
    version_id = db.Column(db.Integer, nullable=False, default=1)

    creator = db.relationship("User", foreign_keys=[created_by_user_id], backref=db.backref("reports", lazy=True))
    comments = db.relationship(
        "ReportComment",
        back_populates="report",
        order_by="ReportComment.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def __repr__(self) -> str:
        return f"<Report id={self.id} status={self.status} branch_id={self.branch_id}>"

    def to_dict(self, *, include_comments: bool = True) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "report_date": self.report_date.isoformat() if self.report_date else None,
            "status": self.status,
            "created_by_user_id": self.created_by_user_id,
            "branch_id": self.branch_id,
            "branch_name": self.branch_name,
            "subdistrict_id": self.subdistrict_id,
            "subdistrict_name": self.subdistrict_name,
            "city_id": self.city_id,
            "city_name": self.city_name,
            "branch_manager": self.branch_manager,
            "total_sales": float(self.total_sales) if self.total_sales is not None else None,
            "product_info": self.product_info,
            "expense_info": self.expense_info,
            "income_info": self.income_info,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "submitted_at": to_utc_z(self.submitted_at),
            "advanced_at": to_utc_z(self.advanced_at),
            "approved_at": to_utc_z(self.approved_at),
            "rejected_at": to_utc_z(self.rejected_at),
            "advanced_by_user_id": self.advanced_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "rejected_by_user_id": self.rejected_by_user_id,
            "version_id": self.version_id,
        }
        if include_comments:
            data["comments"] = [comment.to_dict() for comment in self.comments]
        return data


class ReportComment(db.Model):
    """
    Comment on a report.

    IMMUTABLE: Append-only. There is no edit or delete path; comments only
    disappear together with their (draft or rejected) report.
    """
    __tablename__ = "report_comments"
    __table_args__ = (
        db.Index("ix_report_comments_report", "report_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey("reports.id"), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(120), nullable=False)
    text = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    report = db.relationship("Report", back_populates="comments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "report_id": self.report_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "text": self.text,
            "created_at": to_utc_z(self.created_at),
        }
