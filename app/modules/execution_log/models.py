from app.core.constants import ExecutionStatus
from app.core.models import AppendOnlyModel, get_utc_now
from app.extensions import db


class ExecutionLog(AppendOnlyModel):
    """One row per execution attempt of a scheduled plan, whatever the outcome."""

    __tablename__ = "execution_logs"

    plan_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey("scheduled_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    run_id = db.Column(db.String(64), nullable=True, index=True)
    execution_date = db.Column(db.Date, nullable=False, index=True)
    status = db.Column(db.Enum(ExecutionStatus), nullable=False, index=True)
    message = db.Column(db.Text, nullable=True)
    amount = db.Column(db.Numeric(14, 2), nullable=True)
    units = db.Column(db.Numeric(20, 6), nullable=True)
    price = db.Column(db.Numeric(14, 4), nullable=True)
    balance_before = db.Column(db.Numeric(14, 2), nullable=True)
    balance_after = db.Column(db.Numeric(14, 2), nullable=True)
    duration_ms = db.Column(db.Integer, nullable=True)
    executed_at = db.Column(db.DateTime(timezone=True), nullable=False, default=get_utc_now)

    plan = db.relationship(
        "ScheduledPlan",
        backref=db.backref("execution_logs", lazy="dynamic", cascade="all, delete"),
    )
