from app.core.constants import PlanStatus, PlanType, PLAN_STATUS_TRANSITIONS
from app.core.exceptions import InvalidStatusTransition
from app.core.models import BaseModel
from app.extensions import db


def transition_status(current, requested):
    """Return ``requested`` if the plan may move there from ``current``."""
    if requested not in PLAN_STATUS_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransition(current, requested)
    return requested


class ScheduledPlan(BaseModel):
    __tablename__ = "scheduled_plans"

    user_id = db.Column(db.UUID(as_uuid=True), nullable=False, index=True)
    plan_type = db.Column(db.Enum(PlanType), nullable=False)

    # Fund bought into (SIP, STP) or sold from (SWP)
    fund_id = db.Column(db.String(50), nullable=False)
    fund_name = db.Column(db.String(255), nullable=True)
    # STP only: fund sold from
    source_fund_id = db.Column(db.String(50), nullable=True)
    source_fund_name = db.Column(db.String(255), nullable=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    # Plain string: an unknown value must fail one plan, not the due-plan query
    frequency = db.Column(db.String(20), nullable=False)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)
    installments = db.Column(db.Integer, nullable=True)
    execution_count = db.Column(db.Integer, nullable=False, default=0)

    next_execution_date = db.Column(db.Date, nullable=True, index=True)
    last_execution_date = db.Column(db.Date, nullable=True)
    status = db.Column(
        db.Enum(PlanStatus), nullable=False, default=PlanStatus.PENDING, index=True
    )
    failure_reason = db.Column(db.Text, nullable=True)

    is_locked = db.Column(db.Boolean, nullable=False, default=False)
    locked_by = db.Column(db.String(64), nullable=True)
    locked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_scheduled_plans_amount_positive"),
        db.CheckConstraint(
            "execution_count >= 0", name="ck_scheduled_plans_execution_count"
        ),
        db.CheckConstraint(
            "status != 'CANCELLED' OR next_execution_date IS NULL",
            name="ck_scheduled_plans_cancelled_has_no_next_date",
        ),
    )

    def __str__(self):
        return (
            f"ScheduledPlan(id={self.id}, type={self.plan_type.value}, "
            f"amount={self.amount}, next={self.next_execution_date})"
        )
