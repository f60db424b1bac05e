from decimal import Decimal
from app.core.constants import RunStatus, RunTrigger
from app.core.models import BaseModel
from app.extensions import db


class SchedulerRun(BaseModel):
    """One orchestrator run; ``run_id`` is also the lock holder it uses."""

    __tablename__ = "scheduler_runs"

    run_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    trigger = db.Column(db.Enum(RunTrigger), nullable=False)
    target_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.Enum(RunStatus), nullable=False, default=RunStatus.RUNNING)
    total_due = db.Column(db.Integer, nullable=False, default=0)
    executed = db.Column(db.Integer, nullable=False, default=0)
    failed = db.Column(db.Integer, nullable=False, default=0)
    skipped = db.Column(db.Integer, nullable=False, default=0)
    total_invested = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_withdrawn = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    duration_ms = db.Column(db.Integer, nullable=True)
    error = db.Column(db.Text, nullable=True)
    finished_at = db.Column(db.DateTime(timezone=True), nullable=True)
