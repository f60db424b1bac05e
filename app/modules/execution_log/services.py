from decimal import Decimal
from sqlalchemy import func, select
from app.core.constants import ExecutionStatus
from app.core.logger import logger
from app.core.models import get_utc_now
from app.extensions import db
from app.modules.plan.models import ScheduledPlan
from .models import ExecutionLog


class ExecutionLogStore:
    """Append-only audit trail of execution attempts."""

    def __init__(self, session=None):
        self.session = session or db.session

    def create(
        self,
        plan_id,
        execution_date,
        status,
        message=None,
        duration_ms=None,
        run_id=None,
        amount=None,
        units=None,
        price=None,
        balance_before=None,
        balance_after=None,
    ):
        entry = ExecutionLog(
            plan_id=plan_id,
            run_id=run_id,
            execution_date=execution_date,
            status=status,
            message=message,
            amount=amount,
            units=units,
            price=price,
            balance_before=balance_before,
            balance_after=balance_after,
            duration_ms=duration_ms,
            executed_at=get_utc_now(),
        )
        self.session.add(entry)
        self.session.flush()
        logger.info(
            f"Execution log for plan {plan_id}: {status.value} on {execution_date} ({message})"
        )
        return entry

    def find_by_plan(self, plan_id):
        return (
            self.session.execute(
                select(ExecutionLog)
                .where(ExecutionLog.plan_id == plan_id)
                .order_by(ExecutionLog.executed_at.desc())
            )
            .scalars()
            .all()
        )

    def find_recent_failures(self, limit=50):
        """Most recent FAILED attempts joined with the plan they belong to."""
        return self.session.execute(
            select(ExecutionLog, ScheduledPlan)
            .join(ScheduledPlan, ExecutionLog.plan_id == ScheduledPlan.id)
            .where(ExecutionLog.status == ExecutionStatus.FAILED)
            .order_by(ExecutionLog.executed_at.desc())
            .limit(limit)
        ).all()

    def get_statistics(self, start_date, end_date):
        """Count, total amount and mean duration per outcome between two dates."""
        rows = self.session.execute(
            select(
                ExecutionLog.status,
                func.count(ExecutionLog.id),
                func.sum(ExecutionLog.amount),
                func.avg(ExecutionLog.duration_ms),
            )
            .where(ExecutionLog.execution_date.between(start_date, end_date))
            .group_by(ExecutionLog.status)
        ).all()

        stats = {
            status.value: {"count": 0, "total_amount": Decimal("0"), "avg_duration_ms": 0.0}
            for status in ExecutionStatus
        }
        for status, count, total_amount, avg_duration in rows:
            stats[status.value] = {
                "count": count,
                "total_amount": Decimal(str(total_amount or 0)),
                "avg_duration_ms": float(avg_duration or 0),
            }
        return stats
