from datetime import timedelta
from sqlalchemy import select, update
from app.core.constants import PlanStatus
from app.core.exceptions import PlanNotFound, SchedulerError
from app.core.models import get_utc_now
from app.extensions import db
from .models import ScheduledPlan, transition_status

# Sentinel for "leave this column as it is"
UNCHANGED = object()


class PlanStore:
    """
    Scheduled plans: due-date queries, scheduling state and the execution lock.

    The lock is a pair of columns flipped by single conditional UPDATE
    statements, so acquiring it never races a separate check. Nothing here
    commits; the caller owns the transaction boundary.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, plan_id):
        plan = self.session.get(ScheduledPlan, plan_id)
        if plan is None or plan.is_deleted:
            raise PlanNotFound(plan_id)
        return plan

    def find_due_plans(self, target_date):
        return (
            self.session.execute(
                select(ScheduledPlan)
                .where(
                    ScheduledPlan.status == PlanStatus.PENDING,
                    ScheduledPlan.next_execution_date.is_not(None),
                    ScheduledPlan.next_execution_date <= target_date,
                    ScheduledPlan.is_deleted == False,
                )
                .order_by(ScheduledPlan.next_execution_date, ScheduledPlan.created_at)
            )
            .scalars()
            .all()
        )

    def release_stale_locks(self, older_than=timedelta(minutes=30)):
        """Clear locks taken more than ``older_than`` ago; returns the count."""
        cutoff = get_utc_now() - older_than
        result = self.session.execute(
            update(ScheduledPlan)
            .where(ScheduledPlan.is_locked == True, ScheduledPlan.locked_at < cutoff)
            .values(is_locked=False, locked_by=None, locked_at=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def lock_for_execution(self, plan_id, holder):
        """Take the execution lock; False if someone else already holds it."""
        result = self.session.execute(
            update(ScheduledPlan)
            .where(ScheduledPlan.id == plan_id, ScheduledPlan.is_locked == False)
            .values(is_locked=True, locked_by=holder, locked_at=get_utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def unlock(self, plan_id, holder=None, older_than=None):
        """
        Release the lock.

        With ``holder`` only that holder's lock is released; with
        ``older_than`` only a lock taken longer ago than that.
        """
        stmt = update(ScheduledPlan).where(ScheduledPlan.id == plan_id)
        if holder is not None:
            stmt = stmt.where(ScheduledPlan.locked_by == holder)
        if older_than is not None:
            stmt = stmt.where(ScheduledPlan.locked_at < get_utc_now() - older_than)
        result = self.session.execute(
            stmt.values(is_locked=False, locked_by=None, locked_at=None).execution_options(
                synchronize_session=False
            )
        )
        return result.rowcount == 1

    def update_execution_status(
        self,
        plan_id,
        status,
        next_execution_date=UNCHANGED,
        last_execution_date=UNCHANGED,
        execution_count=UNCHANGED,
        failure_reason=UNCHANGED,
    ):
        """
        Persist new scheduling state for a plan.

        The status change goes through ``transition_status``; cancelling
        always clears ``next_execution_date`` and a PENDING plan must keep one.
        """
        plan = self.get(plan_id)
        plan.status = transition_status(plan.status, status)

        if status == PlanStatus.CANCELLED:
            plan.next_execution_date = None
        elif next_execution_date is not UNCHANGED:
            if next_execution_date is None:
                raise ValueError("A pending plan needs a next execution date")
            plan.next_execution_date = next_execution_date

        if last_execution_date is not UNCHANGED:
            plan.last_execution_date = last_execution_date
        if execution_count is not UNCHANGED:
            plan.execution_count = execution_count
        if failure_reason is not UNCHANGED:
            plan.failure_reason = failure_reason

        self.session.flush()
        return plan

    def cancel(self, plan_id, reason=None):
        """Cancel a plan on behalf of its owner; refused while it is executing."""
        plan = self.get(plan_id)
        if plan.is_locked:
            raise SchedulerError(f"Plan {plan_id} is executing, try again shortly")
        return self.update_execution_status(
            plan_id, PlanStatus.CANCELLED, failure_reason=reason
        )
