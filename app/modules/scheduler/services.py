import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from flask import current_app
from sqlalchemy import select

from app.core.constants import (
    ALREADY_LOCKED_MESSAGE,
    DEFAULT_STALE_LOCK_MINUTES,
    EXECUTED_MESSAGE,
    ExecutionStatus,
    PlanStatus,
    PlanType,
    RunStatus,
    RunTrigger,
)
from app.core.exceptions import SchedulerError, UnsupportedFrequency
from app.core.logger import logger
from app.core.models import get_utc_now
from app.extensions import db
from app.modules.account.services import AccountStore
from app.modules.execution_log.services import ExecutionLogStore
from app.modules.fund.services import build_price_lookup
from app.modules.holding.services import HoldingStore
from app.modules.notification.services import PlanNotifier
from app.modules.plan.services import PlanStore
from .dates import next_execution_date
from .models import SchedulerRun
from .stop_conditions import check_stop_conditions
from .strategies import build_strategies


def today_utc():
    return datetime.now(timezone.utc).date()


def _elapsed_ms(started):
    return int((time.monotonic() - started) * 1000)


@dataclass
class ExecutionResult:
    plan_id: object
    status: ExecutionStatus
    message: str
    duration_ms: int = 0
    plan_type: Optional[PlanType] = None
    amount: Optional[Decimal] = None
    units: Optional[Decimal] = None
    price: Optional[Decimal] = None
    next_execution_date: Optional[date] = None


def _failed_result(plan_id, message, started):
    return ExecutionResult(
        plan_id=plan_id,
        status=ExecutionStatus.FAILED,
        message=message,
        duration_ms=_elapsed_ms(started),
    )


@dataclass
class RunSummary:
    target_date: date
    run_id: Optional[str] = None
    total_due: int = 0
    executed: int = 0
    failed: int = 0
    skipped: int = 0
    details: List[ExecutionResult] = field(default_factory=list)
    duration_ms: int = 0
    total_invested: Decimal = Decimal("0.00")
    total_withdrawn: Decimal = Decimal("0.00")

    def record(self, result):
        self.details.append(result)
        if result.status == ExecutionStatus.SUCCESS:
            self.executed += 1
            if result.plan_type == PlanType.SIP:
                self.total_invested += result.amount or 0
            elif result.plan_type == PlanType.SWP:
                self.total_withdrawn += result.amount or 0
        elif result.status == ExecutionStatus.FAILED:
            self.failed += 1
        else:
            self.skipped += 1


class SchedulerRunStore:
    """Run history for the operations dashboard."""

    def __init__(self, session=None):
        self.session = session or db.session

    def start(self, run_id, trigger, target_date):
        run = SchedulerRun(
            run_id=run_id, trigger=trigger, target_date=target_date, status=RunStatus.RUNNING
        )
        self.session.add(run)
        self.session.commit()
        return run

    def finish(self, run_id, summary):
        run = self._get(run_id)
        run.status = RunStatus.SUCCESS
        run.total_due = summary.total_due
        run.executed = summary.executed
        run.failed = summary.failed
        run.skipped = summary.skipped
        run.total_invested = summary.total_invested
        run.total_withdrawn = summary.total_withdrawn
        run.duration_ms = summary.duration_ms
        run.finished_at = get_utc_now()
        self.session.commit()
        return run

    def fail(self, run_id, error, duration_ms):
        run = self._get(run_id)
        run.status = RunStatus.FAILED
        run.error = str(error)
        run.duration_ms = duration_ms
        run.finished_at = get_utc_now()
        self.session.commit()
        return run

    def recent(self, limit=20):
        return (
            self.session.execute(
                select(SchedulerRun).order_by(SchedulerRun.created_at.desc()).limit(limit)
            )
            .scalars()
            .all()
        )

    def _get(self, run_id):
        return self.session.execute(
            select(SchedulerRun).where(SchedulerRun.run_id == run_id)
        ).scalar_one()


class SchedulerService:
    """
    Executes due SIP/SWP/STP installments.

    Every collaborator is injected: the plan, account, holding and execution
    log stores, the price lookup and the session that owns the transaction
    boundary. ``execute_one`` commits each installment as a single database
    transaction, so a failing leg rolls back every ledger change of that
    installment.
    """

    def __init__(
        self,
        plan_store,
        account_store,
        holding_store,
        price_lookup,
        log_store,
        session,
        notifier=None,
        run_store=None,
        strategies=None,
        stale_lock_after=timedelta(minutes=DEFAULT_STALE_LOCK_MINUTES),
        max_workers=1,
        worker_context=None,
        clock=today_utc,
    ):
        self.plans = plan_store
        self.accounts = account_store
        self.holdings = holding_store
        self.prices = price_lookup
        self.logs = log_store
        self.session = session
        self.notifier = notifier
        self.runs = run_store
        self.strategies = strategies or build_strategies(account_store, holding_store, price_lookup)
        self.stale_lock_after = stale_lock_after
        self.max_workers = max(1, int(max_workers))
        self.worker_context = worker_context or nullcontext
        self.clock = clock

    def execute_due_plans(self, target_date=None, trigger=RunTrigger.MANUAL):
        started = time.monotonic()
        target_date = target_date or self.clock()
        run_id = uuid.uuid4().hex
        logger.info(f"Scheduler run {run_id} ({trigger.value}) starting for {target_date}")

        if self.runs is not None:
            self.runs.start(run_id, trigger, target_date)

        try:
            released = self.plans.release_stale_locks(self.stale_lock_after)
            self.session.commit()
            if released:
                logger.warning(f"Scheduler run {run_id} reclaimed {released} stale lock(s)")

            due_plans = self.plans.find_due_plans(target_date)
            summary = RunSummary(target_date=target_date, run_id=run_id, total_due=len(due_plans))

            if not due_plans:
                logger.info(f"No due plans for {target_date}")
            else:
                logger.info(f"Found {len(due_plans)} due plan(s) for {target_date}")
                for result in self._execute_all(due_plans, target_date, run_id):
                    summary.record(result)

            summary.duration_ms = _elapsed_ms(started)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Scheduler run {run_id} failed: {str(e)}", exc_info=True)
            if self.runs is not None:
                self.runs.fail(run_id, e, _elapsed_ms(started))
            raise

        if self.runs is not None:
            self.runs.finish(run_id, summary)

        logger.info(
            f"Scheduler run {run_id} complete: executed={summary.executed} "
            f"failed={summary.failed} skipped={summary.skipped} "
            f"invested={summary.total_invested} withdrawn={summary.total_withdrawn} "
            f"in {summary.duration_ms}ms"
        )
        return summary

    def _execute_all(self, plans, target_date, run_id):
        # Ids are read before the first commit expires the loaded plans
        plan_ids = [plan.id for plan in plans]

        if self.max_workers == 1 or len(plans) == 1:
            for plan_id, plan in zip(plan_ids, plans):
                started = time.monotonic()
                try:
                    result = self.execute_one(plan, target_date, run_id)
                except Exception as e:
                    self.session.rollback()
                    result = self._abandoned(plan_id, started, e)
                yield result
            return

        submitted = time.monotonic()
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(self._execute_in_worker, plan_id, target_date, run_id): plan_id
                for plan_id in plan_ids
            }
            for future in as_completed(futures):
                try:
                    result = future.result()
                except Exception as e:
                    result = self._abandoned(futures[future], submitted, e)
                yield result

    def _execute_in_worker(self, plan_id, target_date, run_id):
        # Each worker gets its own context, and with it its own session
        with self.worker_context():
            plan = self.plans.get(plan_id)
            return self.execute_one(plan, target_date, run_id)

    def _abandoned(self, plan_id, started, error):
        """FAILED result for a plan whose attempt never reached its own error handling."""
        logger.error(f"Plan {plan_id} could not be executed: {str(error)}", exc_info=error)
        return _failed_result(plan_id, str(error), started)

    def execute_one(self, plan, target_date, run_id=None):
        """Execute a single installment of ``plan`` due on ``target_date``."""
        started = time.monotonic()
        run_id = run_id or uuid.uuid4().hex
        plan_id = plan.id

        try:
            locked = self.plans.lock_for_execution(plan_id, run_id)
            if not locked:
                logger.info(f"Plan {plan_id} is already locked by another execution, skipping")
                skipped = self._record(
                    plan, target_date, ExecutionStatus.SKIPPED, ALREADY_LOCKED_MESSAGE,
                    started, run_id,
                )
            self.session.commit()
        except Exception as e:
            # The session cannot take a log row now; the lock, if taken, is rolled back
            self.session.rollback()
            logger.error(f"Could not lock plan {plan_id}: {str(e)}", exc_info=True)
            return _failed_result(plan_id, str(e), started)

        if not locked:
            return skipped

        try:
            result = self._execute_locked(plan, target_date, run_id, started)
        finally:
            self._release(plan_id, run_id)

        self._notify(plan, result)
        return result

    def _execute_locked(self, plan, target_date, run_id, started):
        plan_id = plan.id
        try:
            self.session.refresh(plan)

            # Another run may have executed this installment before we got the lock
            if (
                plan.status != PlanStatus.PENDING
                or plan.next_execution_date is None
                or plan.next_execution_date > target_date
            ):
                result = self._record(
                    plan, target_date, ExecutionStatus.SKIPPED,
                    "Not due anymore", started, run_id,
                )
                self.session.commit()
                return result

            decision = check_stop_conditions(plan, target_date)
            if decision.should_stop:
                logger.info(f"Plan {plan_id} reached stop condition: {decision.reason}")
                self.plans.update_execution_status(
                    plan_id, PlanStatus.CANCELLED, failure_reason=decision.reason
                )
                result = self._record(
                    plan, target_date, ExecutionStatus.SKIPPED, decision.reason, started, run_id
                )
                self.session.commit()
                return result

            # Computed before any ledger change so bad cadence data never mutates ledgers
            next_date = next_execution_date(target_date, plan.frequency)
            strategy = self.strategies[plan.plan_type]
            outcome = strategy.execute(plan)

            self.plans.update_execution_status(
                plan_id,
                PlanStatus.PENDING,
                next_execution_date=next_date,
                last_execution_date=target_date,
                execution_count=plan.execution_count + 1,
                failure_reason=None,
            )
            result = self._record(
                plan, target_date, ExecutionStatus.SUCCESS, EXECUTED_MESSAGE, started, run_id,
                outcome=outcome, next_date=next_date,
            )
            self.session.commit()
            logger.info(f"Plan {plan_id} executed successfully. Next execution: {next_date}")
            return result

        except UnsupportedFrequency as e:
            self.session.rollback()
            logger.error(f"Plan {plan_id} has corrupted scheduling data: {e.message}", exc_info=True)
            return self._record_failure(plan, target_date, e.message, started, run_id)
        except SchedulerError as e:
            self.session.rollback()
            logger.warning(f"Plan {plan_id} failed: {e.message}")
            return self._record_failure(plan, target_date, e.message, started, run_id)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Unexpected error executing plan {plan_id}: {str(e)}", exc_info=True)
            return self._record_failure(plan, target_date, str(e), started, run_id)

    def _record_failure(self, plan, target_date, message, started, run_id):
        """Keep the schedule where it is, remember why, and log FAILED."""
        try:
            self.plans.update_execution_status(plan.id, PlanStatus.PENDING, failure_reason=message)
            result = self._record(plan, target_date, ExecutionStatus.FAILED, message, started, run_id)
            self.session.commit()
            return result
        except Exception as e:
            self.session.rollback()
            logger.error(f"Could not record failure of plan {plan.id}: {str(e)}", exc_info=True)
            return ExecutionResult(
                plan_id=plan.id,
                status=ExecutionStatus.FAILED,
                message=message,
                duration_ms=_elapsed_ms(started),
                plan_type=plan.plan_type,
                amount=plan.amount,
            )

    def _record(self, plan, target_date, status, message, started, run_id, outcome=None, next_date=None):
        duration_ms = _elapsed_ms(started)
        self.logs.create(
            plan_id=plan.id,
            execution_date=target_date,
            status=status,
            message=message,
            duration_ms=duration_ms,
            run_id=run_id,
            amount=plan.amount,
            units=outcome.units if outcome else None,
            price=outcome.price if outcome else None,
            balance_before=outcome.balance_before if outcome else None,
            balance_after=outcome.balance_after if outcome else None,
        )
        return ExecutionResult(
            plan_id=plan.id,
            status=status,
            message=message,
            duration_ms=duration_ms,
            plan_type=plan.plan_type,
            amount=outcome.amount if outcome else plan.amount,
            units=outcome.units if outcome else None,
            price=outcome.price if outcome else None,
            next_execution_date=next_date,
        )

    def _release(self, plan_id, run_id):
        try:
            self.plans.unlock(plan_id, holder=run_id)
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            # The stale-lock sweep of a later run reclaims it
            logger.error(f"Failed to unlock plan {plan_id}: {str(e)}", exc_info=True)

    def _notify(self, plan, result):
        if self.notifier is None or result.status == ExecutionStatus.SKIPPED:
            return
        try:
            if result.status == ExecutionStatus.SUCCESS:
                self.notifier.notify_success(plan, result.next_execution_date)
            else:
                self.notifier.notify_failure(plan, result.message)
        except Exception as e:
            logger.error(f"Notification for plan {plan.id} failed: {str(e)}")


def build_scheduler_service(config=None, session=None):
    """Wire the service with the SQLAlchemy stores of the current app."""
    app = current_app._get_current_object()
    config = config or app.config
    session = session or db.session

    account_store = AccountStore(session)
    holding_store = HoldingStore(session)
    return SchedulerService(
        plan_store=PlanStore(session),
        account_store=account_store,
        holding_store=holding_store,
        price_lookup=build_price_lookup(config, session),
        log_store=ExecutionLogStore(session),
        session=session,
        notifier=PlanNotifier(session),
        run_store=SchedulerRunStore(session),
        stale_lock_after=timedelta(
            minutes=int(config.get("SCHEDULER_STALE_LOCK_MINUTES", DEFAULT_STALE_LOCK_MINUTES))
        ),
        max_workers=int(config.get("SCHEDULER_MAX_WORKERS", 1)),
        worker_context=app.app_context,
    )
