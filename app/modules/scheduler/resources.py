from datetime import timedelta
from flask import current_app, request
from flask_restful import Resource
from app.core.constants import DEFAULT_STALE_LOCK_MINUTES, DEFAULT_STATISTICS_DAYS, RunTrigger
from app.core.decorators import handle_errors, validate_json_request
from app.core.exceptions import SchedulerError
from app.core.logger import logger
from app.core.responses import success_response
from app.extensions import db, limiter
from app.modules.execution_log.schemas import ExecutionLogSchema, FailureSchema
from app.modules.execution_log.services import ExecutionLogStore
from app.modules.plan.schemas import ScheduledPlanSchema
from app.modules.plan.services import PlanStore
from .schemas import (
    DueQuerySchema,
    ExecuteRequestSchema,
    FailuresQuerySchema,
    OutcomeStatisticsSchema,
    RunSummarySchema,
    SchedulerRunSchema,
    StatisticsQuerySchema,
)
from .services import SchedulerRunStore, build_scheduler_service, today_utc


def manual_trigger_limit():
    return current_app.config.get("MANUAL_TRIGGER_RATE_LIMIT", "5 per minute")


class ExecuteResource(Resource):
    """Manual trigger of a scheduler run."""

    decorators = [limiter.limit(manual_trigger_limit)]
    method_decorators = [handle_errors, validate_json_request]

    def post(self):
        payload = ExecuteRequestSchema().load(request.get_json(silent=True) or {})
        target_date = payload["target_date"]
        logger.info(f"Manual scheduler run requested for {target_date or 'today'}")

        summary = build_scheduler_service().execute_due_plans(
            target_date, trigger=RunTrigger.MANUAL
        )
        return success_response(
            RunSummarySchema().dump(summary),
            message=(
                f"Processed {summary.total_due} plan(s): {summary.executed} executed, "
                f"{summary.failed} failed, {summary.skipped} skipped"
            ),
        )


class DuePlansResource(Resource):
    method_decorators = [handle_errors]

    def get(self):
        query = DueQuerySchema().load(request.args)
        target_date = query["date"] or today_utc()
        plans = PlanStore().find_due_plans(target_date)
        return success_response(
            ScheduledPlanSchema(many=True).dump(plans),
            count=len(plans),
            date=target_date.isoformat(),
        )


class PlanLogsResource(Resource):
    method_decorators = [handle_errors]

    def get(self, plan_id):
        PlanStore().get(plan_id)
        logs = ExecutionLogStore().find_by_plan(plan_id)
        return success_response(ExecutionLogSchema(many=True).dump(logs), count=len(logs))


class FailuresResource(Resource):
    method_decorators = [handle_errors]

    def get(self):
        query = FailuresQuerySchema().load(request.args)
        rows = ExecutionLogStore().find_recent_failures(query["limit"])
        return success_response(FailureSchema().dump_rows(rows), count=len(rows))


class StatisticsResource(Resource):
    method_decorators = [handle_errors]

    def get(self):
        query = StatisticsQuerySchema().load(request.args)
        end_date = query["end_date"] or today_utc()
        start_date = query["start_date"] or end_date - timedelta(days=DEFAULT_STATISTICS_DAYS)

        stats = ExecutionLogStore().get_statistics(start_date, end_date)
        schema = OutcomeStatisticsSchema()
        return success_response(
            {status: schema.dump(bucket) for status, bucket in stats.items()},
            period={"startDate": start_date.isoformat(), "endDate": end_date.isoformat()},
        )


class UnlockResource(Resource):
    """
    Operator escape hatch for a lock left behind by a crashed run.

    Only locks older than SCHEDULER_STALE_LOCK_MINUTES are released; a
    younger lock may belong to a run still in flight and is refused with 409.
    """

    method_decorators = [handle_errors]

    def post(self, plan_id):
        store = PlanStore()
        plan = store.get(plan_id)
        stale_after = timedelta(
            minutes=current_app.config.get(
                "SCHEDULER_STALE_LOCK_MINUTES", DEFAULT_STALE_LOCK_MINUTES
            )
        )
        unlocked = store.unlock(plan_id, older_than=stale_after)
        if plan.is_locked and not unlocked:
            raise SchedulerError(
                f"Plan {plan_id} was locked less than {stale_after} ago and may still be executing"
            )
        db.session.commit()
        logger.warning(f"Plan {plan_id} unlocked manually")
        return success_response({"planId": str(plan_id), "unlocked": unlocked})


class RunsResource(Resource):
    method_decorators = [handle_errors]

    def get(self):
        limit = min(max(request.args.get("limit", 20, type=int), 1), 100)
        runs = SchedulerRunStore().recent(limit)
        return success_response(SchedulerRunSchema(many=True).dump(runs), count=len(runs))
