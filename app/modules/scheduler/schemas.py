from marshmallow import fields, validate, validates_schema, ValidationError
from app.core.constants import (
    DEFAULT_FAILURES_LIMIT,
    ExecutionStatus,
    MAX_FAILURES_LIMIT,
    PlanType,
    RunStatus,
    RunTrigger,
)
from app.core.schemas import BaseSchema, PayloadSchema
from .models import SchedulerRun


class ExecuteRequestSchema(PayloadSchema):
    target_date = fields.Date(load_default=None)


class DueQuerySchema(PayloadSchema):
    date = fields.Date(load_default=None)


class FailuresQuerySchema(PayloadSchema):
    limit = fields.Integer(
        load_default=DEFAULT_FAILURES_LIMIT,
        validate=validate.Range(min=1, max=MAX_FAILURES_LIMIT),
    )


class StatisticsQuerySchema(PayloadSchema):
    start_date = fields.Date(load_default=None)
    end_date = fields.Date(load_default=None)

    @validates_schema
    def validate_range(self, data, **kwargs):
        start, end = data.get("start_date"), data.get("end_date")
        if start and end and start > end:
            raise ValidationError("startDate must not be after endDate", "startDate")


class ExecutionResultSchema(PayloadSchema):
    plan_id = fields.UUID()
    plan_type = fields.Enum(PlanType, by_value=True, allow_none=True)
    status = fields.Enum(ExecutionStatus, by_value=True)
    message = fields.String()
    duration_ms = fields.Integer()
    amount = fields.Decimal(as_string=True, allow_none=True)
    units = fields.Decimal(as_string=True, allow_none=True)
    price = fields.Decimal(as_string=True, allow_none=True)
    next_execution_date = fields.Date(allow_none=True)


class RunSummarySchema(PayloadSchema):
    run_id = fields.String()
    target_date = fields.Date()
    total_due = fields.Integer()
    executed = fields.Integer()
    failed = fields.Integer()
    skipped = fields.Integer()
    total_invested = fields.Decimal(as_string=True, places=2)
    total_withdrawn = fields.Decimal(as_string=True, places=2)
    duration_ms = fields.Integer()
    details = fields.List(fields.Nested(ExecutionResultSchema))


class SchedulerRunSchema(BaseSchema):
    class Meta(BaseSchema.Meta):
        model = SchedulerRun
        load_instance = False
        exclude = ("is_deleted", "updated_at")

    trigger = fields.Enum(RunTrigger, by_value=True)
    status = fields.Enum(RunStatus, by_value=True)
    total_invested = fields.Decimal(as_string=True, places=2)
    total_withdrawn = fields.Decimal(as_string=True, places=2)


class OutcomeStatisticsSchema(PayloadSchema):
    count = fields.Integer()
    total_amount = fields.Decimal(as_string=True, places=2)
    avg_duration_ms = fields.Float()
