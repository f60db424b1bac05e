from marshmallow import fields
from app.core.constants import ExecutionStatus, PlanType
from app.core.schemas import BaseSchema, PayloadSchema
from .models import ExecutionLog


class ExecutionLogSchema(BaseSchema):
    class Meta(BaseSchema.Meta):
        model = ExecutionLog
        include_fk = True
        load_instance = False
        fields = (
            "id",
            "plan_id",
            "run_id",
            "execution_date",
            "status",
            "message",
            "amount",
            "units",
            "price",
            "balance_before",
            "balance_after",
            "duration_ms",
            "executed_at",
        )

    status = fields.Enum(ExecutionStatus, by_value=True)
    amount = fields.Decimal(as_string=True)
    units = fields.Decimal(as_string=True)
    price = fields.Decimal(as_string=True)
    balance_before = fields.Decimal(as_string=True)
    balance_after = fields.Decimal(as_string=True)


class FailureSchema(PayloadSchema):
    """A failed attempt together with the plan it belongs to."""

    id = fields.UUID()
    plan_id = fields.UUID()
    user_id = fields.UUID()
    plan_type = fields.Enum(PlanType, by_value=True)
    fund_id = fields.String()
    fund_name = fields.String(allow_none=True)
    amount = fields.Decimal(as_string=True, allow_none=True)
    execution_date = fields.Date()
    message = fields.String(allow_none=True)
    executed_at = fields.DateTime()

    def dump_rows(self, rows):
        return self.dump(
            [
                {
                    "id": log.id,
                    "plan_id": log.plan_id,
                    "user_id": plan.user_id,
                    "plan_type": plan.plan_type,
                    "fund_id": plan.fund_id,
                    "fund_name": plan.fund_name,
                    "amount": log.amount,
                    "execution_date": log.execution_date,
                    "message": log.message,
                    "executed_at": log.executed_at,
                }
                for log, plan in rows
            ],
            many=True,
        )
