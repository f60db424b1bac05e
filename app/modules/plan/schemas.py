from marshmallow import fields, validate, validates_schema, pre_load, post_load, ValidationError
from app.core.constants import MAX_AMOUNT, MIN_AMOUNT, Frequency, PlanStatus, PlanType
from app.core.schemas import BaseSchema
from .models import ScheduledPlan


class ScheduledPlanSchema(BaseSchema):
    """Schema for creating and retrieving scheduled plans"""

    class Meta(BaseSchema.Meta):
        model = ScheduledPlan
        fields = (
            "id",
            "user_id",
            "plan_type",
            "fund_id",
            "fund_name",
            "source_fund_id",
            "source_fund_name",
            "amount",
            "frequency",
            "start_date",
            "end_date",
            "installments",
            "execution_count",
            "next_execution_date",
            "last_execution_date",
            "status",
            "failure_reason",
            "is_locked",
            "created_at",
            "updated_at",
        )
        dump_only = (
            "id",
            "execution_count",
            "next_execution_date",
            "last_execution_date",
            "status",
            "failure_reason",
            "is_locked",
            "created_at",
            "updated_at",
        )

    user_id = fields.UUID(required=True)
    plan_type = fields.Enum(PlanType, by_value=True, required=True)
    fund_id = fields.String(required=True, validate=validate.Length(min=1, max=50))
    source_fund_id = fields.String(allow_none=True, validate=validate.Length(min=1, max=50))
    amount = fields.Decimal(
        as_string=True,
        required=True,
        places=2,
        validate=validate.Range(min=MIN_AMOUNT, max=MAX_AMOUNT, min_inclusive=False),
    )
    frequency = fields.String(
        required=True, validate=validate.OneOf([f.value for f in Frequency])
    )
    start_date = fields.Date(required=True)
    end_date = fields.Date(allow_none=True)
    installments = fields.Integer(allow_none=True, validate=validate.Range(min=1))
    status = fields.Enum(PlanStatus, by_value=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data.get("frequency"), str):
            data["frequency"] = data["frequency"].strip().upper()
        if isinstance(data.get("planType"), str):
            data["planType"] = data["planType"].strip().upper()
        return data

    @validates_schema
    def validate_plan(self, data, **kwargs):
        if data.get("plan_type") == PlanType.STP:
            source = data.get("source_fund_id")
            if not source:
                raise ValidationError("STP plans need a source fund", "sourceFundId")
            if source == data.get("fund_id"):
                raise ValidationError("Source and target fund must differ", "sourceFundId")
        elif data.get("source_fund_id"):
            raise ValidationError("Only STP plans have a source fund", "sourceFundId")

        start, end = data.get("start_date"), data.get("end_date")
        if start and end and end <= start:
            raise ValidationError("End date must be after the start date", "endDate")

    @post_load
    def schedule_first_installment(self, plan, **kwargs):
        # Receives the loaded dict or the model instance
        schedule = {"status": PlanStatus.PENDING, "execution_count": 0}
        if isinstance(plan, dict):
            plan.update(schedule, next_execution_date=plan.get("start_date"))
            return plan
        for name, value in schedule.items():
            setattr(plan, name, value)
        plan.next_execution_date = plan.start_date
        return plan
