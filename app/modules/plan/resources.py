from flask import request
from flask_restful import Resource
from app.core.decorators import handle_errors, validate_json_request
from app.core.logger import logger
from app.core.responses import success_response
from app.extensions import db
from .schemas import ScheduledPlanSchema
from .services import PlanStore


class PlanListResource(Resource):
    method_decorators = [handle_errors, validate_json_request]

    def __init__(self):
        self.schema = ScheduledPlanSchema()

    def post(self):
        """Create a scheduled plan; its first installment is due on the start date"""
        plan = self.schema.load(request.get_json() or {})
        db.session.add(plan)
        db.session.commit()
        logger.info(
            f"Scheduled plan {plan.id} created: {plan.plan_type.value} {plan.amount} "
            f"{plan.frequency} from {plan.start_date}"
        )
        return success_response(self.schema.dump(plan), 201)


class PlanResource(Resource):
    method_decorators = [handle_errors]

    def __init__(self):
        self.schema = ScheduledPlanSchema()

    def get(self, plan_id):
        plan = PlanStore().get(plan_id)
        return success_response(self.schema.dump(plan))


class PlanCancelResource(Resource):
    method_decorators = [handle_errors]

    def __init__(self):
        self.schema = ScheduledPlanSchema()

    def post(self, plan_id):
        store = PlanStore()
        store.cancel(plan_id, reason="Cancelled by user")
        db.session.commit()
        plan = store.get(plan_id)
        logger.info(f"Scheduled plan {plan_id} cancelled by user")
        return success_response(self.schema.dump(plan))
