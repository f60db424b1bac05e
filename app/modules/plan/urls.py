from flask import Blueprint
from flask_restful import Api
from app.modules.plan.resources import (
    PlanListResource,
    PlanResource,
    PlanCancelResource,
)

plan_bp = Blueprint("plans", __name__)
plan_api = Api(plan_bp)

plan_api.add_resource(PlanListResource, "/plans", endpoint="plans")
plan_api.add_resource(PlanResource, "/plans/<plan_id>", endpoint="plan")
plan_api.add_resource(PlanCancelResource, "/plans/<plan_id>/cancel", endpoint="plan-cancel")


def plans_routes(app):
    app.register_blueprint(plan_bp, url_prefix="/api")
