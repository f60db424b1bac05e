from flask import Blueprint
from flask_restful import Api
from app.modules.scheduler.resources import (
    ExecuteResource,
    DuePlansResource,
    PlanLogsResource,
    FailuresResource,
    StatisticsResource,
    UnlockResource,
    RunsResource,
)

scheduler_bp = Blueprint("scheduler", __name__)
scheduler_api = Api(scheduler_bp)

scheduler_api.add_resource(ExecuteResource, "/execute", endpoint="execute")
scheduler_api.add_resource(DuePlansResource, "/due", endpoint="due")
scheduler_api.add_resource(PlanLogsResource, "/logs/<plan_id>", endpoint="plan-logs")
scheduler_api.add_resource(FailuresResource, "/failures", endpoint="failures")
scheduler_api.add_resource(StatisticsResource, "/statistics", endpoint="statistics")
scheduler_api.add_resource(UnlockResource, "/unlock/<plan_id>", endpoint="unlock")
scheduler_api.add_resource(RunsResource, "/runs", endpoint="runs")


def scheduler_routes(app):
    app.register_blueprint(scheduler_bp, url_prefix="/api/scheduler")
