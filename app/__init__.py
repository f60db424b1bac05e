from flask import Flask, request, jsonify
from uuid import UUID
from app.extensions import db, migrate, ma, init_limiter
from app.celery_app import make_celery
from app.core.logger import logger
from app.core.exceptions import setup_exception_handlers
from flask_cors import CORS
from flasgger import Swagger


def create_app(config_class="app.config.Config"):
    """Factory function to create and configure the Flask application"""
    app = Flask(__name__)

    # Dict config comes from tests, anything else is an importable object
    if isinstance(config_class, dict):
        app.config.from_object("app.config.Config")
        app.config.update(config_class)
    else:
        app.config.from_object(config_class)

    # Initialize Flask extensions
    db.init_app(app)
    migrate.init_app(app, db)
    ma.init_app(app)
    init_limiter(app)
    Swagger(app)
    CORS(app)

    app.logger = logger

    app.celery = make_celery(app)

    register_models()
    register_blueprints(app)
    setup_exception_handlers(app)

    @app.before_request
    def validate_uuids():
        """Reject malformed ids in the URL before any resource runs."""
        for key in request.view_args or {}:
            if key.endswith("_id"):
                try:
                    request.view_args[key] = UUID(str(request.view_args[key]))
                except (ValueError, TypeError):
                    return jsonify({"error": "Resource not found"}), 404

    return app


def register_models():
    """Import every model so metadata (and migrations) see all tables"""
    from app.modules.account.models import DemoAccount  # noqa: F401
    from app.modules.holding.models import Holding  # noqa: F401
    from app.modules.fund.models import FundNav  # noqa: F401
    from app.modules.plan.models import ScheduledPlan  # noqa: F401
    from app.modules.execution_log.models import ExecutionLog  # noqa: F401
    from app.modules.notification.models import Notification  # noqa: F401
    from app.modules.scheduler.models import SchedulerRun  # noqa: F401


def register_blueprints(app):
    """Register all application blueprints"""
    from app.modules.plan.urls import plans_routes
    from app.modules.scheduler.urls import scheduler_routes

    plans_routes(app)
    scheduler_routes(app)
