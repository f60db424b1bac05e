from datetime import date
from app.celery_app import celery
from app.core.constants import RunTrigger
from app.core.logger import logger
from .services import build_scheduler_service


@celery.task(bind=True, name="app.modules.scheduler.tasks.execute_due_plans")
def execute_due_plans(self, target_date=None):
    """Daily run of every due SIP/SWP/STP installment"""
    try:
        target = date.fromisoformat(target_date) if target_date else None
        summary = build_scheduler_service().execute_due_plans(
            target, trigger=RunTrigger.SCHEDULE
        )
        return {
            "run_id": summary.run_id,
            "target_date": summary.target_date.isoformat(),
            "total_due": summary.total_due,
            "executed": summary.executed,
            "failed": summary.failed,
            "skipped": summary.skipped,
            "duration_ms": summary.duration_ms,
        }
    except Exception as e:
        logger.error(f"Scheduled execution task failed: {str(e)}", exc_info=True)
        raise
