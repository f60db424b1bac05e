from celery.schedules import crontab
from celery import Celery
import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = os.getenv("REDIS_PORT", "6379")
REDIS_DB = os.getenv("REDIS_DB", "0")
REDIS_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)


def make_celery(app=None):
    """
    Create a Celery instance whose tasks run inside a Flask application
    context. Without an explicit app (a worker or beat process) the app is
    built once, on the first task call.
    """

    celery = Celery(
        "app",
        broker=CELERY_BROKER_URL,
        backend=CELERY_RESULT_BACKEND,
        include=["app.modules.scheduler.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        task_track_started=True,
        worker_max_tasks_per_child=1000,
        task_acks_late=True,
    )

    hour = app.config.get("SCHEDULER_CRON_HOUR", "6") if app else os.getenv("SCHEDULER_CRON_HOUR", "6")
    minute = app.config.get("SCHEDULER_CRON_MINUTE", "0") if app else os.getenv("SCHEDULER_CRON_MINUTE", "0")
    celery.conf.beat_schedule = {
        "execute-due-plans": {
            "task": "app.modules.scheduler.tasks.execute_due_plans",
            "schedule": crontab(hour=hour, minute=minute),
        },
    }

    flask_app = {"app": app}

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            if flask_app["app"] is None:
                from app import create_app

                flask_app["app"] = create_app()
            with flask_app["app"].app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery


celery = make_celery()
