import sys
from datetime import date
from pathlib import Path

# Add the project root directory to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)

from app import create_app
from app.core.constants import RunTrigger
from app.modules.scheduler.services import build_scheduler_service


def run_scheduler(target_date=None):
    """Execute every plan due on ``target_date`` (today when omitted)"""
    app = create_app()

    with app.app_context():
        try:
            summary = build_scheduler_service().execute_due_plans(
                target_date, trigger=RunTrigger.CLI
            )
        except Exception as e:
            print(f"Scheduler run failed: {str(e)}")
            return False

        print(f"Run {summary.run_id} for {summary.target_date}")
        print(
            f"Due: {summary.total_due}  Executed: {summary.executed}  "
            f"Failed: {summary.failed}  Skipped: {summary.skipped}"
        )
        for result in summary.details:
            print(f"  {result.plan_id}  {result.status.value:<8} {result.message}")
        print(f"Finished in {summary.duration_ms}ms")
        return summary.failed == 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Execute due SIP/SWP/STP installments")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Target date (YYYY-MM-DD), defaults to today in UTC",
    )

    args = parser.parse_args()

    sys.exit(0 if run_scheduler(args.date) else 1)
