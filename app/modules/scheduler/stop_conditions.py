from dataclasses import dataclass
from typing import Optional

from app.core.constants import DATE_FORMAT


@dataclass(frozen=True)
class StopDecision:
    should_stop: bool
    reason: Optional[str] = None


CONTINUE = StopDecision(should_stop=False)


def check_stop_conditions(plan, target_date):
    """
    Decide whether a plan has reached its natural end before executing it on
    ``target_date``. The installments cap is checked before the end date.
    """
    if plan.installments is not None and plan.execution_count >= plan.installments:
        return StopDecision(
            should_stop=True,
            reason=f"Installments completed ({plan.execution_count}/{plan.installments})",
        )

    if plan.end_date is not None and target_date > plan.end_date:
        return StopDecision(
            should_stop=True,
            reason=f"End date reached ({plan.end_date.strftime(DATE_FORMAT)})",
        )

    return CONTINUE
