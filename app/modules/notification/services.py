from app.core.constants import NotificationType, PlanType
from app.core.logger import logger
from app.extensions import db
from .models import Notification

SUCCESS_TITLES = {
    PlanType.SIP: "Wealth Builder Alert",
    PlanType.SWP: "Passive Income Alert",
    PlanType.STP: "Transfer Completed",
}


def _format_date(value):
    return value.strftime("%d %b %Y") if value else "N/A"


class PlanNotifier:
    """In-app notifications about scheduled installments."""

    def __init__(self, session=None):
        self.session = session or db.session

    def _create(self, plan, title, message, notification_type):
        try:
            notification = Notification(
                user_id=plan.user_id,
                plan_id=plan.id,
                title=title,
                message=message,
                type=notification_type,
            )
            self.session.add(notification)
            self.session.commit()
            return notification
        except Exception as e:
            self.session.rollback()
            logger.error(f"Error creating notification for plan {plan.id}: {str(e)}")
            raise e

    def notify_success(self, plan, next_execution_date):
        plan_type = plan.plan_type
        if plan_type == PlanType.SWP:
            message = (
                f"Your SWP from {plan.fund_name or plan.fund_id} executed successfully. "
                f"{plan.amount} has been credited to your balance. "
                f"Next installment: {_format_date(next_execution_date)}."
            )
        elif plan_type == PlanType.STP:
            message = (
                f"Your STP of {plan.amount} from {plan.source_fund_name or plan.source_fund_id} "
                f"to {plan.fund_name or plan.fund_id} was successful. "
                f"Next installment: {_format_date(next_execution_date)}."
            )
        else:
            message = (
                f"Your SIP for {plan.fund_name or plan.fund_id} of {plan.amount} was successful. "
                f"Next installment: {_format_date(next_execution_date)}."
            )
        return self._create(plan, SUCCESS_TITLES[plan_type], message, NotificationType.SUCCESS)

    def notify_failure(self, plan, reason):
        message = (
            f"Your {plan.plan_type.value} for {plan.fund_name or plan.fund_id} "
            f"couldn't execute today. Reason: {reason}"
        )
        return self._create(plan, "Action Needed", message, NotificationType.ERROR)
