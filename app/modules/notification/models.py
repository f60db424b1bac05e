from app.core.constants import NotificationType
from app.core.models import BaseModel
from app.extensions import db


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = db.Column(db.UUID(as_uuid=True), nullable=False, index=True)
    plan_id = db.Column(
        db.UUID(as_uuid=True),
        db.ForeignKey("scheduled_plans.id", ondelete="CASCADE"),
        nullable=True,
    )
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.Enum(NotificationType), nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
