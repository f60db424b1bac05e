from decimal import Decimal
from app.core.models import BaseModel
from app.extensions import db


class DemoAccount(BaseModel):
    __tablename__ = "demo_accounts"

    user_id = db.Column(db.UUID(as_uuid=True), unique=True, nullable=False, index=True)
    balance = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    __table_args__ = (
        db.CheckConstraint("balance >= 0", name="ck_demo_accounts_balance_non_negative"),
    )

    def __str__(self):
        return f"DemoAccount(user_id={self.user_id}, balance={self.balance})"
