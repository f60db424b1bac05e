from decimal import Decimal
from sqlalchemy import UniqueConstraint
from app.core.models import BaseModel
from app.extensions import db


class Holding(BaseModel):
    __tablename__ = "holdings"

    user_id = db.Column(db.UUID(as_uuid=True), nullable=False, index=True)
    fund_id = db.Column(db.String(50), nullable=False, index=True)
    fund_name = db.Column(db.String(255), nullable=True)
    units = db.Column(db.Numeric(20, 6), nullable=False, default=Decimal("0"))
    invested_amount = db.Column(db.Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    last_price = db.Column(db.Numeric(14, 4), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "fund_id", name="uq_holdings_user_fund"),
        db.CheckConstraint("units >= 0", name="ck_holdings_units_non_negative"),
    )

    def __str__(self):
        return f"Holding(fund_id={self.fund_id}, units={self.units})"
