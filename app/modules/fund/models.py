from sqlalchemy import UniqueConstraint
from app.core.models import BaseModel
from app.extensions import db


class FundNav(BaseModel):
    """Daily net asset value of a fund."""

    __tablename__ = "fund_navs"

    fund_id = db.Column(db.String(50), nullable=False, index=True)
    fund_name = db.Column(db.String(255), nullable=True)
    nav = db.Column(db.Numeric(14, 4), nullable=False)
    nav_date = db.Column(db.Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("fund_id", "nav_date", name="uq_fund_navs_fund_date"),
        db.CheckConstraint("nav > 0", name="ck_fund_navs_nav_positive"),
    )
