from decimal import Decimal
from sqlalchemy import select, update
from app.core.logger import logger
from app.core.models import get_utc_now
from app.extensions import db
from .models import Holding


class HoldingStore:
    """Units held per (user, fund). Writes are flushed, never committed here."""

    def __init__(self, session=None):
        self.session = session or db.session

    def find_by_user_and_fund(self, user_id, fund_id):
        return self.session.execute(
            select(Holding).where(
                Holding.user_id == user_id,
                Holding.fund_id == fund_id,
                Holding.is_deleted == False,
            )
        ).scalar_one_or_none()

    def create(self, user_id, fund_id, units, fund_name=None, invested_amount=None, price=None):
        holding = Holding(
            user_id=user_id,
            fund_id=fund_id,
            fund_name=fund_name,
            units=units,
            invested_amount=invested_amount if invested_amount is not None else Decimal("0.00"),
            last_price=price,
        )
        self.session.add(holding)
        self.session.flush()
        logger.info(f"Created holding {holding.id} for user {user_id} in {fund_id}: {units} units")
        return holding

    def update_units(self, holding_id, new_units, invested_amount=None, price=None, expected=None):
        """
        Set the unit count of a holding, optionally with its cost basis and
        latest price. ``expected`` turns the write into a compare-and-set on
        the current unit count.
        """
        stmt = update(Holding).where(Holding.id == holding_id)
        if expected is not None:
            stmt = stmt.where(Holding.units == expected)

        values = {"units": new_units, "updated_at": get_utc_now()}
        if invested_amount is not None:
            values["invested_amount"] = invested_amount
        if price is not None:
            values["last_price"] = price

        result = self.session.execute(stmt.values(**values))
        updated = result.rowcount == 1
        if not updated:
            logger.warning(
                f"Units update for holding {holding_id} matched no row (expected={expected})"
            )
        return updated
