from sqlalchemy import select, update
from app.core.logger import logger
from app.core.models import get_utc_now
from app.extensions import db
from .models import DemoAccount


class AccountStore:
    """Demo account balances. Writes are flushed, never committed here."""

    def __init__(self, session=None):
        self.session = session or db.session

    def find_by_user(self, user_id):
        return self.session.execute(
            select(DemoAccount).where(
                DemoAccount.user_id == user_id, DemoAccount.is_deleted == False
            )
        ).scalar_one_or_none()

    def update_balance(self, user_id, new_balance, expected=None):
        """
        Set the balance of a user's account.

        When ``expected`` is given the update is a compare-and-set: it only
        matches while the stored balance still equals ``expected``, so a
        concurrent writer makes this return False instead of being overwritten.
        """
        stmt = update(DemoAccount).where(
            DemoAccount.user_id == user_id, DemoAccount.is_deleted == False
        )
        if expected is not None:
            stmt = stmt.where(DemoAccount.balance == expected)
        result = self.session.execute(
            stmt.values(balance=new_balance, updated_at=get_utc_now())
        )
        updated = result.rowcount == 1
        if updated:
            logger.debug(f"Balance for user {user_id} set to {new_balance}")
        else:
            logger.warning(
                f"Balance update for user {user_id} matched no row (expected={expected})"
            )
        return updated
