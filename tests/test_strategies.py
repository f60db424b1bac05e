from datetime import date
from decimal import Decimal

import pytest

from app.core.constants import PlanType
from app.core.exceptions import (
    InsufficientBalance,
    InsufficientUnits,
    PriceUnavailable,
    SchedulerError,
)
from app.modules.account.services import AccountStore
from app.modules.fund.services import LocalNavPriceLookup
from app.modules.holding.services import HoldingStore
from app.modules.scheduler.strategies import build_strategies

FUND = "120503"
SOURCE_FUND = "118989"


@pytest.fixture
def strategies(session):
    return build_strategies(AccountStore(session), HoldingStore(session), LocalNavPriceLookup(session))


def balance_of(session, user_id):
    session.expire_all()
    return AccountStore(session).find_by_user(user_id).balance


def holding_of(session, user_id, fund_id=FUND):
    session.expire_all()
    return HoldingStore(session).find_by_user_and_fund(user_id, fund_id)


class TestSip:
    def test_buys_units_and_debits_balance(self, session, strategies, user_id, make_account, make_nav, make_plan):
        make_account(user_id, "10000000.00")
        make_nav(FUND, "100.0000")
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        result = strategies[PlanType.SIP].execute(plan)
        session.commit()

        assert result.units == Decimal("10.000000")
        assert result.price == Decimal("100")
        assert result.balance_before == Decimal("10000000.00")
        assert result.balance_after == Decimal("9999000.00")
        assert balance_of(session, user_id) == Decimal("9999000.00")
        holding = holding_of(session, user_id)
        assert holding.units == Decimal("10")
        assert holding.invested_amount == Decimal("1000.00")

    def test_increments_existing_holding(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "5000.00")
        make_nav(FUND, "100.0000")
        make_holding(user_id, FUND, units="5.000000", invested_amount="450.00")
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        strategies[PlanType.SIP].execute(plan)
        session.commit()

        holding = holding_of(session, user_id)
        assert holding.units == Decimal("15")
        assert holding.invested_amount == Decimal("1450.00")

    def test_units_are_rounded_down(self, session, strategies, user_id, make_account, make_nav, make_plan):
        make_account(user_id, "5000.00")
        make_nav(FUND, "3.0000")
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        result = strategies[PlanType.SIP].execute(plan)

        assert result.units == Decimal("333.333333")

    def test_insufficient_balance_reports_shortfall(self, session, strategies, user_id, make_account, make_nav, make_plan):
        make_account(user_id, "500.00")
        make_nav(FUND, "100.0000")
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        with pytest.raises(InsufficientBalance) as exc_info:
            strategies[PlanType.SIP].execute(plan)

        assert "Insufficient balance" in exc_info.value.message
        assert "Short by: 500.00" in exc_info.value.message
        session.rollback()
        assert balance_of(session, user_id) == Decimal("500.00")
        assert holding_of(session, user_id) is None

    def test_missing_price_fails_before_any_mutation(self, session, strategies, user_id, make_account, make_plan):
        make_account(user_id, "5000.00")
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        with pytest.raises(PriceUnavailable):
            strategies[PlanType.SIP].execute(plan)

        session.rollback()
        assert balance_of(session, user_id) == Decimal("5000.00")

    def test_latest_nav_is_used(self, session, strategies, user_id, make_account, make_nav, make_plan):
        make_account(user_id, "5000.00")
        make_nav(FUND, "50.0000", nav_date=date(2024, 1, 10))
        make_nav(FUND, "200.0000", nav_date=date(2024, 1, 12))
        plan = make_plan(user_id, amount=Decimal("1000.00"))

        result = strategies[PlanType.SIP].execute(plan)

        assert result.price == Decimal("200")
        assert result.units == Decimal("5.000000")


class TestSwp:
    def test_sells_units_and_credits_balance(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "0.00")
        make_nav(FUND, "100.0000")
        make_holding(user_id, FUND, units="50.000000", invested_amount="4000.00")
        plan = make_plan(user_id, plan_type=PlanType.SWP, amount=Decimal("1000.00"))

        result = strategies[PlanType.SWP].execute(plan)
        session.commit()

        assert result.units == Decimal("10.000000")
        assert balance_of(session, user_id) == Decimal("1000.00")
        holding = holding_of(session, user_id)
        assert holding.units == Decimal("40")
        # A fifth of the units leaves with a fifth of the cost basis
        assert holding.invested_amount == Decimal("3200.00")

    def test_units_are_rounded_up(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "0.00")
        make_nav(FUND, "3.0000")
        make_holding(user_id, FUND, units="1000.000000")
        plan = make_plan(user_id, plan_type=PlanType.SWP, amount=Decimal("1000.00"))

        result = strategies[PlanType.SWP].execute(plan)

        assert result.units == Decimal("333.333334")

    def test_insufficient_units(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "0.00")
        make_nav(FUND, "100.0000")
        make_holding(user_id, FUND, units="5.000000")
        plan = make_plan(user_id, plan_type=PlanType.SWP, amount=Decimal("1000.00"))

        with pytest.raises(InsufficientUnits) as exc_info:
            strategies[PlanType.SWP].execute(plan)

        assert "Required: 10.000000" in exc_info.value.message
        session.rollback()
        assert balance_of(session, user_id) == Decimal("0.00")
        assert holding_of(session, user_id).units == Decimal("5")

    def test_no_holding_is_insufficient_units(self, session, strategies, user_id, make_account, make_nav, make_plan):
        make_account(user_id, "0.00")
        make_nav(FUND, "100.0000")
        plan = make_plan(user_id, plan_type=PlanType.SWP, amount=Decimal("1000.00"))

        with pytest.raises(InsufficientUnits):
            strategies[PlanType.SWP].execute(plan)


class TestStp:
    def test_moves_value_between_funds(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "250.00")
        make_nav(SOURCE_FUND, "50.0000")
        make_nav(FUND, "100.0000")
        make_holding(user_id, SOURCE_FUND, units="100.000000", invested_amount="5000.00")
        plan = make_plan(
            user_id, plan_type=PlanType.STP, source_fund_id=SOURCE_FUND, amount=Decimal("1000.00")
        )

        result = strategies[PlanType.STP].execute(plan)
        session.commit()

        assert result.source_units == Decimal("20.000000")
        assert result.units == Decimal("10.000000")
        assert holding_of(session, user_id, SOURCE_FUND).units == Decimal("80")
        assert holding_of(session, user_id, FUND).units == Decimal("10")
        assert balance_of(session, user_id) == Decimal("250.00")

    def test_failed_sell_leg_leaves_both_funds_untouched(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "250.00")
        make_nav(SOURCE_FUND, "50.0000")
        make_nav(FUND, "100.0000")
        make_holding(user_id, SOURCE_FUND, units="1.000000")
        plan = make_plan(
            user_id, plan_type=PlanType.STP, source_fund_id=SOURCE_FUND, amount=Decimal("1000.00")
        )

        with pytest.raises(InsufficientUnits):
            strategies[PlanType.STP].execute(plan)

        session.rollback()
        assert holding_of(session, user_id, SOURCE_FUND).units == Decimal("1")
        assert holding_of(session, user_id, FUND) is None

    def test_missing_target_price_fails_before_sell_leg(self, session, strategies, user_id, make_account, make_nav, make_holding, make_plan):
        make_account(user_id, "0.00")
        make_nav(SOURCE_FUND, "50.0000")
        make_holding(user_id, SOURCE_FUND, units="100.000000")
        plan = make_plan(
            user_id, plan_type=PlanType.STP, source_fund_id=SOURCE_FUND, amount=Decimal("1000.00")
        )

        with pytest.raises(PriceUnavailable):
            strategies[PlanType.STP].execute(plan)

        session.rollback()
        assert holding_of(session, user_id, SOURCE_FUND).units == Decimal("100")

    def test_requires_source_fund(self, strategies, user_id, make_plan):
        plan = make_plan(user_id, plan_type=PlanType.STP, source_fund_id=None)

        with pytest.raises(SchedulerError, match="no source fund"):
            strategies[PlanType.STP].execute(plan)
