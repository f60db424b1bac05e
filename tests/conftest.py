"""Pytest configuration and fixtures."""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool

from app import create_app
from app.core.constants import Frequency, PlanStatus, PlanType
from app.extensions import db
from app.modules.account.models import DemoAccount
from app.modules.fund.models import FundNav
from app.modules.holding.models import Holding
from app.modules.plan.models import ScheduledPlan

TEST_CONFIG = {
    "TESTING": True,
    "SECRET_KEY": "test",
    "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    "SQLALCHEMY_ENGINE_OPTIONS": {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    },
    "RATELIMIT_ENABLED": False,
    "RATELIMIT_STORAGE_URL": "memory://",
    "PRICE_SOURCE": "local",
    "SCHEDULER_MAX_WORKERS": 1,
    "SCHEDULER_STALE_LOCK_MINUTES": 30,
}

RUN_DATE = date(2024, 1, 15)
FUND = "120503"


@pytest.fixture(scope="function")
def app():
    """Fresh application and schema for each test."""
    application = create_app(dict(TEST_CONFIG))
    with application.app_context():
        db.create_all()
        try:
            yield application
        finally:
            db.session.remove()
            db.drop_all()


@pytest.fixture(scope="function")
def session(app):
    return db.session


@pytest.fixture(scope="function")
def client(app):
    return app.test_client()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def make_account(session):
    def _make(user_id, balance="10000.00"):
        account = DemoAccount(user_id=user_id, balance=Decimal(balance))
        session.add(account)
        session.commit()
        return account

    return _make


@pytest.fixture
def make_nav(session):
    def _make(fund_id=FUND, nav="100.0000", nav_date=RUN_DATE, fund_name="Test Fund"):
        record = FundNav(fund_id=fund_id, fund_name=fund_name, nav=Decimal(nav), nav_date=nav_date)
        session.add(record)
        session.commit()
        return record

    return _make


@pytest.fixture
def make_holding(session):
    def _make(user_id, fund_id=FUND, units="100.000000", invested_amount="10000.00"):
        holding = Holding(
            user_id=user_id,
            fund_id=fund_id,
            fund_name="Test Fund",
            units=Decimal(units),
            invested_amount=Decimal(invested_amount),
        )
        session.add(holding)
        session.commit()
        return holding

    return _make


@pytest.fixture
def make_plan(session):
    def _make(user_id, **overrides):
        values = {
            "user_id": user_id,
            "plan_type": PlanType.SIP,
            "fund_id": FUND,
            "fund_name": "Test Fund",
            "amount": Decimal("1000.00"),
            "frequency": Frequency.MONTHLY.value,
            "start_date": RUN_DATE,
            "next_execution_date": RUN_DATE,
            "status": PlanStatus.PENDING,
            "execution_count": 0,
        }
        values.update(overrides)
        plan = ScheduledPlan(**values)
        session.add(plan)
        session.commit()
        return plan

    return _make
