"""Bounded worker pool against the real stores, one app context and session per worker."""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app import create_app
from app.core.constants import ExecutionStatus, Frequency, PlanStatus, PlanType
from app.extensions import db
from app.modules.account.models import DemoAccount
from app.modules.account.services import AccountStore
from app.modules.execution_log.models import ExecutionLog
from app.modules.fund.models import FundNav
from app.modules.holding.services import HoldingStore
from app.modules.plan.models import ScheduledPlan
from app.modules.scheduler.services import build_scheduler_service

RUN_DATE = date(2024, 1, 15)
FUND = "120503"
PLAN_COUNT = 6


@pytest.fixture
def pool_app(tmp_path):
    # A file database, so every worker gets its own connection
    application = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'scheduler.db'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {
                "connect_args": {"check_same_thread": False, "timeout": 30},
            },
            "RATELIMIT_ENABLED": False,
            "RATELIMIT_STORAGE_URL": "memory://",
            "PRICE_SOURCE": "local",
            "SCHEDULER_MAX_WORKERS": 3,
        }
    )
    with application.app_context():
        db.create_all()
        try:
            yield application
        finally:
            db.session.remove()
            db.drop_all()
            db.engine.dispose()


def seed_plans(session):
    session.add(FundNav(fund_id=FUND, fund_name="Test Fund", nav=Decimal("100.0000"), nav_date=RUN_DATE))
    plans = []
    for _ in range(PLAN_COUNT):
        user_id = uuid.uuid4()
        session.add(DemoAccount(user_id=user_id, balance=Decimal("5000.00")))
        plan = ScheduledPlan(
            user_id=user_id,
            plan_type=PlanType.SIP,
            fund_id=FUND,
            fund_name="Test Fund",
            amount=Decimal("1000.00"),
            frequency=Frequency.MONTHLY.value,
            start_date=RUN_DATE,
            next_execution_date=RUN_DATE,
            status=PlanStatus.PENDING,
            execution_count=0,
        )
        session.add(plan)
        plans.append(plan)
    session.commit()
    return [(plan.id, plan.user_id) for plan in plans]


def test_pool_executes_every_plan_once(pool_app):
    seeded = seed_plans(db.session)
    service = build_scheduler_service()
    assert service.max_workers == 3

    summary = service.execute_due_plans(RUN_DATE)

    assert summary.total_due == PLAN_COUNT
    assert summary.executed == PLAN_COUNT
    assert summary.failed == 0
    assert summary.total_invested == Decimal("6000.00")
    assert {result.plan_id for result in summary.details} == {plan_id for plan_id, _ in seeded}

    session = db.session
    session.expire_all()
    for plan_id, user_id in seeded:
        plan = session.get(ScheduledPlan, plan_id)
        assert plan.execution_count == 1
        assert plan.last_execution_date == RUN_DATE
        assert plan.next_execution_date == date(2024, 2, 15)
        assert plan.is_locked is False
        assert AccountStore(session).find_by_user(user_id).balance == Decimal("4000.00")
        assert HoldingStore(session).find_by_user_and_fund(user_id, FUND).units == Decimal("10")

        statuses = session.execute(
            select(ExecutionLog.status).where(ExecutionLog.plan_id == plan_id)
        ).scalars().all()
        assert statuses == [ExecutionStatus.SUCCESS]


def test_second_pool_run_finds_nothing_due(pool_app):
    seed_plans(db.session)
    build_scheduler_service().execute_due_plans(RUN_DATE)

    summary = build_scheduler_service().execute_due_plans(RUN_DATE)

    assert summary.total_due == 0
    assert db.session.execute(select(func.count(ExecutionLog.id))).scalar_one() == PLAN_COUNT
