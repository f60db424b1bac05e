"""
Execution strategies: one per plan type.

Each strategy performs the ledger mutation of a single installment. The
price is read once per fund and reused for both the unit computation and
the ledger update. Strategies flush but never commit; the orchestrator
commits the installment as a whole or rolls every leg back.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, ROUND_UP
from typing import Optional

from app.core.constants import MONEY_QUANTUM, UNITS_QUANTUM, PlanType
from app.core.exceptions import (
    AccountNotFound,
    ConcurrentLedgerUpdate,
    InsufficientBalance,
    InsufficientUnits,
    PriceUnavailable,
    SchedulerError,
)
from app.core.logger import logger


@dataclass(frozen=True)
class StrategyResult:
    amount: Decimal
    units: Decimal
    price: Decimal
    balance_before: Optional[Decimal]
    balance_after: Optional[Decimal]
    # STP sell leg
    source_units: Optional[Decimal] = None
    source_price: Optional[Decimal] = None


def units_for(amount, price, rounding):
    return (Decimal(amount) / Decimal(price)).quantize(UNITS_QUANTUM, rounding=rounding)


def to_money(value):
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class ExecutionStrategy:
    plan_type = None

    def __init__(self, account_store, holding_store, price_lookup):
        self.accounts = account_store
        self.holdings = holding_store
        self.prices = price_lookup

    def execute(self, plan):
        raise NotImplementedError

    def _price(self, fund_id):
        quote = self.prices.get_latest_price(fund_id)
        price = Decimal(quote.price) if quote is not None else None
        if price is None or price <= 0:
            raise PriceUnavailable(f"No usable price for fund {fund_id}")
        return price

    def _account(self, user_id):
        account = self.accounts.find_by_user(user_id)
        if account is None:
            raise AccountNotFound(user_id)
        return account

    def _set_balance(self, user_id, new_balance, expected):
        if not self.accounts.update_balance(user_id, new_balance, expected=expected):
            raise ConcurrentLedgerUpdate(
                f"Balance of user {user_id} changed during execution; retrying next run"
            )

    def _buy_units(self, user_id, fund_id, fund_name, amount, price):
        """Credit ``amount`` worth of units of ``fund_id``; returns the units."""
        units = units_for(amount, price, ROUND_DOWN)
        holding = self.holdings.find_by_user_and_fund(user_id, fund_id)
        if holding is None:
            self.holdings.create(
                user_id=user_id,
                fund_id=fund_id,
                fund_name=fund_name,
                units=units,
                invested_amount=to_money(amount),
                price=price,
            )
            return units

        updated = self.holdings.update_units(
            holding.id,
            holding.units + units,
            invested_amount=to_money(holding.invested_amount + amount),
            price=price,
            expected=holding.units,
        )
        if not updated:
            raise ConcurrentLedgerUpdate(f"Holding {holding.id} changed during execution")
        return units

    def _sell_units(self, user_id, fund_id, amount, price):
        """Debit ``amount`` worth of units of ``fund_id``; returns the units."""
        units = units_for(amount, price, ROUND_UP)
        holding = self.holdings.find_by_user_and_fund(user_id, fund_id)
        available = holding.units if holding is not None else Decimal("0")
        if holding is None or available < units:
            raise InsufficientUnits(
                f"Insufficient units in {fund_id}. Required: {units}, Available: {available}"
            )

        # Cost basis leaves the holding in proportion to the units sold
        remaining_cost = holding.invested_amount
        if holding.units > 0 and holding.invested_amount > 0:
            remaining_cost = holding.invested_amount - holding.invested_amount * units / holding.units

        updated = self.holdings.update_units(
            holding.id,
            holding.units - units,
            invested_amount=to_money(max(remaining_cost, Decimal("0"))),
            price=price,
            expected=holding.units,
        )
        if not updated:
            raise ConcurrentLedgerUpdate(f"Holding {holding.id} changed during execution")
        return units


class SipStrategy(ExecutionStrategy):
    """Buy: debit the account, credit units."""

    plan_type = PlanType.SIP

    def execute(self, plan):
        amount = to_money(plan.amount)
        price = self._price(plan.fund_id)

        account = self.accounts.find_by_user(plan.user_id)
        available = account.balance if account is not None else Decimal("0")
        if account is None or available < amount:
            shortfall = amount - available
            raise InsufficientBalance(
                f"Insufficient balance. Required: {amount}, Available: {available}, "
                f"Short by: {shortfall}"
            )

        balance_after = available - amount
        self._set_balance(plan.user_id, balance_after, expected=available)
        units = self._buy_units(plan.user_id, plan.fund_id, plan.fund_name, amount, price)

        logger.info(f"SIP plan {plan.id}: bought {units} units of {plan.fund_id} at {price}")
        return StrategyResult(
            amount=amount,
            units=units,
            price=price,
            balance_before=available,
            balance_after=balance_after,
        )


class SwpStrategy(ExecutionStrategy):
    """Sell: debit units, credit the account."""

    plan_type = PlanType.SWP

    def execute(self, plan):
        amount = to_money(plan.amount)
        price = self._price(plan.fund_id)
        account = self._account(plan.user_id)
        balance_before = account.balance

        units = self._sell_units(plan.user_id, plan.fund_id, amount, price)
        balance_after = balance_before + amount
        self._set_balance(plan.user_id, balance_after, expected=balance_before)

        logger.info(f"SWP plan {plan.id}: sold {units} units of {plan.fund_id} at {price}")
        return StrategyResult(
            amount=amount,
            units=units,
            price=price,
            balance_before=balance_before,
            balance_after=balance_after,
        )


class StpStrategy(ExecutionStrategy):
    """
    Transfer: sell ``amount`` worth of the source fund and buy the same
    amount of the target fund. The cash leg never touches the balance.
    """

    plan_type = PlanType.STP

    def execute(self, plan):
        if not plan.source_fund_id:
            raise SchedulerError(f"STP plan {plan.id} has no source fund")

        amount = to_money(plan.amount)
        source_price = self._price(plan.source_fund_id)
        target_price = self._price(plan.fund_id)

        account = self.accounts.find_by_user(plan.user_id)
        balance = account.balance if account is not None else None

        source_units = self._sell_units(plan.user_id, plan.source_fund_id, amount, source_price)
        units = self._buy_units(plan.user_id, plan.fund_id, plan.fund_name, amount, target_price)

        logger.info(
            f"STP plan {plan.id}: moved {amount} from {plan.source_fund_id} "
            f"({source_units} units) to {plan.fund_id} ({units} units)"
        )
        return StrategyResult(
            amount=amount,
            units=units,
            price=target_price,
            balance_before=balance,
            balance_after=balance,
            source_units=source_units,
            source_price=source_price,
        )


STRATEGY_CLASSES = {
    PlanType.SIP: SipStrategy,
    PlanType.SWP: SwpStrategy,
    PlanType.STP: StpStrategy,
}


def build_strategies(account_store, holding_store, price_lookup):
    return {
        plan_type: strategy_class(account_store, holding_store, price_lookup)
        for plan_type, strategy_class in STRATEGY_CLASSES.items()
    }
