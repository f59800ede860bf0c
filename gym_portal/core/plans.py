"""Membership plan table and price helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from gym_portal.core.config import settings
from gym_portal.utils.datetime_utils import add_months
from gym_portal.utils.enums import PlanId

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
}


@dataclass(frozen=True)
class Plan:
    id: PlanId
    name: str
    price: int  # major units of settings.CURRENCY
    months: int


PLANS: dict[PlanId, Plan] = {
    PlanId.one_month: Plan(PlanId.one_month, "1 Month", 1500, 1),
    PlanId.two_month: Plan(PlanId.two_month, "2 Months", 2500, 2),
    PlanId.three_month: Plan(PlanId.three_month, "3 Months", 3500, 3),
    PlanId.six_month: Plan(PlanId.six_month, "6 Months", 5000, 6),
    PlanId.yearly: Plan(PlanId.yearly, "1 Year", 8000, 12),
}


def get_plan(plan_id: PlanId | str) -> Plan:
    """Return the plan for an id; unknown ids raise ValueError."""
    return PLANS[PlanId(plan_id)]


def get_plan_price(plan_id: PlanId | str) -> int:
    return get_plan(plan_id).price


def plan_period(plan_id: PlanId | str, start: date) -> tuple[date, date]:
    """Start and end dates of a membership bought on ``start``."""
    return start, add_months(start, get_plan(plan_id).months)


def format_price(amount: int | float, currency: str | None = None) -> str:
    """Render an amount like the frontend does: symbol, grouping, no fraction digits."""
    code = (currency or settings.CURRENCY).upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    return f"{symbol}{round(amount):,}"
