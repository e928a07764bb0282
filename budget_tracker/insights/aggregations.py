"""
Aggregation Engine

DESIGN DECISION: Every function here is pure. It takes full in-memory
collections (already loaded from the store) and returns view-ready
result models. Nothing reads or writes storage.

GUARANTEES:
- Dangling category references never raise; they resolve to "Unknown"
- Month ordering compares (year, month) integers, never display labels
- Sums are plain float addition over stored amounts
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from budget_tracker.insights.lookup import Categories, index_categories, resolve_category
from budget_tracker.models.entities import (
    DAY_MS,
    Budget,
    Debt,
    DebtStatus,
    DebtType,
    Repayment,
    Transaction,
    TransactionType,
    now_ms,
)
from budget_tracker.models.insights import (
    BalancePoint,
    BudgetProgress,
    CategoryRef,
    CategoryTotal,
    CategoryTrendRow,
    CategoryTrends,
    FinancialSummary,
    MonthlyTotals,
)


# Fixed English abbreviations; strftime("%b") would follow the locale
MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

ALL_CATEGORIES = "all"


class TimeWindow(str, Enum):
    """Symbolic relative date ranges used to filter transactions."""
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"
    ALL = "all"

    @property
    def days(self) -> Optional[int]:
        return {
            TimeWindow.LAST_7_DAYS: 7,
            TimeWindow.LAST_30_DAYS: 30,
            TimeWindow.LAST_90_DAYS: 90,
            TimeWindow.LAST_YEAR: 365,
            TimeWindow.ALL: None,
        }[self]


# =============================================================================
# HELPERS
# =============================================================================

def _utc(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


def year_month(timestamp_ms: int) -> tuple[int, int]:
    moment = _utc(timestamp_ms)
    return moment.year, moment.month


def month_label(year: int, month: int) -> str:
    """'Jan 25' style label."""
    return f"{MONTH_ABBR[month - 1]} {year % 100:02d}"


def day_label(timestamp_ms: int) -> str:
    """'Jan 5' style label."""
    moment = _utc(timestamp_ms)
    return f"{MONTH_ABBR[moment.month - 1]} {moment.day}"


def _is_expense(transaction: Transaction) -> bool:
    return transaction.type == TransactionType.EXPENSE


# =============================================================================
# FILTERS
# =============================================================================

def window_cutoff(window: Union[TimeWindow, str], now: Optional[int] = None) -> Optional[int]:
    """
    Earliest timestamp (epoch ms) inside the window, or None for "all".

    Raises:
        ValueError: Unknown window symbol
    """
    days = TimeWindow(window).days
    if days is None:
        return None
    if now is None:
        now = now_ms()
    return now - days * DAY_MS


def filter_by_time_window(
    transactions: Iterable[Transaction],
    window: Union[TimeWindow, str] = TimeWindow.LAST_30_DAYS,
    now: Optional[int] = None,
) -> list[Transaction]:
    """Keep transactions dated at or after the window's cutoff."""
    cutoff = window_cutoff(window, now)
    if cutoff is None:
        return list(transactions)
    return [t for t in transactions if t.date >= cutoff]


def filter_by_category(
    transactions: Iterable[Transaction],
    category_id: Optional[str] = ALL_CATEGORIES,
) -> list[Transaction]:
    if category_id is None or category_id == ALL_CATEGORIES:
        return list(transactions)
    return [t for t in transactions if t.category_id == category_id]


# =============================================================================
# BUDGETS
# =============================================================================

def counts_toward_budget(budget: Budget, transaction: Transaction) -> bool:
    """Expense in the budget's category (and subcategory, if it has one)."""
    if not _is_expense(transaction):
        return False
    if transaction.category_id != budget.category_id:
        return False
    if budget.subcategory_id and transaction.subcategory_id != budget.subcategory_id:
        return False
    return True


def budget_progress(budget: Budget, transactions: Iterable[Transaction]) -> BudgetProgress:
    """
    Spend against one budget.

    A budget whose amount is zero or negative is reported as invalid
    with 0%; it counts as over budget once anything has been spent.
    """
    spent = sum(
        (t.amount for t in transactions if counts_toward_budget(budget, t)),
        0.0,
    )

    if budget.amount <= 0:
        return BudgetProgress(
            budget_id=budget.id,
            spent=spent,
            amount=budget.amount,
            percentage=0,
            raw_percentage=0,
            is_over_budget=spent > 0,
            is_valid=False,
        )

    raw_percentage = spent / budget.amount * 100
    return BudgetProgress(
        budget_id=budget.id,
        spent=spent,
        amount=budget.amount,
        percentage=min(max(raw_percentage, 0.0), 100.0),
        raw_percentage=raw_percentage,
        is_over_budget=spent > budget.amount,
    )


def budgets_progress(
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
) -> list[BudgetProgress]:
    return [budget_progress(budget, transactions) for budget in budgets]


# =============================================================================
# CHART SERIES
# =============================================================================

def category_expense_breakdown(
    transactions: Iterable[Transaction],
    categories: Categories,
) -> list[CategoryTotal]:
    """
    Expense totals per category, largest first.

    Transactions without a category are left out.
    """
    totals: dict[str, float] = {}
    for t in transactions:
        if not _is_expense(t) or not t.category_id:
            continue
        totals[t.category_id] = totals.get(t.category_id, 0.0) + t.amount

    index = index_categories(categories)
    breakdown = []
    for category_id, value in totals.items():
        ref = resolve_category(index, category_id)
        breakdown.append(CategoryTotal(
            category_id=category_id,
            name=ref.name,
            color=ref.color,
            value=value,
        ))

    breakdown.sort(key=lambda entry: entry.value, reverse=True)
    return breakdown


def monthly_income_expense(transactions: Iterable[Transaction]) -> list[MonthlyTotals]:
    """Income and expense sums per calendar month (UTC), oldest first."""
    months: dict[tuple[int, int], MonthlyTotals] = {}

    for t in transactions:
        key = year_month(t.date)
        if key not in months:
            months[key] = MonthlyTotals(
                year=key[0],
                month=key[1],
                label=month_label(*key),
            )
        if t.type == TransactionType.INCOME:
            months[key].income += t.amount
        else:
            months[key].expenses += t.amount

    return [months[key] for key in sorted(months)]


def running_balance(transactions: Iterable[Transaction]) -> list[BalancePoint]:
    """
    Cumulative balance, one point per transaction in date order.

    Transactions sharing a timestamp keep their stored order.
    """
    points = []
    balance = 0.0
    for t in sorted(transactions, key=lambda t: t.date):
        balance += t.signed_amount
        points.append(BalancePoint(
            transaction_id=t.id,
            date=t.date,
            label=day_label(t.date),
            balance=balance,
        ))
    return points


def category_trends(
    transactions: Iterable[Transaction],
    categories: Categories,
) -> CategoryTrends:
    """
    Expense totals pivoted to one row per month, one column per category.

    Only categories seen in the given transactions become columns, and
    a category with no spend in a month is absent from that row.
    """
    rows: dict[tuple[int, int], CategoryTrendRow] = {}
    seen: dict[str, None] = {}

    for t in transactions:
        if not _is_expense(t):
            continue

        key = year_month(t.date)
        if key not in rows:
            rows[key] = CategoryTrendRow(year=key[0], month=key[1], label=month_label(*key))

        if not t.category_id:
            continue
        seen[t.category_id] = None
        values = rows[key].values
        values[t.category_id] = values.get(t.category_id, 0.0) + t.amount

    index = index_categories(categories)
    refs: list[CategoryRef] = [resolve_category(index, category_id) for category_id in seen]

    return CategoryTrends(
        rows=[rows[key] for key in sorted(rows)],
        categories=refs,
    )


# =============================================================================
# DEBTS
# =============================================================================

def repayments_for(debt_id: str, repayments: Iterable[Repayment]) -> list[Repayment]:
    return [r for r in repayments if r.debt_id == debt_id]


def total_repaid(debt: Debt, repayments: Iterable[Repayment]) -> float:
    return sum((r.amount for r in repayments_for(debt.id, repayments)), 0.0)


def debt_status(debt: Debt, repayments: Iterable[Repayment]) -> DebtStatus:
    """
    Effective status derived from repayments.

    A debt manually marked paid stays paid. Otherwise it is paid once
    repayments cover the amount, partially paid once anything has been
    repaid, and active before that.
    """
    if debt.status == DebtStatus.PAID:
        return DebtStatus.PAID

    repaid = total_repaid(debt, repayments)
    if debt.amount > 0 and repaid >= debt.amount:
        return DebtStatus.PAID
    if repaid > 0:
        return DebtStatus.PARTIALLY_PAID
    return DebtStatus.ACTIVE


def debt_balance(debt: Debt, repayments: Iterable[Repayment]) -> float:
    """Amount still outstanding, never below zero."""
    repayments = list(repayments)
    if debt_status(debt, repayments) == DebtStatus.PAID:
        return 0.0
    return max(debt.amount - total_repaid(debt, repayments), 0.0)


def apply_debt_status(
    debts: Iterable[Debt],
    repayments: Iterable[Repayment],
) -> list[Debt]:
    """Copies of ``debts`` with the derived status written in."""
    repayments = list(repayments)
    return [
        debt.model_copy(update={"status": debt_status(debt, repayments)})
        for debt in debts
    ]


# =============================================================================
# SUMMARY
# =============================================================================

def financial_summary(
    transactions: Iterable[Transaction],
    debts: Iterable[Debt] = (),
    repayments: Optional[Iterable[Repayment]] = None,
) -> FinancialSummary:
    """
    Dashboard totals.

    Debt totals count what is still outstanding on unpaid debts; with
    no repayments given that is the full amount of each unpaid debt.
    """
    income = 0.0
    expenses = 0.0
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expenses += t.amount

    repayments = list(repayments or [])
    total_owed = 0.0
    total_lent = 0.0
    for debt in debts:
        outstanding = debt_balance(debt, repayments)
        if debt.type == DebtType.BORROWED:
            total_owed += outstanding
        else:
            total_lent += outstanding

    return FinancialSummary(
        income=income,
        expenses=expenses,
        balance=income - expenses,
        total_owed=total_owed,
        total_lent=total_lent,
    )
