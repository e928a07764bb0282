"""
Notification generators.

Turns aggregates into Notification records the caller may store:
- spending spikes, driven by the spike settings in UserSettings
- budgets nearing or over their limit
"""

from collections.abc import Iterable, Sequence
from typing import Optional

from budget_tracker.insights.aggregations import budget_progress
from budget_tracker.insights.lookup import Categories, index_categories, resolve_category
from budget_tracker.models.entities import (
    DAY_MS,
    Budget,
    Notification,
    NotificationType,
    Transaction,
    TransactionType,
    create_notification,
    now_ms,
)
from budget_tracker.models.insights import UNKNOWN_CATEGORY_LABEL
from budget_tracker.models.preferences import UserSettings


DEFAULT_HISTORY_PERIODS = 3
BUDGET_WARNING_PERCENT = 80


def detect_spending_spikes(
    transactions: Iterable[Transaction],
    categories: Categories,
    settings: UserSettings,
    now: Optional[int] = None,
    history_periods: int = DEFAULT_HISTORY_PERIODS,
) -> list[Notification]:
    """
    Flag categories whose recent spend jumped above their average.

    The most recent ``period`` days are compared with the average of the
    ``history_periods`` windows of the same length right before them. A
    spike is recent spend above average * (1 + threshold / 100). Muted
    categories and categories with no history are never flagged.
    """
    config = settings.spike_notifications
    if not config.enabled or history_periods < 1:
        return []

    if now is None:
        now = now_ms()
    period_ms = config.period * DAY_MS
    recent_start = now - period_ms
    history_start = recent_start - history_periods * period_ms
    muted = set(config.muted_categories)

    recent: dict[str, float] = {}
    history: dict[str, float] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE or not t.category_id:
            continue
        if t.category_id in muted:
            continue
        if recent_start <= t.date <= now:
            recent[t.category_id] = recent.get(t.category_id, 0.0) + t.amount
        elif history_start <= t.date < recent_start:
            history[t.category_id] = history.get(t.category_id, 0.0) + t.amount

    index = index_categories(categories)
    spikes = []
    for category_id, spent in recent.items():
        average = history.get(category_id, 0.0) / history_periods
        if average <= 0:
            continue
        if spent <= average * (1 + config.threshold / 100):
            continue

        name = resolve_category(index, category_id).name
        increase = (spent / average - 1) * 100
        spikes.append(create_notification(
            type=NotificationType.SPIKE,
            message=(
                f"Spending on {name} is up {increase:.0f}% "
                f"compared to your {config.period}-day average"
            ),
            date=now,
            related_id=category_id,
        ))
    return spikes


def budget_alerts(
    budgets: Iterable[Budget],
    transactions: Sequence[Transaction],
    categories: Categories,
    warn_at: float = BUDGET_WARNING_PERCENT,
    now: Optional[int] = None,
) -> list[Notification]:
    """One budget notification per valid budget at or above ``warn_at``%."""
    if now is None:
        now = now_ms()
    index = index_categories(categories)

    alerts = []
    for budget in budgets:
        progress = budget_progress(budget, transactions)
        if not progress.is_valid:
            continue

        name = resolve_category(index, budget.category_id, UNKNOWN_CATEGORY_LABEL).name
        if progress.is_over_budget:
            message = f"You are over your {name} budget ({progress.raw_percentage:.0f}% spent)"
        elif progress.percentage >= warn_at:
            message = f"You have used {progress.percentage:.0f}% of your {name} budget"
        else:
            continue

        alerts.append(create_notification(
            type=NotificationType.BUDGET,
            message=message,
            date=now,
            related_id=budget.id,
        ))
    return alerts
