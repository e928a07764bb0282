"""
Core Entity Models for Budget Tracker

These models define the canonical shapes of every record kind kept in
the store. They are designed to:
1. Fill every omitted field with a documented default
2. Serialize to the camelCase layout used on disk and on the wire
3. Accept both snake_case and camelCase on input
4. Never enforce business rules (that is the validator's job)

DESIGN DECISION: Relationships are plain string IDs, never owning
references. A Transaction whose category was deleted keeps its
categoryId; readers resolve it through insights.lookup.
"""

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar
from uuid import uuid4

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_COLOR = "#4CAF50"
DEFAULT_DEBT_TERM_DAYS = 30


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    return str(uuid4())


def to_epoch_ms(value: Any) -> Any:
    """Coerce datetimes to epoch ms; anything else is left for pydantic."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return value


EpochMs = Annotated[int, BeforeValidator(to_epoch_ms)]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DebtType(str, Enum):
    """Direction of a debt: money we owe, or money owed to us."""
    BORROWED = "borrowed"
    LENT = "lent"


class DebtStatus(str, Enum):
    """
    Repayment state of a debt.

    PAID may be set manually ("Mark as Paid"); the other two are
    derived from repayments by insights.aggregations.debt_status.
    """
    ACTIVE = "active"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class NotificationType(str, Enum):
    SPIKE = "spike"
    BUDGET = "budget"
    DEBT = "debt"


# =============================================================================
# BASE MODEL
# =============================================================================

class EntityModel(BaseModel):
    """
    Common shape for all stored records.

    Unknown keys are preserved so that records written by a newer
    version survive a read/write cycle through an older one.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str = Field(default_factory=generate_id)
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)

    def to_storage(self) -> dict[str, Any]:
        """Plain JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def field_aliases(cls) -> dict[str, str]:
        """Map of python field name -> storage key."""
        return {
            name: (info.alias or name)
            for name, info in cls.model_fields.items()
        }

    @classmethod
    def normalize_keys(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        """Rewrite snake_case field names in ``data`` to their storage keys."""
        aliases = cls.field_aliases()
        return {aliases.get(key, key): value for key, value in data.items()}


# =============================================================================
# ENTITIES
# =============================================================================

class Subcategory(EntityModel):
    name: str = ""
    color: str = DEFAULT_COLOR
    parent_category_id: str = ""


class Category(EntityModel):
    """
    A spending/income category with embedded subcategories.

    incomeOnly and expenseOnly are independent flags; setting both is
    legal here and only flagged by the validator.
    """
    name: str = ""
    color: str = DEFAULT_COLOR
    icon: str = "default"
    income_only: bool = False
    expense_only: bool = False
    subcategories: list[Subcategory] = Field(default_factory=list)

    def find_subcategory(self, subcategory_id: str) -> Optional[Subcategory]:
        for sub in self.subcategories:
            if sub.id == subcategory_id:
                return sub
        return None


class Transaction(EntityModel):
    amount: float = 0
    date: EpochMs = Field(default_factory=now_ms)
    type: TransactionType = TransactionType.EXPENSE
    category_id: str = ""
    subcategory_id: Optional[str] = None
    description: str = ""
    notes: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @property
    def signed_amount(self) -> float:
        """Amount with expenses negated, as used by the running balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Budget(EntityModel):
    category_id: str = ""
    subcategory_id: Optional[str] = None
    amount: float = 0
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    start_date: EpochMs = Field(default_factory=now_ms)
    end_date: Optional[EpochMs] = None


class Debt(EntityModel):
    amount: float = 0
    type: DebtType = DebtType.BORROWED
    date: EpochMs = Field(default_factory=now_ms)
    due_date: EpochMs = Field(
        default_factory=lambda: now_ms() + DEFAULT_DEBT_TERM_DAYS * DAY_MS
    )
    person_name: str = ""
    description: str = ""
    interest: Optional[float] = None
    status: DebtStatus = DebtStatus.ACTIVE


class Repayment(EntityModel):
    debt_id: str = ""
    amount: float = 0
    date: EpochMs = Field(default_factory=now_ms)
    note: Optional[str] = None


class Notification(EntityModel):
    type: NotificationType = NotificationType.SPIKE
    message: str = ""
    read: bool = False
    date: EpochMs = Field(default_factory=now_ms)
    related_id: Optional[str] = None


# =============================================================================
# FACTORIES
# =============================================================================

E = TypeVar("E", bound=EntityModel)


def _build(
    model: type[E],
    data: Optional[Mapping[str, Any]],
    fields: dict[str, Any],
    defaults: Optional[dict[str, Any]] = None,
) -> E:
    """
    Merge a partial record over stamped defaults and construct ``model``.

    None values count as omitted, so callers can pass optional form
    values straight through.
    """
    values = model.normalize_keys({**(data or {}), **fields})
    values = {key: value for key, value in values.items() if value is not None}

    now = now_ms()
    stamped = {"id": generate_id(), "createdAt": now, "updatedAt": now}
    stamped.update(model.normalize_keys(defaults or {}))
    for key, value in stamped.items():
        values.setdefault(key, value)

    return model.model_validate(values)


def create_category(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Category:
    return _build(Category, data, fields)


def create_subcategory(
    parent_category_id: str = "",
    data: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> Subcategory:
    return _build(
        Subcategory,
        data,
        fields,
        defaults={"parent_category_id": parent_category_id},
    )


def create_transaction(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Transaction:
    """Defaults: type=expense, amount=0, date=now, no category."""
    return _build(Transaction, data, fields, defaults={"date": now_ms()})


def create_budget(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Budget:
    return _build(Budget, data, fields, defaults={"start_date": now_ms()})


def create_debt(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Debt:
    """Defaults: borrowed, active, due 30 days after creation."""
    now = now_ms()
    return _build(
        Debt,
        data,
        fields,
        defaults={
            "date": now,
            "due_date": now + DEFAULT_DEBT_TERM_DAYS * DAY_MS,
        },
    )


def create_repayment(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Repayment:
    return _build(Repayment, data, fields, defaults={"date": now_ms()})


def create_notification(data: Optional[Mapping[str, Any]] = None, **fields: Any) -> Notification:
    return _build(Notification, data, fields, defaults={"date": now_ms()})
