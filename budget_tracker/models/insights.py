"""
Aggregation Result Models

View-ready numbers produced by insights.aggregations. Nothing here is
persisted; these are the shapes a dashboard or chart consumes.
"""

from pydantic import BaseModel, Field


UNKNOWN_LABEL = "Unknown"
UNKNOWN_CATEGORY_LABEL = "Unknown Category"
FALLBACK_COLOR = "#ccc"


class CategoryRef(BaseModel):
    """A category reference resolved for display."""

    id: str
    name: str
    color: str
    exists: bool = Field(
        default=True,
        description="False when the ID is dangling and the sentinel was used"
    )


class SubcategoryRef(BaseModel):
    id: str
    name: str
    color: str


class BudgetProgress(BaseModel):
    """
    Spend against a budget.

    percentage is clamped to 100 for display; over-budget detection uses
    the unclamped spent amount.
    """

    budget_id: str
    spent: float
    amount: float
    percentage: float = Field(ge=0, le=100)
    raw_percentage: float
    is_over_budget: bool
    is_valid: bool = Field(
        default=True,
        description="False when the budget amount is zero or negative"
    )

    @property
    def remaining(self) -> float:
        return self.amount - self.spent


class CategoryTotal(BaseModel):
    """One slice of the expense-by-category breakdown."""

    category_id: str
    name: str
    color: str
    value: float


class MonthlyTotals(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    label: str = Field(description="Display label, e.g. 'Jan 25'")
    income: float = 0
    expenses: float = 0

    @property
    def net(self) -> float:
        return self.income - self.expenses


class BalancePoint(BaseModel):
    transaction_id: str
    date: int
    label: str = Field(description="Display label, e.g. 'Jan 5'")
    balance: float


class CategoryTrendRow(BaseModel):
    """
    One month of per-category expense totals.

    Categories with no spend in the month are absent from ``values``
    rather than present as zero.
    """

    year: int
    month: int = Field(ge=1, le=12)
    label: str
    values: dict[str, float] = Field(default_factory=dict)


class CategoryTrends(BaseModel):
    rows: list[CategoryTrendRow] = Field(default_factory=list)
    categories: list[CategoryRef] = Field(default_factory=list)


class FinancialSummary(BaseModel):
    """Dashboard totals."""

    income: float = 0
    expenses: float = 0
    balance: float = 0
    total_owed: float = Field(
        default=0,
        description="Outstanding borrowed debts"
    )
    total_lent: float = Field(
        default=0,
        description="Outstanding lent debts"
    )
