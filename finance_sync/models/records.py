"""
Financial Record Models

These models mirror the rows of the hosted database tables.
Every entity comes in three shapes:

- The row itself (what the store returns, system fields included)
- A *Create candidate (what the client may send on insert)
- An *Update patch (every field optional, only set fields are sent)

DESIGN DECISION: Money is Decimal, quantized to two places on the way in.
The store may hand back floats (JSON numbers); converting through str()
keeps 42.50 as 42.50 instead of 42.4999999.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)


CENTS = Decimal("0.01")

# Fields named "date" shadow the type inside the class body
CalendarDate = date


def to_money(value: Any) -> Any:
    """Convert a JSON number or string to a two-place Decimal."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float, str, Decimal)):
        try:
            return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            # Let pydantic report the bad value
            return value
    return value


Money = Annotated[Decimal, BeforeValidator(to_money)]


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Transactions are either money in or money out."""
    INCOME = "income"
    EXPENSE = "expense"


class GoalType(str, Enum):
    """Savings goal horizon."""
    SHORT_TERM = "short-term"
    MEDIUM_TERM = "medium-term"
    LONG_TERM = "long-term"
    EMERGENCY = "emergency"


class GoalPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MessageSender(str, Enum):
    USER = "user"
    AI = "ai"


class _Row(BaseModel):
    """Common configuration for rows coming back from the store."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class _Patch(BaseModel):
    """Common configuration for create/update payloads."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    def to_row(self) -> dict[str, Any]:
        """Only explicitly set fields, JSON-ready (Decimal and dates as str)."""
        return self.model_dump(mode="json", exclude_unset=True)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(_Row):
    """A single income or expense entry."""

    id: UUID
    user_id: UUID
    type: TransactionType
    category_id: Optional[UUID] = None
    amount: Money = Field(..., gt=0)
    description: Optional[str] = None
    date: CalendarDate
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionCreate(_Patch):
    """Candidate transaction, without identity, owner or timestamps."""

    type: TransactionType
    amount: Money = Field(
        ...,
        gt=0,
        le=Decimal("1000000"),
        description="Amount, always positive; the type carries the sign"
    )
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)
    date: CalendarDate = Field(default_factory=CalendarDate.today)

    def to_row(self) -> dict[str, Any]:
        # The date default must reach the store even if not explicitly set
        row = super().to_row()
        row.setdefault("date", self.date.isoformat())
        return row


class TransactionUpdate(_Patch):
    type: Optional[TransactionType] = None
    amount: Optional[Money] = Field(default=None, gt=0, le=Decimal("1000000"))
    category_id: Optional[UUID] = None
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[CalendarDate] = None


# =============================================================================
# CATEGORIES
# =============================================================================

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class Category(_Row):
    """
    A transaction category.

    System categories are shared by everyone and have no owner.
    """

    id: UUID
    user_id: Optional[UUID] = None
    name: str = Field(..., min_length=1)
    type: TransactionType
    color: Optional[str] = None
    icon: Optional[str] = None
    budget: Optional[Money] = None
    is_system: bool = False
    created_at: Optional[datetime] = None

    @field_validator('is_system', mode='before')
    @classmethod
    def null_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class CategoryCreate(_Patch):
    name: str = Field(..., min_length=1, max_length=50)
    type: TransactionType
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    icon: Optional[str] = Field(default=None, max_length=50)
    budget: Optional[Money] = Field(default=None, ge=0)


class CategoryUpdate(_Patch):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type: Optional[TransactionType] = None
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    icon: Optional[str] = Field(default=None, max_length=50)
    budget: Optional[Money] = Field(default=None, ge=0)


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(_Row):
    """
    Monthly spending limit.

    There is exactly one budget row per (user, month, year);
    the database enforces it with unique_user_budget_month_year.
    """

    id: UUID
    user_id: UUID
    monthly_limit: Money = Field(..., ge=0)
    current_spent: Money = Field(default=Decimal("0.00"))
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000)
    category_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('current_spent', mode='before')
    @classmethod
    def null_spent_is_zero(cls, v: Any) -> Any:
        return Decimal("0.00") if v is None else v


class BudgetCreate(_Patch):
    monthly_limit: Money = Field(..., gt=0, le=Decimal("10000000"))
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    current_spent: Money = Field(default=Decimal("0.00"), ge=0)
    category_id: Optional[UUID] = None


class BudgetUpdate(_Patch):
    monthly_limit: Optional[Money] = Field(default=None, gt=0, le=Decimal("10000000"))
    current_spent: Optional[Money] = Field(default=None, ge=0)
    category_id: Optional[UUID] = None


# =============================================================================
# GOALS
# =============================================================================

class Goal(_Row):
    """
    A savings goal.

    saved_amount may exceed target_amount; such a goal counts as completed.
    """

    id: UUID
    user_id: UUID
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    target_amount: Money = Field(..., gt=0)
    saved_amount: Money = Field(default=Decimal("0.00"), ge=0)
    deadline: Optional[date] = None
    priority: GoalPriority = GoalPriority.MEDIUM
    goal_type: GoalType = GoalType.SHORT_TERM
    is_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('saved_amount', mode='before')
    @classmethod
    def null_saved_is_zero(cls, v: Any) -> Any:
        return Decimal("0.00") if v is None else v

    @field_validator('priority', 'is_completed', mode='before')
    @classmethod
    def drop_nulls(cls, v: Any, info) -> Any:
        if v is None:
            return GoalPriority.MEDIUM if info.field_name == "priority" else False
        return v


class GoalCreate(_Patch):
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: Money = Field(..., gt=0, le=Decimal("10000000"))
    saved_amount: Money = Field(default=Decimal("0.00"), ge=0, le=Decimal("10000000"))
    deadline: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=500)
    priority: GoalPriority = GoalPriority.MEDIUM
    goal_type: GoalType = GoalType.SHORT_TERM

    @field_validator('deadline')
    @classmethod
    def deadline_not_past(cls, v: Optional[date]) -> Optional[date]:
        if v is not None and v < date.today():
            raise ValueError("Deadline must be in the future")
        return v

    def to_row(self) -> dict[str, Any]:
        row = super().to_row()
        row.setdefault("saved_amount", str(self.saved_amount))
        row.setdefault("priority", self.priority.value)
        row.setdefault("goal_type", self.goal_type.value)
        row["is_completed"] = self.saved_amount >= self.target_amount
        return row


class GoalUpdate(_Patch):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    target_amount: Optional[Money] = Field(default=None, gt=0, le=Decimal("10000000"))
    saved_amount: Optional[Money] = Field(default=None, ge=0, le=Decimal("10000000"))
    deadline: Optional[date] = None
    description: Optional[str] = Field(default=None, max_length=500)
    priority: Optional[GoalPriority] = None
    goal_type: Optional[GoalType] = None
    is_completed: Optional[bool] = None


# =============================================================================
# DOCUMENTS
# =============================================================================

class Document(_Row):
    """
    An uploaded file kept for the user's records.

    Documents are never removed from the table; deleting one sets `deleted`.
    """

    id: UUID
    user_id: UUID
    name: str = Field(..., min_length=1)
    file_url: str
    file_type: Optional[str] = None
    size_bytes: Optional[int] = None
    folder_id: Optional[UUID] = None
    deleted: bool = False
    uploaded_at: Optional[datetime] = None

    @field_validator('deleted', mode='before')
    @classmethod
    def null_is_false(cls, v: Any) -> Any:
        return False if v is None else v


class DocumentCreate(_Patch):
    name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1)
    file_type: Optional[str] = Field(default=None, max_length=100)
    size_bytes: Optional[int] = Field(default=None, ge=0)
    folder_id: Optional[UUID] = None

    def to_row(self) -> dict[str, Any]:
        row = super().to_row()
        row["deleted"] = False
        return row


class DocumentUpdate(_Patch):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    folder_id: Optional[UUID] = None


# =============================================================================
# CHAT
# =============================================================================

class ChatMessage(_Row):
    """One message of the finance assistant conversation."""

    id: UUID
    user_id: UUID
    sender: MessageSender
    message: str
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ChatMessageCreate(_Patch):
    sender: MessageSender
    message: str = Field(..., min_length=1, max_length=4000)
    metadata: Optional[dict[str, Any]] = None
