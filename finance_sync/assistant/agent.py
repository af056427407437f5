"""
Finance Assistant

CRITICAL BOUNDARY: The LLM answers ONLY from the snapshot it is given.
The snapshot is built from the derived views over the user's synced
records, so every number in an answer can be traced to a record.
The LLM is a NARRATOR of the user's numbers, not a source of them.

When the model is unavailable (no API key, network error, empty
answer) the assistant falls back to a deterministic summary of the
same snapshot. The user always gets an answer grounded in their data.
"""

from decimal import Decimal
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel

from finance_sync.config import get_settings
from finance_sync.config.settings import GeminiSettings
from finance_sync.views import (
    BudgetStatus,
    FinancialSummary,
    GoalsOverview,
    PeriodComparison,
    format_change,
)


logger = structlog.get_logger(__name__)


class AssistantReply(BaseModel):
    text: str
    used_model: bool


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def build_snapshot(
    summary: FinancialSummary,
    budget: Optional[BudgetStatus] = None,
    monthly_limit: Optional[Decimal] = None,
    goals: Optional[GoalsOverview] = None,
    comparison: Optional[PeriodComparison] = None,
) -> str:
    """Plain-text digest of the user's finances, one fact per line."""
    lines = [
        f"Total income: {_money(summary.income)}",
        f"Total expenses: {_money(summary.expenses)}",
        f"Net balance: {_money(summary.net)}",
        f"Transactions: {summary.transaction_count}",
    ]

    for total in summary.category_totals[:5]:
        lines.append(f"Spent on {total.category}: {_money(total.amount)}")

    if budget is not None and monthly_limit is not None:
        lines.append(f"Monthly budget: {_money(monthly_limit)} ({budget.percent_used}% used)")
        if budget.over_budget:
            lines.append(f"Over budget by {_money(-budget.remaining)}")
        elif budget.close_to_limit:
            lines.append(f"Close to the budget limit, {_money(budget.remaining)} left")
    else:
        lines.append("Monthly budget: not set")

    if goals is not None and goals.total_goals:
        lines.append(
            f"Savings goals: {goals.completed_goals} of {goals.total_goals} completed, "
            f"{_money(goals.total_saved)} saved of {_money(goals.total_target)}"
        )

    if comparison is not None:
        lines.append(f"Income vs last month: {format_change(comparison.income_change)}")
        lines.append(f"Expenses vs last month: {format_change(comparison.expense_change)}")

    return "\n".join(lines)


class FinanceAssistant:
    """
    Answers questions about the user's finances.

    Args:
        settings: Gemini configuration (default: from the environment)
        model: Pre-built model exposing generate_content_async
        offline: Never call the model; always use the fallback
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
        offline: bool = False,
    ):
        self._model = model
        if self._model is None and not offline:
            self._settings = settings or get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def online(self) -> bool:
        return self._model is not None

    async def reply(self, question: str, snapshot: str) -> AssistantReply:
        """
        Answer `question` using only `snapshot`.

        Never raises; model failures produce the fallback reply.
        """
        if self._model is None:
            return self.fallback(snapshot)

        prompt = f"""You are a personal finance assistant answering a question using ONLY the data provided.

Question: "{question}"

The user's current finances:
{snapshot}

- Use simple language and keep it concise
- Format amounts in dollars
- If the data does not answer the question, say so

IMPORTANT: Use ONLY the data above. Do NOT invent numbers, transactions or goals."""

        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
        except Exception as e:
            logger.warning("assistant_model_failed", error=str(e))
            return self.fallback(snapshot)

        if not text:
            return self.fallback(snapshot)
        return AssistantReply(text=text, used_model=True)

    def fallback(self, snapshot: str) -> AssistantReply:
        return AssistantReply(
            text=f"Here is where your finances stand:\n{snapshot}",
            used_model=False,
        )
