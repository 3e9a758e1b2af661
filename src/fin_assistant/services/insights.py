"""AI-инсайты по финансам: структурированный промпт + разбор JSON из ответа."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fin_assistant.services.context import FinancialContext
from fin_assistant.services.gateway import CompletionGateway, CompletionResult

log = structlog.get_logger()

INSIGHTS_SYSTEM_PROMPT = (
    "You are a financial advisor AI. Analyze user financial data and provide clear, "
    "actionable insights. Always format responses as valid JSON."
)
INVALID_INSIGHTS_LABEL = "Invalid insights format"
MAX_INSIGHT_CATEGORIES = 5

# Жадно: от первой `{` до последней `}` (ответ бывает обёрнут в markdown).
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

_INSTRUCTIONS = """Please provide:
1. 3-4 spending insights (what patterns you notice)
2. 3-4 savings tips (actionable advice)
3. 2-3 budget optimization suggestions
4. 2-3 areas of concern (if any)

Format your response as a JSON object with these exact keys:
{
  "spendingInsights": ["insight1", "insight2", ...],
  "savingsTips": ["tip1", "tip2", ...],
  "budgetOptimization": ["suggestion1", "suggestion2", ...],
  "areasOfConcern": ["concern1", "concern2", ...]
}

Be concise, specific, and use actual numbers from the data."""


class FinancialInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    spending_insights: list[str] = Field(alias="spendingInsights")
    savings_tips: list[str] = Field(alias="savingsTips")
    budget_optimization: list[str] = Field(alias="budgetOptimization")
    areas_of_concern: list[str] = Field(alias="areasOfConcern")


@dataclass(frozen=True)
class InsightsResult:
    insights: FinancialInsights | None
    completion: CompletionResult

    @property
    def error(self) -> str | None:
        if self.completion.error:
            return self.completion.error
        return None if self.insights is not None else INVALID_INSIGHTS_LABEL

    def as_dict(self) -> dict:
        return {
            "insights": self.insights.model_dump() if self.insights is not None else None,
            "error": self.error,
            "tokens_used": self.completion.tokens_used,
        }


def build_insights_prompt(context: FinancialContext) -> str:
    """Промпт анализа: сводка месяца, топ-5 категорий, счета, формат ответа."""
    parts = ["Analyze the following financial data and provide insights:"]
    ms = context.monthly_summary
    if ms is not None:
        parts.append(
            "Monthly Summary:\n"
            f"- Total Income: ${ms.total_income:.2f}\n"
            f"- Total Expenses: ${ms.total_expenses:.2f}\n"
            f"- Savings: ${ms.savings:.2f}\n"
            f"- Transaction Count: {ms.transaction_count}"
        )
    if context.category_spending:
        rows = [
            f"- {c.category}: ${c.amount:.2f} ({c.percentage:.1f}%)"
            for c in context.category_spending[:MAX_INSIGHT_CATEGORIES]
        ]
        parts.append("Top Spending Categories:\n" + "\n".join(rows))
    if context.account_balances:
        rows = [
            f"- {a.account_name} ({a.account_type}): ${a.balance:.2f}"
            for a in context.account_balances
        ]
        parts.append("Account Balances:\n" + "\n".join(rows))
    parts.append(_INSTRUCTIONS)
    return "\n\n".join(parts)


def parse_insights(content: str) -> FinancialInsights | None:
    """Достаёт JSON-объект из текста и проверяет четыре списка; иначе None."""
    match = _JSON_BLOCK.search(content or "")
    if match is None:
        log.warning("insights_json_missing")
        return None
    try:
        data = json.loads(match.group(0))
        return FinancialInsights.model_validate(data)
    except ValueError as e:
        # ValidationError тоже ValueError.
        kind = "structure" if isinstance(e, ValidationError) else "json"
        log.warning("insights_invalid", reason=kind)
        return None


def generate_insights(gateway: CompletionGateway, context: FinancialContext) -> InsightsResult:
    """Инсайты через gateway. Не бросает: при любой неудаче `insights is None`."""
    narrowed = FinancialContext(
        monthly_summary=context.monthly_summary,
        category_spending=context.category_spending[:MAX_INSIGHT_CATEGORIES],
        account_balances=context.account_balances,
    )
    completion = gateway.complete(
        build_insights_prompt(context),
        context=narrowed,
        system_prompt=INSIGHTS_SYSTEM_PROMPT,
    )
    if not completion.ok:
        return InsightsResult(insights=None, completion=completion)
    return InsightsResult(insights=parse_insights(completion.content), completion=completion)
