"""Финансовый контекст для промпта: модели + рендер в текст."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = """You are a helpful and knowledgeable AI financial assistant. Your role is to help users understand their finances, provide insights about their spending patterns, offer budgeting advice, and answer questions about their financial data.

Guidelines:
- Be concise, clear, and professional
- Use the provided financial context to give personalized advice
- Always refer to specific numbers and amounts when available
- Provide actionable recommendations
- If you don't have enough context, ask clarifying questions
- Never make up financial data - only use what's provided
- Format numbers as currency (e.g., $1,234.56)
- Be encouraging and supportive"""

MAX_SPENDING_CATEGORIES = 10
MAX_RECENT_TRANSACTIONS = 15


class MonthTotals(BaseModel):
    month: str
    total_income: float
    total_expenses: float
    net_income: float
    savings: float
    transaction_count: int


class MonthlySummary(MonthTotals):
    previous_month: MonthTotals | None = None


class CategoryAmount(BaseModel):
    category: str
    amount: float
    percentage: float
    transaction_count: int | None = None


class AccountBalance(BaseModel):
    account_name: str
    balance: float
    account_type: str


class RecentTransaction(BaseModel):
    date: str
    description: str
    amount: float
    category: str
    type: str
    account_name: str | None = None


class TrendPoint(BaseModel):
    date: str
    amount: float
    type: str
    category: str


class FinancialMetrics(BaseModel):
    total_balance: float
    account_count: int
    avg_transaction_amount: float
    most_active_category: str | None = None
    daily_average: float
    weekly_average: float
    savings_rate: float


class FinancialContext(BaseModel):
    """Снимок финансов пользователя, который подмешивается к вопросу."""

    monthly_summary: MonthlySummary | None = None
    category_spending: list[CategoryAmount] = Field(default_factory=list)
    category_income: list[CategoryAmount] = Field(default_factory=list)
    account_balances: list[AccountBalance] = Field(default_factory=list)
    recent_transactions: list[RecentTransaction] = Field(default_factory=list)
    spending_trends: list[TrendPoint] = Field(default_factory=list)
    metrics: FinancialMetrics | None = None


def _money(value: float) -> str:
    return f"${value:.2f}"


def _signed_money(value: float) -> str:
    return f"{'+' if value >= 0 else '-'}${abs(value):.2f}"


def _signed_pct(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.1f}%"


def _pct_change(current: float, previous: float) -> float:
    if previous == 0:
        return 0.0
    return (current - previous) / abs(previous) * 100


def _render_summary(ms: MonthlySummary) -> str:
    lines = [
        "=== CURRENT MONTH SUMMARY ===",
        f"Month: {ms.month}",
        f"- Total Income: {_money(ms.total_income)}",
        f"- Total Expenses: {_money(ms.total_expenses)}",
        f"- Net Income: {_money(ms.net_income)}",
        f"- Savings: {_money(ms.savings)}",
        f"- Transaction Count: {ms.transaction_count}",
    ]
    pm = ms.previous_month
    if pm is not None:
        rows = (
            ("Total Income", ms.total_income, pm.total_income),
            ("Total Expenses", ms.total_expenses, pm.total_expenses),
            ("Net Income", ms.net_income, pm.net_income),
            ("Savings", ms.savings, pm.savings),
        )
        lines += ["", "=== PREVIOUS MONTH COMPARISON ===", f"Month: {pm.month}"]
        for title, cur, prev in rows:
            delta = cur - prev
            lines.append(
                f"- {title}: {_money(prev)} "
                f"({_signed_money(delta)}, {_signed_pct(_pct_change(cur, prev))})"
            )
        lines.append(f"- Transaction Count: {pm.transaction_count}")
    return "\n".join(lines)


def _render_categories(title: str, items: list[CategoryAmount]) -> str:
    lines = [title]
    for i, c in enumerate(items, start=1):
        line = f"{i}. {c.category}: {_money(c.amount)} ({c.percentage:.1f}%)"
        if c.transaction_count:
            line += f" - {c.transaction_count} transactions"
        lines.append(line)
    return "\n".join(lines)


def _render_balances(items: list[AccountBalance]) -> str:
    total = sum(a.balance for a in items)
    lines = ["=== ACCOUNT BALANCES ===", f"Total Balance: {_money(total)}"]
    lines += [f"- {a.account_name} ({a.account_type}): {_money(a.balance)}" for a in items]
    return "\n".join(lines)


def _render_transactions(items: list[RecentTransaction]) -> str:
    lines = [f"=== RECENT TRANSACTIONS (Last {len(items)}) ==="]
    for t in items[:MAX_RECENT_TRANSACTIONS]:
        line = f"{t.date}: {t.description} - {_money(abs(t.amount))} ({t.category}, {t.type})"
        if t.account_name:
            line += f" [{t.account_name}]"
        lines.append(line)
    return "\n".join(lines)


def _render_trends(items: list[TrendPoint]) -> str | None:
    expenses = [t for t in items if t.type == "expense"]
    if not expenses:
        return None
    daily = sum(t.amount for t in expenses) / len(expenses)
    # Первый максимум/минимум при равенстве.
    peak = max(expenses, key=lambda t: t.amount)
    lowest = min(expenses, key=lambda t: t.amount)
    return "\n".join(
        [
            "=== SPENDING TRENDS (Last 30 Days) ===",
            f"- Daily average: {_money(daily)}",
            f"- Weekly average: {_money(daily * 7)}",
            f"- Peak spending day: {peak.date} ({_money(peak.amount)})",
            f"- Lowest spending day: {lowest.date} ({_money(lowest.amount)})",
        ]
    )


def _render_metrics(m: FinancialMetrics) -> str:
    lines = [
        "=== FINANCIAL METRICS ===",
        f"- Total Accounts: {m.account_count}",
        f"- Total Balance: {_money(m.total_balance)}",
        f"- Average Transaction Amount: {_money(m.avg_transaction_amount)}",
    ]
    if m.most_active_category:
        lines.append(f"- Most Active Category: {m.most_active_category}")
    lines += [
        f"- Spending Velocity: {_money(m.daily_average)}/day, {_money(m.weekly_average)}/week",
        f"- Savings Rate: {m.savings_rate:.1f}% of income",
    ]
    return "\n".join(lines)


def render_context(context: FinancialContext | None) -> str:
    """Рендерит контекст в текстовый блок для user-сообщения ("" если пусто)."""
    if context is None:
        return ""

    parts: list[str] = []
    if context.monthly_summary is not None:
        parts.append(_render_summary(context.monthly_summary))
    if context.category_spending:
        parts.append(
            _render_categories(
                "=== TOP SPENDING CATEGORIES (Current Month) ===",
                context.category_spending[:MAX_SPENDING_CATEGORIES],
            )
        )
    if context.category_income:
        parts.append(
            _render_categories(
                "=== TOP INCOME CATEGORIES (Current Month) ===",
                context.category_income,
            )
        )
    if context.account_balances:
        parts.append(_render_balances(context.account_balances))
    if context.recent_transactions:
        parts.append(_render_transactions(context.recent_transactions))
    if context.spending_trends:
        trends = _render_trends(context.spending_trends)
        if trends:
            parts.append(trends)
    if context.metrics is not None:
        parts.append(_render_metrics(context.metrics))

    if not parts:
        return ""
    return "\n\nUser's Financial Context:\n\n" + "\n\n".join(parts)


def build_messages(
    prompt: str,
    context: FinancialContext | None = None,
    system_prompt: str | None = None,
) -> list[dict]:
    """Собирает пару system/user сообщений для chat completion."""
    return [
        {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
        {"role": "user", "content": f"{prompt}{render_context(context)}"},
    ]
