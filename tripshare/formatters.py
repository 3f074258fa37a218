"""Plain-text renderings of financial views in the trip currency."""

from __future__ import annotations

from tripshare.finance import day_totals
from tripshare.state import Day, FinancialSummary
from tripshare.tools.currency import format_money


def format_budget_report(summary: FinancialSummary) -> str:
    """Format the financial summary as a text report."""
    code = summary["currency"]
    budget = summary["budget_cents"]
    spent = summary["total_spent_cents"]
    remaining = summary["remaining_cents"]

    pct = int(spent * 100 / budget) if budget > 0 else 0
    bar_filled = min(pct, 100) // 5
    progress_bar = "█" * bar_filled + "░" * (20 - bar_filled)
    status = "⚠️ over budget" if summary["is_over_budget"] else "✅ within budget"

    lines = [
        "💰 BUDGET REPORT",
        "━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━",
        f"   Budget:          {format_money(budget, code)}",
        f"   Spent:           {format_money(spent, code)} ({pct}%)",
        f"   Remaining:       {format_money(remaining, code)}  {status}",
        f"   Suggested daily: {format_money(summary['suggested_daily_cents'], code)} per person",
        "",
        f"   [{progress_bar}] {pct}%",
    ]

    header = "📂 BY CATEGORY"
    if summary["selected_traveler"]:
        header += f" — {summary['selected_traveler']}"
    lines.extend(["", header])
    if summary["by_category"]:
        for item in summary["by_category"]:
            lines.append(f"   • {item['name']}: {format_money(item['value_cents'], code)} ({item['percent']:.0f}%)")
    else:
        lines.append("   No confirmed expenses yet.")

    mode = "equal split" if summary["split_mode"] == "equal" else "individual"
    lines.extend(["", f"👥 PER TRAVELER ({mode})"])
    for person in summary["per_participant"]:
        lines.append(f"   {person['name']}: {format_money(person['spent_cents'], code)}")

    return "\n".join(lines)


def format_day_header(day: Day, code: str) -> str:
    """'Day 2 — 2025-03-02 · est. R$ 150,00 · spent R$ 90,00'"""
    totals = day_totals(day)
    return (
        f"Day {day['day_number']} — {day['date']} · "
        f"est. {format_money(totals['estimated_cents'], code)} · "
        f"spent {format_money(totals['confirmed_cents'], code)}"
    )
