"""Money parsing and formatting for the supported trip currencies."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from tripshare.errors import ErrorCode, ValidationError


CURRENCY_SYMBOLS: dict[str, str] = {
    "BRL": "R$",
    "USD": "$",
    "EUR": "€",
}


def currency_symbol(code: str) -> str:
    return CURRENCY_SYMBOLS.get((code or "").upper(), code or "")


def to_cents(amount: float | int | str | Decimal) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValidationError(f"not a number: {amount!r}", code=ErrorCode.INVALID_BUDGET) from e
    if not value.is_finite():
        raise ValidationError(f"not a number: {amount!r}", code=ErrorCode.INVALID_BUDGET)
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_amount(text: str) -> int:
    """Parse user input such as '1000', '1,000.50' or '1.000,50' into cents.

    When both separators appear, the last one is the decimal mark. A lone
    comma is a decimal mark ('12,5'); a lone dot stays a decimal point.
    """
    cleaned = re.sub(r"[^\d.,\-]", "", (text or "").strip())
    if not cleaned or not re.search(r"\d", cleaned):
        raise ValidationError(f"not a number: {text!r}", code=ErrorCode.INVALID_BUDGET)

    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", ".") if cleaned.count(",") == 1 else cleaned.replace(",", "")
    return to_cents(cleaned)


def format_money(amount_cents: int | None, code: str = "BRL") -> str:
    """Format cents as 'R$ 1.234,56': thousands dot, decimal comma, sign first."""
    if amount_cents is None:
        return "N/A"
    sign = "-" if amount_cents < 0 else ""
    units, cents = divmod(abs(amount_cents), 100)
    grouped = f"{units:,}".replace(",", ".")
    return f"{sign}{currency_symbol(code)} {grouped},{cents:02d}"
