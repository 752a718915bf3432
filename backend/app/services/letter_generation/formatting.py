"""
Field Formatters

One rendering convention for money and dates across letters and the N1 form.
"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

PENNY = Decimal("0.01")

# Fixed English names; strftime("%B") follows LC_TIME
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

CURRENCY_SYMBOLS = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
}


def _pence(amount) -> Decimal:
    return Decimal(str(amount)).quantize(PENNY, rounding=ROUND_HALF_UP)


def format_money(amount, currency: str = "GBP") -> str:
    """Decimal(1234.5) -> '£1,234.50'"""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    return f"{symbol}{_pence(amount):,.2f}"


def format_money_for_form(amount) -> str:
    """Plain figure for form boxes that already print the currency: '1234.50'"""
    return f"{_pence(amount):.2f}"


def format_date(value: date) -> str:
    """date(2024, 2, 1) -> '1 February 2024'"""
    return f"{value.day} {MONTH_NAMES[value.month - 1]} {value.year}"


def format_rate(percent: Decimal) -> str:
    """Decimal('12.75') -> '12.75%', Decimal('8.0') -> '8%'"""
    text = format(percent.normalize(), "f")
    return f"{text}%"
