"""
Display formatting for amounts and dates.

Date patterns are stored in the user settings using the token style of the
mobile app ("MM/dd/yyyy", "dd MMM yyyy", ...). They are translated to
strftime directives here so stored settings stay readable by both.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Union


# Supported display patterns (user-selectable)
DATE_FORMATS = {
    "MM/dd/yyyy": "US format",
    "dd/MM/yyyy": "European format",
    "yyyy-MM-dd": "ISO format",
    "dd.MM.yyyy": "German format",
    "MMM dd, yyyy": "Long format",
    "dd MMM yyyy": "Alternative long format",
}

SUPPORTED_CURRENCIES = {
    "USD": ("US Dollar", "$"),
    "GHS": ("Ghanaian Cedi", "₵"),
    "NGN": ("Nigerian Naira", "₦"),
    "CFA": ("Central African Franc", "FCFA"),
    "EUR": ("Euro", "€"),
    "GBP": ("British Pound", "£"),
    "JPY": ("Japanese Yen", "¥"),
    "CAD": ("Canadian Dollar", "C$"),
    "AUD": ("Australian Dollar", "A$"),
    "CHF": ("Swiss Franc", "CHF"),
    "CNY": ("Chinese Yuan", "¥"),
    "INR": ("Indian Rupee", "₹"),
    "BRL": ("Brazilian Real", "R$"),
    "KRW": ("South Korean Won", "₩"),
    "SGD": ("Singapore Dollar", "S$"),
    "HKD": ("Hong Kong Dollar", "HK$"),
    "NOK": ("Norwegian Krone", "kr"),
    "SEK": ("Swedish Krona", "kr"),
    "DKK": ("Danish Krone", "kr"),
    "PLN": ("Polish Złoty", "zł"),
    "RUB": ("Russian Ruble", "₽"),
    "ZAR": ("South African Rand", "R"),
    "MXN": ("Mexican Peso", "$"),
}

_PATTERN_TOKENS = {
    "yyyy": "%Y",
    "MMMM": "%B",
    "MMM": "%b",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "mm": "%M",
    "ss": "%S",
}
_TOKEN_RE = re.compile("|".join(sorted(_PATTERN_TOKENS, key=len, reverse=True)))


def pattern_to_strftime(pattern: str) -> str:
    """Translate a "MM/dd/yyyy"-style pattern into a strftime format."""
    return _TOKEN_RE.sub(lambda m: _PATTERN_TOKENS[m.group(0)], pattern)


def format_date(value: Union[date, datetime], pattern: str = "MM/dd/yyyy") -> str:
    """Format a date or datetime using a display pattern."""
    return value.strftime(pattern_to_strftime(pattern))


def currency_symbol(currency: str) -> str:
    """Get the display symbol for a currency code (USD when unknown)."""
    _, symbol = SUPPORTED_CURRENCIES.get(currency.upper(), SUPPORTED_CURRENCIES["USD"])
    return symbol


def format_currency(amount: Union[Decimal, int, float], currency: str = "USD") -> str:
    """
    Format an amount with its currency symbol and two decimals.

    Unknown currency codes fall back to USD.
    """
    value = Decimal(str(amount))
    symbol = currency_symbol(currency)
    separator = " " if symbol[-1].isalpha() else ""
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{separator}{abs(value):,.2f}"
