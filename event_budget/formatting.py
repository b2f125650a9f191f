"""Formatting utilities for currency display."""

from __future__ import annotations

from typing import Union


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format a currency amount with proper formatting.

    Args:
        amount: The amount to format
        include_sign: Whether to include the dollar sign

    Returns:
        Formatted currency string (e.g., "$1,234.56" or "1,234.56")

    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(1234.56, include_sign=False)
        '1,234.56'
    """
    formatted = f"{amount:,.2f}"
    return f"${formatted}" if include_sign else formatted


def format_profit(amount: Union[float, int]) -> str:
    """Signed currency for a net result.

    Example:
        >>> format_profit(-250)
        '-$250.00'
    """
    sign = "+" if amount >= 0 else "-"
    return f"{sign}{format_currency(abs(amount))}"


def escape_dollar_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown does not read them as LaTeX."""
    return text.replace("$", "\\$")
