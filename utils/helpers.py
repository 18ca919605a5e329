"""
Common helper utilities for the application.
"""

from typing import Any
import pandas as pd


def safe_float(value: Any, default: float = 0.0) -> float:
    """
    Safely convert value to float.

    Args:
        value: Value to convert
        default: Default value if conversion fails

    Returns:
        Float value or default
    """
    try:
        if pd.isna(value):
            return default
        return float(value)
    except (ValueError, TypeError):
        return default


def format_large_number(value: float, decimals: int = 2) -> str:
    """
    Format large numbers with appropriate suffix (K, M, B, T).

    Args:
        value: Number to format
        decimals: Number of decimal places

    Returns:
        Formatted string (e.g., '1.23B')
    """
    if abs(value) >= 1e12:
        return f"{value / 1e12:.{decimals}f}T"
    elif abs(value) >= 1e9:
        return f"{value / 1e9:.{decimals}f}B"
    elif abs(value) >= 1e6:
        return f"{value / 1e6:.{decimals}f}M"
    elif abs(value) >= 1e3:
        return f"{value / 1e3:.{decimals}f}K"
    else:
        return f"{value:.{decimals}f}"


def contains_any(text: str, terms) -> bool:
    """Case-insensitive substring test of `text` against any of `terms`."""
    lowered = (text or "").lower()
    return any(term in lowered for term in terms)
