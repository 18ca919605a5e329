"""
Numeric Utilities - Centralized numeric value handling.

Provides standardized functions for:
1. Cleaning numeric values (handling NaN/Inf/None)
2. Safe division
3. Ratio -> percentage normalization for merged records (and back to fractions)

This module ensures consistent behavior across all modules when dealing with
potentially invalid numeric values from financial data sources.
"""

import math
from typing import Any, Dict, Optional

from config.query_config import RATIO_FIELD_NAMES, RATIO_FIELD_SUFFIXES


def clean_numeric(value: Any) -> Optional[float]:
    """
    Clean a numeric value, returning None for invalid values.
    
    This is the core sanitization function. Use before any calculations
    to ensure NaN/Inf/None values are handled consistently.
    
    Args:
        value: Raw value (can be float, int, string number, or None/NaN)
        
    Returns:
        Float value if valid, None if value is missing/invalid
        
    Examples:
        >>> clean_numeric(3.14)
        3.14
        >>> clean_numeric("42.5")
        42.5
        >>> clean_numeric(float('nan'))
        None
        >>> clean_numeric(None)
        None
    """
    if value is None:
        return None
    
    try:
        float_value = float(value)
        if math.isnan(float_value) or math.isinf(float_value):
            return None
        return float_value
    except (ValueError, TypeError):
        return None


def safe_divide(
    numerator: Any, 
    denominator: Any, 
    default: Optional[float] = None
) -> Optional[float]:
    """
    Safely perform division, handling None/NaN/zero denominators.
    
    Args:
        numerator: Dividend value
        denominator: Divisor value
        default: Value to return if division fails
        
    Returns:
        Division result or default if invalid
        
    Examples:
        >>> safe_divide(10, 2)
        5.0
        >>> safe_divide(10, 0)
        None
        >>> safe_divide(None, 5)
        None
    """
    clean_num = clean_numeric(numerator)
    clean_den = clean_numeric(denominator)
    
    if clean_num is None or clean_den is None or clean_den == 0:
        return default
    
    return clean_num / clean_den


def round_to(value: Any, decimals: int = 2) -> Any:
    """Round a valid number; anything else is returned unchanged."""
    cleaned = clean_numeric(value)
    if cleaned is None:
        return value
    return round(cleaned, decimals)


def to_percentage(value: Any, decimals: int = 2) -> Any:
    """
    Convert a fractional ratio to a percentage.

    Values in [-1, 1] are treated as fractions and scaled by 100; values outside
    that range are assumed to be percentages already and are only rounded.
    Non-numeric values (None, "N/A", strings) are returned unchanged, so absent
    data never turns into 0.

    Examples:
        >>> to_percentage(0.031)
        3.1
        >>> to_percentage(-0.25)
        -25.0
        >>> to_percentage(12.345)
        12.35
        >>> to_percentage(None) is None
        True
    """
    if isinstance(value, bool):
        return value
    cleaned = clean_numeric(value)
    if cleaned is None:
        return value
    if -1.0 <= cleaned <= 1.0:
        return round(cleaned * 100, decimals)
    return round(cleaned, decimals)


def is_ratio_field(field_name: str) -> bool:
    """True for fields reported as ratios (yields, growth rates, margins, payout, returns)."""
    lowered = field_name.lower()
    if lowered in RATIO_FIELD_NAMES:
        return True
    return lowered.endswith(RATIO_FIELD_SUFFIXES)


def normalize_ratios(record: Dict[str, Any], decimals: int = 2) -> Dict[str, Any]:
    """
    Return a copy of `record` with every ratio field expressed as a percentage.

    Only keys already present are touched; missing keys stay missing.
    """
    normalized = dict(record)
    for key, value in record.items():
        if is_ratio_field(key):
            normalized[key] = to_percentage(value, decimals)
    return normalized


def ratios_as_fractions(record: Dict[str, Any], decimals: int = 6) -> Dict[str, Any]:
    """
    Copy of a record whose ratio fields are percentages, with those fields as fractions.

    Inverse of normalize_ratios for rows below 100%: 0.5 (percent) -> 0.005.
    Non-numeric values are kept as they are.
    """
    fractions = dict(record)
    for key, value in record.items():
        if not is_ratio_field(key) or isinstance(value, bool):
            continue
        cleaned = clean_numeric(value)
        if cleaned is not None:
            fractions[key] = round(cleaned / 100, decimals)
    return fractions


def percent_of(part: Any, whole: Any, decimals: int = 2) -> Optional[float]:
    """part / whole * 100, rounded; None when either side is missing or whole is 0."""
    ratio = safe_divide(part, whole)
    if ratio is None:
        return None
    return round(ratio * 100, decimals)
