"""
Display helpers for takeoff quantities.
"""

from typing import Optional

from takeoff_editor.domain.constants import SQUARE_FEET_PER_SQUARE


def format_feet_inches(feet: Optional[float]) -> str:
    """12.5 -> 12' 6\"; rounds to the nearest inch."""
    if feet is None:
        return "-"
    sign = "-" if feet < 0 else ""
    total_inches = round(abs(feet) * 12)
    whole_feet, inches = divmod(total_inches, 12)
    if inches == 0:
        return f"{sign}{whole_feet}'"
    if whole_feet == 0:
        return f'{sign}{inches}"'
    return f"{sign}{whole_feet}' {inches}\""


def format_area(square_feet: Optional[float], decimals: int = 1) -> str:
    if square_feet is None:
        return "-"
    return f"{square_feet:,.{decimals}f} SF"


def format_length(linear_feet: Optional[float], decimals: int = 1) -> str:
    if linear_feet is None:
        return "-"
    return f"{linear_feet:,.{decimals}f} LF"


def to_squares(square_feet: float) -> float:
    """Siding squares (100 SF each)."""
    return square_feet / SQUARE_FEET_PER_SQUARE
