"""
Imperial length parser for calibration input.

Handles the feet/inches notations an operator types when calibrating a page
against a known dimension on the drawing:
  8'        -> 8 feet 0 inches  = 8.0 ft
  8'6"      -> 8 feet 6 inches  = 8.5 ft
  8' 6"     -> 8 feet 6 inches  = 8.5 ft
  8'-6"     -> 8 feet 6 inches  = 8.5 ft
  6"        -> 0 feet 6 inches  = 0.5 ft
  2.5'      -> 2 feet 6 inches  = 2.5 ft
  3ft 6in   -> 3 feet 6 inches  = 3.5 ft
  12.75     -> bare number, read as decimal feet
"""

import re
from dataclasses import dataclass
from typing import Optional

from takeoff_editor.errors import CalibrationError


@dataclass
class ImperialLength:
    """Parsed imperial length."""
    feet: int
    inches: float
    total_inches: float
    raw_text: str

    @property
    def total_feet(self) -> float:
        return self.total_inches / 12.0

    @property
    def display(self) -> str:
        """Human-readable display string."""
        if self.feet == 0:
            return f'{self.inches:g}"'
        if self.inches == 0:
            return f"{self.feet}'"
        return f"{self.feet}' {self.inches:g}\""


def _feet_and_inches(m: re.Match) -> tuple[int, float]:
    return int(m.group(1)), float(m.group(2))


def _whole_feet(m: re.Match) -> tuple[int, float]:
    return int(m.group(1)), 0.0


def _decimal_feet(m: re.Match) -> tuple[int, float]:
    value = float(m.group(1))
    return int(value), (value - int(value)) * 12


def _inches(m: re.Match) -> tuple[int, float]:
    return 0, float(m.group(1))


_FOOT = "['‘’ʼ]"
_INCH = "[\"“”″]"
_NUMBER = r"\d+(?:\.\d+)?"

# Tried in order; the first notation that matches wins
_NOTATIONS = [
    (rf"(\d+)\s*{_FOOT}\s*[-–]?\s*({_NUMBER})\s*{_INCH}", _feet_and_inches),   # 8'6", 8' - 6"
    (rf"(\d+)\s*ft\.?\s*({_NUMBER})\s*in\.?", _feet_and_inches),               # 3ft 6in
    (r"(\d+)\s*ft\.?(?!\s*\d)", _whole_feet),                                   # 3ft
    (rf"(\d+\.\d+)\s*{_FOOT}", _decimal_feet),                                  # 2.5'
    (rf"(\d+)\s*{_FOOT}(?!\s*[-–]?\s*\d)", _whole_feet),                        # 8'
    (rf"({_NUMBER})\s*{_INCH}", _inches),                                       # 6"
    (rf"({_NUMBER})\s*in\.?", _inches),                                         # 6in
    (rf"^({_NUMBER})$", _decimal_feet),                                         # 12.75
]

_COMPILED = [(re.compile(p, re.IGNORECASE), convert) for p, convert in _NOTATIONS]

# A typed length is a distance; a leading sign is refused rather than dropped
_SIGNED = re.compile(r"^[-−–+]")


def parse(text: str) -> Optional[ImperialLength]:
    """
    Parse a typed length into an ImperialLength.

    Returns None for empty text, signed values (``-5'``) and anything that
    is not one of the notations above.
    """
    cleaned = text.strip() if text else ""
    if not cleaned or _SIGNED.match(cleaned):
        return None

    for pattern, convert in _COMPILED:
        m = pattern.search(cleaned)
        if m is None:
            continue
        feet, inches = convert(m)
        return ImperialLength(
            feet=feet,
            inches=round(inches, 4),
            total_inches=feet * 12 + inches,
            raw_text=cleaned,
        )
    return None


def parse_strict(text: str) -> ImperialLength:
    """
    Parse text or raise CalibrationError if it doesn't match.
    """
    result = parse(text)
    if result is None:
        raise CalibrationError(f"Cannot parse imperial length: {text!r}")
    return result


def is_imperial(text: str) -> bool:
    """Check if text looks like an imperial length."""
    return parse(text) is not None
