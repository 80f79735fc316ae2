"""
Field access and coercion helpers for raw operational records.

Records arrive as flat key-value mappings entered by hand or imported from
spreadsheets, so every numeric field may be missing, blank, or garbage.
The helpers here never raise: a value that can't be read as a finite number
is 0, and a value that can't be read as a date is None.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional


ZERO = Decimal(0)

# Amounts and quantities outside 1e-15 .. 1e15 read as 0 so sums and ratios stay
# inside the decimal context range
MAX_ADJUSTED_EXPONENT = 15
MIN_ADJUSTED_EXPONENT = -15


def _in_range(value: Decimal) -> bool:
    if not value.is_finite() or value.is_zero():
        return False
    return MIN_ADJUSTED_EXPONENT <= value.adjusted() <= MAX_ADJUSTED_EXPONENT


def to_decimal(value: Any) -> Decimal:
    """
    Coerce an arbitrary value to a finite Decimal, falling back to 0.

    Values too large or too small to be a real amount also read as 0.

    Examples:
        >>> to_decimal("12.5")
        Decimal('12.5')
        >>> to_decimal(None)
        Decimal('0')
        >>> to_decimal("n/a")
        Decimal('0')
        >>> to_decimal(float("nan"))
        Decimal('0')
        >>> to_decimal("9E+999999")
        Decimal('0')
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if _in_range(value) else ZERO
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    return result if _in_range(result) else ZERO


def first_present(record: Mapping[str, Any], *keys: str) -> Any:
    """Return the first value under `keys` that is not None, else None."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def number_field(record: Mapping[str, Any], *keys: str) -> Decimal:
    """Read a numeric field, trying each alias in order."""
    if not isinstance(record, Mapping):
        return ZERO
    return to_decimal(first_present(record, *keys))


def text_field(record: Mapping[str, Any], *keys: str) -> str:
    """Read a text field, trying each alias in order. Empty values are skipped."""
    if not isinstance(record, Mapping):
        return ""
    for key in keys:
        value = record.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def parse_date(value: Any) -> Optional[date]:
    """
    Read a record date (date, datetime, or ISO string). Returns None if unreadable.

    Examples:
        >>> parse_date("2024-03-15")
        datetime.date(2024, 3, 15)
        >>> parse_date("2024-03-15T22:10:00")
        datetime.date(2024, 3, 15)
        >>> parse_date("") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) < 10:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def month_key(value: Any) -> Optional[str]:
    """Bucket a record date into its calendar month, e.g. "2024-03"."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return f"{parsed.year}-{parsed.month:02d}"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window. Either bound may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def from_values(cls, start: Any = None, end: Any = None) -> "DateRange":
        return cls(start=parse_date(start), end=parse_date(end))

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, value: Any) -> bool:
        """True if the date falls inside the window. Unreadable dates never do."""
        parsed = parse_date(value)
        if parsed is None:
            return False
        if self.start is not None and parsed < self.start:
            return False
        if self.end is not None and parsed > self.end:
            return False
        return True

    def admits(self, value: Any) -> bool:
        """
        Row-level inclusion rule: undated rows are always kept, dated rows
        only when they fall inside the window.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return True
        if self.is_open:
            return True
        return self.contains(value)
