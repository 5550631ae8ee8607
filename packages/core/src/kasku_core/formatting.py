"""Number, percentage and month formatting helpers (id-ID conventions)."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

INDONESIAN_MONTHS: tuple[str, ...] = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)

ZERO = Decimal("0")
# Amounts at or above this magnitude are treated as unparsable.
MAX_MAGNITUDE = Decimal("1e18")


def _coerce(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).strip()
        if not text:
            return None
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    else:
        return None
    return result if result.is_finite() else None


def exceeds_magnitude(value: Any) -> bool:
    """True when ``value`` is numeric but too large to be a real amount."""
    result = _coerce(value)
    return result is not None and abs(result) >= MAX_MAGNITUDE


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a value to a finite Decimal, returning ``default`` on failure.

    Accepts Decimal, int, float and numeric strings. Booleans, None, NaN,
    infinities, magnitudes of ``MAX_MAGNITUDE`` or more and anything
    unparsable yield ``default``.
    """
    result = _coerce(value)
    if result is None or abs(result) >= MAX_MAGNITUDE:
        return default
    return result


def quantize_half_up(value: Decimal, exponent: Decimal) -> Decimal:
    """Quantize with ROUND_HALF_UP, widening precision so large values never trap."""
    digits = value.adjusted() - exponent.as_tuple().exponent + 2
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, digits)
        return value.quantize(exponent, rounding=ROUND_HALF_UP)


def round_half_up(value: Decimal) -> Decimal:
    """Round to an integral Decimal, halves away from zero."""
    return quantize_half_up(value, Decimal("1"))


def format_rupiah(value: Any) -> str:
    """Format a number as Indonesian Rupiah without decimals.

    Example:
        >>> format_rupiah(Decimal("1250000"))
        'Rp 1.250.000'
        >>> format_rupiah(-5000)
        '-Rp 5.000'
    """
    amount = round_half_up(to_decimal(value))
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(int(amount)):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"


def format_percentage(value: Optional[Any]) -> str:
    """Format a percentage with one decimal, or ``N/A`` when unknown."""
    if value is None:
        return "N/A"
    numeric = to_decimal(value, default=Decimal("NaN"))
    if numeric.is_nan():
        return "N/A"
    return f"{quantize_half_up(numeric, Decimal('0.1'))}%"


def month_name(month_index: int) -> str:
    """Indonesian month name for a 0-based month index."""
    return INDONESIAN_MONTHS[month_index % 12]


def format_month_year_label(month_index: Optional[int], year: Optional[int]) -> str:
    """Render ``"Oktober 2026"`` style labels; ``-`` when either part is missing."""
    if month_index is None or year is None:
        return "-"
    year_offset, normalized = divmod(month_index, 12)
    return f"{INDONESIAN_MONTHS[normalized]} {year + year_offset}"


__all__ = [
    "INDONESIAN_MONTHS",
    "ZERO",
    "MAX_MAGNITUDE",
    "exceeds_magnitude",
    "to_decimal",
    "quantize_half_up",
    "round_half_up",
    "format_rupiah",
    "format_percentage",
    "month_name",
    "format_month_year_label",
]
