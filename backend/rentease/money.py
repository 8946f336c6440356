"""Currency helpers — integer paise internally, rupee decimals at the API edge."""

from decimal import ROUND_HALF_UP, Decimal

PAISE_PER_RUPEE = 100

_TWO_PLACES = Decimal("0.01")
_WHOLE = Decimal("1")


def to_paise(rupees: Decimal | int | str) -> int:
    """Convert a rupee amount to integer paise, rounding half-up to the paisa."""
    value = Decimal(str(rupees)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    return int(value * PAISE_PER_RUPEE)


def to_rupees(paise: int) -> Decimal:
    """Convert integer paise to a two-place rupee ``Decimal``."""
    return (Decimal(paise) / PAISE_PER_RUPEE).quantize(_TWO_PLACES)


def round_to_rupee(paise: Decimal | int) -> int:
    """Round a (possibly fractional) paise amount half-up to whole rupees.

    Returns the result in paise, so ``round_to_rupee(1750) == 1800``.
    """
    rupees = (Decimal(paise) / PAISE_PER_RUPEE).quantize(_WHOLE, rounding=ROUND_HALF_UP)
    return int(rupees) * PAISE_PER_RUPEE


def format_rupees(paise: int) -> str:
    """Human-readable amount for ledger descriptions, e.g. ``₹1,250`` or ``₹99.50``."""
    value = to_rupees(paise)
    if value == value.to_integral_value():
        return f"₹{int(value):,}"
    return f"₹{value:,.2f}"
