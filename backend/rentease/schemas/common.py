"""Shared schema types."""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

from rentease.money import to_rupees


def _paise_to_rupees(value: Any) -> Any:
    if isinstance(value, int):
        return to_rupees(value)
    return value


# Reads an integer ``*_paise`` attribute and exposes it as a rupee amount.
PaiseAsRupees = Annotated[Decimal, BeforeValidator(_paise_to_rupees)]

# Positive rupee amount accepted from clients, at most two decimal places.
RupeeAmount = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]
