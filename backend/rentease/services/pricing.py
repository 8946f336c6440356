"""Rental pricing — pure functions over integer paise.

Deposit and platform fee are rounded half-up to whole rupees; everything else
is exact integer arithmetic, so the snapshot invariants hold by construction::

    total_amount    == subtotal + deposit_amount + platform_fee
    lender_earnings == subtotal - platform_fee
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal

from rentease.config import settings
from rentease.exceptions import ValidationError
from rentease.money import round_to_rupee

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class PricingSnapshot:
    """Cost breakdown stored on a booking at creation time."""

    daily_price_paise: int
    total_days: int
    subtotal_paise: int
    deposit_amount_paise: int
    platform_fee_paise: int
    total_amount_paise: int
    lender_earnings_paise: int


@dataclass(frozen=True)
class Extension:
    """Result of extending a rental: the additional charge and the new snapshot."""

    additional_days: int
    additional_cost_paise: int
    pricing: PricingSnapshot


def _ceil_days(span: timedelta) -> int:
    days, remainder = divmod(span, _ONE_DAY)
    return days + (1 if remainder else 0)


def count_days(start: datetime, end: datetime) -> int:
    """Whole days between two instants, rounding partial days up."""
    if end <= start:
        raise ValidationError("End date must be after start date")
    return _ceil_days(end - start)


def calculate_pricing(
    daily_price_paise: int,
    item_value_paise: int,
    deposit_percentage: int | Decimal,
    start: datetime,
    end: datetime,
    platform_fee_percent: Decimal | None = None,
) -> PricingSnapshot:
    """Compute the booking pricing snapshot for renting an item over ``[start, end)``.

    Args:
        daily_price_paise: Item's daily price.
        item_value_paise: Item's replacement value, basis of the deposit.
        deposit_percentage: Share of the item value held as deposit (0-100).
        start: Rental start.
        end: Rental end, strictly after ``start``.
        platform_fee_percent: Marketplace cut of the subtotal. Defaults to
            ``settings.platform_fee_percent``.

    Raises:
        ValidationError: If the date range is empty or reversed, or a term is
            out of range.
    """
    if daily_price_paise <= 0 or item_value_paise <= 0:
        raise ValidationError("Daily price and item value must be positive")
    if not 0 <= deposit_percentage <= 100:
        raise ValidationError("Deposit percentage must be between 0 and 100")
    if platform_fee_percent is None:
        platform_fee_percent = settings.platform_fee_percent

    total_days = count_days(start, end)
    subtotal = daily_price_paise * total_days
    deposit_amount = round_to_rupee(Decimal(item_value_paise) * Decimal(deposit_percentage) / 100)
    platform_fee = round_to_rupee(Decimal(subtotal) * Decimal(platform_fee_percent) / 100)

    return PricingSnapshot(
        daily_price_paise=daily_price_paise,
        total_days=total_days,
        subtotal_paise=subtotal,
        deposit_amount_paise=deposit_amount,
        platform_fee_paise=platform_fee,
        total_amount_paise=subtotal + deposit_amount + platform_fee,
        lender_earnings_paise=subtotal - platform_fee,
    )


def calculate_extension(pricing: PricingSnapshot, current_end: datetime, new_end: datetime) -> Extension:
    """Price an extension of the rental from ``current_end`` to ``new_end``.

    Deposit and platform fee stay at their original values; days, subtotal,
    total amount, and lender earnings all grow by the additional cost.
    """
    if new_end <= current_end:
        raise ValidationError("New end date must be after current end date")

    additional_days = _ceil_days(new_end - current_end)
    additional_cost = additional_days * pricing.daily_price_paise

    extended = replace(
        pricing,
        total_days=pricing.total_days + additional_days,
        subtotal_paise=pricing.subtotal_paise + additional_cost,
        total_amount_paise=pricing.total_amount_paise + additional_cost,
        lender_earnings_paise=pricing.lender_earnings_paise + additional_cost,
    )
    return Extension(additional_days=additional_days, additional_cost_paise=additional_cost, pricing=extended)
