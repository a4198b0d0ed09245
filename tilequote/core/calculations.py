"""
Pricing calculations for quotations.
Pure functions: every result depends only on the arguments. Values keep full
Decimal precision; rounding to 2 places happens only in the presentation
helpers at the bottom of this module.
"""

import math
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Union

Number = Union[Decimal, int, float, str]

HUNDRED = Decimal('100')
DEFAULT_ITEMS_PER_BOX = 3


def to_decimal(value: Number, default: str = '0') -> Decimal:
    """
    Convert a number (or numeric string) to Decimal without float artifacts.

    Blank, non-numeric and non-finite input falls back to default, the way
    the browser forms treated unparseable fields.
    """
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            return Decimal(default)
    if not result.is_finite():
        return Decimal(default)
    return result


def compute_discounted_price(base_price: Number, discount_percent: Number) -> Decimal:
    """
    Net price after a percentage discount.

    The discount is not clamped; values outside [0, 100] propagate
    arithmetically and must be rejected by the caller.
    """
    base_price = to_decimal(base_price)
    return base_price - base_price * to_decimal(discount_percent) / HUNDRED


def compute_line_total(unit_price: Number, quantity: Number,
                       discount_percent: Number) -> Dict[str, Decimal]:
    """
    Calculate the totals of one quotation line.

    Returns:
        Dictionary with calculated values:
        - subtotal: unit_price * quantity
        - discount_amount: subtotal * discount_percent / 100
        - total: subtotal - discount_amount
    """
    subtotal = to_decimal(unit_price) * to_decimal(quantity)
    discount_amount = subtotal * to_decimal(discount_percent) / HUNDRED

    return {
        'subtotal': subtotal,
        'discount_amount': discount_amount,
        'total': subtotal - discount_amount,
    }


def compute_box_count(area_required: Number, items_per_box: Number = None) -> int:
    """
    Number of whole boxes needed to cover area_required.

    items_per_box falls back to DEFAULT_ITEMS_PER_BOX when unset or not positive.
    A negative area is out of range and yields 0; callers reject it before
    storing.
    """
    area_required = to_decimal(area_required)
    if area_required <= 0:
        return 0

    per_box = to_decimal(items_per_box)
    if per_box <= 0:
        per_box = Decimal(DEFAULT_ITEMS_PER_BOX)

    return int(math.ceil(area_required / per_box))


def compute_quotation_totals(line_items: Iterable[Any],
                             tax_rate_percent: Number) -> Dict[str, Decimal]:
    """
    Calculate quotation totals from line items.

    Args:
        line_items: Objects with a ``line_total`` attribute, or mappings with a
            'total' / 'line_total' key. Summed in input order.
        tax_rate_percent: Tax rate as a percentage (18 means 18 %)

    Returns:
        Dictionary with quotation totals:
        - subtotal: sum of line totals
        - tax_amount: subtotal * tax_rate_percent / 100
        - grand_total: subtotal + tax_amount
    """
    subtotal = Decimal('0')
    for item in line_items:
        subtotal += _line_total_of(item)

    tax_amount = subtotal * to_decimal(tax_rate_percent) / HUNDRED

    return {
        'subtotal': subtotal,
        'tax_amount': tax_amount,
        'grand_total': subtotal + tax_amount,
    }


def _line_total_of(item: Any) -> Decimal:
    if isinstance(item, dict):
        if 'total' in item:
            return to_decimal(item['total'])
        return to_decimal(item.get('line_total', 0))
    if hasattr(item, 'line_total'):
        return to_decimal(item.line_total)
    return to_decimal(item)


def compute_expiry_date(issue_date: date, validity_days: int) -> date:
    """Calendar date validity_days after issue_date."""
    return issue_date + timedelta(days=int(validity_days))


# Catalog form totals

def compute_tile_total(discounted_price: Number, no_of_boxes: Number) -> Decimal:
    """Tile amount; tile prices are quoted per box."""
    return to_decimal(discounted_price) * to_decimal(no_of_boxes)


def compute_adhesive_total(d_price: Number, no_of_bags: Number) -> Decimal:
    return to_decimal(d_price) * to_decimal(no_of_bags)


def compute_fitting_total(d_price: Number, nos: Number) -> Decimal:
    return to_decimal(d_price) * to_decimal(nos)


# Presentation

def round_money(value: Number) -> Decimal:
    """Round a monetary value to 2 decimal places for display."""
    return to_decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_money(value: Number, symbol: str = '') -> str:
    """Format a monetary value as '<symbol><amount with 2 decimals>'."""
    return f"{symbol}{round_money(value):.2f}"


def format_rate(rate: Number) -> str:
    """Format a percentage without trailing zeros: 18 -> '18', 18.50 -> '18.5'."""
    return format_number(rate)


def format_number(value: Number) -> str:
    normalized = to_decimal(value).normalize()
    if normalized == normalized.to_integral_value():
        return str(normalized.quantize(Decimal('1')))
    return format(normalized, 'f')
