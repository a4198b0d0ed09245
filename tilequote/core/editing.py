"""
Field-edit reducers.
Each function takes the previous state and one changed field and returns a new
state with every dependent field recomputed. Nothing here mutates its input.
"""

import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Optional

from tilequote.core.calculations import (
    Number, compute_adhesive_total, compute_box_count, compute_discounted_price,
    compute_fitting_total, compute_tile_total, to_decimal
)
from tilequote.core.models import (
    AdhesiveProduct, BusinessProfile, CatalogItemType, Customer, FittingProduct,
    QuotationDraft, QuotationLineItem, Staff, TileProduct, coerce_field, field_names
)

# Fields that are always derived and never edited directly
DERIVED_FIELDS = {
    TileProduct: {'discounted_price', 'no_of_boxes', 'total_amount'},
    AdhesiveProduct: {'total_amount'},
    FittingProduct: {'total_amount'},
}


def recalculate(item: CatalogItemType) -> CatalogItemType:
    """Recompute every derived field of a catalog item from its inputs."""
    if isinstance(item, TileProduct):
        discounted_price = compute_discounted_price(item.mrp, item.discount)
        no_of_boxes = compute_box_count(item.area_required, item.items_per_box)
        return replace(
            item,
            discounted_price=discounted_price,
            no_of_boxes=no_of_boxes,
            total_amount=compute_tile_total(discounted_price, no_of_boxes),
        )
    if isinstance(item, AdhesiveProduct):
        return replace(item, total_amount=compute_adhesive_total(item.d_price, item.no_of_bags))
    if isinstance(item, FittingProduct):
        return replace(item, total_amount=compute_fitting_total(item.d_price, item.nos))
    raise TypeError(f"Unsupported catalog item type: {type(item).__name__}")


def apply_catalog_change(item: CatalogItemType, field: str, value: Any) -> CatalogItemType:
    """
    Apply one form edit to a catalog item.

    Raises:
        ValueError: if the field does not exist or is derived
    """
    cls = type(item)
    if field not in field_names(cls) or field == 'id':
        raise ValueError(f"{cls.__name__} has no editable field {field!r}")
    if field in DERIVED_FIELDS.get(cls, ()):
        raise ValueError(f"{field!r} is derived and cannot be edited directly")

    updated = replace(item, **{field: coerce_field(cls, field, value)})
    return recalculate(updated)


LINE_FIELDS = ('quantity', 'unit_price', 'discount_percent')


def apply_line_change(line: QuotationLineItem, field: str, value: Number) -> QuotationLineItem:
    """Apply an edit to a line item's purchase parameters."""
    if field not in LINE_FIELDS:
        raise ValueError(f"Line items have no editable field {field!r}")
    return replace(line, **{field: to_decimal(value)})


def line_item_from_catalog(item: CatalogItemType, quantity: Number = 1,
                           discount_percent: Number = 0,
                           unit_price: Optional[Number] = None,
                           line_id: Optional[str] = None) -> QuotationLineItem:
    """
    Snapshot a catalog item into a new line item.

    The unit price defaults to the item's net price (falling back to MRP).
    """
    return QuotationLineItem(
        id=line_id or str(uuid.uuid4()),
        product=item,
        quantity=to_decimal(quantity),
        unit_price=to_decimal(unit_price) if unit_price is not None else item.net_price,
        discount_percent=to_decimal(discount_percent),
    )


DRAFT_FIELDS = ('quotation_number', 'issue_date', 'validity_days', 'tax_rate',
                'terms', 'customer', 'staff', 'company', 'items')


def apply_draft_change(draft: QuotationDraft, field: str, value: Any) -> QuotationDraft:
    """
    Apply an edit to the quotation draft.

    Selecting a salesperson also moves the company address to the
    salesperson's branch.
    """
    if field not in DRAFT_FIELDS:
        raise ValueError(f"Quotation drafts have no field {field!r}")

    if field == 'staff':
        staff: Optional[Staff] = value
        return replace(draft, staff=staff, company=draft.company.with_branch(staff))
    if field == 'tax_rate':
        return replace(draft, tax_rate=to_decimal(value))
    if field == 'validity_days':
        return replace(draft, validity_days=int(value))
    if field == 'issue_date' and not isinstance(value, date):
        return replace(draft, issue_date=date.fromisoformat(str(value)))
    if field == 'items':
        return replace(draft, items=tuple(value))
    if field == 'customer' and not isinstance(value, Customer):
        raise TypeError("customer must be a Customer")
    if field == 'company' and not isinstance(value, BusinessProfile):
        raise TypeError("company must be a BusinessProfile")
    return replace(draft, **{field: value})


def update_customer_field(customer: Customer, field: str, value: str) -> Customer:
    if field not in field_names(Customer):
        raise ValueError(f"Customers have no field {field!r}")
    return replace(customer, **{field: value or ""})
