"""
Business services for the quotation system.
Services own validation and persistence; the pricing and layout modules they
call are pure and trust their input.
"""

import random
import uuid
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Type

from tilequote.core.assets import resolve_logo, to_data_url
from tilequote.core.calculations import Number, to_decimal
from tilequote.core.compositor import ComposedDocument, compose_quotation
from tilequote.core.editing import (
    apply_line_change, line_item_from_catalog, recalculate
)
from tilequote.core.exceptions import LogoDecodeError, NotFoundError, ValidationError
from tilequote.core.logging_config import get_logger, log_business_operation
from tilequote.core.models import (
    BusinessProfile, CatalogItemType, Collection, Customer, ProductCategory,
    Quotation, QuotationDraft, QuotationLineItem, Staff, catalog_item_from_record
)
from tilequote.core.paths import AppPaths, app_paths
from tilequote.core.renderer import write_pdf
from tilequote.core.serial import generate_quotation_number
from tilequote.core.storage import Repository

logger = get_logger(__name__)

HUNDRED = Decimal('100')


def _new_id() -> str:
    return str(uuid.uuid4())


def _matches(term: str, values: Iterable[str]) -> bool:
    term = term.lower()
    return any(term in (value or "").lower() for value in values)


class CatalogService:
    """Service for catalog operations, one collection per category."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def list_items(self, category: ProductCategory) -> List[CatalogItemType]:
        records = self.repository.load(Collection.for_category(category))
        return [catalog_item_from_record(category, record) for record in records]

    def get_item(self, category: ProductCategory, item_id: str) -> CatalogItemType:
        for item in self.list_items(category):
            if item.id == item_id:
                return item
        raise NotFoundError(Collection.for_category(category).value, item_id)

    def search_items(self, category: ProductCategory, term: str = "") -> List[CatalogItemType]:
        """Case-insensitive search over the category's descriptive fields."""
        items = self.list_items(category)
        if not term:
            return items
        return [item for item in items if _matches(term, item.search_text)]

    def add_item(self, item: CatalogItemType) -> CatalogItemType:
        """Add a catalog item, assigning an id and recomputing derived fields."""
        self._validate(item)
        item = recalculate(replace(item, id=item.id or _new_id()))
        items = self.list_items(item.category)
        if any(existing.id == item.id for existing in items):
            raise ValidationError(f"Duplicate catalog id {item.id}", "id")
        items.append(item)
        self._save(item.category, items)
        log_business_operation("catalog add", f"{item.category.value} {item.brand} ({item.id})")
        return item

    def update_item(self, item: CatalogItemType) -> CatalogItemType:
        self._validate(item)
        item = recalculate(item)
        items = self.list_items(item.category)
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                self._save(item.category, items)
                log_business_operation("catalog update", f"{item.category.value} {item.id}")
                return item
        raise NotFoundError(Collection.for_category(item.category).value, item.id)

    def delete_item(self, category: ProductCategory, item_id: str) -> bool:
        """Delete a catalog item. Saved quotations keep their own snapshot."""
        items = self.list_items(category)
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        self._save(category, remaining)
        log_business_operation("catalog delete", f"{category.value} {item_id}")
        return True

    def _save(self, category: ProductCategory, items: List[CatalogItemType]):
        self.repository.save(Collection.for_category(category), [i.to_record() for i in items])

    @staticmethod
    def _validate(item: CatalogItemType):
        if not item.brand:
            raise ValidationError("Brand is required", "brand")
        if item.mrp < 0:
            raise ValidationError("MRP must not be negative", "mrp")
        discount = getattr(item, 'discount', Decimal('0'))
        if not Decimal('0') <= discount <= HUNDRED:
            raise ValidationError("Discount must be between 0 and 100", "discount")
        if getattr(item, 'area_required', Decimal('0')) < 0:
            raise ValidationError("Area required must not be negative", "area_required")


class _PartyService:
    """Shared list/search/create/update/delete for customers and staff."""

    model: Type = Customer
    collection: Collection = Collection.CUSTOMERS
    search_fields = ('name',)
    label = "record"

    def __init__(self, repository: Repository):
        self.repository = repository

    def list_all(self) -> List:
        records = self.repository.load(self.collection)
        return sorted((self.model.from_record(r) for r in records), key=lambda p: p.name.lower())

    def get(self, record_id: str):
        for party in self.list_all():
            if party.id == record_id:
                return party
        raise NotFoundError(self.collection.value, record_id)

    def search(self, term: str = "") -> List:
        parties = self.list_all()
        if not term:
            return parties
        return [p for p in parties if _matches(term, (getattr(p, f) for f in self.search_fields))]

    def create(self, **kwargs):
        party = self.model(**kwargs)
        if not party.name:
            raise ValidationError(f"{self.label.capitalize()} name is required", "name")
        party = replace(party, id=party.id or _new_id())
        records = self.repository.load(self.collection)
        records.append(party.to_record())
        self.repository.save(self.collection, records)
        log_business_operation(f"{self.label} create", f"{party.name} ({party.id})")
        return party

    def update(self, record_id: str, **kwargs):
        """Update fields of an existing record."""
        records = self.repository.load(self.collection)
        for index, record in enumerate(records):
            if str(record.get('id')) == record_id:
                party = replace(self.model.from_record(record), **kwargs)
                if not party.name:
                    raise ValidationError(f"{self.label.capitalize()} name is required", "name")
                records[index] = party.to_record()
                self.repository.save(self.collection, records)
                log_business_operation(f"{self.label} update", record_id)
                return party
        raise NotFoundError(self.collection.value, record_id)

    def delete(self, record_id: str) -> bool:
        records = self.repository.load(self.collection)
        remaining = [r for r in records if str(r.get('id')) != record_id]
        if len(remaining) == len(records):
            return False
        self.repository.save(self.collection, remaining)
        log_business_operation(f"{self.label} delete", record_id)
        return True


class CustomerService(_PartyService):
    model = Customer
    collection = Collection.CUSTOMERS
    search_fields = ('name', 'company_name', 'email', 'phone', 'customer_code')
    label = "customer"


class StaffService(_PartyService):
    model = Staff
    collection = Collection.STAFF
    search_fields = ('name', 'email', 'position', 'branch', 'staff_code')
    label = "staff"


class BusinessProfileService:
    """Service for the business profile (company details and defaults)."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def get_profile(self) -> BusinessProfile:
        """Get the business profile, falling back to defaults when unset."""
        records = self.repository.load(Collection.BUSINESS_SETTINGS)
        if not records:
            return BusinessProfile()
        return BusinessProfile.from_record(records[0])

    def update_profile(self, **kwargs) -> BusinessProfile:
        profile = replace(self.get_profile(), **kwargs)
        profile = replace(
            profile,
            default_tax_rate=to_decimal(profile.default_tax_rate),
            default_validity_days=int(profile.default_validity_days),
        )
        if not Decimal('0') <= profile.default_tax_rate <= HUNDRED:
            raise ValidationError("Tax rate must be between 0 and 100", "default_tax_rate")
        if profile.default_validity_days < 1:
            raise ValidationError("Validity must be at least one day", "default_validity_days")
        self.repository.save(Collection.BUSINESS_SETTINGS, [profile.to_record()])
        log_business_operation("profile update", ", ".join(sorted(kwargs)))
        return profile

    def set_logo(self, data: bytes, mime_type: str = "image/png") -> BusinessProfile:
        return self.update_profile(logo=to_data_url(data, mime_type))

    def remove_logo(self) -> BusinessProfile:
        return self.update_profile(logo="")


class QuotationService:
    """Service for quotation drafts, saved quotations and document export."""

    def __init__(self, repository: Repository, paths: AppPaths = app_paths,
                 rng: Optional[random.Random] = None):
        self.repository = repository
        self.paths = paths
        self.rng = rng
        self.profiles = BusinessProfileService(repository)

    # Draft items

    def get_draft_items(self) -> List[QuotationLineItem]:
        records = self.repository.load(Collection.DRAFT_ITEMS)
        return [QuotationLineItem.from_record(r) for r in records]

    def _save_draft_items(self, items: Iterable[QuotationLineItem]):
        self.repository.save(Collection.DRAFT_ITEMS, [item.to_record() for item in items])

    def add_to_draft(self, product: CatalogItemType, quantity: Number = 1,
                     discount_percent: Number = 0,
                     unit_price: Optional[Number] = None) -> QuotationLineItem:
        """Snapshot a catalog item into the current draft."""
        line = line_item_from_catalog(product, quantity, discount_percent, unit_price)
        self.validate_line(line)
        items = self.get_draft_items()
        items.append(line)
        self._save_draft_items(items)
        log_business_operation("draft add", f"{product.brand} x {line.quantity}")
        return line

    def update_draft_item(self, line_id: str, field: str, value: Number) -> QuotationLineItem:
        items = self.get_draft_items()
        for index, line in enumerate(items):
            if line.id == line_id:
                updated = apply_line_change(line, field, value)
                self.validate_line(updated)
                items[index] = updated
                self._save_draft_items(items)
                return updated
        raise NotFoundError(Collection.DRAFT_ITEMS.value, line_id)

    def remove_draft_item(self, line_id: str) -> bool:
        items = self.get_draft_items()
        remaining = [line for line in items if line.id != line_id]
        if len(remaining) == len(items):
            return False
        self._save_draft_items(remaining)
        return True

    def clear_draft(self):
        self._save_draft_items([])

    # Drafts

    def existing_numbers(self) -> List[str]:
        return [r.get('quotationNumber', '') for r in self.repository.load(Collection.QUOTATIONS)]

    def new_draft(self, issue_date: Optional[date] = None) -> QuotationDraft:
        """Start a draft from the business defaults and the stored draft items."""
        issue_date = issue_date or date.today()
        profile = self.profiles.get_profile()
        return QuotationDraft(
            quotation_number=generate_quotation_number(issue_date, self.existing_numbers(), self.rng),
            issue_date=issue_date,
            validity_days=profile.default_validity_days,
            tax_rate=profile.default_tax_rate,
            terms=profile.default_terms,
            company=profile,
            items=tuple(self.get_draft_items()),
        )

    @staticmethod
    def validate_line(line: QuotationLineItem):
        if line.quantity < 0:
            raise ValidationError("Quantity must not be negative", "quantity")
        if line.unit_price < 0:
            raise ValidationError("Unit price must not be negative", "unit_price")
        if not Decimal('0') <= line.discount_percent <= HUNDRED:
            raise ValidationError("Discount must be between 0 and 100", "discount_percent")

    def validate_draft(self, draft: QuotationDraft):
        """
        Check a draft before it becomes a quotation.

        Raises:
            ValidationError: naming the first offending field
        """
        if not draft.customer.name:
            raise ValidationError("Please enter customer name", "customer")
        if draft.staff is None:
            raise ValidationError("Please select a salesperson", "staff")
        if not draft.items:
            raise ValidationError("Please add at least one product to generate a quotation", "items")
        if not draft.quotation_number:
            raise ValidationError("Quotation number is missing", "quotation_number")
        if draft.validity_days < 1:
            raise ValidationError("Validity must be at least one day", "validity_days")
        if not Decimal('0') <= draft.tax_rate <= HUNDRED:
            raise ValidationError("Tax rate must be between 0 and 100", "tax_rate")
        for line in draft.items:
            self.validate_line(line)

    def finalize(self, draft: QuotationDraft) -> Quotation:
        """Turn a validated draft into an immutable quotation."""
        self.validate_draft(draft)
        logger.debug(f"Finalizing {draft.quotation_number} with {len(draft.items)} items")
        return Quotation(
            id=_new_id(),
            quotation_number=draft.quotation_number,
            issue_date=draft.issue_date,
            validity_days=draft.validity_days,
            customer=draft.customer,
            staff=draft.staff,
            company=draft.company,
            items=tuple(draft.items),
            tax_rate=draft.tax_rate,
            terms=draft.terms,
            created_at=datetime.utcnow(),
        )

    # Saved quotations

    def save(self, quotation: Quotation) -> Quotation:
        """
        Store a quotation as a new historical record, newest first.

        Raises:
            ValidationError: if the id or quotation number is already stored
        """
        records = self.repository.load(Collection.QUOTATIONS)
        for record in records:
            if record.get('id') == quotation.id:
                raise ValidationError(f"Quotation {quotation.id} is already saved", "id")
            if record.get('quotationNumber') == quotation.quotation_number:
                raise ValidationError(
                    f"Quotation number {quotation.quotation_number} is already used",
                    "quotation_number",
                )
        self.repository.save(Collection.QUOTATIONS, [quotation.to_record()] + records)
        log_business_operation(
            "quotation save",
            f"{quotation.quotation_number} for {quotation.customer.name}, "
            f"{len(quotation.items)} items",
        )
        return quotation

    def list_quotations(self) -> List[Quotation]:
        return [Quotation.from_record(r) for r in self.repository.load(Collection.QUOTATIONS)]

    def get(self, quotation_id: str) -> Quotation:
        for quotation in self.list_quotations():
            if quotation.id == quotation_id:
                return quotation
        raise NotFoundError(Collection.QUOTATIONS.value, quotation_id)

    def get_by_number(self, quotation_number: str) -> Quotation:
        for quotation in self.list_quotations():
            if quotation.quotation_number == quotation_number:
                return quotation
        raise NotFoundError(Collection.QUOTATIONS.value, quotation_number)

    def search(self, term: str = "") -> List[Quotation]:
        """Search saved quotations by number or customer name."""
        quotations = self.list_quotations()
        if not term:
            return quotations
        return [q for q in quotations
                if _matches(term, (q.quotation_number, q.customer.name))]

    def delete(self, quotation_id: str) -> bool:
        records = self.repository.load(Collection.QUOTATIONS)
        remaining = [r for r in records if r.get('id') != quotation_id]
        if len(remaining) == len(records):
            return False
        self.repository.save(Collection.QUOTATIONS, remaining)
        log_business_operation("quotation delete", quotation_id)
        return True

    def reopen_as_draft(self, quotation: Quotation,
                        issue_date: Optional[date] = None) -> QuotationDraft:
        """
        Start a new draft from a saved quotation.

        The saved record is left untouched; saving the draft creates a new
        quotation with its own number.
        """
        issue_date = issue_date or date.today()
        items = tuple(replace(item, id=_new_id()) for item in quotation.items)
        self._save_draft_items(items)
        log_business_operation("quotation reopen", quotation.quotation_number)
        return QuotationDraft(
            quotation_number=generate_quotation_number(issue_date, self.existing_numbers(), self.rng),
            issue_date=issue_date,
            validity_days=quotation.validity_days,
            tax_rate=quotation.tax_rate,
            terms=quotation.terms,
            customer=quotation.customer,
            staff=quotation.staff,
            company=quotation.company,
            items=items,
        )

    # Documents

    def build_document(self, quotation: Quotation,
                       header_logo_fallback: bool = False) -> ComposedDocument:
        try:
            logo = resolve_logo(quotation.company.logo, self.paths)
        except LogoDecodeError as e:
            if not header_logo_fallback:
                raise
            # Hand the raw payload on; the header skips it and the signature
            # draws its placeholder
            logger.warning(f"Logo of {quotation.quotation_number} kept undecoded: {e}")
            logo = str(quotation.company.logo).encode('utf-8', 'replace')
        return compose_quotation(quotation, logo, header_logo_fallback=header_logo_fallback)

    def export_pdf(self, quotation: Quotation, output_dir: Optional[Path] = None,
                   header_logo_fallback: bool = False) -> Path:
        """Write Quotation-<number>.pdf and return its path."""
        document = self.build_document(quotation, header_logo_fallback)
        path = write_pdf(document, output_dir or self.paths.exports_dir)
        log_business_operation("quotation export", f"{quotation.quotation_number} -> {path}")
        return path
