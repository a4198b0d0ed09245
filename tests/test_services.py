"""
Tests for the business services: catalog, parties, business profile, drafts,
saved quotations and PDF export.
"""
import random
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from tilequote.core.compositor import ImageInstruction, TextInstruction
from tilequote.core.editing import apply_draft_change
from tilequote.core.exceptions import LogoDecodeError, NotFoundError, ValidationError
from tilequote.core.models import (
    Collection, Customer, ProductCategory, TileProduct
)
from tilequote.core.services import (
    BusinessProfileService, CatalogService, CustomerService, QuotationService,
    StaffService
)


@pytest.fixture
def catalog(repository):
    return CatalogService(repository)


@pytest.fixture
def quotations(repository, paths):
    return QuotationService(repository, paths, rng=random.Random(3))


@pytest.fixture
def ready_draft(quotations, catalog, tile, adhesive, customer, staff):
    """A draft with a customer, a salesperson and two items."""
    catalog.add_item(tile)
    catalog.add_item(adhesive)
    quotations.add_to_draft(tile, quantity=2, discount_percent=10, unit_price=100)
    quotations.add_to_draft(adhesive, quantity=1, unit_price=90)
    draft = quotations.new_draft(date(2024, 1, 1))
    draft = apply_draft_change(draft, 'customer', customer)
    return apply_draft_change(draft, 'staff', staff)


class TestCatalogService:

    def test_add_assigns_id_and_derived_fields(self, catalog):
        item = catalog.add_item(TileProduct(brand="Somany", mrp=Decimal('720'),
                                            discount=Decimal('10'),
                                            area_required=Decimal('10')))
        assert item.id
        assert item.discounted_price == Decimal('648')
        assert item.no_of_boxes == 4
        assert catalog.list_items(ProductCategory.TILES) == [item]

    def test_categories_are_separate(self, catalog, tile, adhesive, repository):
        catalog.add_item(tile)
        catalog.add_item(adhesive)
        assert catalog.list_items(ProductCategory.ADHESIVE) == [adhesive]
        assert len(repository.load(Collection.TILES)) == 1

    def test_duplicate_id(self, catalog, tile):
        catalog.add_item(tile)
        with pytest.raises(ValidationError):
            catalog.add_item(tile)

    def test_brand_required(self, catalog):
        with pytest.raises(ValidationError) as excinfo:
            catalog.add_item(TileProduct(mrp=Decimal('10')))
        assert excinfo.value.field == "brand"

    def test_discount_range(self, catalog):
        with pytest.raises(ValidationError):
            catalog.add_item(TileProduct(brand="Kajaria", discount=Decimal('120')))

    def test_negative_area(self, catalog):
        with pytest.raises(ValidationError):
            catalog.add_item(TileProduct(brand="Kajaria", area_required=Decimal('-1')))

    def test_update_recalculates(self, catalog, tile):
        catalog.add_item(tile)
        updated = catalog.update_item(replace(tile, discount=Decimal('20')))
        assert updated.discounted_price == Decimal('800')
        assert catalog.get_item(ProductCategory.TILES, tile.id).total_amount == Decimal('27200')

    def test_update_missing(self, catalog, tile):
        with pytest.raises(NotFoundError):
            catalog.update_item(tile)

    def test_search(self, catalog, tile, fitting):
        catalog.add_item(tile)
        catalog.add_item(fitting)
        assert catalog.search_items(ProductCategory.TILES, "statuario") == [tile]
        assert catalog.search_items(ProductCategory.CP_SW, "chr-233") == [fitting]
        assert catalog.search_items(ProductCategory.CP_SW, "toilet") == []
        assert catalog.search_items(ProductCategory.CP_SW) == [fitting]

    def test_delete(self, catalog, tile):
        catalog.add_item(tile)
        assert catalog.delete_item(ProductCategory.TILES, tile.id)
        assert not catalog.delete_item(ProductCategory.TILES, tile.id)
        with pytest.raises(NotFoundError):
            catalog.get_item(ProductCategory.TILES, tile.id)


class TestPartyServices:

    def test_customer_crud(self, repository):
        service = CustomerService(repository)
        created = service.create(name="Sunita Rao", company_name="Rao Interiors")
        assert service.get(created.id) == created
        updated = service.update(created.id, phone="+91 9890056789")
        assert updated.phone == "+91 9890056789"
        assert service.delete(created.id)
        assert service.list_all() == []

    def test_customer_name_required(self, repository):
        with pytest.raises(ValidationError):
            CustomerService(repository).create(email="x@example.com")

    def test_customer_search(self, repository):
        service = CustomerService(repository)
        service.create(name="Sunita Rao", company_name="Rao Interiors")
        service.create(name="Anil Mehta")
        assert [c.name for c in service.search("interiors")] == ["Sunita Rao"]
        assert [c.name for c in service.list_all()] == ["Anil Mehta", "Sunita Rao"]

    def test_staff_search_by_branch(self, repository):
        service = StaffService(repository)
        service.create(name="Neha Kulkarni", branch="Pune")
        assert service.search("pune")[0].name == "Neha Kulkarni"

    def test_update_missing(self, repository):
        with pytest.raises(NotFoundError):
            StaffService(repository).update("nope", name="x")


class TestBusinessProfileService:

    def test_defaults(self, repository):
        profile = BusinessProfileService(repository).get_profile()
        assert profile.business_name == "Prateek Tiles and Marble"
        assert profile.default_tax_rate == Decimal('18')
        assert profile.default_validity_days == 15

    def test_update(self, repository):
        service = BusinessProfileService(repository)
        service.update_profile(business_name="Prateek Ceramics", default_tax_rate=12)
        profile = service.get_profile()
        assert profile.business_name == "Prateek Ceramics"
        assert profile.default_tax_rate == Decimal('12')
        assert profile.city == "Mumbai"

    def test_invalid_tax_rate(self, repository):
        with pytest.raises(ValidationError):
            BusinessProfileService(repository).update_profile(default_tax_rate=150)

    def test_logo(self, repository, png_logo):
        service = BusinessProfileService(repository)
        assert service.set_logo(png_logo).logo.startswith("data:image/png;base64,")
        assert service.remove_logo().logo == ""


class TestDraftItems:

    def test_add_update_remove(self, quotations, tile):
        line = quotations.add_to_draft(tile, quantity=2)
        assert line.unit_price == Decimal('900')
        updated = quotations.update_draft_item(line.id, 'quantity', '5')
        assert quotations.get_draft_items() == [updated]
        assert quotations.remove_draft_item(line.id)
        assert quotations.get_draft_items() == []

    def test_rejects_bad_quantity(self, quotations, tile):
        with pytest.raises(ValidationError):
            quotations.add_to_draft(tile, quantity=-1)

    def test_rejects_bad_discount(self, quotations, tile):
        line = quotations.add_to_draft(tile)
        with pytest.raises(ValidationError):
            quotations.update_draft_item(line.id, 'discount_percent', '101')
        assert quotations.get_draft_items()[0].discount_percent == Decimal('0')

    def test_update_missing(self, quotations):
        with pytest.raises(NotFoundError):
            quotations.update_draft_item("missing", 'quantity', 1)

    def test_clear(self, quotations, tile, adhesive):
        quotations.add_to_draft(tile)
        quotations.add_to_draft(adhesive)
        quotations.clear_draft()
        assert quotations.get_draft_items() == []


class TestDrafts:

    def test_new_draft_uses_profile_defaults(self, quotations, repository, tile):
        BusinessProfileService(repository).update_profile(default_validity_days=30)
        quotations.add_to_draft(tile)
        draft = quotations.new_draft(date(2024, 1, 1))
        assert draft.quotation_number.startswith("PTM-240101-")
        assert draft.validity_days == 30
        assert draft.expiry_date == date(2024, 1, 31)
        assert len(draft.items) == 1

    def test_staff_branch_on_draft(self, ready_draft):
        assert ready_draft.company.address == "14 Link Road"
        assert ready_draft.company.business_name == "Prateek Tiles and Marble"

    def test_finalize(self, quotations, ready_draft):
        quotation = quotations.finalize(ready_draft)
        assert quotation.id
        assert quotation.totals == {
            'subtotal': Decimal('270'),
            'tax_amount': Decimal('48.6'),
            'grand_total': Decimal('318.6'),
        }
        assert quotation.created_at is not None

    def test_customer_name_required(self, quotations, ready_draft):
        draft = apply_draft_change(ready_draft, 'customer', Customer())
        with pytest.raises(ValidationError) as excinfo:
            quotations.finalize(draft)
        assert excinfo.value.field == "customer"

    def test_salesperson_required(self, quotations, ready_draft):
        with pytest.raises(ValidationError) as excinfo:
            quotations.finalize(replace(ready_draft, staff=None))
        assert excinfo.value.field == "staff"

    def test_items_required(self, quotations, ready_draft):
        with pytest.raises(ValidationError):
            quotations.finalize(replace(ready_draft, items=()))

    @pytest.mark.parametrize("tax_rate", [Decimal('-1'), Decimal('100.5')])
    def test_tax_rate_range(self, quotations, ready_draft, tax_rate):
        with pytest.raises(ValidationError):
            quotations.finalize(replace(ready_draft, tax_rate=tax_rate))

    def test_validity_at_least_one_day(self, quotations, ready_draft):
        with pytest.raises(ValidationError):
            quotations.finalize(replace(ready_draft, validity_days=0))


class TestSavedQuotations:

    def test_save_prepends(self, quotations, ready_draft):
        first = quotations.save(quotations.finalize(ready_draft))
        second_draft = replace(ready_draft, quotation_number="PTM-240101-999")
        second = quotations.save(quotations.finalize(second_draft))
        assert [q.id for q in quotations.list_quotations()] == [second.id, first.id]

    def test_duplicate_number_rejected(self, quotations, ready_draft):
        quotations.save(quotations.finalize(ready_draft))
        with pytest.raises(ValidationError):
            quotations.save(quotations.finalize(ready_draft))

    def test_get_and_search(self, quotations, ready_draft):
        saved = quotations.save(quotations.finalize(ready_draft))
        assert quotations.get(saved.id).grand_total == Decimal('318.6')
        assert quotations.get_by_number(saved.quotation_number).id == saved.id
        assert quotations.search("anil") == quotations.search(saved.quotation_number[-3:])
        assert quotations.search("nobody") == []

    def test_saved_quotation_is_a_snapshot(self, quotations, catalog, ready_draft, tile):
        saved = quotations.save(quotations.finalize(ready_draft))
        catalog.delete_item(ProductCategory.TILES, tile.id)
        assert quotations.get(saved.id).items[0].product.shade_name == "Statuario Bianco"

    def test_delete(self, quotations, ready_draft):
        saved = quotations.save(quotations.finalize(ready_draft))
        assert quotations.delete(saved.id)
        assert not quotations.delete(saved.id)
        with pytest.raises(NotFoundError):
            quotations.get(saved.id)

    def test_reopen_gets_new_number(self, quotations, ready_draft):
        saved = quotations.save(quotations.finalize(ready_draft))
        reopened = quotations.reopen_as_draft(saved, date(2024, 1, 1))
        assert reopened.quotation_number != saved.quotation_number
        assert reopened.customer.name == "Anil Mehta"
        assert {i.id for i in reopened.items}.isdisjoint({i.id for i in saved.items})
        assert len(quotations.get_draft_items()) == 2

        resaved = quotations.save(quotations.finalize(reopened))
        assert len(quotations.list_quotations()) == 2
        assert quotations.get(saved.id).quotation_number == saved.quotation_number
        assert resaved.grand_total == saved.grand_total


class TestExport:

    def test_export_pdf(self, quotations, ready_draft, paths):
        quotation = quotations.save(quotations.finalize(ready_draft))
        path = quotations.export_pdf(quotation)
        assert path.parent == paths.exports_dir
        assert path.name == f"Quotation-{quotation.quotation_number}.pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_export_with_logo(self, quotations, repository, png_logo, tile, customer, staff, tmp_path):
        BusinessProfileService(repository).set_logo(png_logo)
        quotations.add_to_draft(tile)
        draft = apply_draft_change(quotations.new_draft(date(2024, 1, 1)), 'customer', customer)
        quotation = quotations.finalize(apply_draft_change(draft, 'staff', staff))
        path = quotations.export_pdf(quotation, tmp_path)
        assert b"/Subtype /Image" in path.read_bytes()

    def test_broken_logo(self, quotations, ready_draft):
        quotation = quotations.finalize(ready_draft)
        broken = replace(quotation, company=replace(quotation.company, logo="broken.png"))
        with pytest.raises(FileNotFoundError):
            quotations.build_document(broken)

    def test_undecodable_logo(self, quotations, ready_draft, paths):
        (paths.media_dir / "logo.png").write_bytes(b"not an image")
        quotation = quotations.finalize(ready_draft)
        quotation = replace(quotation, company=replace(quotation.company, logo="logo.png"))
        with pytest.raises(LogoDecodeError):
            quotations.build_document(quotation)
        document = quotations.build_document(quotation, header_logo_fallback=True)
        assert document.filename == quotation.document_filename

    def test_bad_base64_logo(self, quotations, ready_draft):
        quotation = quotations.finalize(ready_draft)
        logo = "data:image/png;base64,@@@not-base64@@@"
        quotation = replace(quotation, company=replace(quotation.company, logo=logo))
        with pytest.raises(LogoDecodeError):
            quotations.build_document(quotation)

        document = quotations.build_document(quotation, header_logo_fallback=True)
        assert not any(isinstance(i, ImageInstruction) for i in document.instructions)
        placeholder_label = [i for i in document.instructions
                             if isinstance(i, TextInstruction) and i.align == "center"
                             and i.text == quotation.company.business_name]
        assert len(placeholder_label) == 1
