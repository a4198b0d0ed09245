"""
Shared pytest fixtures for the tilequote test suite.
"""
import io
from datetime import date, datetime
from decimal import Decimal

import pytest
from PIL import Image

from tilequote.core.editing import line_item_from_catalog, recalculate
from tilequote.core.models import (
    AdhesiveProduct, BusinessProfile, Customer, FittingProduct, Quotation,
    Staff, TileProduct
)
from tilequote.core.paths import AppPaths
from tilequote.core.storage import InMemoryRepository


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def paths(tmp_path):
    """Application paths rooted in an isolated tmp directory."""
    return AppPaths(tmp_path / "appdata")


@pytest.fixture
def png_logo():
    """A small real PNG image."""
    buffer = io.BytesIO()
    Image.new("RGB", (80, 40), (0, 166, 126)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def tile():
    return recalculate(TileProduct(
        id="tile-1", sno="1", brand="Kajaria", area_of_application="Living Room",
        shade_name="Statuario Bianco", dimensions="600x1200 mm", surface="Glossy",
        mrp=Decimal('1000'), discount=Decimal('10'),
        items_per_box=Decimal('3'), area_required=Decimal('100'),
    ))


@pytest.fixture
def adhesive():
    return recalculate(AdhesiveProduct(
        id="adh-1", sno="1", brand="MYK Laticrete", adhesive_category="Tile Adhesive 335",
        mrp=Decimal('690'), d_price=Decimal('610'), no_of_bags=4,
    ))


@pytest.fixture
def fitting():
    return recalculate(FittingProduct(
        id="fit-1", sno="1", brand="Jaquar", product_code="ALD-CHR-233",
        description="Single lever basin mixer", mrp=Decimal('5400'),
        d_price=Decimal('4590'), nos=2,
    ))


@pytest.fixture
def customer():
    return Customer(id="cust-1", name="Anil Mehta", email="anil@example.com",
                    phone="+91 9833012345", address="22 Palm Grove, Bandra West")


@pytest.fixture
def staff():
    return Staff(id="staff-1", name="Rohit Sharma", position="Sales Executive",
                 branch="Andheri", branch_address="14 Link Road", branch_city="Mumbai",
                 branch_state="Maharashtra", branch_zip_code="400053", staff_code="PT-S01")


@pytest.fixture
def make_quotation(customer, staff, tile, adhesive, fitting):
    """Factory for finalized quotations; defaults to three line items."""
    def _make(items=None, tax_rate=Decimal('18'), logo="", number="PTM-240101-042",
              terms="1. First term\n2. Second term"):
        if items is None:
            items = (
                line_item_from_catalog(tile, quantity=2, discount_percent=10,
                                       unit_price=100, line_id="line-1"),
                line_item_from_catalog(adhesive, quantity=1, unit_price=90, line_id="line-2"),
                line_item_from_catalog(fitting, quantity=3, unit_price=150, line_id="line-3"),
            )
        return Quotation(
            id="q-1",
            quotation_number=number,
            issue_date=date(2024, 1, 1),
            validity_days=15,
            customer=customer,
            staff=staff,
            company=BusinessProfile(logo=logo),
            items=tuple(items),
            tax_rate=Decimal(tax_rate),
            terms=terms,
            created_at=datetime(2024, 1, 1, 10, 30),
        )
    return _make
