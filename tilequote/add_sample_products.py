"""
Add sample catalog items, staff and customers for trying out the system.
"""

from decimal import Decimal

from tilequote.core.exceptions import ValidationError
from tilequote.core.logging_config import get_logger
from tilequote.core.models import (
    AdhesiveProduct, FittingProduct, ProductCategory, TileProduct
)
from tilequote.core.services import CatalogService, CustomerService, StaffService
from tilequote.core.storage import Repository

logger = get_logger(__name__)

SAMPLE_TILES = [
    TileProduct(sno="1", brand="Kajaria", area_of_application="Living Room",
                shade_name="Statuario Bianco", dimensions="600x1200 mm", surface="Glossy",
                mrp=Decimal('1850.00'), discount=Decimal('12'),
                items_per_box=Decimal('2'), area_required=Decimal('24')),
    TileProduct(sno="2", brand="Somany", area_of_application="Bathroom Wall",
                shade_name="Aqua Blue", dimensions="300x450 mm", surface="Matt",
                mrp=Decimal('720.00'), discount=Decimal('8'),
                items_per_box=Decimal('6'), area_required=Decimal('40')),
    TileProduct(sno="3", brand="Johnson", area_of_application="Parking",
                shade_name="Rustic Grey", dimensions="400x400 mm", surface="Anti-skid",
                mrp=Decimal('540.00'), discount=Decimal('5'),
                items_per_box=Decimal('5'), area_required=Decimal('60')),
]

SAMPLE_ADHESIVES = [
    AdhesiveProduct(sno="1", brand="MYK Laticrete", adhesive_category="Tile Adhesive 335",
                    mrp=Decimal('690.00'), d_price=Decimal('610.00'), no_of_bags=10),
    AdhesiveProduct(sno="2", brand="Roff", adhesive_category="Grout Epoxy",
                    mrp=Decimal('1450.00'), d_price=Decimal('1320.00'), no_of_bags=2),
]

SAMPLE_FITTINGS = [
    FittingProduct(sno="1", brand="Jaquar", product_code="ALD-CHR-233",
                   description="Single lever basin mixer", mrp=Decimal('5400.00'),
                   d_price=Decimal('4590.00'), nos=2),
    FittingProduct(sno="2", brand="Hindware", product_code="HW-92001",
                   description="Wall hung EWC with soft close seat", mrp=Decimal('13200.00'),
                   d_price=Decimal('11880.00'), nos=1),
]

SAMPLE_STAFF = [
    {
        'name': 'Rohit Sharma', 'email': 'rohit@prateektiles.com', 'phone': '+91 9820011223',
        'position': 'Sales Executive', 'branch': 'Andheri',
        'branch_address': '14 Link Road, Andheri West', 'branch_city': 'Mumbai',
        'branch_state': 'Maharashtra', 'branch_zip_code': '400053', 'staff_code': 'PT-S01',
    },
    {
        'name': 'Neha Kulkarni', 'email': 'neha@prateektiles.com', 'phone': '+91 9820044556',
        'position': 'Showroom Manager', 'branch': 'Pune',
        'branch_address': '7 FC Road, Shivajinagar', 'branch_city': 'Pune',
        'branch_state': 'Maharashtra', 'branch_zip_code': '411005', 'staff_code': 'PT-S02',
    },
]

SAMPLE_CUSTOMERS = [
    {
        'name': 'Anil Mehta', 'email': 'anil.mehta@example.com', 'phone': '+91 9833012345',
        'address': '22 Palm Grove, Bandra West', 'city': 'Mumbai', 'state': 'Maharashtra',
        'zip_code': '400050', 'customer_code': 'C-1001',
    },
    {
        'name': 'Sunita Rao', 'company_name': 'Rao Interiors', 'email': 'sunita@raointeriors.in',
        'phone': '+91 9890056789', 'address': '5 Prabhat Road', 'city': 'Pune',
        'state': 'Maharashtra', 'zip_code': '411004', 'customer_code': 'C-1002',
    },
]


def add_sample_data(repository: Repository) -> dict:
    """
    Add sample data, skipping any collection that already has records.

    Returns:
        Number of records added per kind
    """
    logger.info("Adding sample data...")
    catalog = CatalogService(repository)
    staff_service = StaffService(repository)
    customer_service = CustomerService(repository)
    added = {'catalog': 0, 'staff': 0, 'customers': 0}

    for category, samples in ((ProductCategory.TILES, SAMPLE_TILES),
                              (ProductCategory.ADHESIVE, SAMPLE_ADHESIVES),
                              (ProductCategory.CP_SW, SAMPLE_FITTINGS)):
        if catalog.list_items(category):
            logger.info(f"{category.display_name} catalog already populated, skipping")
            continue
        for item in samples:
            try:
                catalog.add_item(item)
                added['catalog'] += 1
            except ValidationError as e:
                logger.warning(f"Skipped {item.brand}: {e}")

    for service, samples, key in ((staff_service, SAMPLE_STAFF, 'staff'),
                                  (customer_service, SAMPLE_CUSTOMERS, 'customers')):
        if service.list_all():
            logger.info(f"{key.capitalize()} already populated, skipping")
            continue
        for data in samples:
            service.create(**data)
            added[key] += 1

    logger.info(f"Sample data added: {added}")
    return added
