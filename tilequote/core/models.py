"""
Data models for the tiles & marble quotation system.
Catalog items (one dataclass per category), parties, quotation snapshots and
the ORM table that stores serialized collections.

Records use the camelCase keys the shop's browser data has always used, so
exported data loads unchanged.
"""

import enum
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Dict, FrozenSet, Optional, Tuple, Union

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

from tilequote.core.calculations import (
    compute_expiry_date, compute_line_total, compute_discounted_price,
    compute_quotation_totals, to_decimal
)


Base = declarative_base()


# Enums
class ProductCategory(enum.Enum):
    TILES = "tiles"
    ADHESIVE = "adhesive"
    CP_SW = "cp-sw"

    @property
    def display_name(self) -> str:
        return {
            ProductCategory.TILES: "Tiles",
            ProductCategory.ADHESIVE: "Adhesive",
            ProductCategory.CP_SW: "CP & SW",
        }[self]


class Collection(enum.Enum):
    """Named collections in the key-value store."""
    TILES = "products.tiles"
    ADHESIVE = "products.adhesive"
    CP_SW = "products.cp-sw"
    CUSTOMERS = "customers"
    STAFF = "staff"
    QUOTATIONS = "savedQuotations"
    DRAFT_ITEMS = "quotationProducts"
    BUSINESS_SETTINGS = "businessSettings"

    @classmethod
    def for_category(cls, category: ProductCategory) -> "Collection":
        return {
            ProductCategory.TILES: cls.TILES,
            ProductCategory.ADHESIVE: cls.ADHESIVE,
            ProductCategory.CP_SW: cls.CP_SW,
        }[category]


# ORM
class StoredCollection(Base):
    """One serialized collection, stored as a JSON blob."""
    __tablename__ = "collections"

    name = Column(String(100), primary_key=True)
    payload = Column(Text, nullable=False, default="[]")
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# Record helpers
class _RecordMixin:
    """
    Maps dataclass attributes to record keys.

    Subclasses declare _RECORD_KEYS (attribute -> record key) and list numeric
    attributes in _DECIMAL_FIELDS / _INT_FIELDS.
    """

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {}
    _DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset()
    _INT_FIELDS: ClassVar[FrozenSet[str]] = frozenset()

    def to_record(self) -> Dict[str, Any]:
        record = {}
        for attr, key in self._RECORD_KEYS.items():
            value = getattr(self, attr)
            if isinstance(value, Decimal):
                value = str(value)
            record[key] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]):
        kwargs = {}
        for attr, key in cls._RECORD_KEYS.items():
            if key not in record or record[key] is None:
                continue
            kwargs[attr] = coerce_field(cls, attr, record[key])
        return cls(**kwargs)


def coerce_field(cls, attr: str, value: Any) -> Any:
    """Convert a raw (form or record) value to the attribute's declared type."""
    if attr in cls._DECIMAL_FIELDS:
        return to_decimal(value)
    if attr in cls._INT_FIELDS:
        return int(to_decimal(value))
    if value is None:
        return ""
    return str(value)


# Catalog
@dataclass(frozen=True)
class CatalogItem(_RecordMixin):
    """Fields shared by every purchasable SKU."""

    CATEGORY: ClassVar[ProductCategory]

    id: str = ""
    sno: str = ""
    brand: str = ""
    mrp: Decimal = Decimal('0')

    @property
    def category(self) -> ProductCategory:
        return self.CATEGORY

    @property
    def net_price(self) -> Decimal:
        """Category net price, or MRP when no net price was entered."""
        return self._net_price_field() or self.mrp

    def _net_price_field(self) -> Decimal:
        raise NotImplementedError

    @property
    def display_code(self) -> str:
        return ""

    @property
    def display_description(self) -> str:
        return ""

    @property
    def search_text(self) -> Tuple[str, ...]:
        return (self.brand,)


@dataclass(frozen=True)
class TileProduct(CatalogItem):
    CATEGORY: ClassVar[ProductCategory] = ProductCategory.TILES

    area_of_application: str = ""
    shade_name: str = ""
    image: str = ""
    dimensions: str = ""
    surface: str = ""
    discount: Decimal = Decimal('0')
    discounted_price: Decimal = Decimal('0')
    items_per_box: Decimal = Decimal('0')
    area_required: Decimal = Decimal('0')
    no_of_boxes: int = 0
    total_amount: Decimal = Decimal('0')

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'id': 'id', 'sno': 'sno', 'brand': 'brand', 'mrp': 'mrp',
        'area_of_application': 'areaOfApplication', 'shade_name': 'shadeName',
        'image': 'image', 'dimensions': 'dimensions', 'surface': 'surface',
        'discount': 'discount', 'discounted_price': 'discountedPrice',
        'items_per_box': 'itemsPerBox', 'area_required': 'areaRequired',
        'no_of_boxes': 'noOfBoxes', 'total_amount': 'totalAmount',
    }
    _DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({
        'mrp', 'discount', 'discounted_price', 'items_per_box',
        'area_required', 'total_amount',
    })
    _INT_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'no_of_boxes'})

    def _net_price_field(self) -> Decimal:
        return self.discounted_price

    @property
    def display_description(self) -> str:
        parts = [
            f"Shade: {self.shade_name}" if self.shade_name else "",
            f"Size: {self.dimensions}" if self.dimensions else "",
            f"Finish: {self.surface}" if self.surface else "",
            f"Area: {self.area_of_application}" if self.area_of_application else "",
        ]
        return " | ".join(part for part in parts if part)

    @property
    def search_text(self) -> Tuple[str, ...]:
        return (self.brand, self.shade_name)


@dataclass(frozen=True)
class AdhesiveProduct(CatalogItem):
    CATEGORY: ClassVar[ProductCategory] = ProductCategory.ADHESIVE

    adhesive_category: str = ""
    d_price: Decimal = Decimal('0')
    no_of_bags: int = 0
    total_amount: Decimal = Decimal('0')

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'id': 'id', 'sno': 'sno', 'brand': 'brand', 'mrp': 'mrp',
        'adhesive_category': 'category', 'd_price': 'dPrice',
        'no_of_bags': 'noOfBags', 'total_amount': 'totalAmount',
    }
    _DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'mrp', 'd_price', 'total_amount'})
    _INT_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'no_of_bags'})

    def _net_price_field(self) -> Decimal:
        return self.d_price

    @property
    def display_description(self) -> str:
        return self.adhesive_category

    @property
    def search_text(self) -> Tuple[str, ...]:
        return (self.brand, self.adhesive_category)


@dataclass(frozen=True)
class FittingProduct(CatalogItem):
    """CP fittings and sanitary ware."""

    CATEGORY: ClassVar[ProductCategory] = ProductCategory.CP_SW

    product_code: str = ""
    description: str = ""
    image: str = ""
    d_price: Decimal = Decimal('0')
    nos: int = 0
    total_amount: Decimal = Decimal('0')

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'id': 'id', 'sno': 'sno', 'brand': 'brand', 'mrp': 'mrp',
        'product_code': 'productCode', 'description': 'description',
        'image': 'image', 'd_price': 'dPrice', 'nos': 'nos',
        'total_amount': 'totalAmount',
    }
    _DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'mrp', 'd_price', 'total_amount'})
    _INT_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'nos'})

    def _net_price_field(self) -> Decimal:
        return self.d_price

    @property
    def display_code(self) -> str:
        return self.product_code

    @property
    def display_description(self) -> str:
        return self.description

    @property
    def search_text(self) -> Tuple[str, ...]:
        return (self.brand, self.product_code, self.description)


CatalogItemType = Union[TileProduct, AdhesiveProduct, FittingProduct]

CATALOG_CLASSES = {
    ProductCategory.TILES: TileProduct,
    ProductCategory.ADHESIVE: AdhesiveProduct,
    ProductCategory.CP_SW: FittingProduct,
}


def catalog_item_from_record(category: ProductCategory, record: Dict[str, Any]) -> CatalogItemType:
    return CATALOG_CLASSES[category].from_record(record)


def guess_category(record: Dict[str, Any]) -> ProductCategory:
    """Infer the category of a legacy line-item record, which carries no tag."""
    if 'productCategory' in record:
        return ProductCategory(record['productCategory'])
    if 'shadeName' in record or 'dimensions' in record or 'surface' in record:
        return ProductCategory.TILES
    if 'productCode' in record or 'description' in record:
        return ProductCategory.CP_SW
    return ProductCategory.ADHESIVE


# Parties
@dataclass(frozen=True)
class Customer(_RecordMixin):
    id: str = ""
    name: str = ""
    company_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    customer_code: str = ""

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'id': 'id', 'name': 'name', 'company_name': 'companyName',
        'email': 'email', 'phone': 'phone', 'address': 'address',
        'city': 'city', 'state': 'state', 'zip_code': 'zipCode',
        'customer_code': 'customerCode',
    }


@dataclass(frozen=True)
class Staff(_RecordMixin):
    id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    position: str = ""
    branch: str = ""
    branch_address: str = ""
    branch_city: str = ""
    branch_state: str = ""
    branch_zip_code: str = ""
    staff_code: str = ""

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'id': 'id', 'name': 'name', 'email': 'email', 'phone': 'phone',
        'position': 'position', 'branch': 'branch',
        'branch_address': 'branchAddress', 'branch_city': 'branchCity',
        'branch_state': 'branchState', 'branch_zip_code': 'branchZipCode',
        'staff_code': 'staffCode',
    }


DEFAULT_TERMS = (
    '1. Prices are subject to change without prior notice.\n'
    '2. Delivery timeline: 7-10 working days after confirmation.\n'
    '3. Payment Terms: 50% advance, balance before delivery.\n'
    '4. Warranty as per manufacturer terms.\n'
    '5. This quotation is valid for the mentioned validity period.'
)


@dataclass(frozen=True)
class BusinessProfile(_RecordMixin):
    """Issuing company details and quotation defaults."""

    business_name: str = "Prateek Tiles and Marble"
    address: str = "123 Main Street"
    city: str = "Mumbai"
    state: str = "Maharashtra"
    zip_code: str = "400001"
    phone: str = "+91 9876543210"
    email: str = "info@prateektiles.com"
    logo: str = ""  # data URL or media path
    currency_symbol: str = "Rs."
    default_tax_rate: Decimal = Decimal('18')  # GST
    default_validity_days: int = 15
    default_terms: str = DEFAULT_TERMS

    _RECORD_KEYS: ClassVar[Dict[str, str]] = {
        'business_name': 'businessName', 'address': 'businessAddress',
        'city': 'businessCity', 'state': 'businessState',
        'zip_code': 'businessZipCode', 'phone': 'businessPhone',
        'email': 'businessEmail', 'logo': 'logo',
        'currency_symbol': 'currencySymbol', 'default_tax_rate': 'defaultTaxRate',
        'default_validity_days': 'defaultValidityDays',
        'default_terms': 'defaultTerms',
    }
    _DECIMAL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'default_tax_rate'})
    _INT_FIELDS: ClassVar[FrozenSet[str]] = frozenset({'default_validity_days'})

    @property
    def city_line(self) -> str:
        return f"{self.city}, {self.state} {self.zip_code}"

    def with_branch(self, staff: Optional[Staff]) -> "BusinessProfile":
        """Company details with the salesperson's branch address."""
        if staff is None:
            return self
        defaults = BusinessProfile()
        return replace(
            self,
            address=staff.branch_address or defaults.address,
            city=staff.branch_city or defaults.city,
            state=staff.branch_state or defaults.state,
            zip_code=staff.branch_zip_code or defaults.zip_code,
        )


# Quotation
@dataclass(frozen=True)
class QuotationLineItem:
    """A catalog item snapshot plus the purchase parameters at time of sale."""

    id: str
    product: CatalogItemType
    quantity: Decimal = Decimal('1')
    unit_price: Decimal = Decimal('0')
    discount_percent: Decimal = Decimal('0')

    @property
    def category(self) -> ProductCategory:
        return self.product.category

    @property
    def brand(self) -> str:
        return self.product.brand

    @property
    def totals(self) -> Dict[str, Decimal]:
        return compute_line_total(self.unit_price, self.quantity, self.discount_percent)

    @property
    def line_subtotal(self) -> Decimal:
        return self.totals['subtotal']

    @property
    def line_discount(self) -> Decimal:
        return self.totals['discount_amount']

    @property
    def line_total(self) -> Decimal:
        return self.totals['total']

    @property
    def net_unit_price(self) -> Decimal:
        return compute_discounted_price(self.unit_price, self.discount_percent)

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'productId': self.product.id,
            'productCategory': self.category.value,
            'brand': self.brand,
            'quantity': str(self.quantity),
            'price': str(self.unit_price),
            'discount': str(self.discount_percent),
            'product': self.product.to_record(),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "QuotationLineItem":
        category = guess_category(record)
        if 'product' in record:
            product = catalog_item_from_record(category, record['product'])
        else:
            # Legacy flat record: snapshot fields sit next to the purchase fields
            product_record = dict(record)
            product_record['id'] = record.get('productId', '')
            product = catalog_item_from_record(category, product_record)
        return cls(
            id=str(record.get('id', '')),
            product=product,
            quantity=to_decimal(record.get('quantity'), default='1'),
            unit_price=to_decimal(record.get('price')),
            discount_percent=to_decimal(record.get('discount')),
        )


@dataclass(frozen=True)
class Quotation:
    """A finalized quotation. Holds its own copies of every party and item."""

    id: str
    quotation_number: str
    issue_date: date
    validity_days: int
    customer: Customer
    staff: Staff
    company: BusinessProfile
    items: Tuple[QuotationLineItem, ...] = ()
    tax_rate: Decimal = Decimal('18')
    terms: str = ""
    created_at: Optional[datetime] = None

    @property
    def totals(self) -> Dict[str, Decimal]:
        return compute_quotation_totals(self.items, self.tax_rate)

    @property
    def subtotal(self) -> Decimal:
        return self.totals['subtotal']

    @property
    def tax_amount(self) -> Decimal:
        return self.totals['tax_amount']

    @property
    def grand_total(self) -> Decimal:
        return self.totals['grand_total']

    @property
    def expiry_date(self) -> date:
        return compute_expiry_date(self.issue_date, self.validity_days)

    @property
    def customer_id(self) -> str:
        """Customer reference printed on the document: number without its prefix."""
        return self.quotation_number[4:]

    @property
    def document_filename(self) -> str:
        return f"Quotation-{self.quotation_number}.pdf"

    def to_record(self) -> Dict[str, Any]:
        totals = self.totals
        return {
            'id': self.id,
            'quotationNumber': self.quotation_number,
            'quotationDate': self.issue_date.isoformat(),
            'validityDays': self.validity_days,
            'customerName': self.customer.name,
            'customerEmail': self.customer.email,
            'customerPhone': self.customer.phone,
            'customerAddress': self.customer.address,
            'staffId': self.staff.id,
            'staffName': self.staff.name,
            'staffPosition': self.staff.position,
            'staffCode': self.staff.staff_code,
            'companyName': self.company.business_name,
            'companyAddress': self.company.address,
            'companyCity': self.company.city,
            'companyState': self.company.state,
            'companyZipCode': self.company.zip_code,
            'companyPhone': self.company.phone,
            'companyEmail': self.company.email,
            'companyLogo': self.company.logo,
            'currencySymbol': self.company.currency_symbol,
            'products': [item.to_record() for item in self.items],
            'taxRate': str(self.tax_rate),
            # Written for readers of the raw data; recomputed on load
            'subtotal': str(totals['subtotal']),
            'taxAmount': str(totals['tax_amount']),
            'grandTotal': str(totals['grand_total']),
            'termsAndConditions': self.terms,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Quotation":
        customer = Customer(
            name=record.get('customerName') or '',
            email=record.get('customerEmail') or '',
            phone=record.get('customerPhone') or '',
            address=record.get('customerAddress') or '',
        )
        staff = Staff(
            id=str(record.get('staffId') or ''),
            name=record.get('staffName') or '',
            position=record.get('staffPosition') or '',
            staff_code=record.get('staffCode') or '',
        )
        defaults = BusinessProfile()
        company = BusinessProfile(
            business_name=record.get('companyName') or defaults.business_name,
            address=record.get('companyAddress') or '',
            city=record.get('companyCity') or '',
            state=record.get('companyState') or '',
            zip_code=record.get('companyZipCode') or '',
            phone=record.get('companyPhone') or '',
            email=record.get('companyEmail') or '',
            logo=record.get('companyLogo') or '',
            currency_symbol=record.get('currencySymbol') or defaults.currency_symbol,
        )
        created_at = record.get('createdAt')
        return cls(
            id=str(record.get('id', '')),
            quotation_number=record.get('quotationNumber', ''),
            issue_date=_parse_date(record.get('quotationDate')),
            validity_days=int(record.get('validityDays') or defaults.default_validity_days),
            customer=customer,
            staff=staff,
            company=company,
            items=tuple(QuotationLineItem.from_record(r) for r in record.get('products') or []),
            tax_rate=to_decimal(record.get('taxRate'), default=str(defaults.default_tax_rate)),
            terms=record.get('termsAndConditions') or '',
            created_at=_parse_datetime(created_at) if created_at else None,
        )


@dataclass(frozen=True)
class QuotationDraft:
    """In-progress quotation being assembled in the editor."""

    quotation_number: str = ""
    issue_date: date = field(default_factory=date.today)
    validity_days: int = 15
    tax_rate: Decimal = Decimal('18')
    terms: str = DEFAULT_TERMS
    customer: Customer = field(default_factory=Customer)
    staff: Optional[Staff] = None
    company: BusinessProfile = field(default_factory=BusinessProfile)
    items: Tuple[QuotationLineItem, ...] = ()

    @property
    def totals(self) -> Dict[str, Decimal]:
        return compute_quotation_totals(self.items, self.tax_rate)

    @property
    def expiry_date(self) -> date:
        return compute_expiry_date(self.issue_date, self.validity_days)


def field_names(cls) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(cls))


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if not value:
        return date.today()
    # Browser dates may carry a time part
    return date.fromisoformat(str(value)[:10])


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)
