"""
Quotation document layout.
Translates a finalized quotation into an ordered list of absolutely positioned
drawing instructions on a single A4 page. Coordinates are millimetres from the
top-left corner of the page; a text instruction's y is its baseline.

The layout is built in fixed phases (frame, header, parties, meta table, line
items, totals, terms, signature); each phase only appends to the stream.
No I/O happens here: the logo arrives as already-resolved bytes.
"""

import io
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple, Union

from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit

from tilequote.core.calculations import format_money, format_number, format_rate
from tilequote.core.exceptions import LogoDecodeError
from tilequote.core.logging_config import get_logger
from tilequote.core.models import Quotation, QuotationLineItem

logger = get_logger(__name__)

RGB = Tuple[int, int, int]

BLACK: RGB = (0, 0, 0)
WHITE: RGB = (255, 255, 255)
GRAY: RGB = (100, 100, 100)
GREEN: RGB = (0, 166, 126)  # border and table header fill

FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
BODY_SIZE = 10
DETAIL_SIZE = 9
TITLE_SIZE = 28
LINE_HEIGHT_FACTOR = 1.15
LINE_WIDTH = 0.5

LOGO_WIDTH = 40
LOGO_HEIGHT = 20
HEADER_ROW_HEIGHT = 10
META_ROW_HEIGHT = 10
ITEM_ROW_HEIGHT = 20  # fixed; long descriptions overflow rather than grow the row
TERMS_LINE_HEIGHT = 7
CELL_TEXT_INSET = 5

PAYMENT_TERMS = "Due on receipt"
TAX_LABEL = "GST"


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in millimetres."""

    width: float = 210.0
    height: float = 297.0
    margin: float = 15.0
    inner_padding: float = 10.0

    @property
    def content_left(self) -> float:
        """Left edge of tables: margin plus half the inner padding."""
        return self.margin + self.inner_padding / 2

    @property
    def content_width(self) -> float:
        return self.width - 2 * self.margin - self.inner_padding

    @property
    def right_column_x(self) -> float:
        """Anchor of the right-hand text column (party and totals labels)."""
        return self.width - self.margin - 60


A4 = PageGeometry()


# Instructions

@dataclass(frozen=True)
class TextInstruction:
    text: str
    x: float
    y: float
    font_size: float = BODY_SIZE
    bold: bool = False
    color: RGB = BLACK
    align: str = "left"  # left | right | center

    kind = "text"

    @property
    def font_name(self) -> str:
        return BOLD_FONT if self.bold else FONT


@dataclass(frozen=True)
class RectInstruction:
    x: float
    y: float
    width: float
    height: float
    stroke_color: Optional[RGB] = GREEN
    fill_color: Optional[RGB] = None
    line_width: float = LINE_WIDTH

    kind = "rect"


@dataclass(frozen=True)
class LineInstruction:
    x1: float
    y1: float
    x2: float
    y2: float
    color: RGB = GREEN
    line_width: float = LINE_WIDTH

    kind = "line"


@dataclass(frozen=True)
class ImageInstruction:
    data: bytes = field(repr=False)
    x: float = 0.0
    y: float = 0.0
    width: float = LOGO_WIDTH
    height: float = LOGO_HEIGHT

    kind = "image"


Instruction = Union[TextInstruction, RectInstruction, LineInstruction, ImageInstruction]


@dataclass(frozen=True)
class ComposedDocument:
    """Output of composition, handed to a renderer."""

    filename: str
    title: str
    geometry: PageGeometry
    instructions: Tuple[Instruction, ...]


# Column layout

def column_edges(left: float, width: float, count: int) -> Tuple[float, ...]:
    """Boundaries of count equal columns: edge k is left + k * width / count."""
    if count <= 0:
        raise ValueError("count must be positive")
    return tuple(left + k * width / count for k in range(count + 1))


@dataclass(frozen=True)
class ColumnGrid:
    """
    Column boundaries of one table.

    The table width is split into equal units and each column spans a whole
    number of them. Header and body rows of a table draw from the same grid,
    so their edges coincide exactly.
    """

    edges: Tuple[float, ...]

    @classmethod
    def build(cls, left: float, width: float, spans: Sequence[int]) -> "ColumnGrid":
        units = column_edges(left, width, sum(spans))
        edges = [units[0]]
        position = 0
        for span in spans:
            position += span
            edges.append(units[position])
        return cls(edges=tuple(edges))

    def __len__(self):
        return len(self.edges) - 1

    def x(self, column: int) -> float:
        return self.edges[column]

    def width(self, column: int) -> float:
        return self.edges[column + 1] - self.edges[column]

    def text_x(self, column: int) -> float:
        return self.edges[column] + CELL_TEXT_INSET


def wrap_text(text: str, width: float, font_size: float = DETAIL_SIZE,
              font_name: str = FONT) -> List[str]:
    """Split text into lines no wider than width millimetres."""
    if not text:
        return []
    return simpleSplit(text, font_name, font_size, width * mm)


def line_height(font_size: float) -> float:
    """Baseline-to-baseline distance in millimetres for a font size in points."""
    return font_size * LINE_HEIGHT_FACTOR / mm


def decode_logo(data: bytes) -> Tuple[int, int]:
    """
    Decode logo bytes far enough to know the image is usable.

    Returns:
        Pixel size (width, height)

    Raises:
        LogoDecodeError: if the bytes are not a readable image
    """
    try:
        return ImageReader(io.BytesIO(data)).getSize()
    except Exception as e:
        raise LogoDecodeError("unreadable image data", e) from e


# Composition

class QuotationCompositor:
    """Lays out one quotation; create a new instance per document."""

    META_HEADERS = ("Salesperson", "Job", "Payment Terms", "Due Date")
    ITEM_HEADERS = ("Quantity", "Description", "Unit Price", "Line Total")
    ITEM_SPANS = (1, 3, 1, 1)

    def __init__(self, quotation: Quotation, logo: Optional[bytes] = None,
                 geometry: PageGeometry = A4, header_logo_fallback: bool = False):
        self.quotation = quotation
        self.logo = logo
        self.geometry = geometry
        self.header_logo_fallback = header_logo_fallback
        self.instructions: List[Instruction] = []
        self.symbol = quotation.company.currency_symbol

    def compose(self) -> ComposedDocument:
        self._frame_phase()
        self._header_phase()
        self._party_phase()
        meta_y = self._meta_table_phase()
        rows_end_y = self._line_items_phase(meta_y + 30)
        totals_y = rows_end_y + 10
        self._totals_phase(totals_y)
        terms_end_y = self._terms_phase(totals_y)
        self._signature_phase(terms_end_y)

        logger.debug(
            f"Composed {self.quotation.quotation_number}: "
            f"{len(self.instructions)} instructions, {len(self.quotation.items)} items"
        )
        return ComposedDocument(
            filename=self.quotation.document_filename,
            title=f"Quotation {self.quotation.quotation_number}",
            geometry=self.geometry,
            instructions=tuple(self.instructions),
        )

    # Emitters

    def _text(self, text, x, y, **style):
        self.instructions.append(TextInstruction(str(text), x, y, **style))

    def _rect(self, x, y, width, height, **style):
        self.instructions.append(RectInstruction(x, y, width, height, **style))

    def _line(self, x1, y1, x2, y2):
        self.instructions.append(LineInstruction(x1, y1, x2, y2))

    def _image(self, data, x, y):
        self.instructions.append(ImageInstruction(data, x, y, LOGO_WIDTH, LOGO_HEIGHT))

    # Phases

    def _frame_phase(self):
        g = self.geometry
        self._rect(g.margin, g.margin, g.width - 2 * g.margin, g.height - 2 * g.margin)

    def _header_phase(self):
        g, q = self.geometry, self.quotation
        self._text("QUOTE", g.margin + 5, g.margin + 20, font_size=TITLE_SIZE, color=GRAY)

        x = g.right_column_x
        self._text(f"Date: {_iso(q.issue_date)}", x, g.margin + 15, color=GRAY, align="right")
        self._text(f"Invoice # {q.quotation_number}", x, g.margin + 22, color=GRAY, align="right")
        self._text(f"Expiration Date: {_iso(q.expiry_date)}", x, g.margin + 29,
                   color=GRAY, align="right")

        if self.logo:
            try:
                decode_logo(self.logo)
            except LogoDecodeError:
                if not self.header_logo_fallback:
                    raise
                logger.warning("Header logo could not be decoded; leaving it out")
            else:
                self._image(self.logo, g.margin + 5, g.margin + 5)

    def _party_phase(self):
        g, q = self.geometry, self.quotation
        company, customer = q.company, q.customer

        left = g.margin + 5
        company_lines = [
            company.business_name,
            company.address,
            company.city_line,
            f"Phone: {company.phone}",
            f"Email: {company.email}",
        ]
        for index, text in enumerate(company_lines):
            self._text(text, left, g.margin + 40 + 7 * index, color=GRAY)

        right = g.right_column_x
        self._text(customer.name, right, g.margin + 40, color=GRAY, align="right")
        if customer.address:
            self._text(customer.address, right, g.margin + 47, color=GRAY, align="right")
        if customer.phone:
            self._text(f"Phone: {customer.phone}", right, g.margin + 54, color=GRAY, align="right")
        self._text(f"Customer ID: {q.customer_id}", right, g.margin + 61, color=GRAY, align="right")

    def _meta_table_phase(self) -> float:
        g, q = self.geometry, self.quotation
        y = g.margin + 75
        grid = ColumnGrid.build(g.content_left, g.content_width, (1, 1, 1, 1))

        values = (q.staff.name, q.staff.position, PAYMENT_TERMS, _iso(q.issue_date))
        self._header_row(grid, y, self.META_HEADERS)
        for column in range(len(grid)):
            self._rect(grid.x(column), y + HEADER_ROW_HEIGHT, grid.width(column), META_ROW_HEIGHT)
        for column, value in enumerate(values):
            self._text(value, grid.text_x(column), y + HEADER_ROW_HEIGHT + 6)
        return y

    def _line_items_phase(self, y: float) -> float:
        g = self.geometry
        grid = ColumnGrid.build(g.content_left, g.content_width, self.ITEM_SPANS)
        self._header_row(grid, y, self.ITEM_HEADERS)

        row_y = y + HEADER_ROW_HEIGHT
        for item in self.quotation.items:
            self._item_row(grid, row_y, item)
            row_y += ITEM_ROW_HEIGHT
        return row_y

    def _header_row(self, grid: ColumnGrid, y: float, labels: Sequence[str]):
        for column in range(len(grid)):
            self._rect(grid.x(column), y, grid.width(column), HEADER_ROW_HEIGHT,
                       stroke_color=None, fill_color=GREEN)
        for column, label in enumerate(labels):
            self._text(label, grid.text_x(column), y + 6, color=WHITE)

    def _item_row(self, grid: ColumnGrid, y: float, item: QuotationLineItem):
        for column in range(len(grid)):
            self._rect(grid.x(column), y, grid.width(column), ITEM_ROW_HEIGHT)

        self._text(format_number(item.quantity), grid.text_x(0), y + 10)

        product = item.product
        title = product.brand or ""
        if product.display_code:
            title = f"{title} - {product.display_code}" if title else product.display_code
        self._text(title, grid.text_x(1), y + 7)

        description_width = grid.width(1) - 2 * CELL_TEXT_INSET
        detail_y = y + 14
        for text in wrap_text(product.display_description, description_width):
            self._text(text, grid.text_x(1), detail_y, font_size=DETAIL_SIZE)
            detail_y += line_height(DETAIL_SIZE)

        # Only the post-discount unit price is shown, never the MRP
        self._text(format_money(item.net_unit_price, self.symbol), grid.text_x(2), y + 10)
        self._text(format_money(item.line_total, self.symbol), grid.text_x(3), y + 10)

    def _totals_phase(self, y: float):
        g, q = self.geometry, self.quotation
        totals = q.totals
        label_x = g.right_column_x
        value_x = g.width - g.margin - 10

        rows = (
            ("Subtotal", totals['subtotal'], False),
            (f"{TAX_LABEL} ({format_rate(q.tax_rate)}%)", totals['tax_amount'], False),
            ("Total", totals['grand_total'], True),
        )
        for index, (label, amount, bold) in enumerate(rows):
            row_y = y + 10 * index
            self._text(label, label_x, row_y, bold=bold)
            self._text(format_money(amount, self.symbol), value_x, row_y, bold=bold, align="right")

    def _terms_phase(self, totals_y: float) -> float:
        g, q = self.geometry, self.quotation
        left = g.margin + 5
        self._text(f"Quotation prepared by: {q.staff.name}", left, totals_y + 40)
        self._text("This is a quotation on the goods named, subject to the conditions noted below:",
                   left, totals_y + 50)

        y = totals_y + 60
        for text in q.terms.split('\n'):
            self._text(text, left, y)
            y += TERMS_LINE_HEIGHT
        return y

    def _signature_phase(self, y: float):
        g = self.geometry
        left = g.margin + 5
        self._text("To accept this quotation, sign here and return:", left, y + 10)
        self._line(left, y + 20, g.width - g.margin - 5, y + 20)

        if self.logo and self._logo_usable():
            self._image(self.logo, left, y + 30)
        else:
            self._rect(left, y + 30, LOGO_WIDTH, LOGO_HEIGHT)
            self._text(self.quotation.company.business_name, left + LOGO_WIDTH / 2, y + 40,
                       align="center")

        self._text("Thank you for your business", g.right_column_x, y + 40, align="right")

    def _logo_usable(self) -> bool:
        try:
            decode_logo(self.logo)
        except LogoDecodeError as e:
            logger.warning(f"Signature logo replaced by placeholder: {e}")
            return False
        return True


def compose_quotation(quotation: Quotation, logo: Optional[bytes] = None,
                      geometry: PageGeometry = A4,
                      header_logo_fallback: bool = False) -> ComposedDocument:
    """
    Lay out a quotation as a drawing instruction stream.

    Args:
        quotation: Finalized quotation
        logo: Resolved logo image bytes, or None
        geometry: Page geometry (A4 portrait by default)
        header_logo_fallback: When False an undecodable logo aborts composition
            in the header; when True the header leaves the logo out. The
            signature block always falls back to a placeholder.

    Raises:
        LogoDecodeError: undecodable logo with header_logo_fallback=False
    """
    return QuotationCompositor(quotation, logo, geometry, header_logo_fallback).compose()


def _iso(value: date) -> str:
    return value.isoformat()
