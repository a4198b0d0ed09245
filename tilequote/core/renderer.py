"""
PDF rendering of composed quotation documents.
Draws the instruction stream onto a reportlab canvas. Layout coordinates are
millimetres from the top of the page; reportlab measures points from the bottom.
"""

import io
import time
from pathlib import Path
from typing import Union

from reportlab.lib.colors import Color
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from tilequote.core.compositor import (
    ComposedDocument, ImageInstruction, LineInstruction, RectInstruction,
    TextInstruction
)
from tilequote.core.logging_config import get_logger, log_performance

logger = get_logger(__name__)

PDF_AUTHOR = "TileQuote"


def _color(rgb) -> Color:
    r, g, b = rgb
    return Color(r / 255, g / 255, b / 255)


class PdfRenderer:
    """Renders one composed document to PDF bytes."""

    def __init__(self, document: ComposedDocument):
        self.document = document
        self.page_height = document.geometry.height

    def render(self) -> bytes:
        started = time.perf_counter()
        geometry = self.document.geometry
        buffer = io.BytesIO()

        # invariant=1 keeps timestamps and ids out, so equal input gives equal bytes
        c = canvas.Canvas(buffer, pagesize=(geometry.width * mm, geometry.height * mm),
                          invariant=1)
        c.setTitle(self.document.title)
        c.setAuthor(PDF_AUTHOR)

        for instruction in self.document.instructions:
            draw = getattr(self, f"_draw_{instruction.kind}")
            draw(c, instruction)

        c.showPage()
        c.save()

        data = buffer.getvalue()
        log_performance(
            f"render {self.document.filename}",
            (time.perf_counter() - started) * 1000,
            f"{len(self.document.instructions)} instructions, {len(data)} bytes",
        )
        return data

    def _y(self, top_y: float) -> float:
        """Convert a distance from the page top (mm) to reportlab points."""
        return (self.page_height - top_y) * mm

    def _draw_text(self, c, ins: TextInstruction):
        c.setFont(ins.font_name, ins.font_size)
        c.setFillColor(_color(ins.color))
        x, y = ins.x * mm, self._y(ins.y)
        if ins.align == "right":
            c.drawRightString(x, y, ins.text)
        elif ins.align == "center":
            c.drawCentredString(x, y, ins.text)
        else:
            c.drawString(x, y, ins.text)

    def _draw_rect(self, c, ins: RectInstruction):
        fill = ins.fill_color is not None
        stroke = ins.stroke_color is not None
        if fill:
            c.setFillColor(_color(ins.fill_color))
        if stroke:
            c.setStrokeColor(_color(ins.stroke_color))
            c.setLineWidth(ins.line_width * mm)
        c.rect(ins.x * mm, self._y(ins.y + ins.height), ins.width * mm, ins.height * mm,
               fill=int(fill), stroke=int(stroke))

    def _draw_line(self, c, ins: LineInstruction):
        c.setStrokeColor(_color(ins.color))
        c.setLineWidth(ins.line_width * mm)
        c.line(ins.x1 * mm, self._y(ins.y1), ins.x2 * mm, self._y(ins.y2))

    def _draw_image(self, c, ins: ImageInstruction):
        image = ImageReader(io.BytesIO(ins.data))
        c.drawImage(image, ins.x * mm, self._y(ins.y + ins.height),
                    width=ins.width * mm, height=ins.height * mm, mask='auto')


def render_pdf(document: ComposedDocument) -> bytes:
    """Render a composed document to PDF bytes."""
    return PdfRenderer(document).render()


def write_pdf(document: ComposedDocument, output_dir: Union[str, Path]) -> Path:
    """Render a document and write it as <output_dir>/<document.filename>."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / document.filename
    path.write_bytes(render_pdf(document))
    logger.info(f"Wrote {path}")
    return path
