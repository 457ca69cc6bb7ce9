"""
SkyFuel Battery Ledger - QR Label Sheet
Version: 1.0.1

Changelog:
v1.0.1 (2026-10-20): Brand, model and serial are escaped for Paragraph markup
v1.0.0 (2026-10-16): Printable grid of QR labels, one per battery
"""

import io
import logging
from typing import List, Sequence
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from ..config import settings
from ..models.battery import Battery
from .identity_codec import encode_battery, short_id

logger = logging.getLogger(__name__)


def _qr_drawing(token: str, size: float) -> Drawing:
    widget = QrCodeWidget(token)
    x1, y1, x2, y2 = widget.getBounds()
    width, height = x2 - x1, y2 - y1
    drawing = Drawing(size, size, transform=[size / width, 0, 0, size / height, 0, 0])
    drawing.add(widget)
    return drawing


def _label_cell(battery: Battery, styles) -> List:
    id_style = ParagraphStyle("LabelId", parent=styles["Normal"],
                              fontName="Helvetica-Bold", fontSize=11, alignment=1)
    name_style = ParagraphStyle("LabelName", parent=styles["Normal"],
                                fontSize=8, leading=9, alignment=1)
    return [
        _qr_drawing(encode_battery(battery), settings.LABEL_QR_SIZE),
        Paragraph(short_id(battery.id), id_style),
        Paragraph(f"{escape(battery.brand)} {escape(battery.model)}<br/>{escape(battery.serial_number)}",
                  name_style),
    ]


def render_label_sheet(batteries: Sequence[Battery]) -> bytes:
    """
    Render a PDF sheet of QR labels.

    Each label carries the battery's identity token as a QR symbol, the
    short id and the brand/model/serial line. Returns the PDF bytes.
    """
    columns = settings.LABEL_COLUMNS
    styles = getSampleStyleSheet()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4,
                            topMargin=0.5*inch, bottomMargin=0.5*inch,
                            title="SkyFuel battery labels")
    story = []

    if not batteries:
        story.append(Paragraph("No batteries to label.", styles["Normal"]))
    else:
        cells = [_label_cell(battery, styles) for battery in batteries]
        # Pad the last row so every row has the same column count
        cells += [""] * (-len(cells) % columns)
        rows = [cells[i:i + columns] for i in range(0, len(cells), columns)]

        table = Table(rows,
                      colWidths=[settings.LABEL_CELL_WIDTH] * columns,
                      rowHeights=[settings.LABEL_CELL_HEIGHT] * len(rows))
        table.setStyle(TableStyle([
            ('GRID', (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        story.append(table)
        story.append(Spacer(1, 0.2 * inch))

    doc.build(story)
    logger.info(f"Label sheet rendered for {len(batteries)} batteries")
    return buffer.getvalue()
