from typing import List, Optional
import io
import logging
import statistics
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from overtaxed.core.cook_county import format_pin
from overtaxed.schemas.appeal import Appeal, ComparableProperty
from overtaxed.schemas.deadline import TownshipDeadlineInfo
from overtaxed.schemas.property import Property

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "This summary is provided for informational purposes and is not legal advice. "
    "Verify filing dates with the Cook County Assessor before submitting an appeal."
)

HEADER_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#1e3a8a")),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('FONTSIZE', (0, 0), (-1, -1), 8),
    ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
])

KEY_VALUE_STYLE = TableStyle([
    ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor("#6b7280")),
    ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ('LINEBELOW', (0, 0), (-1, -1), 0.25, colors.lightgrey),
])


def format_currency(value: Optional[float]) -> str:
    if value is None:
        return "-"
    return f"${value:,.0f}"


def median_value(values: List[Optional[float]]) -> Optional[float]:
    present = [v for v in values if v]
    return statistics.median(present) if present else None


def build_appeal_summary_pdf(
    appeal: Appeal,
    prop: Property,
    comps: List[ComparableProperty],
    deadline: Optional[TownshipDeadlineInfo] = None,
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=LETTER, title=f"Appeal Summary {appeal.tax_year}")
    styles = getSampleStyleSheet()
    elements = []

    # 1. Header
    elements.append(Paragraph(f"{appeal.tax_year} Property Tax Appeal Summary", styles['Title']))
    elements.append(Paragraph(escape(f"{prop.address}, {prop.city}, {prop.state} {prop.zip_code}"), styles['Normal']))
    elements.append(Paragraph(f"<b>PIN:</b> {format_pin(prop.pin)}", styles['Normal']))
    elements.append(Spacer(1, 18))

    # 2. Subject property
    elements.append(Paragraph("Subject Property", styles['Heading2']))
    property_rows = [
        ["Township", prop.township or "-"],
        ["Assessed value", format_currency(prop.current_assessment_value)],
        ["Land value", format_currency(prop.current_land_value)],
        ["Improvement value", format_currency(prop.current_improvement_value)],
        ["Market value", format_currency(prop.current_market_value)],
    ]
    table = Table(property_rows, colWidths=[160, 300])
    table.setStyle(KEY_VALUE_STYLE)
    elements.append(table)
    elements.append(Spacer(1, 18))

    # 3. Appeal
    elements.append(Paragraph("Appeal", styles['Heading2']))
    appeal_rows = [
        ["Type", appeal.appeal_type],
        ["Status", appeal.status.value],
        ["Original assessment", format_currency(appeal.original_assessment_value)],
        ["Requested assessment", format_currency(appeal.requested_assessment_value)],
        ["Filing deadline", appeal.filing_deadline.strftime('%B %d, %Y') if appeal.filing_deadline else "-"],
    ]
    if deadline:
        appeal_rows.append(["Township notice date", deadline.notice_date.strftime('%B %d, %Y')])
        appeal_rows.append(["Township last file date", deadline.last_file_date.strftime('%B %d, %Y')])
    table = Table(appeal_rows, colWidths=[160, 300])
    table.setStyle(KEY_VALUE_STYLE)
    elements.append(table)
    elements.append(Spacer(1, 18))

    # 4. Comparables
    elements.append(Paragraph(f"Comparable Properties ({len(comps)})", styles['Heading2']))
    if comps:
        comp_rows = [["PIN", "Address", "Class", "Sq ft", "Built", "Sale price", "Market value"]]
        for c in comps:
            comp_rows.append([
                format_pin(c.pin),
                c.address,
                c.building_class or "-",
                f"{c.living_area:,.0f}" if c.living_area else "-",
                str(c.year_built) if c.year_built else "-",
                format_currency(c.sale_price),
                format_currency(c.assessed_market_value),
            ])
        comp_rows.append([
            "Median", "", "", "", "",
            format_currency(median_value([c.sale_price for c in comps])),
            format_currency(median_value([c.assessed_market_value for c in comps])),
        ])
        table = Table(comp_rows, repeatRows=1)
        table.setStyle(HEADER_STYLE)
        elements.append(table)
    else:
        elements.append(Paragraph("No comparable properties have been added to this appeal.", styles['Normal']))

    # 5. Footer
    elements.append(Spacer(1, 36))
    elements.append(Paragraph(DISCLAIMER, ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)))

    doc.build(elements)
    pdf_bytes = buffer.getvalue()
    logger.info(f"Appeal summary PDF built for appeal {appeal.id} ({len(pdf_bytes)} bytes)")
    return pdf_bytes
