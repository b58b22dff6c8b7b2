"""
Soil Advisor PDF Report Service.
Generates a one-document PDF summary of a soil advisory result.
"""
import io
import logging
from datetime import datetime
from typing import Optional

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from agroadvisor.services.soil_advisor_calculator import AdvisoryResult
from agroadvisor.services.soil_amendments import SeverityEnum

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    'USD': 'US$',
    'COP': 'COP$',
}

SOIL_COLOR = HexColor("#15803d")
TEXT_COLOR = HexColor("#374151")
LIGHT_BG = HexColor("#f0fdf4")
HEADER_BG = HexColor("#dcfce7")
GRID_COLOR = HexColor("#d1d5db")

SEVERITY_COLORS = {
    SeverityEnum.DANGER: "#ef4444",
    SeverityEnum.WARN: "#f59e0b",
    SeverityEnum.GOOD: "#22c55e",
}


def get_currency_symbol(currency: str) -> str:
    """Get the symbol for a currency code."""
    return CURRENCY_SYMBOLS.get(currency, '$')


def _draw_footer(canvas, doc):
    canvas.saveState()
    canvas.setFont('Helvetica', 7)
    canvas.setFillColor(TEXT_COLOR)
    canvas.drawString(
        doc.leftMargin, 0.4 * inch,
        "Orientative recommendation. Validate with a local agronomist before applying."
    )
    canvas.drawRightString(letter[0] - doc.rightMargin, 0.4 * inch, f"Page {doc.page}")
    canvas.restoreState()


def _grid_table(data, col_widths, header: bool = True) -> Table:
    table = Table(data, colWidths=col_widths)
    style = [
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID_COLOR),
        ('PADDING', (0, 0), (-1, -1), 4),
    ]
    if header:
        style += [
            ('BACKGROUND', (0, 0), (-1, 0), HEADER_BG),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ]
    else:
        style += [
            ('BACKGROUND', (0, 0), (0, -1), LIGHT_BG),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ]
    table.setStyle(TableStyle(style))
    return table


def create_soil_advisor_pdf_report(
    result: AdvisoryResult,
    crop_name: Optional[str] = None,
    report_name: str = "Soil advisory",
) -> bytes:
    """
    Generate a PDF report for a successful soil advisory.

    Args:
        result: Calculator result with status 'success'
        crop_name: Display name for the crop (defaults to the crop id)
        report_name: Title shown in the header table

    Returns:
        PDF file as bytes
    """
    if not result.is_valid:
        raise ValueError("Cannot export an advisory with validation errors")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=0.6 * inch,
        leftMargin=0.6 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.7 * inch
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'AdvisorTitle',
        parent=styles['Title'],
        fontSize=16,
        textColor=SOIL_COLOR,
        spaceAfter=6,
        alignment=TA_CENTER
    )
    heading_style = ParagraphStyle(
        'AdvisorHeading',
        parent=styles['Heading2'],
        fontSize=11,
        textColor=SOIL_COLOR,
        spaceBefore=8,
        spaceAfter=4
    )
    body_style = ParagraphStyle(
        'AdvisorBody',
        parent=styles['Normal'],
        fontSize=8,
        textColor=TEXT_COLOR,
        spaceAfter=3
    )

    sample = result.sample
    pk = result.nutrient_plan.phosphorus_potassium
    n_plan = result.nutrient_plan.nitrogen
    amendment = result.amendment_plan
    costs = result.cost_summary
    symbol = get_currency_symbol(costs.currency)

    story = []
    story.append(Paragraph("SOIL NUTRITION AND AMENDMENT PLAN", title_style))
    story.append(Spacer(1, 4))
    story.append(_grid_table([
        ["Name:", report_name, "Date:", datetime.now().strftime("%d/%m/%Y %H:%M")],
        ["Crop:", crop_name or result.crop_id, "Area:", f"{sample.area_ha:g} ha"],
    ], [0.9 * inch, 2.5 * inch, 0.85 * inch, 2.5 * inch], header=False))

    story.append(Paragraph("Soil test", heading_style))
    story.append(_grid_table([
        ["pH", "OM (%)", "P (ppm)", "K (ppm)", "Ca (meq)", "Mg (meq)"],
        [f"{sample.ph:g}", f"{sample.organic_matter_pct:g}", f"{sample.phosphorus_ppm:g}",
         f"{sample.potassium_ppm:g}", f"{sample.calcium_meq:g}", f"{sample.magnesium_meq:g}"],
    ], [1.1 * inch] * 6))

    diagnostic = result.ph_diagnostic
    diag_color = SEVERITY_COLORS.get(diagnostic.severity, "#374151")
    story.append(Paragraph("pH diagnosis and amendments", heading_style))
    story.append(Paragraph(
        f'<font color="{diag_color}"><b>{diagnostic.label}</b></font>'
        f" (Ca+Mg {amendment.buffer_proxy:.1f} meq/100g)",
        body_style
    ))
    if amendment.lime_t_ha > 0:
        story.append(Paragraph(f"Apply agricultural lime: <b>{amendment.lime_t_ha:.2f} t/ha</b>", body_style))
    elif amendment.sulfur_t_ha > 0:
        story.append(Paragraph(f"Apply elemental sulfur: <b>{amendment.sulfur_t_ha:.2f} t/ha</b>", body_style))
    else:
        story.append(Paragraph("No pH amendment required.", body_style))

    story.append(Paragraph("Nutrient balance (kg/ha)", heading_style))
    story.append(_grid_table([
        ["Nutrient", "Deficit", "To apply", "Product", "Product kg/ha"],
        ["P2O5", f"{pk.deficit_p_kg_ha:.1f}", f"{pk.required_p2o5_kg_ha:.1f}",
         pk.phosphorus_source_id.upper(), f"{pk.phosphorus_product_kg_ha:.1f}"],
        ["K2O", f"{pk.deficit_k_kg_ha:.1f}", f"{pk.required_k2o_kg_ha:.1f}",
         pk.potassium_source_id.upper(), f"{pk.potassium_product_kg_ha:.1f}"],
        ["N", f"{n_plan.net_nitrogen_kg_ha:.1f}", f"{n_plan.nitrogen_as_fertilizer_kg_ha:.1f}",
         "UREA", f"{n_plan.urea_kg_ha:.1f}"],
    ], [1.2 * inch, 1.2 * inch, 1.2 * inch, 1.5 * inch, 1.5 * inch]))
    story.append(Paragraph(
        f"N credits: organic matter {n_plan.nitrogen_from_organic_matter_kg_ha:.1f} kg/ha, "
        f"phosphate product {n_plan.nitrogen_from_phosphate_kg_ha:.1f} kg/ha.",
        body_style
    ))

    story.append(Paragraph(f"Costs ({costs.currency})", heading_style))
    cost_rows = [["Product", "Dose kg/ha", f"{symbol}/kg", f"{symbol}/ha", f"Total {symbol}"]]
    for item in costs.items:
        cost_rows.append([
            item.name,
            f"{item.dose_kg_ha:,.1f}",
            f"{item.unit_price:,.2f}",
            f"{item.cost_per_ha:,.2f}",
            f"{item.cost_total:,.2f}",
        ])
    cost_rows.append(["TOTAL", "", "", f"{costs.sum_per_ha:,.2f}", f"{costs.sum_total:,.2f}"])
    story.append(_grid_table(cost_rows, [2.2 * inch, 1.1 * inch, 1.1 * inch, 1.1 * inch, 1.3 * inch]))

    story.append(Paragraph("Application calendar", heading_style))
    calendar_rows = [["Stage", "Products", "Guidance"]]
    for step in result.calendar.steps:
        guidance = " ".join([step.guidance] + step.warnings).strip()
        calendar_rows.append([
            step.stage,
            Paragraph(", ".join(step.products), body_style),
            Paragraph(guidance, body_style),
        ])
    story.append(_grid_table(calendar_rows, [1.0 * inch, 1.8 * inch, 4.0 * inch]))

    if result.handling_notes:
        story.append(Paragraph("Handling", heading_style))
        for note in result.handling_notes:
            story.append(Paragraph(f"<b>{note.name}:</b> {note.guidance}", body_style))

    doc.build(story, onFirstPage=_draw_footer, onLaterPages=_draw_footer)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.info(f"Soil advisory PDF generated for {result.crop_id} ({len(pdf_bytes)} bytes)")
    return pdf_bytes
