"""
Soil Advisor Excel Export Service.
Generates Excel reports for a soil advisory result.
"""
from datetime import datetime
from io import BytesIO
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.chart import BarChart, Reference
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from agroadvisor.services.soil_advisor_calculator import AdvisoryResult

ADVISOR_GREEN = "15803D"
ADVISOR_DARK = "166534"
HEADER_BG = "DCFCE7"


class SoilAdvisorExcelService:
    """Service for generating soil advisory Excel reports."""

    def __init__(self):
        self.header_fill = PatternFill(start_color=ADVISOR_DARK, end_color=ADVISOR_DARK, fill_type="solid")
        self.header_font = Font(bold=True, color="FFFFFF", size=11)
        self.title_font = Font(bold=True, size=16, color=ADVISOR_GREEN)
        self.subtitle_font = Font(bold=True, size=12, color=ADVISOR_DARK)
        self.light_fill = PatternFill(start_color=HEADER_BG, end_color=HEADER_BG, fill_type="solid")
        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def _apply_header_style(self, ws, row_num: int, max_col: int):
        """Apply header styling to a row."""
        for col in range(1, max_col + 1):
            cell = ws.cell(row=row_num, column=col)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            cell.border = self.border

    def _write_label_rows(self, ws, row: int, rows) -> int:
        for label, value in rows:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row, column=1).fill = self.light_fill
            ws.cell(row=row, column=2, value=value)
            ws.cell(row=row, column=1).border = self.border
            ws.cell(row=row, column=2).border = self.border
            row += 1
        return row

    def _auto_adjust_columns(self, ws):
        """Auto-adjust column widths."""
        for column in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column[0].column)
            for cell in column:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))
            ws.column_dimensions[column_letter].width = min(max(max_length + 2, 12), 60)

    def generate_excel(self, result: AdvisoryResult, crop_name: Optional[str] = None) -> BytesIO:
        """
        Generate Excel report for a successful advisory result.

        Returns:
            BytesIO with Excel file content
        """
        if not result.is_valid:
            raise ValueError("Cannot export an advisory with validation errors")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        self._create_summary_sheet(wb, result, crop_name or result.crop_id)
        self._create_nutrient_sheet(wb, result)
        self._create_cost_sheet(wb, result)
        self._create_calendar_sheet(wb, result)

        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        return buffer

    def _create_summary_sheet(self, wb, result: AdvisoryResult, crop_name: str) -> Any:
        ws = wb.create_sheet("Summary")
        row = 1
        ws.cell(row=row, column=1, value="SOIL NUTRITION AND AMENDMENT REPORT").font = self.title_font
        ws.merge_cells(f'A{row}:D{row}')
        row += 1
        ws.cell(row=row, column=1, value=f"Generated: {datetime.now().strftime('%d/%m/%Y %H:%M')}").font = Font(italic=True)
        row += 2

        sample = result.sample
        ws.cell(row=row, column=1, value="SOIL TEST").font = self.subtitle_font
        row += 1
        row = self._write_label_rows(ws, row, [
            ("Crop:", crop_name),
            ("Area (ha):", sample.area_ha),
            ("pH:", sample.ph),
            ("Organic matter (%):", sample.organic_matter_pct),
            ("P (ppm):", sample.phosphorus_ppm),
            ("K (ppm):", sample.potassium_ppm),
            ("Ca (meq/100g):", sample.calcium_meq),
            ("Mg (meq/100g):", sample.magnesium_meq),
        ])
        row += 1

        amendment = result.amendment_plan
        ws.cell(row=row, column=1, value="pH AND AMENDMENTS").font = self.subtitle_font
        row += 1
        if amendment.lime_t_ha > 0:
            amendment_text = f"Agricultural lime {amendment.lime_t_ha:.2f} t/ha"
        elif amendment.sulfur_t_ha > 0:
            amendment_text = f"Elemental sulfur {amendment.sulfur_t_ha:.2f} t/ha"
        else:
            amendment_text = "No amendment required"
        self._write_label_rows(ws, row, [
            ("Diagnosis:", result.ph_diagnostic.label),
            ("Severity:", result.ph_diagnostic.severity.value),
            ("Buffer proxy Ca+Mg (meq/100g):", round(amendment.buffer_proxy, 2)),
            ("Recommendation:", amendment_text),
        ])

        self._auto_adjust_columns(ws)
        return ws

    def _create_nutrient_sheet(self, wb, result: AdvisoryResult) -> Any:
        ws = wb.create_sheet("Nutrient Balance")
        pk = result.nutrient_plan.phosphorus_potassium
        n_plan = result.nutrient_plan.nitrogen

        headers = ["Nutrient", "Target (ppm)", "Deficit (ppm)", "Deficit (kg/ha)", "To apply (kg/ha)", "Product (kg/ha)"]
        for col, header in enumerate(headers, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(headers))

        rows = [
            ("P2O5", pk.target_p_ppm, pk.deficit_p_ppm, pk.deficit_p_kg_ha, pk.required_p2o5_kg_ha, pk.phosphorus_product_kg_ha),
            ("K2O", pk.target_k_ppm, pk.deficit_k_ppm, pk.deficit_k_kg_ha, pk.required_k2o_kg_ha, pk.potassium_product_kg_ha),
            ("N", None, None, n_plan.net_nitrogen_kg_ha, n_plan.nitrogen_as_fertilizer_kg_ha, n_plan.urea_kg_ha),
        ]
        row = 2
        for values in rows:
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=round(value, 2) if isinstance(value, float) else value)
                cell.border = self.border
                cell.alignment = Alignment(horizontal='center')
            row += 1

        chart = BarChart()
        chart.type = "col"
        chart.title = "Nutrient to apply"
        chart.y_axis.title = "kg/ha"
        data = Reference(ws, min_col=5, max_col=5, min_row=1, max_row=row - 1)
        cats = Reference(ws, min_col=1, min_row=2, max_row=row - 1)
        chart.add_data(data, titles_from_data=True)
        chart.set_categories(cats)
        ws.add_chart(chart, "H2")

        row += 1
        self._write_label_rows(ws, row, [
            ("N requirement (kg/ha):", n_plan.nitrogen_requirement_kg_ha),
            ("N from organic matter (kg/ha):", round(n_plan.nitrogen_from_organic_matter_kg_ha, 2)),
            ("N from phosphate product (kg/ha):", round(n_plan.nitrogen_from_phosphate_kg_ha, 2)),
        ])

        self._auto_adjust_columns(ws)
        return ws

    def _create_cost_sheet(self, wb, result: AdvisoryResult) -> Any:
        ws = wb.create_sheet("Costs")
        costs = result.cost_summary
        headers = ["Product", "Dose (kg/ha)", f"Unit price ({costs.currency}/kg)", f"Cost/ha ({costs.currency})", f"Total ({costs.currency})"]
        for col, header in enumerate(headers, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(headers))

        row = 2
        for item in costs.items:
            values = [item.name, round(item.dose_kg_ha, 2), round(item.unit_price, 2),
                      round(item.cost_per_ha, 2), round(item.cost_total, 2)]
            for col, value in enumerate(values, 1):
                ws.cell(row=row, column=col, value=value).border = self.border
            row += 1

        ws.cell(row=row, column=1, value="TOTAL").font = Font(bold=True)
        ws.cell(row=row, column=4, value=round(costs.sum_per_ha, 2)).font = Font(bold=True)
        ws.cell(row=row, column=5, value=round(costs.sum_total, 2)).font = Font(bold=True)
        row += 2
        ws.cell(row=row, column=1, value=f"Reference rate: 1 USD = {costs.rate:g} {costs.currency}").font = Font(italic=True)

        self._auto_adjust_columns(ws)
        return ws

    def _create_calendar_sheet(self, wb, result: AdvisoryResult) -> Any:
        ws = wb.create_sheet("Calendar")
        headers = ["Stage", "Products", "Guidance", "Warnings"]
        for col, header in enumerate(headers, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(headers))

        row = 2
        for step in result.calendar.steps:
            values = [step.stage, ", ".join(step.products), step.guidance, " ".join(step.warnings)]
            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.border
                cell.alignment = Alignment(wrap_text=True, vertical='top')
            row += 1

        row += 1
        ws.cell(row=row, column=1, value="HANDLING").font = self.subtitle_font
        row += 1
        self._write_label_rows(ws, row, [(note.name, note.guidance) for note in result.handling_notes])

        self._auto_adjust_columns(ws)
        return ws


soil_advisor_excel_service = SoilAdvisorExcelService()
