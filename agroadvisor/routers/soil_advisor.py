"""
Soil Advisor Router - soil-test based fertilizer and amendment recommendations.
"""
import io
import logging
import math
import re

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse

from agroadvisor.schemas.soil_advisor_schemas import (
    CropListResponse,
    CropSummary,
    FertilizerListResponse,
    FertilizerSummary,
    FieldProblemSchema,
    SoilAdvisorRequest,
    SoilAdvisorResponse,
    SoilValidationResponse,
)
from agroadvisor.services.advisory_errors import ConfigurationError
from agroadvisor.services.soil_advisor_calculator import (
    AdvisoryRequest,
    AdvisoryResult,
    SoilAdvisorCalculator,
    soil_advisor_calculator,
)
from agroadvisor.services.soil_advisor_excel_service import soil_advisor_excel_service
from agroadvisor.services.soil_advisor_pdf_service import create_soil_advisor_pdf_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/soil-advisor", tags=["soil-advisor"])

DEMO_REQUEST = SoilAdvisorRequest(
    ph=5.6,
    organic_matter_pct=3.2,
    phosphorus_ppm=12,
    potassium_ppm=180,
    calcium_meq=8.5,
    magnesium_meq=2.1,
    area_ha=5,
    crop_id="maize",
    phosphorus_source_id="map",
    potassium_source_id="kcl",
    currency="USD",
)


def get_calculator() -> SoilAdvisorCalculator:
    return soil_advisor_calculator


def to_advisory_request(payload: SoilAdvisorRequest) -> AdvisoryRequest:
    return AdvisoryRequest(
        ph=payload.ph,
        organic_matter_pct=payload.organic_matter_pct,
        phosphorus_ppm=payload.phosphorus_ppm,
        potassium_ppm=payload.potassium_ppm,
        calcium_meq=payload.calcium_meq,
        magnesium_meq=payload.magnesium_meq,
        area_ha=payload.area_ha,
        crop_id=payload.crop_id,
        phosphorus_source_id=payload.phosphorus_source_id,
        potassium_source_id=payload.potassium_source_id,
        currency=payload.currency,
    )


def run_advisory(payload: SoilAdvisorRequest, calculator: SoilAdvisorCalculator) -> AdvisoryResult:
    """
    Run the calculator and translate failures to HTTP errors.

    422: soil values rejected (body lists every offending field)
    400: crop, product or currency selection cannot be used
    500: anything else
    """
    try:
        result = calculator.calculate(to_advisory_request(payload))
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": e.field, "value": e.value},
        )
    except Exception as e:
        logger.exception(f"Soil advisory calculation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error computing the soil advisory",
        )

    if not result.is_valid:
        raise HTTPException(
            status_code=422,
            detail=SoilValidationResponse(
                status=result.status,
                validation_errors=[
                    FieldProblemSchema(field=p.field, message=p.message, value=_json_value(p.value))
                    for p in result.validation_errors
                ],
            ).model_dump(),
        )
    return result


def _json_value(value):
    # NaN and inf are not valid JSON
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    return value


def _export_filename(result: AdvisoryResult, extension: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", (result.crop_id or "soil").lower()).strip("_")
    return f"soil_advisor_{slug}_{result.sample.area_ha:g}ha.{extension}"


@router.get("/crops", response_model=CropListResponse)
async def list_crops(calculator: SoilAdvisorCalculator = Depends(get_calculator)):
    """List crops with their N requirement and P/K soil targets."""
    items = [CropSummary(**crop) for crop in calculator.reference.list_crops()]
    return CropListResponse(items=items, total=len(items))


@router.get("/fertilizers", response_model=FertilizerListResponse)
async def list_fertilizers(calculator: SoilAdvisorCalculator = Depends(get_calculator)):
    """List products with grade, reference USD price and the roles they can fill."""
    items = [FertilizerSummary(**fert) for fert in calculator.reference.list_fertilizers()]
    currencies = list(getattr(calculator.rate_provider, "currencies", []))
    return FertilizerListResponse(items=items, total=len(items), currencies=currencies)


@router.post("/calculate", response_model=SoilAdvisorResponse)
async def calculate_soil_advisory(
    payload: SoilAdvisorRequest,
    calculator: SoilAdvisorCalculator = Depends(get_calculator),
):
    """
    Calculate fertilizer doses, lime/sulfur amendment, costs and calendar
    from a soil test.
    """
    result = run_advisory(payload, calculator)
    return SoilAdvisorResponse.model_validate(result.to_dict())


@router.get("/demo", response_model=SoilAdvisorResponse)
async def demo_soil_advisory(calculator: SoilAdvisorCalculator = Depends(get_calculator)):
    """Worked example: acid maize soil, 5 ha, MAP + KCl, USD."""
    result = run_advisory(DEMO_REQUEST, calculator)
    return SoilAdvisorResponse.model_validate(result.to_dict())


@router.post("/excel")
async def export_soil_advisory_excel(
    payload: SoilAdvisorRequest,
    calculator: SoilAdvisorCalculator = Depends(get_calculator),
):
    """Calculate and return the advisory as an Excel workbook."""
    result = run_advisory(payload, calculator)
    crop = calculator.reference.get_crop(result.crop_id)
    excel_buffer = soil_advisor_excel_service.generate_excel(result, crop_name=crop.display_name)
    filename = _export_filename(result, "xlsx")
    return StreamingResponse(
        excel_buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )


@router.post("/pdf")
async def export_soil_advisory_pdf(
    payload: SoilAdvisorRequest,
    calculator: SoilAdvisorCalculator = Depends(get_calculator),
):
    """Calculate and return the advisory as a PDF report."""
    result = run_advisory(payload, calculator)
    crop = calculator.reference.get_crop(result.crop_id)
    pdf_bytes = create_soil_advisor_pdf_report(result, crop_name=crop.display_name)
    filename = _export_filename(result, "pdf")
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )
