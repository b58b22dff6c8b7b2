"""
Pydantic schemas for the Soil Advisor module.
Request soil values are taken as sent (numbers, user-typed strings such as
"5,6", or anything else) and judged by the soil validator, so every bad
field is reported together. Responses mirror the calculator result dataclasses.
"""
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from agroadvisor.services.soil_amendments import SeverityEnum

# ==================== REQUEST ====================

class SoilAdvisorRequest(BaseModel):
    """Soil test values, treated area and selections."""
    ph: Any = Field(None, description="Soil pH (3.5-9.5)")
    organic_matter_pct: Any = Field(None, description="Organic matter % (0-20)")
    phosphorus_ppm: Any = Field(None, description="P ppm (0-200)")
    potassium_ppm: Any = Field(None, description="K ppm (0-800)")
    calcium_meq: Any = Field(None, description="Exchangeable Ca meq/100g (0-40)")
    magnesium_meq: Any = Field(None, description="Exchangeable Mg meq/100g (0-20)")
    area_ha: Any = Field(None, description="Treated area ha (>0, <=10000)")

    crop_id: str = Field(default="maize", description="Crop id or alias (e.g. maize, maiz)")
    phosphorus_source_id: str = Field(default="map", description="Phosphorus source (MAP/DAP)")
    potassium_source_id: str = Field(default="kcl", description="Potassium source (KCl)")
    currency: str = Field(default="USD", description="Currency code with a configured rate (see GET /fertilizers)")


# ==================== RESULT ====================

class FieldProblemSchema(BaseModel):
    field: str
    message: str
    value: Any = None


class SoilSampleSchema(BaseModel):
    ph: float
    organic_matter_pct: float
    phosphorus_ppm: float
    potassium_ppm: float
    calcium_meq: float
    magnesium_meq: float
    area_ha: float


class PhosphorusPotassiumResult(BaseModel):
    """P and K balance; product masses in kg/ha."""
    crop_id: str
    phosphorus_source_id: str
    potassium_source_id: str
    target_p_ppm: float
    target_k_ppm: float
    deficit_p_ppm: float
    deficit_k_ppm: float
    deficit_p_kg_ha: float
    deficit_k_kg_ha: float
    required_p2o5_kg_ha: float
    required_k2o_kg_ha: float
    phosphorus_product_kg_ha: float
    potassium_product_kg_ha: float
    nitrogen_from_phosphate_kg_ha: float


class NitrogenResult(BaseModel):
    nitrogen_from_organic_matter_kg_ha: float
    nitrogen_requirement_kg_ha: float
    nitrogen_from_phosphate_kg_ha: float
    net_nitrogen_kg_ha: float
    nitrogen_as_fertilizer_kg_ha: float
    urea_kg_ha: float


class NutrientPlanResult(BaseModel):
    phosphorus_potassium: PhosphorusPotassiumResult
    nitrogen: NitrogenResult
    npk_to_apply: Dict[str, float] = Field(default_factory=dict, description="N - P2O5 - K2O kg/ha")


class AmendmentResult(BaseModel):
    lime_t_ha: float = Field(ge=0)
    sulfur_t_ha: float = Field(ge=0)
    buffer_proxy: float
    buffer_factor: float
    organic_factor: float


class PhDiagnosticResult(BaseModel):
    label: str
    severity: SeverityEnum


class CostLineResult(BaseModel):
    product_id: str
    name: str
    dose_kg_ha: float
    unit_price_usd: float
    unit_price: float
    cost_per_ha_usd: float
    cost_per_ha: float
    cost_total: float


class CostSummaryResult(BaseModel):
    items: List[CostLineResult]
    sum_per_ha: float
    sum_total: float
    currency: str
    rate: float
    area_ha: float


class CalendarStepResult(BaseModel):
    stage: str
    products: List[str]
    guidance: str
    warnings: List[str] = Field(default_factory=list)


class ApplicationCalendarResult(BaseModel):
    crop_id: str
    steps: List[CalendarStepResult]


class HandlingNoteResult(BaseModel):
    product_id: str
    name: str
    guidance: str


class SoilAdvisorResponse(BaseModel):
    """Response schema for a successful soil advisory calculation."""
    status: str
    crop_id: str
    sample: SoilSampleSchema
    nutrient_plan: NutrientPlanResult
    amendment_plan: AmendmentResult
    ph_diagnostic: PhDiagnosticResult
    cost_summary: CostSummaryResult
    calendar: ApplicationCalendarResult
    handling_notes: List[HandlingNoteResult] = Field(default_factory=list)


class SoilValidationResponse(BaseModel):
    """Body returned when soil inputs are rejected."""
    status: str = "invalid"
    validation_errors: List[FieldProblemSchema]


# ==================== REFERENCE DATA ====================

class CropSummary(BaseModel):
    id: str
    name: str
    n_requirement_kg_ha: float
    target_p_ppm: float
    target_k_ppm: float


class CropListResponse(BaseModel):
    items: List[CropSummary]
    total: int


class FertilizerSummary(BaseModel):
    id: str
    name: str
    n_pct: float
    p2o5_pct: float
    k2o_pct: float
    price_usd_kg: float
    handling: str = ""
    phosphorus_source: bool = False
    potassium_source: bool = False


class FertilizerListResponse(BaseModel):
    items: List[FertilizerSummary]
    total: int
    currencies: List[str] = Field(default_factory=list)
