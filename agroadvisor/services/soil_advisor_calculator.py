"""
Soil Advisor Calculator Service.

Converts a soil test into fertilizer and amendment doses for a crop:
- Soil P/K deficits (ppm -> kg/ha) inflated by nutrient-use efficiency
- Phosphorus and potassium product masses for the selected sources
- Nitrogen top-up with urea, net of organic matter mineralisation and of
  the N already carried by the phosphate product (MAP/DAP)
- Lime or sulfur dose from pH deviation and buffering
- Per-hectare and total cost, application calendar

Ordering is load-bearing: P/K is computed first because the phosphate
product's nitrogen offsets the crop N requirement. finalize_nitrogen()
therefore takes the PhosphorusPotassiumPlan, not a loose number.
"""
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from agroadvisor.services.advisory_errors import ConfigurationError
from agroadvisor.services.application_calendar import (
    ApplicationCalendar,
    HandlingNote,
    build_application_calendar,
    build_handling_notes,
)
from agroadvisor.services.cost_service import (
    CostSummary,
    ProductDose,
    RateProvider,
    aggregate_costs,
    default_rate_provider,
)
from agroadvisor.services.reference_data import (
    CropProfile,
    FertilizerProfile,
    ReferenceData,
    load_reference_data,
)
from agroadvisor.services.soil_advisor_rules import (
    KG_PER_TONNE,
    MAX_OM_NITROGEN_KG_HA,
    OM_NITROGEN_KG_HA_PER_PCT,
    REFERENCE_CURRENCY,
)
from agroadvisor.services.soil_amendments import (
    AmendmentPlan,
    PhDiagnostic,
    calculate_amendments,
    diagnose_ph,
)
from agroadvisor.services.soil_validation import FieldProblem, SoilSample, validate_soil_inputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdvisoryRequest:
    """Raw soil values (numbers or strings) plus crop/product/currency selections."""
    ph: Any
    organic_matter_pct: Any
    phosphorus_ppm: Any
    potassium_ppm: Any
    calcium_meq: Any
    magnesium_meq: Any
    area_ha: Any
    crop_id: str = "maize"
    phosphorus_source_id: str = "map"
    potassium_source_id: str = "kcl"
    currency: str = REFERENCE_CURRENCY


@dataclass(frozen=True)
class PhosphorusPotassiumPlan:
    """P and K balance; carries the N supplied by the phosphate product."""
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


@dataclass(frozen=True)
class NitrogenPlan:
    nitrogen_from_organic_matter_kg_ha: float
    nitrogen_requirement_kg_ha: float
    nitrogen_from_phosphate_kg_ha: float
    net_nitrogen_kg_ha: float
    nitrogen_as_fertilizer_kg_ha: float
    urea_kg_ha: float


@dataclass(frozen=True)
class NutrientPlan:
    phosphorus_potassium: PhosphorusPotassiumPlan
    nitrogen: NitrogenPlan

    @property
    def npk_to_apply(self) -> Dict[str, float]:
        """Nutrient mass to apply (kg/ha): N - P2O5 - K2O."""
        return {
            "N": self.nitrogen.nitrogen_as_fertilizer_kg_ha,
            "P2O5": self.phosphorus_potassium.required_p2o5_kg_ha,
            "K2O": self.phosphorus_potassium.required_k2o_kg_ha,
        }


@dataclass(frozen=True)
class AdvisoryResult:
    """Either validation errors (status 'invalid') or the complete plan (status 'success')."""
    status: str
    validation_errors: List[FieldProblem] = field(default_factory=list)
    sample: Optional[SoilSample] = None
    crop_id: Optional[str] = None
    nutrient_plan: Optional[NutrientPlan] = None
    amendment_plan: Optional[AmendmentPlan] = None
    ph_diagnostic: Optional[PhDiagnostic] = None
    cost_summary: Optional[CostSummary] = None
    calendar: Optional[ApplicationCalendar] = None
    handling_notes: List[HandlingNote] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.nutrient_plan is not None:
            data["nutrient_plan"]["npk_to_apply"] = self.nutrient_plan.npk_to_apply
        return data


def require_phosphate(fert: FertilizerProfile) -> FertilizerProfile:
    if fert.phosphate_pct <= 0:
        raise ConfigurationError(
            f"'{fert.display_name}' contains no P2O5 and cannot be used as phosphorus source",
            field="phosphorus_source_id", value=fert.id,
        )
    return fert


def require_potash(fert: FertilizerProfile) -> FertilizerProfile:
    if fert.potash_pct <= 0:
        raise ConfigurationError(
            f"'{fert.display_name}' contains no K2O and cannot be used as potassium source",
            field="potassium_source_id", value=fert.id,
        )
    return fert


def require_nitrogen(fert: FertilizerProfile) -> FertilizerProfile:
    if fert.nitrogen_pct <= 0:
        raise ConfigurationError(
            f"'{fert.display_name}' contains no N and cannot be used as nitrogen source",
            field="nitrogen_source", value=fert.id,
        )
    return fert


def calculate_phosphorus_potassium(
    reference: ReferenceData,
    crop_id: str,
    phosphorus_ppm: float,
    potassium_ppm: float,
    phosphorus_source_id: str,
    potassium_source_id: str,
) -> PhosphorusPotassiumPlan:
    """
    Soil P/K deficits converted to product mass.

    deficit_ppm  = max(0, target - measured)
    deficit_kg   = deficit_ppm * ppm_to_kg_ha
    required     = deficit_kg / efficiency          (kg P2O5 or K2O per ha)
    product_kg   = required / content_fraction

    Raises ConfigurationError, before any arithmetic, when a source lacks
    the nutrient of its role.
    """
    crop = reference.get_crop(crop_id)
    p_source = require_phosphate(reference.get_fertilizer(phosphorus_source_id, "phosphorus_source_id"))
    k_source = require_potash(reference.get_fertilizer(potassium_source_id, "potassium_source_id"))

    deficit_p_ppm = max(0.0, crop.target_phosphorus_ppm - phosphorus_ppm)
    deficit_k_ppm = max(0.0, crop.target_potassium_ppm - potassium_ppm)

    deficit_p_kg_ha = deficit_p_ppm * reference.ppm_to_kg_ha
    deficit_k_kg_ha = deficit_k_ppm * reference.ppm_to_kg_ha

    required_p2o5 = deficit_p_kg_ha / reference.efficiency("P2O5")
    required_k2o = deficit_k_kg_ha / reference.efficiency("K2O")

    p_product_kg = required_p2o5 / p_source.phosphate_fraction
    k_product_kg = required_k2o / k_source.potash_fraction

    return PhosphorusPotassiumPlan(
        crop_id=crop.id,
        phosphorus_source_id=p_source.id,
        potassium_source_id=k_source.id,
        target_p_ppm=crop.target_phosphorus_ppm,
        target_k_ppm=crop.target_potassium_ppm,
        deficit_p_ppm=deficit_p_ppm,
        deficit_k_ppm=deficit_k_ppm,
        deficit_p_kg_ha=deficit_p_kg_ha,
        deficit_k_kg_ha=deficit_k_kg_ha,
        required_p2o5_kg_ha=required_p2o5,
        required_k2o_kg_ha=required_k2o,
        phosphorus_product_kg_ha=p_product_kg,
        potassium_product_kg_ha=k_product_kg,
        nitrogen_from_phosphate_kg_ha=p_product_kg * p_source.nitrogen_fraction,
    )


def nitrogen_from_organic_matter(organic_matter_pct: float) -> float:
    """Rule of thumb: 20 kg N/ha per % OM, capped at 140 kg N/ha."""
    return min(OM_NITROGEN_KG_HA_PER_PCT * organic_matter_pct, MAX_OM_NITROGEN_KG_HA)


def finalize_nitrogen(
    reference: ReferenceData,
    crop_id: str,
    organic_matter_pct: float,
    phosphorus_potassium: PhosphorusPotassiumPlan,
) -> NitrogenPlan:
    """Net the crop N requirement against OM and phosphate-product N, then size urea."""
    if not isinstance(phosphorus_potassium, PhosphorusPotassiumPlan):
        raise TypeError("finalize_nitrogen requires the PhosphorusPotassiumPlan computed for this request")

    crop: CropProfile = reference.get_crop(crop_id)
    urea = require_nitrogen(reference.role_fertilizer("nitrogen_source"))

    n_from_om = nitrogen_from_organic_matter(organic_matter_pct)
    n_from_phosphate = phosphorus_potassium.nitrogen_from_phosphate_kg_ha
    net_n = max(0.0, crop.nitrogen_requirement_kg_ha - n_from_om - n_from_phosphate)
    n_as_fertilizer = net_n / reference.efficiency("N")

    return NitrogenPlan(
        nitrogen_from_organic_matter_kg_ha=n_from_om,
        nitrogen_requirement_kg_ha=crop.nitrogen_requirement_kg_ha,
        nitrogen_from_phosphate_kg_ha=n_from_phosphate,
        net_nitrogen_kg_ha=net_n,
        nitrogen_as_fertilizer_kg_ha=n_as_fertilizer,
        urea_kg_ha=n_as_fertilizer / urea.nitrogen_fraction,
    )


def calculate_nutrient_plan(
    reference: ReferenceData,
    crop_id: str,
    sample: SoilSample,
    phosphorus_source_id: str,
    potassium_source_id: str,
) -> NutrientPlan:
    """P/K first, then nitrogen with the phosphate carry-over."""
    pk_plan = calculate_phosphorus_potassium(
        reference,
        crop_id,
        sample.phosphorus_ppm,
        sample.potassium_ppm,
        phosphorus_source_id,
        potassium_source_id,
    )
    n_plan = finalize_nitrogen(reference, crop_id, sample.organic_matter_pct, pk_plan)
    return NutrientPlan(phosphorus_potassium=pk_plan, nitrogen=n_plan)


def product_doses(reference: ReferenceData, nutrient_plan: NutrientPlan, amendment: AmendmentPlan) -> List[ProductDose]:
    """Every product mass in kg/ha, in display order (P source, K source, urea, lime, sulfur)."""
    pk = nutrient_plan.phosphorus_potassium
    return [
        ProductDose(pk.phosphorus_source_id, pk.phosphorus_product_kg_ha),
        ProductDose(pk.potassium_source_id, pk.potassium_product_kg_ha),
        ProductDose(reference.role_fertilizer("nitrogen_source").id, nutrient_plan.nitrogen.urea_kg_ha),
        ProductDose(reference.role_fertilizer("lime").id, amendment.lime_t_ha * KG_PER_TONNE),
        ProductDose(reference.role_fertilizer("sulfur").id, amendment.sulfur_t_ha * KG_PER_TONNE),
    ]


class SoilAdvisorCalculator:
    """
    Calculator for soil fertility recommendations.

    Methodology:
    1. Validate soil inputs (no partial plan on failure)
    2. Check crop / product / currency selections
    3. Phosphorus and potassium products
    4. Nitrogen top-up with urea
    5. Lime or sulfur amendment and pH diagnosis
    6. Costs and application calendar
    """

    def __init__(self, reference: Optional[ReferenceData] = None, rate_provider: Optional[RateProvider] = None):
        self.reference = reference or load_reference_data()
        self.rate_provider = rate_provider or default_rate_provider

    def check_configuration(self, request: AdvisoryRequest) -> None:
        """Reject selections that cannot be computed. Runs before any dose arithmetic."""
        reference = self.reference
        reference.get_crop(request.crop_id)
        require_phosphate(reference.get_fertilizer(request.phosphorus_source_id, "phosphorus_source_id"))
        require_potash(reference.get_fertilizer(request.potassium_source_id, "potassium_source_id"))
        require_nitrogen(reference.role_fertilizer("nitrogen_source"))
        reference.role_fertilizer("lime")
        reference.role_fertilizer("sulfur")
        self.rate_provider.rate_for(request.currency)

    def calculate(self, request: AdvisoryRequest) -> AdvisoryResult:
        """
        Perform the complete soil advisory calculation.

        Returns an 'invalid' result carrying only the field problems when
        validation fails. Raises ConfigurationError for unusable selections.
        """
        validation = validate_soil_inputs(
            request.ph,
            request.organic_matter_pct,
            request.phosphorus_ppm,
            request.potassium_ppm,
            request.calcium_meq,
            request.magnesium_meq,
            request.area_ha,
        )
        if not validation.is_valid:
            logger.info(f"Soil advisory rejected: {[p.field for p in validation.errors]}")
            return AdvisoryResult(status="invalid", validation_errors=validation.errors)

        try:
            self.check_configuration(request)
        except ConfigurationError as e:
            logger.warning(f"Soil advisory configuration rejected ({e.field}={e.value}): {e}")
            raise

        sample = validation.sample
        reference = self.reference
        crop = reference.get_crop(request.crop_id)

        nutrient_plan = calculate_nutrient_plan(
            reference, crop.id, sample, request.phosphorus_source_id, request.potassium_source_id
        )
        amendment = calculate_amendments(
            sample.ph, sample.organic_matter_pct, sample.calcium_meq, sample.magnesium_meq
        )
        doses = product_doses(reference, nutrient_plan, amendment)
        costs = aggregate_costs(reference, doses, sample.area_ha, request.currency, self.rate_provider)
        calendar = build_application_calendar(
            reference,
            crop.id,
            nutrient_plan.phosphorus_potassium.phosphorus_source_id,
            nutrient_plan.phosphorus_potassium.potassium_source_id,
            amendment=amendment,
            urea_kg_ha=nutrient_plan.nitrogen.urea_kg_ha,
        )
        handling = build_handling_notes(reference, [line.product_id for line in costs.items])

        logger.info(
            f"Soil advisory for {crop.id}: urea {nutrient_plan.nitrogen.urea_kg_ha:.1f} kg/ha, "
            f"lime {amendment.lime_t_ha:.2f} t/ha, sulfur {amendment.sulfur_t_ha:.2f} t/ha, "
            f"total {costs.sum_total:.2f} {costs.currency}"
        )
        return AdvisoryResult(
            status="success",
            sample=sample,
            crop_id=crop.id,
            nutrient_plan=nutrient_plan,
            amendment_plan=amendment,
            ph_diagnostic=diagnose_ph(sample.ph),
            cost_summary=costs,
            calendar=calendar,
            handling_notes=handling,
        )


# Singleton instance
soil_advisor_calculator = SoilAdvisorCalculator()


def calculate_recommendation(request: AdvisoryRequest) -> AdvisoryResult:
    """Run the soil advisory pipeline with the default reference data."""
    return soil_advisor_calculator.calculate(request)
