"""
Application calendar and product handling guidance.

Orientative only: guidance comes from the per-crop calendar in the
reference data and should be adjusted for zone and sowing date.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from agroadvisor.services.reference_data import ReferenceData
from agroadvisor.services.soil_amendments import AmendmentPlan

UREA_VOLATILITY_WARNING = (
    "Urea is volatile: split into 2-3 applications and irrigate or incorporate to reduce losses."
)
LIME_UREA_WARNING = "Do not apply urea in the same pass as lime."


@dataclass(frozen=True)
class CalendarStep:
    stage: str
    products: List[str]
    guidance: str
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ApplicationCalendar:
    crop_id: str
    steps: List[CalendarStep]


@dataclass(frozen=True)
class HandlingNote:
    product_id: str
    name: str
    guidance: str


def build_application_calendar(
    reference: ReferenceData,
    crop_id: str,
    phosphorus_source_id: str,
    potassium_source_id: str,
    amendment: Optional[AmendmentPlan] = None,
    urea_kg_ha: float = 0.0,
) -> ApplicationCalendar:
    """Build the sowing / growth / development steps for a crop, preceded by any amendment."""
    crop = reference.get_crop(crop_id)
    calendar = reference.calendar_for(crop.id)
    p_source = reference.get_fertilizer(phosphorus_source_id, "phosphorus_source_id")
    k_source = reference.get_fertilizer(potassium_source_id, "potassium_source_id")
    urea = reference.role_fertilizer("nitrogen_source")

    steps = []
    if amendment is not None and amendment.lime_t_ha > 0:
        lime = reference.role_fertilizer("lime")
        steps.append(CalendarStep(
            stage="pre-sowing",
            products=[lime.display_name],
            guidance=lime.handling_guidance,
        ))
    elif amendment is not None and amendment.sulfur_t_ha > 0:
        sulfur = reference.role_fertilizer("sulfur")
        steps.append(CalendarStep(
            stage="pre-sowing",
            products=[sulfur.display_name],
            guidance=sulfur.handling_guidance,
        ))

    steps.append(CalendarStep(
        stage="sowing",
        products=[p_source.display_name, k_source.display_name],
        guidance=calendar.phosphorus if calendar else "",
    ))

    growth_warnings = [UREA_VOLATILITY_WARNING]
    if amendment is not None and amendment.lime_t_ha > 0 and urea_kg_ha > 0:
        growth_warnings.append(LIME_UREA_WARNING)
    steps.append(CalendarStep(
        stage="growth",
        products=[urea.display_name],
        guidance=calendar.nitrogen if calendar else "",
        warnings=growth_warnings,
    ))
    steps.append(CalendarStep(
        stage="development",
        products=[k_source.display_name],
        guidance=calendar.potassium if calendar else "",
    ))
    return ApplicationCalendar(crop_id=crop.id, steps=steps)


def build_handling_notes(reference: ReferenceData, product_ids: List[str]) -> List[HandlingNote]:
    """Handling guidance for each product, in the given order, without duplicates."""
    notes = []
    seen = set()
    for product_id in product_ids:
        fert = reference.get_fertilizer(product_id)
        if fert.id in seen:
            continue
        seen.add(fert.id)
        notes.append(HandlingNote(product_id=fert.id, name=fert.display_name, guidance=fert.handling_guidance))
    return notes
