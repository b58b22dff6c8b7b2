"""
Cost aggregation for the soil advisor.

Prices every nonzero product dose at its reference USD price, converts to
the requested currency and sums per-hectare and total cost over the
treated area.

Currency conversion uses one static configured rate per currency. This is
a rough reference rate, not a live exchange rate; pass another
RateProvider to the aggregator to change it.
"""
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from agroadvisor.services.advisory_errors import ConfigurationError
from agroadvisor.services.reference_data import ReferenceData
from agroadvisor.services.soil_advisor_rules import DEFAULT_COP_PER_USD, REFERENCE_CURRENCY

logger = logging.getLogger(__name__)

COP_PER_USD = float(os.environ.get("SOIL_ADVISOR_COP_PER_USD", DEFAULT_COP_PER_USD))


class RateProvider(Protocol):
    def rate_for(self, currency: str) -> float:
        ...


class StaticRateProvider:
    """Fixed multipliers from USD to each supported currency."""

    def __init__(self, rates: Optional[Dict[str, float]] = None):
        self.rates = {REFERENCE_CURRENCY: 1.0, "COP": COP_PER_USD}
        if rates:
            self.rates.update({k.upper(): float(v) for k, v in rates.items()})

    def rate_for(self, currency: str) -> float:
        code = (currency or "").upper()
        if code not in self.rates:
            raise ConfigurationError(f"Unsupported currency '{currency}'", field="currency", value=currency)
        return self.rates[code]

    @property
    def currencies(self) -> List[str]:
        return list(self.rates.keys())


default_rate_provider = StaticRateProvider()


@dataclass(frozen=True)
class ProductDose:
    """A product and its computed dose in kg/ha."""
    fertilizer_id: str
    dose_kg_ha: float


@dataclass(frozen=True)
class CostLine:
    product_id: str
    name: str
    dose_kg_ha: float
    unit_price_usd: float
    unit_price: float
    cost_per_ha_usd: float
    cost_per_ha: float
    cost_total: float


@dataclass(frozen=True)
class CostSummary:
    items: List[CostLine]
    sum_per_ha: float
    sum_total: float
    currency: str
    rate: float
    area_ha: float


def aggregate_costs(
    reference: ReferenceData,
    doses: List[ProductDose],
    area_ha: float,
    currency: str = REFERENCE_CURRENCY,
    rate_provider: Optional[RateProvider] = None,
) -> CostSummary:
    """
    Price each nonzero dose and sum the results.

    cost_per_ha = dose_kg_ha * price_usd_kg * rate
    cost_total  = cost_per_ha * area_ha
    """
    provider = rate_provider or default_rate_provider
    rate = provider.rate_for(currency)
    items = []
    for dose in doses:
        if not dose.dose_kg_ha > 0:
            continue
        fert = reference.get_fertilizer(dose.fertilizer_id)
        price_usd = fert.reference_unit_price_usd_per_kg
        cost_per_ha_usd = dose.dose_kg_ha * price_usd
        cost_per_ha = cost_per_ha_usd * rate
        items.append(CostLine(
            product_id=fert.id,
            name=fert.display_name,
            dose_kg_ha=dose.dose_kg_ha,
            unit_price_usd=price_usd,
            unit_price=price_usd * rate,
            cost_per_ha_usd=cost_per_ha_usd,
            cost_per_ha=cost_per_ha,
            cost_total=cost_per_ha * area_ha,
        ))

    return CostSummary(
        items=items,
        sum_per_ha=sum(item.cost_per_ha for item in items),
        sum_total=sum(item.cost_total for item in items),
        currency=currency.upper(),
        rate=rate,
        area_ha=area_ha,
    )
