"""
Tests for cost aggregation and currency conversion.
"""
import pytest

from agroadvisor.services.advisory_errors import ConfigurationError
from agroadvisor.services.cost_service import (
    COP_PER_USD,
    ProductDose,
    StaticRateProvider,
    aggregate_costs,
)


DOSES = [
    ProductDose("map", 100.0),
    ProductDose("kcl", 50.0),
    ProductDose("urea", 0.0),
    ProductDose("agricultural_lime", 2000.0),
]


class TestStaticRateProvider:

    def test_default_rates(self):
        """USD is 1 and COP uses the configured rate; codes are case-insensitive."""
        provider = StaticRateProvider()
        assert provider.rate_for("USD") == 1.0
        assert provider.rate_for("cop") == COP_PER_USD
        assert set(provider.currencies) == {"USD", "COP"}

    def test_overrides(self):
        """Explicit rates replace or extend the defaults."""
        provider = StaticRateProvider({"cop": 3900, "EUR": 0.9})
        assert provider.rate_for("COP") == 3900
        assert provider.rate_for("EUR") == pytest.approx(0.9)

    def test_unknown_currency(self):
        """Currencies without a rate are configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            StaticRateProvider().rate_for("GBP")
        assert exc_info.value.field == "currency"


class TestAggregateCosts:

    def test_usd_lines(self, reference):
        """Nonzero doses are priced per ha and over the area in USD."""
        costs = aggregate_costs(reference, DOSES, area_ha=2.0)
        assert [item.product_id for item in costs.items] == ["map", "kcl", "agricultural_lime"]
        map_line = costs.items[0]
        assert map_line.unit_price_usd == pytest.approx(1.2)
        assert map_line.cost_per_ha == pytest.approx(120)
        assert map_line.cost_total == pytest.approx(240)
        assert costs.sum_per_ha == pytest.approx(120 + 45 + 200)
        assert costs.currency == "USD"
        assert costs.rate == 1.0

    def test_total_is_per_hectare_times_area(self, reference):
        """Total cost is always per-ha cost times area."""
        for area in (0.5, 1.0, 7.25, 10000.0):
            costs = aggregate_costs(reference, DOSES, area_ha=area)
            assert costs.sum_total == pytest.approx(costs.sum_per_ha * area)

    def test_zero_doses_skipped(self, reference):
        """Zero doses produce no cost line."""
        costs = aggregate_costs(reference, [ProductDose("urea", 0.0)], area_ha=1.0)
        assert costs.items == []
        assert costs.sum_per_ha == 0
        assert costs.sum_total == 0

    def test_converted_currency(self, reference):
        """Converted costs scale every USD figure by the rate."""
        provider = StaticRateProvider({"COP": 4000})
        usd = aggregate_costs(reference, DOSES, area_ha=3.0)
        cop = aggregate_costs(reference, DOSES, area_ha=3.0, currency="cop", rate_provider=provider)
        assert cop.currency == "COP"
        assert cop.rate == 4000
        assert cop.sum_per_ha == pytest.approx(usd.sum_per_ha * 4000)
        assert cop.items[0].unit_price == pytest.approx(1.2 * 4000)
        assert cop.items[0].cost_per_ha_usd == pytest.approx(usd.items[0].cost_per_ha)

    def test_unknown_currency(self, reference):
        """Unknown currency is rejected before pricing."""
        with pytest.raises(ConfigurationError):
            aggregate_costs(reference, DOSES, area_ha=1.0, currency="JPY")

    def test_unknown_product(self, reference):
        """Unknown product ids are rejected."""
        with pytest.raises(ConfigurationError):
            aggregate_costs(reference, [ProductDose("guano", 10.0)], area_ha=1.0)
