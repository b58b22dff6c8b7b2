#!/usr/bin/env python3
"""
Soil Advisor Validation Script
Runs randomized soil tests through the calculator and checks the
agronomic invariants of every result.
"""
import argparse
import json
import os
import random
import sys
from typing import Any, Dict, List

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from agroadvisor.services.advisory_errors import ConfigurationError
from agroadvisor.services.soil_advisor_calculator import AdvisoryRequest, soil_advisor_calculator
from agroadvisor.services.soil_advisor_rules import INPUT_RANGES, MAX_LIME_T_HA, MAX_SULFUR_T_HA

CROPS = ["maize", "pasture", "vegetables", "cotton", "cowpea", "oil_palm", "rice"]
PHOSPHORUS_SOURCES = ["map", "dap"]
CURRENCIES = ["USD", "COP"]

TYPICAL_RANGES = {
    "urea_kg_ha": {"max": 1100},
    "lime_t_ha": {"max": MAX_LIME_T_HA},
    "sulfur_t_ha": {"max": MAX_SULFUR_T_HA},
}


def random_request(invalid_rate: float) -> AdvisoryRequest:
    values = {}
    for field_name, (low, high, _) in INPUT_RANGES.items():
        if field_name == "area_ha":
            values[field_name] = round(random.uniform(0.1, 500), 2)
        else:
            values[field_name] = round(random.uniform(low, high), 2)
    if random.random() < invalid_rate:
        field_name = random.choice(list(INPUT_RANGES))
        values[field_name] = random.choice([-1, 99999, "abc", None])
    return AdvisoryRequest(
        crop_id=random.choice(CROPS),
        phosphorus_source_id=random.choice(PHOSPHORUS_SOURCES),
        potassium_source_id="kcl",
        currency=random.choice(CURRENCIES),
        **values,
    )


def check_result(result) -> List[str]:
    issues = []
    if not result.is_valid:
        if not result.validation_errors:
            issues.append("invalid result without validation errors")
        if result.nutrient_plan is not None or result.cost_summary is not None:
            issues.append("invalid result carries a partial plan")
        return issues

    amendment = result.amendment_plan
    nitrogen = result.nutrient_plan.nitrogen
    costs = result.cost_summary

    if amendment.lime_t_ha > 0 and amendment.sulfur_t_ha > 0:
        issues.append("lime and sulfur both recommended")
    if amendment.lime_t_ha > TYPICAL_RANGES["lime_t_ha"]["max"] + 1e-9:
        issues.append(f"lime above cap: {amendment.lime_t_ha:.3f}")
    if amendment.sulfur_t_ha > TYPICAL_RANGES["sulfur_t_ha"]["max"] + 1e-9:
        issues.append(f"sulfur above cap: {amendment.sulfur_t_ha:.3f}")
    if nitrogen.urea_kg_ha < 0:
        issues.append(f"negative urea: {nitrogen.urea_kg_ha:.3f}")
    if nitrogen.urea_kg_ha > TYPICAL_RANGES["urea_kg_ha"]["max"]:
        issues.append(f"urea unusually high: {nitrogen.urea_kg_ha:.1f}")
    expected_total = costs.sum_per_ha * costs.area_ha
    if abs(costs.sum_total - expected_total) > 1e-6 * max(1.0, abs(expected_total)):
        issues.append(f"cost total {costs.sum_total:.2f} != {expected_total:.2f}")
    return issues


def run_validation(num_tests: int = 500, seed: int = 42, invalid_rate: float = 0.1) -> Dict[str, Any]:
    random.seed(seed)

    stats = {
        "total_tests": num_tests,
        "successful": 0,
        "invalid": 0,
        "configuration_errors": 0,
        "lime": 0,
        "sulfur": 0,
        "zero_urea": 0,
        "anomalies": 0,
    }
    anomalies = []

    for i in range(num_tests):
        request = random_request(invalid_rate)
        try:
            result = soil_advisor_calculator.calculate(request)
        except ConfigurationError as e:
            stats["configuration_errors"] += 1
            anomalies.append({"test_id": i + 1, "issue": "Configuration error", "error": str(e)})
            continue

        issues = check_result(result)
        for issue in issues:
            anomalies.append({"test_id": i + 1, "crop": request.crop_id, "issue": issue})

        if not result.is_valid:
            stats["invalid"] += 1
            continue

        stats["successful"] += 1
        if result.amendment_plan.lime_t_ha > 0:
            stats["lime"] += 1
        if result.amendment_plan.sulfur_t_ha > 0:
            stats["sulfur"] += 1
        if result.nutrient_plan.nitrogen.urea_kg_ha == 0:
            stats["zero_urea"] += 1

    stats["anomalies"] = len(anomalies)
    return {"stats": stats, "anomalies": anomalies}


def generate_report(validation: Dict) -> str:
    stats = validation["stats"]
    report = []
    report.append("=" * 80)
    report.append("VALIDATION REPORT - SOIL ADVISOR")
    report.append("=" * 80)
    report.append(f"Total tests: {stats['total_tests']}")
    report.append(f"Successful: {stats['successful']}")
    report.append(f"Rejected inputs: {stats['invalid']}")
    report.append(f"Configuration errors: {stats['configuration_errors']}")
    report.append(f"Lime recommended: {stats['lime']}")
    report.append(f"Sulfur recommended: {stats['sulfur']}")
    report.append(f"No urea needed: {stats['zero_urea']}")
    report.append(f"Anomalies: {stats['anomalies']}")
    report.append("")
    for anomaly in validation["anomalies"][:20]:
        report.append(f"  #{anomaly['test_id']}: {anomaly['issue']}")
    return "\n".join(report)


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--num-tests", type=int, default=500)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--json", action="store_true", help="Print raw results as JSON")
    args = parser.parse_args()

    validation = run_validation(args.num_tests, args.seed)
    if args.json:
        print(json.dumps(validation, indent=2))
    else:
        print(generate_report(validation))
    return 1 if validation["stats"]["anomalies"] else 0


if __name__ == "__main__":
    sys.exit(main())
