"""Eval runner - prices scenario quotes against the bundled catalogue."""

import sys
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from quote_engine.adapters.fixtures import load_fixture_data_access
from quote_engine.calculation.quote_calculator import calculate
from quote_engine.models import QuoteCalculationInput, QuoteCalculationResult
from quote_engine.utils.currency import format_money


def load_scenarios(path: Path = Path("eval/scenarios.yaml")) -> dict[str, Any]:
    """Load scenarios from YAML."""
    with open(path) as f:
        result: dict[str, Any] = yaml.safe_load(f)
        return result


def build_input_from_yaml(input_data: dict[str, Any]) -> QuoteCalculationInput:
    """Build QuoteCalculationInput from YAML data."""
    return QuoteCalculationInput.model_validate(input_data)


def evaluate_predicates(
    result: QuoteCalculationResult, predicates: list[dict[str, str]]
) -> tuple[int, int]:
    """Evaluate predicates; return (passed, total)."""
    passed = 0
    total = len(predicates)
    env = {
        "result": result,
        "totals": result.totals,
        "legs": result.legs,
        "codes": [w.code for w in result.warnings],
        "Decimal": Decimal,
        "len": len,
        "abs": abs,
    }

    for pred_data in predicates:
        predicate = pred_data["predicate"]
        description = pred_data.get("description", predicate)
        try:
            outcome = eval(predicate, {"__builtins__": {}}, env)
            if outcome:
                passed += 1
                print(f"  ✓ PASS: {description}")
            else:
                print(f"  ✗ FAIL: {description}")
        except Exception as e:
            print(f"  ✗ ERROR: {description} - {e}")

    return passed, total


def main() -> int:
    """Run eval scenarios."""
    scenarios_data = load_scenarios()
    scenarios = scenarios_data["scenarios"]
    catalogue_name = scenarios_data.get("catalogue", "maldives_catalogue.json")
    data_access = load_fixture_data_access(catalogue_name)

    total_passed = 0
    total_predicates = 0

    for scenario in scenarios:
        scenario_id = scenario["scenario_id"]
        description = scenario["description"]
        print(f"\n=== Scenario: {scenario_id} ===")
        print(f"Description: {description}")

        calculation_input = build_input_from_yaml(scenario["input"])
        result = calculate(calculation_input, data_access)
        if result.success:
            print(f"Total sell: {format_money(result.totals.total_sell, result.currency_code)}")
        else:
            print(f"Blocked: {', '.join(w.code for w in result.blocking_errors)}")

        predicates = scenario["must_satisfy"]
        passed, total = evaluate_predicates(result, predicates)
        total_passed += passed
        total_predicates += total

        print(f"Result: {passed}/{total} predicates passed")

    print("\n=== Summary ===")
    print(f"Total: {total_passed}/{total_predicates} predicates passed")

    if total_passed < total_predicates:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
