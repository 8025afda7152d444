"""Fixture-based loading of reference catalogues."""

import json
import logging
from pathlib import Path

from quote_engine.adapters.data_access import CalculationDataAccess
from quote_engine.models.store import DataStore

logger = logging.getLogger(__name__)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
DEFAULT_CATALOGUE = "maldives_catalogue.json"


def load_data_store(path: Path | str) -> DataStore:
    """Load and validate a DataStore from a JSON catalogue.

    Args:
        path: Path to a JSON document whose top-level keys are DataStore collections

    Returns:
        Validated, immutable DataStore

    Raises:
        pydantic.ValidationError: The catalogue does not match the reference schema
    """
    with open(path) as f:
        data = json.load(f)

    store = DataStore.model_validate(data)
    logger.info(
        "Loaded reference catalogue",
        extra={
            "structured": {
                "path": str(path),
                "resorts": len(store.resorts),
                "rates": len(store.rates),
                "tax_configurations": len(store.tax_configurations),
            }
        },
    )
    return store


def load_fixture_data_access(name: str = DEFAULT_CATALOGUE) -> CalculationDataAccess:
    """Load a bundled catalogue fixture wrapped in a CalculationDataAccess."""
    return CalculationDataAccess(load_data_store(FIXTURES_DIR / name))
