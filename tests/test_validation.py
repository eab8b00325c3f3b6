"""
DemGen - Validation Tests
=========================
"""

import pytest
import sys
from dataclasses import replace
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from demgen.config import DemGenConfig, load_config, load_mass_config
from demgen.engine import generate_time_series
from demgen.mass import generate_batch
from demgen.validation import SeriesValidator, ValidationSeverity

CONFIG_DIR = Path(__file__).parent.parent / "configs"


@pytest.fixture(scope="module")
def demand_config():
    return load_config(CONFIG_DIR / "demand_config.yaml")


@pytest.fixture(scope="module")
def points(demand_config):
    return generate_time_series(demand_config, seed=42)


def failures(results):
    return [r.name for r in results if r.severity == ValidationSeverity.FAIL]


class TestSeriesValidation:
    """Test checks on a single series"""

    def test_generated_series_passes(self, demand_config, points):
        validator = SeriesValidator(demand_config)
        results = validator.validate_series(points)
        assert failures(results) == []
        summary = validator.get_summary()
        assert summary['failed'] == 0
        assert summary['passed'] >= 5

    def test_anomaly_rate_reported(self, demand_config, points):
        results = SeriesValidator(demand_config).validate_series(points)
        info = [r for r in results if r.severity == ValidationSeverity.INFO]
        assert len(info) == 1
        assert info[0].expected == "2.0%"

    def test_detects_negative(self, demand_config, points):
        broken = list(points)
        broken[3] = replace(broken[3], value=-5)
        results = SeriesValidator(demand_config).validate_series(broken)
        assert "Rule: Values >= 0" in failures(results)

    def test_detects_wrong_length(self, demand_config, points):
        results = SeriesValidator(demand_config).validate_series(points[:-1])
        assert failures(results) == ["Series: Period count"]

    def test_detects_unordered_dates(self, demand_config, points):
        broken = list(points)
        broken[10], broken[11] = broken[11], broken[10]
        results = SeriesValidator(demand_config).validate_series(broken)
        assert "Temporal: Strictly increasing dates" in failures(results)

    def test_detects_missing_override(self, demand_config, points):
        broken = [replace(p, is_edited=False) for p in points]
        results = SeriesValidator(demand_config).validate_series(broken)
        assert "Rule: Overrides applied" in failures(results)


class TestBatchValidation:
    """Test checks on a mass batch"""

    @pytest.fixture(scope="class")
    def batch(self):
        mass = load_mass_config(CONFIG_DIR / "mass_config.yaml")
        mass.item_count = 40
        return mass, generate_batch(mass, seed=7)

    def test_generated_batch_passes(self, batch):
        mass, items = batch
        validator = SeriesValidator(DemGenConfig(time=mass.time))
        results = validator.validate_batch(items, expected_count=40)
        assert failures(results) == []
        assert validator.get_summary()['passed'] == 4

    def test_detects_duplicates(self, batch):
        mass, items = batch
        dupes = items + [items[0]]
        validator = SeriesValidator(DemGenConfig(time=mass.time))
        results = validator.validate_batch(dupes, expected_count=40)
        assert set(failures(results)) == {"Batch: Item count", "Batch: Unique names", "Batch: Unique ids"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
