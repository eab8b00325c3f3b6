"""
DemGen - Mass Generation Tests
==============================
Per-item sampling, name issuing and batch properties.
"""

import logging
import re
import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from demgen.config import (
    ConfigurationError, DataType, MassGenConfig, TimeSettings, Volatility
)
from demgen.mass import (
    MASS_ANOMALY_RATE, NameRegistry, generate_batch, synthesize_item_config,
    volatility_from_factor
)

NAME_RE = re.compile(r"^it-[0-9A-F]{5}$")


def make_mass_config(item_count=20, period_count=30, **demand):
    demand_cfg = {
        'average_daily': [50, 100, 200],
        'growth_rate': [-5, 0, 10],
        'volatility': [0, 1, 3],
    }
    demand_cfg.update(demand)
    return MassGenConfig(
        item_count=item_count,
        time=TimeSettings(start_date="2024-01-01", period_count=period_count),
        demand=demand_cfg,
        seasonality={'month_weights': {12: [1.2, 1.5, 2.0]}},
    )


class TestVolatilityMapping:
    """Test factor -> category thresholds"""

    @pytest.mark.parametrize("factor,expected", [
        (0.0, Volatility.NONE),
        (0.49, Volatility.NONE),
        (0.5, Volatility.LOW),
        (1.49, Volatility.LOW),
        (1.5, Volatility.MEDIUM),
        (2.49, Volatility.MEDIUM),
        (2.5, Volatility.HIGH),
        (3.0, Volatility.HIGH),
    ])
    def test_thresholds(self, factor, expected):
        assert volatility_from_factor(factor) is expected


class TestSynthesizeItemConfig:
    """Test per-item config sampling"""

    def test_sampled_fields(self):
        mass = make_mass_config()
        rng = np.random.default_rng(1)
        for _ in range(50):
            cfg = synthesize_item_config(mass, rng)
            assert 50 <= cfg.demand.average_daily <= 200
            assert isinstance(cfg.demand.average_daily, int)
            assert -5 <= cfg.demand.growth_rate <= 10
            assert isinstance(cfg.demand.growth_rate, int)
            assert 1.2 <= cfg.seasonality.monthly_weights[12] <= 2.0

    def test_all_months_resolved(self):
        cfg = synthesize_item_config(make_mass_config(), np.random.default_rng(2))
        assert sorted(cfg.seasonality.monthly_weights) == list(range(1, 13))
        assert cfg.seasonality.monthly_weights[6] == 1.0

    def test_fixed_realism_profile(self):
        cfg = synthesize_item_config(make_mass_config(), np.random.default_rng(3))
        assert cfg.realism.anomaly_rate == MASS_ANOMALY_RATE
        assert not cfg.realism.include_stockouts
        assert cfg.realism.data_type is DataType.INTEGER
        assert cfg.segments == []
        assert cfg.markers == []
        assert cfg.overrides == {}

    def test_time_settings_shared(self):
        mass = make_mass_config()
        cfg = synthesize_item_config(mass, np.random.default_rng(4))
        assert cfg.time == mass.time

    def test_constant_distributions(self):
        mass = make_mass_config(average_daily=[75, 75, 75], growth_rate=[2, 2, 2], volatility=[2, 2, 2])
        cfg = synthesize_item_config(mass, np.random.default_rng(5))
        assert cfg.demand.average_daily == 75
        assert cfg.demand.growth_rate == 2
        assert cfg.demand.volatility is Volatility.MEDIUM


class TestNameRegistry:
    """Test unique name issuing"""

    def test_name_format(self):
        registry = NameRegistry(np.random.default_rng(6))
        names = [registry.issue(i) for i in range(200)]
        assert all(NAME_RE.match(n) for n in names)
        assert len(set(names)) == 200

    def test_exhausted_range_falls_back(self, caplog):
        registry = NameRegistry(np.random.default_rng(7), low=0, high=1)
        assert registry.issue(0) == "it-00000"
        with caplog.at_level(logging.WARNING, logger="demgen.mass"):
            assert registry.issue(1) == "it-00000-1"
        assert "retry limit" in caplog.text

    def test_disjoint_ranges(self):
        rng = np.random.default_rng(8)
        a = NameRegistry(rng, low=0, high=0x80000)
        b = NameRegistry(rng, low=0x80000, high=0x100000)
        names_a = {a.issue(i) for i in range(300)}
        names_b = {b.issue(i) for i in range(300)}
        assert not names_a & names_b
        assert all(int(n[3:], 16) >= 0x80000 for n in names_b)

    def test_invalid_range(self):
        rng = np.random.default_rng(9)
        with pytest.raises(ConfigurationError):
            NameRegistry(rng, low=10, high=10)
        with pytest.raises(ConfigurationError):
            NameRegistry(rng, high=0x100001)
        with pytest.raises(ConfigurationError):
            NameRegistry(rng, max_attempts=0)


class TestGenerateBatch:
    """Test batch generation"""

    def test_item_count_and_lengths(self):
        items = generate_batch(make_mass_config(item_count=25), seed=10)
        assert len(items) == 25
        assert all(len(item.data) == 30 for item in items)
        assert all(p.value >= 0 for item in items for p in item.data)

    def test_large_batch_unique(self):
        items = generate_batch(make_mass_config(item_count=1000, period_count=10), seed=11)
        assert len({item.name for item in items}) == 1000
        assert len({item.id for item in items}) == 1000
        assert all(NAME_RE.match(item.name) for item in items)

    def test_ids_are_uuid4(self):
        items = generate_batch(make_mass_config(item_count=5), seed=12)
        assert all(len(item.id) == 36 and item.id[14] == '4' for item in items)

    def test_seed_reproducible(self):
        mass = make_mass_config(item_count=10)
        a = generate_batch(mass, seed=13)
        b = generate_batch(mass, seed=13)
        assert [i.name for i in a] == [i.name for i in b]
        assert [i.id for i in a] == [i.id for i in b]
        assert [i.data for i in a] == [i.data for i in b]

    def test_zero_items(self):
        assert generate_batch(make_mass_config(item_count=0), seed=14) == []

    def test_shared_registry(self):
        rng = np.random.default_rng(15)
        registry = NameRegistry(rng, low=0, high=0x10)
        first = generate_batch(make_mass_config(item_count=8), rng=rng, registry=registry)
        second = generate_batch(make_mass_config(item_count=8), rng=rng, registry=registry)
        names = [i.name for i in first + second]
        assert len(set(names)) == 16


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
