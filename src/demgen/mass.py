"""
DemGen Mass Generation
======================
Samples many independent single-item configurations from triangular
distributions and runs each through the transform pipeline.

Usage:
    from demgen import load_mass_config, generate_batch

    items = generate_batch(load_mass_config('configs/mass_config.yaml'), seed=2024)
"""

import logging
import sys
import uuid
from typing import List, Optional, Set

import numpy as np

from .config import (
    BusinessPatterns, ConfigurationError, DataType, DemandSettings, DemGenConfig,
    MassGenConfig, RealismSettings, SeasonalitySettings, Volatility,
    load_mass_config
)
from .engine import generate_time_series
from .models import GeneratedItem
from .sampling import sample

logger = logging.getLogger(__name__)


# Volatility factor (0-3) -> category; anything >= 2.5 is HIGH
VOLATILITY_THRESHOLDS = [
    (0.5, Volatility.NONE),
    (1.5, Volatility.LOW),
    (2.5, Volatility.MEDIUM),
]

MASS_ANOMALY_RATE = 0.01

NAME_PREFIX = "it-"
TOKEN_SPACE = 0x100000   # 5 hex digits
TOKEN_WIDTH = 5
MAX_NAME_ATTEMPTS = 100


def volatility_from_factor(factor: float) -> Volatility:
    for threshold, volatility in VOLATILITY_THRESHOLDS:
        if factor < threshold:
            return volatility
    return Volatility.HIGH


# ============================================================
# ITEM SYNTHESIS
# ============================================================

def synthesize_item_config(mass_config: MassGenConfig, rng: np.random.Generator) -> DemGenConfig:
    """
    Sample one single-item config.

    Mass items carry a fixed realism profile (1% anomalies, no stockouts,
    integer output) and no segments, markers or overrides.
    """
    demand_cfg = mass_config.demand

    average_daily = int(round(sample(demand_cfg.average_daily, rng)))
    growth_rate = int(round(sample(demand_cfg.growth_rate, rng)))
    volatility = volatility_from_factor(sample(demand_cfg.volatility, rng))

    # Every month resolved; unspecified months are neutral
    month_dists = mass_config.seasonality.month_weights
    weights = {}
    for month in range(1, 13):
        dist = month_dists.get(month)
        weights[month] = sample(dist, rng) if dist is not None else 1.0

    return DemGenConfig(
        time=mass_config.time,
        demand=DemandSettings(
            average_daily=average_daily,
            growth_rate=growth_rate,
            volatility=volatility,
        ),
        patterns=BusinessPatterns(),
        seasonality=SeasonalitySettings(monthly_weights=weights),
        realism=RealismSettings(
            anomaly_rate=MASS_ANOMALY_RATE,
            include_stockouts=False,
            data_type=DataType.INTEGER,
        ),
    )


# ============================================================
# NAME ISSUING
# ============================================================

class NameRegistry:
    """
    Issues hex name tokens from [low, high), rejecting repeats.

    After ``max_attempts`` colliding draws the last token is suffixed with the
    item index instead. Separate registries over disjoint ranges never
    collide with each other.
    """

    def __init__(self, rng: np.random.Generator, low: int = 0, high: int = TOKEN_SPACE,
                 max_attempts: int = MAX_NAME_ATTEMPTS, prefix: str = NAME_PREFIX):
        if not 0 <= low < high <= TOKEN_SPACE:
            raise ConfigurationError(f"Token range [{low}, {high}) outside [0, {TOKEN_SPACE})")
        if max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1, got {max_attempts}")
        self.rng = rng
        self.low = low
        self.high = high
        self.max_attempts = max_attempts
        self.prefix = prefix
        self.issued: Set[str] = set()

    def _draw(self) -> str:
        return f"{int(self.rng.integers(self.low, self.high)):0{TOKEN_WIDTH}X}"

    def issue(self, index: int) -> str:
        for _ in range(self.max_attempts):
            token = self._draw()
            if token not in self.issued:
                break
        else:
            logger.warning(f"Name collision retry limit reached, appending index {index}")
            token = f"{token}-{index}"

        self.issued.add(token)
        return f"{self.prefix}{token}"


def _item_id(rng: np.random.Generator) -> str:
    return str(uuid.UUID(bytes=rng.bytes(16), version=4))


# ============================================================
# BATCH RUNNER
# ============================================================

def generate_batch(mass_config: MassGenConfig, rng: Optional[np.random.Generator] = None,
                   seed: Optional[int] = None, registry: Optional[NameRegistry] = None) -> List[GeneratedItem]:
    """Generate ``item_count`` independent items with unique names"""
    if rng is None:
        rng = np.random.default_rng(seed)
    if registry is None:
        registry = NameRegistry(rng)

    logger.info(f"Generating {mass_config.item_count:,} items x "
                f"{mass_config.time.period_count} periods")

    items = []
    for i in range(mass_config.item_count):
        item_config = synthesize_item_config(mass_config, rng)
        data = generate_time_series(item_config, rng=rng)

        items.append(GeneratedItem(
            id=_item_id(rng),
            name=registry.issue(i),
            config=item_config,
            data=data,
        ))

        if (i + 1) % 1000 == 0:
            logger.info(f"  Generated {i + 1:,} / {mass_config.item_count:,}")

    return items


if __name__ == "__main__":
    from .validation import SeriesValidator

    logging.basicConfig(level=logging.INFO)

    config_path = sys.argv[1] if len(sys.argv) > 1 else "configs/mass_config.yaml"
    mass_config = load_mass_config(config_path)
    items = generate_batch(mass_config, seed=42)

    validator = SeriesValidator(DemGenConfig(time=mass_config.time))
    validator.validate_batch(items, expected_count=mass_config.item_count)
    for r in validator.results:
        logger.info(f"{r.severity.value} {r.name}: {r.message}")
    logger.info(f"Summary: {validator.get_summary()}")
