"""
DemGen Transform Pipeline
=========================
Turns one ``DemGenConfig`` into an ordered list of ``TimeSeriesPoint``.

Stages run in a fixed order, each taking the full series and returning a
new one:

    1. base series      average volume + volatility noise
    2. growth trend     linear, annualised; segment-local when a segment sets ``trend``
    3. business patterns weekend boost, end-of-month surge, mid-month slump
    4. seasonality      monthly weights (or legacy holiday months) + events
    5. marker influence cosine interpolation between high/low markers
    6. realism          anomalies, rounding, floor at zero
    7. overrides        manual per-date edits

Segment overrides are resolved per date by ``resolve_effective_config``.
Overlapping segments: the first segment in list order that contains the
date wins.
"""

import logging
import math
import sys
from bisect import bisect_left
from calendar import monthrange
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import numpy as np

from .config import (
    BusinessPatterns, DataType, DemandSettings, DemGenConfig, MarkerType,
    MonthlyPattern, RealismSettings, SeasonalityEvent, TimeSegment, Volatility,
    load_config
)
from .dates import generate_date_range
from .models import TimeSeriesPoint

logger = logging.getLogger(__name__)


VOLATILITY_RANGES = {
    Volatility.NONE: 0.0,
    Volatility.LOW: 0.1,
    Volatility.MEDIUM: 0.3,
    Volatility.HIGH: 0.6,
}

MARKER_MULTIPLIERS = {
    MarkerType.HIGH: 1.5,
    MarkerType.LOW: 0.5,
}

END_SURGE_DAYS = 3
END_SURGE_FACTOR = 1.3
MID_SLUMP_DAYS = (14, 16)
MID_SLUMP_FACTOR = 0.7

STOCKOUT_THRESHOLD = 0.3
SPIKE_THRESHOLD = 0.6
SPIKE_RANGE = (2.0, 5.0)

EDIT_MARKER = "-- Edited by"
DAYS_PER_YEAR = 365


# =============================================================================
# CONFIG RESOLUTION
# =============================================================================

@dataclass
class EffectiveConfig:
    """Settings in force on one date"""
    demand: DemandSettings
    patterns: BusinessPatterns
    realism: RealismSettings
    segment: Optional[TimeSegment] = None


def merge_settings(base, overrides: Optional[Dict[str, Any]]):
    """Shallow merge: each field present in ``overrides`` replaces the base value."""
    if not overrides:
        return base
    return replace(base, **overrides)


def find_active_segment(day: date, segments: List[TimeSegment]) -> Optional[TimeSegment]:
    """First segment in list order whose inclusive interval contains ``day``"""
    for segment in segments:
        if segment.contains(day):
            return segment
    return None


def resolve_effective_config(day: date, config: DemGenConfig) -> EffectiveConfig:
    segment = find_active_segment(day, config.segments)
    if segment is None:
        return EffectiveConfig(config.demand, config.patterns, config.realism)

    return EffectiveConfig(
        demand=merge_settings(config.demand, segment.demand),
        patterns=merge_settings(config.patterns, segment.patterns),
        realism=merge_settings(config.realism, segment.realism),
        segment=segment,
    )


def _append_note(notes: Optional[str], text: str) -> str:
    return f"{notes}, {text}" if notes else text


# =============================================================================
# STAGE 1: BASE SERIES
# =============================================================================

def apply_volatility(value: float, volatility: Volatility, rng: np.random.Generator) -> float:
    """Uniform multiplicative noise in [1-r, 1+r]; exact for ``none``"""
    spread = VOLATILITY_RANGES[volatility]
    if spread == 0:
        return value
    return value * rng.uniform(1 - spread, 1 + spread)


def generate_base_series(dates: List[date], config: DemGenConfig,
                         rng: np.random.Generator) -> List[TimeSeriesPoint]:
    series = []
    for day in dates:
        demand = resolve_effective_config(day, config).demand
        value = apply_volatility(demand.average_daily, demand.volatility, rng)
        series.append(TimeSeriesPoint(date=day, value=value))
    return series


# =============================================================================
# STAGE 2: GROWTH TREND
# =============================================================================

def _progress(day: date, start: date, total_days: int) -> float:
    return min(max((day - start).days / total_days, 0.0), 1.0)


def apply_growth_trend(series: List[TimeSeriesPoint], config: DemGenConfig) -> List[TimeSeriesPoint]:
    """
    Linear growth at an annualised rate.

    The global rate becomes a total change of ``rate * years`` spread over the
    series. Inside a segment with its own ``trend`` that rate is used instead,
    measured over the segment's own interval.
    """
    if len(series) < 2:
        return series

    start, end = series[0].date, series[-1].date
    total_days = (end - start).days or 1
    total_growth = config.demand.growth_rate * (total_days / DAYS_PER_YEAR)

    result = []
    for point in series:
        segment = find_active_segment(point.date, config.segments)
        if segment is not None and segment.trend is not None:
            seg_days = (segment.end_date - segment.start_date).days or 1
            growth = segment.trend * (seg_days / DAYS_PER_YEAR)
            progress = _progress(point.date, segment.start_date, seg_days)
        else:
            growth = total_growth
            progress = _progress(point.date, start, total_days)

        factor = 1 + (growth / 100) * progress
        result.append(replace(point, value=point.value * factor))
    return result


# =============================================================================
# STAGE 3: BUSINESS PATTERNS
# =============================================================================

def apply_business_patterns(series: List[TimeSeriesPoint], config: DemGenConfig) -> List[TimeSeriesPoint]:
    result = []
    for point in series:
        patterns = resolve_effective_config(point.date, config).patterns
        value, notes = point.value, point.notes

        # Saturday / Sunday
        if point.date.weekday() >= 5 and patterns.weekend_boost > 0:
            value *= 1 + patterns.weekend_boost

        day_of_month = point.date.day
        days_in_month = monthrange(point.date.year, point.date.month)[1]

        if MonthlyPattern.END_SURGE in patterns.monthly_patterns and day_of_month > days_in_month - END_SURGE_DAYS:
            value *= END_SURGE_FACTOR
            notes = _append_note(notes, "End Surge")

        if MonthlyPattern.MID_SLUMP in patterns.monthly_patterns and MID_SLUMP_DAYS[0] <= day_of_month <= MID_SLUMP_DAYS[1]:
            value *= MID_SLUMP_FACTOR
            notes = _append_note(notes, "Mid Slump")

        result.append(replace(point, value=value, notes=notes))
    return result


# =============================================================================
# STAGE 4: SEASONALITY
# =============================================================================

def event_covers(event: SeasonalityEvent, day: date) -> bool:
    """Whether ``day`` falls in [start, start + duration - 1]"""
    span = timedelta(days=event.duration - 1)
    if not event.is_recurring:
        return event.start <= day <= event.start + span

    month, dom = event.month_day
    # Windows opening late in the previous year can run into this one
    for year in (day.year, day.year - 1):
        try:
            start = date(year, month, dom)
        except ValueError:
            continue  # 02-29 outside leap years
        if start <= day <= start + span:
            return True
    return False


def apply_seasonality(series: List[TimeSeriesPoint], config: DemGenConfig) -> List[TimeSeriesPoint]:
    seasonality = config.seasonality
    weights = seasonality.monthly_weights
    holiday_months = set(seasonality.holiday_months)

    result = []
    for point in series:
        month = point.date.month
        value, notes = point.value, point.notes

        # Any weight map, however sparse, disables the legacy holiday months
        if weights is not None:
            value *= weights.get(month, 1.0)
        elif month in holiday_months:
            value *= seasonality.holiday_strength

        for event in seasonality.events:
            if event_covers(event, point.date):
                value *= event.boost
                notes = _append_note(notes, event.name)

        result.append(replace(point, value=value, notes=notes))
    return result


# =============================================================================
# STAGE 5: MARKER INFLUENCE
# =============================================================================

def cosine_ease(t: float) -> float:
    return (1 - math.cos(t * math.pi)) / 2


def apply_marker_influence(series: List[TimeSeriesPoint], config: DemGenConfig) -> List[TimeSeriesPoint]:
    """
    Scale points lying between two markers by a multiplier eased from the
    earlier marker's level to the later one's. Points before the first
    marker or after the last are untouched.
    """
    if not config.markers:
        return series

    markers = sorted(config.markers, key=lambda m: m.date)
    marker_dates = [m.date for m in markers]

    result = []
    for point in series:
        # First marker at or after the point
        idx = bisect_left(marker_dates, point.date)
        if idx == 0 or idx == len(markers):
            result.append(point)
            continue

        prev_marker, next_marker = markers[idx - 1], markers[idx]
        total = (next_marker.date - prev_marker.date).days
        progress = (point.date - prev_marker.date).days / total if total else 0.0

        start_mult = MARKER_MULTIPLIERS[prev_marker.type]
        end_mult = MARKER_MULTIPLIERS[next_marker.type]
        mult = start_mult + (end_mult - start_mult) * cosine_ease(progress)

        result.append(replace(point, value=point.value * mult))
    return result


# =============================================================================
# STAGE 6: REALISM
# =============================================================================

def _floor_zero(value: float) -> float:
    return value if value > 0 else 0


def format_value(value: float, data_type: DataType) -> float:
    if data_type == DataType.INTEGER:
        return int(round(value))
    return round(value, 2)


def add_realism(series: List[TimeSeriesPoint], config: DemGenConfig,
                rng: np.random.Generator) -> List[TimeSeriesPoint]:
    """
    Inject anomalies, then round per ``data_type`` and floor at zero.

    Zero-volatility points never receive an anomaly, whatever the rate.
    On a hit a second draw picks the kind:
        [0, 0.3)   stockout (value 0), only if stockouts are enabled
        [0.3, 0.6) spike, x2-x5
        [0.6, 1)   data error, -50% magnitude (floored below)
    """
    result = []
    for point in series:
        effective = resolve_effective_config(point.date, config)
        realism = effective.realism

        if effective.demand.volatility == Volatility.NONE:
            value = format_value(_floor_zero(point.value), realism.data_type)
            result.append(replace(point, value=value, is_anomaly=False))
            continue

        value, notes = point.value, point.notes
        is_anomaly = False

        if rng.random() < realism.anomaly_rate:
            kind = rng.random()
            if kind < STOCKOUT_THRESHOLD:
                if realism.include_stockouts:
                    value = 0
                    notes = "Stockout"
                    is_anomaly = True
            elif kind < SPIKE_THRESHOLD:
                value *= rng.uniform(*SPIKE_RANGE)
                notes = "Spike"
                is_anomaly = True
            else:
                value = -abs(value) * 0.5
                notes = "Data Error"
                is_anomaly = True

        # Floor before rounding so tiny negatives cannot round to -0.0
        floored = value < 0
        value = format_value(_floor_zero(value), realism.data_type)

        if floored:
            if not notes or notes == "Data Error":
                notes = "Data Error (Floored)"
            else:
                notes = _append_note(notes, "Data Error (Floored)")

        result.append(replace(point, value=value, notes=notes, is_anomaly=is_anomaly))
    return result


# =============================================================================
# STAGE 7: OVERRIDES
# =============================================================================

def apply_overrides(series: List[TimeSeriesPoint], config: DemGenConfig) -> List[TimeSeriesPoint]:
    if not config.overrides:
        return series

    result = []
    for point in series:
        override = config.overrides.get(point.date.isoformat())
        if override is None:
            result.append(point)
            continue

        value, notes = point.value, point.notes or ""

        if override.value is not None:
            value = override.value
            edit_note = (f"{EDIT_MARKER} {override.modified_by} on "
                         f"{override.modified_at:%Y-%m-%d %H:%M:%S}")
            if EDIT_MARKER not in notes:
                notes = f"{notes} {edit_note}" if notes else edit_note

        if override.notes is not None:
            notes = override.notes

        result.append(replace(point, value=value, notes=notes or None, is_edited=True))
    return result


# =============================================================================
# MASTER PIPELINE
# =============================================================================

def generate_time_series(config: DemGenConfig, rng: Optional[np.random.Generator] = None,
                         seed: Optional[int] = None) -> List[TimeSeriesPoint]:
    """
    Run all seven stages in order.

    ``rng`` wins over ``seed``; with neither, an unseeded generator is used.
    """
    if rng is None:
        rng = np.random.default_rng(seed)

    dates = generate_date_range(config.time)

    series = generate_base_series(dates, config, rng)
    series = apply_growth_trend(series, config)
    series = apply_business_patterns(series, config)
    series = apply_seasonality(series, config)
    series = apply_marker_influence(series, config)
    series = add_realism(series, config, rng)
    series = apply_overrides(series, config)

    logger.debug(f"Generated {len(series)} points from {dates[0]} to {dates[-1]}")
    return series


# Entry point used by callers
generate = generate_time_series


if __name__ == "__main__":
    from .validation import SeriesValidator

    logging.basicConfig(level=logging.INFO)

    config_path = sys.argv[1] if len(sys.argv) > 1 else "configs/demand_config.yaml"
    config = load_config(config_path)
    points = generate_time_series(config, seed=42)

    validator = SeriesValidator(config)
    validator.validate_series(points)
    for r in validator.results:
        logger.info(f"{r.severity.value} {r.name}: {r.message}")

    values = [p.value for p in points]
    logger.info(f"Points: {len(points)}, total={sum(values):,.0f}, "
                f"min={min(values)}, max={max(values)}, "
                f"anomalies={sum(p.is_anomaly for p in points)}")
    logger.info(f"Summary: {validator.get_summary()}")
