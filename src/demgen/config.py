"""
DemGen Configuration & Domain Types
===================================

Declarative configuration for demand series synthesis. A single-item run is
described by a ``DemGenConfig``; a mass run by a ``MassGenConfig`` whose
distributions are sampled into many ``DemGenConfig`` instances.

All settings groups are plain dataclasses. Categorical fields are coerced to
their enum in ``__post_init__`` and dates are parsed once, so a config that
constructs successfully is safe to hand to the pipeline. Anything malformed
raises ``ConfigurationError`` before generation starts.

Conventions
-----------
- Growth rates (global and segment trend) are annualised percentages.
- ``weekly_day`` uses 0=Sunday ... 6=Saturday.
- Month keys are 1-12.
"""

import re
import uuid
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from dateutil.parser import isoparse


class ConfigurationError(ValueError):
    """Invalid configuration supplied by the caller."""


DateLike = Union[str, date, datetime]


# =============================================================================
# ENUMERATIONS
# =============================================================================

class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Volatility(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StoreHours(str, Enum):
    """Display-only tag, not consumed by the pipeline."""
    NINE_TO_FIVE = "9-5"
    TEN_TO_NINE = "10-9"
    ALWAYS_OPEN = "24-7"


class MonthlyPattern(str, Enum):
    END_SURGE = "end_surge"   # last 3 days of the month
    MID_SLUMP = "mid_slump"   # days 14-16


class MarkerType(str, Enum):
    HIGH = "high"
    LOW = "low"


class DataType(str, Enum):
    INTEGER = "integer"
    DECIMAL = "decimal"


# =============================================================================
# PARSING HELPERS
# =============================================================================

_MONTH_DAY_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")


def parse_date(value: DateLike, field_name: str = "date") -> date:
    """Parse an ISO date (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value)).date()
    except (ValueError, OverflowError) as e:
        raise ConfigurationError(f"Unparseable {field_name}: {value!r}") from e


def _coerce_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = [m.value for m in enum_cls]
        raise ConfigurationError(
            f"Invalid {field_name} {value!r}; expected one of {allowed}"
        ) from e


def parse_timestamp(value: DateLike, field_name: str = "timestamp") -> datetime:
    """Parse an ISO timestamp (or pass a datetime through)."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return isoparse(str(value))
    except (ValueError, OverflowError) as e:
        raise ConfigurationError(f"Unparseable {field_name}: {value!r}") from e


def _coerce_number(value, field_name: str, cast=float):
    """Numeric field; ints pass through for float fields"""
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid {field_name} {value!r}; expected a number")
    if cast is float and isinstance(value, (int, float)):
        return value
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"Invalid {field_name} {value!r}; expected an integer")
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {field_name} {value!r}; expected a number") from e


def _coerce_month_keys(mapping: Dict, field_name: str) -> Dict[int, Any]:
    result = {}
    for key, value in mapping.items():
        try:
            month = int(key)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{field_name}: month key {key!r} is not an integer") from e
        if not 1 <= month <= 12:
            raise ConfigurationError(f"{field_name}: month {month} out of range [1, 12]")
        result[month] = value
    return result


def _build(cls, data: Optional[Dict], field_name: str):
    """Construct a settings dataclass from a mapping, rejecting unknown keys."""
    if isinstance(data, cls):
        return data
    try:
        return cls() if data is None else cls(**data)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {field_name} settings: {e}") from e


def _new_id() -> str:
    return str(uuid.uuid4())[:8]


# =============================================================================
# TIME SETTINGS
# =============================================================================

@dataclass
class TimeSettings:
    """Defines the date sequence of a run"""
    start_date: DateLike = "2024-01-01"
    period_count: int = 365
    frequency: Frequency = Frequency.DAILY
    weekly_day: Optional[int] = None    # 0=Sun ... 6=Sat
    monthly_day: Optional[int] = None   # 1-31

    def __post_init__(self):
        self.start_date = parse_date(self.start_date, "start_date")
        self.frequency = _coerce_enum(Frequency, self.frequency, "frequency")
        self.period_count = _coerce_number(self.period_count, "period_count", int)
        if self.period_count < 1:
            raise ConfigurationError(f"period_count must be >= 1, got {self.period_count}")
        if self.weekly_day is not None:
            self.weekly_day = _coerce_number(self.weekly_day, "weekly_day", int)
        if self.monthly_day is not None:
            self.monthly_day = _coerce_number(self.monthly_day, "monthly_day", int)
        if self.weekly_day is not None and not 0 <= self.weekly_day <= 6:
            raise ConfigurationError(f"weekly_day {self.weekly_day} out of range [0, 6]")
        if self.monthly_day is not None and not 1 <= self.monthly_day <= 31:
            raise ConfigurationError(f"monthly_day {self.monthly_day} out of range [1, 31]")


# =============================================================================
# DEMAND / PATTERNS / SEASONALITY / REALISM
# =============================================================================

@dataclass
class DemandSettings:
    average_daily: float = 100.0
    growth_rate: float = 0.0   # annualised %
    volatility: Volatility = Volatility.LOW

    def __post_init__(self):
        self.average_daily = _coerce_number(self.average_daily, "average_daily")
        self.growth_rate = _coerce_number(self.growth_rate, "growth_rate")
        self.volatility = _coerce_enum(Volatility, self.volatility, "volatility")


@dataclass
class BusinessPatterns:
    store_hours: StoreHours = StoreHours.NINE_TO_FIVE
    weekend_boost: float = 0.0   # 0.5 = +50% on Sat/Sun
    monthly_patterns: List[MonthlyPattern] = field(default_factory=list)

    def __post_init__(self):
        self.store_hours = _coerce_enum(StoreHours, self.store_hours, "store_hours")
        self.weekend_boost = _coerce_number(self.weekend_boost, "weekend_boost")
        if self.weekend_boost < 0:
            raise ConfigurationError(f"weekend_boost must be >= 0, got {self.weekend_boost}")
        self.monthly_patterns = [
            _coerce_enum(MonthlyPattern, p, "monthly_pattern") for p in self.monthly_patterns
        ]


@dataclass
class SeasonalityEvent:
    """
    Named one-off (or annual) boost.

    ``date`` is either a full ISO date or ``MM-DD``; the latter recurs every
    year. The event covers ``duration`` days starting on ``date``.
    """
    name: str
    date: DateLike
    duration: int = 1
    boost: float = 1.0
    id: str = field(default_factory=_new_id)

    start: Optional[date] = field(init=False, default=None, repr=False)
    month_day: Optional[Tuple[int, int]] = field(init=False, default=None, repr=False)

    def __post_init__(self):
        self.duration = _coerce_number(self.duration, f"event {self.name!r} duration", int)
        if self.duration < 1:
            raise ConfigurationError(f"Event {self.name!r}: duration must be >= 1")
        self.boost = _coerce_number(self.boost, f"event {self.name!r} boost")
        match = _MONTH_DAY_RE.match(self.date) if isinstance(self.date, str) else None
        if match:
            month, day = int(match.group(1)), int(match.group(2))
            try:
                date(2000, month, day)  # leap year accepts 02-29
            except ValueError as e:
                raise ConfigurationError(f"Event {self.name!r}: invalid date {self.date!r}") from e
            self.month_day = (month, day)
        else:
            self.start = parse_date(self.date, f"event {self.name!r} date")

    @property
    def is_recurring(self) -> bool:
        return self.month_day is not None


@dataclass
class SeasonalitySettings:
    """
    Month-level seasonality plus named events.

    ``monthly_weights`` is the primary mechanism. When it is set at all (even
    as an empty or sparse map) the legacy ``holiday_months`` /
    ``holiday_strength`` pair is ignored for every month.
    """
    holiday_months: List[int] = field(default_factory=list)
    holiday_strength: float = 1.0
    events: List[SeasonalityEvent] = field(default_factory=list)
    monthly_weights: Optional[Dict[int, float]] = None

    def __post_init__(self):
        self.holiday_months = [_coerce_number(m, "holiday month", int) for m in self.holiday_months]
        for month in self.holiday_months:
            if not 1 <= month <= 12:
                raise ConfigurationError(f"holiday month {month} out of range [1, 12]")
        self.holiday_strength = _coerce_number(self.holiday_strength, "holiday_strength")
        self.events = [_build(SeasonalityEvent, e, "event") for e in self.events]
        if self.monthly_weights is not None:
            weights = _coerce_month_keys(self.monthly_weights, "monthly_weights")
            self.monthly_weights = {
                m: float(_coerce_number(w, f"monthly_weights[{m}]")) for m, w in weights.items()
            }


@dataclass
class RealismSettings:
    anomaly_rate: float = 0.0   # per-point probability, 0-0.1
    include_stockouts: bool = False
    data_type: DataType = DataType.INTEGER

    def __post_init__(self):
        self.anomaly_rate = _coerce_number(self.anomaly_rate, "anomaly_rate")
        if not 0 <= self.anomaly_rate <= 1:
            raise ConfigurationError(f"anomaly_rate {self.anomaly_rate} out of range [0, 1]")
        if not isinstance(self.include_stockouts, bool):
            raise ConfigurationError(f"include_stockouts must be true/false, got {self.include_stockouts!r}")
        self.data_type = _coerce_enum(DataType, self.data_type, "data_type")


# =============================================================================
# SEGMENTS / MARKERS / OVERRIDES
# =============================================================================

def _check_partial(partial: Optional[Dict], settings_cls, field_name: str) -> Dict[str, Any]:
    if not partial:
        return {}
    allowed = {f.name for f in fields(settings_cls)}
    unknown = set(partial) - allowed
    if unknown:
        raise ConfigurationError(f"{field_name}: unknown override fields {sorted(unknown)}")
    # Trial merge so bad enum values fail here, not mid-run
    trial = _build(settings_cls, dict(partial), field_name)
    return {key: getattr(trial, key) for key in partial}


@dataclass
class TimeSegment:
    """
    Date-interval override region (inclusive at both ends).

    ``demand``, ``patterns`` and ``realism`` are partial mappings whose keys
    are field names of the corresponding settings group. ``trend`` is an
    annualised growth rate that replaces the global rate inside the segment.
    """
    start_date: DateLike
    end_date: DateLike
    name: str = "Segment"
    demand: Dict[str, Any] = field(default_factory=dict)
    patterns: Dict[str, Any] = field(default_factory=dict)
    realism: Dict[str, Any] = field(default_factory=dict)
    trend: Optional[float] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.start_date = parse_date(self.start_date, f"segment {self.name!r} start_date")
        self.end_date = parse_date(self.end_date, f"segment {self.name!r} end_date")
        if self.end_date < self.start_date:
            raise ConfigurationError(
                f"Segment {self.name!r}: end_date {self.end_date} before start_date {self.start_date}"
            )
        if self.trend is not None:
            self.trend = _coerce_number(self.trend, f"segment {self.name!r} trend")
        self.demand = _check_partial(self.demand, DemandSettings, f"segment {self.name!r} demand")
        self.patterns = _check_partial(self.patterns, BusinessPatterns, f"segment {self.name!r} patterns")
        self.realism = _check_partial(self.realism, RealismSettings, f"segment {self.name!r} realism")

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class SeasonalityMarker:
    date: DateLike
    type: MarkerType = MarkerType.HIGH
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        self.date = parse_date(self.date, "marker date")
        self.type = _coerce_enum(MarkerType, self.type, "marker type")


@dataclass
class DataOverride:
    """Manual per-date edit; applied after every other stage"""
    value: Optional[float] = None
    notes: Optional[str] = None
    modified_at: datetime = field(default_factory=datetime.now)
    modified_by: str = "User"

    def __post_init__(self):
        if self.value is not None:
            self.value = _coerce_number(self.value, "override value")
        self.modified_at = parse_timestamp(self.modified_at, "override modified_at")


# =============================================================================
# ROOT CONFIGURATIONS
# =============================================================================

REQUIRED_KEYS = ['time']
REQUIRED_MASS_KEYS = ['item_count', 'time', 'demand']


@dataclass
class DemGenConfig:
    """Aggregate root for a single-item run. The pipeline only reads it."""
    time: TimeSettings = field(default_factory=TimeSettings)
    demand: DemandSettings = field(default_factory=DemandSettings)
    patterns: BusinessPatterns = field(default_factory=BusinessPatterns)
    seasonality: SeasonalitySettings = field(default_factory=SeasonalitySettings)
    realism: RealismSettings = field(default_factory=RealismSettings)
    segments: List[TimeSegment] = field(default_factory=list)
    markers: List[SeasonalityMarker] = field(default_factory=list)
    overrides: Dict[str, DataOverride] = field(default_factory=dict)

    def __post_init__(self):
        self.time = _build(TimeSettings, self.time, "time")
        self.demand = _build(DemandSettings, self.demand, "demand")
        self.patterns = _build(BusinessPatterns, self.patterns, "patterns")
        self.seasonality = _build(SeasonalitySettings, self.seasonality, "seasonality")
        self.realism = _build(RealismSettings, self.realism, "realism")
        self.segments = [_build(TimeSegment, s, "segment") for s in self.segments]
        self.markers = [_build(SeasonalityMarker, m, "marker") for m in self.markers]
        # Keyed by ISO date string
        self.overrides = {
            parse_date(key, "override date").isoformat(): _build(DataOverride, value, "override")
            for key, value in self.overrides.items()
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DemGenConfig":
        missing = [k for k in REQUIRED_KEYS if k not in data]
        if missing:
            raise ConfigurationError(f"Missing config keys: {missing}")
        return _build(cls, data, "config")


@dataclass
class Distribution:
    """
    Triangular distribution parameters, low <= mode <= high.

    Mappings may also spell the bounds ``min`` / ``max``.
    """
    low: float
    mode: float
    high: float

    def __post_init__(self):
        self.low = _coerce_number(self.low, "distribution low")
        self.mode = _coerce_number(self.mode, "distribution mode")
        self.high = _coerce_number(self.high, "distribution high")
        if not self.low <= self.mode <= self.high:
            raise ConfigurationError(
                f"Distribution requires low <= mode <= high, got ({self.low}, {self.mode}, {self.high})"
            )


DISTRIBUTION_ALIASES = {'min': 'low', 'max': 'high'}


def _distribution(value, field_name: str) -> Distribution:
    if isinstance(value, Distribution):
        return value
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return Distribution(*value)
    if isinstance(value, dict):
        value = {DISTRIBUTION_ALIASES.get(k, k): v for k, v in value.items()}
    return _build(Distribution, value, field_name)


@dataclass
class MassDemandSettings:
    average_daily: Distribution
    growth_rate: Distribution
    volatility: Distribution   # numeric 0-3, mapped to Volatility per item

    def __post_init__(self):
        self.average_daily = _distribution(self.average_daily, "average_daily")
        self.growth_rate = _distribution(self.growth_rate, "growth_rate")
        self.volatility = _distribution(self.volatility, "volatility")


@dataclass
class MassSeasonalitySettings:
    month_weights: Dict[int, Distribution] = field(default_factory=dict)

    def __post_init__(self):
        weights = _coerce_month_keys(self.month_weights, "month_weights")
        self.month_weights = {
            m: _distribution(d, f"month_weights[{m}]") for m, d in weights.items()
        }


@dataclass
class MassGenConfig:
    """Drives synthesis of ``item_count`` independent single-item configs"""
    item_count: int
    time: TimeSettings
    demand: MassDemandSettings
    seasonality: MassSeasonalitySettings = field(default_factory=MassSeasonalitySettings)

    def __post_init__(self):
        self.item_count = _coerce_number(self.item_count, "item_count", int)
        if self.item_count < 0:
            raise ConfigurationError(f"item_count must be >= 0, got {self.item_count}")
        self.time = _build(TimeSettings, self.time, "time")
        self.demand = _build(MassDemandSettings, self.demand, "mass demand")
        self.seasonality = _build(MassSeasonalitySettings, self.seasonality, "mass seasonality")

    @classmethod
    def from_dict(cls, data: Dict) -> "MassGenConfig":
        missing = [k for k in REQUIRED_MASS_KEYS if k not in data]
        if missing:
            raise ConfigurationError(f"Missing mass config keys: {missing}")
        return _build(cls, data, "mass config")


# =============================================================================
# YAML LOADING
# =============================================================================

def _read_yaml(path: Union[str, Path]) -> dict:
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at top level")
    return data


def load_config(path: Union[str, Path]) -> DemGenConfig:
    """Load a single-item configuration from YAML"""
    return DemGenConfig.from_dict(_read_yaml(path))


def load_mass_config(path: Union[str, Path]) -> MassGenConfig:
    """Load a mass-generation configuration from YAML"""
    return MassGenConfig.from_dict(_read_yaml(path))


# Default config instance
DEFAULT_CONFIG = DemGenConfig()
