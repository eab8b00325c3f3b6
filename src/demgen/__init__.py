"""
DemGen
======
Synthesise parameterised demand time series from a declarative config.
"""

from .config import (
    ConfigurationError,
    DEFAULT_CONFIG,
    BusinessPatterns,
    DataOverride,
    DataType,
    DemandSettings,
    DemGenConfig,
    Distribution,
    Frequency,
    MarkerType,
    MassDemandSettings,
    MassGenConfig,
    MassSeasonalitySettings,
    MonthlyPattern,
    RealismSettings,
    SeasonalityEvent,
    SeasonalityMarker,
    SeasonalitySettings,
    StoreHours,
    TimeSegment,
    TimeSettings,
    Volatility,
    load_config,
    load_mass_config
)

from .models import (
    GeneratedItem,
    TimeSeriesPoint,
    batch_to_frame,
    batch_to_mapping,
    points_to_frame
)

from .dates import generate_date_range
from .engine import generate, generate_time_series, resolve_effective_config
from .sampling import sample, triangular
from .mass import NameRegistry, generate_batch, synthesize_item_config
from .validation import SeriesValidator, ValidationResult, ValidationSeverity

__version__ = "1.0.0"
