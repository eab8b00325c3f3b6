"""
DemGen Output Models & Schemas
==============================
Records produced by the generation pipeline and their tabular views.
The core performs no file I/O; callers serialise these frames as they wish.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import pandas as pd

from .config import DemGenConfig

logger = logging.getLogger(__name__)


# ============================================================
# OUTPUT RECORDS
# ============================================================

@dataclass
class TimeSeriesPoint:
    """One dated value; never negative once the pipeline finishes"""
    date: date
    value: float
    notes: Optional[str] = None
    is_anomaly: bool = False
    is_edited: bool = False

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat(),
            'value': self.value,
            'notes': self.notes,
            'is_anomaly': self.is_anomaly,
            'is_edited': self.is_edited,
        }


@dataclass
class GeneratedItem:
    """One sampled configuration and its series from a mass run"""
    id: str
    name: str
    config: DemGenConfig
    data: List[TimeSeriesPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'average_daily': self.config.demand.average_daily,
            'growth_rate': self.config.demand.growth_rate,
            'volatility': self.config.demand.volatility.value,
            'data': [p.to_dict() for p in self.data],
        }


# ============================================================
# SCHEMA DEFINITIONS - For DataFrame validation
# ============================================================

TIME_SERIES_SCHEMA = {
    'date': 'datetime64[ns]',
    'value': 'float64',
    'notes': 'string',
    'is_anomaly': 'bool',
    'is_edited': 'bool',
}

BATCH_SCHEMA = {
    'item_id': 'string',
    'name': 'category',
    **TIME_SERIES_SCHEMA,
}


def validate_dataframe(df: pd.DataFrame, schema: dict, table_name: str) -> list:
    """
    Validate a DataFrame against a schema.
    Returns list of validation errors
    """
    errors = []

    missing_cols = set(schema.keys()) - set(df.columns)
    if missing_cols:
        errors.append(f"{table_name}: Missing columns: {sorted(missing_cols)}")

    extra_cols = set(df.columns) - set(schema.keys())
    if extra_cols:
        errors.append(f"{table_name}: Unexpected columns: {sorted(extra_cols)}")

    for col in ['date', 'value']:
        if col in df.columns and df[col].isnull().any():
            errors.append(f"{table_name}: Null values in {col}")

    if 'value' in df.columns and (df['value'] < 0).any():
        errors.append(f"{table_name}: Negative values in value")

    return errors


def apply_schema(df: pd.DataFrame, schema: dict) -> pd.DataFrame:
    """Apply schema types to DataFrame"""
    for col, dtype in schema.items():
        if col in df.columns:
            try:
                if dtype == 'category':
                    df[col] = df[col].astype('category')
                elif dtype.startswith('datetime'):
                    df[col] = pd.to_datetime(df[col])
                else:
                    df[col] = df[col].astype(dtype)
            except (TypeError, ValueError) as e:
                logger.warning(f"Could not convert {col} to {dtype}: {e}")
    return df


# ============================================================
# TABULAR VIEWS
# ============================================================

def points_to_frame(points: List[TimeSeriesPoint]) -> pd.DataFrame:
    """Flat series table: date, value, notes, is_anomaly, is_edited"""
    df = pd.DataFrame([p.to_dict() for p in points], columns=list(TIME_SERIES_SCHEMA))
    return apply_schema(df, TIME_SERIES_SCHEMA)


def batch_to_frame(items: List[GeneratedItem]) -> pd.DataFrame:
    """Long-format batch table, one row per item per date"""
    rows = []
    for item in items:
        for point in item.data:
            rows.append({'item_id': item.id, 'name': item.name, **point.to_dict()})
    df = pd.DataFrame(rows, columns=list(BATCH_SCHEMA))
    return apply_schema(df, BATCH_SCHEMA)


def batch_to_mapping(items: List[GeneratedItem]) -> Dict[str, Dict[str, float]]:
    """{item name: {ISO date: value}}"""
    return {
        item.name: {p.date.isoformat(): p.value for p in item.data}
        for item in items
    }
