"""
DemGen - Validation Module
==========================
Chain-of-Verification for generated series and batches.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .config import DemGenConfig, Volatility
from .dates import align_start_date
from .engine import resolve_effective_config
from .models import GeneratedItem, TimeSeriesPoint


class ValidationSeverity(Enum):
    PASS = "✅ PASS"
    WARNING = "⚠️ WARNING"
    FAIL = "❌ FAIL"
    INFO = "ℹ️ INFO"


@dataclass
class ValidationResult:
    name: str
    severity: ValidationSeverity
    message: str
    expected: Optional[str] = None
    actual: Optional[str] = None


def _check(ok: bool) -> ValidationSeverity:
    return ValidationSeverity.PASS if ok else ValidationSeverity.FAIL


class SeriesValidator:
    """Chain-of-Verification for generated demand data"""

    def __init__(self, config: DemGenConfig):
        self.config = config
        self.results: List[ValidationResult] = []

    def validate_series(self, points: List[TimeSeriesPoint]) -> List[ValidationResult]:
        self.results = []
        self._validate_length(points, "Series")
        self._validate_ordering(points)
        self._validate_alignment(points)
        self._validate_floor(points)
        self._validate_volatility_guarantee(points)
        self._validate_overrides(points)
        self._report_anomalies(points)
        return self.results

    def validate_batch(self, items: List[GeneratedItem],
                       expected_count: Optional[int] = None) -> List[ValidationResult]:
        self.results = []

        if expected_count is not None:
            self.results.append(ValidationResult(
                name="Batch: Item count",
                severity=_check(len(items) == expected_count),
                message=f"{len(items)} items",
                expected=str(expected_count),
                actual=str(len(items))
            ))

        names = [item.name for item in items]
        duplicates = len(names) - len(set(names))
        self.results.append(ValidationResult(
            name="Batch: Unique names",
            severity=_check(duplicates == 0),
            message=f"{duplicates} duplicate names"
        ))

        ids = [item.id for item in items]
        self.results.append(ValidationResult(
            name="Batch: Unique ids",
            severity=_check(len(ids) == len(set(ids))),
            message=f"{len(ids) - len(set(ids))} duplicate ids"
        ))

        expected = self.config.time.period_count
        short = [item.name for item in items if len(item.data) != expected]
        self.results.append(ValidationResult(
            name="Batch: Series length",
            severity=_check(not short),
            message="All items complete" if not short else f"Wrong length: {short[:5]}",
            expected=str(expected)
        ))
        return self.results

    def _validate_length(self, points: List[TimeSeriesPoint], label: str):
        expected = self.config.time.period_count
        self.results.append(ValidationResult(
            name=f"{label}: Period count",
            severity=_check(len(points) == expected),
            message=f"{len(points)} points",
            expected=str(expected),
            actual=str(len(points))
        ))

    def _validate_ordering(self, points: List[TimeSeriesPoint]):
        bad = sum(1 for a, b in zip(points, points[1:]) if b.date <= a.date)
        self.results.append(ValidationResult(
            name="Temporal: Strictly increasing dates",
            severity=_check(bad == 0),
            message=f"{bad} out-of-order steps"
        ))

    def _validate_alignment(self, points: List[TimeSeriesPoint]):
        if not points:
            return
        expected = align_start_date(self.config.time)
        self.results.append(ValidationResult(
            name="Temporal: Aligned start",
            severity=_check(points[0].date == expected),
            message=f"Starts {points[0].date}",
            expected=expected.isoformat(),
            actual=points[0].date.isoformat()
        ))

    def _validate_floor(self, points: List[TimeSeriesPoint]):
        negatives = sum(1 for p in points if p.value < 0)
        self.results.append(ValidationResult(
            name="Rule: Values >= 0",
            severity=_check(negatives == 0),
            message=f"{negatives} violations"
        ))

    def _validate_volatility_guarantee(self, points: List[TimeSeriesPoint]):
        violations = sum(
            1 for p in points
            if p.is_anomaly
            and resolve_effective_config(p.date, self.config).demand.volatility == Volatility.NONE
        )
        self.results.append(ValidationResult(
            name="Rule: No anomalies at zero volatility",
            severity=_check(violations == 0),
            message=f"{violations} violations"
        ))

    def _validate_overrides(self, points: List[TimeSeriesPoint]):
        if not self.config.overrides:
            return
        by_date = {p.date.isoformat(): p for p in points}
        violations = 0
        for key, override in self.config.overrides.items():
            point = by_date.get(key)
            if point is None:
                continue
            if not point.is_edited:
                violations += 1
            elif override.value is not None and point.value != override.value:
                violations += 1
        self.results.append(ValidationResult(
            name="Rule: Overrides applied",
            severity=_check(violations == 0),
            message=f"{violations} violations"
        ))

    def _report_anomalies(self, points: List[TimeSeriesPoint]):
        count = sum(1 for p in points if p.is_anomaly)
        rate = count / max(len(points), 1)
        self.results.append(ValidationResult(
            name="Realism: Anomaly rate",
            severity=ValidationSeverity.INFO,
            message=f"{count} anomalies ({rate:.1%})",
            expected=f"{self.config.realism.anomaly_rate:.1%}"
        ))

    def get_summary(self) -> Dict:
        return {
            'total': len(self.results),
            'passed': sum(1 for r in self.results if r.severity == ValidationSeverity.PASS),
            'warnings': sum(1 for r in self.results if r.severity == ValidationSeverity.WARNING),
            'failed': sum(1 for r in self.results if r.severity == ValidationSeverity.FAIL)
        }
