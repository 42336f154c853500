from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from fractions import Fraction
from typing import Iterable, Optional

from .stats import mean, round_half_up


@dataclass
class AttendanceSummary:
    scope: str
    average_percentage: int
    sample_count: int

    def to_dict(self):
        return asdict(self)


def _counts(row) -> tuple[int, int]:
    if isinstance(row, Mapping):
        return row.get("students_present") or 0, row.get("students_registered") or 0
    return row.students_present or 0, row.students_registered or 0


def attendance_rate_for(row) -> Optional[Fraction]:
    """Exact percentage of registered students present, or None when nobody is registered."""
    present, registered = _counts(row)
    if registered <= 0:
        return None
    return Fraction(present) * 100 / Fraction(registered)


def _computable_rates(rows: Iterable) -> list[Fraction]:
    return [rate for rate in (attendance_rate_for(row) for row in rows) if rate is not None]


def compute_attendance_rate(rows: Iterable) -> int:
    """
    Mean of the per-report attendance percentages, rounded to a whole number.

    Rows with no registered students are left out of the mean. Returns 0 when
    no row is left. Any date window is applied by the caller.
    """
    avg = mean(_computable_rates(rows))
    if avg is None:
        return 0
    return round_half_up(avg)


def summarize_attendance(rows: Iterable, scope: str = "all") -> AttendanceSummary:
    rates = _computable_rates(rows)
    avg = mean(rates)
    return AttendanceSummary(
        scope=scope,
        average_percentage=round_half_up(avg) if avg is not None else 0,
        sample_count=len(rates),
    )
