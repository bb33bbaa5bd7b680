"""
Housing Statistics Engine

Pure aggregation over worker and room collections. Nothing here touches the
database: callers pass already-scoped collections (model instances or any
objects with the same attributes) and get plain dicts back.

1. Workforce - active/inactive workers, gender split
2. Rooms - per-gender rooms, occupied/full/empty rooms
3. Capacity - beds, occupied places derived from workers, occupancy rate
4. Movements - arrivals, exits and net change for the selected period
5. Age - average/min/max and bucket distribution of active workers
6. Exits - reason distribution, top reason, average stay
7. Performance - turnover and retention rates, indicator flags
8. Farm comparison - per-farm figures for the "all farms" views

Default substitution for optional worker fields:
- exit_reason blank or missing -> "Unspecified"
- age missing -> left out of age metrics
- entry_date / exit_date missing -> never inside a period
"""

import math
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Optional, List, Iterable

from django.db import models
from django.utils import timezone

from farms.models import Gender, WorkerStatus


UNSPECIFIED_EXIT_REASON = 'Unspecified'

HIGH_OCCUPANCY_THRESHOLD = 85
LOW_OCCUPANCY_THRESHOLD = 50
GENDER_BALANCE_TOLERANCE = 0.2

# (label, lower bound, upper bound); workers under 18 fall in no bucket
AGE_BUCKETS = (
    ('18-25', 18, 25),
    ('26-35', 26, 35),
    ('36-45', 36, 45),
    ('46+', 46, None),
)


class TimeRange(models.TextChoices):
    WEEK = 'week', 'Last 7 days'
    MONTH = 'month', 'Last 30 days'
    QUARTER = 'quarter', 'Last 3 months'
    YEAR = 'year', 'Last 12 months'
    SPECIFIC_MONTH = 'specific_month', 'Specific month'
    SPECIFIC_YEAR = 'specific_year', 'Specific year'


RELATIVE_RANGE_DAYS = {
    TimeRange.WEEK: 7,
    TimeRange.MONTH: 30,
    TimeRange.QUARTER: 90,
    TimeRange.YEAR: 365,
}


# =============================================================================
# HELPERS
# =============================================================================

def round_half_up(value, places: int = 0):
    """Round like a person would (2.5 -> 3), not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def percentage(part, whole, places: int = 2):
    """part / whole as a percentage; 0 when whole is 0."""
    if not whole:
        return 0 if places == 0 else 0.0
    return round_half_up(part / whole * 100, places)


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def format_exit_reason(reason: str) -> str:
    """'end_of_contract' -> 'End of contract'."""
    text = str(reason).replace('_', ' ').strip()
    return text[:1].upper() + text[1:]


class Period:
    """
    Date membership test for one time-range selection.

    Relative ranges include every date on or after ``today - N days``.
    Specific ranges match the calendar month or year exactly.
    """

    def __init__(self, time_range=TimeRange.MONTH, month: Optional[int] = None,
                 year: Optional[int] = None, today: Optional[date] = None):
        self.time_range = TimeRange(time_range)
        self.month = month
        self.year = year
        self.today = today or timezone.localdate()

        if self.time_range == TimeRange.SPECIFIC_MONTH and (month is None or year is None):
            raise ValueError('specific_month requires both month and year')
        if self.time_range == TimeRange.SPECIFIC_YEAR and year is None:
            raise ValueError('specific_year requires a year')
        if month is not None and not 1 <= int(month) <= 12:
            raise ValueError(f'month must be between 1 and 12, got {month}')

        days = RELATIVE_RANGE_DAYS.get(self.time_range)
        self.cutoff = self.today - timedelta(days=days) if days else None

    @property
    def is_specific(self) -> bool:
        return self.time_range in (TimeRange.SPECIFIC_MONTH, TimeRange.SPECIFIC_YEAR)

    def contains(self, value) -> bool:
        value = _as_date(value)
        if value is None:
            return False
        if self.time_range == TimeRange.SPECIFIC_MONTH:
            return value.year == int(self.year) and value.month == int(self.month)
        if self.time_range == TimeRange.SPECIFIC_YEAR:
            return value.year == int(self.year)
        return value >= self.cutoff

    def describe(self) -> str:
        return describe_period(self.time_range, self.month, self.year)


def describe_period(time_range, month: Optional[int] = None, year: Optional[int] = None) -> str:
    """Human label for a time-range selection, e.g. 'March 2024'."""
    time_range = TimeRange(time_range)
    if time_range == TimeRange.SPECIFIC_MONTH and month and year:
        return date(int(year), int(month), 1).strftime('%B %Y')
    if time_range == TimeRange.SPECIFIC_YEAR and year:
        return str(year)
    return time_range.label


# =============================================================================
# AGGREGATION
# =============================================================================

def occupied_places_by_room(workers: Iterable) -> Dict[tuple, int]:
    """Active, housed workers counted per (farm, room number, sex)."""
    places = {}
    for worker in workers:
        if worker.status != WorkerStatus.ACTIVE or not worker.room_number:
            continue
        key = (str(worker.farm_id), str(worker.room_number).strip(), worker.sex)
        places[key] = places.get(key, 0) + 1
    return places


def _age_metrics(active_workers: List) -> Dict[str, Any]:
    ages = [w.age for w in active_workers if w.age is not None]
    distribution = {}
    for label, low, high in AGE_BUCKETS:
        distribution[label] = sum(
            1 for age in ages if age >= low and (high is None or age <= high)
        )
    return {
        'average_age': round_half_up(sum(ages) / len(ages)) if ages else 0,
        'min_age': min(ages) if ages else 0,
        'max_age': max(ages) if ages else 0,
        'workers_with_age': len(ages),
        'age_distribution': distribution,
    }


def _exit_metrics(exited_workers: List) -> Dict[str, Any]:
    reasons = {}
    for worker in exited_workers:
        reason = (worker.exit_reason or '').strip() or UNSPECIFIED_EXIT_REASON
        reasons[reason] = reasons.get(reason, 0) + 1

    # Mode; dict order keeps the first-seen reason on ties
    top_reason, top_count = None, 0
    for reason, count in reasons.items():
        if count > top_count:
            top_reason, top_count = reason, count

    stays = [
        (_as_date(w.exit_date) - _as_date(w.entry_date)).days
        for w in exited_workers
        if w.entry_date and w.exit_date
    ]

    return {
        'total_exited_workers': len(exited_workers),
        'exit_reasons': reasons,
        'top_exit_reason': top_reason,
        'top_exit_reason_count': top_count,
        'average_stay_days': round_half_up(sum(stays) / len(stays)) if stays else 0,
    }


def compute_housing_statistics(workers: Iterable, rooms: Iterable,
                               time_range=TimeRange.MONTH,
                               month: Optional[int] = None,
                               year: Optional[int] = None,
                               today: Optional[date] = None) -> Dict[str, Any]:
    """
    Aggregate scoped worker and room collections into a statistics snapshot.

    Args:
        workers: Workers of the tenant scope (any status)
        rooms: Rooms of the tenant scope
        time_range: TimeRange value
        month: 1-12, required for specific_month
        year: required for specific_month and specific_year
        today: Reference date for relative ranges (defaults to the local date)

    Returns:
        Snapshot dict; identical inputs always give an identical snapshot

    Raises:
        ValueError: Unknown time range or missing month/year for a specific range
    """
    period = Period(time_range, month, year, today)
    workers = list(workers)
    rooms = list(rooms)

    # Specific periods only consider workers hired in the period;
    # relative periods consider the whole workforce.
    if period.is_specific:
        considered = [w for w in workers if period.contains(w.entry_date)]
    else:
        considered = workers

    active = [w for w in considered if w.status == WorkerStatus.ACTIVE]
    inactive = [w for w in considered if w.status == WorkerStatus.INACTIVE]
    male = [w for w in active if w.sex == Gender.MALE]
    female = [w for w in active if w.sex == Gender.FEMALE]

    # Room states come from the stored counters
    occupied_rooms = [r for r in rooms if r.current_occupancy > 0]
    full_rooms = [r for r in rooms if r.current_occupancy >= r.total_capacity]
    empty_rooms = [r for r in rooms if r.current_occupancy == 0]

    # Places come from the worker records, never from the counters
    total_capacity = sum(r.total_capacity for r in rooms)
    occupied_places = sum(occupied_places_by_room(workers).values())
    occupancy_rate = min(percentage(occupied_places, total_capacity), 100.0)

    arrivals = [
        w for w in workers
        if w.status == WorkerStatus.ACTIVE and period.contains(w.entry_date)
    ]
    exits = [
        w for w in workers
        if w.status == WorkerStatus.INACTIVE and w.exit_date and period.contains(w.exit_date)
    ]

    if period.is_specific:
        exited = exits
    else:
        exited = [w for w in inactive if w.exit_date]

    turnover_rate = percentage(len(exited), len(considered))
    retention_rate = round_half_up(100 - turnover_rate, 2) if considered else 0.0

    return {
        'workforce': {
            'total_workers': len(active),
            'total_inactive_workers': len(inactive),
            'considered_workers': len(considered),
            'male_workers': len(male),
            'female_workers': len(female),
        },
        'rooms': {
            'total_rooms': len(rooms),
            'male_rooms': sum(1 for r in rooms if r.gender_restriction == Gender.MALE),
            'female_rooms': sum(1 for r in rooms if r.gender_restriction == Gender.FEMALE),
            'occupied_rooms': len(occupied_rooms),
            'full_rooms': len(full_rooms),
            'empty_rooms': len(empty_rooms),
        },
        'capacity': {
            'total_capacity': total_capacity,
            'occupied_places': occupied_places,
            'available_places': total_capacity - occupied_places,
            'occupancy_rate': occupancy_rate,
            'utilization_rate': occupancy_rate,
        },
        'movements': {
            'recent_arrivals': len(arrivals),
            'recent_exits': len(exits),
            'net_change': len(arrivals) - len(exits),
        },
        'age': _age_metrics(active),
        'exits': _exit_metrics(exited),
        'performance': {
            'turnover_rate': turnover_rate,
            'retention_rate': retention_rate,
        },
        'indicators': {
            'is_high_occupancy': occupancy_rate > HIGH_OCCUPANCY_THRESHOLD,
            'is_low_occupancy': occupancy_rate < LOW_OCCUPANCY_THRESHOLD,
            'has_recent_growth': len(arrivals) > len(exits),
            'balanced_gender': abs(len(male) - len(female)) <= math.ceil(len(active) * GENDER_BALANCE_TOLERANCE),
        },
        'period': {
            'time_range': period.time_range.value,
            'month': month,
            'year': year,
            'label': period.describe(),
            'reference_date': period.today.isoformat(),
            'cutoff_date': period.cutoff.isoformat() if period.cutoff else None,
        },
    }


# =============================================================================
# FARM COMPARISON
# =============================================================================

def compute_farm_comparison(farms: Iterable, workers: Iterable, rooms: Iterable) -> List[Dict[str, Any]]:
    """
    Per-farm figures recomputed from raw collections.

    Args:
        farms: Farm instances (id, name)
        workers: Workers of those farms (any status)
        rooms: Rooms of those farms

    Returns:
        One dict per farm, in the order the farms were given
    """
    workers = list(workers)
    rooms = list(rooms)
    places = occupied_places_by_room(workers)

    rows = []
    for farm in farms:
        farm_key = str(farm.id)
        farm_active = [
            w for w in workers
            if str(w.farm_id) == farm_key and w.status == WorkerStatus.ACTIVE
        ]
        farm_rooms = [r for r in rooms if str(r.farm_id) == farm_key]
        capacity = sum(r.total_capacity for r in farm_rooms)
        occupied = sum(count for (farm_id, _, _), count in places.items() if farm_id == farm_key)

        rows.append({
            'farm_id': farm_key,
            'farm_name': farm.name,
            'active_workers': len(farm_active),
            'male_workers': sum(1 for w in farm_active if w.sex == Gender.MALE),
            'female_workers': sum(1 for w in farm_active if w.sex == Gender.FEMALE),
            'total_rooms': len(farm_rooms),
            'occupied_rooms': sum(1 for r in farm_rooms if r.current_occupancy > 0),
            'total_capacity': capacity,
            'occupied_places': occupied,
            'available_places': capacity - occupied,
            'occupancy_rate': min(percentage(occupied, capacity, places=0), 100),
        })
    return rows
