# ========================
# src/trip_pipeline/aggregation.py
# ========================

"""
Trip Aggregation Module

Groups cleaned trips by categorical attributes and reduces each group to a
count and ride-length statistics. Aggregators are built incrementally from
chunks and can be merged, so shards of one dataset may be reduced
independently and combined exactly.
"""

import logging
from collections import defaultdict
from operator import attrgetter
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import AggregationKeyError
from .models import CleanedTripRecord

logger = logging.getLogger(__name__)

GroupKey = Tuple[Any, ...]

SELECTORS = {
    'rider_type': attrgetter('rider_type'),
    'bike_type': attrgetter('bike_type'),
    'day_of_week': attrgetter('day_of_week'),
    'month': attrgetter('month'),
}

SELECTOR_ALIASES = {
    'riderType': 'rider_type',
    'bikeType': 'bike_type',
    'dayOfWeek': 'day_of_week',
}

METRICS = ('count', 'mean_ride_length', 'total_ride_length',
           'min_ride_length', 'max_ride_length')

METRIC_ALIASES = {
    'meanRideLength': 'mean_ride_length',
    'totalRideLength': 'total_ride_length',
    'minRideLength': 'min_ride_length',
    'maxRideLength': 'max_ride_length',
}


def resolve_selectors(group_by: Sequence[str]) -> List[str]:
    """
    Normalise selector names, accepting camelCase spellings.

    Raises:
        AggregationKeyError: If group_by is empty or names an unknown field.
    """
    if isinstance(group_by, str):
        group_by = [group_by]
    if not group_by:
        raise AggregationKeyError("group_by must name at least one selector")

    resolved = []
    for selector in group_by:
        name = SELECTOR_ALIASES.get(selector, selector)
        if name not in SELECTORS:
            raise AggregationKeyError(
                f"Unknown group_by selector '{selector}'. "
                f"Expected one of: {sorted(SELECTORS)}"
            )
        resolved.append(name)
    return resolved


def resolve_metric(metric: str) -> str:
    name = METRIC_ALIASES.get(metric, metric)
    if name not in METRICS:
        raise AggregationKeyError(
            f"Unknown metric '{metric}'. Expected one of: {list(METRICS)}"
        )
    return name


class AggregateBucket:
    """Running count and ride-length statistics for one group."""

    __slots__ = ('count', 'total_ride_length', 'min_ride_length', 'max_ride_length')

    def __init__(self):
        self.count = 0
        self.total_ride_length = 0.0
        self.min_ride_length = None
        self.max_ride_length = None

    def add(self, ride_length: float) -> None:
        self.count += 1
        self.total_ride_length += ride_length
        if self.min_ride_length is None or ride_length < self.min_ride_length:
            self.min_ride_length = ride_length
        if self.max_ride_length is None or ride_length > self.max_ride_length:
            self.max_ride_length = ride_length

    def combine(self, other: 'AggregateBucket') -> None:
        """Fold another bucket for the same key into this one."""
        if other.count == 0:
            return
        self.count += other.count
        self.total_ride_length += other.total_ride_length
        if self.min_ride_length is None or other.min_ride_length < self.min_ride_length:
            self.min_ride_length = other.min_ride_length
        if self.max_ride_length is None or other.max_ride_length > self.max_ride_length:
            self.max_ride_length = other.max_ride_length

    @property
    def mean_ride_length(self) -> float:
        return self.total_ride_length / self.count

    def value(self, metric: str):
        if metric == 'count':
            return self.count
        return getattr(self, metric)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ride_count': self.count,
            'mean_ride_length_minutes': self.mean_ride_length,
            'min_ride_length_minutes': self.min_ride_length,
            'max_ride_length_minutes': self.max_ride_length,
        }


class GroupAggregator:
    """
    Incremental group-by over cleaned trips.
    Only groups that receive at least one record ever appear.
    """

    def __init__(self, group_by: Sequence[str]):
        """
        Initialize the aggregator.

        Args:
            group_by (sequence): Ordered selector names, e.g. ['rider_type', 'month']
        """
        self.group_by = resolve_selectors(group_by)
        self._getters = [SELECTORS[name] for name in self.group_by]
        self.buckets: Dict[GroupKey, AggregateBucket] = defaultdict(AggregateBucket)
        self.records_processed = 0
        logger.debug(f"GroupAggregator initialized for {self.group_by}")

    def key_for(self, record: CleanedTripRecord) -> GroupKey:
        return tuple(getter(record) for getter in self._getters)

    def process_chunk(self, chunk: Iterable[CleanedTripRecord]) -> None:
        """
        Process a chunk of cleaned records and update the group buckets.

        Args:
            chunk (iterable[CleanedTripRecord]): Records that passed cleaning.
        """
        for record in chunk:
            self.buckets[self.key_for(record)].add(record.ride_length_minutes)
            self.records_processed += 1

    def merge(self, other: 'GroupAggregator') -> 'GroupAggregator':
        """Fold another aggregator over the same selectors into this one."""
        if other.group_by != self.group_by:
            raise AggregationKeyError(
                f"Cannot merge aggregators grouped by {other.group_by} into {self.group_by}"
            )
        for key, bucket in other.buckets.items():
            self.buckets[key].combine(bucket)
        self.records_processed += other.records_processed
        return self

    def result(self, metric: str = 'count') -> Dict[GroupKey, Any]:
        """Reduce every group to a single metric value."""
        metric = resolve_metric(metric)
        return {key: bucket.value(metric) for key, bucket in self.buckets.items()}

    def rows(self) -> List[Dict[str, Any]]:
        """Tabular rows sorted by key ordinal, labels in place of enum members."""
        rows = []
        for key in sorted(self.buckets):
            row = {name: member.label for name, member in zip(self.group_by, key)}
            row.update(self.buckets[key].to_dict())
            rows.append(row)
        return rows


def aggregate(records: Iterable[CleanedTripRecord],
              group_by: Sequence[str],
              metric: str = 'count') -> Dict[GroupKey, Any]:
    """
    Group cleaned trips and reduce each group to one metric.

    Args:
        records: Cleaned trip records.
        group_by: Ordered selectors from rider_type, bike_type, day_of_week, month.
        metric: 'count' or 'mean_ride_length' (also total/min/max_ride_length).

    Returns:
        dict: Grouping-key tuple to metric value. Empty groups are absent.

    Raises:
        AggregationKeyError: On an unknown selector or metric.
    """
    metric = resolve_metric(metric)
    aggregator = GroupAggregator(group_by)
    aggregator.process_chunk(records)
    return aggregator.result(metric)


def merge_counts(partials: Iterable[Mapping[GroupKey, int]]) -> Dict[GroupKey, int]:
    """Combine per-shard count aggregates by key-wise summation."""
    merged = defaultdict(int)
    for partial in partials:
        for key, count in partial.items():
            merged[key] += count
    return dict(merged)


def merge_means(partials: Iterable[Tuple[Mapping[GroupKey, float], Mapping[GroupKey, int]]]
                ) -> Dict[GroupKey, float]:
    """
    Combine per-shard mean aggregates into the exact overall mean.

    Each partial is a (means, counts) pair from the same shard. The merged
    mean is sum(mean * count) / sum(count) per key.
    """
    weighted = defaultdict(float)
    totals = defaultdict(int)
    for means, counts in partials:
        for key, mean in means.items():
            if key not in counts:
                raise AggregationKeyError(f"Shard mean for {key} has no matching count")
            weighted[key] += mean * counts[key]
            totals[key] += counts[key]
    return {key: weighted[key] / totals[key] for key in weighted if totals[key] > 0}
