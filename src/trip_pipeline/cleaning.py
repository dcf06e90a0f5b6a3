# ========================
# src/trip_pipeline/cleaning.py
# ========================

"""
Trip Cleaning Module

Validates raw trip records, derives ride length, weekday and month, and
filters out rows that cannot support a behavioural comparison of riders.
Row-level defects are counted and dropped, never raised.
"""

import logging
from collections import Counter
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from .errors import InputSchemaError
from .models import (
    REQUIRED_COLUMNS,
    BikeType,
    CleanedTripRecord,
    DayOfWeek,
    Month,
    RiderType,
    TripRecord,
)

logger = logging.getLogger(__name__)

RawRecord = Union[TripRecord, Mapping]

DEFAULT_MIN_RIDE_MINUTES = 0.0
DEFAULT_MAX_RIDE_MINUTES = 1440.0
DEFAULT_EXCLUDED_STATIONS = ()


class TripCleaner:
    """
    Turns raw trip rows into CleanedTripRecord values.

    A record survives only if both timestamps parse, both categoricals are
    recognised, and its ride length falls strictly between the configured
    minimum and maximum.
    """

    # Operator exports have spelled these differently over the years
    BIKE_TYPE_MAP = {
        "classic": BikeType.CLASSIC, "classic_bike": BikeType.CLASSIC,
        "classic bike": BikeType.CLASSIC,
        "electric": BikeType.ELECTRIC, "electric_bike": BikeType.ELECTRIC,
        "electric bike": BikeType.ELECTRIC, "e-bike": BikeType.ELECTRIC,
        "ebike": BikeType.ELECTRIC,
        "docked": BikeType.DOCKED, "docked_bike": BikeType.DOCKED,
        "docked bike": BikeType.DOCKED,
    }

    RIDER_TYPE_MAP = {
        "member": RiderType.MEMBER, "subscriber": RiderType.MEMBER,
        "casual": RiderType.CASUAL, "customer": RiderType.CASUAL,
    }

    TIMESTAMP_FORMATS = [
        "%m/%d/%Y %H:%M:%S",
        "%m/%d/%Y %H:%M",
        "%Y/%m/%d %H:%M:%S",
        "%Y/%m/%d %H:%M",
    ]

    def __init__(self,
                 min_ride_minutes: float = DEFAULT_MIN_RIDE_MINUTES,
                 max_ride_minutes: float = DEFAULT_MAX_RIDE_MINUTES,
                 excluded_stations: Sequence[str] = DEFAULT_EXCLUDED_STATIONS):
        """
        Initialize the trip cleaner.

        Args:
            min_ride_minutes (float): Rides at or below this length are dropped
            max_ride_minutes (float): Rides at or above this length are dropped
            excluded_stations (sequence): Station names used for maintenance
                checkouts; rides touching them are dropped. None by default,
                the pipeline passes Config.EXCLUDED_STATIONS
        """
        if min_ride_minutes >= max_ride_minutes:
            raise ValueError(
                f"min_ride_minutes ({min_ride_minutes}) must be below "
                f"max_ride_minutes ({max_ride_minutes})"
            )
        self.min_ride_minutes = min_ride_minutes
        self.max_ride_minutes = max_ride_minutes
        self.excluded_stations = frozenset(
            name.strip().lower() for name in excluded_stations if name and name.strip()
        )
        self.records_processed = 0
        self.records_dropped = 0
        self.drop_reasons = Counter()
        logger.info(
            f"TripCleaner initialized: ride length window "
            f"({self.min_ride_minutes}, {self.max_ride_minutes}) minutes"
        )

    def clean(self, records: Iterable[RawRecord]) -> List[CleanedTripRecord]:
        """
        Clean a sequence of trip records.

        Args:
            records: TripRecord instances or mappings keyed by the CSV
                column names.

        Returns:
            list[CleanedTripRecord]: Surviving records in input order.

        Raises:
            InputSchemaError: If the input is not a sequence of records or a
                row lacks required columns.
        """
        if isinstance(records, (str, bytes, Mapping)):
            raise InputSchemaError(
                f"Expected a sequence of trip records, got {type(records).__name__}"
            )
        try:
            iterator = iter(records)
        except TypeError as e:
            raise InputSchemaError(
                f"Trip records must be iterable, got {type(records).__name__}"
            ) from e

        cleaned = []
        seen = 0
        for record in iterator:
            seen += 1
            cleaned_record = self.clean_record(record)
            if cleaned_record is not None:
                cleaned.append(cleaned_record)

        logger.info(f"Filtered {seen - len(cleaned):,} of {seen:,} records")
        return cleaned

    def clean_record(self, record: RawRecord) -> Optional[CleanedTripRecord]:
        """
        Clean a single record.

        Returns:
            CleanedTripRecord or None if the row is defective.
        """
        fields = self._extract_fields(record)
        self.records_processed += 1

        started_at = self._clean_timestamp(fields['started_at'])
        ended_at = self._clean_timestamp(fields['ended_at'])
        if started_at is None or ended_at is None:
            return self._drop('invalid_timestamp', record)

        bike_type = self._clean_category(fields['rideable_type'], BikeType, self.BIKE_TYPE_MAP)
        rider_type = self._clean_category(fields['member_casual'], RiderType, self.RIDER_TYPE_MAP)
        if bike_type is None or rider_type is None:
            return self._drop('invalid_category', record)

        ride_id = self._clean_text(fields['ride_id'])
        if ride_id is None:
            return self._drop('missing_ride_id', record)

        start_station = self._clean_text(fields['start_station_name'])
        end_station = self._clean_text(fields['end_station_name'])
        if self._is_excluded_station(start_station) or self._is_excluded_station(end_station):
            return self._drop('excluded_station', record)

        ride_length = self.ride_length_minutes(started_at, ended_at)
        if ride_length <= self.min_ride_minutes:
            return self._drop('non_positive_duration', record)
        if ride_length >= self.max_ride_minutes:
            return self._drop('excessive_duration', record)

        return CleanedTripRecord(
            ride_id=ride_id,
            bike_type=bike_type,
            started_at=started_at,
            ended_at=ended_at,
            rider_type=rider_type,
            start_station_name=start_station,
            end_station_name=end_station,
            ride_length_minutes=ride_length,
            day_of_week=DayOfWeek.from_datetime(started_at),
            month=Month.from_datetime(started_at),
        )

    @staticmethod
    def ride_length_minutes(started_at: datetime, ended_at: datetime) -> float:
        """Elapsed minutes between checkout and return, rounded to 2 places."""
        return round((ended_at - started_at).total_seconds() / 60, 2)

    def _extract_fields(self, record: RawRecord) -> Dict[str, Any]:
        """Read the raw column values from either a record object or a row mapping."""
        if isinstance(record, TripRecord):
            return {
                'ride_id': record.ride_id,
                'rideable_type': record.bike_type,
                'started_at': record.started_at,
                'ended_at': record.ended_at,
                'start_station_name': record.start_station_name,
                'end_station_name': record.end_station_name,
                'member_casual': record.rider_type,
            }

        if isinstance(record, Mapping):
            missing = [column for column in REQUIRED_COLUMNS if column not in record]
            if missing:
                raise InputSchemaError(f"Trip row is missing required columns: {missing}")
            return {column: record[column] for column in REQUIRED_COLUMNS}

        raise InputSchemaError(
            f"Unsupported trip record type: {type(record).__name__}"
        )

    def _drop(self, reason: str, record: RawRecord) -> None:
        self.records_dropped += 1
        self.drop_reasons[reason] += 1
        logger.debug(f"Record dropped ({reason}): {record}")
        return None

    def _clean_timestamp(self, value: Any) -> Optional[datetime]:
        """
        Parses a timestamp into a naive wall-clock datetime.
        Offsets are discarded: every export is assumed to share one zone.
        Returns None if the value is blank or malformed.
        """
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str) and value.strip():
            parsed = self._parse_timestamp_string(value.strip())
            if parsed is None:
                return None
        else:
            return None

        if parsed.tzinfo is not None:
            parsed = parsed.replace(tzinfo=None)
        return parsed

    def _parse_timestamp_string(self, text: str) -> Optional[datetime]:
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            pass

        for fmt in self.TIMESTAMP_FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue
        return None

    def _clean_category(self, value: Any, enum_type, mapping: Dict[str, Any]):
        """Map a free-text categorical onto its enum, or None if unrecognised."""
        if isinstance(value, enum_type):
            return value
        if not isinstance(value, str) or not value.strip():
            return None
        return mapping.get(value.strip().lower())

    def _clean_text(self, value: Any) -> Optional[str]:
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    def _is_excluded_station(self, station: Optional[str]) -> bool:
        return station is not None and station.lower() in self.excluded_stations

    def get_statistics(self) -> Dict[str, Any]:
        """Get cleaning statistics."""
        records_cleaned = self.records_processed - self.records_dropped
        return {
            'records_processed': self.records_processed,
            'records_dropped': self.records_dropped,
            'records_cleaned': records_cleaned,
            'drop_reasons': dict(self.drop_reasons),
            'success_rate': records_cleaned / self.records_processed * 100 if self.records_processed > 0 else 0
        }


def clean(records: Iterable[RawRecord],
          min_ride_minutes: float = DEFAULT_MIN_RIDE_MINUTES,
          max_ride_minutes: float = DEFAULT_MAX_RIDE_MINUTES,
          excluded_stations: Sequence[str] = DEFAULT_EXCLUDED_STATIONS) -> List[CleanedTripRecord]:
    """Clean trip records with a fresh TripCleaner. See TripCleaner.clean."""
    cleaner = TripCleaner(
        min_ride_minutes=min_ride_minutes,
        max_ride_minutes=max_ride_minutes,
        excluded_stations=excluded_stations,
    )
    return cleaner.clean(records)
