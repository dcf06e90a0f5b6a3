# ========================
# src/trip_pipeline/models.py
# ========================

"""
Trip Record Models

Immutable record types and the ordered categorical enums used throughout
the pipeline. Day and month are integer enums so any sort on them follows
the calendar rather than the alphabet.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional


class RiderType(str, Enum):
    MEMBER = "member"
    CASUAL = "casual"

    @property
    def label(self) -> str:
        return self.value


class BikeType(str, Enum):
    CLASSIC = "classic"
    ELECTRIC = "electric"
    DOCKED = "docked"

    @property
    def label(self) -> str:
        return self.value


class DayOfWeek(IntEnum):
    """Day of the week, numbered Sunday-first (1) through Saturday (7)."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @classmethod
    def from_datetime(cls, value: datetime) -> 'DayOfWeek':
        # datetime.weekday() counts Monday as 0
        return cls((value.weekday() + 1) % 7 + 1)

    @property
    def label(self) -> str:
        return self.name.title()


class Month(IntEnum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12

    @classmethod
    def from_datetime(cls, value: datetime) -> 'Month':
        return cls(value.month)

    @property
    def label(self) -> str:
        return self.name.title()


@dataclass(frozen=True)
class TripRecord:
    """One bike checkout-to-return event as exported by the operator."""

    ride_id: str
    bike_type: BikeType
    started_at: datetime
    ended_at: datetime
    rider_type: RiderType
    start_station_name: Optional[str] = None
    end_station_name: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CleanedTripRecord(TripRecord):
    """A validated trip with its derived analytical columns."""

    ride_length_minutes: float
    day_of_week: DayOfWeek
    month: Month

    def to_row(self) -> dict:
        """Flatten into a CSV row keyed by the output column names."""
        return {
            'ride_id': self.ride_id,
            'rideable_type': self.bike_type.value,
            'started_at': self.started_at.isoformat(sep=' '),
            'ended_at': self.ended_at.isoformat(sep=' '),
            'start_station_name': self.start_station_name or '',
            'end_station_name': self.end_station_name or '',
            'member_casual': self.rider_type.value,
            'ride_length_minutes': self.ride_length_minutes,
            'day_of_week': self.day_of_week.label,
            'month': self.month.label,
        }


CLEANED_COLUMNS = [
    'ride_id', 'rideable_type', 'started_at', 'ended_at',
    'start_station_name', 'end_station_name', 'member_casual',
    'ride_length_minutes', 'day_of_week', 'month',
]

REQUIRED_COLUMNS = [
    'ride_id', 'rideable_type', 'started_at', 'ended_at',
    'start_station_name', 'end_station_name', 'member_casual',
]
