# ========================
# tests/test_cleaning.py
# ========================

import unittest
import sys
import os
from datetime import datetime, timedelta, timezone

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.trip_pipeline.cleaning import TripCleaner, clean
from src.trip_pipeline.errors import InputSchemaError
from src.trip_pipeline.models import (
    BikeType, CleanedTripRecord, DayOfWeek, Month, RiderType, TripRecord,
)


def make_row(ride_id='A1', started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:15:30',
             rideable_type='classic_bike', member_casual='member',
             start_station_name='Clark St & Elm St', end_station_name='Millennium Park'):
    return {
        'ride_id': ride_id,
        'rideable_type': rideable_type,
        'started_at': started_at,
        'ended_at': ended_at,
        'start_station_name': start_station_name,
        'end_station_name': end_station_name,
        'member_casual': member_casual,
    }


class TestTripCleaner(unittest.TestCase):

    def setUp(self):
        self.cleaner = TripCleaner()

    def test_cleaner_valid_record(self):
        """
        Tests cleaning logic with a valid record.
        """
        cleaned = self.cleaner.clean_record(make_row())

        self.assertIsNotNone(cleaned)
        self.assertIsInstance(cleaned, CleanedTripRecord)
        self.assertEqual(cleaned.ride_id, 'A1')
        self.assertEqual(cleaned.bike_type, BikeType.CLASSIC)
        self.assertEqual(cleaned.rider_type, RiderType.MEMBER)
        self.assertEqual(cleaned.started_at, datetime(2024, 3, 1, 10, 0, 0))
        self.assertEqual(cleaned.ended_at, datetime(2024, 3, 1, 10, 15, 30))
        self.assertEqual(cleaned.start_station_name, 'Clark St & Elm St')
        self.assertEqual(cleaned.month, Month.MARCH)

    def test_ride_length_computation(self):
        """
        A 15 minute 30 second ride is 15.5 minutes.
        """
        cleaned = self.cleaner.clean_record(
            make_row(started_at='2024-03-01T10:00:00', ended_at='2024-03-01T10:15:30')
        )
        self.assertEqual(cleaned.ride_length_minutes, 15.5)

    def test_ride_length_rounded_to_two_places(self):
        cleaned = self.cleaner.clean_record(
            make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:00:10')
        )
        self.assertEqual(cleaned.ride_length_minutes, 0.17)

    def test_weekday_derivation(self):
        """
        2024-03-02 is a Saturday; the week starts on Sunday.
        """
        saturday = self.cleaner.clean_record(
            make_row(started_at='2024-03-02 09:00:00', ended_at='2024-03-02 09:20:00')
        )
        sunday = self.cleaner.clean_record(
            make_row(started_at='2024-03-03 09:00:00', ended_at='2024-03-03 09:20:00')
        )
        self.assertEqual(saturday.day_of_week, DayOfWeek.SATURDAY)
        self.assertEqual(sunday.day_of_week, DayOfWeek.SUNDAY)
        self.assertEqual(int(DayOfWeek.SUNDAY), 1)
        self.assertEqual(list(DayOfWeek)[0], DayOfWeek.SUNDAY)
        self.assertEqual(list(DayOfWeek)[-1], DayOfWeek.SATURDAY)

    def test_every_weekday_maps_correctly(self):
        # 2024-03-03 is a Sunday
        base = datetime(2024, 3, 3, 8, 0, 0)
        for offset, expected in enumerate(DayOfWeek):
            started = base + timedelta(days=offset)
            self.assertEqual(DayOfWeek.from_datetime(started), expected)

    def test_unparsable_timestamps_are_filtered(self):
        """
        Rows with blank, missing or malformed timestamps never survive.
        """
        bad_values = ['', '   ', 'not a timestamp', '2024-13-45 25:00:00', None, 12345]
        for value in bad_values:
            self.assertIsNone(self.cleaner.clean_record(make_row(started_at=value)),
                              f"Failed for started_at: {value!r}")
            self.assertIsNone(self.cleaner.clean_record(make_row(ended_at=value)),
                              f"Failed for ended_at: {value!r}")

        self.assertEqual(self.cleaner.drop_reasons['invalid_timestamp'], len(bad_values) * 2)

    def test_timestamp_format_variants(self):
        """
        Tests timestamp parsing with the formats found across export years.
        """
        test_values = [
            ('2024-03-01 10:00:00', datetime(2024, 3, 1, 10, 0, 0)),
            ('2024-03-01T10:00:00', datetime(2024, 3, 1, 10, 0, 0)),
            ('2024-03-01 10:00:00.250', datetime(2024, 3, 1, 10, 0, 0, 250000)),
            ('3/1/2024 10:00', datetime(2024, 3, 1, 10, 0, 0)),
            ('03/01/2024 10:00:05', datetime(2024, 3, 1, 10, 0, 5)),
            ('2024/03/01 10:00:00', datetime(2024, 3, 1, 10, 0, 0)),
            ('2024-03-01 10:00:00+00:00', datetime(2024, 3, 1, 10, 0, 0)),
            ('2024-03-01 10:00:00.25', datetime(2024, 3, 1, 10, 0, 0, 250000)),
            ('2024-03-01T10:00:00Z', datetime(2024, 3, 1, 10, 0, 0)),
            ('garbage', None),
            ('', None),
            (None, None),
        ]

        for input_value, expected in test_values:
            result = self.cleaner._clean_timestamp(input_value)
            self.assertEqual(result, expected, f"Failed for input: {input_value}")

    def test_timezone_offsets_are_dropped(self):
        aware = datetime(2024, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=-6)))
        result = self.cleaner._clean_timestamp(aware)
        self.assertIsNone(result.tzinfo)
        self.assertEqual(result, datetime(2024, 3, 1, 10, 0))

    def test_non_positive_duration_filtered(self):
        same_time = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:00:00')
        reversed_times = make_row(started_at='2024-03-01 10:30:00', ended_at='2024-03-01 10:00:00')
        # Rounds to 0.0 minutes
        tiny = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:00:00.100')

        for row in (same_time, reversed_times, tiny):
            self.assertIsNone(self.cleaner.clean_record(row))
        self.assertEqual(self.cleaner.drop_reasons['non_positive_duration'], 3)

    def test_excessive_duration_filtered(self):
        exactly_a_day = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-02 10:00:00')
        over_a_day = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-04 10:00:00')
        just_under = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-02 09:59:00')

        self.assertIsNone(self.cleaner.clean_record(exactly_a_day))
        self.assertIsNone(self.cleaner.clean_record(over_a_day))
        self.assertEqual(self.cleaner.clean_record(just_under).ride_length_minutes, 1439.0)
        self.assertEqual(self.cleaner.drop_reasons['excessive_duration'], 2)

    def test_configurable_thresholds(self):
        cleaner = TripCleaner(min_ride_minutes=1, max_ride_minutes=60)
        short = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:00:30')
        long = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 11:30:00')
        normal = make_row(started_at='2024-03-01 10:00:00', ended_at='2024-03-01 10:20:00')

        self.assertIsNone(cleaner.clean_record(short))
        self.assertIsNone(cleaner.clean_record(long))
        self.assertIsNotNone(cleaner.clean_record(normal))

    def test_invalid_thresholds_rejected(self):
        with self.assertRaises(ValueError):
            TripCleaner(min_ride_minutes=60, max_ride_minutes=60)

    def test_categorical_standardization(self):
        """
        Tests bike and rider type mapping across export spellings.
        """
        bike_tests = [
            ('classic_bike', BikeType.CLASSIC),
            ('Electric Bike', BikeType.ELECTRIC),
            ('  docked_bike ', BikeType.DOCKED),
            ('electric', BikeType.ELECTRIC),
            ('scooter', None),
            ('', None),
        ]
        for value, expected in bike_tests:
            result = self.cleaner._clean_category(value, BikeType, TripCleaner.BIKE_TYPE_MAP)
            self.assertEqual(result, expected, f"Failed for bike type: {value}")

        rider_tests = [
            ('member', RiderType.MEMBER),
            ('CASUAL', RiderType.CASUAL),
            ('Subscriber', RiderType.MEMBER),
            ('Customer', RiderType.CASUAL),
            ('Dependent', None),
            (None, None),
        ]
        for value, expected in rider_tests:
            result = self.cleaner._clean_category(value, RiderType, TripCleaner.RIDER_TYPE_MAP)
            self.assertEqual(result, expected, f"Failed for rider type: {value}")

    def test_unknown_categories_are_filtered(self):
        self.assertIsNone(self.cleaner.clean_record(make_row(member_casual='visitor')))
        self.assertIsNone(self.cleaner.clean_record(make_row(rideable_type='unicycle')))
        self.assertEqual(self.cleaner.drop_reasons['invalid_category'], 2)

    def test_missing_station_names_are_kept(self):
        cleaned = self.cleaner.clean_record(make_row(start_station_name='', end_station_name=None))
        self.assertIsNotNone(cleaned)
        self.assertIsNone(cleaned.start_station_name)
        self.assertIsNone(cleaned.end_station_name)

    def test_maintenance_station_rides_filtered(self):
        cleaner = TripCleaner(excluded_stations=('HQ QR',))
        self.assertIsNone(cleaner.clean_record(make_row(start_station_name='HQ QR')))
        self.assertIsNone(cleaner.clean_record(make_row(end_station_name='hq qr')))
        self.assertEqual(cleaner.drop_reasons['excluded_station'], 2)

    def test_no_stations_excluded_by_default(self):
        self.assertIsNotNone(self.cleaner.clean_record(make_row(start_station_name='HQ QR')))
        self.assertEqual(len(clean([make_row(end_station_name='HQ QR')])), 1)
        self.assertEqual(self.cleaner.drop_reasons['excluded_station'], 0)

    def test_blank_ride_id_filtered(self):
        self.assertIsNone(self.cleaner.clean_record(make_row(ride_id='  ')))
        self.assertEqual(self.cleaner.drop_reasons['missing_ride_id'], 1)

    def test_trip_record_input(self):
        record = TripRecord(
            ride_id='T1',
            bike_type=BikeType.ELECTRIC,
            started_at=datetime(2024, 7, 6, 12, 0),
            ended_at=datetime(2024, 7, 6, 12, 45),
            rider_type=RiderType.CASUAL,
        )
        cleaned = self.cleaner.clean_record(record)
        self.assertEqual(cleaned.ride_length_minutes, 45.0)
        self.assertEqual(cleaned.month, Month.JULY)
        self.assertEqual(cleaned.day_of_week, DayOfWeek.SATURDAY)

    def test_cleaned_record_requires_derived_fields(self):
        with self.assertRaises(TypeError):
            CleanedTripRecord(
                ride_id='T1',
                bike_type=BikeType.ELECTRIC,
                started_at=datetime(2024, 7, 6, 12, 0),
                ended_at=datetime(2024, 7, 6, 12, 45),
                rider_type=RiderType.CASUAL,
                ride_length_minutes=45.0,
            )


class TestCleanOperation(unittest.TestCase):

    def setUp(self):
        self.rows = [
            make_row(ride_id='good-1'),
            make_row(ride_id='bad-ts', started_at='oops'),
            make_row(ride_id='good-2', started_at='2024-06-15 08:00:00', ended_at='2024-06-15 08:42:00',
                     member_casual='casual'),
            make_row(ride_id='negative', started_at='2024-06-15 09:00:00', ended_at='2024-06-15 08:00:00'),
            make_row(ride_id='overnight', started_at='2024-06-15 09:00:00', ended_at='2024-06-17 09:00:00'),
            make_row(ride_id='good-3', started_at='2024-12-24 17:00:00', ended_at='2024-12-24 17:05:00',
                     rideable_type='electric_bike'),
        ]

    def test_clean_filters_and_preserves_order(self):
        cleaned = clean(self.rows)
        self.assertEqual([r.ride_id for r in cleaned], ['good-1', 'good-2', 'good-3'])

    def test_duration_bound_holds_for_all_output(self):
        for record in clean(self.rows):
            self.assertGreater(record.ride_length_minutes, 0)
            self.assertLess(record.ride_length_minutes, 1440)

    def test_clean_does_not_mutate_input(self):
        snapshot = [dict(row) for row in self.rows]
        clean(self.rows)
        self.assertEqual(self.rows, snapshot)

    def test_clean_is_idempotent(self):
        """
        Cleaning already-cleaned output yields the same records.
        """
        once = clean(self.rows)
        twice = clean(once)
        self.assertEqual(once, twice)

    def test_statistics_track_filtered_rows(self):
        cleaner = TripCleaner()
        cleaner.clean(self.rows)
        stats = cleaner.get_statistics()

        self.assertEqual(stats['records_processed'], 6)
        self.assertEqual(stats['records_dropped'], 3)
        self.assertEqual(stats['records_cleaned'], 3)
        self.assertEqual(stats['drop_reasons'], {
            'invalid_timestamp': 1,
            'non_positive_duration': 1,
            'excessive_duration': 1,
        })
        self.assertAlmostEqual(stats['success_rate'], 50.0)

    def test_empty_input_returns_empty_list(self):
        self.assertEqual(clean([]), [])

    def test_generator_input(self):
        cleaned = clean(row for row in self.rows)
        self.assertEqual(len(cleaned), 3)

    def test_non_iterable_input_raises_schema_error(self):
        for bad_input in (None, 42, 'ride_id,started_at', make_row()):
            with self.assertRaises(InputSchemaError, msg=f"Failed for input: {bad_input!r}"):
                clean(bad_input)

    def test_missing_columns_raise_schema_error(self):
        row = make_row()
        del row['ended_at']
        with self.assertRaises(InputSchemaError):
            clean([make_row(), row])

    def test_unsupported_element_raises_schema_error(self):
        with self.assertRaises(InputSchemaError):
            clean([make_row(), ['A1', 'classic_bike']])


if __name__ == '__main__':
    unittest.main()
