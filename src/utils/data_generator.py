# ========================
# src/utils/data_generator.py
# ========================

"""
Data Generation Utilities

Synthetic monthly trip exports with realistic rider behaviour and
controlled error injection.
"""

import calendar
import csv
import logging
import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    'ride_id', 'rideable_type', 'started_at', 'ended_at',
    'start_station_name', 'end_station_name', 'member_casual',
]

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class TripDataGenerator:
    """
    Generates trip export CSVs shaped like the operator's monthly files.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize data generator.

        Args:
            seed (int): Random seed for reproducible data generation
        """
        self.random = random.Random(seed)
        self._initialize_data_patterns()
        logger.info(f"TripDataGenerator initialized with seed: {seed}")

    def _initialize_data_patterns(self) -> None:
        """Initialize rider mix, bike mix and station patterns."""
        self.stations = [
            "Streeter Dr & Grand Ave", "DuSable Lake Shore Dr & Monroe St",
            "Clark St & Elm St", "Kingsbury St & Kinzie St", "Wells St & Concord Ln",
            "Theater on the Lake", "Michigan Ave & Oak St", "Millennium Park",
            "Canal St & Adams St", "University Ave & 57th St", None,
        ]

        self.bike_types = [
            {"value": "classic_bike", "weight": 0.5},
            {"value": "electric_bike", "weight": 0.42},
            {"value": "docked_bike", "weight": 0.08},
        ]

        # Share of rides taken by casual riders per month
        self.casual_share = {
            1: 0.18, 2: 0.2, 3: 0.28, 4: 0.33, 5: 0.42, 6: 0.48,
            7: 0.5, 8: 0.47, 9: 0.42, 10: 0.35, 11: 0.26, 12: 0.2,
        }

        # Mean ride minutes; casual riders ride longer, especially at weekends
        self.mean_ride_minutes = {
            ('member', False): 12.0, ('member', True): 14.0,
            ('casual', False): 20.0, ('casual', True): 26.0,
        }

    def generate_month(self,
                       file_path: str,
                       year: int,
                       month: int,
                       num_rows: int,
                       error_rate: float = 0.05) -> Dict[str, Any]:
        """
        Generate one month of trip data with controlled error injection.

        Args:
            file_path (str): Output CSV file path
            year (int): Calendar year of the export
            month (int): Calendar month of the export
            num_rows (int): Number of rows to generate
            error_rate (float): Fraction of records with intentional errors

        Returns:
            dict: Generation statistics
        """
        logger.info(f"Generating {num_rows:,} rows for {year}-{month:02d} with {error_rate:.1%} error rate...")

        stats = {
            'file_path': str(file_path),
            'total_rows': num_rows,
            'error_rate': error_rate,
            'records_with_errors': 0,
            'error_types': {}
        }

        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        days_in_month = calendar.monthrange(year, month)[1]
        month_start = datetime(year, month, 1)

        with open(file_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(EXPORT_COLUMNS)

            for i in range(num_rows):
                record = self._generate_single_record(month_start, days_in_month, error_rate, stats)
                writer.writerow(record)

        stats['error_rate_actual'] = stats['records_with_errors'] / num_rows if num_rows else 0.0

        logger.info(f"Dataset generated: {file_path}")
        logger.info(f"Error breakdown: {stats['error_types']}")
        return stats

    def generate_year(self,
                      output_dir: str,
                      year: int,
                      rows_per_month: int,
                      error_rate: float = 0.05) -> Dict[str, Any]:
        """
        Generate twelve monthly files named like the operator's exports.

        Returns:
            dict: Combined statistics including the list of generated files
        """
        files: List[str] = []
        total_stats = {'total_rows': 0, 'records_with_errors': 0, 'error_types': {}, 'files': files}

        for month in range(1, 13):
            file_path = Path(output_dir) / f"{year}{month:02d}-divvy-tripdata.csv"
            stats = self.generate_month(str(file_path), year, month, rows_per_month, error_rate)
            files.append(str(file_path))
            total_stats['total_rows'] += stats['total_rows']
            total_stats['records_with_errors'] += stats['records_with_errors']
            for error_type, count in stats['error_types'].items():
                total_stats['error_types'][error_type] = total_stats['error_types'].get(error_type, 0) + count

        total_stats['error_rate'] = error_rate
        logger.info(f"Generated {len(files)} monthly files in {output_dir}")
        return total_stats

    def _generate_single_record(self,
                                month_start: datetime,
                                days_in_month: int,
                                error_rate: float,
                                stats: Dict[str, Any]) -> List[Any]:
        """Generate a single record with potential errors."""
        rng = self.random
        ride_id = "".join(rng.choices("0123456789ABCDEF", k=16))

        started_at = month_start + timedelta(
            days=rng.randint(0, days_in_month - 1),
            hours=rng.randint(0, 23),
            minutes=rng.randint(0, 59),
            seconds=rng.randint(0, 59)
        )

        rider = "casual" if rng.random() < self.casual_share[started_at.month] else "member"
        weekend = started_at.weekday() >= 5
        minutes = rng.expovariate(1 / self.mean_ride_minutes[(rider, weekend)])
        ride_seconds = int(min(max(minutes, 1.0), 180.0) * 60)
        ended_at = started_at + timedelta(seconds=ride_seconds)

        weights = [b["weight"] for b in self.bike_types]
        bike_type = rng.choices(self.bike_types, weights=weights)[0]["value"]

        record = {
            'ride_id': ride_id,
            'rideable_type': bike_type,
            'started_at': started_at.strftime(TIMESTAMP_FORMAT),
            'ended_at': ended_at.strftime(TIMESTAMP_FORMAT),
            'start_station_name': rng.choice(self.stations) or '',
            'end_station_name': rng.choice(self.stations) or '',
            'member_casual': rider,
        }

        if rng.random() < error_rate:
            stats['records_with_errors'] += 1
            self._inject_errors(record, started_at, stats)

        return [record[column] for column in EXPORT_COLUMNS]

    def _inject_errors(self, record: Dict[str, Any], started_at: datetime, stats: Dict[str, Any]) -> None:
        """Inject one kind of defect into the record."""
        error_type = self.random.choice([
            'unparsable_timestamp', 'blank_timestamp', 'end_before_start',
            'over_24_hours', 'unknown_rider_type', 'maintenance_station'
        ])

        if error_type == 'unparsable_timestamp':
            record['ended_at'] = "not a timestamp"
        elif error_type == 'blank_timestamp':
            record['started_at'] = ""
        elif error_type == 'end_before_start':
            record['ended_at'] = (started_at - timedelta(minutes=self.random.randint(1, 30))).strftime(TIMESTAMP_FORMAT)
        elif error_type == 'over_24_hours':
            record['ended_at'] = (started_at + timedelta(days=self.random.randint(1, 5))).strftime(TIMESTAMP_FORMAT)
        elif error_type == 'unknown_rider_type':
            record['member_casual'] = "dependent"
        elif error_type == 'maintenance_station':
            record['start_station_name'] = "HQ QR"

        self._track_error_type(stats, error_type)

    def _track_error_type(self, stats: Dict[str, Any], error_type: str) -> None:
        """Track error types for statistics."""
        stats['error_types'][error_type] = stats['error_types'].get(error_type, 0) + 1
