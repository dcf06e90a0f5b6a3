# ========================
# src/trip_pipeline/storage.py
# ========================

"""
Data Storage Module

Writes the cleaned trip table, the rider comparison aggregates and a run
summary for the reporting layer.
"""

import csv
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .aggregation import GroupAggregator
from .models import CLEANED_COLUMNS, CleanedTripRecord

logger = logging.getLogger(__name__)

CLEANED_TABLE_NAME = "cleaned_trips.csv"

AGGREGATE_COLUMNS = [
    'ride_count', 'mean_ride_length_minutes',
    'min_ride_length_minutes', 'max_ride_length_minutes',
]


class CleanedTableWriter:
    """
    Streams cleaned records into a temporary CSV and publishes it under its
    final name only on commit. An aborted run leaves no cleaned table behind.
    """

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)
        self.temp_path = self.file_path.with_name(self.file_path.name + ".partial")
        self.rows_written = 0
        self._file = None
        self._writer = None

    def __enter__(self) -> 'CleanedTableWriter':
        self._file = open(self.temp_path, 'w', newline='', encoding='utf-8')
        self._writer = csv.DictWriter(self._file, fieldnames=CLEANED_COLUMNS)
        self._writer.writeheader()
        return self

    def write(self, records: Iterable[CleanedTripRecord]) -> None:
        for record in records:
            self._writer.writerow(record.to_row())
            self.rows_written += 1

    def __exit__(self, exc_type, exc, tb) -> None:
        self._file.close()
        if exc_type is None:
            os.replace(self.temp_path, self.file_path)
            logger.info(f"Saved {self.rows_written:,} cleaned records to {self.file_path}")
        else:
            self.temp_path.unlink(missing_ok=True)
            logger.error(f"Discarded partial cleaned table after error: {exc}")


class TripDataSaver:
    """
    Saves the cleaned table and aggregate tables to the output directory.
    """

    # Output file name per report grouping
    AGGREGATE_FILES = {
        ('rider_type',): "rides_by_rider_type.csv",
        ('rider_type', 'month'): "rides_by_rider_type_and_month.csv",
        ('rider_type', 'day_of_week'): "rides_by_rider_type_and_day.csv",
        ('rider_type', 'bike_type'): "rides_by_rider_type_and_bike.csv",
    }

    def __init__(self, output_dir: str = "data/processed"):
        """
        Initialize the data saver.

        Args:
            output_dir (str): Directory to save output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"TripDataSaver initialized with output directory: {self.output_dir}")

    def cleaned_table_writer(self) -> CleanedTableWriter:
        return CleanedTableWriter(self.output_dir / CLEANED_TABLE_NAME)

    def save_cleaned_records(self, records: Iterable[CleanedTripRecord]) -> str:
        """Write a complete in-memory cleaned record set in one go."""
        with self.cleaned_table_writer() as writer:
            writer.write(records)
        return str(writer.file_path)

    def save_aggregates(self, aggregators: Iterable[GroupAggregator]) -> Dict[str, str]:
        """
        Save every aggregator to its CSV file.

        Returns:
            dict: Mapping of table name to saved file path
        """
        saved_files = {}
        for aggregator in aggregators:
            file_name = self.file_name_for(aggregator.group_by)
            saved_files[Path(file_name).stem] = self.save_aggregate(aggregator, file_name)
        return saved_files

    def file_name_for(self, group_by: List[str]) -> str:
        return self.AGGREGATE_FILES.get(
            tuple(group_by), "rides_by_" + "_and_".join(group_by) + ".csv"
        )

    def save_aggregate(self, aggregator: GroupAggregator, file_name: str) -> str:
        """Save one aggregator's rows, sorted by key ordinal."""
        file_path = self.output_dir / file_name
        headers = list(aggregator.group_by) + AGGREGATE_COLUMNS
        rows = aggregator.rows()
        for row in rows:
            row['mean_ride_length_minutes'] = round(row['mean_ride_length_minutes'], 2)
        self._write_csv(file_path, headers, rows)
        return str(file_path)

    def save_summary(self, summary_data: Dict[str, Any]) -> str:
        """Save run summary as JSON."""
        file_path = self.output_dir / "pipeline_summary.json"

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(summary_data, f, indent=2, ensure_ascii=False, default=str)

        logger.info(f"Summary saved to {file_path}")
        return str(file_path)

    def _write_csv(self, file_path: Path, headers: List[str], data_items: List[Dict]) -> None:
        """Write data to CSV file."""
        try:
            with open(file_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=headers)
                writer.writeheader()
                writer.writerows(data_items)

            logger.info(f"Saved {len(data_items)} records to {file_path}")

        except OSError as e:
            logger.error(f"Error writing CSV file {file_path}: {e}")
            raise

    def create_data_dictionary(self, thresholds: Optional[Dict[str, float]] = None) -> str:
        """Create a data dictionary explaining all output files."""
        file_path = self.output_dir / "DATA_DICTIONARY.md"
        thresholds = thresholds or {'min_ride_minutes': 0, 'max_ride_minutes': 1440}

        content = f"""# Data Dictionary

This document describes the structure and content of all generated data files.

## Files Overview

### 1. {CLEANED_TABLE_NAME}
One row per trip that passed cleaning.

| Column | Type | Description |
|--------|------|-------------|
| ride_id | string | Operator trip identifier |
| rideable_type | string | classic, electric or docked |
| started_at | datetime | Checkout time (local wall clock) |
| ended_at | datetime | Return time (local wall clock) |
| start_station_name | string | Checkout station, blank if unknown |
| end_station_name | string | Return station, blank if unknown |
| member_casual | string | member or casual |
| ride_length_minutes | float | Minutes from checkout to return, 2 decimals |
| day_of_week | string | Weekday of checkout, Sunday first |
| month | string | Month of checkout |

### 2. rides_by_rider_type*.csv
Ride counts and ride length statistics per rider type, optionally split by
month, day of week or bike type. Rows follow calendar order for months and
Sunday-first order for weekdays. Groups with no rides are omitted.

| Column | Type | Description |
|--------|------|-------------|
| rider_type | string | member or casual |
| month / day_of_week / bike_type | string | Second grouping key, if any |
| ride_count | integer | Number of rides in the group |
| mean_ride_length_minutes | float | Average ride length, 2 decimals |
| min_ride_length_minutes | float | Shortest ride in the group |
| max_ride_length_minutes | float | Longest ride in the group |

### 3. pipeline_summary.json
Records read, kept and filtered (with the reason for each filtered row),
input files and run timing.

## Data Quality Notes

- Rows with a blank or unparsable start or end time are excluded
- Rides of {thresholds['min_ride_minutes']} minutes or less, and of {thresholds['max_ride_minutes']} minutes or more, are excluded
- Rides starting or ending at maintenance stations are excluded
- Rows with an unrecognised bike type or rider type are excluded
"""

        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Data dictionary created at {file_path}")
        return str(file_path)
