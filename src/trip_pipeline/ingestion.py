# ========================
# src/trip_pipeline/ingestion.py
# ========================

"""
Data Ingestion Module

Handles memory-efficient reading of monthly trip export CSVs using chunked
processing. Several files are read back to back as one logical input.
"""

import csv
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Sequence, Union

from .errors import InputSchemaError
from .models import REQUIRED_COLUMNS

logger = logging.getLogger(__name__)

# Header names used by exports before the 2020 schema change
LEGACY_COLUMN_ALIASES = {
    'trip_id': 'ride_id',
    'start_time': 'started_at',
    'end_time': 'ended_at',
    'from_station_name': 'start_station_name',
    'to_station_name': 'end_station_name',
    'usertype': 'member_casual',
}

LEGACY_BIKE_TYPE = 'docked'

PathLike = Union[str, Path]


class TripCSVReader:
    """
    A memory-efficient CSV reader that streams one or more trip exports in
    chunks. Twelve monthly files easily exceed several million rows, so rows
    are never all held in memory at once.
    """

    def __init__(self, file_paths: Union[PathLike, Sequence[PathLike]]):
        """
        Initialize the CSV reader.

        Args:
            file_paths (str | Path | list): One CSV path or several, read in order
        """
        if isinstance(file_paths, (str, Path)):
            file_paths = [file_paths]
        self.file_paths = [Path(path) for path in file_paths]
        if not self.file_paths:
            raise InputSchemaError("No input files were given")
        self.headers: Dict[str, List[str]] = {}
        self.rows_read = 0
        logger.info(f"Initialized TripCSVReader for {len(self.file_paths)} file(s)")

    @staticmethod
    def normalize_header(fieldnames: Sequence[str]) -> List[str]:
        """Strip header names and map legacy names onto the current schema."""
        header = []
        for name in fieldnames:
            name = (name or '').strip()
            header.append(LEGACY_COLUMN_ALIASES.get(name.lower(), name))
        return header

    @staticmethod
    def missing_columns(header: Sequence[str]) -> List[str]:
        present = set(header)
        # Legacy exports carry no bike type column; it is filled in on read
        return [
            column for column in REQUIRED_COLUMNS
            if column not in present and column != 'rideable_type'
        ]

    def validate_schema(self) -> Dict[str, List[str]]:
        """
        Check that every input file exists and has the required columns.

        Returns:
            dict: Normalised header per file path

        Raises:
            InputSchemaError: If a file is missing, unreadable, or lacks columns
        """
        headers = {}
        for path in self.file_paths:
            try:
                with open(path, 'r', newline='', encoding='utf-8-sig') as f:
                    fieldnames = next(csv.reader(f), None)
            except (OSError, UnicodeDecodeError) as e:
                raise InputSchemaError(f"Cannot read input file '{path}': {e}") from e

            if not fieldnames:
                raise InputSchemaError(f"Input file '{path}' has no header row")

            header = self.normalize_header(fieldnames)
            missing = self.missing_columns(header)
            if missing:
                raise InputSchemaError(
                    f"Input file '{path}' is missing required columns: {missing}"
                )
            headers[str(path)] = header

        logger.info(f"Schema validated for {len(headers)} file(s)")
        return headers

    def read_in_chunks(self, chunk_size: int) -> Iterator[List[Dict[str, str]]]:
        """
        A generator that yields a list of row dictionaries per chunk, across
        all input files in order. A chunk may span a file boundary.

        Args:
            chunk_size (int): The number of rows to yield per chunk.

        Yields:
            list[dict]: Rows keyed by the current column names.
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        chunk = []
        for row in self._iter_rows():
            chunk.append(row)
            if len(chunk) == chunk_size:
                logger.debug(f"Yielding chunk with {len(chunk)} rows")
                yield chunk
                chunk = []

        # Yield any remaining rows in the last chunk
        if chunk:
            logger.debug(f"Yielding final chunk with {len(chunk)} rows")
            yield chunk

        logger.info(f"Total rows read: {self.rows_read:,}")

    def _iter_rows(self) -> Iterator[Dict[str, str]]:
        for path in self.file_paths:
            try:
                with open(path, 'r', newline='', encoding='utf-8-sig') as f:
                    reader = csv.reader(f)
                    fieldnames = next(reader, None)
                    if not fieldnames:
                        logger.warning(f"Skipping empty file: {path}")
                        continue

                    header = self.normalize_header(fieldnames)
                    missing = self.missing_columns(header)
                    if missing:
                        raise InputSchemaError(
                            f"Input file '{path}' is missing required columns: {missing}"
                        )
                    self.headers[str(path)] = header
                    fill_bike_type = 'rideable_type' not in header
                    logger.info(f"Reading {path} ({len(header)} columns)")

                    file_rows = 0
                    for values in reader:
                        if not values:
                            continue
                        # Pad short rows with blanks
                        if len(values) < len(header):
                            values = values + [''] * (len(header) - len(values))
                        row = dict(zip(header, values))
                        if fill_bike_type:
                            row['rideable_type'] = LEGACY_BIKE_TYPE
                        file_rows += 1
                        self.rows_read += 1
                        yield row

                    logger.info(f"Read {file_rows:,} rows from {path}")

            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Error reading CSV file '{path}': {e}")
                raise InputSchemaError(f"Cannot read input file '{path}': {e}") from e


def discover_input_files(input_dir: PathLike, pattern: str = "*.csv") -> List[Path]:
    """List monthly export files in a directory, sorted by name."""
    files = sorted(Path(input_dir).glob(pattern))
    logger.info(f"Discovered {len(files)} input file(s) in {input_dir}")
    return files
