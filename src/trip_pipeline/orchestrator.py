# ========================
# src/trip_pipeline/orchestrator.py
# ========================

"""
Pipeline Orchestrator Module

Coordinates reading, cleaning, aggregating and saving a year of trip data.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .aggregation import GroupAggregator
from .cleaning import TripCleaner
from .errors import InputSchemaError
from .ingestion import TripCSVReader
from .storage import TripDataSaver
from ..utils.config import Config
from ..utils.performance_monitor import monitor_performance

logger = logging.getLogger(__name__)

REPORT_GROUPINGS = [
    ['rider_type'],
    ['rider_type', 'month'],
    ['rider_type', 'day_of_week'],
    ['rider_type', 'bike_type'],
]


class TripDataPipeline:
    """
    Orchestrates the trip data pipeline.
    Streams input chunks through the cleaner into the cleaned table and the
    report aggregators, then saves everything.
    """

    def __init__(self,
                 input_files: Union[str, Path, Sequence[Union[str, Path]]],
                 output_dir: str,
                 chunk_size: Optional[int] = None,
                 config: Optional[Config] = None):
        """
        Initialize the trip data pipeline.

        Args:
            input_files (str | list): CSV export(s), concatenated in order
            output_dir (str): Directory for output files
            chunk_size (int): Number of rows to process per chunk
            config (Config): Configuration object
        """
        self.config = config or Config()
        if isinstance(input_files, (str, Path)):
            input_files = [input_files]
        self.input_files = [str(path) for path in input_files]
        self.output_dir = output_dir
        self.chunk_size = chunk_size or self.config.DEFAULT_CHUNK_SIZE

        # Initialize pipeline components
        self._reset_components()
        self.saver = TripDataSaver(self.output_dir)

        logger.info("TripDataPipeline initialized:")
        logger.info(f"  Input files: {len(self.input_files)}")
        logger.info(f"  Output: {self.output_dir}")
        logger.info(f"  Chunk size: {self.chunk_size}")

    def run(self) -> dict:
        """
        Execute the complete pipeline from start to finish.

        Returns:
            dict: Summary of processing results and saved files

        Raises:
            InputSchemaError: If any input file is unreadable or lacks columns
        """
        logger.info(f"Starting trip data pipeline over {len(self.input_files)} file(s)...")
        self._reset_components()

        # Fail before writing anything if any file is structurally unusable
        try:
            self.reader.validate_schema()
        except InputSchemaError as e:
            logger.error(f"Aborting run: {e}")
            raise

        with monitor_performance("TripDataPipeline") as monitor:
            # The cleaned table is published only once its aggregates are on disk
            with self.saver.cleaned_table_writer() as table_writer:
                self._process_chunks(monitor, table_writer)

                logger.info("All chunks processed. Saving aggregates...")
                saved_files = self.saver.save_aggregates(self.aggregators)
                saved_files['data_dictionary'] = self.saver.create_data_dictionary({
                    'min_ride_minutes': self.config.MIN_RIDE_MINUTES,
                    'max_ride_minutes': self.config.MAX_RIDE_MINUTES,
                })
            saved_files = {'cleaned_trips': str(table_writer.file_path), **saved_files}
            monitor.add_checkpoint('saved', {'files': len(saved_files)})

        quality_stats = self.cleaner.get_statistics()
        results = {
            'pipeline_status': 'completed',
            'input_files': self.input_files,
            'output_directory': self.output_dir,
            'saved_files': saved_files,
            'processing_stats': self._get_processing_stats(),
            'data_quality_stats': quality_stats,
            'performance': monitor.summary,
        }
        saved_files['summary'] = self.saver.save_summary(results)

        self._check_quality_rate(quality_stats)
        logger.info("Pipeline finished successfully.")
        self._log_final_summary(results)

        return results

    def _reset_components(self) -> None:
        """Build a fresh reader, cleaner and aggregators so every run starts from zero."""
        self.reader = TripCSVReader(self.input_files)
        self.cleaner = TripCleaner(
            min_ride_minutes=self.config.MIN_RIDE_MINUTES,
            max_ride_minutes=self.config.MAX_RIDE_MINUTES,
            excluded_stations=self.config.EXCLUDED_STATIONS,
        )
        self.aggregators = [GroupAggregator(group_by) for group_by in REPORT_GROUPINGS]

    def _process_chunks(self, monitor, table_writer) -> None:
        """Clean each input chunk, stream it to the table and feed the aggregators."""
        chunk_num = 0

        for raw_chunk in self.reader.read_in_chunks(self.chunk_size):
            chunk_num += 1
            logger.info(f"Processing chunk {chunk_num} with {len(raw_chunk)} rows...")

            cleaned_chunk = self.cleaner.clean(raw_chunk)
            table_writer.write(cleaned_chunk)
            for aggregator in self.aggregators:
                aggregator.process_chunk(cleaned_chunk)

            monitor.update_progress(len(raw_chunk))

    def _get_processing_stats(self) -> dict:
        return {
            'rows_read': self.reader.rows_read,
            'records_kept': self.aggregators[0].records_processed,
            'chunk_size': self.chunk_size,
            'input_size_bytes': sum(
                Path(path).stat().st_size for path in self.input_files if Path(path).exists()
            ),
        }

    def _check_quality_rate(self, quality_stats: dict) -> None:
        rate = quality_stats['success_rate'] / 100
        if quality_stats['records_processed'] and rate < self.config.MIN_DATA_QUALITY_RATE:
            logger.warning(
                f"Only {rate:.1%} of records survived cleaning "
                f"(expected at least {self.config.MIN_DATA_QUALITY_RATE:.0%})"
            )

    def _log_final_summary(self, results: dict) -> None:
        """Log final pipeline summary."""
        logger.info("=" * 60)
        logger.info("PIPELINE EXECUTION SUMMARY")
        logger.info("=" * 60)

        quality_stats = results['data_quality_stats']

        logger.info(f"Input files: {len(results['input_files'])}")
        logger.info(
            f"Filtered {quality_stats['records_dropped']:,} of "
            f"{quality_stats['records_processed']:,} records"
        )
        for reason, count in sorted(quality_stats['drop_reasons'].items()):
            logger.info(f"  {reason}: {count:,}")
        logger.info(f"Data quality rate: {quality_stats['success_rate']:.1f}%")
        logger.info(f"Output files generated: {len(results['saved_files'])}")
        logger.info(f"Output directory: {results['output_directory']}")

        logger.info("Generated datasets:")
        for dataset_type, file_path in results['saved_files'].items():
            logger.info(f"  - {dataset_type}: {file_path}")

        logger.info("=" * 60)

    def validate_input(self) -> bool:
        """
        Validate that every input file is readable and has the required columns.

        Returns:
            bool: True if input is valid
        """
        for input_file in self.input_files:
            input_path = Path(input_file)
            if not input_path.is_file():
                logger.error(f"Input file does not exist or is not a file: {input_file}")
                return False
        try:
            self.reader.validate_schema()
        except InputSchemaError as e:
            logger.error(f"Input validation failed: {e}")
            return False

        logger.info(f"Input validation passed for {len(self.input_files)} file(s)")
        return True

    def estimate_processing_time(self) -> dict:
        """
        Estimate processing time based on file size and configuration.

        Returns:
            dict: Processing time estimates
        """
        try:
            file_size = sum(Path(path).stat().st_size for path in self.input_files)
        except OSError as e:
            logger.warning(f"Could not estimate processing time: {e}")
            return {}

        # Trip export rows run to roughly 180 bytes
        estimated_rows = file_size // 180
        base_rate = 40000

        estimated_seconds = estimated_rows / base_rate
        return {
            'file_size_mb': file_size / (1024 * 1024),
            'estimated_rows': estimated_rows,
            'estimated_processing_time_seconds': estimated_seconds,
            'estimated_processing_time_minutes': estimated_seconds / 60,
            'chunk_count_estimate': estimated_rows // self.chunk_size
        }


def run_pipeline(input_files: Union[str, Path, List[Union[str, Path]]],
                 output_dir: str,
                 config: Optional[Config] = None) -> dict:
    """Run the pipeline over file(s) and write the cleaned table and aggregates."""
    return TripDataPipeline(input_files, output_dir, config=config).run()
