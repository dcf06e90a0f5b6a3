#!/usr/bin/env python3
# ========================
# main.py
# ========================

"""
Main Entry Point for the Bike-Share Trip Data Pipeline

Cleans a year of trip exports and writes the cleaned table plus the
member/casual comparison tables for the reporting layer.

Usage:
    python main.py [trip_export.csv ...]

With no arguments, exports are read from the configured input directory;
if that holds none, a year of sample data is generated there first.
"""

import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from src.trip_pipeline import TripDataPipeline, discover_input_files
from src.utils import Config, TripDataGenerator, get_logger, setup_logging


def main(argv=None):
    """Main execution function."""
    argv = sys.argv[1:] if argv is None else argv
    config = Config()
    invalid = [name for name, ok in config.validate_config().items() if not ok]

    # An unknown LOG_LEVEL is reported through INFO logging
    setup_logging(
        log_level="INFO" if 'log_level' in invalid else config.LOG_LEVEL,
        log_file="pipeline.log",
        log_dir="logs"
    )

    logger = get_logger(__name__)
    logger.info("=" * 60)
    logger.info("BIKE-SHARE TRIP DATA PIPELINE - MAIN EXECUTION")
    logger.info("=" * 60)

    try:
        if invalid:
            logger.error(f"Invalid configuration values: {invalid}")
            return 1

        config.ensure_directories()

        # Step 1: Locate input exports
        generation_stats = None
        input_files = [Path(arg) for arg in argv]
        if not input_files:
            input_files = discover_input_files(config.DEFAULT_INPUT_DIR, config.INPUT_GLOB)
        if not input_files:
            logger.info("Step 1: No exports found, generating a year of sample data...")
            generator = TripDataGenerator(seed=42)
            generation_stats = generator.generate_year(
                output_dir=config.DEFAULT_INPUT_DIR,
                year=2024,
                rows_per_month=max(1, config.DEFAULT_SAMPLE_ROWS // 12),
                error_rate=config.SAMPLE_ERROR_RATE
            )
            input_files = generation_stats['files']

        # Step 2: Configure and run the pipeline
        logger.info("Step 2: Running trip data pipeline...")
        pipeline = TripDataPipeline(
            input_files=input_files,
            output_dir=config.DEFAULT_OUTPUT_DIR,
            chunk_size=config.DEFAULT_CHUNK_SIZE,
            config=config
        )

        if not pipeline.validate_input():
            logger.error("Input validation failed. Exiting.")
            return 1

        estimates = pipeline.estimate_processing_time()
        if estimates:
            logger.info(f"Processing estimates: {estimates}")

        results = pipeline.run()

        # Step 3: Print summary
        _print_execution_summary(results, generation_stats)

        logger.info("Pipeline execution completed successfully!")
        return 0

    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}", exc_info=True)
        return 1


def _print_execution_summary(results: dict, generation_stats: dict = None) -> None:
    """Print final execution summary."""
    print("\n" + "=" * 70)
    print("PIPELINE EXECUTION SUMMARY")
    print("=" * 70)

    if generation_stats:
        print("Sample Data:")
        print(f"   - Records generated: {generation_stats['total_rows']:,}")
        print(f"   - Error rate injected: {generation_stats['error_rate']:.1%}")
        print(f"   - Error types: {len(generation_stats['error_types'])}")

    quality_stats = results['data_quality_stats']

    print("\nCleaning:")
    print(f"   - Input files: {len(results['input_files'])}")
    print(f"   - Filtered {quality_stats['records_dropped']:,} of {quality_stats['records_processed']:,} records")
    for reason, count in sorted(quality_stats['drop_reasons'].items()):
        print(f"       {reason.replace('_', ' ')}: {count:,}")
    print(f"   - Data quality rate: {quality_stats['success_rate']:.1f}%")

    print("\nGenerated Outputs:")
    for dataset_type, file_path in results['saved_files'].items():
        print(f"   - {dataset_type.replace('_', ' ').title()}: {Path(file_path).name}")

    print("=" * 70)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
