# ========================
# src/trip_pipeline/__init__.py
# ========================

"""
Trip Data Pipeline Package

Core components for cleaning and summarising bike-share trip exports:
- ingestion: Chunked reading of monthly CSV exports
- cleaning: Validation and derived ride length, weekday and month
- aggregation: Group-by counts and ride length statistics
- storage: Cleaned table and aggregate output
- orchestrator: Pipeline coordination
"""

from .errors import InputSchemaError, AggregationKeyError
from .models import (
    BikeType,
    CleanedTripRecord,
    DayOfWeek,
    Month,
    RiderType,
    TripRecord,
)
from .ingestion import TripCSVReader, discover_input_files
from .cleaning import TripCleaner, clean
from .aggregation import GroupAggregator, aggregate, merge_counts, merge_means
from .storage import TripDataSaver
from .orchestrator import TripDataPipeline, run_pipeline

__all__ = [
    'InputSchemaError',
    'AggregationKeyError',
    'BikeType',
    'CleanedTripRecord',
    'DayOfWeek',
    'Month',
    'RiderType',
    'TripRecord',
    'TripCSVReader',
    'discover_input_files',
    'TripCleaner',
    'clean',
    'GroupAggregator',
    'aggregate',
    'merge_counts',
    'merge_means',
    'TripDataSaver',
    'TripDataPipeline',
    'run_pipeline',
]

__version__ = "1.0.0"
