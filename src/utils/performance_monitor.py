# ========================
# src/utils/performance_monitor.py
# ========================

"""
Performance Monitoring Utilities

Tracks run time, throughput and memory for a pipeline run.
"""

import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Performance monitoring utility for the trip data pipeline.
    Tracks memory usage, processing time, and throughput.
    """

    def __init__(self, name: str = "Pipeline", log_every: int = 100):
        """
        Initialize performance monitor.

        Args:
            name (str): Name for this monitoring session
            log_every (int): Log progress once per this many chunks
        """
        self.name = name
        self.log_every = log_every
        self.start_time = None
        self.end_time = None
        self.peak_memory_mb = 0.0
        self.records_processed = 0
        self.chunks_processed = 0
        self.checkpoints = []
        self.summary: Dict[str, Any] = {}
        self._process = psutil.Process(os.getpid())

    def start_monitoring(self) -> None:
        """Start performance monitoring."""
        self.start_time = time.perf_counter()
        self.peak_memory_mb = self._get_memory_usage_mb()

        logger.info(f"{self.name} - Performance monitoring started")
        logger.info(f"Initial memory usage: {self.peak_memory_mb:.2f} MB")

    def update_progress(self, records_in_chunk: int) -> None:
        """
        Update progress tracking.

        Args:
            records_in_chunk (int): Number of records processed in this chunk
        """
        self.records_processed += records_in_chunk
        self.chunks_processed += 1
        current_memory = self._get_memory_usage_mb()
        self.peak_memory_mb = max(self.peak_memory_mb, current_memory)

        if self.chunks_processed % self.log_every == 0:
            self._log_progress(current_memory)

    def add_checkpoint(self, name: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        """
        Add a performance checkpoint.

        Args:
            name (str): Checkpoint name
            metadata (dict): Optional metadata to store
        """
        checkpoint = {
            'name': name,
            'elapsed_seconds': self._elapsed(),
            'memory_mb': self._get_memory_usage_mb(),
            'records_processed': self.records_processed,
            'chunks_processed': self.chunks_processed,
            'metadata': metadata or {}
        }
        self.checkpoints.append(checkpoint)
        logger.debug(f"Checkpoint '{name}': {checkpoint}")

    def _elapsed(self) -> float:
        return time.perf_counter() - self.start_time if self.start_time else 0.0

    def _log_progress(self, current_memory: float) -> None:
        elapsed = self._elapsed()
        throughput = self.records_processed / elapsed if elapsed > 0 else 0
        logger.info(
            f"{self.name} - Progress: {self.chunks_processed} chunks, "
            f"{self.records_processed:,} records, "
            f"{throughput:.0f} records/sec, "
            f"Memory: {current_memory:.2f} MB"
        )

    def stop_monitoring(self) -> Dict[str, Any]:
        """
        Stop monitoring and return performance summary.

        Returns:
            dict: Performance statistics
        """
        total_time = self._elapsed()
        self.end_time = time.perf_counter()
        throughput = self.records_processed / total_time if total_time > 0 else 0

        self.summary = {
            'name': self.name,
            'total_processing_time_seconds': total_time,
            'records_processed': self.records_processed,
            'chunks_processed': self.chunks_processed,
            'average_throughput_records_per_second': throughput,
            'peak_memory_usage_mb': self.peak_memory_mb,
            'checkpoints': self.checkpoints
        }

        self._log_summary(self.summary)
        return self.summary

    def _log_summary(self, summary: Dict[str, Any]) -> None:
        logger.info(f"PERFORMANCE SUMMARY - {summary['name']}")
        logger.info(f"  Total processing time: {summary['total_processing_time_seconds']:.2f} seconds")
        logger.info(f"  Records processed: {summary['records_processed']:,}")
        logger.info(f"  Chunks processed: {summary['chunks_processed']:,}")
        logger.info(f"  Average throughput: {summary['average_throughput_records_per_second']:.0f} records/second")
        logger.info(f"  Peak memory usage: {summary['peak_memory_usage_mb']:.2f} MB")

    def _get_memory_usage_mb(self) -> float:
        """Get current resident memory in MB."""
        return self._process.memory_info().rss / (1024 * 1024)


@contextmanager
def monitor_performance(name: str = "Pipeline"):
    """
    Context manager for easy performance monitoring.

    Args:
        name (str): Name for this monitoring session

    Yields:
        PerformanceMonitor: Monitor instance
    """
    monitor = PerformanceMonitor(name)
    monitor.start_monitoring()
    try:
        yield monitor
    finally:
        monitor.stop_monitoring()
