# ========================
# src/trip_pipeline/errors.py
# ========================

"""
Pipeline Exceptions

Structural failures that abort a run. Row-level defects are never raised;
the cleaner filters and counts them instead.
"""


class InputSchemaError(ValueError):
    """Input is unreadable, not iterable, or is missing required columns."""


class AggregationKeyError(KeyError):
    """An aggregation was requested on an unknown selector or metric."""

    def __str__(self) -> str:
        # KeyError repr-quotes its message by default
        return str(self.args[0]) if self.args else ''
