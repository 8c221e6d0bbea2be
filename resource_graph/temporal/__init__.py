"""
Temporal Layer

RESPONSIBILITY: Time window filtering and the layout state machine
OUTPUTS: DateFilter values, laid-out GraphStore snapshots

The layout module depends on the core store and is imported directly as
``resource_graph.temporal.layout``.
"""

from .date_filter import (
    DATE_PRESETS,
    DateFilter,
    date_filter_from_preset,
    is_within_date_range,
    last_days,
    validate_date_filter,
)

__all__ = [
    'DATE_PRESETS',
    'DateFilter',
    'date_filter_from_preset',
    'is_within_date_range',
    'last_days',
    'validate_date_filter',
]
