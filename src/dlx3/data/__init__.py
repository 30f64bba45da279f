"""
DLX3 Data Package (Imperative Shell)

File access and tabular (pandas) views over decoded blocks.

Modules:
- reader: read_dlx3_file plus get_*_dataframe views
"""

from .reader import (
    read_dlx3_file,
    get_block_summary_dataframe,
    get_door_counts_dataframe,
    get_waypoints_dataframe,
    get_events_dataframe,
    get_diagnostics_dataframe,
    get_exchange_times_dataframe,
    get_telemetry_dataframe,
)

__all__ = [
    'read_dlx3_file',
    'get_block_summary_dataframe',
    'get_door_counts_dataframe',
    'get_waypoints_dataframe',
    'get_events_dataframe',
    'get_diagnostics_dataframe',
    'get_exchange_times_dataframe',
    'get_telemetry_dataframe',
]
