"""Shared helpers: structured logging and timezone resolution."""

from .logging import JsonFormatter, configure_logging
from .timezone import resolve_pytz, epoch_to_datetime, header_timezone

__all__ = [
    'JsonFormatter',
    'configure_logging',
    'resolve_pytz',
    'epoch_to_datetime',
    'header_timezone',
]
