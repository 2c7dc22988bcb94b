"""Utility functions and helpers"""

from .config_manager import ConfigManager
from .csv_writer import LedgerCSVWriter
from .error_handler import (
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    handle_field_error,
    handle_persistence_error,
)

__all__ = [
    'ConfigManager',
    'LedgerCSVWriter',
    'ErrorCategory',
    'ErrorHandler',
    'ErrorSeverity',
    'handle_field_error',
    'handle_persistence_error',
]
