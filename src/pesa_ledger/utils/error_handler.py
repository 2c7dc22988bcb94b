"""Error recording and structured logging for the message ledger."""

import json
import logging
import sys
import traceback
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification"""
    EXTRACTION = "extraction"
    PERSISTENCE = "persistence"
    SIMULATION = "simulation"
    CONFIGURATION = "configuration"
    SOURCE = "source"
    SYSTEM = "system"


ERROR_CODES = {
    # Extraction
    "EXTRACTION_MISS": "E001",
    "AMOUNT_PARSE_ERROR": "E002",
    "DATE_PARSE_ERROR": "E003",
    "DATA_TYPE_MISMATCH": "E004",

    # Persistence
    "PERSISTENCE_FAILURE": "P001",
    "STATE_FILE_CORRUPTED": "P002",

    # Simulation
    "SIMULATION_INPUT_INVALID": "M001",

    # Configuration
    "CONFIG_FILE_NOT_FOUND": "C001",
    "INVALID_CONFIG_VALUE": "C002",

    # Message sources
    "SOURCE_NOT_FOUND": "S001",
    "SOURCE_ROW_INVALID": "S002",

    "UNEXPECTED_ERROR": "X999",
}


@dataclass
class ErrorDetail:
    """Detailed error information"""
    timestamp: str
    severity: str
    category: str
    error_code: str
    message: str
    message_id: Optional[str] = None
    field_name: Optional[str] = None
    raw_value: Optional[str] = None
    stack_trace: Optional[str] = None
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)


class JSONFormatter(logging.Formatter):
    """One JSON object per log record"""

    def format(self, record):
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for extra_field in ('error_code', 'category', 'message_id', 'context'):
            if hasattr(record, extra_field):
                log_entry[extra_field] = getattr(record, extra_field)

        return json.dumps(log_entry, default=str)


class ErrorHandler:
    """Collects errors and warnings raised while building the ledger.

    Records are kept in memory for summaries and are also written to the
    ``pesa_ledger.errors`` logger. When ``log_directory`` is given, JSON-lines
    files are written there as well.
    """

    def __init__(self, log_directory: Optional[str] = None, enable_console: bool = True):
        self.log_directory = Path(log_directory) if log_directory else None
        if self.log_directory:
            self.log_directory.mkdir(parents=True, exist_ok=True)

        self.errors: List[ErrorDetail] = []
        self.warnings: List[ErrorDetail] = []
        self.error_codes = dict(ERROR_CODES)

        self._setup_logging(enable_console)

    def _setup_logging(self, enable_console: bool):
        """Set up console and optional JSON file logging"""
        self.logger = logging.getLogger('pesa_ledger.errors')
        self.logger.setLevel(logging.DEBUG)
        self.logger.handlers.clear()
        self.logger.propagate = False

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.INFO)
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s'
            ))
            self.logger.addHandler(console_handler)

        if self.log_directory:
            day = datetime.now().strftime('%Y%m%d')

            file_handler = logging.FileHandler(self.log_directory / f"ledger_{day}.jsonl")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(JSONFormatter())
            self.logger.addHandler(file_handler)

            error_file_handler = logging.FileHandler(self.log_directory / f"errors_{day}.jsonl")
            error_file_handler.setLevel(logging.ERROR)
            error_file_handler.setFormatter(JSONFormatter())
            self.logger.addHandler(error_file_handler)

    def _record(self,
                severity: ErrorSeverity,
                message: str,
                error_type: str,
                category: ErrorCategory,
                message_id: Optional[str] = None,
                field_name: Optional[str] = None,
                raw_value: Optional[str] = None,
                exception: Optional[BaseException] = None,
                context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        stack_trace = None
        if exception is not None:
            stack_trace = ''.join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            ))

        return ErrorDetail(
            timestamp=datetime.now().isoformat(),
            severity=severity.value,
            category=category.value,
            error_code=self.error_codes.get(error_type, "X999"),
            message=message,
            message_id=message_id,
            field_name=field_name,
            raw_value=raw_value,
            stack_trace=stack_trace,
            context=context or {}
        )

    def log_error(self,
                  message: str,
                  error_type: str,
                  category: ErrorCategory = ErrorCategory.SYSTEM,
                  message_id: Optional[str] = None,
                  field_name: Optional[str] = None,
                  raw_value: Optional[str] = None,
                  exception: Optional[BaseException] = None,
                  context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        """Log an error with detailed information"""
        detail = self._record(ErrorSeverity.ERROR, message, error_type, category,
                              message_id, field_name, raw_value, exception, context)
        self.errors.append(detail)

        self.logger.error(
            message,
            extra={
                'error_code': detail.error_code,
                'category': category.value,
                'message_id': message_id,
                'context': context or {}
            }
        )
        return detail

    def log_warning(self,
                    message: str,
                    warning_type: str,
                    category: ErrorCategory = ErrorCategory.SYSTEM,
                    message_id: Optional[str] = None,
                    field_name: Optional[str] = None,
                    raw_value: Optional[str] = None,
                    context: Optional[Dict[str, Any]] = None) -> ErrorDetail:
        """Log a warning with detailed information"""
        detail = self._record(ErrorSeverity.WARNING, message, warning_type, category,
                              message_id, field_name, raw_value, None, context)
        self.warnings.append(detail)

        self.logger.warning(
            message,
            extra={
                'error_code': detail.error_code,
                'category': category.value,
                'message_id': message_id,
                'context': context or {}
            }
        )
        return detail

    def log_info(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Log informational message"""
        self.logger.info(message, extra={'context': context or {}})

    def log_debug(self, message: str, context: Optional[Dict[str, Any]] = None):
        """Log debug message"""
        self.logger.debug(message, extra={'context': context or {}})

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors and warnings"""
        errors_by_category: Dict[str, int] = {}
        warnings_by_category: Dict[str, int] = {}

        for error in self.errors:
            errors_by_category[error.category] = errors_by_category.get(error.category, 0) + 1
        for warning in self.warnings:
            warnings_by_category[warning.category] = warnings_by_category.get(warning.category, 0) + 1

        return {
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings),
            'errors_by_category': errors_by_category,
            'warnings_by_category': warnings_by_category,
            'messages_with_errors': len(set(e.message_id for e in self.errors if e.message_id)),
        }

    def clear_errors(self):
        """Clear all accumulated errors and warnings"""
        self.errors.clear()
        self.warnings.clear()

    def has_errors(self) -> bool:
        """Check if any errors have been logged"""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if any warnings have been logged"""
        return len(self.warnings) > 0

    def get_errors_for_message(self, message_id: str) -> List[ErrorDetail]:
        """Get all errors recorded for one raw message"""
        return [error for error in self.errors if error.message_id == message_id]


# Convenience functions for common error scenarios
def handle_field_error(error_handler: ErrorHandler,
                       grammar: str,
                       field_name: str,
                       raw_value: str,
                       exception: Optional[Exception] = None) -> ErrorDetail:
    """Record a matched grammar whose field could not be converted"""
    if 'date' in field_name or 'time' in field_name:
        error_type = "DATE_PARSE_ERROR"
    elif field_name in ('amount', 'balance', 'fee', 'access_fee', 'outstanding', 'limit'):
        error_type = "AMOUNT_PARSE_ERROR"
    else:
        error_type = "DATA_TYPE_MISMATCH"

    return error_handler.log_warning(
        f"Grammar {grammar} matched but {field_name} '{raw_value}' is malformed; treating as unrecognized",
        error_type,
        ErrorCategory.EXTRACTION,
        field_name=field_name,
        raw_value=raw_value,
        context={'grammar': grammar, 'reason': str(exception) if exception else None}
    )


def handle_persistence_error(error_handler: ErrorHandler,
                             message_id: Optional[str],
                             operation: str,
                             exception: Exception) -> ErrorDetail:
    """Record a failed store operation"""
    return error_handler.log_error(
        f"Store operation {operation} failed: {exception}",
        "PERSISTENCE_FAILURE",
        ErrorCategory.PERSISTENCE,
        message_id=message_id,
        exception=exception,
        context={'operation': operation}
    )
