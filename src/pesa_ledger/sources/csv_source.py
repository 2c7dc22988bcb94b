"""SMS backup CSV files with automatic column detection."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .base import MessageSource, message_fingerprint, to_local_naive
from ..models.core import RawMessage
from ..utils.error_handler import ErrorCategory, ErrorHandler


logger = logging.getLogger(__name__)


class CSVMessageSource(MessageSource):
    """Reads messages from a CSV export of an SMS backup app"""

    def __init__(self, path: str,
                 senders: Optional[Iterable[str]] = None,
                 error_handler: Optional[ErrorHandler] = None):
        super().__init__(senders)
        self.path = Path(path)
        self.error_handler = error_handler

        # Header variants seen in common SMS backup tools
        self.column_mappings = {
            'external_id': [
                '_id', 'id', 'ID', 'Id', 'message_id', 'Message ID', 'sms_id'
            ],
            'sender_label': [
                'address', 'Address', 'sender', 'Sender', 'from', 'From',
                'number', 'Number', 'phone', 'Phone'
            ],
            'body': [
                'body', 'Body', 'message', 'Message', 'text', 'Text',
                'content', 'Content', 'sms', 'SMS'
            ],
            'timestamp': [
                'date', 'Date', 'timestamp', 'Timestamp', 'time', 'Time',
                'received', 'Received', 'date_received', 'Date Received'
            ],
        }

    def detect_column_mapping(self, headers: List[str]) -> Dict[str, str]:
        mapping = {}
        for field, possible_names in self.column_mappings.items():
            for header in headers:
                if str(header).strip() in possible_names:
                    mapping[field] = header
                    break

        logger.info(f"Detected column mappings: {mapping}")
        return mapping

    def read_messages(self) -> List[RawMessage]:
        if not self.path.exists():
            message = f"Message export not found: {self.path}"
            if self.error_handler:
                self.error_handler.log_error(message, "SOURCE_NOT_FOUND", ErrorCategory.SOURCE)
            raise FileNotFoundError(message)

        df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        if df.empty:
            logger.warning(f"CSV file is empty: {self.path}")
            return []

        mapping = self.detect_column_mapping(df.columns.tolist())
        missing = [field for field in ('body', 'timestamp') if field not in mapping]
        if missing:
            raise ValueError(f"CSV file {self.path} is missing columns for: {', '.join(missing)}")

        messages = []
        for index, row in df.iterrows():
            try:
                messages.append(self._convert_row(row, mapping))
            except (ValueError, TypeError, OverflowError) as e:
                self._warn_invalid(index, e)

        logger.info(f"Read {len(messages)} messages from {self.path}")
        return messages

    def _convert_row(self, row: pd.Series, mapping: Dict[str, str]) -> RawMessage:
        body = str(row[mapping['body']])
        if not body.strip():
            raise ValueError("empty message body")

        timestamp = self._parse_timestamp(str(row[mapping['timestamp']]).strip())
        sender_col = mapping.get('sender_label')
        sender_label = str(row[sender_col]).strip() if sender_col else ''

        id_col = mapping.get('external_id')
        external_id = str(row[id_col]).strip() if id_col else ''
        if not external_id:
            external_id = message_fingerprint(sender_label, timestamp, body)

        return RawMessage(external_id, sender_label, body, timestamp)

    @staticmethod
    def _parse_timestamp(value: str) -> datetime:
        if not value:
            raise ValueError("missing timestamp")
        if value.isdigit():
            return datetime.fromtimestamp(int(value) / 1000)
        try:
            return to_local_naive(datetime.fromisoformat(value))
        except ValueError:
            pass
        # Backup apps write local formats such as 21/11/2025 14:26
        parsed = pd.to_datetime(value, dayfirst=True)
        if pd.isna(parsed):
            raise ValueError(f"unparseable timestamp {value!r}")
        return to_local_naive(parsed.to_pydatetime())

    def _warn_invalid(self, index, exception: Exception):
        message = f"Skipping malformed row {index + 1} in {self.path}: {exception}"
        if self.error_handler:
            self.error_handler.log_warning(
                message,
                "SOURCE_ROW_INVALID",
                ErrorCategory.SOURCE,
                context={'row': int(index) + 1},
            )
        else:
            logger.warning(message)
