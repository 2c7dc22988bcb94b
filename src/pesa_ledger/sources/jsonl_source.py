"""Android SMS export in JSON-lines format."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .base import MessageSource, to_local_naive
from ..models.core import RawMessage
from ..utils.error_handler import ErrorCategory, ErrorHandler


logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime:
    """Epoch milliseconds (number or digit string) or an ISO 8601 string"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000)
    return to_local_naive(datetime.fromisoformat(text))


class JSONLMessageSource(MessageSource):
    """Reads one JSON object per line.

    Each object needs ``_id``, ``address``, ``body`` and ``date`` (epoch
    milliseconds), the fields of the Android SMS content provider. Lines
    that cannot be read are skipped with a warning.
    """

    def __init__(self, path: str,
                 senders: Optional[Iterable[str]] = None,
                 error_handler: Optional[ErrorHandler] = None):
        super().__init__(senders)
        self.path = Path(path)
        self.error_handler = error_handler

    def read_messages(self) -> List[RawMessage]:
        if not self.path.exists():
            message = f"Message export not found: {self.path}"
            if self.error_handler:
                self.error_handler.log_error(message, "SOURCE_NOT_FOUND", ErrorCategory.SOURCE)
            raise FileNotFoundError(message)

        messages = []
        with open(self.path, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    messages.append(self._convert_record(json.loads(line)))
                except (ValueError, KeyError, TypeError) as e:
                    self._warn_invalid(line_number, line, e)

        logger.info(f"Read {len(messages)} messages from {self.path}")
        return messages

    @staticmethod
    def _convert_record(record: Dict[str, Any]) -> RawMessage:
        return RawMessage(
            external_id=str(record['_id']),
            sender_label=str(record.get('address', '')),
            body=str(record['body']),
            timestamp=parse_timestamp(record['date']),
        )

    def _warn_invalid(self, line_number: int, line: str, exception: Exception):
        message = f"Skipping invalid line {line_number} in {self.path}: {exception}"
        if self.error_handler:
            self.error_handler.log_warning(
                message,
                "SOURCE_ROW_INVALID",
                ErrorCategory.SOURCE,
                raw_value=line[:200],
                context={'line': line_number},
            )
        else:
            logger.warning(message)
