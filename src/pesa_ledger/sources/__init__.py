"""Raw message sources"""

from .base import InMemoryMessageSource, MessageSource, message_fingerprint
from .csv_source import CSVMessageSource
from .jsonl_source import JSONLMessageSource

__all__ = [
    'InMemoryMessageSource',
    'MessageSource',
    'message_fingerprint',
    'CSVMessageSource',
    'JSONLMessageSource',
]
