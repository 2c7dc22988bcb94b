"""Message source interface."""

import hashlib
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.core import RawMessage


def to_local_naive(value: datetime) -> datetime:
    """Convert an offset-aware timestamp to naive local time; naive values pass through"""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def message_fingerprint(sender_label: str, timestamp: datetime, body: str) -> str:
    """Stable id for exports that carry no message id"""
    hasher = hashlib.md5()
    hasher.update(f"{sender_label}|{timestamp.isoformat()}|{body}".encode('utf-8'))
    return hasher.hexdigest()


class MessageSource(ABC):
    """Supplies raw messages to the ingestion pipeline.

    ``senders`` optionally restricts the result to the given sender labels
    (compared case-insensitively).
    """

    def __init__(self, senders: Optional[Iterable[str]] = None):
        self.senders = {s.strip().upper() for s in senders} if senders else None

    @abstractmethod
    def read_messages(self) -> List[RawMessage]:
        """Every message the source holds"""
        pass

    def list_messages(self, since: Optional[datetime] = None) -> List[RawMessage]:
        """Messages received on or after ``since``, oldest first"""
        messages = [
            message for message in self.read_messages()
            if (since is None or message.timestamp >= since) and self._accepts(message)
        ]
        return sorted(messages, key=lambda message: message.timestamp)

    def _accepts(self, message: RawMessage) -> bool:
        if self.senders is None:
            return True
        return message.sender_label.strip().upper() in self.senders


class InMemoryMessageSource(MessageSource):
    def __init__(self, messages: Iterable[RawMessage], senders: Optional[Iterable[str]] = None):
        super().__init__(senders)
        self.messages = list(messages)

    def read_messages(self) -> List[RawMessage]:
        return list(self.messages)
