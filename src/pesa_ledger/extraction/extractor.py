"""Ordered first-match-wins extraction over all message grammars."""

import logging
from typing import Iterable, List, Optional, Type

from .bank import BANK_GRAMMARS
from .base import FieldNormalizer, MalformedFieldError, MessageGrammar
from .credit import CREDIT_GRAMMARS
from .mpesa import MPESA_GRAMMARS
from ..models.core import ParsedEvent, Unrecognized
from ..utils.error_handler import ErrorHandler, handle_field_error


logger = logging.getLogger(__name__)


# Priority order: the first grammar that fully matches wins
DEFAULT_GRAMMARS: List[Type[MessageGrammar]] = MPESA_GRAMMARS + BANK_GRAMMARS + CREDIT_GRAMMARS

PROVIDERS = sorted({grammar.provider for grammar in DEFAULT_GRAMMARS})


class EventExtractor:
    """Turns a message body into a parsed event.

    ``extract`` never raises for unparseable text: a body that matches no
    grammar, or that matches one whose fields cannot be converted, comes
    back as ``Unrecognized``.
    """

    def __init__(self,
                 providers: Optional[Iterable[str]] = None,
                 grammars: Optional[List[Type[MessageGrammar]]] = None,
                 error_handler: Optional[ErrorHandler] = None):
        grammar_classes = grammars if grammars is not None else DEFAULT_GRAMMARS
        if providers is not None:
            enabled = set(providers)
            unknown = enabled - {g.provider for g in grammar_classes}
            if unknown:
                logger.warning(f"Ignoring unknown providers: {', '.join(sorted(unknown))}")
            grammar_classes = [g for g in grammar_classes if g.provider in enabled]

        self.grammars: List[MessageGrammar] = [grammar_class() for grammar_class in grammar_classes]
        self.normalizer = FieldNormalizer()
        self.error_handler = error_handler

    def extract(self, body: str) -> ParsedEvent:
        """Return the event produced by the first matching grammar"""
        text = self.normalizer.normalize_text(body)
        if not text:
            return Unrecognized()

        for grammar in self.grammars:
            match = grammar.match(text)
            if not match:
                continue

            try:
                return grammar.build(match, text)
            except MalformedFieldError as e:
                if self.error_handler:
                    handle_field_error(self.error_handler, grammar.name, e.field_name, e.raw_value, e)
                else:
                    logger.warning(f"Grammar {grammar.name} matched but {e}; treating as unrecognized")
                return Unrecognized()

        logger.debug("No grammar matched message body")
        return Unrecognized()

    def matching_grammar(self, body: str) -> Optional[str]:
        """Name of the grammar that would handle ``body``"""
        text = self.normalizer.normalize_text(body)
        for grammar in self.grammars:
            if grammar.match(text):
                return grammar.name
        return None
