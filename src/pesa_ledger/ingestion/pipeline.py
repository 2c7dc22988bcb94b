"""Message ingestion: extraction, categorization, persistence and fee recomputation."""

import calendar
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, List, Optional

from ..categorization.memory import CategoryMemory
from ..categorization.rules import RuleEngine
from ..credit.rates import RateTable
from ..credit.simulator import DebtSimulator
from ..extraction.extractor import EventExtractor
from ..models.core import (
    AutomationRule,
    CreditDrawdown,
    CreditEvent,
    CreditRepayment,
    Direction,
    IngestionResult,
    LedgerConfig,
    ParsedEvent,
    RawMessage,
    StandardTransaction,
    Transaction,
    TransactionKind,
    Unrecognized,
    stamp_event,
)
from ..sources.base import MessageSource
from ..storage.base import LedgerStore, PersistenceError
from ..utils.error_handler import ErrorHandler, handle_persistence_error


logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')


def fee_transaction_id(month_key: str) -> str:
    return f"FEES-{month_key}"


def end_of_month(month_key: str) -> datetime:
    year, month = (int(part) for part in month_key.split('-'))
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59)


def credit_event_from_transaction(tx: Transaction) -> CreditEvent:
    """Rebuild the parsed credit event stored in a ledger row"""
    if tx.kind is TransactionKind.CREDIT_DRAWDOWN:
        return CreditDrawdown(
            confirmation_code=tx.id,
            amount=tx.amount,
            access_fee=tx.access_fee if tx.access_fee is not None else Decimal('0.00'),
            outstanding_balance_after=tx.outstanding_balance_after,
            due_date=tx.due_date,
            occurred_at=tx.occurred_at,
        )
    if tx.kind is TransactionKind.CREDIT_REPAYMENT:
        return CreditRepayment(
            confirmation_code=tx.id,
            amount=tx.amount,
            outstanding_balance_after=tx.outstanding_balance_after,
            occurred_at=tx.occurred_at,
        )
    raise ValueError(f"Transaction {tx.id} is not a credit event ({tx.kind.value})")


class IngestionPipeline:
    """Turns raw messages into ledger rows.

    Each message is processed at most once: the processed ledger is written
    only after the message's rows are stored, so a failed write leaves the
    message eligible for the next sync. After a batch that contained credit
    events, the full credit history is replayed and the monthly fee rows
    are upserted.
    """

    def __init__(self,
                 store: LedgerStore,
                 extractor: Optional[EventExtractor] = None,
                 memory: Optional[CategoryMemory] = None,
                 rule_engine: Optional[RuleEngine] = None,
                 simulator: Optional[DebtSimulator] = None,
                 config: Optional[LedgerConfig] = None,
                 error_handler: Optional[ErrorHandler] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.config = config or LedgerConfig()
        self.error_handler = error_handler
        self.clock = clock

        self.extractor = extractor or EventExtractor(
            providers=self.config.enabled_providers,
            error_handler=error_handler
        )
        self.memory = memory or CategoryMemory(store, clock)
        self.rule_engine = rule_engine or RuleEngine(store)
        self.simulator = simulator or DebtSimulator(
            RateTable.from_config(self.config.fee_bands),
            error_handler
        )

    def sync(self, source: MessageSource, since: Optional[datetime] = None) -> IngestionResult:
        """Ingest messages from ``source`` received on or after ``since``.

        Defaults to the configured sync window ending now.
        """
        if since is None:
            since = self.clock() - timedelta(days=self.config.sync_window_days)
        messages = source.list_messages(since)
        logger.info(f"Syncing {len(messages)} messages received since {since:%Y-%m-%d %H:%M}")
        return self.ingest(messages)

    def ingest(self, messages: Iterable[RawMessage]) -> IngestionResult:
        result = IngestionResult()
        rules = self.store.list_rules()

        for message in messages:
            result.messages_seen += 1
            if self.store.is_message_processed(message.external_id):
                result.messages_skipped += 1
                continue

            event = stamp_event(self.extractor.extract(message.body), message.timestamp)
            try:
                self._store_event(event, message, rules, result)
                self.store.mark_message_processed(message.external_id)
            except PersistenceError as e:
                result.errors.append(f"{message.external_id}: {e}")
                if self.error_handler:
                    handle_persistence_error(self.error_handler, message.external_id, "ingest", e)
                else:
                    logger.error(f"Failed to store message {message.external_id}: {e}")
                raise

        if result.credit_events:
            result.fee_months_updated = self.recompute_fees()

        logger.info(
            f"Ingested {result.messages_seen} messages: {result.new_transactions} new, "
            f"{result.updated_transactions} updated, {result.credit_events} credit events, "
            f"{result.unrecognized} unrecognized, {result.messages_skipped} already processed"
        )
        return result

    def _store_event(self, event: ParsedEvent, message: RawMessage,
                     rules: List[AutomationRule], result: IngestionResult):
        if isinstance(event, Unrecognized):
            result.unrecognized += 1
            return

        if isinstance(event, StandardTransaction):
            tx = self._standard_row(event, message)
        else:
            tx = self._credit_row(event, message)
            result.credit_events += 1

        existing = self.store.get_transaction(tx.id)
        if existing is not None and existing.kind is tx.kind:
            # Bank transfer and receipt notifications share one row; the first
            # one stored fixes the counterparty used as the memory key
            tx.counterparty_id = existing.counterparty_id
            tx.counterparty_name = existing.counterparty_name
        if existing is not None and existing.category_id is not None:
            # A category set by the user (or an earlier run) always survives
            tx.category_id = existing.category_id
        elif tx.kind is TransactionKind.STANDARD:
            tx.category_id = self._categorize(tx, rules)

        self.store.upsert_transaction(tx)
        if existing is None:
            result.new_transactions += 1
        else:
            result.updated_transactions += 1

    def _categorize(self, tx: Transaction, rules: List[AutomationRule]) -> Optional[int]:
        category_id = self.memory.lookup(tx.counterparty_id, tx.direction)
        if category_id is not None:
            return category_id
        return self.rule_engine.apply_rules(rules, tx)

    def _standard_row(self, event: StandardTransaction, message: RawMessage) -> Transaction:
        return Transaction(
            id=event.confirmation_code,
            amount=event.amount,
            direction=event.direction,
            counterparty_id=event.counterparty_id,
            counterparty_name=event.counterparty_name,
            occurred_at=event.occurred_at,
            post_balance=event.post_balance,
            fee_charged=event.fee_charged,
            raw_text=message.body,
        )

    def _credit_row(self, event: CreditEvent, message: RawMessage) -> Transaction:
        counterparty = self.config.fee_counterparty
        if isinstance(event, CreditDrawdown):
            return Transaction(
                id=event.confirmation_code,
                amount=event.amount,
                direction=Direction.RECEIVED,
                counterparty_id=counterparty.upper(),
                counterparty_name=counterparty,
                occurred_at=event.occurred_at,
                kind=TransactionKind.CREDIT_DRAWDOWN,
                raw_text=message.body,
                access_fee=event.access_fee,
                outstanding_balance_after=event.outstanding_balance_after,
                due_date=event.due_date,
            )
        return Transaction(
            id=event.confirmation_code,
            amount=event.amount,
            direction=Direction.SENT,
            counterparty_id=counterparty.upper(),
            counterparty_name=counterparty,
            occurred_at=event.occurred_at,
            kind=TransactionKind.CREDIT_REPAYMENT,
            raw_text=message.body,
            outstanding_balance_after=event.outstanding_balance_after,
        )

    def credit_history(self) -> List[CreditEvent]:
        return [
            credit_event_from_transaction(tx)
            for tx in self.store.list_transactions()
            if tx.is_credit_event
        ]

    def recompute_fees(self, as_of: Optional[datetime] = None) -> List[str]:
        """Replay all stored credit events and upsert one fee row per month.

        Returns:
            Month keys (``YYYY-MM``) whose fee row was written
        """
        as_of = as_of or self.clock()
        monthly_fees = self.simulator.simulate(self.credit_history(), as_of)

        counterparty = self.config.fee_counterparty
        for key in sorted(monthly_fees):
            fee_id = fee_transaction_id(key)
            existing = self.store.get_transaction(fee_id)
            self.store.upsert_transaction(Transaction(
                id=fee_id,
                amount=monthly_fees[key].quantize(CENTS),
                direction=Direction.SENT,
                counterparty_id=counterparty.upper(),
                counterparty_name=counterparty,
                occurred_at=min(end_of_month(key), as_of),
                category_id=existing.category_id if existing else None,
                kind=TransactionKind.CREDIT_FEES,
            ))

        if monthly_fees:
            logger.info(f"Updated credit fees for {', '.join(sorted(monthly_fees))}")
        return sorted(monthly_fees)
