"""CSV export of ledger transactions."""

import csv
import logging
import os
from datetime import datetime
from typing import Dict, List, Optional

from ..models.core import LedgerConfig, Transaction


logger = logging.getLogger(__name__)


class LedgerCSVWriter:
    """Writes ledger rows with a fixed header"""

    STANDARD_HEADERS = [
        'date',
        'time',
        'transaction_id',
        'amount',
        'direction',
        'counterparty',
        'counterparty_id',
        'category_id',
        'kind',
        'fee_charged',
        'balance'
    ]

    def __init__(self, config: Optional[LedgerConfig] = None):
        self.config = config or LedgerConfig()

    def write_transactions(self, transactions: List[Transaction], output_path: str) -> bool:
        """
        Write transactions to a CSV file, oldest first

        Args:
            transactions: Ledger rows to write
            output_path: Path where CSV file should be written

        Returns:
            True if successful, False otherwise
        """
        if not transactions:
            logger.warning("No transactions to export")
            return False

        try:
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)

            with open(output_path, 'w', newline='', encoding='utf-8') as csvfile:
                writer = csv.DictWriter(csvfile, fieldnames=self.STANDARD_HEADERS)
                writer.writeheader()
                for transaction in sorted(transactions, key=lambda tx: tx.occurred_at):
                    writer.writerow(self._transaction_to_dict(transaction))

            logger.info(f"Exported {len(transactions)} transactions to {output_path}")
            return True

        except (OSError, csv.Error) as e:
            logger.error(f"Failed to write {output_path}: {e}")
            return False

    def default_output_path(self, as_of: Optional[datetime] = None) -> str:
        """``<export_directory>/ledger_<YYYY-MM-DD>.csv``"""
        as_of = as_of or datetime.now()
        return os.path.join(self.config.export_directory, f"ledger_{as_of:%Y-%m-%d}.csv")

    def _transaction_to_dict(self, transaction: Transaction) -> Dict[str, str]:
        return {
            'date': transaction.occurred_at.strftime('%Y-%m-%d'),
            'time': transaction.occurred_at.strftime('%H:%M'),
            'transaction_id': transaction.id,
            'amount': str(transaction.amount),
            'direction': transaction.direction.value,
            'counterparty': transaction.counterparty_name or '',
            'counterparty_id': transaction.counterparty_id or '',
            'category_id': str(transaction.category_id) if transaction.category_id is not None else '',
            'kind': transaction.kind.value,
            'fee_charged': str(transaction.fee_charged),
            'balance': str(transaction.post_balance)
        }
