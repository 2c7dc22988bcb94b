"""Message ingestion pipeline"""

from .pipeline import IngestionPipeline, credit_event_from_transaction, fee_transaction_id

__all__ = ['IngestionPipeline', 'credit_event_from_transaction', 'fee_transaction_id']
