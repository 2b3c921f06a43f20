from typing import Any, Callable, Dict, Generic, List, Tuple, TypeVar
import logging

from llu_sync.metrics import records_skipped_total
from llu_sync.utils.error_handling import ErrorCollector, RecordDecodeError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BatchProcessor(Generic[T]):
    """
    Decodes a batch of wire records one by one.
    A record that fails to decode is logged and dropped; the rest of the
    batch is still processed. Any other exception propagates.
    """
    def __init__(self, decoder: Callable[[Any], T], kind: str = 'measurement'):
        self.decoder = decoder
        self.kind = kind
        self.error_collector = ErrorCollector()
        self.processed: List[T] = []
        self.failed: List[Any] = []

    def process_record(self, idx: int, record: Any) -> None:
        try:
            self.processed.append(self.decoder(record))
        except RecordDecodeError as e:
            self.failed.append(record)
            self.error_collector.add_error(
                'RecordDecodeError', e.field, f"{self.kind} {idx}: {e.message}", e.severity
            )
            records_skipped_total.labels(kind=self.kind).inc()
            logger.warning(
                "Skipping undecodable record",
                extra={"log_type": "record_skipped", "kind": self.kind, "index": idx, "error": str(e)},
            )

    def process_batch(self, records: List[Any]) -> Tuple[List[T], ErrorCollector]:
        """
        Process a list of records. Returns (processed, error_collector).
        """
        for idx, record in enumerate(records):
            self.process_record(idx, record)
        return self.processed, self.error_collector

    def summary(self) -> Dict[str, int]:
        """Record counts of the batch, for logging."""
        return {
            'total': len(self.processed) + len(self.failed),
            'processed': len(self.processed),
            'failed': len(self.failed),
        }
